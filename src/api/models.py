"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Emails are taken verbatim: no normalization is applied anywhere. Request
fields are optional at this layer so that an absent field is reported by the
credential service as a missing parameter (400) rather than a 422.
"""

from pydantic import BaseModel, Field

ProfileValue = str | int | float | bool | None


class _ProfileMixin(BaseModel):
    """Optional profile fields accepted at registration time."""

    name: str | None = None
    role: str | None = None
    profile: dict[str, ProfileValue] = Field(
        default_factory=dict,
        description="Additional scalar profile fields. Reserved names are ignored.",
    )

    def profile_fields(self) -> dict[str, ProfileValue]:
        """Merge name and role into the free-form profile fields."""
        fields = dict(self.profile)
        if self.name is not None:
            fields["name"] = self.name
        if self.role is not None:
            fields["role"] = self.role
        return fields


class RegisterRequest(_ProfileMixin):
    """Request model for direct registration."""

    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class OtpRequest(BaseModel):
    """Request model for issuing a registration or login OTP."""

    email: str | None = None
    email_title: str | None = Field(
        None, description="Subject line, defaults to the configured template"
    )
    email_body: str | None = Field(None, description="Message text shown above the code")


class VerifyRegisterOtpRequest(_ProfileMixin):
    """Request model for completing an OTP registration."""

    email: str | None = None
    otp: str | None = Field(None, description="6-digit one-time passcode")
    password: str | None = None


class VerifyLoginOtpRequest(BaseModel):
    email: str | None = None
    otp: str | None = Field(None, description="6-digit one-time passcode")


class RegisterResponse(BaseModel):
    """Response model for a completed registration."""

    message: str
    user_id: str


class LoginResponse(BaseModel):
    """Response model for a successful login. The token is also set as a cookie."""

    message: str
    user_id: str
    token: str


class OtpResponse(BaseModel):
    message: str
    email: str


class LogoutResponse(BaseModel):
    message: str


class SessionUser(BaseModel):
    id: str
    email: str
    name: str | None = None


class SessionStatusResponse(BaseModel):
    logged_in: bool
    user: SessionUser | None = None


class ProfileResponse(BaseModel):
    message: str
    user: SessionUser


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
