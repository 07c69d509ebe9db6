"""
API v1 routes.

Defines REST endpoints for password and OTP based registration and login.
Routes are plain functions so FastAPI runs the blocking store and SMTP
calls in its threadpool.
"""

from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import current_session, get_credential_service, require_session
from src.api.models import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    OtpRequest,
    OtpResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    SessionStatusResponse,
    SessionUser,
    VerifyLoginOtpRequest,
    VerifyRegisterOtpRequest,
)
from src.config.settings import get_settings
from src.domain.credentials import CredentialLifecycleService
from src.domain.exceptions import ErrorKind
from src.domain.results import Failure, Result
from src.domain.tokens import SessionClaims

T = TypeVar("T")

router = APIRouter(tags=["v1"])

_STATUS_BY_KIND = {
    ErrorKind.MISSING_PARAMETER: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OTP_OR_EMAIL: status.HTTP_400_BAD_REQUEST,
    ErrorKind.OTP_EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.USER_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.STORE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.DISPATCH_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.DISPATCH_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}

_CLIENT_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing parameter or rejected credentials"},
    500: {"model": ErrorResponse, "description": "Store or notification failure"},
}


def _unwrap(result: Result[T]) -> T:
    """Return the success value or raise the HTTP error for the failure kind."""
    if isinstance(result, Failure):
        raise HTTPException(
            status_code=_STATUS_BY_KIND.get(result.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail=result.message,
        )
    return result.value


def _session_user(claims: SessionClaims) -> SessionUser:
    return SessionUser(id=claims.id, email=claims.email, name=claims.name)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_CLIENT_ERRORS, 409: {"model": ErrorResponse, "description": "User already exists"}},
    summary="Register a new user",
    description="Create an account directly from email and password. Does not log in.",
)
def register(
    request_data: RegisterRequest,
    service: CredentialLifecycleService = Depends(get_credential_service),
) -> RegisterResponse:
    result = _unwrap(
        service.register(request_data.email, request_data.password, request_data.profile_fields())
    )
    return RegisterResponse(message=result.message, user_id=result.user_id)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses=_CLIENT_ERRORS,
    summary="Log in with email and password",
    description="On success the session token is set as the `token` cookie "
    "and also returned in the response body.",
)
def login(
    request_data: LoginRequest,
    response: Response,
    service: CredentialLifecycleService = Depends(get_credential_service),
) -> LoginResponse:
    result = _unwrap(service.login(request_data.email, request_data.password, response))
    return LoginResponse(message=result.message, user_id=result.user_id, token=result.token)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Log out",
    description="Clears the session cookie. Succeeds whether or not a session exists.",
)
def logout(
    response: Response,
    service: CredentialLifecycleService = Depends(get_credential_service),
) -> LogoutResponse:
    result = _unwrap(service.logout(response))
    return LogoutResponse(message=result.message)


@router.post(
    "/otp/register",
    response_model=OtpResponse,
    responses={
        **_CLIENT_ERRORS,
        409: {"model": ErrorResponse, "description": "User already exists"},
        504: {"model": ErrorResponse, "description": "Notification timed out"},
    },
    summary="Request a registration OTP",
    description="Creates a pending registration and e-mails a 6-digit code valid for 5 minutes.",
)
def generate_register_otp(
    request_data: OtpRequest,
    service: CredentialLifecycleService = Depends(get_credential_service),
) -> OtpResponse:
    settings = get_settings()
    result = _unwrap(
        service.generate_register_otp(
            request_data.email,
            request_data.email_title or settings.register_otp_title,
            request_data.email_body or settings.register_otp_body,
        )
    )
    return OtpResponse(message=result.message, email=result.email)


@router.post(
    "/otp/register/verify",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_CLIENT_ERRORS,
    summary="Complete registration with an OTP",
    description="Verifies the registration code, sets the password and activates the account.",
)
def verify_otp_register(
    request_data: VerifyRegisterOtpRequest,
    service: CredentialLifecycleService = Depends(get_credential_service),
) -> RegisterResponse:
    result = _unwrap(
        service.verify_otp_register(
            request_data.email,
            request_data.otp,
            request_data.password,
            request_data.profile_fields(),
        )
    )
    return RegisterResponse(message=result.message, user_id=result.user_id)


@router.post(
    "/otp/login",
    response_model=OtpResponse,
    responses={
        **_CLIENT_ERRORS,
        404: {"model": ErrorResponse, "description": "User not found"},
        504: {"model": ErrorResponse, "description": "Notification timed out"},
    },
    summary="Request a login OTP",
    description="E-mails a 6-digit login code valid for 5 minutes to an existing account.",
)
def generate_login_otp(
    request_data: OtpRequest,
    service: CredentialLifecycleService = Depends(get_credential_service),
) -> OtpResponse:
    settings = get_settings()
    result = _unwrap(
        service.generate_login_otp(
            request_data.email,
            request_data.email_title or settings.login_otp_title,
            request_data.email_body or settings.login_otp_body,
        )
    )
    return OtpResponse(message=result.message, email=result.email)


@router.post(
    "/otp/login/verify",
    response_model=LoginResponse,
    responses=_CLIENT_ERRORS,
    summary="Log in with an OTP",
    description="Verifies the login code. On success the session token is set as "
    "the `token` cookie and also returned in the response body.",
)
def verify_otp_login(
    request_data: VerifyLoginOtpRequest,
    response: Response,
    service: CredentialLifecycleService = Depends(get_credential_service),
) -> LoginResponse:
    result = _unwrap(service.verify_otp_login(request_data.email, request_data.otp, response))
    return LoginResponse(message=result.message, user_id=result.user_id, token=result.token)


@router.get(
    "/status",
    response_model=SessionStatusResponse,
    summary="Check session status",
)
def session_status(
    claims: SessionClaims | None = Depends(current_session),
) -> SessionStatusResponse:
    if claims is None:
        return SessionStatusResponse(logged_in=False)
    return SessionStatusResponse(logged_in=True, user=_session_user(claims))


@router.get(
    "/profile",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid session"}},
    summary="Protected profile",
)
def profile(claims: SessionClaims = Depends(require_session)) -> ProfileResponse:
    return ProfileResponse(message="This is a protected route", user=_session_user(claims))
