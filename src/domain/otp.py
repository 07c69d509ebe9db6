"""
OTP generation and e-mail rendering.

Codes are 6 ASCII digits drawn uniformly with the secrets module and
expire exactly 5 minutes after they are issued.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from html import escape

OTP_LENGTH = 6
OTP_TTL = timedelta(minutes=5)


@dataclass(frozen=True)
class OtpChallenge:
    code: str
    expires_at: datetime


@dataclass(frozen=True)
class OtpMessage:
    """A rendered OTP notification ready for delivery."""

    address: str
    subject: str
    html: str
    code: str


def generate_otp() -> str:
    """Return a 6-digit code as a string (preserves leading zeros)."""
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


def issue_challenge(now: datetime) -> OtpChallenge:
    """Generate a fresh code expiring OTP_TTL after now."""
    return OtpChallenge(code=generate_otp(), expires_at=now + OTP_TTL)


def build_otp_message(address: str, code: str, title: str, body: str) -> OtpMessage:
    return OtpMessage(
        address=address,
        subject=title,
        html=render_otp_email(code, title, body),
        code=code,
    )


def render_otp_email(code: str, title: str, body: str) -> str:
    """
    Render the OTP message as a small self-contained HTML document.

    Title and body come from the caller and are escaped.
    """
    return f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; background: #f4f4f4; padding: 24px;">
    <div style="max-width: 480px; margin: 0 auto; background: #ffffff; padding: 24px; border-radius: 8px;">
      <h2 style="color: #333333;">{escape(title)}</h2>
      <p style="color: #555555;">{escape(body)}</p>
      <p style="font-size: 32px; letter-spacing: 8px; font-weight: bold; text-align: center;">{escape(code)}</p>
      <p style="color: #999999; font-size: 12px;">This code expires in {int(OTP_TTL.total_seconds() // 60)} minutes.</p>
    </div>
  </body>
</html>
"""
