"""
Session cookie policy.

Maps the deployment environment to cookie attributes. Production cookies
are Secure and SameSite=None so cross-site front ends can send them;
everywhere else they are SameSite=Lax over plain HTTP.
"""

from dataclasses import dataclass

from .ports import CookieSink

SESSION_COOKIE_NAME = "token"
SESSION_COOKIE_MAX_AGE = 24 * 60 * 60


@dataclass(frozen=True)
class CookieAttributes:
    httponly: bool
    secure: bool
    samesite: str
    max_age: int
    path: str = "/"


def cookie_attributes(is_production: bool) -> CookieAttributes:
    return CookieAttributes(
        httponly=True,
        secure=is_production,
        samesite="none" if is_production else "lax",
        max_age=SESSION_COOKIE_MAX_AGE,
    )


def attach_session_cookie(sink: CookieSink, token: str, is_production: bool) -> None:
    attrs = cookie_attributes(is_production)
    sink.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=attrs.max_age,
        path=attrs.path,
        secure=attrs.secure,
        httponly=attrs.httponly,
        samesite=attrs.samesite,
    )


def clear_session_cookie(sink: CookieSink) -> None:
    """
    Expire the session cookie under both attribute profiles.

    The environment that set the cookie may differ from the one clearing
    it, so both the production and non-production variants are cleared.
    """
    for is_production in (True, False):
        attrs = cookie_attributes(is_production)
        sink.delete_cookie(
            key=SESSION_COOKIE_NAME,
            path=attrs.path,
            secure=attrs.secure,
            httponly=attrs.httponly,
            samesite=attrs.samesite,
        )
