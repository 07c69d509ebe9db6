"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status

from src.adapters.smtp.console import ConsoleNotificationDispatcher
from src.adapters.smtp.smtp import SmtpNotificationDispatcher
from src.config.settings import Settings, get_settings
from src.domain.credentials import CredentialLifecycleService
from src.domain.exceptions import InvalidToken, Unauthorized
from src.domain.passwords import BcryptPasswordHasher
from src.domain.ports import NotificationDispatcher, UserStore
from src.domain.tokens import SessionClaims, TokenService, authenticate, is_logged_in


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    """Select the notification adapter configured for this deployment."""
    if settings.notification_backend == "smtp":
        return SmtpNotificationDispatcher(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password.get_secret_value(),
            sender=settings.smtp_from,
            timeout=settings.smtp_timeout_seconds,
        )
    return ConsoleNotificationDispatcher()


def build_credential_service(
    store: UserStore,
    dispatcher: NotificationDispatcher,
    tokens: TokenService,
    settings: Settings,
) -> CredentialLifecycleService:
    """Wire the domain service from adapters and settings."""
    return CredentialLifecycleService(
        store=store,
        dispatcher=dispatcher,
        tokens=tokens,
        hasher=BcryptPasswordHasher(rounds=settings.bcrypt_cost),
        is_production=settings.is_production,
        rollback_on_dispatch_failure=settings.rollback_on_dispatch_failure,
    )


def get_store(request: Request) -> UserStore:
    """
    Get the user store from app state.

    The store is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.store


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_credential_service(request: Request) -> CredentialLifecycleService:
    """
    Create credential service with injected dependencies.

    Wires together the store, dispatcher and token service for the domain service.
    """
    return build_credential_service(
        store=get_store(request),
        dispatcher=get_dispatcher(request),
        tokens=get_token_service(request),
        settings=get_settings(),
    )


def require_session(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> SessionClaims:
    """
    Guard for protected routes: resolve the session cookie or reject with 401.

    A missing cookie and an invalid token are reported with different
    messages but the same status.
    """
    try:
        return authenticate(request.cookies, tokens)
    except (Unauthorized, InvalidToken) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
        ) from None


def current_session(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> SessionClaims | None:
    """Resolve the session cookie, or None when absent or invalid."""
    return is_logged_in(request.cookies, tokens)
