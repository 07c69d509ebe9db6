"""
Console notification adapter - Implements NotificationDispatcher protocol.

This module provides a console-based implementation of the domain's
dispatcher port, logging OTP codes to stdout for development.
"""

import logging

from src.domain.otp import OtpMessage

logger = logging.getLogger(__name__)


class ConsoleNotificationDispatcher:
    """
    Implements NotificationDispatcher protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For development purposes - prints OTP codes instead of sending e-mail.
    """

    def deliver(self, message: OtpMessage) -> None:
        """
        Log the OTP to console (simulates e-mail delivery).

        The code is logged at INFO level to be visible in docker-compose logs.
        """
        logger.info("[OTP] Email: %s Subject: %s Code: %s", message.address, message.subject, message.code)
