"""
SMTP notification adapter - Implements NotificationDispatcher protocol.

Sends the rendered OTP e-mail over SMTP with STARTTLS. Every socket
operation is bounded by the configured timeout; a timeout surfaces as
DispatchTimeout and any other delivery problem as DispatchFailure.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage

from src.domain.exceptions import DispatchFailure, DispatchTimeout
from src.domain.otp import OtpMessage

logger = logging.getLogger(__name__)


class SmtpNotificationDispatcher:
    """Implements NotificationDispatcher protocol via smtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        sender: str = "",
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._sender = sender or username
        self._timeout = timeout

    def _build(self, message: OtpMessage) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = self._sender
        msg["To"] = message.address
        msg.set_content(f"{message.subject}\n\nYour code: {message.code}")
        msg.add_alternative(message.html, subtype="html")
        return msg

    def deliver(self, message: OtpMessage) -> None:
        """
        Send the OTP e-mail.

        Raises:
            DispatchTimeout: Server did not respond within the timeout
            DispatchFailure: Connection, TLS, authentication or send failed
        """
        msg = self._build(message)
        ctx = ssl.create_default_context()
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as s:
                s.starttls(context=ctx)
                if self._username and self._password:
                    s.login(self._username, self._password)
                s.send_message(msg)
        except TimeoutError as e:
            logger.warning("SMTP %s:%s timed out after %ss", self._host, self._port, self._timeout)
            raise DispatchTimeout() from e
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP %s:%s delivery failed: %r", self._host, self._port, e)
            raise DispatchFailure() from e

        logger.info("OTP e-mail sent via %s:%s", self._host, self._port)
