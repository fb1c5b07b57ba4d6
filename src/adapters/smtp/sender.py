"""
SMTP notification dispatcher adapter - Implements NotificationDispatcher protocol.

Delivers the verification email through smtplib. Transport errors are
reported to the domain as SendFailure; nothing SMTP-specific escapes.
"""

import logging
import smtplib

from src.domain.exceptions import SendFailure

from .message import compose_verification_message

logger = logging.getLogger(__name__)


class SmtpNotificationDispatcher:
    """
    Implements NotificationDispatcher protocol via SMTP.

    Uses structural subtyping - no explicit inheritance from Protocol.
    A new connection is opened per message.
    """

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        base_url: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.from_address = from_address
        self.base_url = base_url
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to_email: str, token: str) -> None:
        """
        Send the verification email.

        Args:
            to_email: Recipient email address
            token: Verification token value

        Raises:
            SendFailure: On any SMTP or socket error
        """
        message = compose_verification_message(to_email, token, self.base_url)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message.to_email_message(self.from_address))
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", to_email, exc)
            raise SendFailure(f"Could not send verification email to {to_email}") from exc

        logger.info("Verification email sent to %s", to_email)
