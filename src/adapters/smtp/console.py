"""
Console notification dispatcher adapter - Implements NotificationDispatcher protocol.

This module provides a console-based implementation of the domain's
dispatcher port, logging verification links to stdout for development.
"""

import logging

from .message import compose_verification_message

logger = logging.getLogger(__name__)


class ConsoleNotificationDispatcher:
    """
    Implements NotificationDispatcher protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints verification links to stdout.
    """

    def __init__(self, base_url: str) -> None:
        """
        Args:
            base_url: Prefix of the verification link (``<base>/verify?token=``)
        """
        self._base_url = base_url

    def send(self, to_email: str, token: str) -> None:
        """
        Log the verification link to console (simulates email delivery).

        In production, this is replaced with the SMTP adapter.
        The link is logged at INFO level to be visible in container logs.

        Args:
            to_email: Recipient email address (normalized by domain layer)
            token: Verification token value
        """
        message = compose_verification_message(to_email, token, self._base_url)
        logger.info("[VERIFICATION] Email: %s Link: %s", to_email, message.verify_url)
