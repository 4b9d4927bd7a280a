"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging confirmation tokens for development use.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, confirmation_url: str = "/v1/confirmations") -> None:
        self._confirmation_url = confirmation_url.rstrip("/")

    def send_confirmation(self, email: str, token: str) -> None:
        """
        Log the confirmation link (simulates email delivery).

        Args:
            email: Recipient email address
            token: Confirmation token
        """
        logger.info(
            "[CONFIRMATION] Email: %s Link: %s/%s", email, self._confirmation_url, token
        )
