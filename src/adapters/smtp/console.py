"""
Console notification adapter - Implements NotificationSender protocol.

This module provides a console-based implementation of the domain's
notification port, logging confirmation codes to stdout for demo purposes.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleNotificationSender:
    """
    Implements NotificationSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints confirmation codes to stdout.
    """

    def send_confirmation(self, email: str, code: str, verify_url: str) -> None:
        """
        Log confirmation code and link to console (simulates email delivery).

        The code is logged at INFO level to be visible in docker-compose logs.

        Args:
            email: Recipient email address as entered by the user
            code: 4-digit verification code
            verify_url: One-click confirmation link
        """
        logger.info("[VERIFICATION] Email: %s Code: %s Link: %s", email, code, verify_url)
