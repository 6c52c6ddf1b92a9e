"""
SMTP notification adapter - Implements NotificationSender protocol.

Sends the confirmation email (code and one-click link) through an SMTP
relay with STARTTLS. Each message opens its own connection bounded by
the configured socket timeout.
"""

import logging
import smtplib
from email.message import EmailMessage

from src.domain.exceptions import NotificationFailed

logger = logging.getLogger(__name__)

SUBJECT = "Verify your email for Edge Rewards"


def build_confirmation_text(code: str, verify_url: str) -> str:
    return (
        "Thanks for registering for Edge Rewards!\n\n"
        f"Your verification code is: {code}\n\n"
        "Enter this code on the verification page, or click the link below:\n\n"
        f"{verify_url}\n\n"
        "This code and link expire in 10 minutes."
    )


class SmtpNotificationSender:
    """
    Implements NotificationSender protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        use_tls: bool = True,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._from_address = from_address or username
        self._use_tls = use_tls
        self._timeout_seconds = timeout_seconds

    def send_confirmation(self, email: str, code: str, verify_url: str) -> None:
        message = EmailMessage()
        message["From"] = self._from_address
        message["To"] = email
        message["Subject"] = SUBJECT
        message.set_content(build_confirmation_text(code, verify_url))

        logger.info("SMTP sending confirmation to %s from %s", email, self._from_address)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout_seconds) as smtp:
                if self._use_tls:
                    smtp.starttls()
                if self._username:
                    smtp.login(self._username, self._password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", email, e)
            raise NotificationFailed() from e
        logger.info("SMTP confirmation sent to %s", email)
