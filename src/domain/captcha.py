"""
Captcha session broker - exchanges a passed bot check for a one-time token.

A session token proves that one human-verification challenge was solved.
Registration consumes it, so every registration attempt costs one
successful challenge.
"""

import logging
import secrets
from dataclasses import dataclass

from .exceptions import CaptchaRejected
from .ports import CaptchaSessionStore, CaptchaVerifier

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 10 * 60


@dataclass
class CaptchaSessionBroker:
    store: CaptchaSessionStore
    verifier: CaptchaVerifier
    ttl_seconds: int = SESSION_TTL_SECONDS

    def validate_captcha(self, captcha_token: str) -> str:
        """
        Check a captcha solution upstream and open a session for it.

        Returns:
            A fresh one-time session token

        Raises:
            CaptchaRejected: If the upstream check did not pass
            CaptchaUnavailable: If the upstream check could not be reached
        """
        if not self.verifier.verify(captcha_token):
            logger.info("Captcha verification rejected")
            raise CaptchaRejected()
        token = self.create_session()
        logger.info("Captcha session token created")
        return token

    def create_session(self) -> str:
        token = secrets.token_hex(32)
        self.store.create(token, self.ttl_seconds)
        return token

    def consume_session(self, token: str) -> bool:
        """True exactly once for a live token; False if absent, used or expired."""
        if not token:
            return False
        return self.store.consume(token)
