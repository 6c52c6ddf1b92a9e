"""
Prosopo captcha adapter - Implements CaptchaVerifier protocol.

Posts the client's captcha token with the site secret to Prosopo's
``siteverify`` endpoint. Upstream 5xx and transport errors are retried
a fixed number of times with a fixed delay; any other failure is a
rejected check.
"""

import logging
import time
from collections.abc import Callable

import httpx
from pydantic import BaseModel, StrictBool, StrictStr, ValidationError

from src.domain.exceptions import CaptchaUnavailable

logger = logging.getLogger(__name__)


class SiteVerifyResponse(BaseModel):
    status: StrictStr
    verified: StrictBool


class ProsopoCaptchaVerifier:
    """
    Implements CaptchaVerifier protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        client: httpx.Client,
        secret: str,
        verify_url: str = "https://api.prosopo.io/siteverify",
        attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._secret = secret
        self._verify_url = verify_url
        self._attempts = max(1, attempts)
        self._retry_delay_seconds = retry_delay_seconds
        self._sleep = sleep

    def verify(self, captcha_token: str) -> bool:
        """
        Returns:
            True if Prosopo reports the token as verified

        Raises:
            CaptchaUnavailable: If every attempt hit a 5xx or transport error
        """
        logger.info("Validating captcha token")
        for attempt in range(1, self._attempts + 1):
            try:
                response = self._client.post(
                    self._verify_url,
                    json={"token": captcha_token, "secret": self._secret},
                )
            except httpx.HTTPError as e:
                logger.warning("Captcha check attempt %d/%d failed: %s", attempt, self._attempts, e)
            else:
                if response.status_code < 500:
                    return self._is_verified(response)
                logger.warning(
                    "Captcha check attempt %d/%d returned %d",
                    attempt,
                    self._attempts,
                    response.status_code,
                )

            if attempt < self._attempts:
                self._sleep(self._retry_delay_seconds)

        raise CaptchaUnavailable()

    def _is_verified(self, response: httpx.Response) -> bool:
        if not response.is_success:
            logger.info("Captcha check rejected with %d: %s", response.status_code, response.text)
            return False
        try:
            data = SiteVerifyResponse.model_validate_json(response.content)
        except ValidationError:
            logger.warning("Captcha check returned a malformed response")
            return False
        return data.status == "ok" and data.verified
