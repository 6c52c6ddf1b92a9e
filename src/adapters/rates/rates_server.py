"""
Rates server adapter - Implements RateSource protocol for one endpoint.

Calls the rates server v3 API (``POST {base}/v3/rates``) and extracts
the USD rate of the first crypto asset. The response is validated
against a schema; any unexpected shape is an attempt failure.
"""

import logging
from decimal import Decimal

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, ValidationError

logger = logging.getLogger(__name__)


class RateAsset(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plugin_id: str = Field(alias="pluginId")
    token_id: str | None = Field(default=None, alias="tokenId")


class RateEntry(BaseModel):
    asset: RateAsset
    rate: StrictInt | StrictFloat | None = None


class RatesResponse(BaseModel):
    crypto: list[RateEntry]


class RateSourceError(Exception):
    """One rate endpoint returned an error or an unusable body."""


class RatesServerClient:
    """
    Implements RateSource protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The shared httpx.Client carries the request timeout.
    """

    def __init__(self, base_url: str, client: httpx.Client) -> None:
        self.base_url = base_url.rstrip("/")
        self.name = self.base_url
        self._client = client

    def fetch_usd_rate(self, currency_plugin_id: str) -> Decimal:
        payload = {
            "targetFiat": "USD",
            "crypto": [{"asset": {"pluginId": currency_plugin_id, "tokenId": None}}],
            "fiat": [],
        }
        try:
            response = self._client.post(f"{self.base_url}/v3/rates", json=payload)
        except httpx.HTTPError as e:
            raise RateSourceError(f"Rate server {self.base_url} unreachable: {e}") from e

        if not response.is_success:
            raise RateSourceError(f"Rate server {self.base_url} returned {response.status_code}")

        try:
            data = RatesResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise RateSourceError(f"Rate server {self.base_url} sent a malformed response") from e

        if not data.crypto or data.crypto[0].rate is None:
            raise RateSourceError(f"Rate server {self.base_url}: exchange rate not found in response")

        # str() keeps the shortest decimal form of the JSON number
        rate = Decimal(str(data.crypto[0].rate))
        if not rate.is_finite() or rate <= 0:
            raise RateSourceError(f"Rate server {self.base_url} returned an unusable rate: {rate}")
        return rate
