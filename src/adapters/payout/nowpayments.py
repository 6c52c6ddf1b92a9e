"""
NOWPayments adapter - Implements PayoutProvider protocol.

Two-step protocol against the Mass Payments API:
1. ``POST /auth`` with account email/password returns a short-lived JWT
2. ``POST /payout`` with the API key and the JWT submits one withdrawal

Any non-2xx response, transport error or unexpected response shape is a
hard failure (PayoutFailed). Retrying is the caller's decision.
"""

import logging
from decimal import Decimal

import httpx
from pydantic import BaseModel, StrictFloat, StrictInt, StrictStr, ValidationError

from src.domain.exceptions import PayoutFailed
from src.domain.ports import PAYOUT_STATUS_UNKNOWN, PayoutReceipt

logger = logging.getLogger(__name__)


class AuthResponse(BaseModel):
    token: StrictStr


class Withdrawal(BaseModel):
    id: StrictInt | StrictStr
    address: StrictStr
    currency: StrictStr
    amount: StrictInt | StrictFloat | StrictStr
    status: StrictStr | None = None


class PayoutResponse(BaseModel):
    id: StrictStr | StrictInt
    withdrawals: list[Withdrawal]


class NowPaymentsClient:
    """
    Implements PayoutProvider protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        email: str,
        password: str,
        base_url: str = "https://api.nowpayments.io/v1",
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._email = email
        self._password = password
        self._base_url = base_url.rstrip("/")

    def send_payout(self, address: str, currency: str, amount: Decimal) -> PayoutReceipt:
        """
        Submit a single withdrawal.

        Returns:
            PayoutReceipt with the provider's payout id and the first
            withdrawal's status ("unknown" if the provider omitted it)

        Raises:
            PayoutFailed: On any failure at either step
        """
        logger.info("Sending payout: %s %s to %s", amount, currency, address)
        token = self._authenticate()

        body = {"withdrawals": [{"address": address, "currency": currency, "amount": float(amount)}]}
        headers = {"x-api-key": self._api_key, "Authorization": f"Bearer {token}"}
        response = self._post("/payout", body, headers=headers)

        try:
            data = PayoutResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise PayoutFailed("NOWPayments payout response was malformed") from e

        status = data.withdrawals[0].status if data.withdrawals else None
        receipt = PayoutReceipt(payout_id=str(data.id), status=status or PAYOUT_STATUS_UNKNOWN)
        logger.info("NOWPayments payout %s accepted with status %s", receipt.payout_id, receipt.status)
        return receipt

    def _authenticate(self) -> str:
        response = self._post("/auth", {"email": self._email, "password": self._password})
        try:
            return AuthResponse.model_validate_json(response.content).token
        except ValidationError as e:
            raise PayoutFailed("NOWPayments auth response was malformed") from e

    def _post(self, path: str, body: dict, headers: dict[str, str] | None = None) -> httpx.Response:
        step = path.strip("/")
        try:
            response = self._client.post(f"{self._base_url}{path}", json=body, headers=headers)
        except httpx.HTTPError as e:
            raise PayoutFailed(f"NOWPayments {step} request failed: {e}") from e
        if not response.is_success:
            raise PayoutFailed(f"NOWPayments {step} failed: {response.status_code}: {response.text}")
        return response
