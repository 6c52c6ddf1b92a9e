"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records the workflow passes around and the
interfaces (ports) that the domain requires from infrastructure.
Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol


class ClaimStatus(str, Enum):
    """
    Claim State Machine states.

    State Transitions (forward-only for a given record):
    - CREATED -> EMAIL_SENT (confirmation notification delivered)
    - EMAIL_SENT -> VERIFIED (code or link confirmed before expiry)
    - VERIFIED -> PAYMENT_SENT (payout accepted by the provider)

    CREATED and EMAIL_SENT records are stale once abandoned and are
    deleted when the same email registers again for the campaign.
    VERIFIED without a payout id is parked for operator follow-up.
    """

    CREATED = "created"
    EMAIL_SENT = "emailSent"
    VERIFIED = "verified"
    PAYMENT_SENT = "paymentSent"


class PayoutState(Enum):
    """Result of settling a confirmed claim."""

    SENT = "sent"
    DELAYED = "delayed"


# Payout status annotations written by the workflow on failure
PAYOUT_STATUS_RATE_LOOKUP_FAILED = "rate_lookup_failed"
PAYOUT_STATUS_FAILED = "failed"
PAYOUT_STATUS_UNKNOWN = "unknown"
PAYOUT_STATUS_ALREADY_REWARDED = "already_rewarded"


@dataclass(frozen=True)
class Campaign:
    """Operator-owned reward campaign, read-only to the workflow."""

    id: str
    currency_plugin_id: str
    ticker: str
    usd_amount: Decimal
    active: bool
    currency_display_name: str
    description: str = ""


@dataclass(frozen=True)
class Claim:
    """
    One reward registration attempt.

    ``version`` is the store's concurrency token. Updates must carry the
    version that was read; the store returns the record with the new one.
    """

    id: str
    campaign_id: str
    status: ClaimStatus
    email: str
    normalized_email: str
    wallet_address: str
    ticker: str
    usd_amount: Decimal
    verification_code: str
    verification_token: str
    created_at: datetime
    expires_at: datetime
    crypto_amount: Decimal | None = None
    exchange_rate: Decimal | None = None
    payout_id: str | None = None
    payout_status: str | None = None
    version: int = 0


@dataclass(frozen=True)
class RateQuote:
    crypto_amount: Decimal
    exchange_rate: Decimal


@dataclass(frozen=True)
class PayoutReceipt:
    payout_id: str
    status: str


@dataclass(frozen=True)
class ConfirmOutcome:
    """What the user sees after a successful confirmation."""

    payout_state: PayoutState
    message: str
    claim: Claim


class CampaignRepository(Protocol):
    """Port interface for campaign lookups."""

    def find_active_by_ticker(self, ticker: str) -> Campaign | None:
        """Return the active campaign for a lowercase ticker, if any."""
        ...

    def get(self, campaign_id: str) -> Campaign | None: ...


class ClaimRepository(Protocol):
    """Port interface for claim persistence with optimistic concurrency."""

    def insert(self, claim: Claim) -> Claim:
        """
        Persist a new claim.

        Returns:
            The stored claim carrying its initial version

        Raises:
            StoreConflict: If a claim already exists for
                (campaign_id, normalized_email) or the id is taken
        """
        ...

    def get(self, claim_id: str) -> Claim | None: ...

    def find_by_token(self, token: str) -> Claim | None: ...

    def find_by_campaign_and_email(self, campaign_id: str, normalized_email: str) -> Claim | None: ...

    def has_paid_email(self, normalized_email: str) -> bool:
        """True if any campaign has a PAYMENT_SENT claim for this email."""
        ...

    def has_paid_address(self, wallet_address: str) -> bool:
        """True if any campaign has a PAYMENT_SENT claim for this wallet."""
        ...

    def update(self, claim: Claim) -> Claim:
        """
        Write all mutable fields if the stored version equals ``claim.version``.

        Returns:
            The claim with its new version

        Raises:
            StoreConflict: If the record changed or vanished since it was read,
                or the update would mark a second claim paid for the same
                normalized email or wallet address
        """
        ...

    def delete(self, claim: Claim) -> None:
        """Delete the claim at ``claim.version``; raises StoreConflict otherwise."""
        ...

    def list_stalled(self) -> list[Claim]:
        """Claims parked at VERIFIED without a payout id, oldest first."""
        ...


class CaptchaSessionStore(Protocol):
    """Port interface for one-time captcha sessions."""

    def create(self, token: str, ttl_seconds: int) -> None: ...

    def consume(self, token: str) -> bool:
        """
        Atomically delete the session and report whether it was valid.

        Must be linearizable per token: concurrent consumers of the same
        token never both receive True.
        """
        ...


class CaptchaVerifier(Protocol):
    """Port interface for the upstream human-verification check."""

    def verify(self, captcha_token: str) -> bool: ...


class RateSource(Protocol):
    """One rate-service endpoint."""

    name: str

    def fetch_usd_rate(self, currency_plugin_id: str) -> Decimal:
        """Return the USD price of one unit; raise on any failure."""
        ...


class PayoutProvider(Protocol):
    """Port interface for crypto withdrawals."""

    def send_payout(self, address: str, currency: str, amount: Decimal) -> PayoutReceipt: ...


class NotificationSender(Protocol):
    """Port interface for confirmation delivery."""

    def send_confirmation(self, email: str, code: str, verify_url: str) -> None:
        """
        Deliver the confirmation code and link.

        Raises:
            NotificationFailed: If delivery could not be completed
        """
        ...
