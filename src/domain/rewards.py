"""
Rewards domain service - Claim State Machine implementation.

This module contains the core business logic for reward claims:
registration behind a one-time captcha session, email confirmation by
code or link, and settlement through the rate resolver and payout
provider.

Claim State Machine
===================

States:
- created: Record written, confirmation not yet delivered
- emailSent: Code and link delivered, waiting for confirmation
- verified: Email confirmed; payout pending or parked for follow-up
- paymentSent: Terminal, payout accepted by the provider

Transitions:
    created -> emailSent      (notification delivered)
    emailSent -> verified     (matching code or token before expiry)
    verified -> paymentSent   (rate resolved and payout accepted)

Re-registration for the same (campaign, email) deletes a stale
created/emailSent record and starts over; verified and paymentSent
records block it. A normalized email or wallet address with any
paymentSent record is blocked across all campaigns, at registration and
again just before the payout is submitted.

Every write carries the version read from the store. A lost race
surfaces as StoreConflict and is never retried here.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from .captcha import CaptchaSessionBroker
from .exceptions import (
    AddressAlreadyRewarded,
    CampaignNotFound,
    ClaimAlreadyRegistered,
    ClaimAlreadyVerified,
    ClaimExpired,
    ClaimNotFound,
    ClaimNotRedrivable,
    EmailAlreadyRewarded,
    InvalidCode,
    NotificationFailed,
    PayoutFailed,
    RateLookupFailed,
    RewardAlreadySent,
    SessionRejected,
)
from .identity import decode_reward_data, normalize_email, require_valid_email
from .ports import (
    PAYOUT_STATUS_ALREADY_REWARDED,
    PAYOUT_STATUS_FAILED,
    PAYOUT_STATUS_RATE_LOOKUP_FAILED,
    Campaign,
    CampaignRepository,
    Claim,
    ClaimRepository,
    ClaimStatus,
    ConfirmOutcome,
    NotificationSender,
    PayoutProvider,
    PayoutState,
)
from .rates import RateResolver

logger = logging.getLogger(__name__)

CLAIM_TTL_SECONDS = 10 * 60

MESSAGE_SENT = "Email verified, reward is being sent"
MESSAGE_DELAYED = "Email verified, but reward processing is delayed."
MESSAGE_PAYOUT_DELAYED = "Email verified, but reward processing is delayed. Please check back later."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RewardsService:
    """
    Domain service for reward claims.

    Orchestrates the claim flow: session consumption, duplicate checks,
    claim persistence, confirmation delivery and payout settlement.
    """

    campaigns: CampaignRepository
    claims: ClaimRepository
    sessions: CaptchaSessionBroker
    rates: RateResolver
    payouts: PayoutProvider
    notifier: NotificationSender
    claim_ttl_seconds: int = CLAIM_TTL_SECONDS
    clock: Callable[[], datetime] = _utcnow

    def campaign_info(self, ticker: str) -> Campaign:
        """
        Look up the active campaign for a ticker (case-insensitive).

        Raises:
            CampaignNotFound: If no campaign is active for the ticker
        """
        campaign = self.campaigns.find_active_by_ticker(ticker.lower())
        if campaign is None:
            raise CampaignNotFound()
        return campaign

    def register(self, email: str, data: str, session_token: str, base_url: str) -> Claim:
        """
        Register a reward claim and send the confirmation code and link.

        Args:
            email: Raw email address as entered
            data: base64 of ``edgerewards|<walletAddress>|<ticker>``
            session_token: One-time token from a passed captcha
            base_url: Public origin used to build the confirmation link

        Returns:
            The claim, at emailSent

        Raises:
            SessionRejected: Session token invalid, used or expired
            InvalidEmail, InvalidRewardData: Malformed input
            EmailAlreadyRewarded, AddressAlreadyRewarded: Identity already paid
            CampaignNotFound: No active campaign for the ticker
            ClaimAlreadyRegistered: Claim for this campaign verified or paid
            StoreConflict: Lost a race against a concurrent registration
            NotificationFailed: Delivery failed; the claim stays at created
        """
        if not self.sessions.consume_session(session_token):
            logger.info("Session token invalid or expired")
            raise SessionRejected()

        require_valid_email(email)
        normalized_email = normalize_email(email)
        reward = decode_reward_data(data)

        if self.claims.has_paid_email(normalized_email):
            raise EmailAlreadyRewarded()
        if self.claims.has_paid_address(reward.wallet_address):
            raise AddressAlreadyRewarded()

        campaign = self.campaign_info(reward.ticker)

        existing = self.claims.find_by_campaign_and_email(campaign.id, normalized_email)
        if existing is not None:
            if existing.status in (ClaimStatus.VERIFIED, ClaimStatus.PAYMENT_SENT):
                raise ClaimAlreadyRegistered()
            logger.info("Deleting stale claim %s (%s)", existing.id, existing.status.value)
            self.claims.delete(existing)

        claim = self.claims.insert(self._new_claim(campaign, email, normalized_email, reward.wallet_address))
        logger.info("Claim %s created", claim.id)

        verify_url = f"{base_url.rstrip('/')}/v1/verify?token={claim.verification_token}"
        try:
            self.notifier.send_confirmation(email, claim.verification_code, verify_url)
        except NotificationFailed:
            logger.error("Failed to send verification email for claim %s", claim.id)
            raise

        claim = self.claims.update(replace(claim, status=ClaimStatus.EMAIL_SENT))
        logger.info("Claim %s confirmation sent", claim.id)
        return claim

    def confirm_with_code(self, claim_id: str, code: str) -> ConfirmOutcome:
        """Confirm a claim with the numeric code shown in the email."""
        claim = self.claims.get(claim_id)
        if claim is None:
            raise ClaimNotFound()
        self._check_confirmable(claim)
        self._check_not_expired(claim)
        if not secrets.compare_digest(claim.verification_code.encode(), code.encode()):
            raise InvalidCode()
        return self.process_payout(claim)

    def confirm_with_token(self, token: str) -> ConfirmOutcome:
        """Confirm a claim through the link embedded in the email."""
        claim = self.claims.find_by_token(token)
        if claim is None:
            raise ClaimNotFound("Verification token not found")
        self._check_confirmable(claim)
        self._check_not_expired(claim)
        if not secrets.compare_digest(claim.verification_token.encode(), token.encode()):
            raise InvalidCode("Invalid verification token")
        return self.process_payout(claim)

    def process_payout(self, claim: Claim) -> ConfirmOutcome:
        """
        Mark a claim verified and settle it.

        Settlement failures are recorded on the claim (payout_status) and
        reported as a delayed success; the identity is already confirmed.
        """
        claim = self.claims.update(replace(claim, status=ClaimStatus.VERIFIED))
        logger.info("Claim %s verified", claim.id)

        campaign = self.campaigns.get(claim.campaign_id)
        if campaign is None:
            logger.error("Campaign not found: %s (claim %s)", claim.campaign_id, claim.id)
            return ConfirmOutcome(PayoutState.DELAYED, MESSAGE_DELAYED, claim)

        try:
            quote = self.rates.resolve_rate(campaign.currency_plugin_id, claim.usd_amount)
        except RateLookupFailed as e:
            logger.error("Rate lookup failed for claim %s: %s", claim.id, e)
            claim = self.claims.update(replace(claim, payout_status=PAYOUT_STATUS_RATE_LOOKUP_FAILED))
            return ConfirmOutcome(PayoutState.DELAYED, MESSAGE_DELAYED, claim)

        claim = self.claims.update(
            replace(claim, crypto_amount=quote.crypto_amount, exchange_rate=quote.exchange_rate)
        )

        # Another claim may have been paid to this email or wallet since registration
        if self.claims.has_paid_email(claim.normalized_email) or self.claims.has_paid_address(claim.wallet_address):
            logger.error("Claim %s not paid: email or wallet already rewarded by another claim", claim.id)
            claim = self.claims.update(replace(claim, payout_status=PAYOUT_STATUS_ALREADY_REWARDED))
            return ConfirmOutcome(PayoutState.DELAYED, MESSAGE_DELAYED, claim)

        try:
            receipt = self.payouts.send_payout(claim.wallet_address, claim.ticker, quote.crypto_amount)
        except PayoutFailed as e:
            logger.error("Payout failed for claim %s: %s", claim.id, e)
            claim = self.claims.update(replace(claim, payout_status=PAYOUT_STATUS_FAILED))
            return ConfirmOutcome(PayoutState.DELAYED, MESSAGE_PAYOUT_DELAYED, claim)

        paid = replace(
            claim,
            status=ClaimStatus.PAYMENT_SENT,
            payout_id=receipt.payout_id,
            payout_status=receipt.status,
        )
        try:
            claim = self.claims.update(paid)
        except Exception:
            logger.error(
                "Payout %s sent for claim %s but the paid state was not recorded",
                receipt.payout_id,
                claim.id,
            )
            raise
        logger.info("Claim %s paid: payout %s (%s)", claim.id, receipt.payout_id, receipt.status)
        return ConfirmOutcome(PayoutState.SENT, MESSAGE_SENT, claim)

    def redrive_payout(self, claim_id: str) -> ConfirmOutcome:
        """
        Operator action: settle a claim parked at verified without a payout.

        Raises:
            ClaimNotFound: Unknown claim id
            ClaimNotRedrivable: Claim is not parked at verified, or a payout
                id was already recorded
        """
        claim = self.claims.get(claim_id)
        if claim is None:
            raise ClaimNotFound()
        if claim.status != ClaimStatus.VERIFIED or claim.payout_id is not None:
            raise ClaimNotRedrivable()
        logger.info("Re-driving payout for claim %s (last status %s)", claim.id, claim.payout_status)
        return self.process_payout(replace(claim, payout_status=None))

    def _new_claim(self, campaign: Campaign, email: str, normalized_email: str, wallet_address: str) -> Claim:
        now = self.clock()
        return Claim(
            id=f"{campaign.id}:{int(now.timestamp() * 1000)}:{secrets.token_hex(6)}",
            campaign_id=campaign.id,
            status=ClaimStatus.CREATED,
            email=email,
            normalized_email=normalized_email,
            wallet_address=wallet_address,
            ticker=campaign.ticker,
            usd_amount=campaign.usd_amount,
            verification_code=self._generate_verification_code(),
            verification_token=secrets.token_hex(32),
            created_at=now,
            expires_at=now + timedelta(seconds=self.claim_ttl_seconds),
        )

    def _check_confirmable(self, claim: Claim) -> None:
        if claim.status == ClaimStatus.EMAIL_SENT:
            return
        if claim.status == ClaimStatus.PAYMENT_SENT:
            raise RewardAlreadySent()
        raise ClaimAlreadyVerified()

    def _check_not_expired(self, claim: Claim) -> None:
        if self.clock() > claim.expires_at:
            raise ClaimExpired()

    def _generate_verification_code(self) -> str:
        """
        Generate cryptographically secure 4-digit verification code.

        Returns string to preserve leading zeros.
        """
        return f"{secrets.randbelow(10000):04d}"
