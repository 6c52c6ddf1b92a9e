"""
Integration tests for the claim flow.

Drives the full API (captcha, register, confirm by code or link) with
the real PostgreSQL adapters. Captcha, rates, payout and email adapters
are replaced with in-process fakes. Requires PostgreSQL; skipped otherwise.
"""

from collections.abc import Generator
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresCampaignRepository,
    PostgresCaptchaSessionStore,
    PostgresClaimRepository,
)
from src.api.dependencies import get_captcha_broker, get_rewards_service
from src.api.main import app
from src.domain.captcha import CaptchaSessionBroker
from src.domain.exceptions import PayoutFailed
from src.domain.identity import encode_reward_data
from src.domain.ports import ClaimStatus, PayoutState
from src.domain.rates import RateResolver
from src.domain.rewards import MESSAGE_PAYOUT_DELAYED, MESSAGE_SENT, RewardsService
from tests.database import insert_campaign
from tests.fakes import RecordingNotificationSender, RecordingPayoutProvider, StaticRateSource, make_campaign

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_database")]

EMAIL = "Flow.User+rewards@Example.com"
WALLET = "bc1qflowuserwallet"


@dataclass
class Wiring:
    client: TestClient
    service: RewardsService
    claims: PostgresClaimRepository
    notifier: RecordingNotificationSender
    payouts: RecordingPayoutProvider


@pytest.fixture
def wiring(pool: ConnectionPool) -> Generator[Wiring, None, None]:
    """API client over real repositories with external services faked."""
    insert_campaign(pool, make_campaign(id="test-btc"))

    verifier = MagicMock()
    verifier.verify.return_value = True
    broker = CaptchaSessionBroker(store=PostgresCaptchaSessionStore(pool), verifier=verifier)
    claims = PostgresClaimRepository(pool)
    notifier = RecordingNotificationSender()
    payouts = RecordingPayoutProvider()
    service = RewardsService(
        campaigns=PostgresCampaignRepository(pool),
        claims=claims,
        sessions=broker,
        rates=RateResolver(sources=[StaticRateSource("50000")], stagger_seconds=0.5),
        payouts=payouts,
        notifier=notifier,
    )

    app.state.pool = pool
    app.dependency_overrides[get_captcha_broker] = lambda: broker
    app.dependency_overrides[get_rewards_service] = lambda: service
    yield Wiring(TestClient(app), service, claims, notifier, payouts)
    app.dependency_overrides.clear()


def register(wiring: Wiring, email: str = EMAIL, ticker: str = "btc", wallet: str = WALLET):
    session = wiring.client.post("/v1/captcha/validate", json={"captchaToken": "solution"})
    assert session.status_code == 200
    return wiring.client.post(
        "/v1/register",
        json={
            "email": email,
            "data": encode_reward_data(wallet, ticker),
            "sessionToken": session.json()["sessionToken"],
        },
    )


class TestCodeFlow:
    """Register, then confirm with the emailed code."""

    def test_full_flow_pays_out(self, wiring: Wiring) -> None:
        response = register(wiring)

        assert response.status_code == 200
        verification_id = response.json()["verificationId"]
        assert verification_id.startswith("test-btc:")

        email, code, _ = wiring.notifier.sent[0]
        assert email == EMAIL
        assert wiring.claims.get(verification_id).status == ClaimStatus.EMAIL_SENT

        response = wiring.client.post("/v1/verify-code", json={"verificationId": verification_id, "code": code})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": MESSAGE_SENT}
        claim = wiring.claims.get(verification_id)
        assert claim.status == ClaimStatus.PAYMENT_SENT
        assert claim.normalized_email == "flowuser@example.com"
        assert str(claim.crypto_amount) == "0.00010000"
        assert claim.payout_id == "np-0001"

    def test_wrong_code_then_right_code(self, wiring: Wiring) -> None:
        verification_id = register(wiring).json()["verificationId"]
        code = wiring.notifier.sent[0][1]
        wrong = "0000" if code != "0000" else "1111"

        response = wiring.client.post("/v1/verify-code", json={"verificationId": verification_id, "code": wrong})
        assert response.status_code == 400

        response = wiring.client.post("/v1/verify-code", json={"verificationId": verification_id, "code": code})
        assert response.status_code == 200

    def test_expired_claim_returns_410(self, wiring: Wiring, pool: ConnectionPool) -> None:
        verification_id = register(wiring).json()["verificationId"]
        code = wiring.notifier.sent[0][1]
        with pool.connection() as conn:
            conn.execute(
                "UPDATE claims SET expires_at = NOW() - INTERVAL '1 second' WHERE id = %s", (verification_id,)
            )
            conn.commit()

        response = wiring.client.post("/v1/verify-code", json={"verificationId": verification_id, "code": code})

        assert response.status_code == 410

    def test_session_token_is_single_use(self, wiring: Wiring) -> None:
        session = wiring.client.post("/v1/captcha/validate", json={"captchaToken": "solution"}).json()
        body = {
            "email": EMAIL,
            "data": encode_reward_data(WALLET, "btc"),
            "sessionToken": session["sessionToken"],
        }

        assert wiring.client.post("/v1/register", json=body).status_code == 200
        assert wiring.client.post("/v1/register", json=body).status_code == 403


class TestLinkFlow:
    """Register, then confirm through the emailed link."""

    def test_link_confirms_and_second_click_conflicts(self, wiring: Wiring) -> None:
        verification_id = register(wiring).json()["verificationId"]
        verify_url = wiring.notifier.sent[0][2]
        assert verify_url.startswith("http://testserver/v1/verify?token=")

        first = wiring.client.get(verify_url)
        second = wiring.client.get(verify_url)

        assert first.status_code == 200
        assert "Thank You!" in first.text
        assert second.status_code == 409
        assert wiring.claims.get(verification_id).status == ClaimStatus.PAYMENT_SENT


class TestDuplicateProtection:
    """One reward per email and wallet across campaigns."""

    def test_stale_registration_is_replaced(self, wiring: Wiring, pool: ConnectionPool) -> None:
        first = register(wiring).json()["verificationId"]
        second = register(wiring).json()["verificationId"]

        assert first != second
        assert wiring.claims.get(first) is None
        with pool.connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM claims").fetchone()[0]
        assert count == 1

    def test_paid_email_blocked_in_other_campaign(self, wiring: Wiring, pool: ConnectionPool) -> None:
        verification_id = register(wiring).json()["verificationId"]
        wiring.client.post(
            "/v1/verify-code",
            json={"verificationId": verification_id, "code": wiring.notifier.sent[0][1]},
        )
        insert_campaign(pool, make_campaign(id="test-eth", currency_plugin_id="ethereum", ticker="eth"))

        same_email = register(wiring, email="flowuser@example.com", ticker="eth", wallet="0xnewwallet")
        same_wallet = register(wiring, email="someone.else@example.com", ticker="eth")

        assert same_email.status_code == 409
        assert same_email.json() == {"detail": "This email has already been used to claim a reward"}
        assert same_wallet.status_code == 409
        assert same_wallet.json() == {"detail": "This wallet address has already been used to claim a reward"}

    def test_verified_claim_blocks_reregistration(self, wiring: Wiring) -> None:
        wiring.payouts.error = PayoutFailed()
        verification_id = register(wiring).json()["verificationId"]
        wiring.client.post(
            "/v1/verify-code",
            json={"verificationId": verification_id, "code": wiring.notifier.sent[0][1]},
        )

        response = register(wiring)

        assert response.status_code == 409
        assert response.json() == {"detail": "This email is already registered for this campaign"}


class TestDelayedPayout:
    """Payout failures park the claim for an operator re-drive."""

    def test_failed_payout_then_redrive(self, wiring: Wiring) -> None:
        wiring.payouts.error = PayoutFailed()
        verification_id = register(wiring).json()["verificationId"]

        response = wiring.client.post(
            "/v1/verify-code",
            json={"verificationId": verification_id, "code": wiring.notifier.sent[0][1]},
        )

        assert response.status_code == 200
        assert response.json()["message"] == MESSAGE_PAYOUT_DELAYED
        (parked,) = wiring.claims.list_stalled()
        assert parked.id == verification_id
        assert parked.payout_status == "failed"

        wiring.payouts.error = None
        outcome = wiring.service.redrive_payout(verification_id)

        assert outcome.payout_state == PayoutState.SENT
        assert wiring.claims.list_stalled() == []
        assert wiring.claims.get(verification_id).status == ClaimStatus.PAYMENT_SENT
