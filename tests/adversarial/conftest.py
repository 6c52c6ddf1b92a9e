"""
Shared fixtures for adversarial tests.

Provides a PostgreSQL pool and a rewards service wired to it for the
race condition tests. Skipped when PostgreSQL is unreachable.
"""

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresCampaignRepository,
    PostgresCaptchaSessionStore,
    PostgresClaimRepository,
)
from src.domain.captcha import CaptchaSessionBroker
from src.domain.rates import RateResolver
from src.domain.rewards import RewardsService
from tests.database import clean_tables, insert_campaign, open_test_pool
from tests.fakes import RecordingNotificationSender, RecordingPayoutProvider, StaticRateSource, make_campaign

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests."""
    pool = open_test_pool(max_size=30)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean claims and sessions, then add an active test campaign."""
    clean_tables(pool)
    insert_campaign(pool, make_campaign(id="test-btc"))
    yield


@pytest.fixture
def payouts() -> RecordingPayoutProvider:
    return RecordingPayoutProvider()


@pytest.fixture
def broker(pool: ConnectionPool) -> CaptchaSessionBroker:
    verifier = MagicMock()
    verifier.verify.return_value = True
    return CaptchaSessionBroker(store=PostgresCaptchaSessionStore(pool), verifier=verifier)


@pytest.fixture
def service(pool: ConnectionPool, broker: CaptchaSessionBroker, payouts: RecordingPayoutProvider) -> RewardsService:
    return RewardsService(
        campaigns=PostgresCampaignRepository(pool),
        claims=PostgresClaimRepository(pool),
        sessions=broker,
        rates=RateResolver(sources=[StaticRateSource("50000")], stagger_seconds=0.5),
        payouts=payouts,
        notifier=RecordingNotificationSender(),
    )
