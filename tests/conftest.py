"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- In-memory stores and recording adapters
- A fully wired RewardsService over those fakes
"""

import pytest

from src.domain.captcha import CaptchaSessionBroker
from src.domain.rates import RateResolver
from src.domain.rewards import RewardsService
from tests.fakes import (
    FakeClock,
    InMemoryCampaignRepository,
    InMemoryCaptchaSessionStore,
    InMemoryClaimRepository,
    RecordingNotificationSender,
    RecordingPayoutProvider,
    StaticRateSource,
    make_campaign,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def campaigns() -> InMemoryCampaignRepository:
    return InMemoryCampaignRepository(make_campaign())


@pytest.fixture
def claims() -> InMemoryClaimRepository:
    return InMemoryClaimRepository()


@pytest.fixture
def session_store(clock: FakeClock) -> InMemoryCaptchaSessionStore:
    return InMemoryCaptchaSessionStore(clock)


@pytest.fixture
def broker(session_store: InMemoryCaptchaSessionStore) -> CaptchaSessionBroker:
    verifier = type("AlwaysHuman", (), {"verify": lambda self, token: True})()
    return CaptchaSessionBroker(store=session_store, verifier=verifier)


@pytest.fixture
def rate_source() -> StaticRateSource:
    return StaticRateSource("97500.12")


@pytest.fixture
def payouts() -> RecordingPayoutProvider:
    return RecordingPayoutProvider()


@pytest.fixture
def notifier() -> RecordingNotificationSender:
    return RecordingNotificationSender()


@pytest.fixture
def service(
    campaigns: InMemoryCampaignRepository,
    claims: InMemoryClaimRepository,
    broker: CaptchaSessionBroker,
    rate_source: StaticRateSource,
    payouts: RecordingPayoutProvider,
    notifier: RecordingNotificationSender,
    clock: FakeClock,
) -> RewardsService:
    return RewardsService(
        campaigns=campaigns,
        claims=claims,
        sessions=broker,
        rates=RateResolver(sources=[rate_source], stagger_seconds=0.5),
        payouts=payouts,
        notifier=notifier,
        clock=clock,
    )
