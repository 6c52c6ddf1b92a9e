"""
Unit tests for CaptchaSessionBroker.

Sessions are single use and expire ten minutes after creation.
"""

from unittest.mock import MagicMock

import pytest

from src.domain.captcha import SESSION_TTL_SECONDS, CaptchaSessionBroker
from src.domain.exceptions import CaptchaRejected, CaptchaUnavailable
from tests.fakes import FakeClock, InMemoryCaptchaSessionStore


@pytest.fixture
def verifier() -> MagicMock:
    mock = MagicMock()
    mock.verify.return_value = True
    return mock


@pytest.fixture
def store(clock: FakeClock) -> InMemoryCaptchaSessionStore:
    return InMemoryCaptchaSessionStore(clock)


@pytest.fixture
def captcha_broker(store: InMemoryCaptchaSessionStore, verifier: MagicMock) -> CaptchaSessionBroker:
    return CaptchaSessionBroker(store=store, verifier=verifier)


class TestValidateCaptcha:
    """Tests for exchanging a captcha solution for a session token."""

    def test_passed_check_returns_new_session(
        self, captcha_broker: CaptchaSessionBroker, store: InMemoryCaptchaSessionStore, verifier: MagicMock
    ) -> None:
        token = captcha_broker.validate_captcha("prosopo-solution")

        verifier.verify.assert_called_once_with("prosopo-solution")
        assert len(token) == 64
        assert token in store.sessions

    def test_failed_check_raises_and_creates_nothing(
        self, captcha_broker: CaptchaSessionBroker, store: InMemoryCaptchaSessionStore, verifier: MagicMock
    ) -> None:
        verifier.verify.return_value = False

        with pytest.raises(CaptchaRejected):
            captcha_broker.validate_captcha("bad-solution")
        assert store.sessions == {}

    def test_unavailable_verifier_propagates(
        self, captcha_broker: CaptchaSessionBroker, verifier: MagicMock
    ) -> None:
        verifier.verify.side_effect = CaptchaUnavailable()

        with pytest.raises(CaptchaUnavailable):
            captcha_broker.validate_captcha("any")


class TestSessions:
    """Tests for session creation and consumption."""

    def test_tokens_are_unique(self, captcha_broker: CaptchaSessionBroker) -> None:
        tokens = {captcha_broker.create_session() for _ in range(50)}
        assert len(tokens) == 50

    def test_session_is_consumed_exactly_once(self, captcha_broker: CaptchaSessionBroker) -> None:
        token = captcha_broker.create_session()

        assert captcha_broker.consume_session(token) is True
        assert captcha_broker.consume_session(token) is False

    def test_unknown_token_is_rejected(self, captcha_broker: CaptchaSessionBroker) -> None:
        assert captcha_broker.consume_session("f" * 64) is False

    def test_empty_token_is_rejected_without_store_lookup(self, verifier: MagicMock) -> None:
        store = MagicMock()
        captcha_broker = CaptchaSessionBroker(store=store, verifier=verifier)

        assert captcha_broker.consume_session("") is False
        store.consume.assert_not_called()

    def test_session_valid_until_ttl(self, captcha_broker: CaptchaSessionBroker, clock: FakeClock) -> None:
        token = captcha_broker.create_session()
        clock.advance(SESSION_TTL_SECONDS - 1)

        assert captcha_broker.consume_session(token) is True

    def test_expired_session_is_rejected_and_removed(
        self, captcha_broker: CaptchaSessionBroker, store: InMemoryCaptchaSessionStore, clock: FakeClock
    ) -> None:
        token = captcha_broker.create_session()
        clock.advance(SESSION_TTL_SECONDS + 1)

        assert captcha_broker.consume_session(token) is False
        assert token not in store.sessions

    def test_ttl_is_passed_to_store(self, verifier: MagicMock) -> None:
        store = MagicMock()
        captcha_broker = CaptchaSessionBroker(store=store, verifier=verifier, ttl_seconds=120)

        token = captcha_broker.create_session()

        store.create.assert_called_once_with(token, 120)
