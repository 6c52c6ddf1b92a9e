"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

import httpx
from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.captcha.prosopo import ProsopoCaptchaVerifier
from src.adapters.payout.nowpayments import NowPaymentsClient
from src.adapters.rates.rates_server import RatesServerClient
from src.adapters.repository.postgres import (
    PostgresCampaignRepository,
    PostgresCaptchaSessionStore,
    PostgresClaimRepository,
)
from src.adapters.smtp.console import ConsoleNotificationSender
from src.adapters.smtp.smtp import SmtpNotificationSender
from src.config.settings import Settings, get_settings
from src.domain.captcha import CaptchaSessionBroker
from src.domain.ports import NotificationSender
from src.domain.rates import RateResolver
from src.domain.rewards import RewardsService

# Module-level singleton - ConsoleNotificationSender is stateless
_console_sender = ConsoleNotificationSender()


def open_pool(settings: Settings) -> ConnectionPool:
    """Open the PostgreSQL pool used by the API and the operator CLI."""
    # Every statement is capped server-side; checkout waits are capped by the pool
    return ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        timeout=settings.pool_timeout_seconds,
        kwargs={"options": f"-c statement_timeout={settings.statement_timeout_ms}"},
        open=True,
    )


def build_captcha_broker(pool: ConnectionPool, client: httpx.Client, settings: Settings) -> CaptchaSessionBroker:
    verifier = ProsopoCaptchaVerifier(
        client=client,
        secret=settings.prosopo_api_key,
        verify_url=settings.prosopo_verify_url,
        attempts=settings.captcha_retry_attempts,
        retry_delay_seconds=settings.captcha_retry_delay_seconds,
    )
    return CaptchaSessionBroker(
        store=PostgresCaptchaSessionStore(pool),
        verifier=verifier,
        ttl_seconds=settings.captcha_session_ttl_seconds,
    )


def build_rewards_service(
    pool: ConnectionPool,
    client: httpx.Client,
    settings: Settings,
    broker: CaptchaSessionBroker,
    notifier: NotificationSender,
) -> RewardsService:
    """
    Create rewards service with injected dependencies.

    Wires together the repositories, captcha broker, rate resolver,
    payout client and notification sender for the domain service.
    """
    rates = RateResolver(
        sources=[RatesServerClient(url, client) for url in settings.rates_server_urls],
        stagger_seconds=settings.rates_stagger_timeout_seconds,
    )
    payouts = NowPaymentsClient(
        client=client,
        api_key=settings.nowpayments_api_key,
        email=settings.nowpayments_email,
        password=settings.nowpayments_password,
        base_url=settings.nowpayments_base_url,
    )
    return RewardsService(
        campaigns=PostgresCampaignRepository(pool),
        claims=PostgresClaimRepository(pool),
        sessions=broker,
        rates=rates,
        payouts=payouts,
        notifier=notifier,
        claim_ttl_seconds=settings.claim_ttl_seconds,
    )


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_http_client(request: Request) -> httpx.Client:
    """Shared outbound HTTP client (timeouts configured at startup)."""
    return request.app.state.http_client


def get_notification_sender(settings: Settings = Depends(get_settings)) -> NotificationSender:
    """Console sender for development, SMTP when configured."""
    if settings.email_delivery == "smtp":
        return SmtpNotificationSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            use_tls=settings.smtp_use_tls,
            timeout_seconds=settings.smtp_timeout_seconds,
        )
    return _console_sender


def get_captcha_broker(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> CaptchaSessionBroker:
    """Wire the session store and the Prosopo verifier into the broker."""
    return build_captcha_broker(get_pool(request), get_http_client(request), settings)


def get_rewards_service(
    request: Request,
    settings: Settings = Depends(get_settings),
    broker: CaptchaSessionBroker = Depends(get_captcha_broker),
    notifier: NotificationSender = Depends(get_notification_sender),
) -> RewardsService:
    return build_rewards_service(get_pool(request), get_http_client(request), settings, broker, notifier)


def get_base_url(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """
    Public origin for confirmation links.

    Uses PUBLIC_BASE_URL when set, otherwise the forwarded or direct
    scheme and host of the incoming request.
    """
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    scheme = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or "localhost"
    return f"{scheme}://{host}"
