"""Repository adapters - Database implementations."""

from .postgres import (
    PostgresCampaignRepository,
    PostgresCaptchaSessionStore,
    PostgresClaimRepository,
    run_migrations,
)

__all__ = [
    "PostgresCampaignRepository",
    "PostgresCaptchaSessionStore",
    "PostgresClaimRepository",
    "run_migrations",
]
