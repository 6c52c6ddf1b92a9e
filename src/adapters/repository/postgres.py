"""
PostgreSQL repository adapters - Implement the domain's store protocols.

This module provides the PostgreSQL implementations of the campaign,
claim and captcha session ports using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **Optimistic concurrency**: every claim row carries a ``version``.
   UPDATE and DELETE match on ``(id, version)`` and bump the version;
   zero affected rows means another writer got there first and is
   reported as StoreConflict, never retried here.

2. **Uniqueness**: ``(campaign_id, normalized_email)`` is a UNIQUE index,
   so two concurrent registrations for the same pair cannot both insert.
   Partial UNIQUE indexes allow one paymentSent claim per normalized
   email and per wallet address across all campaigns. The loser's
   UniqueViolation is reported as StoreConflict.

3. **Single-use sessions**: consuming a captcha session is one
   ``DELETE ... RETURNING`` statement. Postgres row locking guarantees
   at most one consumer sees the row, and the expiry is evaluated with
   database time in the same statement.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import StoreConflict
from src.domain.ports import Campaign, Claim, ClaimStatus

logger = logging.getLogger(__name__)

_CLAIM_COLUMNS = """
    id, campaign_id, status, email, normalized_email, wallet_address, ticker,
    usd_amount, crypto_amount, exchange_rate, verification_code,
    verification_token, created_at, expires_at, payout_id, payout_status, version
"""

_CAMPAIGN_COLUMNS = """
    id, currency_plugin_id, ticker, usd_amount, active, description, currency_display_name
"""


def _claim_from_row(row: dict[str, Any]) -> Claim:
    return Claim(
        id=row["id"],
        campaign_id=row["campaign_id"],
        status=ClaimStatus(row["status"]),
        email=row["email"],
        normalized_email=row["normalized_email"],
        wallet_address=row["wallet_address"],
        ticker=row["ticker"],
        usd_amount=row["usd_amount"],
        crypto_amount=row["crypto_amount"],
        exchange_rate=row["exchange_rate"],
        verification_code=row["verification_code"],
        verification_token=row["verification_token"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        payout_id=row["payout_id"],
        payout_status=row["payout_status"],
        version=row["version"],
    )


def _campaign_from_row(row: dict[str, Any]) -> Campaign:
    return Campaign(
        id=row["id"],
        currency_plugin_id=row["currency_plugin_id"],
        ticker=row["ticker"],
        usd_amount=row["usd_amount"],
        active=row["active"],
        description=row["description"],
        currency_display_name=row["currency_display_name"],
    )


class PostgresCampaignRepository:
    """
    Implements CampaignRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def find_active_by_ticker(self, ticker: str) -> Campaign | None:
        sql = f"""
            SELECT {_CAMPAIGN_COLUMNS}
            FROM campaigns
            WHERE ticker = %s AND active
            ORDER BY id
            LIMIT 1
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (ticker.lower(),))
            row = cursor.fetchone()
        return _campaign_from_row(row) if row is not None else None

    def get(self, campaign_id: str) -> Campaign | None:
        sql = f"SELECT {_CAMPAIGN_COLUMNS} FROM campaigns WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (campaign_id,))
            row = cursor.fetchone()
        return _campaign_from_row(row) if row is not None else None


class PostgresClaimRepository:
    """
    Implements ClaimRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def insert(self, claim: Claim) -> Claim:
        """
        Insert a new claim at version 1.

        The UNIQUE index on (campaign_id, normalized_email) turns a lost
        registration race into StoreConflict instead of a second claim.
        """
        sql = """
            INSERT INTO claims (
                id, campaign_id, status, email, normalized_email, wallet_address, ticker,
                usd_amount, crypto_amount, exchange_rate, verification_code,
                verification_token, created_at, expires_at, payout_id, payout_status, version
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 1)
            RETURNING version
        """
        params = (
            claim.id,
            claim.campaign_id,
            claim.status.value,
            claim.email,
            claim.normalized_email,
            claim.wallet_address,
            claim.ticker,
            claim.usd_amount,
            claim.crypto_amount,
            claim.exchange_rate,
            claim.verification_code,
            claim.verification_token,
            claim.created_at,
            claim.expires_at,
            claim.payout_id,
            claim.payout_status,
        )
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                (version,) = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation:
            logger.info("Claim insert lost a race for campaign %s", claim.campaign_id)
            raise StoreConflict() from None
        return _with_version(claim, version)

    def get(self, claim_id: str) -> Claim | None:
        return self._fetch_one(f"SELECT {_CLAIM_COLUMNS} FROM claims WHERE id = %s", (claim_id,))

    def find_by_token(self, token: str) -> Claim | None:
        return self._fetch_one(
            f"SELECT {_CLAIM_COLUMNS} FROM claims WHERE verification_token = %s",
            (token,),
        )

    def find_by_campaign_and_email(self, campaign_id: str, normalized_email: str) -> Claim | None:
        return self._fetch_one(
            f"SELECT {_CLAIM_COLUMNS} FROM claims WHERE campaign_id = %s AND normalized_email = %s",
            (campaign_id, normalized_email),
        )

    def has_paid_email(self, normalized_email: str) -> bool:
        sql = "SELECT 1 FROM claims WHERE normalized_email = %s AND status = %s LIMIT 1"
        return self._exists(sql, (normalized_email, ClaimStatus.PAYMENT_SENT.value))

    def has_paid_address(self, wallet_address: str) -> bool:
        sql = "SELECT 1 FROM claims WHERE wallet_address = %s AND status = %s LIMIT 1"
        return self._exists(sql, (wallet_address, ClaimStatus.PAYMENT_SENT.value))

    def update(self, claim: Claim) -> Claim:
        """
        Write the mutable fields if the row is still at ``claim.version``.

        Identity fields (email, wallet, amounts in USD, code, token, times)
        are write-once and never touched here. Marking a claim paid when the
        email or wallet already has a paid claim raises StoreConflict.
        """
        sql = """
            UPDATE claims
            SET status = %s,
                crypto_amount = %s,
                exchange_rate = %s,
                payout_id = %s,
                payout_status = %s,
                version = version + 1
            WHERE id = %s AND version = %s
            RETURNING version
        """
        params = (
            claim.status.value,
            claim.crypto_amount,
            claim.exchange_rate,
            claim.payout_id,
            claim.payout_status,
            claim.id,
            claim.version,
        )
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation:
            logger.warning("Claim %s: email or wallet already has a paid claim", claim.id)
            raise StoreConflict() from None

        if row is None:
            logger.warning("Version conflict updating claim %s at version %s", claim.id, claim.version)
            raise StoreConflict()
        return _with_version(claim, row[0])

    def delete(self, claim: Claim) -> None:
        sql = "DELETE FROM claims WHERE id = %s AND version = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (claim.id, claim.version))
            deleted = cursor.rowcount
            conn.commit()

        if deleted != 1:
            logger.warning("Version conflict deleting claim %s at version %s", claim.id, claim.version)
            raise StoreConflict()

    def list_stalled(self) -> list[Claim]:
        sql = f"""
            SELECT {_CLAIM_COLUMNS}
            FROM claims
            WHERE status = %s AND payout_id IS NULL
            ORDER BY created_at
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (ClaimStatus.VERIFIED.value,))
            rows = cursor.fetchall()
        return [_claim_from_row(row) for row in rows]

    def _fetch_one(self, sql: str, params: tuple) -> Claim | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return _claim_from_row(row) if row is not None else None

    def _exists(self, sql: str, params: tuple) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            return cursor.fetchone() is not None


class PostgresCaptchaSessionStore:
    """Implements CaptchaSessionStore protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, token: str, ttl_seconds: int) -> None:
        sql = """
            INSERT INTO captcha_sessions (token, expires_at)
            VALUES (%s, NOW() + %s * INTERVAL '1 second')
        """
        with self._pool.connection() as conn:
            conn.execute(sql, (token, ttl_seconds))
            conn.commit()

    def consume(self, token: str) -> bool:
        """
        Delete the session and report whether it was still live.

        Read, delete and expiry check happen in one statement, so a token
        can never be consumed twice even by concurrent requests.
        """
        sql = """
            DELETE FROM captcha_sessions
            WHERE token = %s
            RETURNING expires_at > NOW()
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (token,))
            row = cursor.fetchone()
            conn.commit()
        return row is not None and bool(row[0])


def _with_version(claim: Claim, version: int) -> Claim:
    return replace(claim, version=version)


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)
                conn.commit()

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
