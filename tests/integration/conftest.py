"""
Shared fixtures for integration tests against PostgreSQL.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool

from tests.database import clean_tables, open_test_pool


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests."""
    pool = open_test_pool()
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean claim, session and test campaign rows before each test."""
    clean_tables(pool)
    yield
