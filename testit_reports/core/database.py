"""
Async PostgreSQL connection pool module for the TestIT Reports backend.

This module provides an async PostgreSQL connection pool using asyncpg. All
statistics tables (ground-truth test points and the two daily counter tables)
are read and written through this pool.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool at application startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at application shutdown
- init_schema(): Create the statistics tables if they do not exist
- execute_query() / execute_query_one(): Convenience helpers for single reads

Connection Pool Configuration:
- min_size: 2 (minimum idle connections kept in pool)
- max_size: 10 (maximum connections in pool)
- command_timeout: 60 seconds (query timeout)

Usage:
    # At application startup (in FastAPI lifespan)
    await init_db()
    await init_schema()

    # In services
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT * FROM test_point_results WHERE project_id = $1", 7)

    # At application shutdown
    await close_db()
"""

import logging
from typing import Any, List, Optional

import asyncpg
from asyncpg import Pool

from testit_reports.core.config import get_settings
from testit_reports.sql.schema import SCHEMA_STATEMENTS


logger = logging.getLogger(__name__)


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called; shared across all async tasks
_pool: Optional[Pool] = None


# =============================================================================
# Pool Lifecycle Functions
# =============================================================================

async def init_db() -> Pool:
    """
    Initialize the database connection pool.

    If the pool is already initialized, this function returns the existing pool
    without creating a new one.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()

        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=2,
            max_size=10,
            command_timeout=60,
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing if needed.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails during lazy init.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    Idempotent - calling it when the pool is not initialized has no effect.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema() -> None:
    """
    Create the statistics tables and indexes if they do not already exist.

    The DDL lives in testit_reports.sql.schema and only uses
    CREATE ... IF NOT EXISTS, so running it on every startup is safe.
    The projects table is owned by the project-management service; it is
    created here only so a fresh development database is usable.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)

    logger.info(f"Statistics schema ensured ({len(SCHEMA_STATEMENTS)} statements)")


# =============================================================================
# Query Execution Helpers
# =============================================================================

async def execute_query(query: str, *args: Any) -> List[asyncpg.Record]:
    """
    Execute a single query and return all rows.

    For operations requiring multiple queries in a transaction, acquire a
    connection from the pool directly.

    Args:
        query: SQL query string with optional $1, $2, etc. parameter placeholders.
        *args: Query parameters corresponding to placeholders in the query.

    Returns:
        List[asyncpg.Record]: Records returned by the query.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetch(query, *args)


async def execute_query_one(query: str, *args: Any) -> Optional[asyncpg.Record]:
    """
    Execute a query and return a single row or None.

    Args:
        query: SQL query string with optional parameter placeholders.
        *args: Query parameters.

    Returns:
        Optional[asyncpg.Record]: The first matching row, or None.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetchrow(query, *args)

