"""
Persistence for the daily statistics counters.

test_case_statistics and test_run_statistics are keyed by
(project_id, testit_user_id, date). Both upserts are a single
INSERT ... ON CONFLICT DO UPDATE that replaces the stored counts, so a run
covering a date always leaves that date reflecting the values it computed.
Run counts are taken from test_point_results inside the same statement.

The read functions back the reporting endpoint.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from testit_reports.core.database import get_db_pool
from testit_reports.models.schemas import DailyCaseCounter, DailyRunCounter
from testit_reports.sql.statistics_queries import (
    PURGE_PROJECT_STATEMENTS,
    RECOMPUTE_RUN_COUNTER,
    SELECT_CASE_COUNTERS,
    SELECT_CASE_TOTALS,
    SELECT_RUN_COUNTERS,
    UPSERT_CASE_COUNTER,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Writes
# =============================================================================

async def upsert_case_counter(
    project_id: int,
    user_id: str,
    username: str,
    day: date,
    created: int,
    modified: int,
) -> Optional[DailyCaseCounter]:
    """Replace the created/modified counts for (project, user, day)."""
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            UPSERT_CASE_COUNTER,
            project_id,
            user_id,
            username,
            day,
            created,
            modified,
        )

    return DailyCaseCounter.from_record(row) if row is not None else None


async def upsert_run_counter(
    project_id: int,
    user_id: str,
    username: str,
    day: date,
) -> Optional[DailyRunCounter]:
    """
    Recount passed/failed points for (project, user, day) and replace the counter.

    Counting and writing happen in one INSERT ... SELECT ... ON CONFLICT
    statement, so concurrent writers (other plans, other processes) always
    store a count taken from the ground truth at write time.

    Returns:
        Optional[DailyRunCounter]: The stored counter, or None when the user
        has no passed or failed points that day and nothing was written.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            RECOMPUTE_RUN_COUNTER,
            project_id,
            user_id,
            username,
            day,
        )

    return DailyRunCounter.from_record(row) if row is not None else None


# =============================================================================
# Reads
# =============================================================================

async def get_case_counters(project_id: int, start_date: date, end_date: date) -> List[DailyCaseCounter]:
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(SELECT_CASE_COUNTERS, project_id, start_date, end_date)

    return [DailyCaseCounter.from_record(row) for row in rows]


async def get_run_counters(project_id: int, start_date: date, end_date: date) -> List[DailyRunCounter]:
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(SELECT_RUN_COUNTERS, project_id, start_date, end_date)

    return [DailyRunCounter.from_record(row) for row in rows]


async def get_case_totals(project_id: int, start_date: date, end_date: date) -> Dict[str, int]:
    """
    Sum created/modified counts across all users in a date range.

    Returns:
        Dict[str, int]: {'created_count': ..., 'modified_count': ...}
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(SELECT_CASE_TOTALS, project_id, start_date, end_date)

    if row is None:
        return {'created_count': 0, 'modified_count': 0}

    return {
        'created_count': int(row['created_count'] or 0),
        'modified_count': int(row['modified_count'] or 0),
    }


# =============================================================================
# Teardown
# =============================================================================

async def purge_project_statistics(project_id: int) -> None:
    """
    Delete every statistics row owned by a project.

    Called by the project-management service on project teardown; the
    collection pipeline never calls it.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in PURGE_PROJECT_STATEMENTS:
                await conn.execute(statement, project_id)

    logger.info(f"Purged statistics for project {project_id}")
