"""
Ground-truth store for TestIT test points.

test_point_results holds exactly one row per TestIT test point id. The first
observation of a point inserts it; every later observation updates its status
and date in place. The attributed user and username stay as first recorded
unless the caller explicitly asks to overwrite them, so reprocessing a point
touched by someone else does not rewrite history.

All pass/fail aggregates are derived from this table through
count_by_status() and the run-counter recompute; nothing here is cached between calls.

Key Functions:
- normalize_status: Point status -> status model code -> "Unknown"
- upsert_point: Insert-or-update one point; persistence errors are logged and
  reported as None instead of raised
- count_by_status: Live COUNT(*) by project, status, date range and optional user
"""

import logging
from datetime import date
from typing import Optional

from testit_reports.core.database import get_db_pool
from testit_reports.models.enums import TestPointStatus
from testit_reports.models.schemas import GroundTruthPoint
from testit_reports.sql.statistics_queries import (
    get_count_by_status_query,
    get_upsert_point_query,
)


logger = logging.getLogger(__name__)


def normalize_status(raw_status: Optional[str], status_model_code: Optional[str] = None) -> str:
    """
    Pick the status recorded for a test point.

    Args:
        raw_status: The point's own status field.
        status_model_code: Code of the point's nested status model.

    Returns:
        str: raw_status if set, else status_model_code if set, else "Unknown".
    """
    if raw_status:
        return raw_status
    if status_model_code:
        return status_model_code
    return TestPointStatus.UNKNOWN.value


async def upsert_point(
    project_id: int,
    test_plan_id: str,
    test_point_id: str,
    user_id: str,
    username: str,
    status: str,
    point_date: date,
    *,
    overwrite_attribution: bool = False,
) -> Optional[GroundTruthPoint]:
    """
    Record the latest known state of one test point.

    Args:
        project_id: Internal project id.
        test_plan_id: TestIT test plan id the point belongs to.
        test_point_id: TestIT test point id (the ground-truth key).
        user_id: Attributed TestIT user id.
        username: Attributed username; only stored on insert by default.
        status: Normalized status string.
        point_date: Effective date bucket.
        overwrite_attribution: Also replace user id/username of an existing row.

    Returns:
        Optional[GroundTruthPoint]: The stored row, or None if the write failed.
    """
    query = get_upsert_point_query(overwrite_attribution)

    try:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                query,
                project_id,
                test_plan_id,
                test_point_id,
                user_id,
                username,
                status,
                point_date,
            )
    except Exception as e:
        logger.error(f"Failed to record test point {test_point_id} for project {project_id}: {e}")
        return None

    if row is None:
        logger.error(f"Upsert of test point {test_point_id} returned no row")
        return None

    return GroundTruthPoint.from_record(row)


async def count_by_status(
    project_id: int,
    status: str,
    start_date: date,
    end_date: date,
    user_id: Optional[str] = None,
) -> int:
    """
    Count ground-truth points with a given status in an inclusive date range.

    Always a live query; callers rely on it reflecting every earlier upsert.
    """
    query = get_count_by_status_query(with_user=user_id is not None)
    args = [project_id, status, start_date, end_date]
    if user_id is not None:
        args.append(user_id)

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        count = await conn.fetchval(query, *args)

    return int(count or 0)
