"""
Parameterized SQL for the statistics collection tables.

All statements use asyncpg-style $n placeholders. Writes are single
INSERT ... ON CONFLICT statements so each row-level upsert is atomic on the
database side; nothing here performs a read-modify-write.

Upsert semantics:
    test_point_results   Insert on first observation; afterwards only
                         status/date change (attribution is kept) unless
                         the attribution variant is used.
    test_case_statistics Counts are replaced, never added.
    test_run_statistics  Counts are recomputed from test_point_results and
                         replaced in the same statement; no row is written
                         when both counts are zero.
"""

from typing import Optional


# =============================================================================
# PROJECTS (read-only)
# =============================================================================

PROJECT_COLUMNS = "id, testit_id, name, status, include_all_test_plans"

SELECT_PROJECT_BY_ID = f"""
    SELECT {PROJECT_COLUMNS}
    FROM projects
    WHERE id = $1
"""

SELECT_PROJECTS_BY_STATUS = f"""
    SELECT {PROJECT_COLUMNS}
    FROM projects
    WHERE status = $1
    ORDER BY id
"""


# =============================================================================
# GROUND TRUTH (test_point_results)
# =============================================================================

POINT_COLUMNS = (
    "id, project_id, test_plan_id, test_point_id, testit_user_id, "
    "testit_username, status, date"
)

UPSERT_TEST_POINT = f"""
    INSERT INTO test_point_results (
        project_id, test_plan_id, test_point_id,
        testit_user_id, testit_username, status, date,
        created_at, updated_at
    ) VALUES (
        $1, $2, $3,
        $4, $5, $6, $7,
        NOW(), NOW()
    )
    ON CONFLICT (test_point_id)
    DO UPDATE SET
        status = EXCLUDED.status,
        date = EXCLUDED.date,
        updated_at = NOW()
    RETURNING {POINT_COLUMNS}
"""

UPSERT_TEST_POINT_WITH_ATTRIBUTION = f"""
    INSERT INTO test_point_results (
        project_id, test_plan_id, test_point_id,
        testit_user_id, testit_username, status, date,
        created_at, updated_at
    ) VALUES (
        $1, $2, $3,
        $4, $5, $6, $7,
        NOW(), NOW()
    )
    ON CONFLICT (test_point_id)
    DO UPDATE SET
        testit_user_id = EXCLUDED.testit_user_id,
        testit_username = EXCLUDED.testit_username,
        status = EXCLUDED.status,
        date = EXCLUDED.date,
        updated_at = NOW()
    RETURNING {POINT_COLUMNS}
"""


def get_count_by_status_query(with_user: bool) -> str:
    """
    Build the ground-truth COUNT query.

    Parameters are always ($1 project_id, $2 status, $3 start_date, $4 end_date)
    followed by ($5 user_id) when with_user is True.

    Args:
        with_user: Restrict the count to one attributed user.

    Returns:
        str: COUNT(*) query over test_point_results.
    """
    where_conditions = [
        "project_id = $1",
        "status = $2",
        "date BETWEEN $3 AND $4",
    ]

    if with_user:
        where_conditions.append("testit_user_id = $5")

    where_clause = " AND ".join(where_conditions)

    return f"""
    SELECT COUNT(*)
    FROM test_point_results
    WHERE {where_clause}
    """


# =============================================================================
# DAILY COUNTERS
# =============================================================================

CASE_COUNTER_COLUMNS = (
    "project_id, testit_user_id, testit_username, date, created_count, modified_count"
)

RUN_COUNTER_COLUMNS = (
    "project_id, testit_user_id, testit_username, date, passed_count, failed_count"
)

UPSERT_CASE_COUNTER = f"""
    INSERT INTO test_case_statistics (
        project_id, testit_user_id, testit_username, date,
        created_count, modified_count,
        created_at, updated_at
    ) VALUES (
        $1, $2, $3, $4,
        $5, $6,
        NOW(), NOW()
    )
    ON CONFLICT (project_id, testit_user_id, date)
    DO UPDATE SET
        testit_username = EXCLUDED.testit_username,
        created_count = EXCLUDED.created_count,
        modified_count = EXCLUDED.modified_count,
        updated_at = NOW()
    RETURNING {CASE_COUNTER_COLUMNS}
"""

RECOMPUTE_RUN_COUNTER = f"""
    INSERT INTO test_run_statistics (
        project_id, testit_user_id, testit_username, date,
        passed_count, failed_count,
        created_at, updated_at
    )
    SELECT
        $1, $2, $3, $4,
        COUNT(*) FILTER (WHERE status = 'Passed'),
        COUNT(*) FILTER (WHERE status = 'Failed'),
        NOW(), NOW()
    FROM test_point_results
    WHERE project_id = $1 AND testit_user_id = $2 AND date = $4
    HAVING COUNT(*) FILTER (WHERE status IN ('Passed', 'Failed')) > 0
    ON CONFLICT (project_id, testit_user_id, date)
    DO UPDATE SET
        testit_username = EXCLUDED.testit_username,
        passed_count = EXCLUDED.passed_count,
        failed_count = EXCLUDED.failed_count,
        updated_at = NOW()
    RETURNING {RUN_COUNTER_COLUMNS}
"""

SELECT_CASE_COUNTERS = f"""
    SELECT {CASE_COUNTER_COLUMNS}
    FROM test_case_statistics
    WHERE project_id = $1 AND date BETWEEN $2 AND $3
    ORDER BY date, testit_user_id
"""

SELECT_RUN_COUNTERS = f"""
    SELECT {RUN_COUNTER_COLUMNS}
    FROM test_run_statistics
    WHERE project_id = $1 AND date BETWEEN $2 AND $3
    ORDER BY date, testit_user_id
"""

SELECT_CASE_TOTALS = """
    SELECT
        COALESCE(SUM(created_count), 0) AS created_count,
        COALESCE(SUM(modified_count), 0) AS modified_count
    FROM test_case_statistics
    WHERE project_id = $1 AND date BETWEEN $2 AND $3
"""


# =============================================================================
# TEARDOWN
# =============================================================================

PURGE_PROJECT_STATEMENTS = [
    "DELETE FROM test_point_results WHERE project_id = $1",
    "DELETE FROM test_case_statistics WHERE project_id = $1",
    "DELETE FROM test_run_statistics WHERE project_id = $1",
]


def get_upsert_point_query(overwrite_attribution: Optional[bool] = False) -> str:
    """Pick the ground-truth upsert variant."""
    if overwrite_attribution:
        return UPSERT_TEST_POINT_WITH_ATTRIBUTION
    return UPSERT_TEST_POINT
