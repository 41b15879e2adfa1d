"""
SQL Query Module for the TestIT Reports backend.

Provides the DDL for the statistics tables (schema) and the parameterized
statements used by the ground-truth store and the daily counters
(statistics_queries). Keeps SQL text out of the service modules.

Example usage:
    from testit_reports.sql import UPSERT_CASE_COUNTER, get_count_by_status_query

    query = get_count_by_status_query(with_user=True)
"""

from testit_reports.sql.schema import SCHEMA_STATEMENTS

from testit_reports.sql.statistics_queries import (
    SELECT_PROJECT_BY_ID,
    SELECT_PROJECTS_BY_STATUS,
    UPSERT_TEST_POINT,
    UPSERT_TEST_POINT_WITH_ATTRIBUTION,
    UPSERT_CASE_COUNTER,
    RECOMPUTE_RUN_COUNTER,
    SELECT_CASE_COUNTERS,
    SELECT_RUN_COUNTERS,
    SELECT_CASE_TOTALS,
    PURGE_PROJECT_STATEMENTS,
    get_count_by_status_query,
    get_upsert_point_query,
)

__all__ = [
    'SCHEMA_STATEMENTS',
    'SELECT_PROJECT_BY_ID',
    'SELECT_PROJECTS_BY_STATUS',
    'UPSERT_TEST_POINT',
    'UPSERT_TEST_POINT_WITH_ATTRIBUTION',
    'UPSERT_CASE_COUNTER',
    'RECOMPUTE_RUN_COUNTER',
    'SELECT_CASE_COUNTERS',
    'SELECT_RUN_COUNTERS',
    'SELECT_CASE_TOTALS',
    'PURGE_PROJECT_STATEMENTS',
    'get_count_by_status_query',
    'get_upsert_point_query',
]
