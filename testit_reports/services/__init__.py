"""
Backend Services Module

Business logic of the TestIT statistics collection pipeline, leaf-first:

- testit_client: Async TestIT REST client (httpx)
- projects: Read-only project lookups
- ground_truth: One row per TestIT test point; live status counts
- counters: Daily case/run counter persistence and reporting reads
- work_item_aggregator: Created/modified test case counts per user and day
- test_run_aggregator: Test plans -> test points -> ground truth -> run counters
- collection: Runs both aggregators for one project and date range

All services are consumed by the jobs (testit_reports/jobs/) and the API
layer (testit_reports/api/).
"""

from testit_reports.services.testit_client import (
    TestItClient,
    TestItApiError,
    normalize_token,
    placeholder_username,
)

from testit_reports.services.projects import (
    get_project,
    get_active_projects,
    includes_all_test_plans,
)

from testit_reports.services.ground_truth import (
    normalize_status,
    upsert_point,
    count_by_status,
)

from testit_reports.services.counters import (
    upsert_case_counter,
    upsert_run_counter,
    get_case_counters,
    get_run_counters,
    get_case_totals,
    purge_project_statistics,
)

from testit_reports.services.work_item_aggregator import (
    aggregate_work_items,
    count_by_user_day,
)

from testit_reports.services.test_run_aggregator import (
    aggregate_test_runs,
    filter_plans_by_date,
    effective_plan_date,
    recompute_run_counter,
)

from testit_reports.services.collection import collect

__all__ = [
    # TestIT client
    'TestItClient',
    'TestItApiError',
    'normalize_token',
    'placeholder_username',
    # Projects
    'get_project',
    'get_active_projects',
    'includes_all_test_plans',
    # Ground truth
    'normalize_status',
    'upsert_point',
    'count_by_status',
    # Counters
    'upsert_case_counter',
    'upsert_run_counter',
    'get_case_counters',
    'get_run_counters',
    'get_case_totals',
    'purge_project_statistics',
    # Aggregators
    'aggregate_work_items',
    'count_by_user_day',
    'aggregate_test_runs',
    'filter_plans_by_date',
    'effective_plan_date',
    'recompute_run_counter',
    # Orchestration
    'collect',
]
