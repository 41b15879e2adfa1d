"""
Collection orchestrator: one project, one date range.

collect() loads the project, checks that it can be collected (exists, is
ACTIVE, has a TestIT id) and then runs the work item aggregator followed by
the test run aggregator. Each aggregator is wrapped on its own so a failure
in one never prevents the other from running.

Both aggregators replace or recompute what they write, so calling collect()
repeatedly for the same project and range converges on the same counters.
"""

import logging
from datetime import date
from typing import Optional

from testit_reports.models.enums import CollectionOutcome
from testit_reports.models.schemas import AggregationResult, CollectionResult, DateRange, Project
from testit_reports.services.projects import get_project, includes_all_test_plans
from testit_reports.services.test_run_aggregator import aggregate_test_runs
from testit_reports.services.testit_client import TestItClient
from testit_reports.services.work_item_aggregator import aggregate_work_items


logger = logging.getLogger(__name__)


def _skip_reason(project: Optional[Project], project_id: int) -> Optional[str]:
    if project is None:
        return f"Project {project_id} not found"
    if not project.is_active:
        return f"Project {project_id} is {project.status.value}"
    if project.testit_id is None:
        return f"Project {project_id} has no TestIT id"
    return None


async def _run_aggregators(
    project: Project,
    token: str,
    date_range: DateRange,
    client: TestItClient,
    today: Optional[date],
) -> CollectionResult:
    try:
        work_items = await aggregate_work_items(project, token, date_range, client)
    except Exception as e:
        logger.exception(f"Work item aggregation crashed for project {project.id}: {e}")
        work_items = AggregationResult(aggregator='work_items', project_id=project.id, success=False, error=str(e))

    try:
        test_runs = await aggregate_test_runs(
            project,
            token,
            date_range,
            client,
            include_all_plans=includes_all_test_plans(project),
            today=today,
        )
    except Exception as e:
        logger.exception(f"Test run aggregation crashed for project {project.id}: {e}")
        test_runs = AggregationResult(aggregator='test_runs', project_id=project.id, success=False, error=str(e))

    succeeded = sum(1 for r in (work_items, test_runs) if r.success)
    if succeeded == 2:
        outcome = CollectionOutcome.SUCCESS
    elif succeeded == 1:
        outcome = CollectionOutcome.PARTIAL
    else:
        outcome = CollectionOutcome.FAILED

    return CollectionResult(
        project_id=project.id,
        date_range=date_range,
        outcome=outcome,
        work_items=work_items,
        test_runs=test_runs,
    )


async def collect(
    project_id: int,
    token: str,
    date_range: DateRange,
    *,
    client: Optional[TestItClient] = None,
    today: Optional[date] = None,
) -> CollectionResult:
    """
    Collect statistics for one project over a date range.

    Args:
        project_id: Internal project id.
        token: TestIT credential.
        date_range: Inclusive range of days to collect.
        client: TestIT client to use; one is created from settings (and
            closed afterwards) when omitted.
        today: Fallback effective date for undated test plans.

    Returns:
        CollectionResult: SKIPPED with a reason when the project cannot be
        collected, otherwise the outcome of both aggregators.
    """
    project = await get_project(project_id)
    reason = _skip_reason(project, project_id)
    if reason is not None:
        logger.info(f"Skipping statistics collection: {reason}")
        return CollectionResult(
            project_id=project_id,
            date_range=date_range,
            outcome=CollectionOutcome.SKIPPED,
            reason=reason,
        )

    logger.info(f"Collecting statistics for project {project.id} ({project.name}) for {date_range}")

    if client is not None:
        result = await _run_aggregators(project, token, date_range, client, today)
    else:
        async with TestItClient.from_settings() as owned_client:
            result = await _run_aggregators(project, token, date_range, owned_client, today)

    logger.info(f"Project {project.id} collection finished: {result.outcome.value}")
    return result
