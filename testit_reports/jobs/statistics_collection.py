"""
Statistics collection jobs.

Entry points that trigger the collection pipeline:

- run_scheduled_collection(): yesterday, every ACTIVE project, default credential
- collect_all_projects(date_range): manual fleet run with the default credential
- collect_single_project(project_id, date_range, token=None): manual run for
  one project, with an explicit credential or the default one

Failure containment:
- A fleet run without a default credential fails before any project is touched.
- Each project is collected inside its own try block; one project failing
  never stops the others.
- No exception leaves these functions; every outcome is reported in the
  returned dict.

Fleet runs share one TestIT client and collect up to PROJECT_CONCURRENCY
projects at a time (1 by default).

Example:
    result = await run_scheduled_collection()
    print(result['summary']['failed_count'])
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from testit_reports.core.config import Settings, get_settings
from testit_reports.models.enums import CollectionOutcome
from testit_reports.models.schemas import CollectionResult, DateRange, Project
from testit_reports.services.collection import collect
from testit_reports.services.projects import get_active_projects
from testit_reports.services.testit_client import TestItClient


logger = logging.getLogger(__name__)


class MissingCredentialError(Exception):
    """Raised when a fleet run has no default TestIT credential to use."""


# =============================================================================
# Helpers
# =============================================================================

def default_date_range(today: Optional[date] = None) -> DateRange:
    """The single calendar day before today."""
    yesterday = (today or date.today()) - timedelta(days=1)
    return DateRange.single_day(yesterday)


def require_default_token(settings: Settings) -> str:
    token = (settings.testit_default_token or '').strip()
    if not token:
        raise MissingCredentialError("TESTIT_DEFAULT_TOKEN is not configured")
    return token


def _range_dict(date_range: DateRange) -> Dict[str, str]:
    return {'start': str(date_range.start), 'end': str(date_range.end)}


def _result_dict(result: CollectionResult) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        'project_id': result.project_id,
        'outcome': result.outcome.value,
        'success': result.outcome in (CollectionOutcome.SUCCESS, CollectionOutcome.SKIPPED),
        'skipped': result.skipped,
    }
    if result.reason:
        entry['reason'] = result.reason
    if result.work_items is not None:
        entry['work_items'] = result.work_items.model_dump()
    if result.test_runs is not None:
        entry['test_runs'] = result.test_runs.model_dump()
    return entry


def _summarize(results: List[Dict[str, Any]]) -> Dict[str, int]:
    success_count = 0
    skipped_count = 0
    failed_count = 0

    for result in results:
        if result.get('success'):
            if result.get('skipped'):
                skipped_count += 1
            else:
                success_count += 1
        else:
            failed_count += 1

    return {
        'total': len(results),
        'success_count': success_count,
        'skipped_count': skipped_count,
        'failed_count': failed_count,
    }


# =============================================================================
# Fleet Runs
# =============================================================================

async def _collect_project_safely(
    project: Project,
    token: str,
    date_range: DateRange,
    client: TestItClient,
) -> Dict[str, Any]:
    try:
        result = await collect(project.id, token, date_range, client=client)
    except Exception as e:
        logger.exception(f"Statistics collection failed for project {project.id}: {e}")
        return {
            'project_id': project.id,
            'outcome': CollectionOutcome.FAILED.value,
            'success': False,
            'skipped': False,
            'error': str(e),
        }
    return _result_dict(result)


async def _run_fleet(date_range: DateRange, trigger: str) -> Dict[str, Any]:
    settings = get_settings()

    try:
        token = require_default_token(settings)
        projects = await get_active_projects()
    except MissingCredentialError as e:
        logger.error(f"{trigger} statistics collection aborted: {e}")
        return {
            'success': False,
            'error': str(e),
            'date_range': _range_dict(date_range),
            'results': [],
            'summary': _summarize([]),
        }
    except Exception as e:
        logger.exception(f"{trigger} statistics collection could not load projects: {e}")
        return {
            'success': False,
            'error': f'Failed to load active projects: {str(e)}',
            'date_range': _range_dict(date_range),
            'results': [],
            'summary': _summarize([]),
        }

    logger.info(f"{trigger} statistics collection for {len(projects)} projects, {date_range}")

    semaphore = asyncio.Semaphore(max(1, settings.project_concurrency))

    async with TestItClient.from_settings(settings) as client:

        async def run_one(project: Project) -> Dict[str, Any]:
            async with semaphore:
                return await _collect_project_safely(project, token, date_range, client)

        results = list(await asyncio.gather(*(run_one(p) for p in projects)))

    summary = _summarize(results)
    logger.info(
        f"{trigger} statistics collection finished: {summary['success_count']} succeeded, "
        f"{summary['skipped_count']} skipped, {summary['failed_count']} failed"
    )

    return {
        'success': summary['failed_count'] == 0,
        'date_range': _range_dict(date_range),
        'results': results,
        'summary': summary,
    }


async def run_scheduled_collection(today: Optional[date] = None) -> Dict[str, Any]:
    """
    Scheduled run: collect yesterday's statistics for every ACTIVE project.

    Returns:
        Dict with success, date_range, results (one dict per project) and
        summary (total, success_count, skipped_count, failed_count); error
        when the run was aborted.
    """
    return await _run_fleet(default_date_range(today), 'Scheduled')


async def collect_all_projects(date_range: DateRange) -> Dict[str, Any]:
    """Manual fleet run over an explicit date range with the default credential."""
    return await _run_fleet(date_range, 'Manual')


# =============================================================================
# Single Project
# =============================================================================

async def collect_single_project(
    project_id: int,
    date_range: DateRange,
    token: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Manual run for one project.

    Args:
        project_id: Internal project id.
        date_range: Inclusive range of days to collect.
        token: TestIT credential; the configured default is used when omitted.

    Returns:
        Dict with success, skipped, reason/error, outcome and per-aggregator
        details. Never raises.
    """
    credential = token or get_settings().testit_default_token
    if not credential:
        logger.warning(f"No TestIT credential available for project {project_id}, skipping")
        return {
            'project_id': project_id,
            'success': True,
            'skipped': True,
            'outcome': CollectionOutcome.SKIPPED.value,
            'reason': 'No TestIT token provided and TESTIT_DEFAULT_TOKEN is not configured',
            'date_range': _range_dict(date_range),
        }

    try:
        result = await collect(project_id, credential, date_range)
    except Exception as e:
        logger.exception(f"Statistics collection failed for project {project_id}: {e}")
        return {
            'project_id': project_id,
            'success': False,
            'skipped': False,
            'outcome': CollectionOutcome.FAILED.value,
            'error': str(e),
            'date_range': _range_dict(date_range),
        }

    entry = _result_dict(result)
    entry['date_range'] = _range_dict(date_range)
    return entry
