"""
Statistics collection jobs for TestIT Reports.

- statistics_collection.py: scheduled and manual entry points into the
  collection pipeline, with per-project failure isolation
- scheduler.py: cron-driven asyncio task started from the FastAPI lifespan

Failure containment:
-------------------
- A fleet run (scheduled or manual) without TESTIT_DEFAULT_TOKEN is aborted
  before any project is touched.
- Each project is collected independently; one failing project is logged and
  reported, and the others still run.
- Nothing is raised out of the entry points. Every outcome comes back as a
  dict with success/skipped/error keys and a summary of counts.

Environment:
------------
- TESTIT_DEFAULT_TOKEN: credential for scheduled and fleet-wide runs
- SCHEDULER_ENABLED: start the scheduler with the application
- COLLECTION_CRON: when scheduled runs fire (default "0 1 * * *")
- COLLECTION_INTERVAL_SECONDS: optional fixed interval used instead of the cron
- COLLECTION_RUN_TIMEOUT_SECONDS: optional limit for one scheduled run
- PROJECT_CONCURRENCY: projects collected at the same time (default 1)

Usage:
------
    from testit_reports.jobs import run_scheduled_collection, collect_single_project

    result = await run_scheduled_collection()
    if not result['success']:
        print(result.get('error') or result['summary'])
"""

from testit_reports.jobs.statistics_collection import (
    MissingCredentialError,
    default_date_range,
    require_default_token,
    run_scheduled_collection,
    collect_all_projects,
    collect_single_project,
)

from testit_reports.jobs.scheduler import CollectionScheduler

__all__ = [
    'MissingCredentialError',
    'default_date_range',
    'require_default_token',
    'run_scheduled_collection',
    'collect_all_projects',
    'collect_single_project',
    'CollectionScheduler',
]
