"""
Work item aggregator: daily created/modified test case counts.

For one project and date range:

1. Two searches against TestIT: test cases created in the range, and test
   cases modified in the range.
2. A pandas cross-tabulation counts created items by (createdById, day of
   createdDate) and modified items by (modifiedById, day of modifiedDate).
   Items without the relevant user or timestamp are left out.
3. Every (user, day) present on either side is written to
   test_case_statistics with both counts, 0 for the side with no items.
   Counts replace whatever was stored before.

A failure in either search writes nothing and is reported in the returned
AggregationResult; no exception leaves aggregate_work_items().
"""

import logging
from datetime import date
from typing import Dict, List, Tuple

import pandas as pd

from testit_reports.core.config import get_settings
from testit_reports.models.enums import WorkItemType
from testit_reports.models.schemas import AggregationResult, DateRange, Project, WorkItem
from testit_reports.services.counters import upsert_case_counter
from testit_reports.services.testit_client import TestItClient, placeholder_username


logger = logging.getLogger(__name__)

CREATED = 'created'
MODIFIED = 'modified'


def count_by_user_day(
    created_items: List[WorkItem],
    modified_items: List[WorkItem],
) -> Dict[Tuple[str, date], Dict[str, int]]:
    """
    Count created and modified items per (user id, calendar day).

    Returns:
        Dict mapping (user_id, day) to {'created': n, 'modified': m}.
    """
    rows = []
    for item in created_items:
        if item.createdById and item.created_day:
            rows.append({'user_id': item.createdById, 'day': item.created_day, 'kind': CREATED})
    for item in modified_items:
        if item.modifiedById and item.modified_day:
            rows.append({'user_id': item.modifiedById, 'day': item.modified_day, 'kind': MODIFIED})

    if not rows:
        return {}

    df = pd.DataFrame(rows, columns=['user_id', 'day', 'kind'])
    table = pd.crosstab(index=[df['user_id'], df['day']], columns=df['kind'])
    table = table.reindex(columns=[CREATED, MODIFIED], fill_value=0)

    counts: Dict[Tuple[str, date], Dict[str, int]] = {}
    for (user_id, day), row in table.iterrows():
        counts[(str(user_id), day)] = {
            CREATED: int(row[CREATED]),
            MODIFIED: int(row[MODIFIED]),
        }
    return counts


async def _username_for(client: TestItClient, token: str, user_id: str) -> str:
    if get_settings().testit_resolve_usernames:
        return await client.resolve_username(token, user_id)
    return placeholder_username(user_id)


async def aggregate_work_items(
    project: Project,
    token: str,
    date_range: DateRange,
    client: TestItClient,
) -> AggregationResult:
    """
    Recompute test_case_statistics for a project over a date range.

    Args:
        project: ACTIVE project with a TestIT id.
        token: TestIT credential.
        date_range: Inclusive range of days to cover.
        client: Open TestIT client.

    Returns:
        AggregationResult: success=False if either search failed.
    """
    result = AggregationResult(aggregator='work_items', project_id=project.id)
    bounds = date_range.to_utc_bounds()
    external_id = str(project.testit_id)

    logger.info(f"Aggregating work items for project {project.id} ({date_range})")

    try:
        created_items = await client.search_work_items(
            token,
            [external_id],
            types=[WorkItemType.TEST_CASES.value],
            created_range=bounds,
        )
        modified_items = await client.search_work_items(
            token,
            [external_id],
            types=[WorkItemType.TEST_CASES.value],
            modified_range=bounds,
        )
    except Exception as e:
        logger.error(f"Work item search failed for project {project.id}: {e}")
        result.success = False
        result.error = str(e)
        return result

    result.items_fetched = len(created_items) + len(modified_items)
    counts = count_by_user_day(created_items, modified_items)

    logger.info(
        f"Project {project.id}: {len(created_items)} created, {len(modified_items)} modified "
        f"work items across {len(counts)} user-days"
    )

    for (user_id, day), values in sorted(counts.items(), key=lambda kv: (kv[0][1], kv[0][0])):
        try:
            username = await _username_for(client, token, user_id)
            await upsert_case_counter(
                project.id,
                user_id,
                username,
                day,
                values[CREATED],
                values[MODIFIED],
            )
            result.counters_written += 1
        except Exception as e:
            logger.error(
                f"Failed to write case counter for project {project.id}, "
                f"user {user_id}, {day}: {e}"
            )
            result.success = False
            result.error = str(e)

    return result
