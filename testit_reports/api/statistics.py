"""
FastAPI router for project statistics.

Endpoints (mounted under /statistics):
- GET  /projects/{project_id}?startDate=&endDate=  Per-user and per-day statistics
- POST /projects/{project_id}/collect               Manual collection for one project
- POST /collect-all                                 Manual collection for all ACTIVE projects

Project totals for passed/failed test points are counted directly from the
ground-truth table; the per-day passed/failed values are recounted for each
stored run counter, so a report always reflects the latest known statuses.
"""

import logging
from datetime import date
from typing import Dict
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from testit_reports.jobs.statistics_collection import collect_all_projects, collect_single_project
from testit_reports.models.enums import TestPointStatus
from testit_reports.models.schemas import (
    CollectionRunResponse,
    CollectRequest,
    DailyStatistics,
    FleetCollectRequest,
    ProjectStatisticsResponse,
    UserStatistics,
)
from testit_reports.services.counters import get_case_counters, get_case_totals, get_run_counters
from testit_reports.services.ground_truth import count_by_status
from testit_reports.services.projects import get_project


logger = logging.getLogger(__name__)


router = APIRouter()


def _daily(user: UserStatistics, day: date, index: Dict[UUID, Dict[date, DailyStatistics]]) -> DailyStatistics:
    days = index.setdefault(user.userId, {})
    if day not in days:
        days[day] = DailyStatistics(date=day)
        user.dailyStatistics.append(days[day])
    return days[day]


@router.get("/projects/{project_id}", response_model=ProjectStatisticsResponse)
async def get_project_statistics(
    project_id: int,
    startDate: date = Query(..., description="First day of the report (inclusive)"),
    endDate: date = Query(..., description="Last day of the report (inclusive)"),
) -> ProjectStatisticsResponse:
    """
    Statistics for one project over a date range.

    Raises:
        HTTPException(422) if startDate is after endDate
        HTTPException(404) if the project does not exist
    """
    if startDate > endDate:
        raise HTTPException(status_code=422, detail="startDate must not be after endDate")

    try:
        project = await get_project(project_id)
        if project is None:
            raise HTTPException(status_code=404, detail=f"Project {project_id} not found")

        case_counters = await get_case_counters(project_id, startDate, endDate)
        run_counters = await get_run_counters(project_id, startDate, endDate)
        case_totals = await get_case_totals(project_id, startDate, endDate)

        total_passed = await count_by_status(project_id, TestPointStatus.PASSED.value, startDate, endDate)
        total_failed = await count_by_status(project_id, TestPointStatus.FAILED.value, startDate, endDate)

        users: Dict[UUID, UserStatistics] = {}
        daily_index: Dict[UUID, Dict[date, DailyStatistics]] = {}

        for counter in case_counters:
            user = users.setdefault(
                counter.user_id,
                UserStatistics(userId=counter.user_id, username=counter.username),
            )
            user.createdCount += counter.created_count
            user.modifiedCount += counter.modified_count

            daily = _daily(user, counter.date, daily_index)
            daily.createdCount = counter.created_count
            daily.modifiedCount = counter.modified_count

        for counter in run_counters:
            user = users.setdefault(
                counter.user_id,
                UserStatistics(userId=counter.user_id, username=counter.username),
            )
            passed = await count_by_status(
                project_id, TestPointStatus.PASSED.value, counter.date, counter.date, str(counter.user_id)
            )
            failed = await count_by_status(
                project_id, TestPointStatus.FAILED.value, counter.date, counter.date, str(counter.user_id)
            )
            user.passedCount += passed
            user.failedCount += failed

            daily = _daily(user, counter.date, daily_index)
            daily.passedCount = passed
            daily.failedCount = failed

        for user in users.values():
            user.dailyStatistics.sort(key=lambda d: d.date)

        logger.info(
            f"Project {project_id}: passed={total_passed}, failed={total_failed} "
            f"for {startDate} to {endDate}"
        )

        return ProjectStatisticsResponse(
            projectId=project.id,
            projectName=project.name,
            startDate=startDate,
            endDate=endDate,
            userStatistics=sorted(users.values(), key=lambda u: u.username),
            totalCreatedCount=case_totals['created_count'],
            totalModifiedCount=case_totals['modified_count'],
            totalPassedCount=total_passed,
            totalFailedCount=total_failed,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error getting statistics for project {project_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get project statistics: {str(e)}"
        )


@router.post("/projects/{project_id}/collect", response_model=CollectionRunResponse)
async def collect_project_statistics(
    project_id: int,
    request: CollectRequest,
) -> CollectionRunResponse:
    """
    Collect statistics for one project now.

    Uses the token from the body, or TESTIT_DEFAULT_TOKEN when none is given.

    Raises:
        HTTPException(404) if the project does not exist
    """
    try:
        project = await get_project(project_id)
    except Exception as e:
        logger.exception(f"Error loading project {project_id}")
        raise HTTPException(status_code=500, detail=f"Failed to load project: {str(e)}")

    if project is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")

    logger.info(
        f"Manual statistics collection for project {project_id}, "
        f"{request.startDate} to {request.endDate}"
    )
    result = await collect_single_project(project_id, request.to_range(), token=request.token)

    if result.get('skipped'):
        message = result.get('reason', 'Collection skipped')
    elif result['success']:
        message = "Statistics collected"
    else:
        message = result.get('error') or f"Statistics collection {result.get('outcome', 'failed')}"

    return CollectionRunResponse(success=result['success'], message=message, result=result)


@router.post("/collect-all", response_model=CollectionRunResponse)
async def collect_all_statistics(request: FleetCollectRequest) -> CollectionRunResponse:
    """Collect statistics for every ACTIVE project with the default credential."""
    logger.info(f"Manual statistics collection for all projects, {request.startDate} to {request.endDate}")
    result = await collect_all_projects(request.to_range())

    summary = result['summary']
    if 'error' in result:
        message = result['error']
    else:
        message = (
            f"{summary['success_count']} succeeded, {summary['skipped_count']} skipped, "
            f"{summary['failed_count']} failed"
        )

    return CollectionRunResponse(success=result['success'], message=message, result=result)
