"""
Read-only access to the projects table.

Projects are created and managed by the project-management service; the
collection pipeline only looks them up. The per-project "include all test
plans" flag is the OR of the projects.include_all_test_plans column and the
INCLUDE_ALL_TEST_PLANS_PROJECT_IDS setting.
"""

import logging
from typing import List, Optional

from testit_reports.core.config import get_settings
from testit_reports.core.database import execute_query, execute_query_one
from testit_reports.models.enums import ProjectStatus
from testit_reports.models.schemas import Project
from testit_reports.sql.statistics_queries import (
    SELECT_PROJECT_BY_ID,
    SELECT_PROJECTS_BY_STATUS,
)


logger = logging.getLogger(__name__)


async def get_project(project_id: int) -> Optional[Project]:
    """Load one project by internal id, or None if it does not exist."""
    row = await execute_query_one(SELECT_PROJECT_BY_ID, project_id)

    if row is None:
        return None
    return Project.from_record(row)


async def get_active_projects() -> List[Project]:
    """All ACTIVE projects, ordered by id."""
    rows = await execute_query(SELECT_PROJECTS_BY_STATUS, ProjectStatus.ACTIVE.value)

    projects = [Project.from_record(row) for row in rows]
    logger.debug(f"Loaded {len(projects)} active projects")
    return projects


def includes_all_test_plans(project: Project) -> bool:
    """Whether plan date filtering is bypassed for this project."""
    if project.include_all_test_plans:
        return True
    return project.id in get_settings().include_all_test_plans_project_ids
