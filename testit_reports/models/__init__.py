"""
Package initialization file for TestIT Reports models.

Exports all Pydantic schemas and enumerations from schemas.py and enums.py so
other modules can import them from testit_reports.models directly.

Usage:
    from testit_reports.models import DateRange, GroundTruthPoint, TestPointStatus
"""

# =============================================================================
# Enums
# =============================================================================

from testit_reports.models.enums import (
    ProjectStatus,
    TestPointStatus,
    WorkItemType,
    CollectionOutcome,
)

# =============================================================================
# Schemas
# =============================================================================

from testit_reports.models.schemas import (
    # Date window
    DateRange,
    # Database records
    Project,
    GroundTruthPoint,
    DailyCaseCounter,
    DailyRunCounter,
    # TestIT DTOs
    WorkItem,
    TestPlan,
    StatusModel,
    TestPoint,
    TestItUser,
    # Pipeline results
    AggregationResult,
    CollectionResult,
    # API contracts
    FleetCollectRequest,
    CollectRequest,
    DailyStatistics,
    UserStatistics,
    ProjectStatisticsResponse,
    CollectionRunResponse,
)

__all__ = [
    'ProjectStatus',
    'TestPointStatus',
    'WorkItemType',
    'CollectionOutcome',
    'DateRange',
    'Project',
    'GroundTruthPoint',
    'DailyCaseCounter',
    'DailyRunCounter',
    'WorkItem',
    'TestPlan',
    'StatusModel',
    'TestPoint',
    'TestItUser',
    'AggregationResult',
    'CollectionResult',
    'FleetCollectRequest',
    'CollectRequest',
    'DailyStatistics',
    'UserStatistics',
    'ProjectStatisticsResponse',
    'CollectionRunResponse',
]
