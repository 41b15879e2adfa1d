"""
Pydantic models for the TestIT Reports backend.

This module groups the data contracts of the statistics collection pipeline:

- DateRange: inclusive calendar-date window a collection run covers
- Records: Project, GroundTruthPoint, DailyCaseCounter, DailyRunCounter
  (built from asyncpg rows via from_record)
- TestIT DTOs: WorkItem, TestPlan, TestPoint, StatusModel, TestItUser
  (camelCase fields, unknown fields ignored)
- Results: AggregationResult, CollectionResult
- API contracts: CollectRequest, FleetCollectRequest, ProjectStatisticsResponse

All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from testit_reports.models.enums import CollectionOutcome, ProjectStatus


# =============================================================================
# Date Range
# =============================================================================


class DateRange(BaseModel):
    """
    Inclusive range of calendar dates.

    Validation rejects ranges whose start is after their end.
    """
    model_config = ConfigDict(frozen=True)

    start: DateType = Field(..., description="First day of the range (inclusive)")
    end: DateType = Field(..., description="Last day of the range (inclusive)")

    @model_validator(mode='after')
    def _check_order(self) -> 'DateRange':
        if self.start > self.end:
            raise ValueError(f"start date {self.start} is after end date {self.end}")
        return self

    @classmethod
    def single_day(cls, day: DateType) -> 'DateRange':
        return cls(start=day, end=day)

    def contains(self, day: DateType) -> bool:
        return self.start <= day <= self.end

    def to_utc_bounds(self) -> Dict[str, str]:
        """
        Timestamp bounds used in TestIT search filters.

        Covers start 00:00:00.000Z through end 23:59:59.000Z.
        """
        start_dt = datetime(self.start.year, self.start.month, self.start.day, tzinfo=timezone.utc)
        end_dt = datetime(self.end.year, self.end.month, self.end.day, tzinfo=timezone.utc)
        end_dt = end_dt + timedelta(days=1) - timedelta(seconds=1)
        return {
            "from": start_dt.strftime('%Y-%m-%dT%H:%M:%S.000Z'),
            "to": end_dt.strftime('%Y-%m-%dT%H:%M:%S.000Z'),
        }

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


# =============================================================================
# Database Records
# =============================================================================


class Project(BaseModel):
    """
    Project as supplied by the project-management service.

    Read-only to the collection pipeline. testit_id is the external TestIT
    project reference; projects without one cannot be collected.
    """
    id: int
    testit_id: Optional[UUID] = None
    name: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    include_all_test_plans: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Project':
        return cls(
            id=record['id'],
            testit_id=record['testit_id'],
            name=record['name'],
            status=record['status'],
            include_all_test_plans=bool(record.get('include_all_test_plans') or False),
        )


class GroundTruthPoint(BaseModel):
    """One row of test_point_results: the latest known state of a test point."""
    id: Optional[int] = None
    project_id: int
    test_plan_id: UUID
    test_point_id: UUID
    user_id: UUID
    username: str
    status: str
    date: DateType

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'GroundTruthPoint':
        return cls(
            id=record.get('id'),
            project_id=record['project_id'],
            test_plan_id=record['test_plan_id'],
            test_point_id=record['test_point_id'],
            user_id=record['testit_user_id'],
            username=record['testit_username'],
            status=record['status'],
            date=record['date'],
        )


class DailyCaseCounter(BaseModel):
    """Created/modified test case counts for one (project, user, date)."""
    project_id: int
    user_id: UUID
    username: str
    date: DateType
    created_count: int = 0
    modified_count: int = 0

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'DailyCaseCounter':
        return cls(
            project_id=record['project_id'],
            user_id=record['testit_user_id'],
            username=record['testit_username'],
            date=record['date'],
            created_count=record['created_count'],
            modified_count=record['modified_count'],
        )


class DailyRunCounter(BaseModel):
    """Passed/failed test point counts for one (project, user, date)."""
    project_id: int
    user_id: UUID
    username: str
    date: DateType
    passed_count: int = 0
    failed_count: int = 0

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'DailyRunCounter':
        return cls(
            project_id=record['project_id'],
            user_id=record['testit_user_id'],
            username=record['testit_username'],
            date=record['date'],
            passed_count=record['passed_count'],
            failed_count=record['failed_count'],
        )


# =============================================================================
# TestIT API DTOs
# =============================================================================


class _TestItModel(BaseModel):
    model_config = ConfigDict(extra='ignore')


def _utc_date(value: Optional[datetime]) -> Optional[DateType]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


class WorkItem(_TestItModel):
    """Work item from POST /workItems/search."""
    id: str
    createdById: Optional[str] = None
    modifiedById: Optional[str] = None
    createdDate: Optional[datetime] = None
    modifiedDate: Optional[datetime] = None

    @property
    def created_day(self) -> Optional[DateType]:
        return _utc_date(self.createdDate)

    @property
    def modified_day(self) -> Optional[DateType]:
        return _utc_date(self.modifiedDate)


class TestPlan(_TestItModel):
    """Test plan from GET /projects/{id}/testPlans/analytics."""
    __test__ = False

    id: str
    name: Optional[str] = None
    createdDate: Optional[datetime] = None
    completedOn: Optional[datetime] = None

    @property
    def completed_day(self) -> Optional[DateType]:
        return _utc_date(self.completedOn)

    @property
    def created_day(self) -> Optional[DateType]:
        return _utc_date(self.createdDate)


class StatusModel(_TestItModel):
    code: Optional[str] = None


class TestPoint(_TestItModel):
    """Test point from POST /testPoints/search."""
    __test__ = False

    id: str
    status: Optional[str] = None
    statusModel: Optional[StatusModel] = None
    createdById: Optional[str] = None
    modifiedById: Optional[str] = None

    @property
    def attributed_user_id(self) -> Optional[str]:
        return self.modifiedById or self.createdById


class TestItUser(_TestItModel):
    """User from GET /users/{id}."""
    userName: Optional[str] = None
    displayName: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None

    @property
    def best_name(self) -> Optional[str]:
        if self.displayName:
            return self.displayName
        if self.userName:
            return self.userName
        full_name = " ".join(part for part in (self.firstName, self.lastName) if part)
        return full_name or None


# =============================================================================
# Pipeline Results
# =============================================================================


class AggregationResult(BaseModel):
    """Outcome of one aggregator call for one project and date range."""
    aggregator: str
    project_id: int
    success: bool = True
    error: Optional[str] = None
    items_fetched: int = 0
    points_recorded: int = 0
    points_skipped: int = 0
    plans_processed: int = 0
    plans_failed: int = 0
    counters_written: int = 0


class CollectionResult(BaseModel):
    """Outcome of collect() for one project."""
    project_id: int
    date_range: DateRange
    outcome: CollectionOutcome
    reason: Optional[str] = None
    work_items: Optional[AggregationResult] = None
    test_runs: Optional[AggregationResult] = None

    @property
    def skipped(self) -> bool:
        return self.outcome == CollectionOutcome.SKIPPED


# =============================================================================
# API Contracts
# =============================================================================


class FleetCollectRequest(BaseModel):
    """Body of POST /statistics/collect-all."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"startDate": "2024-01-01", "endDate": "2024-01-31"}
        }
    )

    startDate: DateType = Field(..., description="First day to collect (inclusive)")
    endDate: DateType = Field(..., description="Last day to collect (inclusive)")

    @model_validator(mode='after')
    def _check_order(self) -> 'FleetCollectRequest':
        if self.startDate > self.endDate:
            raise ValueError("startDate must not be after endDate")
        return self

    def to_range(self) -> DateRange:
        return DateRange(start=self.startDate, end=self.endDate)


class CollectRequest(FleetCollectRequest):
    """Body of POST /statistics/projects/{project_id}/collect."""
    token: Optional[str] = Field(
        default=None,
        description="TestIT API token; the configured default token is used when omitted"
    )


class DailyStatistics(BaseModel):
    date: DateType
    createdCount: int = 0
    modifiedCount: int = 0
    passedCount: int = 0
    failedCount: int = 0


class UserStatistics(BaseModel):
    userId: UUID
    username: str
    createdCount: int = 0
    modifiedCount: int = 0
    passedCount: int = 0
    failedCount: int = 0
    dailyStatistics: List[DailyStatistics] = Field(default_factory=list)


class ProjectStatisticsResponse(BaseModel):
    """Response of GET /statistics/projects/{project_id}."""
    projectId: int
    projectName: str
    startDate: DateType
    endDate: DateType
    userStatistics: List[UserStatistics] = Field(default_factory=list)
    totalCreatedCount: int = 0
    totalModifiedCount: int = 0
    totalPassedCount: int = 0
    totalFailedCount: int = 0


class CollectionRunResponse(BaseModel):
    """Response of the manual collection endpoints."""
    success: bool
    message: str
    result: Dict[str, Any] = Field(default_factory=dict)
