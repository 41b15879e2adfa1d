"""
Enumeration definitions for the TestIT Reports backend.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in Pydantic models and compare equal to the raw values stored in PostgreSQL and
returned by the TestIT API.
"""

from enum import Enum


class ProjectStatus(str, Enum):
    """
    Lifecycle status of a project, as stored in projects.status.

    Only ACTIVE projects take part in statistics collection.
    """
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    DELETED = "DELETED"


class TestPointStatus(str, Enum):
    """
    Test point outcome values counted by the daily run counters.

    TestIT may report other statuses (Blocked, InProgress, ...); those are
    stored in the ground truth verbatim but never counted. UNKNOWN is
    recorded when neither the point nor its status model carries a status.
    """
    __test__ = False

    PASSED = "Passed"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class WorkItemType(str, Enum):
    """Work item types accepted by the TestIT work item search."""
    TEST_CASES = "TestCases"


class CollectionOutcome(str, Enum):
    """
    Outcome of one project collection.

    - SUCCESS: Both aggregators ran and completed
    - PARTIAL: One aggregator failed, the other completed
    - FAILED: Neither aggregator completed, or an unexpected error escaped
    - SKIPPED: Project missing, not ACTIVE, unlinked, or no credential
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"
