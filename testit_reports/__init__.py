"""
TestIT Reports Backend Package.

Async service that collects test case and test run statistics from TestIT and
keeps per-project, per-user, per-day counters for reporting.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: TestIT client, ground-truth store, counters, aggregators
    - jobs: Scheduled and manual collection entry points
    - sql: DDL and parameterized SQL queries
"""

__version__ = "1.0.0"
