'''
TestIT Reports Backend Test Suite

Test Modules:
-------------
- test_ground_truth.py: Ground-truth store
  - Status fallback chain (status -> status model code -> Unknown)
  - One row per test point id, attribution kept on conflict
  - Live COUNT queries with and without a user filter

- test_counters.py: Daily counter persistence
  - Upserts replace stored counts, never add
  - Reporting reads and project teardown

- test_projects.py: Project lookups and schema initialization

- test_testit_client.py: TestIT REST client (httpx.MockTransport)
  - Authorization/Cookie headers, request bodies, pagination
  - Error mapping and username fallback

- test_work_item_aggregator.py: Created/modified counts per user and day

- test_test_run_aggregator.py: Test run aggregator
  - Plan selection and effective dates
  - Counters recomputed from the ground truth across repeated runs
  - Per-plan failure isolation and bounded concurrency

- test_collection.py: Collection orchestrator skips, isolation, idempotence

- test_statistics_collection.py: Scheduled/manual triggers and the scheduler

- test_api.py: Statistics API contract and /health

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Configuration:
--------------
See conftest.py for shared fixtures and fakes.py for the test doubles.
'''

__all__ = []
