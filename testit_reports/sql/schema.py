"""
DDL for the statistics collection tables.

Tables:
    projects             Owned by the project-management service; read-only here.
    test_point_results   Ground truth: one row per TestIT test point, ever.
    test_case_statistics Daily created/modified test case counters.
    test_run_statistics  Daily passed/failed test point counters.

Every statement is idempotent (IF NOT EXISTS) and is executed in order by
testit_reports.core.database.init_schema().
"""

from typing import List


PROJECTS_TABLE = """
    CREATE TABLE IF NOT EXISTS projects (
        id BIGSERIAL PRIMARY KEY,
        testit_id UUID UNIQUE,
        name VARCHAR(100) NOT NULL,
        description TEXT,
        status VARCHAR(20) NOT NULL DEFAULT 'ACTIVE',
        include_all_test_plans BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""

TEST_POINT_RESULTS_TABLE = """
    CREATE TABLE IF NOT EXISTS test_point_results (
        id BIGSERIAL PRIMARY KEY,
        project_id BIGINT NOT NULL REFERENCES projects (id) ON DELETE CASCADE,
        test_plan_id UUID NOT NULL,
        test_point_id UUID NOT NULL UNIQUE,
        testit_user_id UUID NOT NULL,
        testit_username VARCHAR(100) NOT NULL,
        status VARCHAR(50) NOT NULL,
        date DATE NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""

# Serves count_by_status and the run counter recompute: (project, user, date, status)
TEST_POINT_RESULTS_INDEX = """
    CREATE INDEX IF NOT EXISTS ix_test_point_results_project_user_date
        ON test_point_results (project_id, testit_user_id, date, status)
"""

TEST_CASE_STATISTICS_TABLE = """
    CREATE TABLE IF NOT EXISTS test_case_statistics (
        id BIGSERIAL PRIMARY KEY,
        project_id BIGINT NOT NULL REFERENCES projects (id) ON DELETE CASCADE,
        testit_user_id UUID NOT NULL,
        testit_username VARCHAR(100) NOT NULL,
        date DATE NOT NULL,
        created_count INTEGER NOT NULL DEFAULT 0,
        modified_count INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT uq_test_case_statistics_key UNIQUE (project_id, testit_user_id, date)
    )
"""

TEST_RUN_STATISTICS_TABLE = """
    CREATE TABLE IF NOT EXISTS test_run_statistics (
        id BIGSERIAL PRIMARY KEY,
        project_id BIGINT NOT NULL REFERENCES projects (id) ON DELETE CASCADE,
        testit_user_id UUID NOT NULL,
        testit_username VARCHAR(100) NOT NULL,
        date DATE NOT NULL,
        passed_count INTEGER NOT NULL DEFAULT 0,
        failed_count INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT uq_test_run_statistics_key UNIQUE (project_id, testit_user_id, date)
    )
"""

SCHEMA_STATEMENTS: List[str] = [
    PROJECTS_TABLE,
    TEST_POINT_RESULTS_TABLE,
    TEST_POINT_RESULTS_INDEX,
    TEST_CASE_STATISTICS_TABLE,
    TEST_RUN_STATISTICS_TABLE,
]
