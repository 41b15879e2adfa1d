"""
Tests for the test run aggregator (services/test_run_aggregator.py).

Covers:
- Plan selection by completion/creation date and the include-all flag
- Effective date and status fallback chains
- Ground-truth uniqueness and attribution across repeated runs
- Run counters recomputed from the ground truth (self-correcting, never
  incremented, zero rows suppressed)
- Failure isolation per plan and bounded concurrent plan processing
"""

import asyncio
from datetime import date

import pytest

from testit_reports.models.schemas import DateRange
from testit_reports.services.test_run_aggregator import (
    KeyedLocks,
    aggregate_test_runs,
    effective_plan_date,
    filter_plans_by_date,
    process_plan,
    recompute_run_counter,
)
from testit_reports.tests.fakes import make_plan, make_point, make_project, uid


ALICE = uid(1)
BOB = uid(2)

JAN_1 = date(2024, 1, 1)
JAN_10 = date(2024, 1, 10)
JAN_11 = date(2024, 1, 11)
FEB_1 = date(2024, 2, 1)
TODAY = date(2024, 3, 15)

JANUARY = DateRange(start=JAN_1, end=date(2024, 1, 31))

PLAN_A = uid(100)
PLAN_B = uid(101)
PLAN_C = uid(102)


def _point(n: int, **kwargs):
    return make_point(uid(500 + n), **kwargs)


# ============================================================
# PLAN SELECTION
# ============================================================

class TestFilterPlansByDate:

    def test_completed_in_range_kept(self) -> None:
        plans = [make_plan(PLAN_A, created=date(2023, 12, 1), completed=JAN_10)]
        assert filter_plans_by_date(plans, JANUARY) == plans

    def test_created_in_range_kept_even_if_completed_later(self) -> None:
        plans = [make_plan(PLAN_A, created=JAN_10, completed=FEB_1)]
        assert filter_plans_by_date(plans, JANUARY) == plans

    def test_both_dates_outside_range_dropped(self) -> None:
        plans = [make_plan(PLAN_A, created=date(2023, 12, 1), completed=FEB_1)]
        assert filter_plans_by_date(plans, JANUARY) == []

    def test_plan_without_dates_kept(self) -> None:
        plans = [make_plan(PLAN_A)]
        assert filter_plans_by_date(plans, JANUARY) == plans

    def test_include_all_skips_filtering(self) -> None:
        plans = [
            make_plan(PLAN_A, created=date(2023, 12, 1), completed=FEB_1),
            make_plan(PLAN_B, completed=JAN_10),
        ]
        assert filter_plans_by_date(plans, JANUARY, include_all=True) == plans


class TestEffectivePlanDate:

    def test_completion_date_first(self) -> None:
        plan = make_plan(PLAN_A, created=JAN_1, completed=JAN_10)
        assert effective_plan_date(plan, TODAY) == JAN_10

    def test_creation_date_when_not_completed(self) -> None:
        plan = make_plan(PLAN_A, created=JAN_10)
        assert effective_plan_date(plan, TODAY) == JAN_10

    def test_today_when_no_dates(self) -> None:
        assert effective_plan_date(make_plan(PLAN_A), TODAY) == TODAY


class TestKeyedLocks:

    def test_same_key_same_lock(self) -> None:
        locks = KeyedLocks()
        first = locks.get((1, ALICE, JAN_10))
        assert locks.get((1, ALICE, JAN_10)) is first
        assert locks.get((1, BOB, JAN_10)) is not first

    def test_unused_locks_are_released(self) -> None:
        locks = KeyedLocks()
        lock = locks.get('key')
        assert len(locks) == 1
        del lock
        assert len(locks) == 0


# ============================================================
# RECOMPUTE
# ============================================================

@pytest.mark.asyncio
class TestRecomputeRunCounter:

    async def test_counts_from_ground_truth(self, fake_store) -> None:
        await fake_store.upsert_point(1, PLAN_A, uid(501), ALICE, 'alice', 'Passed', JAN_10)
        await fake_store.upsert_point(1, PLAN_A, uid(502), ALICE, 'alice', 'Failed', JAN_10)
        await fake_store.upsert_point(1, PLAN_A, uid(503), ALICE, 'alice', 'Passed', JAN_11)

        counter = await recompute_run_counter(1, ALICE, 'alice', JAN_10)

        assert (counter.passed_count, counter.failed_count) == (1, 1)
        assert fake_store.run_counter(1, ALICE, JAN_10) == (1, 1)
        assert fake_store.run_counter(1, ALICE, JAN_11) is None

    async def test_zero_counts_write_nothing(self, fake_store) -> None:
        await fake_store.upsert_point(1, PLAN_A, uid(501), ALICE, 'alice', 'Blocked', JAN_10)

        counter = await recompute_run_counter(1, ALICE, 'alice', JAN_10)

        assert counter is None
        assert fake_store.run_counters == {}


# ============================================================
# PER-PLAN PROCESSING
# ============================================================

@pytest.mark.asyncio
class TestProcessPlan:

    async def test_modifier_preferred_over_creator(self, mock_settings, fake_store, fake_client) -> None:
        # Arrange
        project = make_project(1)
        plan = make_plan(PLAN_A, completed=JAN_10)
        fake_client.points[PLAN_A] = [_point(1, modified_by=BOB, created_by=ALICE)]

        # Act
        outcome = await process_plan(project, plan, 'token', fake_client, TODAY)

        # Assert
        assert outcome.points_recorded == 1
        assert fake_store.points[uid(501)]['testit_user_id'] == BOB
        assert fake_store.run_counter(1, BOB, JAN_10) == (1, 0)
        assert fake_store.run_counter(1, ALICE, JAN_10) is None

    async def test_creator_used_when_no_modifier(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.points[PLAN_A] = [_point(1, created_by=ALICE)]

        await process_plan(project, make_plan(PLAN_A, completed=JAN_10), 'token', fake_client, TODAY)

        assert fake_store.points[uid(501)]['testit_user_id'] == ALICE

    async def test_unattributed_points_skipped(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.points[PLAN_A] = [_point(1), _point(2, modified_by=ALICE)]

        outcome = await process_plan(project, make_plan(PLAN_A, completed=JAN_10), 'token', fake_client, TODAY)

        assert outcome.points_skipped == 1
        assert outcome.points_recorded == 1
        assert uid(501) not in fake_store.points

    async def test_status_falls_back_to_status_model_code(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.points[PLAN_A] = [
            _point(1, status=None, status_code='Failed', modified_by=ALICE),
            _point(2, status=None, status_code=None, modified_by=ALICE),
        ]

        await process_plan(project, make_plan(PLAN_A, completed=JAN_10), 'token', fake_client, TODAY)

        assert fake_store.points[uid(501)]['status'] == 'Failed'
        assert fake_store.points[uid(502)]['status'] == 'Unknown'
        assert fake_store.run_counter(1, ALICE, JAN_10) == (0, 1)

    async def test_points_take_plan_creation_date_when_not_completed(
        self, mock_settings, fake_store, fake_client
    ) -> None:
        project = make_project(1)
        fake_client.points[PLAN_A] = [_point(1, modified_by=ALICE)]

        await process_plan(project, make_plan(PLAN_A, created=JAN_10), 'token', fake_client, TODAY)

        assert fake_store.points[uid(501)]['date'] == JAN_10
        assert fake_store.run_counter(1, ALICE, JAN_10) == (1, 0)

    async def test_only_blocked_points_write_no_counter(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.points[PLAN_A] = [_point(1, status='Blocked', modified_by=ALICE)]

        outcome = await process_plan(project, make_plan(PLAN_A, completed=JAN_10), 'token', fake_client, TODAY)

        assert outcome.points_recorded == 1
        assert outcome.counters_written == 0
        assert fake_store.run_counters == {}

    async def test_failed_point_write_is_skipped(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_store.failing_point_ids.add(uid(501))
        fake_client.points[PLAN_A] = [_point(1, modified_by=ALICE), _point(2, modified_by=ALICE)]

        outcome = await process_plan(project, make_plan(PLAN_A, completed=JAN_10), 'token', fake_client, TODAY)

        assert outcome.success is True
        assert outcome.points_skipped == 1
        assert fake_store.run_counter(1, ALICE, JAN_10) == (1, 0)

    async def test_point_fetch_failure(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.failing_point_plans.add(PLAN_A)

        outcome = await process_plan(project, make_plan(PLAN_A, completed=JAN_10), 'token', fake_client, TODAY)

        assert outcome.success is False
        assert fake_store.points == {}


# ============================================================
# REPEATED RUNS
# ============================================================

@pytest.mark.asyncio
class TestGroundTruthAcrossRuns:
    """Re-observing points updates them in place and counters follow."""

    async def test_status_change_corrects_counter(self, mock_settings, fake_store, fake_client) -> None:
        """
        Blocked -> Passed raises the passed count by one; counters on other
        dates are left alone.
        """
        # Arrange
        project = make_project(1)
        key = str(project.testit_id)
        fake_client.plans[key] = [
            make_plan(PLAN_A, completed=JAN_10),
            make_plan(PLAN_B, completed=JAN_11),
        ]
        fake_client.points[PLAN_A] = [
            _point(1, status='Blocked', modified_by=ALICE),
            _point(2, status='Passed', modified_by=ALICE),
        ]
        fake_client.points[PLAN_B] = [_point(3, status='Failed', modified_by=ALICE)]

        await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)
        assert fake_store.run_counter(1, ALICE, JAN_10) == (1, 0)
        assert fake_store.run_counter(1, ALICE, JAN_11) == (0, 1)

        # Act
        fake_client.points[PLAN_A] = [
            _point(1, status='Passed', modified_by=ALICE),
            _point(2, status='Passed', modified_by=ALICE),
        ]
        await aggregate_test_runs(
            project, 'token', DateRange.single_day(JAN_10), fake_client, today=TODAY
        )

        # Assert
        assert fake_store.run_counter(1, ALICE, JAN_10) == (2, 0)
        assert fake_store.run_counter(1, ALICE, JAN_11) == (0, 1)

    async def test_one_row_per_point_across_runs(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.plans[str(project.testit_id)] = [make_plan(PLAN_A, completed=JAN_10)]
        fake_client.points[PLAN_A] = [_point(1, modified_by=ALICE), _point(2, modified_by=BOB)]

        for _ in range(3):
            await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        assert len(fake_store.points) == 2
        assert fake_store.point_writes == 6
        assert fake_store.run_counter(1, ALICE, JAN_10) == (1, 0)
        assert fake_store.run_counter(1, BOB, JAN_10) == (1, 0)

    async def test_attribution_kept_when_another_user_touches_point(
        self, mock_settings, fake_store, fake_client
    ) -> None:
        project = make_project(1)
        fake_client.plans[str(project.testit_id)] = [make_plan(PLAN_A, completed=JAN_10)]
        fake_client.points[PLAN_A] = [_point(1, status='Passed', modified_by=ALICE)]
        await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        fake_client.points[PLAN_A] = [_point(1, status='Failed', modified_by=BOB)]
        await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        row = fake_store.points[uid(501)]
        assert row['testit_user_id'] == ALICE
        assert row['status'] == 'Failed'
        assert fake_store.run_counter(1, ALICE, JAN_10) == (0, 1)
        assert fake_store.run_counter(1, BOB, JAN_10) is None


# ============================================================
# ENTRY POINT
# ============================================================

@pytest.mark.asyncio
class TestAggregateTestRuns:

    async def test_plan_list_failure_aborts(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.failing_plan_projects.add(str(project.testit_id))

        result = await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        assert result.success is False
        assert 'test plan fetch failed' in result.error
        assert fake_client.count_calls('search_all_test_points') == 0

    async def test_plans_outside_range_not_fetched(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.plans[str(project.testit_id)] = [
            make_plan(PLAN_A, completed=JAN_10),
            make_plan(PLAN_B, created=date(2023, 11, 1), completed=FEB_1),
        ]

        result = await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        assert result.plans_processed == 1
        fetched = [args for name, args in fake_client.calls if name == 'search_all_test_points']
        assert fetched == [PLAN_A]

    async def test_include_all_plans_flag(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.plans[str(project.testit_id)] = [
            make_plan(PLAN_A, completed=JAN_10),
            make_plan(PLAN_B, created=date(2023, 11, 1), completed=FEB_1),
        ]

        result = await aggregate_test_runs(
            project, 'token', JANUARY, fake_client, include_all_plans=True, today=TODAY
        )

        assert result.plans_processed == 2

    async def test_plan_failure_does_not_stop_other_plans(self, mock_settings, fake_store, fake_client) -> None:
        project = make_project(1)
        fake_client.plans[str(project.testit_id)] = [
            make_plan(PLAN_A, completed=JAN_10),
            make_plan(PLAN_B, completed=JAN_10),
            make_plan(PLAN_C, completed=JAN_11),
        ]
        fake_client.points[PLAN_A] = [_point(1, modified_by=ALICE)]
        fake_client.points[PLAN_C] = [_point(3, modified_by=ALICE)]
        fake_client.failing_point_plans.add(PLAN_B)

        result = await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        assert result.success is False
        assert result.plans_processed == 2
        assert result.plans_failed == 1
        assert fake_store.run_counter(1, ALICE, JAN_10) == (1, 0)
        assert fake_store.run_counter(1, ALICE, JAN_11) == (1, 0)

    @pytest.mark.concurrency
    async def test_concurrent_plans_share_user_day(self, mock_settings, fake_store, fake_client) -> None:
        """Three plans for the same user and day processed in parallel add up."""
        mock_settings.plan_concurrency = 3
        project = make_project(1)
        plan_ids = [PLAN_A, PLAN_B, PLAN_C]
        fake_client.plans[str(project.testit_id)] = [make_plan(p, completed=JAN_10) for p in plan_ids]
        for i, plan_id in enumerate(plan_ids):
            fake_client.points[plan_id] = [
                _point(10 * i + 1, status='Passed', modified_by=ALICE),
                _point(10 * i + 2, status='Failed', modified_by=ALICE),
            ]

        result = await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        assert result.success is True
        assert result.points_recorded == 6
        assert fake_store.run_counter(1, ALICE, JAN_10) == (3, 3)

    @pytest.mark.concurrency
    async def test_plan_concurrency_is_bounded(self, mock_settings, fake_store, fake_client) -> None:
        mock_settings.plan_concurrency = 2
        project = make_project(1)
        plan_ids = [uid(200 + i) for i in range(6)]
        fake_client.plans[str(project.testit_id)] = [make_plan(p, completed=JAN_10) for p in plan_ids]

        in_flight = 0
        peak = 0
        original = fake_client.search_all_test_points

        async def slow_search(token, test_plan_ids, page_size=1000):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await original(token, test_plan_ids, page_size=page_size)

        fake_client.search_all_test_points = slow_search

        result = await aggregate_test_runs(project, 'token', JANUARY, fake_client, today=TODAY)

        assert result.plans_processed == 6
        assert peak == 2
