"""Tests for per-suite generation tracking."""

import asyncio

import pytest

from qastudio.artifacts.coordinator import GenerationCoordinator, SuiteState
from qastudio.artifacts.mutator import update_field
from qastudio.errors import AlreadyInFlight, IndexOutOfRange
from qastudio.models.session import (
    TestCase as TestCaseModel,
    TestPlan as TestPlanModel,
)


def _cases(*titles: str) -> list[TestCaseModel]:
    return [TestCaseModel(id="tmp", title=t) for t in titles]


class TestCoordinatorStates:
    def test_starts_idle(self):
        coord = GenerationCoordinator()
        assert coord.state(0) == SuiteState.IDLE
        assert coord.in_flight == frozenset()

    def test_second_request_for_same_suite_rejected(self):
        coord = GenerationCoordinator()
        coord.begin(0)
        with pytest.raises(AlreadyInFlight) as exc:
            coord.begin(0)
        assert exc.value.suite_index == 0
        assert coord.in_flight == {0}

    def test_different_suites_independent(self):
        coord = GenerationCoordinator()
        coord.begin(0)
        coord.begin(1)
        assert coord.in_flight == {0, 1}

    def test_failure_returns_to_idle_without_merge(self, test_plan: TestPlanModel):
        coord = GenerationCoordinator()
        coord.begin(0)
        assert coord.complete(0, RuntimeError("backend down"), test_plan) is None
        assert coord.state(0) == SuiteState.IDLE

    def test_complete_without_begin(self, test_plan: TestPlanModel):
        with pytest.raises(ValueError):
            GenerationCoordinator().complete(0, [], test_plan)

    def test_success_requires_plan(self):
        coord = GenerationCoordinator()
        coord.begin(0)
        with pytest.raises(ValueError):
            coord.complete(0, _cases("a"))
        assert coord.state(0) == SuiteState.IDLE


class TestMergeAtCompletion:
    def test_merges_into_plan_supplied_at_completion(self, test_plan: TestPlanModel):
        """Edits made while a request is running survive the merge."""
        coord = GenerationCoordinator()
        coord.begin(0)
        edited = update_field(test_plan, "summary", "Edited while generating")

        merged = coord.complete(0, _cases("new"), edited)

        assert merged.summary == "Edited while generating"
        assert merged.suites[0].cases[-1].title == "new"
        assert merged.suites[0].cases[-1].id == "AUTH-003"

    def test_suite_removed_while_in_flight(self, test_plan: TestPlanModel):
        coord = GenerationCoordinator()
        coord.begin(1)
        shrunk = test_plan.model_copy(update={"suites": test_plan.suites[:1]})
        with pytest.raises(IndexOutOfRange):
            coord.complete(1, _cases("late"), shrunk)
        assert coord.state(1) == SuiteState.IDLE


class TestConcurrentRuns:
    @pytest.mark.asyncio
    async def test_out_of_order_completion(self, test_plan: TestPlanModel):
        """Suite 1 finishes first; suite 0 stays in flight and the case lists do not mix."""
        coord = GenerationCoordinator()
        state = {"plan": test_plan}
        release_0 = asyncio.Event()
        release_1 = asyncio.Event()

        def commit(plan):
            state["plan"] = plan

        async def produce_0():
            await release_0.wait()
            return _cases("zero-a", "zero-b")

        async def produce_1():
            await release_1.wait()
            return _cases("one-a")

        task_0 = asyncio.create_task(coord.run(0, produce_0, lambda: state["plan"], commit))
        task_1 = asyncio.create_task(coord.run(1, produce_1, lambda: state["plan"], commit))
        await asyncio.sleep(0)
        assert coord.in_flight == {0, 1}

        release_1.set()
        await task_1
        assert coord.state(0) == SuiteState.IN_FLIGHT
        assert coord.state(1) == SuiteState.IDLE
        assert [c.title for c in state["plan"].suites[1].cases][-1] == "one-a"
        assert state["plan"].suites[0].cases == test_plan.suites[0].cases

        release_0.set()
        await task_0
        final = state["plan"]
        assert coord.in_flight == frozenset()
        assert [c.title for c in final.suites[0].cases[-2:]] == ["zero-a", "zero-b"]
        assert [c.title for c in final.suites[1].cases[-1:]] == ["one-a"]
        assert len(final.suites[0].cases) == 4
        assert len(final.suites[1].cases) == 3

    @pytest.mark.asyncio
    async def test_duplicate_run_rejected_while_first_pending(self, test_plan: TestPlanModel):
        coord = GenerationCoordinator()
        gate = asyncio.Event()

        async def produce():
            await gate.wait()
            return _cases("a")

        first = asyncio.create_task(coord.run(0, produce, lambda: test_plan, lambda p: None))
        await asyncio.sleep(0)
        with pytest.raises(AlreadyInFlight):
            await coord.run(0, produce, lambda: test_plan, lambda p: None)
        gate.set()
        merged = await first
        assert len(merged.suites[0].cases) == 3

    @pytest.mark.asyncio
    async def test_failed_run_reraises_and_goes_idle(self, test_plan: TestPlanModel):
        coord = GenerationCoordinator()
        committed = []

        async def produce():
            raise RuntimeError("timeout")

        with pytest.raises(RuntimeError, match="timeout"):
            await coord.run(0, produce, lambda: test_plan, committed.append)
        assert coord.state(0) == SuiteState.IDLE
        assert committed == []

    @pytest.mark.asyncio
    async def test_read_plan_failure_goes_idle(self):
        coord = GenerationCoordinator()

        async def produce():
            return _cases("a")

        def read_plan():
            raise KeyError("session deleted")

        with pytest.raises(KeyError):
            await coord.run(2, produce, read_plan, lambda p: None)
        assert coord.state(2) == SuiteState.IDLE

    @pytest.mark.asyncio
    async def test_cancelled_run_goes_idle(self, test_plan: TestPlanModel):
        coord = GenerationCoordinator()
        started = asyncio.Event()
        committed = []

        async def produce():
            started.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(coord.run(0, produce, lambda: test_plan, committed.append))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert coord.state(0) == SuiteState.IDLE
        assert committed == []
        # The suite accepts a new request afterwards
        coord.begin(0)
