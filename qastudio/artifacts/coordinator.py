"""Tracks "generate more cases" requests that are in flight for the suites of one plan."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Sequence, Union

from qastudio.errors import AlreadyInFlight
from qastudio.models.session import TestCase, TestPlan

from .mutator import append_cases

logger = logging.getLogger(__name__)

GenerationResult = Union[Sequence[TestCase], BaseException]


class SuiteState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class GenerationCoordinator:
    """Allows one in-flight generation per suite index; different suites run independently.

    A second request for a suite that is already generating is rejected with
    AlreadyInFlight, never queued. Results are merged into the plan snapshot
    supplied at completion time, so edits made to the plan while the request
    was running are kept.
    """

    def __init__(self):
        self._in_flight: set[int] = set()

    @property
    def in_flight(self) -> frozenset[int]:
        return frozenset(self._in_flight)

    def state(self, suite_index: int) -> SuiteState:
        if suite_index in self._in_flight:
            return SuiteState.IN_FLIGHT
        return SuiteState.IDLE

    def begin(self, suite_index: int) -> None:
        if suite_index in self._in_flight:
            raise AlreadyInFlight(suite_index)
        self._in_flight.add(suite_index)
        logger.debug("Suite %d: generation started (in flight: %s)",
                     suite_index, sorted(self._in_flight))

    def complete(
        self,
        suite_index: int,
        result: GenerationResult,
        current_plan: TestPlan | None = None,
    ) -> TestPlan | None:
        """Mark the suite idle and merge successful results into current_plan.

        Returns the merged plan, or None when result is an error.
        """
        if suite_index not in self._in_flight:
            raise ValueError(f"Suite {suite_index} has no generation in flight")
        self._in_flight.discard(suite_index)

        if isinstance(result, BaseException):
            logger.warning("Suite %d: generation failed: %s", suite_index, result)
            return None

        if current_plan is None:
            raise ValueError("current_plan is required to merge generated cases")
        merged = append_cases(current_plan, suite_index, result)
        logger.info("Suite %d: merged %d generated cases", suite_index, len(result))
        return merged

    async def run(
        self,
        suite_index: int,
        produce: Callable[[], Awaitable[Sequence[TestCase]]],
        read_plan: Callable[[], TestPlan],
        commit: Callable[[TestPlan], None],
    ) -> TestPlan:
        """Bracket one generation with begin/complete and commit the merged plan.

        ``read_plan`` is called only after ``produce`` finishes. Failures,
        cancellation included, return the suite to idle and are re-raised.
        """
        self.begin(suite_index)
        try:
            cases = await produce()
            current = read_plan()
        except BaseException as e:
            self.complete(suite_index, e)
            raise
        merged = self.complete(suite_index, cases, current)
        commit(merged)
        return merged
