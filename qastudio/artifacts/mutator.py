"""Localized, copy-on-write edits to a test plan.

Every function returns a new TestPlan and leaves its input untouched. Suites
and cases off the edited path are carried over by reference so consumers can
compare identities to skip re-rendering. Suites are addressed by their
position in ``plan.suites``; an index is only meaningful for the plan it was
read from.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence, Union

from qastudio.errors import IndexOutOfRange
from qastudio.models.session import TestCase, TestPlan, TestSuite

logger = logging.getLogger(__name__)

FieldPath = Union[str, tuple[int, str]]

GENERIC_ID_PREFIX = "TC-"
GENERIC_ID_WIDTH = 3

# Accepts the wire names used by generated plans as well as attribute names
PLAN_FIELDS = {
    "summary": "summary",
    "strategy": "strategy",
    "testStrategy": "strategy",
    "test_strategy": "strategy",
    "scope": "scope",
    "risks": "risks",
    "tools": "tools",
}
SUITE_FIELDS = {
    "name": "name",
    "suiteName": "name",
    "suite_name": "name",
    "description": "description",
    "data_notes": "data_notes",
    "testDataObservations": "data_notes",
}
CASE_FIELDS = {
    "title", "description", "preconditions", "type", "scenario_type", "priority",
}

_ID_PATTERN = re.compile(r"^(.*\D)(\d+)$")


def _check_index(kind: str, index: int, size: int) -> None:
    if not 0 <= index < size:
        raise IndexOutOfRange(kind, index, size)


def _with_suite(plan: TestPlan, suite_index: int, suite: TestSuite) -> TestPlan:
    suites = list(plan.suites)
    suites[suite_index] = suite
    return plan.model_copy(update={"suites": suites})


def get_case(plan: TestPlan, suite_index: int, case_index: int) -> TestCase:
    _check_index("suite", suite_index, len(plan.suites))
    suite = plan.suites[suite_index]
    _check_index("case", case_index, len(suite.cases))
    return suite.cases[case_index]


def replace_case(
    plan: TestPlan, suite_index: int, case_index: int, new_case: TestCase,
) -> TestPlan:
    """Return a plan where only suites[suite_index].cases[case_index] differs."""
    _check_index("suite", suite_index, len(plan.suites))
    suite = plan.suites[suite_index]
    _check_index("case", case_index, len(suite.cases))

    cases = list(suite.cases)
    cases[case_index] = new_case
    return _with_suite(plan, suite_index, suite.model_copy(update={"cases": cases}))


def append_cases(
    plan: TestPlan,
    suite_index: int,
    new_cases: Sequence[TestCase],
    renumber: bool = True,
) -> TestPlan:
    """Append cases to the end of a suite, continuing the suite's id pattern."""
    _check_index("suite", suite_index, len(plan.suites))
    suite = plan.suites[suite_index]
    new_cases = list(new_cases)

    if renumber and new_cases:
        ids = next_case_ids(suite, len(new_cases), plan=plan)
        new_cases = [c.model_copy(update={"id": i}) for c, i in zip(new_cases, ids)]
        logger.debug("Assigned ids %s to cases appended to suite %d", ids, suite_index)

    cases = list(suite.cases) + new_cases
    return _with_suite(plan, suite_index, suite.model_copy(update={"cases": cases}))


def remove_case(plan: TestPlan, suite_index: int, case_index: int) -> TestPlan:
    _check_index("suite", suite_index, len(plan.suites))
    suite = plan.suites[suite_index]
    _check_index("case", case_index, len(suite.cases))

    cases = list(suite.cases)
    del cases[case_index]
    return _with_suite(plan, suite_index, suite.model_copy(update={"cases": cases}))


def update_field(plan: TestPlan, path: FieldPath, value: Any) -> TestPlan:
    """Set a plan-level text field (``"summary"``) or a suite field (``(0, "description")``)."""
    if isinstance(path, str):
        attr = PLAN_FIELDS.get(path)
        if attr is None:
            raise ValueError(f"Unknown plan field: {path!r}")
        return plan.model_copy(update={attr: value})

    suite_index, key = path
    attr = SUITE_FIELDS.get(key)
    if attr is None:
        raise ValueError(f"Unknown suite field: {key!r}")
    _check_index("suite", suite_index, len(plan.suites))
    suite = plan.suites[suite_index]
    return _with_suite(plan, suite_index, suite.model_copy(update={attr: value}))


def update_case_field(
    plan: TestPlan, suite_index: int, case_index: int, key: str, value: Any,
) -> TestPlan:
    """Edit one free-text or enum field of a case, validating the new value."""
    if key not in CASE_FIELDS:
        raise ValueError(f"Unknown case field: {key!r}")
    _check_index("suite", suite_index, len(plan.suites))
    suite = plan.suites[suite_index]
    _check_index("case", case_index, len(suite.cases))

    data = suite.cases[case_index].model_dump()
    data[key] = value
    return replace_case(plan, suite_index, case_index, TestCase.model_validate(data))


def _shared_pattern(ids: Sequence[str]) -> tuple[str, int, int] | None:
    """(prefix, width, next number) when every id is one prefix plus digits."""
    if not ids:
        return None
    prefix = None
    width = 0
    highest = 0
    for case_id in ids:
        m = _ID_PATTERN.match(case_id)
        if not m:
            return None
        if prefix is None:
            prefix = m.group(1)
        elif m.group(1) != prefix:
            return None
        width = max(width, len(m.group(2)))
        highest = max(highest, int(m.group(2)))
    return prefix, width, highest + 1


def next_case_ids(
    suite: TestSuite, count: int, plan: TestPlan | None = None,
) -> list[str]:
    """Ids for ``count`` new cases in ``suite``.

    ``AUTH-001, AUTH-002`` continues as ``AUTH-003, AUTH-004``. Suites
    without a consistent pattern get ``TC-001`` style ids that skip anything
    already used in the suite or, when given, anywhere in the plan.
    """
    existing = [c.id for c in suite.cases]
    pattern = _shared_pattern(existing)
    if pattern:
        prefix, width, start = pattern
        return [f"{prefix}{n:0{width}d}" for n in range(start, start + count)]

    taken = set(existing)
    if plan is not None:
        taken.update(c.id for s in plan.suites for c in s.cases)

    ids: list[str] = []
    n = 1
    while len(ids) < count:
        candidate = f"{GENERIC_ID_PREFIX}{n:0{GENERIC_ID_WIDTH}d}"
        if candidate not in taken:
            ids.append(candidate)
        n += 1
    return ids
