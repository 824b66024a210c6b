"""Consistency checks for generated test plans."""

from __future__ import annotations

import logging

from qastudio.models.session import ArtifactScope, TestPlan

logger = logging.getLogger(__name__)


def validate_plan(plan: TestPlan, scope: ArtifactScope = ArtifactScope.ALL) -> list[str]:
    """Validate a test plan and return a list of warning messages."""
    errors = []

    if not plan.suites:
        errors.append("Test plan has no suites")
        return errors

    for si, suite in enumerate(plan.suites):
        label = suite.name or f"suite {si}"

        seen_ids = set()
        for tc in suite.cases:
            # Unique IDs within a suite
            if tc.id in seen_ids:
                errors.append(f"{label}: duplicate case id {tc.id}")
            seen_ids.add(tc.id)

            # Plan-only requests ask for one-line scenarios without steps
            if not tc.steps:
                if scope != ArtifactScope.PLAN_ONLY:
                    errors.append(f"{label} {tc.id}: no steps defined")
                continue

            numbers = [s.step_number for s in tc.steps]
            if numbers != list(range(1, len(numbers) + 1)):
                errors.append(f"{label} {tc.id}: step numbers are not sequential {numbers}")

    return errors
