"""Masking of sensitive test data on every rendered or exported surface."""

from __future__ import annotations

from typing import Iterable, Optional

from qastudio.models.session import TestCase, TestDataItem, TestPlan, TestStep

MASK = "•"  # bullet
STRICT_MASK = MASK * 8
DEFAULT_MASK = MASK * 6

_STRICT_KEYS = ("password", "secret", "token")
_CARD_KEYS = ("card", "cc")

# Shorter values are not masked inside free text
MIN_TEXT_MASK_LENGTH = 3


def mask_value(key: str, value: str) -> str:
    """Masked display form of a sensitive value.

    Passwords, secrets and tokens are fully masked, card numbers keep their
    last four digits, and anything else longer than five characters keeps its
    first and last two characters.
    """
    if not value:
        return ""
    lower_key = key.lower()
    if any(k in lower_key for k in _STRICT_KEYS):
        return STRICT_MASK
    if any(k in lower_key for k in _CARD_KEYS):
        return f"{MASK * 4} {value[-4:]}"
    if len(value) > 5:
        return f"{value[0]}{MASK * 4}{value[-2:]}"
    return DEFAULT_MASK


def mask_text(text: Optional[str], items: Iterable[TestDataItem]) -> Optional[str]:
    """Replace occurrences of sensitive values inside free text."""
    if not text:
        return text
    masked = text
    for item in items:
        if item.is_sensitive and item.value and len(item.value) >= MIN_TEXT_MASK_LENGTH:
            masked = masked.replace(item.value, mask_value(item.key, item.value))
    return masked


class DataItemView:
    """Display state for one test data item.

    Sensitive items start masked. ``toggle`` flips between masked and
    revealed without touching the stored item.
    """

    def __init__(self, item: TestDataItem):
        self.item = item
        self.revealed = not item.is_sensitive

    def toggle(self) -> None:
        if self.item.is_sensitive:
            self.revealed = not self.revealed

    @property
    def display(self) -> str:
        if self.revealed:
            return self.item.value
        return mask_value(self.item.key, self.item.value)


def _matches_sensitive(item: TestDataItem, known: Iterable[TestDataItem]) -> bool:
    key = item.key.strip().lower()
    for other in known:
        if not other.is_sensitive:
            continue
        if other.key.strip().lower() == key or (item.value and other.value == item.value):
            return True
    return False


def masked_item(item: TestDataItem, known: Iterable[TestDataItem] = ()) -> TestDataItem:
    """Masked copy of item when it is sensitive or echoes a sensitive item in known."""
    if not item.is_sensitive and not _matches_sensitive(item, known):
        return item
    return item.model_copy(update={"value": mask_value(item.key, item.value)})


def masked_case(case: TestCase, extra_items: Iterable[TestDataItem] = ()) -> TestCase:
    """Copy of case with sensitive values masked in its data and free text.

    ``extra_items`` (usually the session's test data) are masked too, since
    generated text often embeds session values the case does not list. A
    case item that repeats the key or value of a sensitive extra item is
    masked even when its own flag says otherwise.
    """
    extra_items = list(extra_items)
    items = list(case.test_data or []) + extra_items
    steps = [
        TestStep(
            step_number=s.step_number,
            action=mask_text(s.action, items),
            expected=mask_text(s.expected, items),
        )
        for s in case.steps
    ]
    return case.model_copy(update={
        "title": mask_text(case.title, items),
        "description": mask_text(case.description, items),
        "preconditions": mask_text(case.preconditions, items),
        "test_data": [masked_item(i, extra_items) for i in case.test_data] if case.test_data is not None else None,
        "steps": steps,
    })


def masked_plan(plan: TestPlan, session_items: Iterable[TestDataItem] = ()) -> TestPlan:
    """Read-only copy of plan safe to render or export."""
    items = list(session_items)
    suites = [
        suite.model_copy(update={
            "description": mask_text(suite.description, items),
            "data_notes": mask_text(suite.data_notes, items),
            "cases": [masked_case(c, items) for c in suite.cases],
        })
        for suite in plan.suites
    ]
    update = {field: mask_text(getattr(plan, field), items)
              for field in ("summary", "strategy", "scope", "risks", "tools")}
    update["suites"] = suites
    return plan.model_copy(update=update)


def sensitive_values(items: Iterable[TestDataItem]) -> list[str]:
    """Plaintext sensitive values, for redacting logs."""
    return [i.value for i in items if i.is_sensitive and i.value]
