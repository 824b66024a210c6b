"""Plan export to CSV, JSON and Markdown.

Sensitive values are masked unless ``reveal=True`` is passed. The plan passed
in is never modified.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from qastudio.models.session import TestDataItem, TestPlan

from .masking import masked_plan

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json", "md")

CSV_HEADER = [
    "Suite Name", "Case ID", "Priority", "Type", "Scenario", "Title", "Description",
    "Preconditions", "Test Data", "Step Number", "Action", "Expected Result",
]


def _prepare(plan: TestPlan, session_items: Iterable[TestDataItem], reveal: bool) -> TestPlan:
    if reveal:
        logger.warning("Exporting plan for %s with sensitive values revealed", plan.website_url)
        return plan
    return masked_plan(plan, session_items)


def export_csv(
    plan: TestPlan,
    session_items: Iterable[TestDataItem] = (),
    reveal: bool = False,
    generated_on: Optional[date] = None,
) -> str:
    """One row per step, or one row per case without steps, after a metadata block."""
    plan = _prepare(plan, session_items, reveal)
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow(["Report Generated", (generated_on or date.today()).isoformat()])
    writer.writerow(["Target URL", plan.website_url])
    writer.writerow(["Test Strategy", plan.strategy])
    writer.writerow(["Scope", plan.scope])
    writer.writerow(["Risks", plan.risks])
    writer.writerow(["Tools", plan.tools])
    writer.writerow([])
    writer.writerow(CSV_HEADER)

    for suite in plan.suites:
        for tc in suite.cases:
            data_str = " | ".join(f"{d.key}={d.value}" for d in tc.test_data or [])
            row = [
                suite.name, tc.id, tc.priority.value, tc.type.value, tc.scenario_type or "",
                tc.title, tc.description, tc.preconditions or "", data_str,
            ]
            if not tc.steps:
                writer.writerow(row + ["", "", ""])
            for step in tc.steps:
                writer.writerow(row + [step.step_number, step.action, step.expected])

    return buf.getvalue()


def export_json(
    plan: TestPlan,
    session_items: Iterable[TestDataItem] = (),
    reveal: bool = False,
) -> str:
    plan = _prepare(plan, session_items, reveal)
    return json.dumps(plan.model_dump(mode="json"), indent=2)


def _md_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def export_markdown(
    plan: TestPlan,
    session_items: Iterable[TestDataItem] = (),
    reveal: bool = False,
) -> str:
    """Human-readable plan document."""
    plan = _prepare(plan, session_items, reveal)
    lines = [f"# Test Plan: {plan.website_url}", ""]

    for heading, body in (
        ("Summary", plan.summary),
        ("Test Strategy", plan.strategy),
        ("Scope", plan.scope),
        ("Risks", plan.risks),
        ("Tools", plan.tools),
    ):
        if body:
            lines += [f"## {heading}", "", body, ""]

    for suite in plan.suites:
        lines += [f"## {suite.name}", ""]
        if suite.description:
            lines += [suite.description, ""]
        if suite.data_notes:
            lines += [f"> Test data: {suite.data_notes}", ""]

        for tc in suite.cases:
            meta = f"{tc.priority.value} · {tc.type.value}"
            if tc.scenario_type:
                meta += f" · {tc.scenario_type}"
            lines += [f"### {tc.id}: {tc.title}", "", f"*{meta}*", ""]
            if tc.description:
                lines += [tc.description, ""]
            if tc.preconditions:
                lines += [f"**Preconditions:** {tc.preconditions}", ""]
            if tc.test_data:
                lines.append("**Test data:**")
                lines += [f"- `{d.key}`: {d.value}" for d in tc.test_data]
                lines.append("")
            if tc.steps:
                lines += ["| # | Action | Expected |", "|---|--------|----------|"]
                lines += [
                    f"| {s.step_number} | {_md_cell(s.action)} | {_md_cell(s.expected)} |"
                    for s in tc.steps
                ]
                lines.append("")

    if plan.grounding_sources:
        lines += ["## Sources", ""]
        lines += [f"- [{g.title or g.uri}]({g.uri})" for g in plan.grounding_sources]
        lines.append("")

    return "\n".join(lines)


_EXPORTERS = {
    "csv": export_csv,
    "json": export_json,
    "md": export_markdown,
}


def write_export(
    plan: TestPlan,
    fmt: str,
    output_path: Path,
    session_items: Iterable[TestDataItem] = (),
    reveal: bool = False,
) -> Path:
    """Render plan in fmt and write it to output_path."""
    if fmt not in _EXPORTERS:
        raise ValueError(f"Unknown export format '{fmt}', expected one of {EXPORT_FORMATS}")
    content = _EXPORTERS[fmt](plan, session_items, reveal=reveal)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info("Exported %s plan to %s", fmt.upper(), output_path)
    return output_path
