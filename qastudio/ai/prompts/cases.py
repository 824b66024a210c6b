"""System prompts for extending a suite and rewriting a single case."""

from __future__ import annotations

CASE_SCHEMA = """{
  "id": "string",
  "title": "string",
  "description": "string",
  "preconditions": "string",
  "type": "Functional | UI/UX | Security | Performance | Accessibility | Edge Case",
  "scenario_type": "Positive | Negative | Boundary",
  "priority": "Critical | High | Medium | Low",
  "test_data": [{"key": "string", "value": "string", "is_sensitive": true | false}],
  "steps": [{"step_number": 1, "action": "string", "expected": "string"}]
}"""

MORE_CASES_SYSTEM_PROMPT = f"""You are an expert QA Engineer extending an existing test suite with new, non-duplicate test cases.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON.

Return a JSON array of test case objects, each with this structure:

{CASE_SCHEMA}

Rules:
- Do NOT duplicate scenarios already covered by the suite.
- Classify each case with "scenario_type".
- Follow the id pattern of the existing cases (AUTH-001, AUTH-002 continue as AUTH-003)."""

REGENERATE_SYSTEM_PROMPT = f"""You are an expert QA Engineer. You rewrite an existing test case so it explicitly uses new test data supplied by the user.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON.

Return exactly one test case object with this structure:

{CASE_SCHEMA}

Rules:
- Keep the original "id".
- Update steps and expected results to reflect the new data (a valid login should now expect success).
- The "test_data" field must contain the new data, with "is_sensitive" kept as provided."""


def build_more_cases_prompt(
    url: str,
    suite_name: str,
    suite_description: str,
    existing_ids: list[str],
    test_data_json: str,
    focus_type: str | None,
    count: int,
) -> str:
    """Build the user message for the generate-more-cases AI call."""
    if focus_type:
        task = (
            f'The user requested ONLY "{focus_type}" test cases. Generate {count} cases '
            f"that strictly fall under {focus_type}."
        )
    else:
        task = (
            f"Generate {count} new, unique cases not already covered. Look for negative, "
            "boundary or accessibility scenarios."
        )

    return (
        f"## Suite\n\nName: {suite_name}\nWebsite: {url}\nDescription: {suite_description}\n\n"
        f"Existing case ids: {', '.join(existing_ids) or '(none)'}\n\n"
        f"## User Test Data\n\n```json\n{test_data_json}\n```\n\n"
        f"## Task\n\n{task}\n"
        f'Every "preconditions" must include "Navigate to {url}" (or the relevant page).\n\n'
        "Return ONLY the JSON array."
    )


def build_regenerate_prompt(url: str, case_json: str, test_data_json: str) -> str:
    """Build the user message for the regenerate-case AI call."""
    return (
        f"## Target Website\n\n{url}\n\n"
        f"## Original Test Case\n\n```json\n{case_json}\n```\n\n"
        f"## New Test Data\n\n```json\n{test_data_json}\n```\n\n"
        f'"preconditions" must start with "Navigate to {url}".\n\n'
        "Return ONLY the rewritten test case as a JSON object."
    )
