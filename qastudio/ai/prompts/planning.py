"""System prompts for test plan generation."""

from __future__ import annotations

from qastudio.models.session import ArtifactScope

PLANNING_SYSTEM_PROMPT = """You are an expert QA Automation Engineer. Your job is to research a website and produce a structured test plan with test suites and test cases.

CRITICAL RULES FOR YOUR RESPONSE:
- Return ONLY valid, parseable JSON. No markdown, no code fences, no comments, no explanatory text.
- Do NOT use trailing commas in arrays or objects.
- All string values must have control characters properly escaped (use \\n for newlines).
- Do NOT include any text before the opening { or after the closing }.

## Test Plan JSON Schema

{
  "website_url": "string",
  "summary": "string (executive summary of coverage and strategy)",
  "strategy": "string (manual / automated / exploratory approach)",
  "scope": "string (what is in and out of scope)",
  "risks": "string (project and product risks)",
  "tools": "string (suggested tools)",
  "suites": [
    {
      "name": "string",
      "description": "string (what this suite covers)",
      "data_notes": "string (which test data keys were used and which were not applicable)",
      "cases": [
        {
          "id": "string (suite-specific pattern like AUTH-001)",
          "title": "string",
          "description": "string (objective of the test)",
          "preconditions": "string (must start with the navigation to the target URL)",
          "type": "Functional | UI/UX | Security | Performance | Accessibility | Edge Case",
          "scenario_type": "Positive | Negative | Boundary",
          "priority": "Critical | High | Medium | Low",
          "test_data": [{"key": "string", "value": "string", "is_sensitive": true | false}],
          "steps": [{"step_number": 1, "action": "string", "expected": "string"}]
        }
      ]
    }
  ]
}

## Guidelines

1. Mix scenarios: positive happy paths, negative error handling and invalid input, and accessibility checks.
2. Assign every case a priority and a type from the enumerations above.
3. Use the user-provided test data in the "test_data" of the cases it applies to. Keep "is_sensitive" exactly as provided.
4. Modern web apps span several subdomains (www, app, dashboard, auth). Cover the whole user journey, even when it leaves the initial URL.
5. Within a suite, case ids share one prefix and a zero-padded number (AUTH-001, AUTH-002)."""

SCOPE_INSTRUCTIONS = {
    ArtifactScope.ALL: (
        "Generate a comprehensive master test plan: a detailed summary covering strategy, "
        "scope, risks and tools, then a full set of suites and cases with granular steps."
    ),
    ArtifactScope.PLAN_ONLY: (
        "Focus on the high-level test strategy. Make summary, strategy, scope, risks and "
        "tools detailed. Suites are high-level groups and their cases are one-line "
        "scenarios WITHOUT steps."
    ),
    ArtifactScope.SUITES_AND_CASES: (
        "Keep the summary to one sentence. Spend all effort on comprehensive suites with "
        "detailed step-by-step cases (steps, data, expected results)."
    ),
    ArtifactScope.CASES_ONLY: (
        "Generate a large list of critical test cases grouped into a single main suite or "
        "a few basic suites. Prioritize depth of the steps over plan structure. Leave the "
        "summary empty."
    ),
}


def build_planning_prompt(
    url: str,
    test_data_json: str,
    scope: ArtifactScope,
    has_credentials: bool,
) -> str:
    """Build the user message for the planning AI call."""
    parts = [
        f"## Target Website\n\n{url}\n",
        f"## Requested Artifact\n\n{scope.value}: {SCOPE_INSTRUCTIONS[scope]}\n",
        f"## User Provided Test Data\n\n```json\n{test_data_json}\n```\n",
    ]

    if has_credentials:
        parts.append(
            "## Login Context\n\n"
            "The test data contains login credentials. Assume the role of an authenticated "
            "user: go beyond public pages, cover protected areas (profile, settings, order "
            "history, dashboard), verify the login flow itself with the provided data, and "
            "cover session management. If login redirects to another subdomain, include "
            "cases for that domain.\n"
        )
    else:
        parts.append(
            "## Login Context\n\n"
            "No login credentials were provided. Focus on public functionality, and verify "
            "that any Login or Get Started entry points reach the application domain.\n"
        )

    parts.append(
        "## Instructions\n\n"
        f'Every case\'s "preconditions" must begin with "Navigate to {url}" '
        "(or the relevant deep link). "
        "Return the plan as a single JSON object conforming to the schema. "
        "Return ONLY the JSON, no other text."
    )
    return "\n".join(parts)
