"""System prompts for automation script generation."""

from __future__ import annotations

from qastudio.models.session import ScriptFramework

FRAMEWORK_GUIDANCE = {
    ScriptFramework.CYPRESS: (
        "Write a Cypress spec (.cy.ts). One describe block per suite, one it block per "
        "case titled 'ID: Title'. Use beforeEach with cy.visit for common navigation and "
        "cy.intercept where it improves stability."
    ),
    ScriptFramework.PLAYWRIGHT: (
        "Write a Playwright Test spec (.spec.ts) using @playwright/test. One test.describe "
        "per suite, one test per case titled 'ID: Title'. Prefer getByRole/getByTestId "
        "locators and web-first assertions."
    ),
    ScriptFramework.SELENIUM: (
        "Write a Python pytest module using Selenium WebDriver. One test class per suite, "
        "one test method per case. Use explicit WebDriverWait waits, never time.sleep."
    ),
}

SCRIPT_SYSTEM_PROMPT = """You are an expert QA Automation Engineer. You turn structured manual test cases into a single runnable automation file.

Rules:
- Prefer data-testid, id and name selectors, then stable CSS classes.
- Handle asynchronous waits properly.
- Sensitive test data (is_sensitive) must NOT be hardcoded. Read it from environment variables named after the key (e.g. Cypress.env('PASSWORD'), process.env.PASSWORD, os.environ['PASSWORD']).
- Comment each step briefly.
- Return only the code. No markdown fences, no explanation."""


def build_script_prompt(
    framework: ScriptFramework,
    url: str,
    cases_json: str,
    suite_names: list[str] | None,
) -> str:
    """Build the user message for the script generation AI call."""
    target = ", ".join(suite_names) if suite_names else "the full plan"
    return (
        f"## Framework\n\n{framework.value}: {FRAMEWORK_GUIDANCE[framework]}\n\n"
        f"## Target Website\n\n{url}\n\n"
        f"## Suites\n\nGenerate tests for {target}.\n\n"
        f"## Test Cases\n\n```json\n{cases_json}\n```\n"
    )
