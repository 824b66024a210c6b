"""System prompts for the requirements analysis step."""

from __future__ import annotations

import json

ANALYSIS_SYSTEM_PROMPT = """You are a Senior QA Lead. Given a website URL, you identify the dynamic test data a tester would need to exercise the site end to end.

CRITICAL RULES FOR YOUR RESPONSE:
- Return ONLY valid, parseable JSON. No markdown, no code fences, no comments, no explanatory text.
- Do NOT use trailing commas in arrays or objects.
- Do NOT include any text before the opening { or after the closing }.

REQUIRED RESPONSE FORMAT:

{
  "website_url": "string",
  "requirements": [
    {
      "group": "string (page or feature, e.g. Login, Checkout)",
      "key": "string (field name, e.g. Username/Email)",
      "description": "string (short explanation of usage)",
      "suggested_value": "string or null",
      "is_sensitive": true | false,
      "options": ["string"] or null,
      "input_type": "text | select | boolean" or null
    }
  ]
}

## Guidelines

1. Infer the likely functionality of the site (login, search, checkout, contact forms) and any connected application domains it hands off to (e.g. app. or dashboard. subdomains, external auth providers).
2. Mark passwords, card numbers, API keys and personal data as "is_sensitive": true.
3. Group requirements by the page or feature they belong to.
4. When a field has a small set of standard options (role, social login provider), list them in "options" and set "input_type": "select".
5. Simple interactions such as checkboxes or toggles use "input_type": "boolean"."""


def build_analysis_prompt(url: str, known_keys: list[str]) -> str:
    """Build the user message for the analysis AI call."""
    parts = [f"## Target Website\n\n{url}\n"]

    if known_keys:
        parts.append(
            "## Already Provided Fields\n\n"
            f"The user already supplied values for: {json.dumps(known_keys)}. "
            "If you identify these as requirements, use EXACTLY these key names "
            "so they can be auto-filled.\n"
        )

    parts.append(
        "## Instructions\n\n"
        "List the input requirements as a single JSON object conforming to the schema above. "
        "Return ONLY the JSON, no other text."
    )
    return "\n".join(parts)
