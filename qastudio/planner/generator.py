"""AI-backed generation of requirements, plans, cases and automation scripts."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Sequence, Type, TypeVar

import anthropic
from pydantic import BaseModel, ValidationError

from qastudio.ai.client import AIClient
from qastudio.ai.prompts.analysis import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from qastudio.ai.prompts.cases import (
    MORE_CASES_SYSTEM_PROMPT,
    REGENERATE_SYSTEM_PROMPT,
    build_more_cases_prompt,
    build_regenerate_prompt,
)
from qastudio.ai.prompts.planning import PLANNING_SYSTEM_PROMPT, build_planning_prompt
from qastudio.ai.prompts.scripts import SCRIPT_SYSTEM_PROMPT, build_script_prompt
from qastudio.errors import AnalysisFailure, GenerationParseError
from qastudio.models.config import StudioConfig
from qastudio.models.session import (
    ArtifactScope,
    RequirementsAnalysis,
    ScriptFramework,
    TestCase,
    TestDataItem,
    TestPlan,
    TestSuite,
)
from qastudio.render.masking import sensitive_values

from .schema_validator import validate_plan

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_CREDENTIAL_KEY = re.compile(r"user|login|email|pass|credential", re.IGNORECASE)
_CODE_FENCE_OPEN = re.compile(r"^```[\w+-]*\s*\n")
_CODE_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def _validate(model: Type[M], data: Any, what: str) -> M:
    """Validate backend data against a model, converting mismatches to GenerationParseError."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error("AI returned a %s that does not match the schema: %s", what, e)
        raise GenerationParseError(
            f"AI returned an invalid {what}: {e.error_count()} validation error(s)",
            raw_response=json.dumps(data, default=str)[:2000],
        ) from e


def _data_json(items: Sequence[TestDataItem]) -> str:
    return json.dumps([i.model_dump(mode="json", exclude_none=True) for i in items], indent=2)


def has_credentials(items: Sequence[TestDataItem]) -> bool:
    """True when the test data includes a non-empty login-like field."""
    return any(_CREDENTIAL_KEY.search(i.key) and i.value for i in items)


def env_var_name(key: str) -> str:
    """Environment variable name a generated script reads a sensitive value from."""
    return re.sub(r"[^A-Z0-9]+", "_", key.upper()).strip("_") or "SECRET"


def _script_safe_case(case: TestCase) -> dict:
    """Case payload for script prompts, with sensitive values replaced by env references."""
    data = case.model_dump(mode="json", exclude_none=True)
    secrets = {}
    for item in data.get("test_data", []):
        if item.get("is_sensitive") and item.get("value"):
            placeholder = f"<env:{env_var_name(item['key'])}>"
            secrets[item["value"]] = placeholder
            item["value"] = placeholder
    if secrets:
        for step in data.get("steps", []):
            for field in ("action", "expected"):
                for secret, placeholder in secrets.items():
                    step[field] = step[field].replace(secret, placeholder)
    return data


def strip_code_fences(text: str) -> str:
    text = text.strip()
    text = _CODE_FENCE_OPEN.sub("", text, count=1)
    text = _CODE_FENCE_CLOSE.sub("", text, count=1)
    return text.strip() + "\n"


class Generator:
    """Builds prompts, calls the AI backend and validates what comes back.

    Malformed responses raise GenerationParseError; transport failures from
    the Anthropic SDK propagate unchanged. Nothing here touches stored state.
    """

    def __init__(self, config: StudioConfig, ai_client: AIClient):
        self.config = config
        self.ai_client = ai_client

    def analyze_requirements(
        self, url: str, known_keys: Sequence[str] = (),
    ) -> RequirementsAnalysis:
        """Ask which input data a tester needs for the target. Any failure is AnalysisFailure."""
        logger.info("Analyzing test data requirements for %s", url)
        user_message = build_analysis_prompt(url, list(known_keys))
        try:
            data = self.ai_client.complete_json(
                system_prompt=ANALYSIS_SYSTEM_PROMPT,
                user_message=user_message,
                model=self.config.ai_analysis_model or self.config.ai_model,
            )
            if isinstance(data, dict):
                data.setdefault("website_url", url)
            analysis = _validate(RequirementsAnalysis, data, "requirements analysis")
        except (anthropic.APIError, GenerationParseError) as e:
            logger.error("Requirements analysis failed: %s", e)
            raise AnalysisFailure(f"Failed to analyze website requirements: {e}") from e

        logger.info("Identified %d input requirements", len(analysis.requirements))
        return analysis

    def generate_plan(
        self,
        url: str,
        test_data: Sequence[TestDataItem],
        scope: ArtifactScope = ArtifactScope.ALL,
    ) -> TestPlan:
        """Generate a complete plan for the requested artifact scope."""
        logger.info("Generating %s test plan for %s", scope.value, url)
        user_message = build_planning_prompt(
            url=url,
            test_data_json=_data_json(test_data),
            scope=scope,
            has_credentials=has_credentials(test_data),
        )
        logger.debug("Planning prompt built: %d chars", len(user_message))

        data = self.ai_client.complete_json(
            system_prompt=PLANNING_SYSTEM_PROMPT,
            user_message=user_message,
            max_tokens=self.config.ai_max_tokens,
            redact=sensitive_values(test_data),
        )
        if not isinstance(data, dict):
            raise GenerationParseError(
                f"AI returned a {type(data).__name__} where a plan object was expected",
                raw_response=json.dumps(data, default=str)[:2000],
            )
        data.setdefault("website_url", url)
        plan = _validate(TestPlan, data, "test plan")

        warnings = validate_plan(plan, scope)
        if warnings:
            logger.warning("Plan validation warnings: %s", warnings)
        logger.info("Generated plan with %d suites and %d cases",
                    len(plan.suites), plan.case_count)
        return plan

    def generate_more_cases(
        self,
        url: str,
        suite: TestSuite,
        test_data: Sequence[TestDataItem],
        focus_type: Optional[str] = None,
        count: Optional[int] = None,
    ) -> list[TestCase]:
        """Generate additional cases for one suite. Ids are fixed up when merged."""
        count = count or self.config.more_cases_count
        logger.info("Generating %d more cases for suite '%s'%s", count, suite.name,
                    f" (focus: {focus_type})" if focus_type else "")
        user_message = build_more_cases_prompt(
            url=url,
            suite_name=suite.name,
            suite_description=suite.description,
            existing_ids=[c.id for c in suite.cases],
            test_data_json=_data_json(test_data),
            focus_type=focus_type,
            count=count,
        )
        data = self.ai_client.complete_json(
            system_prompt=MORE_CASES_SYSTEM_PROMPT,
            user_message=user_message,
            max_tokens=self.config.ai_max_tokens,
            redact=sensitive_values(test_data),
        )
        if isinstance(data, dict) and isinstance(data.get("cases"), list):
            data = data["cases"]
        if not isinstance(data, list):
            raise GenerationParseError(
                "AI returned no case list",
                raw_response=json.dumps(data, default=str)[:2000],
            )
        cases = [_validate(TestCase, item, "test case") for item in data]
        logger.info("Received %d new cases for suite '%s'", len(cases), suite.name)
        return cases

    def regenerate_case(
        self, url: str, original: TestCase, new_test_data: Sequence[TestDataItem],
    ) -> TestCase:
        """Rewrite one case around new test data. The case keeps its id."""
        logger.info("Regenerating case %s with %d data items", original.id, len(new_test_data))
        user_message = build_regenerate_prompt(
            url=url,
            case_json=original.model_dump_json(indent=2, exclude_none=True),
            test_data_json=_data_json(new_test_data),
        )
        data = self.ai_client.complete_json(
            system_prompt=REGENERATE_SYSTEM_PROMPT,
            user_message=user_message,
            redact=sensitive_values(list(new_test_data) + list(original.test_data or [])),
        )
        if isinstance(data, dict) and "id" not in data and isinstance(data.get("cases"), list):
            data = data["cases"][0] if data["cases"] else None
        elif isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise GenerationParseError("AI returned no test case")

        case = _validate(TestCase, data, "test case")
        return case.model_copy(update={"id": original.id})

    def generate_script(
        self,
        framework: ScriptFramework,
        plan: TestPlan,
        suite_names: Optional[Sequence[str]] = None,
    ) -> str:
        """Generate one automation file for the whole plan or the named suites."""
        suites = plan.suites
        if suite_names:
            wanted = set(suite_names)
            suites = [s for s in plan.suites if s.name in wanted]
            if not suites:
                raise ValueError(f"No suites named {sorted(wanted)} in this plan")

        payload = [
            {
                "suite": s.name,
                "cases": [_script_safe_case(c) for c in s.cases if c.steps],
            }
            for s in suites
        ]
        logger.info("Generating %s script for %d suites", framework.value, len(suites))
        text = self.ai_client.complete(
            system_prompt=SCRIPT_SYSTEM_PROMPT,
            user_message=build_script_prompt(
                framework=framework,
                url=plan.website_url,
                cases_json=json.dumps(payload, indent=2),
                suite_names=list(suite_names) if suite_names else None,
            ),
            max_tokens=self.config.ai_max_tokens,
        )
        if not text.strip():
            raise GenerationParseError("AI returned an empty script")
        return strip_code_fences(text)
