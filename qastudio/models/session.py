"""Session and artifact data structures shared by the store, mutator and renderers."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TestPriority(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self.value]

    def __lt__(self, other):
        if not isinstance(other, TestPriority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, TestPriority):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, TestPriority):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, TestPriority):
            return NotImplemented
        return self.rank >= other.rank


# Critical > High > Medium > Low
_PRIORITY_RANK = {"Critical": 4, "High": 3, "Medium": 2, "Low": 1}


class TestType(str, Enum):
    FUNCTIONAL = "Functional"
    UI_UX = "UI/UX"
    SECURITY = "Security"
    PERFORMANCE = "Performance"
    ACCESSIBILITY = "Accessibility"
    EDGE_CASE = "Edge Case"


class ArtifactScope(str, Enum):
    ALL = "ALL"
    PLAN_ONLY = "PLAN_ONLY"
    SUITES_AND_CASES = "SUITES_AND_CASES"
    CASES_ONLY = "CASES_ONLY"


class ScriptFramework(str, Enum):
    CYPRESS = "Cypress"
    PLAYWRIGHT = "Playwright"
    SELENIUM = "Selenium"


ScenarioType = Literal["Positive", "Negative", "Boundary"]
TestDataType = Literal["text", "secret", "boolean", "image", "video"]


class TestDataItem(BaseModel):
    key: str
    value: str = ""
    is_sensitive: bool = False
    type: Optional[TestDataType] = None

    @property
    def effective_type(self) -> str:
        """Declared type, or text/secret inferred from sensitivity for older records."""
        if self.type:
            return self.type
        return "secret" if self.is_sensitive else "text"


class TestStep(BaseModel):
    step_number: int
    action: str
    expected: str = ""


class TestCase(BaseModel):
    id: str
    title: str
    description: str = ""
    preconditions: Optional[str] = None
    type: TestType = TestType.FUNCTIONAL
    scenario_type: Optional[ScenarioType] = None
    priority: TestPriority = TestPriority.MEDIUM
    test_data: Optional[list[TestDataItem]] = None
    steps: list[TestStep] = Field(default_factory=list)


class TestSuite(BaseModel):
    name: str
    description: str = ""
    cases: list[TestCase] = Field(default_factory=list)
    data_notes: Optional[str] = None


class GroundingSource(BaseModel):
    uri: str
    title: str = ""


class TestPlan(BaseModel):
    website_url: str
    summary: str = ""
    strategy: Optional[str] = None
    scope: Optional[str] = None
    risks: Optional[str] = None
    tools: Optional[str] = None
    suites: list[TestSuite] = Field(default_factory=list)
    grounding_sources: list[GroundingSource] = Field(default_factory=list)

    @property
    def case_count(self) -> int:
        return sum(len(s.cases) for s in self.suites)


class TestInputRequirement(BaseModel):
    group: Optional[str] = None
    key: str
    description: str = ""
    suggested_value: Optional[str] = None
    is_sensitive: bool = False
    options: Optional[list[str]] = None
    input_type: Optional[Literal["text", "select", "boolean"]] = None


class RequirementsAnalysis(BaseModel):
    website_url: str
    requirements: list[TestInputRequirement] = Field(default_factory=list)


class GeneratedScript(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    framework: ScriptFramework
    code: str
    created_at: int
    target_suite_names: Optional[list[str]] = None  # None means the whole plan


class Session(BaseModel):
    id: str
    owner_id: Optional[str] = None
    name: str
    timestamp: int
    url: str
    plan: Optional[TestPlan] = None
    test_data: list[TestDataItem] = Field(default_factory=list)
    requirements: Optional[RequirementsAnalysis] = None
    artifact_scope: ArtifactScope = ArtifactScope.ALL
    generated_scripts: list[GeneratedScript] = Field(default_factory=list)

    @field_validator("artifact_scope", mode="before")
    @classmethod
    def map_legacy_scope(cls, v):
        # Older records used TEST_PLAN for the plan-only scope
        if v == "TEST_PLAN":
            return ArtifactScope.PLAN_ONLY
        return v

    def is_visible_to(self, user_id: str | None) -> bool:
        """Sessions without an owner predate ownership and are visible to everyone."""
        if not self.owner_id:
            return True
        return self.owner_id == user_id
