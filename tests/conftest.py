"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from qastudio.models.config import StudioConfig
from qastudio.models.session import (
    Session,
    TestCase,
    TestDataItem,
    TestPlan,
    TestPriority,
    TestStep,
    TestSuite,
    TestType,
)
from qastudio.planner.generator import Generator
from qastudio.storage.persistence import InMemoryRepository, RecentUrls
from qastudio.store.session_store import SessionStore
from qastudio.workspace import Workspace


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def studio_config(tmp_path: Path) -> StudioConfig:
    """Create a config rooted in a temporary data directory."""
    return StudioConfig(data_dir=str(tmp_path / "data"), user_id="alice")


@pytest.fixture
def temp_config_file(studio_config: StudioConfig, tmp_path: Path) -> Path:
    """Write the test config to a temporary file."""
    config_path = tmp_path / "qa-studio.json"
    studio_config.save(config_path)
    return config_path


# ============================================================================
# Artifact Fixtures
# ============================================================================


@pytest.fixture
def password_item() -> TestDataItem:
    return TestDataItem(key="password", value="Secret123!", is_sensitive=True)


@pytest.fixture
def email_item() -> TestDataItem:
    return TestDataItem(key="email", value="alice@example.com")


@pytest.fixture
def login_case(password_item: TestDataItem, email_item: TestDataItem) -> TestCase:
    """A login case whose steps embed a sensitive value."""
    return TestCase(
        id="AUTH-001",
        title="Valid login",
        description="User logs in with valid credentials",
        preconditions="Account exists",
        type=TestType.FUNCTIONAL,
        scenario_type="Positive",
        priority=TestPriority.CRITICAL,
        test_data=[email_item, password_item],
        steps=[
            TestStep(step_number=1, action="Open /login", expected="Login form shown"),
            TestStep(step_number=2, action="Enter password Secret123!", expected="Field filled"),
            TestStep(step_number=3, action="Submit", expected="Dashboard shown"),
        ],
    )


def make_case(case_id: str, title: str = "", steps: int = 1) -> TestCase:
    return TestCase(
        id=case_id,
        title=title or f"Case {case_id}",
        steps=[TestStep(step_number=n, action=f"Do {n}", expected=f"See {n}")
               for n in range(1, steps + 1)],
    )


@pytest.fixture
def test_plan(login_case: TestCase) -> TestPlan:
    """A two-suite plan: Auth (AUTH-001, AUTH-002) and Cart (mixed ids)."""
    return TestPlan(
        website_url="https://shop.example.com",
        summary="Shop test plan",
        strategy="Risk based",
        scope="Auth and cart",
        risks="Payment failures",
        tools="Playwright",
        suites=[
            TestSuite(
                name="Auth",
                description="Authentication",
                cases=[login_case, make_case("AUTH-002", "Invalid login")],
            ),
            TestSuite(
                name="Cart",
                description="Shopping cart",
                cases=[make_case("Cart-1"), make_case("checkout-x")],
            ),
        ],
    )


@pytest.fixture
def session(test_plan: TestPlan, password_item: TestDataItem, email_item: TestDataItem) -> Session:
    return Session(
        id="1700000000000",
        owner_id="alice",
        name="shop.example.com",
        timestamp=1700000000000,
        url="https://shop.example.com",
        plan=test_plan,
        test_data=[email_item, password_item],
    )


# ============================================================================
# Store and Workspace Fixtures
# ============================================================================


@pytest.fixture
def repository(session: Session) -> InMemoryRepository:
    return InMemoryRepository([session])


@pytest.fixture
def store(repository: InMemoryRepository) -> SessionStore:
    return SessionStore(repository)


@pytest.fixture
def mock_generator() -> Mock:
    """Generator double; configure return values per test."""
    return Mock(spec=Generator)


@pytest.fixture
def workspace(
    studio_config: StudioConfig, store: SessionStore, mock_generator: Mock, tmp_path: Path,
) -> Workspace:
    return Workspace(
        studio_config,
        store,
        generator=mock_generator,
        history=RecentUrls(tmp_path / "recent.json"),
    )


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_anthropic_client() -> Mock:
    """Create a mock Anthropic client returning a canned text response."""
    client = Mock()
    content = Mock()
    content.text = "Test response"
    response = Mock()
    response.content = [content]
    response.stop_reason = "end_turn"
    client.messages.create.return_value = response
    return client
