"""Tests for masking of sensitive values on rendered surfaces."""

import pytest

from qastudio.models.session import (
    TestDataItem as TestDataItemModel,
    TestPlan as TestPlanModel,
)
from qastudio.render.masking import (
    DEFAULT_MASK,
    STRICT_MASK,
    DataItemView,
    mask_text,
    mask_value,
    masked_case,
    masked_plan,
    sensitive_values,
)


class TestMaskValue:
    @pytest.mark.parametrize("key", ["password", "Admin Password", "client_secret", "API_TOKEN"])
    def test_strict_keys_fully_masked(self, key):
        assert mask_value(key, "anything-at-all") == STRICT_MASK

    def test_card_keeps_last_four(self):
        assert mask_value("Credit Card", "4111111111111111") == "•••• 1111"
        assert mask_value("cc_number", "5500000000000004") == "•••• 0004"

    def test_long_value_keeps_edges(self):
        assert mask_value("email", "alice@example.com") == "a••••om"

    def test_short_value_default_mask(self):
        assert mask_value("pin", "12345") == DEFAULT_MASK

    def test_empty_value(self):
        assert mask_value("password", "") == ""

    def test_mask_never_contains_full_value(self):
        for key, value in [("password", "hunter22"), ("email", "bob@x.io"), ("code", "abc")]:
            assert value not in mask_value(key, value)


class TestMaskText:
    def test_replaces_sensitive_occurrences(self, password_item):
        text = "Type Secret123! into the field and Secret123! again"
        assert mask_text(text, [password_item]) == f"Type {STRICT_MASK} into the field and {STRICT_MASK} again"

    def test_ignores_non_sensitive(self, email_item):
        assert mask_text("Use alice@example.com", [email_item]) == "Use alice@example.com"

    def test_short_values_left_in_text(self):
        item = TestDataItemModel(key="pin", value="42", is_sensitive=True)
        assert mask_text("Answer 42", [item]) == "Answer 42"

    def test_none_passthrough(self, password_item):
        assert mask_text(None, [password_item]) is None


class TestDataItemView:
    def test_sensitive_starts_masked(self, password_item):
        view = DataItemView(password_item)
        assert not view.revealed
        assert view.display == STRICT_MASK

    def test_toggle_reveals_without_mutating(self, password_item):
        view = DataItemView(password_item)
        view.toggle()
        assert view.display == "Secret123!"
        view.toggle()
        assert view.display == STRICT_MASK
        assert password_item.value == "Secret123!"

    def test_non_sensitive_always_shown(self, email_item):
        view = DataItemView(email_item)
        view.toggle()
        assert view.revealed
        assert view.display == "alice@example.com"


class TestMaskedArtifacts:
    def test_masked_case_hides_data_and_steps(self, login_case):
        masked = masked_case(login_case)
        assert masked.test_data[1].value == STRICT_MASK
        assert masked.test_data[0].value == "alice@example.com"
        assert "Secret123!" not in masked.steps[1].action
        assert login_case.test_data[1].value == "Secret123!"

    def test_session_items_masked_in_case_text(self, test_plan):
        api_key = TestDataItemModel(key="api key", value="k-998877", is_sensitive=True)
        case = test_plan.suites[1].cases[0].model_copy(update={"preconditions": "Header k-998877 set"})
        assert "k-998877" not in masked_case(case, [api_key]).preconditions

    def test_masked_plan_is_a_copy(self, test_plan, password_item):
        before = test_plan.model_dump()
        masked = masked_plan(test_plan, [password_item])
        assert test_plan.model_dump() == before
        assert masked is not test_plan

    def test_no_plaintext_secret_anywhere_in_rendered_plan(self, test_plan, password_item):
        rendered = masked_plan(test_plan, [password_item]).model_dump_json()
        assert "Secret123!" not in rendered


class TestLoginScenario:
    """Analysis asks for Username and Password; the plan built from them never shows the password."""

    def test_password_masked_in_rendered_plan(self):
        session_data = [
            TestDataItemModel(key="Username", value="bob"),
            TestDataItemModel(key="Password", value="secret123", is_sensitive=True),
        ]
        plan = TestPlanModel.model_validate({
            "website_url": "https://example.com",
            "summary": "Login with bob / secret123",
            "suites": [{
                "name": "Login Flow",
                "cases": [{
                    "id": "LOGIN-001",
                    "title": "Valid login",
                    "preconditions": "Navigate to https://example.com/login",
                    "test_data": [{"key": "Username", "value": "bob"},
                                  {"key": "Password", "value": "secret123", "is_sensitive": True}],
                    "steps": [{"step_number": 1, "action": "Enter bob / secret123",
                               "expected": "Logged in"}],
                }],
            }],
        })

        rendered = masked_plan(plan, session_data)

        assert "secret123" not in rendered.model_dump_json()
        case = rendered.suites[0].cases[0]
        assert case.test_data[1].value == STRICT_MASK
        assert case.test_data[0].value == "bob"
        assert case.steps[0].action == f"Enter bob / {STRICT_MASK}"

    def test_unflagged_echo_of_session_secret_masked(self):
        session_data = [TestDataItemModel(key="Password", value="secret123", is_sensitive=True)]
        plan = TestPlanModel.model_validate({
            "website_url": "https://example.com",
            "suites": [{"name": "Login Flow", "cases": [{
                "id": "LOGIN-001", "title": "Valid login",
                "test_data": [
                    {"key": "Password", "value": "secret123", "is_sensitive": False},
                    {"key": "pwd_confirm", "value": "secret123"},
                    {"key": "Username", "value": "bob"},
                ],
            }]}],
        })

        case = masked_plan(plan, session_data).suites[0].cases[0]

        assert "secret123" not in case.model_dump_json()
        assert case.test_data[0].value == STRICT_MASK
        assert case.test_data[2].value == "bob"


def test_sensitive_values(password_item, email_item):
    assert sensitive_values([email_item, password_item]) == ["Secret123!"]
