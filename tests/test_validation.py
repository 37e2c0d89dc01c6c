from __future__ import annotations

import pytest

from pyga4mp.exceptions import Ga4mpConfigError, Ga4mpValidationError
from pyga4mp.models.params import CLEAR
from pyga4mp.validation import (
    ValidationRules,
    Violation,
    ViolationRule,
    build_name_pattern,
    handle_violations,
    is_valid_event_name,
    is_valid_parameter_name,
    is_valid_user_property_name,
    validate_event,
    validate_parameters,
    validate_user_id,
    validate_user_property,
)


@pytest.mark.parametrize("name", ["a", "level_up", "Screen_View2", "x" * 40, "gaming", "googled", "firebaseish"])
def test_valid_event_names(name: str) -> None:
    assert is_valid_event_name(name)


@pytest.mark.parametrize(
    "name",
    ["", "1bad", "_leading", "has space", "dash-name", "x" * 41, "ga_custom", "google_event", "firebase_x", "ünicode"],
)
def test_invalid_event_names(name: str) -> None:
    assert not is_valid_event_name(name)


def test_trailing_newline_is_not_accepted() -> None:
    assert not is_valid_event_name("level_up\n")


def test_user_property_names_are_limited_to_24_chars() -> None:
    assert is_valid_user_property_name("p" * 24)
    assert not is_valid_user_property_name("p" * 25)
    assert not is_valid_user_property_name("google_tier")


def test_parameter_names_are_limited_to_40_chars() -> None:
    assert is_valid_parameter_name("p" * 40)
    assert not is_valid_parameter_name("p" * 41)


def test_custom_rules_derive_patterns_from_limits() -> None:
    rules = ValidationRules(event_name_max_length=5)
    assert is_valid_event_name("abcde", rules)
    assert not is_valid_event_name("abcdef", rules)


def test_unusable_limit_is_a_config_error() -> None:
    with pytest.raises(Ga4mpConfigError):
        build_name_pattern(0)
    with pytest.raises(Ga4mpConfigError):
        ValidationRules(user_property_name_max_length=0)


def test_validate_parameters_checks_only_string_value_lengths() -> None:
    violations = validate_parameters(
        "my_event",
        {"long_text": "v" * 101, "big_number": 10**30, "ratio": 1.5, "ok": "v" * 100, "gone": CLEAR},
    )
    assert [(v.rule, v.subject) for v in violations] == [(ViolationRule.PARAMETER_VALUE_LENGTH, "long_text")]
    assert "my_event" in violations[0].message


def test_validate_event_reports_name_count_and_parameter_names() -> None:
    params: dict[str, str | int | float] = {f"p{i}": i for i in range(26)}
    params["1bad"] = "x"

    violations = validate_event("1bad", params)

    rules = {v.rule for v in violations}
    assert rules == {ViolationRule.EVENT_NAME, ViolationRule.PARAMETER_COUNT, ViolationRule.PARAMETER_NAME}


def test_validate_event_allows_exactly_max_parameters() -> None:
    params = {f"p{i}": i for i in range(25)}
    assert validate_event("ok_event", params) == []
    assert validate_event("ok_event", None) == []


def test_user_property_count_limit_is_inclusive() -> None:
    assert validate_user_property("tier", "gold", 25) == []
    violations = validate_user_property("tier", "gold", 26)
    assert [v.rule for v in violations] == [ViolationRule.USER_PROPERTY_COUNT]


def test_user_property_value_limit_is_36() -> None:
    assert validate_user_property("tier", "v" * 36, 1) == []
    violations = validate_user_property("tier", "v" * 37, 1)
    assert [v.rule for v in violations] == [ViolationRule.USER_PROPERTY_VALUE_LENGTH]


def test_user_property_removal_still_checks_name() -> None:
    violations = validate_user_property("ga_tier", None, 0)
    assert [v.rule for v in violations] == [ViolationRule.USER_PROPERTY_NAME]


def test_validate_user_id_length() -> None:
    assert validate_user_id(None) == []
    assert validate_user_id("u" * 256) == []
    assert [v.rule for v in validate_user_id("u" * 257)] == [ViolationRule.USER_ID_LENGTH]


def test_handle_violations_is_noop_without_diagnostics(caplog: pytest.LogCaptureFixture) -> None:
    violation = Violation(ViolationRule.EVENT_NAME, "1bad", "Invalid event name '1bad'")

    handle_violations([violation], diagnostics_enabled=False, escalate=True)

    assert "1bad" not in caplog.text


def test_handle_violations_logs_under_diagnostics(caplog: pytest.LogCaptureFixture) -> None:
    violation = Violation(ViolationRule.EVENT_NAME, "1bad", "Invalid event name '1bad'")

    with caplog.at_level("WARNING", logger="pyga4mp.validation"):
        handle_violations([violation], diagnostics_enabled=True, escalate=False)

    assert "Invalid event name '1bad'" in caplog.text


def test_handle_violations_raises_under_escalation() -> None:
    violations = [
        Violation(ViolationRule.EVENT_NAME, "1bad", "Invalid event name '1bad'"),
        Violation(ViolationRule.USER_ID_LENGTH, "user_id", "User ID is too long"),
    ]

    with pytest.raises(Ga4mpValidationError) as exc_info:
        handle_violations(violations, diagnostics_enabled=True, escalate=True)

    assert exc_info.value.violations == tuple(violations)
    assert "1bad" in str(exc_info.value)
