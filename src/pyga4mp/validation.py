"""Measurement rule validation.

Every ``validate_*`` function is pure: it inspects in-memory input and
returns a list of :class:`Violation` records without raising.  Whether
violations are checked at all, and whether they are logged or raised, is
decided by :func:`handle_violations` using the client's diagnostics and
escalation flags.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Mapping, Sequence
from enum import StrEnum

from pyga4mp._constants import (
    EVENT_MAX_PARAMETERS,
    EVENT_NAME_MAX_LENGTH,
    PARAMETER_NAME_MAX_LENGTH,
    PARAMETER_VALUE_MAX_LENGTH,
    RESERVED_NAME_PREFIXES,
    USER_ID_MAX_LENGTH,
    USER_PROPERTY_MAX_COUNT,
    USER_PROPERTY_NAME_MAX_LENGTH,
    USER_PROPERTY_VALUE_MAX_LENGTH,
)
from pyga4mp.exceptions import Ga4mpConfigError, Ga4mpValidationError
from pyga4mp.models.params import ParamInput

_logger = logging.getLogger(__name__)


class ViolationRule(StrEnum):
    EVENT_NAME = "event_name"
    PARAMETER_COUNT = "parameter_count"
    PARAMETER_NAME = "parameter_name"
    PARAMETER_VALUE_LENGTH = "parameter_value_length"
    USER_PROPERTY_NAME = "user_property_name"
    USER_PROPERTY_VALUE_LENGTH = "user_property_value_length"
    USER_PROPERTY_COUNT = "user_property_count"
    USER_ID_LENGTH = "user_id_length"


@dataclasses.dataclass(frozen=True, slots=True)
class Violation:
    """A single rule breach."""

    rule: ViolationRule
    subject: str
    message: str

    def __str__(self) -> str:
        return self.message


def build_name_pattern(max_length: int) -> re.Pattern[str]:
    """Compile the bounded name pattern for names of at most *max_length* chars.

    A name starts with a letter, continues with letters, digits or
    underscores, and must not start with a reserved prefix.  The pattern is
    meant for ``fullmatch``.

    Raises :class:`~pyga4mp.exceptions.Ga4mpConfigError` when the limit
    cannot produce a usable pattern.
    """
    if max_length < 1:
        raise Ga4mpConfigError(f"name length limit must be at least 1, got {max_length}")
    reserved = "|".join(re.escape(prefix) for prefix in RESERVED_NAME_PREFIXES)
    try:
        return re.compile(rf"(?!{reserved})[A-Za-z][A-Za-z0-9_]{{0,{max_length - 1}}}")
    except re.error as exc:
        raise Ga4mpConfigError(f"Invalid name validation pattern for limit {max_length}: {exc}") from exc


@dataclasses.dataclass(frozen=True)
class ValidationRules:
    """Limits checked by the validators.

    The name patterns are derived from the length limits once, at
    construction.
    """

    event_max_parameters: int = EVENT_MAX_PARAMETERS
    event_name_max_length: int = EVENT_NAME_MAX_LENGTH
    parameter_name_max_length: int = PARAMETER_NAME_MAX_LENGTH
    parameter_value_max_length: int = PARAMETER_VALUE_MAX_LENGTH
    user_property_max_count: int = USER_PROPERTY_MAX_COUNT
    user_property_name_max_length: int = USER_PROPERTY_NAME_MAX_LENGTH
    user_property_value_max_length: int = USER_PROPERTY_VALUE_MAX_LENGTH
    user_id_max_length: int = USER_ID_MAX_LENGTH
    event_name_pattern: re.Pattern[str] = dataclasses.field(init=False, repr=False, compare=False)
    parameter_name_pattern: re.Pattern[str] = dataclasses.field(init=False, repr=False, compare=False)
    user_property_name_pattern: re.Pattern[str] = dataclasses.field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name_pattern", build_name_pattern(self.event_name_max_length))
        object.__setattr__(self, "parameter_name_pattern", build_name_pattern(self.parameter_name_max_length))
        object.__setattr__(
            self,
            "user_property_name_pattern",
            build_name_pattern(self.user_property_name_max_length),
        )


DEFAULT_RULES = ValidationRules()


def is_valid_event_name(name: str, rules: ValidationRules = DEFAULT_RULES) -> bool:
    return rules.event_name_pattern.fullmatch(name) is not None


def is_valid_parameter_name(name: str, rules: ValidationRules = DEFAULT_RULES) -> bool:
    return rules.parameter_name_pattern.fullmatch(name) is not None


def is_valid_user_property_name(name: str, rules: ValidationRules = DEFAULT_RULES) -> bool:
    return rules.user_property_name_pattern.fullmatch(name) is not None


def validate_parameters(
    source: str,
    parameters: Mapping[str, ParamInput] | None,
    rules: ValidationRules = DEFAULT_RULES,
) -> list[Violation]:
    """Check parameter names and string value lengths.

    *source* names where the parameters came from (an event name or the
    default-parameter setter) and only appears in messages.  Numeric
    values and the clear marker are not length-checked.
    """
    violations: list[Violation] = []
    if not parameters:
        return violations
    for name, value in parameters.items():
        if not is_valid_parameter_name(name, rules):
            violations.append(
                Violation(
                    ViolationRule.PARAMETER_NAME,
                    name,
                    f"Invalid parameter name '{name}' in '{source}'",
                )
            )
        if isinstance(value, str) and len(value) > rules.parameter_value_max_length:
            violations.append(
                Violation(
                    ViolationRule.PARAMETER_VALUE_LENGTH,
                    name,
                    f"Value too long for parameter '{name}' in '{source}': {value}",
                )
            )
    return violations


def validate_event(
    name: str,
    parameters: Mapping[str, ParamInput] | None,
    rules: ValidationRules = DEFAULT_RULES,
) -> list[Violation]:
    """Check an event name, its parameter count and each parameter.

    Pass the merged parameter set: the count limit includes default
    parameters.
    """
    violations: list[Violation] = []
    if not is_valid_event_name(name, rules):
        violations.append(Violation(ViolationRule.EVENT_NAME, name, f"Invalid event name '{name}'"))
    count = len(parameters) if parameters else 0
    if count > rules.event_max_parameters:
        violations.append(
            Violation(
                ViolationRule.PARAMETER_COUNT,
                name,
                f"Too many parameters in event '{name}': contains {count}, max {rules.event_max_parameters}",
            )
        )
    violations.extend(validate_parameters(name, parameters, rules))
    return violations


def validate_user_property(
    name: str,
    value: str | None,
    current_count: int,
    rules: ValidationRules = DEFAULT_RULES,
) -> list[Violation]:
    """Check a user property set operation.

    *current_count* is the number of user properties after the operation
    has been applied; the limit is inclusive (exactly the maximum is valid).
    """
    violations: list[Violation] = []
    if not is_valid_user_property_name(name, rules):
        violations.append(
            Violation(ViolationRule.USER_PROPERTY_NAME, name, f"Invalid user property name '{name}'")
        )
    if value is not None and len(value) > rules.user_property_value_max_length:
        violations.append(
            Violation(
                ViolationRule.USER_PROPERTY_VALUE_LENGTH,
                name,
                f"Value too long for user property '{name}': {value}",
            )
        )
    if current_count > rules.user_property_max_count:
        violations.append(
            Violation(
                ViolationRule.USER_PROPERTY_COUNT,
                name,
                f"Too many user properties: last set '{name}', count {current_count}, "
                f"max {rules.user_property_max_count}",
            )
        )
    return violations


def validate_user_id(user_id: str | None, rules: ValidationRules = DEFAULT_RULES) -> list[Violation]:
    if user_id is None or len(user_id) <= rules.user_id_max_length:
        return []
    return [Violation(ViolationRule.USER_ID_LENGTH, "user_id", f"User ID is too long: {user_id}")]


def handle_violations(
    violations: Sequence[Violation],
    *,
    diagnostics_enabled: bool,
    escalate: bool,
) -> None:
    """Log violations and, under escalation, raise.

    Nothing happens when diagnostics are disabled: production traffic is
    never blocked by rule checks.
    """
    if not violations or not diagnostics_enabled:
        return
    for violation in violations:
        _logger.warning("Measurement rule violation: %s", violation.message)
    if escalate:
        summary = "; ".join(v.message for v in violations)
        raise Ga4mpValidationError(summary, violations=violations)
