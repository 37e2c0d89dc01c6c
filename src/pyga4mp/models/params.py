"""Event parameter values and the default/event merge rules.

Parameter values are plain Python ``str``, ``int`` or ``float``.  The
:data:`CLEAR` marker stands in for "no value": in default parameters it
removes a key, in event parameters it suppresses the default of the same
name for that single event.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Mapping
from typing import Final, TypeAlias

_INT64_MIN: Final = -(2**63)
_INT64_MAX: Final = 2**63 - 1


class ClearMarker(enum.Enum):
    """Type of the :data:`CLEAR` singleton."""

    CLEAR = "clear"

    def __repr__(self) -> str:
        return "CLEAR"


CLEAR: Final = ClearMarker.CLEAR

ParamValue: TypeAlias = str | int | float
ParamInput: TypeAlias = str | int | float | ClearMarker


def check_param_value(name: str, value: object) -> None:
    """Raise unless *value* is a supported parameter value.

    ``TypeError`` for unsupported types (``bool`` is rejected even though it
    subclasses ``int``); ``ValueError`` for numbers JSON cannot carry as
    numbers: NaN, infinities and integers outside the signed 64-bit range.
    """
    if not isinstance(name, str):
        raise TypeError(f"Parameter names must be str, got {type(name).__name__}")
    if value is CLEAR:
        return
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError(
            f"Unsupported value for parameter '{name}': {type(value).__name__} "
            "(expected str, int, float or CLEAR)"
        )
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Parameter '{name}' must be a finite number, got {value!r}")
    if isinstance(value, int) and not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"Parameter '{name}' is outside the 64-bit integer range: {value}")


def normalize_parameters(parameters: Mapping[str, ParamInput] | None) -> dict[str, ParamInput] | None:
    """Type-check *parameters* and return a private copy (``None`` when empty)."""
    if not parameters:
        return None
    normalized: dict[str, ParamInput] = {}
    for name, value in parameters.items():
        check_param_value(name, value)
        normalized[name] = value
    return normalized


def merge_parameters(
    defaults: Mapping[str, ParamValue] | None,
    event_params: Mapping[str, ParamInput] | None,
) -> dict[str, ParamValue] | None:
    """Merge default and event parameters; event values win.

    Returns ``None`` when the merged set is empty.
    """
    merged: dict[str, ParamValue] = dict(defaults) if defaults else {}
    if event_params:
        for name, value in event_params.items():
            if value is CLEAR:
                merged.pop(name, None)
            else:
                merged[name] = value
    return merged or None


def apply_default_parameters(
    current: Mapping[str, ParamValue] | None,
    updates: Mapping[str, ParamInput] | None,
) -> dict[str, ParamValue] | None:
    """Compute the new default-parameter map after a set operation.

    ``updates=None`` clears everything.  Otherwise *updates* is layered on
    top of *current*; :data:`CLEAR` removes a key.  An empty result is
    returned as ``None`` so it can be stored as "absent".
    """
    if updates is None:
        return None
    result: dict[str, ParamValue] = dict(current) if current else {}
    for name, value in updates.items():
        if value is CLEAR:
            result.pop(name, None)
        else:
            result[name] = value
    return result or None
