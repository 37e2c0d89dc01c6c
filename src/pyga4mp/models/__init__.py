"""Data models for pyga4mp."""

from pyga4mp.models.params import (
    CLEAR,
    ClearMarker,
    ParamInput,
    ParamValue,
    apply_default_parameters,
    check_param_value,
    merge_parameters,
    normalize_parameters,
)
from pyga4mp.models.payload import EventBody, MeasurementPayload, UserPropertyValue
from pyga4mp.models.validation_response import ValidationMessage, ValidationResponse

__all__ = [
    "CLEAR",
    "ClearMarker",
    "EventBody",
    "MeasurementPayload",
    "ParamInput",
    "ParamValue",
    "UserPropertyValue",
    "ValidationMessage",
    "ValidationResponse",
    "apply_default_parameters",
    "check_param_value",
    "merge_parameters",
    "normalize_parameters",
]
