"""pyga4mp - Async Python client for the GA4 Measurement Protocol."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyga4mp")
except PackageNotFoundError:
    __version__ = "0+local"
from pyga4mp._transport import AiohttpTransport, Transport, TransportResponse
from pyga4mp.client import MeasurementClient
from pyga4mp.config import MeasurementConfig, ProtocolVariant
from pyga4mp.exceptions import (
    Ga4mpConfigError,
    Ga4mpError,
    Ga4mpTransportError,
    Ga4mpValidationError,
)
from pyga4mp.models import (
    CLEAR,
    EventBody,
    MeasurementPayload,
    ParamInput,
    ParamValue,
    UserPropertyValue,
    ValidationMessage,
    ValidationResponse,
)
from pyga4mp.state import (
    ClientSnapshot,
    ClientState,
    InMemorySettingsStore,
    JsonFileSettingsStore,
    SettingsStore,
)
from pyga4mp.validation import (
    ValidationRules,
    Violation,
    ViolationRule,
    is_valid_event_name,
    is_valid_parameter_name,
    is_valid_user_property_name,
)

__all__ = [
    "__version__",
    "AiohttpTransport",
    "CLEAR",
    "ClientSnapshot",
    "ClientState",
    "EventBody",
    "Ga4mpConfigError",
    "Ga4mpError",
    "Ga4mpTransportError",
    "Ga4mpValidationError",
    "InMemorySettingsStore",
    "JsonFileSettingsStore",
    "MeasurementClient",
    "MeasurementConfig",
    "MeasurementPayload",
    "ParamInput",
    "ParamValue",
    "ProtocolVariant",
    "SettingsStore",
    "Transport",
    "TransportResponse",
    "UserPropertyValue",
    "ValidationMessage",
    "ValidationResponse",
    "ValidationRules",
    "Violation",
    "ViolationRule",
    "is_valid_event_name",
    "is_valid_parameter_name",
    "is_valid_user_property_name",
]
