"""Internal constants shared across the library."""

PRODUCTION_ENDPOINT = "https://www.google-analytics.com/mp/collect"
VALIDATION_ENDPOINT = "https://www.google-analytics.com/debug/mp/collect"
JSON_HEADERS: dict[str, str] = {"Content-Type": "application/json"}

# ------------------------------------------------------------------
# Measurement rule limits
# ------------------------------------------------------------------

EVENT_MAX_PARAMETERS = 25
EVENT_NAME_MAX_LENGTH = 40
PARAMETER_NAME_MAX_LENGTH = 40
PARAMETER_VALUE_MAX_LENGTH = 100
USER_PROPERTY_MAX_COUNT = 25
USER_PROPERTY_NAME_MAX_LENGTH = 24
USER_PROPERTY_VALUE_MAX_LENGTH = 36
USER_ID_MAX_LENGTH = 256

RESERVED_NAME_PREFIXES: tuple[str, ...] = ("ga_", "google_", "firebase_")

# ------------------------------------------------------------------
# Settings store keys
# ------------------------------------------------------------------

KEY_ANALYTICS_ENABLED = "ga4mp.analytics_collection_enabled"
KEY_NON_PERSONALIZED_ADS = "ga4mp.non_personalized_ads"
KEY_DEVICE_ID = "ga4mp.device_id"
KEY_USER_ID = "ga4mp.user_id"
KEY_DEFAULT_PARAMETERS = "ga4mp.default_parameters"
KEY_USER_PROPERTIES = "ga4mp.user_properties"


def bool_to_setting(value: bool) -> str:
    return "true" if value else "false"


def setting_to_bool(value: str | None, default: bool) -> bool:
    """Parse a persisted/env boolean string, falling back to *default*."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default
