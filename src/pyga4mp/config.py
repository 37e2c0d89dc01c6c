"""Client configuration for pyga4mp."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from pyga4mp._constants import PRODUCTION_ENDPOINT, VALIDATION_ENDPOINT, setting_to_bool
from pyga4mp.exceptions import Ga4mpConfigError


class ProtocolVariant(StrEnum):
    """Identity-field convention of the Measurement Protocol.

    ``GTAG`` identifies the device with ``client_id`` and the stream with
    ``measurement_id``; ``FIREBASE`` uses ``app_instance_id`` and
    ``firebase_app_id``.
    """

    GTAG = "gtag"
    FIREBASE = "firebase"


@dataclasses.dataclass(frozen=True)
class MeasurementConfig:
    """Client configuration.

    Parameters
    ----------
    api_secret : str
        Measurement Protocol API secret of the data stream.
    measurement_id : str or None
        Web stream measurement ID (``G-XXXXXXX``). Required for
        :attr:`ProtocolVariant.GTAG`.
    firebase_app_id : str or None
        Firebase app ID of the app stream. Required for
        :attr:`ProtocolVariant.FIREBASE`.
    protocol_variant : ProtocolVariant
        Which identity-field convention to use. Defaults to gtag.
    diagnostics_enabled : bool
        Enable rule validation and verbose payload logging.  Off by
        default; in production invalid data is sent as-is.
    escalate_validation_errors : bool
        Raise :class:`~pyga4mp.exceptions.Ga4mpValidationError` on rule
        violations instead of only logging them.  Has no effect unless
        *diagnostics_enabled* is also set.
    use_validation_endpoint : bool
        Send hits to the validation server instead of the collector.
        Responses are logged when diagnostics are enabled.
    production_endpoint : str
        Collector URL.
    validation_endpoint : str
        Validation server URL.
    request_timeout : float
        Total timeout in seconds applied by the default aiohttp transport.
    """

    api_secret: str
    measurement_id: str | None = None
    firebase_app_id: str | None = None
    protocol_variant: ProtocolVariant = ProtocolVariant.GTAG
    diagnostics_enabled: bool = False
    escalate_validation_errors: bool = False
    use_validation_endpoint: bool = False
    production_endpoint: str = PRODUCTION_ENDPOINT
    validation_endpoint: str = VALIDATION_ENDPOINT
    request_timeout: float = 10.0

    def __post_init__(self) -> None:
        try:
            variant = ProtocolVariant(self.protocol_variant)
        except ValueError as exc:
            raise Ga4mpConfigError(f"Unknown protocol variant: {self.protocol_variant!r}") from exc
        object.__setattr__(self, "protocol_variant", variant)

        if not self.api_secret:
            raise Ga4mpConfigError("api_secret is required")
        if variant == ProtocolVariant.GTAG and not self.measurement_id:
            raise Ga4mpConfigError("measurement_id is required for the gtag protocol variant")
        if variant == ProtocolVariant.FIREBASE and not self.firebase_app_id:
            raise Ga4mpConfigError("firebase_app_id is required for the firebase protocol variant")
        if self.request_timeout <= 0:
            raise Ga4mpConfigError(f"request_timeout must be positive, got {self.request_timeout}")

    @property
    def endpoint(self) -> str:
        """Base URL hits are posted to."""
        return self.validation_endpoint if self.use_validation_endpoint else self.production_endpoint

    @property
    def stream_id(self) -> str:
        """Stream identifier for the selected protocol variant."""
        if self.protocol_variant == ProtocolVariant.FIREBASE:
            return self.firebase_app_id or ""
        return self.measurement_id or ""

    @classmethod
    def from_env(cls, **overrides: Any) -> MeasurementConfig:
        """Create configuration from environment variables.

        Reads ``GA4MP_API_SECRET`` and the optional ``GA4MP_*`` variables.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        MeasurementConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "GA4MP_API_SECRET": "api_secret",
            "GA4MP_MEASUREMENT_ID": "measurement_id",
            "GA4MP_FIREBASE_APP_ID": "firebase_app_id",
            "GA4MP_PROTOCOL_VARIANT": "protocol_variant",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        _ENV_FLAG_MAP = {
            "GA4MP_DIAGNOSTICS_ENABLED": "diagnostics_enabled",
            "GA4MP_ESCALATE_VALIDATION_ERRORS": "escalate_validation_errors",
            "GA4MP_USE_VALIDATION_ENDPOINT": "use_validation_endpoint",
        }
        for env_key, field_name in _ENV_FLAG_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = setting_to_bool(env.get(env_key), False)

        timeout_env = env.get("GA4MP_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        config_kwargs.update(overrides)
        config_kwargs.setdefault("api_secret", "")

        return cls(**config_kwargs)
