from __future__ import annotations

import pytest

from pyga4mp.config import MeasurementConfig, ProtocolVariant
from pyga4mp.exceptions import Ga4mpConfigError


def test_defaults() -> None:
    config = MeasurementConfig(api_secret="s", measurement_id="G-1")

    assert config.protocol_variant is ProtocolVariant.GTAG
    assert config.diagnostics_enabled is False
    assert config.escalate_validation_errors is False
    assert config.use_validation_endpoint is False
    assert config.endpoint == "https://www.google-analytics.com/mp/collect"
    assert config.stream_id == "G-1"


def test_validation_endpoint_switch() -> None:
    config = MeasurementConfig(api_secret="s", measurement_id="G-1", use_validation_endpoint=True)
    assert config.endpoint == "https://www.google-analytics.com/debug/mp/collect"


def test_variant_string_is_coerced() -> None:
    config = MeasurementConfig(api_secret="s", firebase_app_id="app", protocol_variant="firebase")  # type: ignore[arg-type]
    assert config.protocol_variant is ProtocolVariant.FIREBASE
    assert config.stream_id == "app"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"api_secret": "", "measurement_id": "G-1"},
        {"api_secret": "s"},
        {"api_secret": "s", "measurement_id": "G-1", "protocol_variant": ProtocolVariant.FIREBASE},
        {"api_secret": "s", "measurement_id": "G-1", "protocol_variant": "amp"},
        {"api_secret": "s", "measurement_id": "G-1", "request_timeout": 0},
    ],
)
def test_invalid_configuration(kwargs: dict[str, object]) -> None:
    with pytest.raises(Ga4mpConfigError):
        MeasurementConfig(**kwargs)  # type: ignore[arg-type]


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GA4MP_API_SECRET", "env-secret")
    monkeypatch.setenv("GA4MP_FIREBASE_APP_ID", "1:2:android:3")
    monkeypatch.setenv("GA4MP_PROTOCOL_VARIANT", "firebase")
    monkeypatch.setenv("GA4MP_DIAGNOSTICS_ENABLED", "yes")
    monkeypatch.setenv("GA4MP_ESCALATE_VALIDATION_ERRORS", "off")
    monkeypatch.setenv("GA4MP_REQUEST_TIMEOUT", "2.5")

    config = MeasurementConfig.from_env()

    assert config.api_secret == "env-secret"
    assert config.protocol_variant is ProtocolVariant.FIREBASE
    assert config.firebase_app_id == "1:2:android:3"
    assert config.diagnostics_enabled is True
    assert config.escalate_validation_errors is False
    assert config.request_timeout == 2.5


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GA4MP_API_SECRET", "env-secret")
    monkeypatch.setenv("GA4MP_MEASUREMENT_ID", "G-ENV")
    monkeypatch.setenv("GA4MP_DIAGNOSTICS_ENABLED", "true")

    config = MeasurementConfig.from_env(measurement_id="G-ARG", diagnostics_enabled=False)

    assert config.measurement_id == "G-ARG"
    assert config.diagnostics_enabled is False


def test_from_env_without_secret_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GA4MP_API_SECRET", raising=False)
    monkeypatch.setenv("GA4MP_MEASUREMENT_ID", "G-ENV")

    with pytest.raises(Ga4mpConfigError):
        MeasurementConfig.from_env()
