from __future__ import annotations

import json
from urllib.parse import parse_qs, urlsplit

import pytest

from pyga4mp.config import MeasurementConfig, ProtocolVariant
from pyga4mp.serializer import build_collect_url, build_payload, pretty_json, serialize_payload
from pyga4mp.state.snapshot import ClientSnapshot


def _snapshot(**overrides: object) -> ClientSnapshot:
    values: dict[str, object] = {"device_id": "DEVICE-1", "non_personalized_ads": False}
    values.update(overrides)
    return ClientSnapshot.model_validate(values)


def test_gtag_payload_uses_client_id() -> None:
    body = json.loads(serialize_payload(ProtocolVariant.GTAG, _snapshot(), "page_view", None))

    assert body["client_id"] == "DEVICE-1"
    assert "app_instance_id" not in body


def test_firebase_payload_uses_app_instance_id() -> None:
    body = json.loads(serialize_payload(ProtocolVariant.FIREBASE, _snapshot(), "page_view", None))

    assert body["app_instance_id"] == "DEVICE-1"
    assert "client_id" not in body


def test_minimal_payload_shape() -> None:
    body = serialize_payload(ProtocolVariant.GTAG, _snapshot(), "page_view", None)

    assert body == '{"client_id":"DEVICE-1","events":[{"name":"page_view","params":{}}]}'


def test_full_payload_field_order_and_types() -> None:
    snapshot = _snapshot(
        user_id="user-42",
        user_logged_in=True,
        non_personalized_ads=True,
        user_properties={"tier": "gold"},
    )

    body = serialize_payload(
        ProtocolVariant.GTAG,
        snapshot,
        "purchase",
        {"currency": "EUR", "value": 9.99, "items": 3},
    )

    assert body == (
        '{"client_id":"DEVICE-1","user_id":"user-42",'
        '"user_properties":{"tier":{"value":"gold"}},'
        '"non_personalized_ads":true,'
        '"events":[{"name":"purchase","params":{"currency":"EUR","value":9.99,"items":3}}]}'
    )


def test_non_personalized_ads_omitted_when_false() -> None:
    payload = json.loads(serialize_payload(ProtocolVariant.GTAG, _snapshot(), "e", None))
    assert "non_personalized_ads" not in payload

    payload = json.loads(serialize_payload(ProtocolVariant.GTAG, _snapshot(non_personalized_ads=True), "e", None))
    assert payload["non_personalized_ads"] is True


def test_user_id_omitted_while_logged_out() -> None:
    payload = json.loads(serialize_payload(ProtocolVariant.GTAG, _snapshot(user_id="user-42"), "e", None))
    assert "user_id" not in payload


def test_empty_user_properties_are_omitted() -> None:
    payload = build_payload(ProtocolVariant.GTAG, _snapshot(user_properties={}), "e", None)
    assert payload.user_properties is None
    assert "user_properties" not in payload.to_json()


def test_string_values_are_json_escaped() -> None:
    body = serialize_payload(ProtocolVariant.GTAG, _snapshot(), "e", {"quote": 'say "hi"\n'})
    assert json.loads(body)["events"][0]["params"]["quote"] == 'say "hi"\n'


def test_exactly_one_event_per_payload() -> None:
    payload = build_payload(ProtocolVariant.FIREBASE, _snapshot(), "e", {"a": 1})
    assert len(payload.events) == 1


def test_gtag_url() -> None:
    config = MeasurementConfig(api_secret="s3cret", measurement_id="G-ABC123")
    assert build_collect_url(config) == (
        "https://www.google-analytics.com/mp/collect?api_secret=s3cret&measurement_id=G-ABC123"
    )


def test_firebase_validation_url() -> None:
    config = MeasurementConfig(
        api_secret="s3cret",
        firebase_app_id="1:123:android:abc",
        protocol_variant=ProtocolVariant.FIREBASE,
        use_validation_endpoint=True,
    )
    url = build_collect_url(config)
    parts = urlsplit(url)

    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://www.google-analytics.com/debug/mp/collect"
    assert parse_qs(parts.query) == {"api_secret": ["s3cret"], "firebase_app_id": ["1:123:android:abc"]}
    assert "measurement_id" not in url


def test_pretty_json_reindents() -> None:
    assert pretty_json('{"a":1}') == '{\n  "a": 1\n}'


@pytest.mark.parametrize("body", ["{", "", "not json"])
def test_pretty_json_falls_back_to_empty_string(body: str) -> None:
    assert pretty_json(body) == ""
