"""Request body and endpoint URL construction.

These functions are pure: given the protocol variant, a state snapshot and
one (already merged) event they always produce the same output.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from urllib.parse import urlencode

from pyga4mp.config import MeasurementConfig, ProtocolVariant
from pyga4mp.models.params import ParamValue
from pyga4mp.models.payload import EventBody, MeasurementPayload, UserPropertyValue
from pyga4mp.state.snapshot import ClientSnapshot

_logger = logging.getLogger(__name__)


def build_payload(
    variant: ProtocolVariant,
    snapshot: ClientSnapshot,
    event_name: str,
    parameters: Mapping[str, ParamValue] | None,
) -> MeasurementPayload:
    """Build the request body model for a single event.

    - ``client_id`` (gtag) or ``app_instance_id`` (firebase) carries the
      device ID.
    - ``user_id`` is only present while the user is logged in.
    - ``user_properties`` is only present when there are any.
    - ``non_personalized_ads`` is only present when true.
    """
    user_properties: dict[str, UserPropertyValue] | None = None
    if snapshot.user_properties:
        user_properties = {
            name: UserPropertyValue(value=value) for name, value in snapshot.user_properties.items()
        }

    return MeasurementPayload(
        client_id=snapshot.device_id if variant == ProtocolVariant.GTAG else None,
        app_instance_id=snapshot.device_id if variant == ProtocolVariant.FIREBASE else None,
        user_id=snapshot.emitted_user_id(),
        user_properties=user_properties,
        non_personalized_ads=True if snapshot.non_personalized_ads else None,
        events=[EventBody(name=event_name, params=dict(parameters) if parameters else {})],
    )


def serialize_payload(
    variant: ProtocolVariant,
    snapshot: ClientSnapshot,
    event_name: str,
    parameters: Mapping[str, ParamValue] | None,
) -> str:
    """Return the compact JSON request body for a single event."""
    return build_payload(variant, snapshot, event_name, parameters).to_json()


def build_collect_url(config: MeasurementConfig) -> str:
    """``<endpoint>?api_secret=<secret>&measurement_id|firebase_app_id=<id>``."""
    stream_key = "firebase_app_id" if config.protocol_variant == ProtocolVariant.FIREBASE else "measurement_id"
    query = urlencode({"api_secret": config.api_secret, stream_key: config.stream_id})
    return f"{config.endpoint}?{query}"


def pretty_json(body: str) -> str:
    """Re-indent a JSON document for debug logs.

    Returns ``""`` (and logs) when *body* is not valid JSON.
    """
    try:
        return json.dumps(json.loads(body), indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        _logger.debug("Malformed JSON string: %s", body)
        return ""
