"""High-level async client for the GA4 Measurement Protocol."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

import aiohttp
from pydantic import ValidationError

from pyga4mp._constants import JSON_HEADERS
from pyga4mp._redact import redact_for_log, redact_url
from pyga4mp._transport import AiohttpTransport, Transport
from pyga4mp.config import MeasurementConfig
from pyga4mp.exceptions import Ga4mpError, Ga4mpTransportError
from pyga4mp.models.params import ParamInput, ParamValue, merge_parameters, normalize_parameters
from pyga4mp.models.validation_response import ValidationResponse
from pyga4mp.serializer import build_collect_url, pretty_json, serialize_payload
from pyga4mp.state.client_state import ClientState, new_device_id
from pyga4mp.state.snapshot import ClientSnapshot
from pyga4mp.state.store import SettingsStore
from pyga4mp.validation import DEFAULT_RULES, ValidationRules, handle_violations, validate_event

_logger = logging.getLogger(__name__)


class MeasurementClient:
    """Async client that accumulates user state and sends events to GA4.

    Create one client per process and share it.  Usage::

        store = JsonFileSettingsStore("~/.myapp/analytics.json")
        async with MeasurementClient(config, store) as client:
            await client.set_user_property("tier", "gold")
            await client.log_event("level_up", {"level": 3})

    Setters return the scheduled :class:`asyncio.Task` of the mutation.
    Awaiting it waits for the change to be committed (memory and store);
    not awaiting it is fine, later :meth:`log_event` calls still observe it.

    Events are sent fire-and-forget: transport failures and server errors
    are logged and the hit is dropped.  There is no retry, backoff or
    offline queue.
    """

    def __init__(
        self,
        config: MeasurementConfig,
        store: SettingsStore,
        *,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
        rules: ValidationRules = DEFAULT_RULES,
        device_id_factory: Callable[[], str] = new_device_id,
    ) -> None:
        self._config = config
        self._rules = rules
        self._state = ClientState(
            store,
            rules=rules,
            diagnostics_enabled=config.diagnostics_enabled,
            escalate_validation_errors=config.escalate_validation_errors,
            device_id_factory=device_id_factory,
        )
        self._transport = transport
        self._owns_transport = transport is None
        self._external_session = session is not None
        self._http_session = session
        self._collect_url = build_collect_url(config)
        self._sends: set[asyncio.Task[None]] = set()
        _logger.debug(
            "Initialized measurement client (variant=%s, endpoint=%s)",
            config.protocol_variant,
            redact_url(self._collect_url),
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MeasurementClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = AiohttpTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.flush()
        if self._owns_transport:
            self._transport = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    async def flush(self) -> None:
        """Wait for queued mutations and in-flight sends to finish."""
        await self._state.settled()
        sends = list(self._sends)
        if sends:
            await asyncio.gather(*sends, return_exceptions=True)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def config(self) -> MeasurementConfig:
        return self._config

    @property
    def snapshot(self) -> ClientSnapshot:
        """Most recently committed state (does not wait for queued mutations)."""
        return self._state.snapshot

    @property
    def device_id(self) -> str:
        return self._state.snapshot.device_id

    @property
    def user_id(self) -> str | None:
        return self._state.snapshot.user_id

    @property
    def user_is_logged_in(self) -> bool:
        return self._state.snapshot.user_logged_in

    @property
    def analytics_collection_enabled(self) -> bool:
        return self._state.snapshot.analytics_collection_enabled

    @property
    def non_personalized_ads(self) -> bool:
        return self._state.snapshot.non_personalized_ads

    @property
    def default_parameters(self) -> dict[str, ParamValue] | None:
        params = self._state.snapshot.default_parameters
        return dict(params) if params is not None else None

    @property
    def user_properties(self) -> dict[str, str] | None:
        properties = self._state.snapshot.user_properties
        return dict(properties) if properties is not None else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_analytics_collection_enabled(self, enabled: bool) -> asyncio.Task[ClientSnapshot]:
        """Enable or disable sending.  Persisted; enabled by default."""
        return self._state.set_analytics_collection_enabled(enabled)

    def set_device_id(self, device_id: str) -> asyncio.Task[ClientSnapshot]:
        """Override the random device ID (e.g. with a web client ID)."""
        return self._state.set_device_id(device_id)

    def set_non_personalized_ads(self, enabled: bool) -> asyncio.Task[ClientSnapshot]:
        """Set the ``non_personalized_ads`` flag.  Persisted; on by default."""
        return self._state.set_non_personalized_ads(enabled)

    def set_user_logged_in(self, logged_in: bool) -> asyncio.Task[ClientSnapshot]:
        """Mark the user as logged in; the user ID is only sent while logged in.

        Not persisted: every new client starts logged out.
        """
        return self._state.set_user_logged_in(logged_in)

    def set_user_property(self, name: str, value: str | None) -> asyncio.Task[ClientSnapshot]:
        """Set a persisted user property; ``None`` removes it."""
        return self._state.set_user_property(name, value)

    def set_user_id(self, user_id: str | None) -> asyncio.Task[ClientSnapshot]:
        """Set the persisted user ID; ``None`` removes it."""
        return self._state.set_user_id(user_id)

    def set_default_event_parameters(
        self,
        parameters: Mapping[str, ParamInput] | None,
    ) -> asyncio.Task[ClientSnapshot]:
        """Add parameters sent with every event.

        Values are layered on the existing defaults; a value of
        :data:`~pyga4mp.models.params.CLEAR` removes that default and
        ``None`` removes all of them.  Event parameters take precedence.
        """
        return self._state.set_default_event_parameters(parameters)

    def reset_analytics_data(self) -> asyncio.Task[ClientSnapshot]:
        """Clear user ID, user properties and defaults, log out and rotate the device ID."""
        return self._state.reset_analytics_data()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise Ga4mpError("Client not initialized. Use 'async with MeasurementClient(...) as client:'")
        return self._transport

    async def log_event(
        self,
        name: str,
        parameters: Mapping[str, ParamInput] | None = None,
    ) -> asyncio.Task[None] | None:
        """Log one event.

        Waits for previously submitted mutations, merges the default
        parameters under *parameters*, validates (diagnostics only),
        serializes and schedules the upload.

        Returns
        -------
        asyncio.Task or None
            The upload task, or ``None`` when collection is disabled.

        Raises
        ------
        Ga4mpValidationError
            If diagnostics and escalation are enabled and the event breaks
            a rule.  Nothing is sent in that case.
        TypeError
            If a parameter value is not ``str``, ``int``, ``float`` or CLEAR.
        ValueError
            If a numeric parameter is not finite or does not fit in 64 bits.
        """
        event_params = normalize_parameters(parameters)
        snapshot = await self._state.settled()
        _logger.debug("Logging event '%s' params=%s", name, redact_for_log(event_params))

        merged = merge_parameters(snapshot.default_parameters, event_params)
        if self._config.diagnostics_enabled:
            handle_violations(
                validate_event(name, merged, self._rules),
                diagnostics_enabled=True,
                escalate=self._config.escalate_validation_errors,
            )

        if not snapshot.analytics_collection_enabled:
            _logger.debug("Analytics collection is disabled; not sending '%s'", name)
            return None

        transport = self._require_transport()
        body = serialize_payload(self._config.protocol_variant, snapshot, name, merged)
        if self._config.diagnostics_enabled:
            _logger.debug("Uploading event '%s':\n%s", name, pretty_json(body))

        task = asyncio.get_running_loop().create_task(
            self._send(transport, name, body),
            name=f"pyga4mp:send:{name}",
        )
        self._sends.add(task)
        task.add_done_callback(self._sends.discard)
        return task

    async def _send(self, transport: Transport, name: str, body: str) -> None:
        try:
            response = await transport.post(self._collect_url, body, JSON_HEADERS)
        except Ga4mpTransportError as exc:
            _logger.warning("Error during '%s' upload: %s", name, exc)
            return
        except Exception:
            _logger.warning("Unexpected failure during '%s' upload", name, exc_info=True)
            return

        if response.status >= 500:
            # TODO: retry with backoff; the hit is currently dropped.
            _logger.warning("Server error (%d) during '%s' upload", response.status, name)
        elif response.status >= 400:
            _logger.warning("Upload of '%s' rejected (%d): %s", name, response.status, response.text[:200])
        else:
            _logger.debug("Successful upload for '%s'. Status code: %d", name, response.status)

        if self._config.diagnostics_enabled and self._config.use_validation_endpoint:
            self._log_validation_response(name, response.text)

    def _log_validation_response(self, name: str, text: str) -> None:
        try:
            result = ValidationResponse.model_validate_json(text)
        except ValidationError:
            _logger.debug("Response for '%s' upload:\n%s", name, text)
            return
        if result.is_valid:
            _logger.debug("Validation server accepted '%s'", name)
            return
        for message in result.validation_messages:
            _logger.warning("Validation server message for '%s': %s", name, message)
