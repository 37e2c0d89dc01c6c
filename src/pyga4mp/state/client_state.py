"""Concurrency-guarded client state with write-through persistence.

All mutations go through one serial domain: each setter schedules a task
that takes the state lock, derives a new immutable :class:`ClientSnapshot`,
validates it (when diagnostics are on), writes the changed fields to the
settings store and only then swaps the snapshot reference.  Tasks start in
submission order and the lock is FIFO, so mutations commit one at a time in
the order they were submitted.

Readers never take the lock.  They either read :attr:`ClientState.snapshot`
directly or call :meth:`ClientState.settled` to first wait for every
mutation submitted so far.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from collections.abc import Callable, Mapping

from pyga4mp._constants import (
    KEY_ANALYTICS_ENABLED,
    KEY_DEFAULT_PARAMETERS,
    KEY_DEVICE_ID,
    KEY_NON_PERSONALIZED_ADS,
    KEY_USER_ID,
    KEY_USER_PROPERTIES,
    bool_to_setting,
    setting_to_bool,
)
from pyga4mp._redact import redact_for_log
from pyga4mp.models.params import ParamInput, ParamValue, apply_default_parameters, normalize_parameters
from pyga4mp.state.snapshot import ClientSnapshot
from pyga4mp.state.store import SettingsStore
from pyga4mp.validation import (
    DEFAULT_RULES,
    ValidationRules,
    Violation,
    handle_violations,
    validate_parameters,
    validate_user_id,
    validate_user_property,
)

_logger = logging.getLogger(__name__)

Mutation = Callable[[ClientSnapshot], tuple[ClientSnapshot, list[Violation]]]
StoredValue = str | Mapping[str, ParamValue] | None


def new_device_id() -> str:
    """Random device identifier (uppercase UUID4)."""
    return str(uuid.uuid4()).upper()


def _stored_fields(snapshot: ClientSnapshot) -> dict[str, StoredValue]:
    # Write order; login state is not persisted.
    return {
        KEY_ANALYTICS_ENABLED: bool_to_setting(snapshot.analytics_collection_enabled),
        KEY_NON_PERSONALIZED_ADS: bool_to_setting(snapshot.non_personalized_ads),
        KEY_DEVICE_ID: snapshot.device_id,
        KEY_USER_ID: snapshot.user_id,
        KEY_DEFAULT_PARAMETERS: snapshot.default_parameters,
        KEY_USER_PROPERTIES: snapshot.user_properties,
    }


class ClientState:
    """Identity, flags and properties of one measurement client.

    Parameters
    ----------
    store : SettingsStore
        Durable store the persisted fields are restored from and written to.
    rules : ValidationRules
        Limits used when diagnostics are enabled.
    diagnostics_enabled : bool
        Validate mutations against *rules*.
    escalate_validation_errors : bool
        Abort a mutation with :class:`~pyga4mp.exceptions.Ga4mpValidationError`
        when it breaks a rule (requires *diagnostics_enabled*).
    device_id_factory : callable
        Produces new device IDs on first start and on reset.
    """

    def __init__(
        self,
        store: SettingsStore,
        *,
        rules: ValidationRules = DEFAULT_RULES,
        diagnostics_enabled: bool = False,
        escalate_validation_errors: bool = False,
        device_id_factory: Callable[[], str] = new_device_id,
    ) -> None:
        self._store = store
        self._rules = rules
        self._diagnostics_enabled = diagnostics_enabled
        self._escalate = escalate_validation_errors
        self._device_id_factory = device_id_factory
        self._lock = asyncio.Lock()
        self._pending: list[asyncio.Task[ClientSnapshot]] = []
        self._snapshot = self._restore()

    # ------------------------------------------------------------------
    # Restore / persistence
    # ------------------------------------------------------------------

    def _restore(self) -> ClientSnapshot:
        store = self._store

        device_id = store.get_string(KEY_DEVICE_ID)
        if device_id:
            _logger.debug("Restoring device ID: %s", device_id)
        else:
            device_id = self._device_id_factory()
            store.set_string(KEY_DEVICE_ID, device_id)
            _logger.debug("Storing new device ID: %s", device_id)

        user_id = store.get_string(KEY_USER_ID)
        if user_id is not None:
            _logger.debug("Restoring user ID: %s", user_id)

        raw_properties = store.get_string_map(KEY_USER_PROPERTIES)
        user_properties = {name: str(value) for name, value in raw_properties.items()} if raw_properties else None
        if user_properties:
            _logger.debug("Restoring user properties: %s", redact_for_log(user_properties))

        default_parameters = store.get_string_map(KEY_DEFAULT_PARAMETERS)
        if default_parameters:
            _logger.debug("Restoring default event parameters: %s", redact_for_log(default_parameters))

        enabled = setting_to_bool(store.get_string(KEY_ANALYTICS_ENABLED), True)
        non_personalized_ads = setting_to_bool(store.get_string(KEY_NON_PERSONALIZED_ADS), True)

        # Login state is deliberately not persisted.
        return ClientSnapshot(
            device_id=device_id,
            user_id=user_id,
            user_logged_in=False,
            analytics_collection_enabled=enabled,
            non_personalized_ads=non_personalized_ads,
            default_parameters=default_parameters,
            user_properties=user_properties,
        )

    def _write_key(self, key: str, value: StoredValue) -> None:
        if value is None or (isinstance(value, Mapping) and not value):
            self._store.remove(key)
        elif isinstance(value, str):
            self._store.set_string(key, value)
        else:
            self._store.set_map(key, value)

    def _write_through(self, old: ClientSnapshot, new: ClientSnapshot) -> None:
        """Persist every persisted field that differs between *old* and *new*.

        When a store write fails, the keys touched so far (the failing one
        included) are put back to their *old* values before the error is
        re-raised, so the store keeps matching the committed snapshot.
        """
        before = _stored_fields(old)
        after = _stored_fields(new)
        touched: list[str] = []
        try:
            for key, value in after.items():
                if before[key] == value:
                    continue
                touched.append(key)
                self._write_key(key, value)
        except Exception:
            for key in reversed(touched):
                try:
                    self._write_key(key, before[key])
                except Exception:
                    _logger.warning("Could not restore setting %s after a failed write", key, exc_info=True)
            raise

    # ------------------------------------------------------------------
    # Serial mutation domain
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ClientSnapshot:
        """The most recently committed state."""
        return self._snapshot

    @property
    def diagnostics_enabled(self) -> bool:
        return self._diagnostics_enabled

    @property
    def escalate_validation_errors(self) -> bool:
        return self._escalate

    @property
    def rules(self) -> ValidationRules:
        return self._rules

    def submit(self, description: str, mutation: Mutation) -> asyncio.Task[ClientSnapshot]:
        """Schedule *mutation* behind every previously submitted one.

        The returned task resolves to the committed snapshot.  Callers may
        await it or drop it; a failure of a dropped task is logged.
        """
        task = asyncio.get_running_loop().create_task(
            self._run(description, mutation),
            name=f"pyga4mp:{description}",
        )
        self._pending.append(task)
        task.add_done_callback(self._mutation_done)
        return task

    async def _run(self, description: str, mutation: Mutation) -> ClientSnapshot:
        async with self._lock:
            current = self._snapshot
            updated, violations = mutation(current)
            # Raises under escalation, before anything is committed.
            handle_violations(
                violations,
                diagnostics_enabled=self._diagnostics_enabled,
                escalate=self._escalate,
            )
            self._write_through(current, updated)
            self._snapshot = updated
            _logger.debug("Committed %s", description)
            return updated

    def _mutation_done(self, task: asyncio.Task[ClientSnapshot]) -> None:
        with contextlib.suppress(ValueError):
            self._pending.remove(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("State mutation %s failed: %s", task.get_name(), exc)

    async def settled(self) -> ClientSnapshot:
        """Wait for all mutations submitted so far, then return the snapshot.

        Mutations submitted while waiting are not waited for, but may
        already be reflected in the result.
        """
        pending = list(self._pending)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return self._snapshot

    def _validate(self, validator: Callable[..., list[Violation]], *args: object) -> list[Violation]:
        if not self._diagnostics_enabled:
            return []
        return validator(*args, self._rules)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_analytics_collection_enabled(self, enabled: bool) -> asyncio.Task[ClientSnapshot]:
        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            _logger.debug("Analytics collection %s", "enabled" if enabled else "disabled")
            return current.model_copy(update={"analytics_collection_enabled": bool(enabled)}), []

        return self.submit("set_analytics_collection_enabled", mutate)

    def set_device_id(self, device_id: str) -> asyncio.Task[ClientSnapshot]:
        if not isinstance(device_id, str) or not device_id:
            raise ValueError("device_id must be a non-empty string")

        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            _logger.debug("Set device ID: %s", device_id)
            return current.model_copy(update={"device_id": device_id}), []

        return self.submit("set_device_id", mutate)

    def set_non_personalized_ads(self, enabled: bool) -> asyncio.Task[ClientSnapshot]:
        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            _logger.debug("Non-personalized ads %s", "enabled" if enabled else "disabled")
            return current.model_copy(update={"non_personalized_ads": bool(enabled)}), []

        return self.submit("set_non_personalized_ads", mutate)

    def set_user_logged_in(self, logged_in: bool) -> asyncio.Task[ClientSnapshot]:
        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            _logger.debug("User is %s", "logged in" if logged_in else "logged out")
            return current.model_copy(update={"user_logged_in": bool(logged_in)}), []

        return self.submit("set_user_logged_in", mutate)

    def set_user_property(self, name: str, value: str | None) -> asyncio.Task[ClientSnapshot]:
        if not isinstance(name, str):
            raise TypeError(f"User property names must be str, got {type(name).__name__}")
        if value is not None and not isinstance(value, str):
            raise TypeError(f"User property values must be str or None, got {type(value).__name__}")

        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            _logger.debug("Set user property: %s=%r", name, value)
            properties = dict(current.user_properties or {})
            if value is None:
                properties.pop(name, None)
            else:
                properties[name] = value
            updated = current.model_copy(update={"user_properties": properties or None})
            # Count is checked after the update.
            violations = self._validate(validate_user_property, name, value, len(properties))
            return updated, violations

        return self.submit("set_user_property", mutate)

    def set_user_id(self, user_id: str | None) -> asyncio.Task[ClientSnapshot]:
        if user_id is not None and not isinstance(user_id, str):
            raise TypeError(f"user_id must be str or None, got {type(user_id).__name__}")

        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            _logger.debug("Set user ID: %s", user_id)
            return current.model_copy(update={"user_id": user_id}), self._validate(validate_user_id, user_id)

        return self.submit("set_user_id", mutate)

    def set_default_event_parameters(
        self,
        parameters: Mapping[str, ParamInput] | None,
    ) -> asyncio.Task[ClientSnapshot]:
        updates = normalize_parameters(parameters) if parameters is not None else None
        clear_all = parameters is None

        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            if clear_all:
                _logger.debug("Cleared default event parameters")
                return current.model_copy(update={"default_parameters": None}), []
            defaults = apply_default_parameters(current.default_parameters, updates or {})
            _logger.debug("Default event parameters now: %s", redact_for_log(defaults))
            violations = self._validate(validate_parameters, "set_default_event_parameters", updates)
            return current.model_copy(update={"default_parameters": defaults}), violations

        return self.submit("set_default_event_parameters", mutate)

    def reset_analytics_data(self) -> asyncio.Task[ClientSnapshot]:
        """Rotate the device ID and forget the user, properties and defaults."""

        def mutate(current: ClientSnapshot) -> tuple[ClientSnapshot, list[Violation]]:
            device_id = self._device_id_factory()
            _logger.debug("Reset analytics data; new device ID: %s", device_id)
            updated = current.model_copy(
                update={
                    "device_id": device_id,
                    "user_id": None,
                    "user_logged_in": False,
                    "user_properties": None,
                    "default_parameters": None,
                }
            )
            return updated, []

        return self.submit("reset_analytics_data", mutate)
