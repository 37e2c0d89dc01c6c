"""Durable key/value settings stores.

The client persists its configuration flags, identity and properties
through the :class:`SettingsStore` protocol.  Hosts may plug in any
implementation (platform preferences, a database row, ...); two are
provided here.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from pyga4mp.models.params import ParamValue

_logger = logging.getLogger(__name__)

StoredMap = Mapping[str, ParamValue]


class SettingsStore(Protocol):
    """Structural settings-store interface.

    Writes must be durable when the call returns.  The client is the only
    writer; concurrent access from several processes is not coordinated.
    """

    def get_string(self, key: str) -> str | None: ...

    def set_string(self, key: str, value: str) -> None: ...

    def get_string_map(self, key: str) -> dict[str, ParamValue] | None: ...

    def set_map(self, key: str, value: StoredMap) -> None: ...

    def remove(self, key: str) -> None: ...


def _coerce_string(key: str, value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    _logger.warning("Ignoring non-string setting %s=%r", key, value)
    return None


def _coerce_map(key: str, value: Any) -> dict[str, ParamValue] | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        _logger.warning("Ignoring non-mapping setting %s=%r", key, value)
        return None
    result: dict[str, ParamValue] = {}
    for name, item in value.items():
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            _logger.warning("Dropping unsupported value in setting %s: %s=%r", key, name, item)
            continue
        result[str(name)] = item
    return result


class InMemorySettingsStore:
    """Dict-backed store; contents last for the lifetime of the object."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial)) if initial else {}

    def get_string(self, key: str) -> str | None:
        return _coerce_string(key, self._data.get(key))

    def set_string(self, key: str, value: str) -> None:
        self._data[key] = value

    def get_string_map(self, key: str) -> dict[str, ParamValue] | None:
        return _coerce_map(key, self._data.get(key))

    def set_map(self, key: str, value: StoredMap) -> None:
        self._data[key] = dict(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def as_dict(self) -> dict[str, Any]:
        """Deep copy of the raw contents."""
        return copy.deepcopy(self._data)


class JsonFileSettingsStore:
    """Store persisted as a single JSON object on disk.

    The file is loaded once at construction and rewritten atomically
    (temporary file + ``os.replace``) on every write.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._data: dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Settings file %s is corrupt; starting empty", self._path)
            return {}
        if not isinstance(data, dict):
            _logger.warning("Settings file %s does not hold an object; starting empty", self._path)
            return {}
        return data

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._data, handle, ensure_ascii=False, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_string(self, key: str) -> str | None:
        return _coerce_string(key, self._data.get(key))

    def set_string(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def get_string_map(self, key: str) -> dict[str, ParamValue] | None:
        return _coerce_map(key, self._data.get(key))

    def set_map(self, key: str, value: StoredMap) -> None:
        self._data[key] = dict(value)
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()
