"""State layer.

Owns the client's identity, configuration flags and accumulated
properties, and writes them through to a durable settings store.
"""

from pyga4mp.state.client_state import ClientState, new_device_id
from pyga4mp.state.snapshot import ClientSnapshot
from pyga4mp.state.store import InMemorySettingsStore, JsonFileSettingsStore, SettingsStore

__all__ = [
    "ClientSnapshot",
    "ClientState",
    "InMemorySettingsStore",
    "JsonFileSettingsStore",
    "SettingsStore",
    "new_device_id",
]
