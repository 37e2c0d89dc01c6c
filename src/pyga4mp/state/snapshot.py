"""Immutable view of the client state."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, field_validator


class ClientSnapshot(BaseModel):
    """Identity, flags and properties at one point in time.

    Snapshots are never modified: each mutation produces a new one with
    ``model_copy(update=...)`` and fresh dict instances, so a reader that
    holds a snapshot always sees a consistent state.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    device_id: str
    user_id: str | None = None
    user_logged_in: bool = False
    analytics_collection_enabled: bool = True
    non_personalized_ads: bool = True
    default_parameters: dict[str, StrictStr | StrictInt | StrictFloat] | None = None
    user_properties: dict[str, str] | None = None

    @field_validator("default_parameters", "user_properties")
    @classmethod
    def _empty_is_absent(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        return value or None

    def emitted_user_id(self) -> str | None:
        """User ID as it goes on the wire (only while logged in)."""
        return self.user_id if self.user_logged_in else None
