"""Wire models for the Measurement Protocol request body.

Optional top-level fields are ``None`` when absent and are dropped on
serialization, so the JSON never carries ``null`` or ``false`` for them.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


class UserPropertyValue(BaseModel):
    """``{"value": "<value>"}`` wrapper used under ``user_properties``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: StrictStr


class EventBody(BaseModel):
    """A single entry of the ``events`` array."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    params: dict[str, StrictStr | StrictInt | StrictFloat] = Field(default_factory=dict)


class MeasurementPayload(BaseModel):
    """Request body posted to the collect endpoint.

    Field declaration order is the emission order on the wire.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    client_id: str | None = None
    app_instance_id: str | None = None
    user_id: str | None = None
    user_properties: dict[str, UserPropertyValue] | None = None
    non_personalized_ads: Literal[True] | None = None
    events: list[EventBody]

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialize, omitting absent optional fields."""
        return self.model_dump_json(exclude_none=True, indent=indent)
