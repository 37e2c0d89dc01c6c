"""Response model for the Measurement Protocol validation server."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ValidationMessage(BaseModel):
    """One finding reported by the validation server."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    field_path: str = ""
    description: str = ""
    validation_code: str = ""

    def __str__(self) -> str:
        location = f" at '{self.field_path}'" if self.field_path else ""
        return f"{self.validation_code or 'UNKNOWN'}{location}: {self.description}"


class ValidationResponse(BaseModel):
    """Body returned by ``/debug/mp/collect``.

    An empty ``validation_messages`` list means the hit was accepted.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    validation_messages: list[ValidationMessage] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.validation_messages
