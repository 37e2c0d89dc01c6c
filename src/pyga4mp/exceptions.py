"""Custom exception hierarchy for pyga4mp."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyga4mp.validation import Violation


class Ga4mpError(Exception):
    """Base exception for all pyga4mp errors."""


class Ga4mpConfigError(Ga4mpError):
    """Invalid or missing configuration, or an unbuildable validation rule set."""


class Ga4mpValidationError(Ga4mpError):
    """One or more measurement rule violations, escalated to a hard failure.

    Only raised when both ``diagnostics_enabled`` and
    ``escalate_validation_errors`` are set on the client configuration.
    """

    def __init__(self, message: str, *, violations: Sequence[Violation] = ()) -> None:
        self.violations = tuple(violations)
        super().__init__(message)


class Ga4mpTransportError(Ga4mpError):
    """HTTP-level failure (network error, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)
