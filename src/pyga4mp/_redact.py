"""Helpers for safe debug logging.

Request URLs carry the stream's API secret as a query parameter, and hosts
occasionally pass credentials through event or default parameters.  This
module strips them before anything is logged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "api_secret",
        "apisecret",
        "authorization",
        "cookie",
    }
)

_REDACTED = "<redacted>"


def redact_url(url: str) -> str:
    """Return *url* with sensitive query parameters replaced."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, _REDACTED if key.lower() in _SENSITIVE_VALUE_KEYS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="<>")))


def redact_for_log(params: Mapping[str, Any] | None, *, max_string: int = 256) -> dict[str, Any] | None:
    """Return a loggable copy of a parameter or property map.

    Values under sensitive names are replaced and long strings are cut to
    *max_string* characters.  Other values (numbers, CLEAR) pass through.
    """
    if params is None:
        return None
    redacted: dict[str, Any] = {}
    for name, value in params.items():
        if str(name).lower() in _SENSITIVE_VALUE_KEYS:
            redacted[name] = _REDACTED
        elif isinstance(value, str) and len(value) > max_string:
            redacted[name] = f"{value[:max_string]}...<truncated>"
        else:
            redacted[name] = value
    return redacted
