"""HTTP transport for Measurement Protocol hits."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import NamedTuple, Protocol

import aiohttp

from pyga4mp._redact import redact_url
from pyga4mp.exceptions import Ga4mpTransportError

_logger = logging.getLogger(__name__)


class TransportResponse(NamedTuple):
    """Status code and body text of a completed request."""

    status: int
    text: str


class Transport(Protocol):
    """Structural transport interface used by the client.

    Implementations raise :class:`~pyga4mp.exceptions.Ga4mpTransportError`
    when no response was received.  Any HTTP status, including errors, is
    returned as a :class:`TransportResponse`.  Timeouts are the
    implementation's concern.
    """

    async def post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse: ...


class AiohttpTransport:
    """Transport backed by an :class:`aiohttp.ClientSession`."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 10.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse:
        safe_url = redact_url(url)
        _logger.debug("POST %s", safe_url)
        try:
            async with self._http.post(
                url,
                data=body.encode("utf-8"),
                headers=dict(headers),
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                return TransportResponse(status=resp.status, text=text)
        except aiohttp.ClientError as exc:
            raise Ga4mpTransportError(f"Request to {safe_url} failed: {exc}", url=safe_url) from exc
        except asyncio.TimeoutError as exc:
            raise Ga4mpTransportError(f"Request to {safe_url} timed out", url=safe_url) from exc
