from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import pytest

from pyga4mp._transport import AiohttpTransport, TransportResponse
from pyga4mp.exceptions import Ga4mpTransportError

_URL = "https://www.google-analytics.com/mp/collect?api_secret=s3cret&measurement_id=G-1"


class _FakeResponse:
    def __init__(self, status: int, text: str = "", error: BaseException | None = None) -> None:
        self.status = status
        self._text = text
        self._error = error

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        if self._error is not None:
            raise self._error
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: BaseException | None = None) -> None:
        self._response = response
        self._error = error
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.requests.append((url, kwargs))
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return self._response


@pytest.mark.asyncio
async def test_post_returns_status_and_text() -> None:
    session = _FakeSession(_FakeResponse(204, ""))
    transport = AiohttpTransport(session, timeout=3.0)  # type: ignore[arg-type]

    result = await transport.post(_URL, '{"events":[]}', {"Content-Type": "application/json"})

    assert result == TransportResponse(status=204, text="")
    url, kwargs = session.requests[0]
    assert url == _URL
    assert kwargs["data"] == b'{"events":[]}'
    assert kwargs["headers"] == {"Content-Type": "application/json"}
    assert kwargs["timeout"].total == 3.0


@pytest.mark.asyncio
async def test_http_errors_are_returned_not_raised() -> None:
    transport = AiohttpTransport(_FakeSession(_FakeResponse(500, "oops")))  # type: ignore[arg-type]

    result = await transport.post(_URL, "{}", {})

    assert result.status == 500
    assert result.text == "oops"


@pytest.mark.asyncio
async def test_client_error_is_wrapped_and_secret_redacted() -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("refused"))
    transport = AiohttpTransport(session)  # type: ignore[arg-type]

    with pytest.raises(Ga4mpTransportError) as exc_info:
        await transport.post(_URL, "{}", {})

    assert "refused" in str(exc_info.value)
    assert "s3cret" not in str(exc_info.value)
    assert "s3cret" not in exc_info.value.url


@pytest.mark.asyncio
async def test_timeout_is_wrapped() -> None:
    session = _FakeSession(_FakeResponse(200, error=asyncio.TimeoutError()))
    transport = AiohttpTransport(session)  # type: ignore[arg-type]

    with pytest.raises(Ga4mpTransportError, match="timed out"):
        await transport.post(_URL, "{}", {})
