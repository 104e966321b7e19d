"""
Test helpers for Identity Kit tests.

Scripted flows and refreshers, a recording network client and builders
for token responses.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import httpx

from identity_kit.models import AccessTokenRefreshRequest, AccessTokenResponse, NetworkResponse

TOKEN_ENDPOINT = "https://auth.example.com/oauth/token"
RESOURCE_URL = "https://api.example.com/resource"


def make_token(
    access_token: str = "access-1",
    *,
    expires_in: float | None = 3600,
    refresh_token: str | None = None,
    **kwargs: Any,
) -> AccessTokenResponse:
    """Build an access token response for tests."""
    return AccessTokenResponse(
        access_token=access_token,
        token_type="Bearer",
        expires_in=timedelta(seconds=expires_in) if expires_in is not None else None,
        refresh_token=refresh_token,
        **kwargs,
    )


def json_response(
    body: dict[str, Any] | list[Any] | str,
    status_code: int = 200,
) -> NetworkResponse:
    """Build a NetworkResponse carrying a JSON body."""
    data = body.encode() if isinstance(body, str) else json.dumps(body).encode()
    response = httpx.Response(
        status_code,
        content=data,
        headers={"Content-Type": "application/json"},
        request=httpx.Request("POST", TOKEN_ENDPOINT),
    )
    return NetworkResponse(data=data, response=response)


def status_response(request: httpx.Request, status_code: int) -> NetworkResponse:
    """Build a NetworkResponse with an empty JSON body and ``status_code``."""
    response = httpx.Response(status_code, content=b"{}", request=request)
    return NetworkResponse(data=b"{}", response=response)


def resource_request() -> httpx.Request:
    return httpx.Request("GET", RESOURCE_URL)


def run(coro: Any) -> Any:
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


class ScriptedFlow:
    """Grant flow returning scripted results, in order.

    Each result is either an AccessTokenResponse or an exception to raise.
    The last result repeats once the script is exhausted.
    """

    def __init__(self, *results: AccessTokenResponse | BaseException, delay: float = 0) -> None:
        self.results = list(results) or [make_token()]
        self.delay = delay
        self.calls = 0

    async def authenticate(self) -> AccessTokenResponse:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, BaseException):
            raise result
        return result


class ScriptedRefresher:
    """Refresher returning scripted results and recording requests."""

    def __init__(self, *results: AccessTokenResponse | BaseException) -> None:
        self.results = list(results) or [make_token("refreshed", refresh_token="rt-2")]
        self.requests: list[AccessTokenRefreshRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def refresh(self, request: AccessTokenRefreshRequest) -> AccessTokenResponse:
        self.requests.append(request)
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, BaseException):
            raise result
        return result


class RecordingNetworkClient:
    """Network client answering requests from a handler and recording them."""

    def __init__(self, handler: Callable[[httpx.Request], NetworkResponse] | None = None) -> None:
        self.handler = handler or (lambda request: status_response(request, 200))
        self.requests: list[httpx.Request] = []

    async def perform(self, request: httpx.Request) -> NetworkResponse:
        self.requests.append(request)
        return self.handler(request)


def token_transport(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
    """Build an httpx client over a MockTransport that records requests."""
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(record)), requests
