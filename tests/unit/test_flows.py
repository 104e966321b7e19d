"""Unit tests for grant flows and the token refresher.

Requests go through HTTPXNetworkClient over httpx.MockTransport, so the
wire format of each grant is checked end to end.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from identity_kit.authorizers import HTTPBasicAuthorizer
from identity_kit.config import RetryConfig
from identity_kit.errors import (
    AuthenticationFailedError,
    InvalidTokenResponseError,
    OAuthErrorCode,
    OAuthErrorResponse,
    TransportError,
)
from identity_kit.flows import (
    AccessTokenRefresher,
    AuthorizationGrantFlow,
    ClientCredentialsGrantFlow,
    DefaultAccessTokenRefresher,
    ResourceOwnerPasswordCredentialsGrantFlow,
)
from identity_kit.models import AccessTokenRefreshRequest, Scope
from identity_kit.network import HTTPXNetworkClient

from ..helpers import TOKEN_ENDPOINT, run, token_transport


def network_client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[HTTPXNetworkClient, list[httpx.Request]]:
    client, requests = token_transport(handler)
    return HTTPXNetworkClient(client=client, retry_config=RetryConfig(max_retries=0)), requests


def respond(body: dict[str, Any], status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, json=body)


def form(request: httpx.Request) -> dict[str, list[str]]:
    return parse_qs(request.content.decode())


class StaticCredentialsProvider:
    """Credentials provider recording the outcome callbacks."""

    def __init__(self, username: str = "alice", password: str = "wonderland") -> None:
        self.username = username
        self.password = password
        self.finished = 0
        self.failures: list[BaseException] = []

    async def credentials(self) -> tuple[str, str]:
        return self.username, self.password

    def did_finish_authenticating(self) -> None:
        self.finished += 1

    def did_fail_authenticating(self, error: BaseException) -> None:
        self.failures.append(error)


class TestClientCredentialsGrantFlow:
    """Tests for the client credentials grant."""

    def test_authenticates(self) -> None:
        client, requests = network_client(
            respond({"access_token": "cc", "token_type": "Bearer", "expires_in": 60})
        )
        flow = ClientCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            scope=Scope.parse("read write"),
            client_authorizer=HTTPBasicAuthorizer.for_client("client", "secret"),
            network_client=client,
        )

        token = run(flow.authenticate())

        assert isinstance(flow, AuthorizationGrantFlow)
        assert token.access_token == "cc"
        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_ENDPOINT
        assert request.headers["Authorization"] == (
            "Basic " + base64.b64encode(b"client:secret").decode()
        )
        assert form(request) == {
            "grant_type": ["client_credentials"],
            "scope": ["read write"],
        }

    def test_additional_parameters(self) -> None:
        client, requests = network_client(respond({"access_token": "cc", "token_type": "Bearer"}))
        flow = ClientCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            client_authorizer=HTTPBasicAuthorizer.for_client("client", "secret"),
            network_client=client,
            additional_parameters={"audience": "https://api.example.com"},
        )

        run(flow.authenticate())

        assert form(requests[0]) == {
            "grant_type": ["client_credentials"],
            "audience": ["https://api.example.com"],
        }

    def test_rejects_refresh_token(self) -> None:
        client, _ = network_client(
            respond({"access_token": "cc", "token_type": "Bearer", "refresh_token": "nope"})
        )
        flow = ClientCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            client_authorizer=HTTPBasicAuthorizer.for_client("client", "secret"),
            network_client=client,
        )

        with pytest.raises(AuthenticationFailedError) as exc_info:
            run(flow.authenticate())

        assert exc_info.value.contains(InvalidTokenResponseError)

    def test_oauth_error(self) -> None:
        client, _ = network_client(respond({"error": "invalid_client"}, status_code=401))
        flow = ClientCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            client_authorizer=HTTPBasicAuthorizer.for_client("client", "wrong"),
            network_client=client,
        )

        with pytest.raises(OAuthErrorResponse) as exc_info:
            run(flow.authenticate())

        assert exc_info.value.error is OAuthErrorCode.INVALID_CLIENT

    def test_transport_error(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadError("connection reset", request=request)

        client, _ = network_client(fail)
        flow = ClientCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            client_authorizer=HTTPBasicAuthorizer.for_client("client", "secret"),
            network_client=client,
        )

        with pytest.raises(TransportError) as exc_info:
            run(flow.authenticate())

        assert exc_info.value.contains(httpx.ReadError)


class TestResourceOwnerPasswordCredentialsGrantFlow:
    """Tests for the resource owner password credentials grant."""

    def test_authenticates(self) -> None:
        client, requests = network_client(
            respond({"access_token": "pw", "token_type": "Bearer", "refresh_token": "rt"})
        )
        provider = StaticCredentialsProvider()
        flow = ResourceOwnerPasswordCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            provider,
            scope=Scope.parse("profile"),
            client_authorizer=HTTPBasicAuthorizer.for_client("client", "secret"),
            network_client=client,
        )

        token = run(flow.authenticate())

        assert token.access_token == "pw"
        assert token.refresh_token == "rt"
        assert provider.finished == 1
        assert provider.failures == []
        assert form(requests[0]) == {
            "grant_type": ["password"],
            "username": ["alice"],
            "password": ["wonderland"],
            "scope": ["profile"],
        }

    def test_without_client_authorizer(self) -> None:
        client, requests = network_client(respond({"access_token": "pw", "token_type": "Bearer"}))
        flow = ResourceOwnerPasswordCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            StaticCredentialsProvider(),
            network_client=client,
        )

        run(flow.authenticate())

        assert "Authorization" not in requests[0].headers

    def test_reports_failure_to_provider(self) -> None:
        client, _ = network_client(respond({"error": "invalid_grant"}, status_code=400))
        provider = StaticCredentialsProvider(password="wrong")
        flow = ResourceOwnerPasswordCredentialsGrantFlow(
            TOKEN_ENDPOINT,
            provider,
            network_client=client,
        )

        with pytest.raises(OAuthErrorResponse):
            run(flow.authenticate())

        assert provider.finished == 0
        assert len(provider.failures) == 1
        assert isinstance(provider.failures[0], OAuthErrorResponse)


class TestDefaultAccessTokenRefresher:
    """Tests for the refresh token grant."""

    def test_refreshes(self) -> None:
        client, requests = network_client(
            respond(
                {
                    "access_token": "new",
                    "token_type": "Bearer",
                    "expires_in": 3600,
                    "refresh_token": "rt-2",
                }
            )
        )
        refresher = DefaultAccessTokenRefresher(
            TOKEN_ENDPOINT,
            client_authorizer=HTTPBasicAuthorizer.for_client("client", "secret"),
            network_client=client,
        )

        token = run(
            refresher.refresh(
                AccessTokenRefreshRequest(refresh_token="rt-1", scope=Scope.parse("read"))
            )
        )

        assert isinstance(refresher, AccessTokenRefresher)
        assert token.access_token == "new"
        assert token.refresh_token == "rt-2"
        assert form(requests[0]) == {
            "grant_type": ["refresh_token"],
            "refresh_token": ["rt-1"],
            "scope": ["read"],
        }

    def test_keeps_refresh_token_when_not_rotated(self) -> None:
        client, _ = network_client(respond({"access_token": "new", "token_type": "Bearer"}))
        refresher = DefaultAccessTokenRefresher(TOKEN_ENDPOINT, network_client=client)

        token = run(refresher.refresh(AccessTokenRefreshRequest(refresh_token="rt-1")))

        assert token.refresh_token == "rt-1"

    def test_invalid_grant(self) -> None:
        client, _ = network_client(
            lambda request: httpx.Response(
                400,
                content=json.dumps(
                    {"error": "invalid_grant", "error_description": "Refresh token revoked"}
                ).encode(),
            )
        )
        refresher = DefaultAccessTokenRefresher(TOKEN_ENDPOINT, network_client=client)

        with pytest.raises(OAuthErrorResponse) as exc_info:
            run(refresher.refresh(AccessTokenRefreshRequest(refresh_token="rt-1")))

        assert exc_info.value.error_description == "Refresh token revoked"
        assert exc_info.value.status_code == 400
