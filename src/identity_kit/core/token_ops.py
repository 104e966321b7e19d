"""Centralized token request building for Identity Kit - December 2025 State of Art.

Provides shared token request construction used by all grant flows
and the refresher.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from ..models import Scope


class GrantType(StrEnum):
    """OAuth 2.0 grant types."""

    CLIENT_CREDENTIALS = "client_credentials"
    PASSWORD = "password"
    REFRESH_TOKEN = "refresh_token"
    AUTHORIZATION_CODE = "authorization_code"


class TokenRequestBuilder:
    """Builds form-encoded token endpoint requests.

    Additional parameters are merged over the standard ones, so an explicitly
    configured key replaces the generated value.
    """

    def __init__(
        self,
        token_endpoint: str,
        *,
        additional_parameters: dict[str, Any] | None = None,
    ) -> None:
        """Initialize token request builder.

        Args:
            token_endpoint: URL of the token endpoint.
            additional_parameters: Extra body parameters sent with every request.
        """
        self.token_endpoint = token_endpoint
        self.additional_parameters = dict(additional_parameters or {})

    def build_client_credentials_request(
        self,
        scope: Scope | None = None,
    ) -> httpx.Request:
        """Build client credentials grant request, RFC 6749 section 4.4.2."""
        data: dict[str, Any] = {"grant_type": GrantType.CLIENT_CREDENTIALS.value}
        if scope is not None and scope.tokens:
            data["scope"] = scope.value
        return self.build_request(data)

    def build_password_request(
        self,
        username: str,
        password: str,
        scope: Scope | None = None,
    ) -> httpx.Request:
        """Build resource owner password credentials request, RFC 6749 section 4.3.2."""
        data: dict[str, Any] = {
            "grant_type": GrantType.PASSWORD.value,
            "username": username,
            "password": password,
        }
        if scope is not None and scope.tokens:
            data["scope"] = scope.value
        return self.build_request(data)

    def build_refresh_token_request(
        self,
        refresh_token: str,
        scope: Scope | None = None,
    ) -> httpx.Request:
        """Build refresh token request, RFC 6749 section 6."""
        if not refresh_token:
            msg = "No refresh token available"
            raise ValueError(msg)

        data: dict[str, Any] = {
            "grant_type": GrantType.REFRESH_TOKEN.value,
            "refresh_token": refresh_token,
        }
        if scope is not None and scope.tokens:
            data["scope"] = scope.value
        return self.build_request(data)

    def build_request(self, data: dict[str, Any]) -> httpx.Request:
        """Build a POST to the token endpoint with a form-encoded body.

        Args:
            data: Standard request parameters.

        Returns:
            Unsent token request.
        """
        body = {**data, **self.additional_parameters}
        return httpx.Request(
            "POST",
            self.token_endpoint,
            data={key: str(value) for key, value in body.items() if value is not None},
            headers={"Accept": "application/json"},
        )
