"""Pydantic models for Identity Kit - December 2025 State of Art.

Uses Pydantic v2 frozen models for immutable token state and a plain
dataclass for raw network results.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, ConfigDict, Field

from .errors import OAuthErrorCode

if TYPE_CHECKING:
    import httpx


class Scope(BaseModel):
    """Set of permission identifiers, RFC 6749 section 3.3."""

    model_config = ConfigDict(frozen=True)

    tokens: tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: str) -> Self:
        """Create a scope from its space-delimited string form."""
        return cls(tokens=tuple(value.split()))

    @classmethod
    def from_list(cls, tokens: list[str]) -> Self:
        """Create a scope from individual scope tokens."""
        return cls(tokens=tuple(tokens))

    @property
    def value(self) -> str:
        """Canonical space-delimited form."""
        return " ".join(self.tokens)

    def __contains__(self, token: object) -> bool:
        return token in self.tokens

    def __str__(self) -> str:
        return self.value


class AccessTokenResponse(BaseModel):
    """Successful token endpoint response, RFC 6749 section 5.1."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(..., min_length=1)
    expires_in: timedelta | None = None
    issued_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    refresh_token: str | None = None
    scope: Scope | None = None
    additional_parameters: dict[str, Any] = Field(default_factory=dict)

    @property
    def expires_at(self) -> datetime | None:
        """Get the moment the token expires, or None if it never does."""
        if self.expires_in is None:
            return None
        return self.issued_at + self.expires_in

    @property
    def is_expired(self) -> bool:
        """Check if token is expired. Tokens without expires_in never expire."""
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return datetime.now(UTC) >= expires_at

    def time_until_expiry(self) -> timedelta | None:
        """Get time remaining until token expires."""
        expires_at = self.expires_at
        if expires_at is None:
            return None
        return expires_at - datetime.now(UTC)

    def with_expires_in(self, expires_in: timedelta | None) -> Self:
        """Copy of the token with a different lifetime."""
        return self.model_copy(update={"expires_in": expires_in})

    def with_refresh_token(self, refresh_token: str | None) -> Self:
        """Copy of the token with a different refresh token."""
        return self.model_copy(update={"refresh_token": refresh_token})

    def __repr__(self) -> str:
        # Never leak credentials into logs or tracebacks.
        return (
            f"AccessTokenResponse(token_type={self.token_type!r}, "
            f"expires_in={self.expires_in!r}, scope={self.scope!r}, "
            f"has_refresh_token={self.refresh_token is not None})"
        )


class OAuthErrorBody(BaseModel):
    """Error response body, RFC 6749 section 5.2."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    error: OAuthErrorCode
    error_description: str | None = None
    error_uri: str | None = None


class AccessTokenRefreshRequest(BaseModel):
    """Parameters for refreshing an access token, RFC 6749 section 6."""

    model_config = ConfigDict(frozen=True)

    refresh_token: str = Field(..., min_length=1)
    scope: Scope | None = None

    def __repr__(self) -> str:
        return f"AccessTokenRefreshRequest(scope={self.scope!r})"


@dataclass(frozen=True)
class NetworkResponse:
    """Outcome of a single network call: a body, an HTTP response and/or an error.

    ``request`` is the request the outcome belongs to, so a failure that
    never produced a response can still be matched to what was sent.
    """

    data: bytes | None = None
    response: httpx.Response | None = None
    error: BaseException | None = None
    request: httpx.Request | None = None

    @classmethod
    def from_httpx(
        cls,
        response: httpx.Response,
        request: httpx.Request | None = None,
    ) -> NetworkResponse:
        """Wrap a completed httpx response."""
        return cls(data=response.content, response=response, request=request)

    @property
    def status_code(self) -> int | None:
        """HTTP status code, if a response was received."""
        return self.response.status_code if self.response is not None else None
