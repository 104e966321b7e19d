"""Configuration for Identity Kit - December 2025 State of Art.

Frozen pydantic models for the client, its transport retries, telemetry
and the identity manager policy. ``ClientConfig.from_env`` reads the same
settings from ``IDENTITY_KIT_*`` environment variables.
"""

from __future__ import annotations

import random
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    field_validator,
)

from .models import Scope


class RetryConfig(BaseModel):
    """Backoff for connection failures, timeouts and 429 responses."""

    model_config = ConfigDict(frozen=True)

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    initial_delay: Annotated[float, Field(gt=0, le=60)] = 1.0
    max_delay: Annotated[float, Field(gt=0, le=300)] = 30.0
    exponential_base: Annotated[float, Field(ge=1.5, le=3.0)] = 2.0
    jitter: Annotated[float, Field(ge=0, le=1.0)] = 0.1

    def get_delay(self, attempt: int) -> float:
        """Seconds to wait before retry ``attempt``, counted from zero.

        Grows by ``exponential_base`` per attempt up to ``max_delay``, then
        moves up or down by at most ``jitter`` of itself.
        """
        backoff = min(self.initial_delay * self.exponential_base**attempt, self.max_delay)
        spread = backoff * self.jitter
        return backoff + random.uniform(-spread, spread)  # noqa: S311


class TelemetryConfig(BaseModel):
    """OpenTelemetry and structlog configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "identity-kit"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unsupported log level: {v}"
            raise ValueError(msg)
        return level


class IdentityManagerConfig(BaseModel):
    """Authorization policy of an OAuth2 identity manager."""

    model_config = ConfigDict(frozen=True)

    # Fall back to full authentication when a refresh fails.
    force_authenticate_on_refresh_error: bool = True

    # Restart authorization when authentication fails with an OAuth error.
    # Meant for flows that ask the user again, such as a login prompt.
    retry_authorization_on_authentication_error: bool = False

    # None keeps retrying until authentication succeeds.
    max_authentication_retries: int | None = Field(default=None, ge=0)

    storage_namespace: str = Field(
        default="identity_kit.OAuth2IdentityManager", min_length=1
    )


class ClientConfig(BaseModel):
    """OAuth 2.0 client configuration."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # Required
    token_endpoint: HttpUrl
    client_id: str = Field(..., min_length=1)

    # Authentication
    client_secret: SecretStr | None = None
    scopes: list[str] = Field(default_factory=list)

    # HTTP settings
    timeout: Annotated[float, Field(gt=0, le=300)] = 30.0
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0

    # Sub-configurations
    retry: RetryConfig = Field(default_factory=RetryConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    identity: IdentityManagerConfig = Field(default_factory=IdentityManagerConfig)

    @property
    def token_endpoint_str(self) -> str:
        """Get token endpoint as string."""
        return str(self.token_endpoint)

    @property
    def scope(self) -> Scope | None:
        """Get configured scopes as a Scope, if any."""
        return Scope.from_list(self.scopes) if self.scopes else None

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "IDENTITY_KIT_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        token_endpoint = get_env("TOKEN_ENDPOINT")
        if not token_endpoint:
            msg = f"{prefix}TOKEN_ENDPOINT environment variable is required"
            raise ValueError(msg)

        client_id = get_env("CLIENT_ID")
        if not client_id:
            msg = f"{prefix}CLIENT_ID environment variable is required"
            raise ValueError(msg)

        scopes_str = get_env("SCOPES", "")
        scopes = scopes_str.split() if scopes_str else []

        return cls(
            token_endpoint=token_endpoint,
            client_id=client_id,
            client_secret=get_env("CLIENT_SECRET"),
            scopes=scopes,
            timeout=float(get_env("TIMEOUT", "30.0")),
        )
