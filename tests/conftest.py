"""
Shared test fixtures for Identity Kit tests.

Provides common fixtures for configuration and token test data.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
import structlog

from identity_kit import telemetry
from identity_kit.config import ClientConfig, RetryConfig, TelemetryConfig

from .helpers import TOKEN_ENDPOINT


@pytest.fixture
def base_config() -> ClientConfig:
    """Provide a basic client configuration for testing."""
    return ClientConfig(
        token_endpoint=TOKEN_ENDPOINT,
        client_id="test-client-id",
        client_secret="test-client-secret",
        scopes=["read", "write"],
        retry=RetryConfig(max_retries=0, initial_delay=0.01, jitter=0.0),
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    """Provide retry configuration for testing."""
    return RetryConfig(
        max_retries=2,
        initial_delay=0.01,
        max_delay=0.05,
        exponential_base=2.0,
        jitter=0.0,
    )


@pytest.fixture
def telemetry_config() -> TelemetryConfig:
    """Provide telemetry configuration for testing."""
    return TelemetryConfig(enabled=False, service_name="test-identity-kit")


@pytest.fixture
def sample_token_response() -> dict[str, Any]:
    """Provide a sample OAuth token response."""
    return {
        "access_token": "gg",
        "token_type": "Bearer",
        "expires_in": 1234,
        "refresh_token": "rtgg",
        "scope": "read write",
    }


@pytest.fixture(autouse=True)
def reset_telemetry(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Undo telemetry configuration applied by a test."""
    monkeypatch.setattr(telemetry, "_tracer", None)
    monkeypatch.setattr(telemetry, "_logger", None)
    yield
    structlog.reset_defaults()
