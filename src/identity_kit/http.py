"""HTTP client utilities for Identity Kit - December 2025 State of Art.

Provides the circuit breaker and the configured httpx client used by the
default network transport.
"""

from __future__ import annotations

import time
from enum import StrEnum
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .config import ClientConfig


USER_AGENT = "identity-kit/1.0.0 Python"


class CircuitState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stops sending requests to a token server that keeps failing.

    The circuit opens after ``failure_threshold`` consecutive failures. Once
    ``recovery_timeout`` seconds have passed since the last failure it turns
    half-open and lets requests through; ``half_open_requests`` successes in
    a row close it again, a single failure reopens it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_requests: int = 1,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_requests = half_open_requests

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._trial_successes = 0
        self._last_failure_at = 0.0

    @property
    def state(self) -> CircuitState:
        if self._state is CircuitState.OPEN and self._cooled_down():
            self._transition(CircuitState.HALF_OPEN)
        return self._state

    def allow_request(self) -> bool:
        return self.state is not CircuitState.OPEN

    def record_success(self) -> None:
        if self._state is CircuitState.CLOSED:
            self._consecutive_failures = 0
        elif self._state is CircuitState.HALF_OPEN:
            self._trial_successes += 1
            if self._trial_successes >= self.half_open_requests:
                self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        self._consecutive_failures += 1
        self._last_failure_at = time.monotonic()
        tripped = self._consecutive_failures >= self.failure_threshold
        if self._state is CircuitState.HALF_OPEN or tripped:
            self._transition(CircuitState.OPEN)

    def _cooled_down(self) -> bool:
        return time.monotonic() - self._last_failure_at >= self.recovery_timeout

    def _transition(self, state: CircuitState) -> None:
        self._state = state
        self._trial_successes = 0
        if state is CircuitState.CLOSED:
            self._consecutive_failures = 0


def create_async_http_client(
    config: ClientConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        config: Client configuration, defaults apply when omitted.
        transport: Optional transport override, used by tests.

    Returns:
        Configured httpx.AsyncClient.
    """
    timeout = config.timeout if config else 30.0
    connect_timeout = config.connect_timeout if config else 10.0
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=connect_timeout,
            read=timeout,
            write=timeout,
            pool=timeout,
        ),
        headers={"User-Agent": USER_AGENT},
        follow_redirects=False,
        transport=transport,
    )
