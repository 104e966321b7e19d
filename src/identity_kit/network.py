"""Network transport for Identity Kit - December 2025 State of Art.

Defines the transport contract consumed by flows and the identity manager,
and a default implementation over httpx with retry and circuit breaker.
Transport failures are reported on the NetworkResponse, never raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from .config import RetryConfig
from .errors import TimeoutError, TransportError
from .http import CircuitBreaker, create_async_http_client
from .models import NetworkResponse
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from .config import ClientConfig


ResponseValidator = Callable[[NetworkResponse], bool]


def unauthorized_response_validator(response: NetworkResponse) -> bool:
    """Valid unless the server answered 401 Unauthorized."""
    return response.status_code != 401


@runtime_checkable
class NetworkClient(Protocol):
    """Performs a request and reports its outcome as a NetworkResponse."""

    async def perform(self, request: httpx.Request) -> NetworkResponse:
        """Send the request. Must not raise for transport failures."""
        ...


class HTTPXNetworkClient:
    """Network client over httpx.AsyncClient with retry and circuit breaker.

    Connection failures, timeouts and 429 responses are retried with
    exponential backoff. Every other response is returned as received.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize network client.

        Args:
            config: Client configuration for timeouts and retry policy.
            client: Existing httpx client. Closing stays with its owner.
            retry_config: Retry policy, overrides the one in ``config``.
            circuit_breaker: Optional circuit breaker.
        """
        self._owns_client = client is None
        self._client = client or create_async_http_client(config)
        self._retry_config = retry_config or (config.retry if config else RetryConfig())
        self._circuit_breaker = circuit_breaker or CircuitBreaker()
        self._logger = get_logger()

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        """Get circuit breaker."""
        return self._circuit_breaker

    async def __aenter__(self) -> HTTPXNetworkClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def perform(self, request: httpx.Request) -> NetworkResponse:
        """Send a request with retry logic.

        Args:
            request: Request to send.

        Returns:
            The final response, or a NetworkResponse carrying a TransportError.
        """
        max_retries = self._retry_config.max_retries
        last_error: TransportError | None = None

        for attempt in range(max_retries + 1):
            if not self._circuit_breaker.allow_request():
                return NetworkResponse(
                    error=TransportError("Circuit breaker is open"),
                    request=request,
                )

            try:
                response = await self._send(request, attempt)

            except httpx.TimeoutException as e:
                last_error = TimeoutError(f"Request timed out: {e}", cause=e)
                self._circuit_breaker.record_failure()

            except httpx.ConnectError as e:
                last_error = TransportError(f"Connection failed: {e}", cause=e)
                self._circuit_breaker.record_failure()

            except httpx.HTTPError as e:
                self._circuit_breaker.record_failure()
                return NetworkResponse(
                    error=TransportError(f"HTTP error: {e}", cause=e),
                    request=request,
                )

            else:
                if response.status_code == 429 and attempt < max_retries:
                    self._circuit_breaker.record_failure()
                    retry_after = response.headers.get("Retry-After")
                    delay = (
                        int(retry_after)
                        if retry_after and retry_after.isdigit()
                        else self._retry_config.get_delay(attempt)
                    )
                    self._log_retry("Rate limited", attempt, delay)
                    await asyncio.sleep(delay)
                    continue

                if response.status_code >= 500:
                    self._circuit_breaker.record_failure()
                else:
                    self._circuit_breaker.record_success()
                return NetworkResponse.from_httpx(response, request)

            if attempt < max_retries:
                delay = self._retry_config.get_delay(attempt)
                self._log_retry("Request failed", attempt, delay, str(last_error))
                await asyncio.sleep(delay)

        return NetworkResponse(
            error=last_error or TransportError("Request failed after retries"),
            request=request,
        )

    async def _send(self, request: httpx.Request, attempt: int) -> httpx.Response:
        with trace_operation(
            "http_request",
            attributes={
                "http.method": request.method,
                # Query strings may carry bearer tokens
                "http.url": f"{request.url.scheme}://{request.url.netloc.decode()}{request.url.path}",
                "attempt": attempt,
            },
        ):
            return await self._client.send(request)

    def _log_retry(
        self,
        message: str,
        attempt: int,
        delay: float,
        error: str | None = None,
    ) -> None:
        """Log retry attempt."""
        self._logger.warning(
            message,
            attempt=attempt,
            delay=delay,
            error=error,
        )
