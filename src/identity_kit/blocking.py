"""Blocking facade over an async identity manager.

For callers that run on plain threads. The wrapped manager lives on a
private event loop running in a daemon thread; each call blocks the calling
thread until its own operation has completed.
"""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any, Self, TypeVar

if TYPE_CHECKING:
    from collections.abc import Coroutine

    import httpx

    from .identity_manager import IdentityManager
    from .models import NetworkResponse
    from .network import NetworkClient, ResponseValidator

T = TypeVar("T")


class BlockingIdentityManager:
    """Thread-blocking identity manager.

    Example:
        >>> with BlockingIdentityManager(manager) as identity:
        ...     request = identity.authorize(httpx.Request("GET", url))
    """

    def __init__(self, manager: IdentityManager, *, timeout: float | None = None) -> None:
        """Initialize blocking facade.

        Args:
            manager: Async identity manager to drive.
            timeout: Seconds to wait for each call. None waits forever.
        """
        self.manager = manager
        self.timeout = timeout
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name="identity-kit-loop",
            daemon=True,
        )
        self._thread.start()
        self._closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def authorize(self, request: httpx.Request, force_authenticate: bool = False) -> httpx.Request:
        """Return an authorized copy of ``request``, blocking until done."""
        return self._run(self.manager.authorize(request, force_authenticate=force_authenticate))

    def revoke_authentication_state(self) -> None:
        self._run(self.manager.revoke_authentication_state())

    def revoke_authorization_state(self) -> None:
        self._run(self.manager.revoke_authorization_state())

    def force_authenticate(self) -> None:
        self._run(self.manager.force_authenticate())

    def response_validator(self, response: NetworkResponse) -> bool:
        return self.manager.response_validator(response)

    def perform(
        self,
        request: httpx.Request,
        *,
        network_client: NetworkClient | None = None,
        retry_attempts: int = 1,
        validator: ResponseValidator | None = None,
        force_authenticate: bool = False,
    ) -> NetworkResponse:
        """Authorize and send a request, see ``IdentityManager.perform``."""
        return self._run(
            self.manager.perform(
                request,
                network_client=network_client,
                retry_attempts=retry_attempts,
                validator=validator,
                force_authenticate=force_authenticate,
            )
        )

    def close(self) -> None:
        """Close the wrapped manager and stop the event loop thread."""
        if self._closed:
            return
        try:
            self._run(self.manager.aclose())
        finally:
            self._closed = True
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
            self._loop.close()

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        if self._closed:
            coro.close()
            raise RuntimeError("BlockingIdentityManager is closed")
        if threading.current_thread() is self._thread:
            coro.close()
            raise RuntimeError("Cannot block on the identity manager's own event loop")

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(self.timeout)
