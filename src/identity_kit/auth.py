"""httpx integration for Identity Kit.

Lets an ``httpx.AsyncClient`` authorize its requests through an identity
manager, with the same retry-on-rejection behaviour as
``IdentityManager.perform``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from typing import TYPE_CHECKING

import httpx

from .models import NetworkResponse

if TYPE_CHECKING:
    from .identity_manager import IdentityManager
    from .network import ResponseValidator


class IdentityManagerAuth(httpx.Auth):
    """httpx authentication backed by an identity manager.

    Example:
        >>> async with httpx.AsyncClient(auth=IdentityManagerAuth(manager)) as client:
        ...     response = await client.get(url)
    """

    requires_response_body = True

    def __init__(
        self,
        manager: IdentityManager,
        *,
        retry_attempts: int = 1,
        validator: ResponseValidator | None = None,
    ) -> None:
        self.manager = manager
        self.retry_attempts = retry_attempts
        self.validator = validator or manager.response_validator

    def sync_auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        raise RuntimeError(
            "IdentityManagerAuth requires httpx.AsyncClient, "
            "use BlockingIdentityManager from synchronous code"
        )
        yield request  # pragma: no cover

    async def async_auth_flow(
        self,
        request: httpx.Request,
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        retry_attempts = self.retry_attempts
        force_authenticate = False

        while True:
            authorized = await self.manager.authorize(request, force_authenticate=force_authenticate)
            response = yield authorized

            outcome = NetworkResponse.from_httpx(response, authorized)
            if self.validator(outcome) or retry_attempts <= 0:
                return

            retry_attempts -= 1
            force_authenticate = True
