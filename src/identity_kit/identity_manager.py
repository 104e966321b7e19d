"""Identity manager facade and perform-with-retry.

An identity manager hides the OAuth 2.0 flows and token state behind a
small facade: authorize a request, revoke state, and decide whether a
response means the request must be authorized again.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Self

import httpx

from .models import NetworkResponse
from .network import HTTPXNetworkClient, unauthorized_response_validator
from .telemetry import get_logger

if TYPE_CHECKING:
    from .network import NetworkClient, ResponseValidator


PLACEHOLDER_URL = "http://localhost/"


class IdentityManager(ABC):
    """Manages authentication and authorization state for outgoing requests."""

    def __init__(self, network_client: NetworkClient | None = None) -> None:
        self._network_client = network_client
        self._owns_network_client = network_client is None
        self._logger = get_logger()

    @property
    def network_client(self) -> NetworkClient:
        """Client used by ``perform`` when none is given."""
        if self._network_client is None:
            self._network_client = HTTPXNetworkClient()
        return self._network_client

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the default network client if this manager created it."""
        client = self._network_client
        if self._owns_network_client and isinstance(client, HTTPXNetworkClient):
            self._network_client = None
            await client.aclose()

    @abstractmethod
    async def authorize(
        self,
        request: httpx.Request,
        force_authenticate: bool = False,
    ) -> httpx.Request:
        """Return an authorized copy of ``request``.

        Args:
            request: Request to authorize.
            force_authenticate: Always authenticate, ignoring cached and
                refreshable state.

        Raises:
            Exception: The error that prevented authorization.
        """

    @abstractmethod
    async def revoke_authentication_state(self) -> None:
        """Clear all authentication state, so the next authorize authenticates."""

    @abstractmethod
    async def revoke_authorization_state(self) -> None:
        """Invalidate the access token only, so the next authorize refreshes."""

    def response_validator(self, response: NetworkResponse) -> bool:
        """Check that a response does not require authorization again."""
        return unauthorized_response_validator(response)

    async def force_authenticate(self) -> None:
        """Authenticate ahead of time, without authorizing a real request."""
        await self.authorize(httpx.Request("GET", PLACEHOLDER_URL), force_authenticate=True)

    async def perform(
        self,
        request: httpx.Request,
        *,
        network_client: NetworkClient | None = None,
        retry_attempts: int = 1,
        validator: ResponseValidator | None = None,
        force_authenticate: bool = False,
    ) -> NetworkResponse:
        """Authorize and send a request, re-authenticating if it is rejected.

        Each retry forces authentication, so ``retry_attempts`` bounds the
        number of extra requests even if the server rejects every token.

        Args:
            request: Unauthorized request to send.
            network_client: Client that sends the request.
            retry_attempts: How many times to retry an invalid response.
            validator: Decides whether a response is valid. Defaults to
                ``response_validator``.
            force_authenticate: Force authentication on the first attempt.

        Returns:
            The last response. Authorization failures are returned on its
            ``error`` field rather than raised, paired with ``request``.
        """
        client = network_client or self.network_client
        validate = validator or self.response_validator

        while True:
            try:
                authorized = await self.authorize(request, force_authenticate=force_authenticate)
            except Exception as e:
                return NetworkResponse(error=e, request=request)

            response = await client.perform(authorized)
            if validate(response) or retry_attempts <= 0:
                return response

            self._logger.info(
                "Response rejected, authenticating again",
                status_code=response.status_code,
                retry_attempts=retry_attempts,
            )
            retry_attempts -= 1
            force_authenticate = True
