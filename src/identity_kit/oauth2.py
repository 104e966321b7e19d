"""OAuth 2.0 identity manager - December 2025 State of Art.

Caches the access token, refreshes it when it expires and authenticates
through a grant flow when there is nothing to refresh, following the
protocol flow of RFC 6749 section 1.5.

Every authorize and revoke call runs on a single FIFO worker, so token
state is only ever read and replaced by one operation at a time.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import TYPE_CHECKING, Self

from .authorizers import (
    AuthorizationMethod,
    BearerAccessTokenAuthorizer,
    HTTPBasicAuthorizer,
    RequestAuthorizer,
)
from .config import IdentityManagerConfig
from .core.serial_queue import SerialQueue
from .errors import InvalidConfigError, OAuthErrorResponse, error_contains
from .events import IdentityEvent, IdentityEvents, IdentityEventType
from .flows import ClientCredentialsGrantFlow
from .identity_manager import IdentityManager
from .models import AccessTokenRefreshRequest, AccessTokenResponse, Scope
from .network import HTTPXNetworkClient
from .telemetry import configure_telemetry, trace_operation

if TYPE_CHECKING:
    import httpx

    from .config import ClientConfig
    from .flows import AccessTokenRefresher, AuthorizationGrantFlow
    from .network import NetworkClient
    from .storage import IdentityStorage


AuthorizerFactory = Callable[[AccessTokenResponse], RequestAuthorizer]


def bearer_authorizer_factory(
    method: AuthorizationMethod = AuthorizationMethod.HEADER,
) -> AuthorizerFactory:
    """Authorizer factory for bearer tokens sent with ``method``."""

    def factory(token: AccessTokenResponse) -> RequestAuthorizer:
        return BearerAccessTokenAuthorizer(token.access_token, method)

    return factory


class OAuth2IdentityManager(IdentityManager):
    """Identity manager backed by an OAuth 2.0 grant flow.

    Example:
        >>> manager = OAuth2IdentityManager(flow, refresher, storage)
        >>> request = await manager.authorize(httpx.Request("GET", url))
    """

    def __init__(
        self,
        flow: AuthorizationGrantFlow,
        refresher: AccessTokenRefresher | None = None,
        storage: IdentityStorage | None = None,
        *,
        authorizer_factory: AuthorizerFactory | None = None,
        config: IdentityManagerConfig | None = None,
        network_client: NetworkClient | None = None,
    ) -> None:
        """Initialize identity manager.

        Args:
            flow: Grant flow used to authenticate.
            refresher: Refreshes expired access tokens when possible.
            storage: Persists the refresh token and scope.
            authorizer_factory: Builds the request authorizer for a token.
                Defaults to a bearer token in the Authorization header.
            config: Refresh and retry policy.
            network_client: Client used by ``perform``.
        """
        super().__init__(network_client)
        self.flow = flow
        self.refresher = refresher
        self.storage = storage
        self.authorizer_factory = authorizer_factory or bearer_authorizer_factory()
        self.config = config or IdentityManagerConfig()
        self.events = IdentityEvents()

        self._logger = self._logger.bind(namespace=self.config.storage_namespace)
        self._token: AccessTokenResponse | None = None
        self._queue = SerialQueue(name=f"{self.config.storage_namespace}.queue")

    @classmethod
    def client_credentials(
        cls,
        config: ClientConfig,
        storage: IdentityStorage | None = None,
        *,
        network_client: NetworkClient | None = None,
    ) -> Self:
        """Create a manager using the client credentials grant.

        Applies ``config.telemetry`` before anything is built, so every
        component logs and traces with it.

        Args:
            config: Client configuration. ``client_secret`` is required.
            storage: Optional identity storage.
            network_client: Client for token and resource requests.

        Raises:
            InvalidConfigError: If the client secret is missing.
        """
        if config.client_secret is None:
            raise InvalidConfigError(
                "client_secret is required for the client credentials grant",
                field="client_secret",
            )

        configure_telemetry(config.telemetry)

        owns_client = network_client is None
        client = network_client or HTTPXNetworkClient(config)
        flow = ClientCredentialsGrantFlow(
            config.token_endpoint_str,
            scope=config.scope,
            client_authorizer=HTTPBasicAuthorizer.for_client(
                config.client_id,
                config.client_secret.get_secret_value(),
            ),
            network_client=client,
        )
        manager = cls(flow, storage=storage, config=config.identity, network_client=client)
        manager._owns_network_client = owns_client
        return manager

    # State

    @property
    def access_token_response(self) -> AccessTokenResponse | None:
        """The cached token, possibly expired."""
        return self._token

    @property
    def refresh_token(self) -> str | None:
        """Usable refresh token, from the cached token first, then storage."""
        refresh_token = self._token.refresh_token if self._token is not None else None
        if refresh_token is None and self.storage is not None:
            refresh_token = self.storage.get(self._refresh_token_key)
        if refresh_token is None or not refresh_token.strip():
            return None
        return refresh_token

    @property
    def scope(self) -> Scope | None:
        """Scope of the cached token, or the stored one."""
        if self._token is not None and self._token.scope is not None:
            return self._token.scope
        if self.storage is not None:
            value = self.storage.get(self._scope_key)
            if value is not None:
                return Scope.parse(value)
        return None

    @property
    def _refresh_token_key(self) -> str:
        return f"{self.config.storage_namespace}.refresh_token"

    @property
    def _scope_key(self) -> str:
        return f"{self.config.storage_namespace}.scope_value"

    def _set_token(self, token: AccessTokenResponse | None) -> None:
        self._token = token
        if self.storage is None:
            return
        self.storage.set(self._refresh_token_key, token.refresh_token if token else None)
        scope = token.scope if token else None
        self.storage.set(self._scope_key, scope.value if scope is not None else None)

    def _discard_refresh_token(self) -> None:
        if self._token is not None:
            self._set_token(self._token.with_refresh_token(None))
        if self.storage is not None:
            self.storage.set(self._refresh_token_key, None)

    # IdentityManager

    async def authorize(
        self,
        request: httpx.Request,
        force_authenticate: bool = False,
    ) -> httpx.Request:
        return await self._queue.submit(
            lambda: self._perform_authorization(request, force_authenticate)
        )

    async def revoke_authentication_state(self) -> None:
        await self._queue.submit(self._revoke_authentication_state)

    async def revoke_authorization_state(self) -> None:
        await self._queue.submit(self._revoke_authorization_state)

    async def aclose(self) -> None:
        """Stop the worker and close the network client this manager owns."""
        await self._queue.aclose()
        await super().aclose()

    def subscribe(self, observer: Callable[[IdentityEvent], None]) -> Callable[[], None]:
        """Register a lifecycle observer. Returns a callable that unsubscribes it."""
        return self.events.subscribe(observer)

    # Operations, run on the worker only

    async def _revoke_authentication_state(self) -> None:
        self._set_token(None)
        self._logger.info("Authentication state revoked")

    async def _revoke_authorization_state(self) -> None:
        if self._token is not None:
            self._set_token(self._token.with_expires_in(timedelta(0)))
        self._logger.info("Authorization state revoked")

    async def _perform_authorization(
        self,
        request: httpx.Request,
        force_authenticate: bool,
    ) -> httpx.Request:
        attempt = 0
        attributes = self._span_attributes(force_authenticate=force_authenticate)
        with trace_operation("authorize", attributes=attributes):
            while True:
                token = self._token
                if not force_authenticate and token is not None and not token.is_expired:
                    return await self.authorizer_factory(token).authorize(request)

                try:
                    token = await self._obtain_token(force_authenticate)
                except Exception as e:
                    if not self._should_retry_authorization(e, attempt):
                        raise
                    attempt += 1
                    self._logger.warning(
                        "Authentication failed, retrying authorization",
                        attempt=attempt,
                        error=repr(e),
                    )
                    continue

                self._set_token(token)
                return await self.authorizer_factory(token).authorize(request)

    def _span_attributes(self, **attributes: object) -> dict[str, object]:
        return {
            "identity_kit.namespace": self.config.storage_namespace,
            **{f"identity_kit.{key}": value for key, value in attributes.items()},
        }

    def _should_retry_authorization(self, error: BaseException, attempt: int) -> bool:
        if not self.config.retry_authorization_on_authentication_error:
            return False
        if not error_contains(error, OAuthErrorResponse):
            return False
        limit = self.config.max_authentication_retries
        return limit is None or attempt < limit

    async def _obtain_token(self, force_authenticate: bool) -> AccessTokenResponse:
        refresh_token = self.refresh_token
        if force_authenticate or self.refresher is None or refresh_token is None:
            return await self._authenticate()

        try:
            return await self._refresh(self.refresher, refresh_token)
        except Exception as e:
            if error_contains(e, OAuthErrorResponse):
                # The server rejected the refresh token, never send it again
                self._discard_refresh_token()

            if not self.config.force_authenticate_on_refresh_error:
                raise

            self._logger.warning(
                "Token refresh failed, authenticating",
                error=repr(e),
            )
            return await self._authenticate()

    async def _refresh(
        self,
        refresher: AccessTokenRefresher,
        refresh_token: str,
    ) -> AccessTokenResponse:
        request = AccessTokenRefreshRequest(refresh_token=refresh_token, scope=self.scope)
        with trace_operation("refresh", attributes=self._span_attributes()):
            token = await refresher.refresh(request)
        self._logger.info("Access token refreshed", expires_in=_seconds(token.expires_in))
        return token

    async def _authenticate(self) -> AccessTokenResponse:
        self.events.emit(IdentityEvent(IdentityEventType.WILL_AUTHENTICATE))
        try:
            with trace_operation("authenticate", attributes=self._span_attributes()):
                token = await self.flow.authenticate()
        except Exception as e:
            self._logger.warning("Authentication failed", error=repr(e))
            self.events.emit(IdentityEvent(IdentityEventType.DID_FAIL_TO_AUTHENTICATE, error=e))
            raise

        self._logger.info("Authenticated", expires_in=_seconds(token.expires_in))
        self.events.emit(IdentityEvent(IdentityEventType.DID_AUTHENTICATE, token=token))
        return token


def _seconds(value: timedelta | None) -> float | None:
    return value.total_seconds() if value is not None else None
