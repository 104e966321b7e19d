"""OAuth 2.0 grant flows and token refresh for Identity Kit.

Flows produce a fresh AccessTokenResponse without prior state; refreshers
produce one from a refresh token. Both talk to the token endpoint through a
NetworkClient and decode the answer with AccessTokenResponseDecoder.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .core.response_decoder import AccessTokenResponseDecoder
from .core.token_ops import TokenRequestBuilder
from .errors import AuthenticationFailedError, InvalidTokenResponseError
from .network import HTTPXNetworkClient, NetworkClient
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    import httpx

    from .authorizers import RequestAuthorizer
    from .models import AccessTokenRefreshRequest, AccessTokenResponse, Scope


@runtime_checkable
class AuthorizationGrantFlow(Protocol):
    """Authenticates the client and returns an access token."""

    async def authenticate(self) -> AccessTokenResponse:
        """Run the flow.

        Raises:
            Exception: Any error that prevented authentication.
        """
        ...


@runtime_checkable
class AccessTokenRefresher(Protocol):
    """Obtains a new access token using a refresh token."""

    async def refresh(self, request: AccessTokenRefreshRequest) -> AccessTokenResponse:
        """Refresh the access token.

        Raises:
            Exception: Any error that prevented the refresh.
        """
        ...


@runtime_checkable
class CredentialsProvider(Protocol):
    """Provides resource owner credentials, for example from a login prompt."""

    async def credentials(self) -> tuple[str, str]:
        """Return a ``(username, password)`` pair."""
        ...

    def did_finish_authenticating(self) -> None:
        """Called after the supplied credentials were accepted."""
        ...

    def did_fail_authenticating(self, error: BaseException) -> None:
        """Called after the supplied credentials were rejected."""
        ...


class TokenEndpointClient:
    """Sends token requests and decodes the responses.

    Shared by the grant flows and the refresher.
    """

    def __init__(
        self,
        token_endpoint: str,
        *,
        client_authorizer: RequestAuthorizer | None = None,
        network_client: NetworkClient | None = None,
        additional_parameters: dict[str, Any] | None = None,
    ) -> None:
        """Initialize token endpoint client.

        Args:
            token_endpoint: URL of the token endpoint.
            client_authorizer: Authorizes token requests, usually an
                HTTPBasicAuthorizer with the client id and secret.
            network_client: Sends the token requests.
            additional_parameters: Extra body parameters. A key that
                duplicates a standard parameter replaces it.
        """
        self.token_endpoint = token_endpoint
        self.client_authorizer = client_authorizer
        self.network_client: NetworkClient = network_client or HTTPXNetworkClient()
        self.requests = TokenRequestBuilder(
            token_endpoint,
            additional_parameters=additional_parameters,
        )
        self._decoder = AccessTokenResponseDecoder()
        self._logger = get_logger()

    async def request_token(self, request: httpx.Request) -> AccessTokenResponse:
        """Authorize, send and decode a token request.

        Args:
            request: Unsent token request.

        Returns:
            Decoded access token response.
        """
        if self.client_authorizer is not None:
            request = await self.client_authorizer.authorize(request)

        with trace_operation("token_request", attributes={"oauth.token_endpoint": self.token_endpoint}):
            network_response = await self.network_client.perform(request)
            try:
                return self._decoder.decode(network_response)
            except Exception as e:
                self._logger.warning(
                    "Token request failed",
                    token_endpoint=self.token_endpoint,
                    status_code=network_response.status_code,
                    error=repr(e),
                )
                raise


class ClientCredentialsGrantFlow(TokenEndpointClient):
    """Client credentials grant, RFC 6749 section 4.4."""

    def __init__(
        self,
        token_endpoint: str,
        *,
        scope: Scope | None = None,
        client_authorizer: RequestAuthorizer,
        network_client: NetworkClient | None = None,
        additional_parameters: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            token_endpoint,
            client_authorizer=client_authorizer,
            network_client=network_client,
            additional_parameters=additional_parameters,
        )
        self.scope = scope

    async def authenticate(self) -> AccessTokenResponse:
        with trace_operation("client_credentials"):
            request = self.requests.build_client_credentials_request(self.scope)
            response = await self.request_token(request)
            self.validate(response)
            return response

    def validate(self, response: AccessTokenResponse) -> None:
        """Reject responses that carry a refresh token, RFC 6749 section 4.4.3."""
        if response.refresh_token is not None:
            raise AuthenticationFailedError(
                InvalidTokenResponseError(
                    "A refresh token should not be included in a client credentials response"
                )
            )


class ResourceOwnerPasswordCredentialsGrantFlow(TokenEndpointClient):
    """Resource owner password credentials grant, RFC 6749 section 4.3.

    Credentials come from a CredentialsProvider, which is told whether they
    were accepted. Combine with ``retry_authorization_on_authentication_error``
    to keep asking until the user gets them right.
    """

    def __init__(
        self,
        token_endpoint: str,
        credentials_provider: CredentialsProvider,
        *,
        scope: Scope | None = None,
        client_authorizer: RequestAuthorizer | None = None,
        network_client: NetworkClient | None = None,
        additional_parameters: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            token_endpoint,
            client_authorizer=client_authorizer,
            network_client=network_client,
            additional_parameters=additional_parameters,
        )
        self.credentials_provider = credentials_provider
        self.scope = scope

    async def authenticate(self) -> AccessTokenResponse:
        username, password = await self.credentials_provider.credentials()

        with trace_operation("password_grant"):
            request = self.requests.build_password_request(username, password, self.scope)
            try:
                response = await self.request_token(request)
            except Exception as e:
                self.credentials_provider.did_fail_authenticating(e)
                raise

        self.credentials_provider.did_finish_authenticating()
        return response


class DefaultAccessTokenRefresher(TokenEndpointClient):
    """Refreshes access tokens, RFC 6749 section 6.

    When the server does not issue a new refresh token, the one used for the
    request is kept on the returned token.
    """

    async def refresh(self, request: AccessTokenRefreshRequest) -> AccessTokenResponse:
        with trace_operation("refresh_token"):
            token_request = self.requests.build_refresh_token_request(
                request.refresh_token,
                request.scope,
            )
            response = await self.request_token(token_request)

        if response.refresh_token is None:
            response = response.with_refresh_token(request.refresh_token)
        return response
