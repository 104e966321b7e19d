"""Identity Kit - OAuth 2.0 token lifecycle for Python clients."""

from .auth import IdentityManagerAuth
from .authorizers import (
    AuthorizationMethod,
    BearerAccessTokenAuthorizer,
    HTTPBasicAuthorizer,
    RequestAuthorizer,
)
from .blocking import BlockingIdentityManager
from .config import ClientConfig, IdentityManagerConfig, RetryConfig, TelemetryConfig
from .core.response_decoder import AccessTokenResponseDecoder
from .errors import (
    AuthenticationFailedError,
    AuthorizationBuildError,
    AuthorizationFailedError,
    ErrorCode,
    IdentityKitError,
    InvalidConfigError,
    InvalidTokenResponseError,
    OAuthErrorCode,
    OAuthErrorResponse,
    TimeoutError,
    TransportError,
    UnknownHTTPResponseError,
    UnknownResponseError,
    error_contains,
)
from .events import IdentityEvent, IdentityEventType
from .flows import (
    AccessTokenRefresher,
    AuthorizationGrantFlow,
    ClientCredentialsGrantFlow,
    CredentialsProvider,
    DefaultAccessTokenRefresher,
    ResourceOwnerPasswordCredentialsGrantFlow,
)
from .identity_manager import IdentityManager
from .models import AccessTokenRefreshRequest, AccessTokenResponse, NetworkResponse, Scope
from .network import (
    HTTPXNetworkClient,
    NetworkClient,
    ResponseValidator,
    unauthorized_response_validator,
)
from .oauth2 import OAuth2IdentityManager, bearer_authorizer_factory
from .storage import IdentityStorage, InMemoryIdentityStorage

__all__ = [
    "AccessTokenRefreshRequest",
    "AccessTokenRefresher",
    "AccessTokenResponse",
    "AccessTokenResponseDecoder",
    "AuthenticationFailedError",
    "AuthorizationBuildError",
    "AuthorizationFailedError",
    "AuthorizationGrantFlow",
    "AuthorizationMethod",
    "BearerAccessTokenAuthorizer",
    "BlockingIdentityManager",
    "ClientConfig",
    "ClientCredentialsGrantFlow",
    "CredentialsProvider",
    "DefaultAccessTokenRefresher",
    "ErrorCode",
    "HTTPBasicAuthorizer",
    "HTTPXNetworkClient",
    "IdentityEvent",
    "IdentityEventType",
    "IdentityKitError",
    "IdentityManager",
    "IdentityManagerAuth",
    "IdentityManagerConfig",
    "IdentityStorage",
    "InMemoryIdentityStorage",
    "InvalidConfigError",
    "InvalidTokenResponseError",
    "NetworkClient",
    "NetworkResponse",
    "OAuth2IdentityManager",
    "OAuthErrorCode",
    "OAuthErrorResponse",
    "RequestAuthorizer",
    "ResourceOwnerPasswordCredentialsGrantFlow",
    "ResponseValidator",
    "RetryConfig",
    "Scope",
    "TelemetryConfig",
    "TimeoutError",
    "TransportError",
    "UnknownHTTPResponseError",
    "UnknownResponseError",
    "bearer_authorizer_factory",
    "error_contains",
    "unauthorized_response_validator",
]

__version__ = "1.0.0"
