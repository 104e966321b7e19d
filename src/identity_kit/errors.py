"""Error classes for Identity Kit - December 2025 State of Art.

Implements a closed error taxonomy for token acquisition with structured
error codes and cause chaining, so a failure can be inspected for a specific
kind anywhere in its chain.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for Identity Kit."""

    # OAuth 2.0 error responses, RFC 6749 section 5.2 (1xxx)
    OAUTH_INVALID_REQUEST = "OAUTH_1001"
    OAUTH_INVALID_CLIENT = "OAUTH_1002"
    OAUTH_INVALID_GRANT = "OAUTH_1003"
    OAUTH_UNAUTHORIZED_CLIENT = "OAUTH_1004"
    OAUTH_UNSUPPORTED_GRANT_TYPE = "OAUTH_1005"
    OAUTH_INVALID_SCOPE = "OAUTH_1006"
    OAUTH_ACCESS_DENIED = "OAUTH_1007"
    OAUTH_UNSUPPORTED_RESPONSE_TYPE = "OAUTH_1008"
    OAUTH_SERVER_ERROR = "OAUTH_1009"
    OAUTH_TEMPORARILY_UNAVAILABLE = "OAUTH_1010"

    # Token endpoint response errors (2xxx)
    UNKNOWN_RESPONSE = "RSP_2001"
    INVALID_TOKEN_RESPONSE = "RSP_2002"
    UNKNOWN_HTTP_RESPONSE = "RSP_2003"

    # Network errors (3xxx)
    NETWORK_ERROR = "NET_3001"
    TIMEOUT_ERROR = "NET_3002"

    # Authorization errors (4xxx)
    AUTHORIZATION_BUILD_FAILED = "AUTHZ_4001"
    AUTHORIZATION_FAILED = "AUTHZ_4002"

    # Authentication errors (5xxx)
    AUTHENTICATION_FAILED = "AUTH_5001"

    # Configuration errors (6xxx)
    INVALID_CONFIG = "CFG_6001"


class OAuthErrorCode(StrEnum):
    """Error codes an authorization server may return, RFC 6749 4.1.2.1 and 5.2."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    INVALID_SCOPE = "invalid_scope"
    ACCESS_DENIED = "access_denied"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"


_OAUTH_ERROR_CODES: dict[OAuthErrorCode, ErrorCode] = {
    OAuthErrorCode.INVALID_REQUEST: ErrorCode.OAUTH_INVALID_REQUEST,
    OAuthErrorCode.INVALID_CLIENT: ErrorCode.OAUTH_INVALID_CLIENT,
    OAuthErrorCode.INVALID_GRANT: ErrorCode.OAUTH_INVALID_GRANT,
    OAuthErrorCode.UNAUTHORIZED_CLIENT: ErrorCode.OAUTH_UNAUTHORIZED_CLIENT,
    OAuthErrorCode.UNSUPPORTED_GRANT_TYPE: ErrorCode.OAUTH_UNSUPPORTED_GRANT_TYPE,
    OAuthErrorCode.INVALID_SCOPE: ErrorCode.OAUTH_INVALID_SCOPE,
    OAuthErrorCode.ACCESS_DENIED: ErrorCode.OAUTH_ACCESS_DENIED,
    OAuthErrorCode.UNSUPPORTED_RESPONSE_TYPE: ErrorCode.OAUTH_UNSUPPORTED_RESPONSE_TYPE,
    OAuthErrorCode.SERVER_ERROR: ErrorCode.OAUTH_SERVER_ERROR,
    OAuthErrorCode.TEMPORARILY_UNAVAILABLE: ErrorCode.OAUTH_TEMPORARILY_UNAVAILABLE,
}


def error_contains(error: BaseException | None, error_type: type[BaseException]) -> bool:
    """Check whether ``error`` or any exception in its cause chain is ``error_type``."""
    seen: set[int] = set()
    while error is not None and id(error) not in seen:
        if isinstance(error, error_type):
            return True
        seen.add(id(error))
        error = error.__cause__
    return False


class IdentityKitError(Exception):
    """Base error for Identity Kit with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if isinstance(code, str) else code.value
        self.status_code = status_code
        self.details = details or {}
        if cause is not None:
            self.__cause__ = cause

    def contains(self, error_type: type[BaseException]) -> bool:
        """Check whether this error or any error it wraps is of ``error_type``."""
        return error_contains(self, error_type)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class TransportError(IdentityKitError):
    """Network or IO failure while talking to a server."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.NETWORK_ERROR,
            details={"cause": str(cause)} if cause else None,
            cause=cause,
        )


class TimeoutError(TransportError):
    """Request timed out."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.code = ErrorCode.TIMEOUT_ERROR.value
        self.status_code = 408


class UnknownResponseError(IdentityKitError):
    """No structured HTTP response was received."""

    def __init__(self, message: str = "Unknown url response") -> None:
        super().__init__(message, ErrorCode.UNKNOWN_RESPONSE)


class InvalidTokenResponseError(IdentityKitError):
    """The access token response is missing, malformed or incomplete."""

    def __init__(
        self,
        message: str = "The received access token response is not valid",
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_TOKEN_RESPONSE, details=details)


class UnknownHTTPResponseError(IdentityKitError):
    """Non-2xx response that is not a standard OAuth error."""

    def __init__(self, status_code: int) -> None:
        super().__init__(
            f"Unknown HTTP response with code: {status_code}",
            ErrorCode.UNKNOWN_HTTP_RESPONSE,
            status_code=status_code,
        )


class OAuthErrorResponse(IdentityKitError):
    """Error reported by the authorization server, RFC 6749 section 5.2."""

    def __init__(
        self,
        error: OAuthErrorCode | str,
        *,
        error_description: str | None = None,
        error_uri: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.error = OAuthErrorCode(error)
        self.error_description = error_description
        self.error_uri = error_uri

        message = self.error.value
        if error_description:
            message = f"{message}: {error_description}"

        details: dict[str, Any] = {"error": self.error.value}
        if error_description:
            details["error_description"] = error_description
        if error_uri:
            details["error_uri"] = error_uri

        super().__init__(
            message,
            _OAUTH_ERROR_CODES[self.error],
            status_code=status_code,
            details=details,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OAuthErrorResponse):
            return NotImplemented
        return (
            self.error == other.error
            and self.error_description == other.error_description
            and self.error_uri == other.error_uri
        )

    def __hash__(self) -> int:
        return hash((self.error, self.error_description, self.error_uri))


class AuthorizationBuildError(IdentityKitError):
    """Credentials could not be encoded into an authorization header."""

    def __init__(
        self,
        message: str = (
            "Unable to build authentication header. Cannot create utf8 encoded "
            "data from the provided client and secret"
        ),
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.AUTHORIZATION_BUILD_FAILED, cause=cause)


class AuthorizationFailedError(IdentityKitError):
    """Unable to authorize the request."""

    def __init__(self, reason: BaseException) -> None:
        super().__init__(
            "Unable to authorize the request",
            ErrorCode.AUTHORIZATION_FAILED,
            details={"reason": str(reason)},
            cause=reason,
        )
        self.reason = reason


class AuthenticationFailedError(IdentityKitError):
    """Unable to authenticate the client."""

    def __init__(self, reason: BaseException) -> None:
        super().__init__(
            "Unable to authenticate the client",
            ErrorCode.AUTHENTICATION_FAILED,
            details={"reason": str(reason)},
            cause=reason,
        )
        self.reason = reason


class InvalidConfigError(IdentityKitError):
    """Invalid Identity Kit configuration."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_CONFIG,
            details={"field": field} if field else None,
        )
