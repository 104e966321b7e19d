"""Token endpoint response decoding for Identity Kit - December 2025 State of Art.

Turns raw token endpoint responses into AccessTokenResponse values or
typed errors, following RFC 6749 sections 5.1 and 5.2.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from ..errors import (
    InvalidTokenResponseError,
    OAuthErrorResponse,
    UnknownHTTPResponseError,
    UnknownResponseError,
)
from ..models import AccessTokenResponse, NetworkResponse, OAuthErrorBody, Scope

_RESERVED_PARAMETERS = frozenset(
    {"access_token", "token_type", "expires_in", "refresh_token", "scope"}
)


class AccessTokenResponseDecoder:
    """Decodes a network response into an access token or raises a typed error.

    The checks run in a fixed order: transport error, missing response,
    missing body, OAuth error body, non-2xx status, token body. An OAuth
    error body wins over the HTTP status code, so a 200 carrying
    ``{"error": "invalid_grant"}`` is still an error.
    """

    def decode(self, network_response: NetworkResponse) -> AccessTokenResponse:
        """Decode a token endpoint response.

        Args:
            network_response: Raw outcome of the token request.

        Returns:
            Parsed access token response.

        Raises:
            BaseException: The transport error carried by the response, unchanged.
            UnknownResponseError: If no HTTP response was received.
            InvalidTokenResponseError: If the body is missing or malformed.
            OAuthErrorResponse: If the body is a standard OAuth error.
            UnknownHTTPResponseError: If the status is not 2xx.
        """
        if network_response.error is not None:
            raise network_response.error

        response = network_response.response
        if response is None:
            raise UnknownResponseError()

        data = network_response.data
        if data is None:
            raise InvalidTokenResponseError(details={"reason": "missing body"})

        error = self.decode_error(data, status_code=response.status_code)
        if error is not None:
            raise error

        if not 200 <= response.status_code < 300:
            raise UnknownHTTPResponseError(response.status_code)

        try:
            parameters = json.loads(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidTokenResponseError(details={"reason": "body is not JSON"}) from e

        if not isinstance(parameters, dict):
            raise InvalidTokenResponseError(details={"reason": "body is not an object"})

        return self.from_parameters(parameters)

    @staticmethod
    def decode_error(
        data: bytes,
        *,
        status_code: int | None = None,
    ) -> OAuthErrorResponse | None:
        """Decode a standard OAuth error body.

        Args:
            data: Raw response body.
            status_code: HTTP status the body arrived with.

        Returns:
            The error if the body matches the error schema, otherwise None.
        """
        try:
            body = OAuthErrorBody.model_validate_json(data)
        except ValidationError:
            return None

        return OAuthErrorResponse(
            body.error,
            error_description=body.error_description,
            error_uri=body.error_uri,
            status_code=status_code,
        )

    @staticmethod
    def from_parameters(
        parameters: dict[str, Any],
        *,
        issued_at: datetime | None = None,
    ) -> AccessTokenResponse:
        """Build an access token response from decoded JSON parameters.

        Args:
            parameters: Decoded JSON object of the response body.
            issued_at: Issue time, defaults to now.

        Returns:
            Parsed access token response.

        Raises:
            InvalidTokenResponseError: If required parameters are missing or
                optional ones have the wrong type.
        """
        access_token = parameters.get("access_token")
        token_type = parameters.get("token_type")
        if not isinstance(access_token, str) or not access_token:
            raise InvalidTokenResponseError(details={"missing": "access_token"})
        if not isinstance(token_type, str) or not token_type:
            raise InvalidTokenResponseError(details={"missing": "token_type"})

        refresh_token = parameters.get("refresh_token")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise InvalidTokenResponseError(details={"invalid": "refresh_token"})

        scope = parameters.get("scope")
        if scope is not None and not isinstance(scope, str):
            raise InvalidTokenResponseError(details={"invalid": "scope"})

        return AccessTokenResponse(
            access_token=access_token,
            token_type=token_type,
            expires_in=_parse_expires_in(parameters.get("expires_in")),
            issued_at=issued_at or datetime.now(UTC),
            refresh_token=refresh_token,
            scope=Scope.parse(scope) if scope is not None else None,
            additional_parameters={
                key: value
                for key, value in parameters.items()
                if key not in _RESERVED_PARAMETERS
            },
        )


def _parse_expires_in(value: Any) -> timedelta | None:
    """Parse expires_in seconds. Numeric strings are accepted for lenient servers."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise InvalidTokenResponseError(details={"invalid": "expires_in"})
    try:
        return timedelta(seconds=float(value))
    except (ValueError, OverflowError) as e:
        raise InvalidTokenResponseError(details={"invalid": "expires_in"}) from e
