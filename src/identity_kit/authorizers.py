"""Request authorizers for Identity Kit.

Authorizers attach credentials to an outgoing request. They never modify
the request they are given; an authorized copy is returned instead.
"""

from __future__ import annotations

import base64
from enum import StrEnum
from typing import Protocol, runtime_checkable
from urllib.parse import urlencode

import httpx

from .errors import AuthorizationBuildError, AuthorizationFailedError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@runtime_checkable
class RequestAuthorizer(Protocol):
    """Attaches credentials to a request."""

    async def authorize(self, request: httpx.Request) -> httpx.Request:
        """Return an authorized copy of ``request``."""
        ...


def read_content(request: httpx.Request) -> bytes | None:
    """Body of ``request``, or None while it is an unread stream."""
    try:
        return request.content
    except httpx.RequestNotRead:
        return None


def copy_request(
    request: httpx.Request,
    *,
    url: httpx.URL | None = None,
    headers: dict[str, str] | None = None,
    content: bytes | None = None,
) -> httpx.Request:
    """Copy a request, replacing the URL, some headers or the body.

    Unread streaming bodies, such as multipart uploads or async generators,
    are shared with the copy without being read.
    """
    new_headers = httpx.Headers(request.headers)
    if headers:
        new_headers.update(headers)

    if content is None:
        content = read_content(request)
        if content is None:
            return httpx.Request(
                request.method,
                url or request.url,
                headers=new_headers,
                stream=request.stream,
                extensions=request.extensions,
            )
    else:
        # httpx recomputes Content-Length from the new body
        new_headers.pop("Content-Length", None)

    return httpx.Request(
        request.method,
        url or request.url,
        headers=new_headers,
        content=content,
        extensions=request.extensions,
    )


class AuthorizationMethod(StrEnum):
    """Ways of sending a bearer token, RFC 6750 section 2."""

    HEADER = "header"
    BODY = "body"
    QUERY = "query"


class BearerAccessTokenAuthorizer:
    """Authorizes requests with a bearer access token."""

    def __init__(
        self,
        token: str,
        method: AuthorizationMethod = AuthorizationMethod.HEADER,
    ) -> None:
        self.token = token
        self.method = AuthorizationMethod(method)

    async def authorize(self, request: httpx.Request) -> httpx.Request:
        if self.method is AuthorizationMethod.QUERY:
            return copy_request(
                request,
                url=request.url.copy_set_param("access_token", self.token),
            )

        if self.method is AuthorizationMethod.BODY:
            body = read_content(request)
            content_type = request.headers.get("Content-Type", "")
            if body is None or (body and not content_type.startswith(FORM_CONTENT_TYPE)):
                # RFC 6750 2.2 only allows single-part form-encoded bodies
                raise AuthorizationFailedError(
                    AuthorizationBuildError(
                        "Bearer token can only be sent in a form-encoded body"
                    )
                )
            token_param = urlencode({"access_token": self.token}).encode()
            content = body + b"&" + token_param if body else token_param
            return copy_request(
                request,
                headers={"Content-Type": FORM_CONTENT_TYPE},
                content=content,
            )

        return copy_request(request, headers={"Authorization": f"Bearer {self.token}"})

    def __repr__(self) -> str:
        return f"BearerAccessTokenAuthorizer(method={self.method.value!r})"


class HTTPBasicAuthorizer:
    """Authorizes requests using the HTTP Basic authentication scheme."""

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    @classmethod
    def for_client(cls, client_id: str, secret: str) -> HTTPBasicAuthorizer:
        """Authorizer for client authentication, RFC 6749 section 2.3.1."""
        return cls(client_id, secret)

    def header_value(self) -> str:
        """Build the Authorization header value.

        Raises:
            AuthorizationFailedError: If the credentials cannot be UTF-8 encoded.
        """
        try:
            raw = f"{self.username}:{self.password}".encode()
        except UnicodeEncodeError as e:
            raise AuthorizationFailedError(AuthorizationBuildError(cause=e))  # noqa: B904
        return "Basic " + base64.b64encode(raw).decode("ascii")

    async def authorize(self, request: httpx.Request) -> httpx.Request:
        return copy_request(request, headers={"Authorization": self.header_value()})

    def __repr__(self) -> str:
        return f"HTTPBasicAuthorizer(username={self.username!r})"
