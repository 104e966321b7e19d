"""Core components for Identity Kit - December 2025 State of Art.

Token response decoding, token request building and the serial operation
queue shared by the flows and the identity manager.
"""

from __future__ import annotations

from .response_decoder import AccessTokenResponseDecoder
from .serial_queue import SerialQueue
from .token_ops import GrantType, TokenRequestBuilder

__all__ = [
    "AccessTokenResponseDecoder",
    "GrantType",
    "SerialQueue",
    "TokenRequestBuilder",
]
