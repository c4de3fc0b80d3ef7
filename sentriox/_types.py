"""
Type definitions for the sentrio Digest client.

This module centralizes the enums, the client configuration and the error
taxonomy used throughout the package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional

from ._utils import DEFAULT_TIMEOUT_MS


# =============================================================================
# Enums
# =============================================================================


class DigestState(Enum):
    """
    States of a single Digest exchange.

        INITIAL → CHALLENGED → AUTHENTICATED
           │           └─────→ FAILED
           ├─────────────────→ AUTHENTICATED (no challenge)
           └─────────────────→ FAILED
    """

    INITIAL = auto()  # Unauthenticated request pending
    CHALLENGED = auto()  # 401 received, authenticated retry pending
    AUTHENTICATED = auto()  # 2xx received (terminal)
    FAILED = auto()  # Error raised (terminal)


class ResponseEncoding(str, Enum):
    """How the response body is decoded."""

    JSON = "json"
    BINARY = "binary"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def coerce(cls, value: str | HttpMethod) -> HttpMethod:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {value!r}") from None


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class ClientConfig:
    """Configuration for Digest clients."""

    # TLS peer verification. Devices ship self-signed certificates, so it is
    # off unless the caller turns it on.
    verify: bool = False

    # Per-attempt timeout (milliseconds)
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Body decoding
    response_encoding: ResponseEncoding = ResponseEncoding.JSON

    # Reject challenges without realm/nonce instead of sending a doomed digest
    strict_challenge: bool = False

    # Extra headers sent on every attempt
    headers: dict[str, str] = field(default_factory=dict)

    # Additional options
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.response_encoding = ResponseEncoding(self.response_encoding)
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")


# =============================================================================
# Exceptions
# =============================================================================


class DigestError(Exception):
    """Base exception for Digest request failures."""

    pass


class UnsupportedAuthScheme(DigestError):
    """Raised when a 401 response does not offer Digest authentication."""

    pass


class MalformedChallenge(DigestError):
    """Raised in strict mode when a challenge lacks realm or nonce."""

    pass


class AuthenticationFailed(DigestError):
    """Raised when the authenticated retry is rejected with another 401."""

    def __init__(
        self,
        message: str = "Authentication failed",
        status_code: int = 401,
        reason_phrase: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason_phrase = reason_phrase


class TransportError(DigestError):
    """Raised on network failures and unexpected status codes."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason_phrase: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason_phrase = reason_phrase


class TimeoutError(TransportError):
    """Raised when a request attempt exceeds its timeout."""

    pass


class InvalidTransition(DigestError):
    """Raised when a Digest exchange is driven into an illegal state."""

    pass


__all__ = [
    # Enums
    "DigestState",
    "ResponseEncoding",
    "HttpMethod",
    # Configuration
    "ClientConfig",
    # Exceptions
    "DigestError",
    "UnsupportedAuthScheme",
    "MalformedChallenge",
    "AuthenticationFailed",
    "TransportError",
    "TimeoutError",
    "InvalidTransition",
]
