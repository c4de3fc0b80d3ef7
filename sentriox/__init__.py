"""sentriox - HTTP Digest Authentication client for sentrio call stations."""

from __future__ import annotations

# Client implementations
from ._client import AsyncDigestClient, perform_digest_request

# FSM components
from ._fsm import TRANSITIONS, DigestExchange

# Models
from ._models import (
    ChallengeParameters,
    DigestCredentials,
    DigestResponse,
    DigestResponseData,
    RequestSpec,
    build_authorization_header,
    compute_digest_response,
    generate_cnonce,
    parse_challenge,
)

# Device API
from ._sentrio import DeviceStatus, SentrioClient, SentrioDevice

# Types
from ._types import (
    AuthenticationFailed,
    ClientConfig,
    DigestError,
    DigestState,
    HttpMethod,
    InvalidTransition,
    MalformedChallenge,
    ResponseEncoding,
    TimeoutError,
    TransportError,
    UnsupportedAuthScheme,
)

# Utilities
from ._utils import console, logger

__version__ = "0.1.0"

__all__ = [
    # Client - Main API
    "AsyncDigestClient",
    "perform_digest_request",
    # FSM
    "DigestExchange",
    "DigestState",
    "TRANSITIONS",
    # Authentication
    "ChallengeParameters",
    "DigestCredentials",
    "DigestResponseData",
    "parse_challenge",
    "compute_digest_response",
    "build_authorization_header",
    "generate_cnonce",
    # Messages
    "RequestSpec",
    "DigestResponse",
    # Device API
    "SentrioClient",
    "SentrioDevice",
    "DeviceStatus",
    # Configuration
    "ClientConfig",
    "HttpMethod",
    "ResponseEncoding",
    # Exceptions
    "DigestError",
    "UnsupportedAuthScheme",
    "AuthenticationFailed",
    "MalformedChallenge",
    "TransportError",
    "TimeoutError",
    "InvalidTransition",
    # Utilities - Console & Logging
    "console",
    "logger",
    # Metadata
    "__version__",
]
