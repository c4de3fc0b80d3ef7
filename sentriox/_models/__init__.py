"""
Digest Models Package.

This package contains the authentication primitives and the request/response
models.
"""

from ._auth import (
    ChallengeParameters,
    DigestCredentials,
    DigestResponseData,
    build_authorization_header,
    compute_digest_response,
    generate_cnonce,
    parse_challenge,
)
from ._message import DigestResponse, RequestSpec, ResponseData

__all__ = [
    # Authentication - Data
    "ChallengeParameters",
    "DigestCredentials",
    "DigestResponseData",
    # Authentication - Functions
    "parse_challenge",
    "compute_digest_response",
    "build_authorization_header",
    "generate_cnonce",
    # Messages
    "RequestSpec",
    "DigestResponse",
    "ResponseData",
]
