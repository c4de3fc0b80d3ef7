"""
HTTP Digest Authentication (RFC 2617/7616), client side.

Implements the three pure steps of the challenge-response model:
- Challenge parsing from a ``WWW-Authenticate`` header
- Response digest computation (MD5, qop=auth or legacy RFC 2069 mode)
- ``Authorization`` header generation

Security Notes:
- MD5 is what the device firmware speaks; it is a compatibility requirement,
  not a security boundary
- Only one authenticated request is sent per challenge, so the nonce count is
  always ``00000001``
"""

from __future__ import annotations

import hashlib
import re
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Optional

from .._types import MalformedChallenge
from .._utils import CNONCE_BYTES, NONCE_COUNT, SCHEME

_PARAM_RE = re.compile(r"""(\w+)=["']?([^"',]+)["']?""")


def _md5_hex(value: str) -> str:
    return hashlib.md5(value.encode()).hexdigest()


def generate_cnonce() -> str:
    """Return a fresh client nonce: 8 random bytes as 16 hex characters."""
    return secrets.token_hex(CNONCE_BYTES)


# ============================================================================
# Data
# ============================================================================


@dataclass(frozen=True)
class DigestCredentials:
    """
    Credentials for a single Digest request.

    Attributes:
        username: Device account name
        password: Plain text password (never logged or persisted)
    """

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ChallengeParameters:
    """
    Parsed ``WWW-Authenticate: Digest`` challenge.

    Attributes:
        realm: Protection space; empty when the server omitted it
        nonce: Server nonce; empty when the server omitted it
        opaque: Value the client must echo back unchanged (optional)
        qop: Quality of protection as sent by the server (optional)
        params: Every parsed key/value pair, including unknown ones
    """

    realm: str
    nonce: str
    opaque: Optional[str] = None
    qop: Optional[str] = None
    params: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )

    @property
    def scheme(self) -> str:
        return SCHEME

    @property
    def is_complete(self) -> bool:
        """True when both realm and nonce were present."""
        return "realm" in self.params and "nonce" in self.params


@dataclass(frozen=True)
class DigestResponseData:
    """
    Computed digest for one request.

    ``qop``, ``nc`` and ``cnonce`` are set together, and only when the
    challenge asked for ``qop="auth"``.
    """

    response: str
    qop: Optional[str] = None
    nc: Optional[str] = None
    cnonce: Optional[str] = None

    def __post_init__(self) -> None:
        if self.qop is not None and not (self.nc and self.cnonce):
            raise ValueError("qop digests require both nc and cnonce")


# ============================================================================
# Parsing
# ============================================================================


def parse_challenge(header_value: str, *, strict: bool = False) -> ChallengeParameters:
    """
    Parse a ``WWW-Authenticate`` header value.

    Every ``key=value`` pair is extracted; values may be single- or
    double-quoted and never contain a comma. Missing ``realm``/``nonce``
    become empty strings so the exchange fails on the authenticated retry,
    unless ``strict`` is set.

    Args:
        header_value: Header value (e.g. ``'Digest realm="x", nonce="y"'``)
        strict: Raise instead of tolerating a challenge without realm/nonce

    Returns:
        ChallengeParameters instance

    Raises:
        MalformedChallenge: In strict mode, if realm or nonce is missing
    """
    params = MappingProxyType(dict(_PARAM_RE.findall(header_value)))

    if strict:
        missing = [name for name in ("realm", "nonce") if name not in params]
        if missing:
            raise MalformedChallenge(
                f"Digest challenge missing {', '.join(missing)}"
            )

    return ChallengeParameters(
        realm=params.get("realm", ""),
        nonce=params.get("nonce", ""),
        opaque=params.get("opaque"),
        qop=params.get("qop"),
        params=params,
    )


# ============================================================================
# Response computation
# ============================================================================


def compute_digest_response(
    credentials: DigestCredentials,
    method: str,
    uri: str,
    challenge: ChallengeParameters,
    *,
    cnonce: Optional[str] = None,
    cnonce_factory: Callable[[], str] = generate_cnonce,
) -> DigestResponseData:
    """
    Calculate the digest response according to RFC 2617.

    Args:
        credentials: Username and password
        method: HTTP method, as sent on the request line
        uri: Request path plus query string (never the absolute URL)
        challenge: Parsed challenge
        cnonce: Pin the client nonce (test vectors); generated otherwise
        cnonce_factory: Source of fresh client nonces

    Returns:
        DigestResponseData instance
    """
    ha1 = _md5_hex(f"{credentials.username}:{challenge.realm}:{credentials.password}")
    ha2 = _md5_hex(f"{method}:{uri}")

    if challenge.qop == "auth":
        nc = NONCE_COUNT
        cnonce = cnonce or cnonce_factory()
        response = _md5_hex(
            f"{ha1}:{challenge.nonce}:{nc}:{cnonce}:{challenge.qop}:{ha2}"
        )
        return DigestResponseData(
            response=response, qop=challenge.qop, nc=nc, cnonce=cnonce
        )

    # RFC 2069 compatibility (no qop)
    return DigestResponseData(response=_md5_hex(f"{ha1}:{challenge.nonce}:{ha2}"))


# ============================================================================
# Header generation
# ============================================================================


def build_authorization_header(
    credentials: DigestCredentials,
    uri: str,
    challenge: ChallengeParameters,
    digest: DigestResponseData,
) -> str:
    """
    Build the ``Authorization`` header value.

    String attributes are double-quoted; ``nc`` is left bare.

    Returns:
        Complete header value, e.g. ``'Digest username="admin", ...'``
    """
    parts = [
        f'username="{credentials.username}"',
        f'realm="{challenge.realm}"',
        f'nonce="{challenge.nonce}"',
        f'uri="{uri}"',
        f'response="{digest.response}"',
    ]

    if challenge.opaque:
        parts.append(f'opaque="{challenge.opaque}"')

    if digest.qop:
        parts.extend(
            [
                f'qop="{digest.qop}"',
                f"nc={digest.nc}",
                f'cnonce="{digest.cnonce}"',
            ]
        )

    return f"{SCHEME} " + ", ".join(parts)


__all__ = [
    "ChallengeParameters",
    "DigestCredentials",
    "DigestResponseData",
    "build_authorization_header",
    "compute_digest_response",
    "generate_cnonce",
    "parse_challenge",
]
