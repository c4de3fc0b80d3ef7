from __future__ import annotations

import hashlib
import re
from typing import Callable, List, Optional

import httpx
import pytest

REALM = "sentrio"
NONCE = "6f1c2a9b03d54e8f"
OPAQUE = "a7c3e1"
USERNAME = "admin"
PASSWORD = "secret"

_AUTH_PARAM_RE = re.compile(r'(\w+)="?([^",]+)"?')


def md5_hex(value: str) -> str:
    return hashlib.md5(value.encode()).hexdigest()


def parse_authorization(header: str) -> dict:
    assert header.startswith("Digest ")
    return dict(_AUTH_PARAM_RE.findall(header[len("Digest "):]))


class DigestDevice:
    """
    In-memory sentrio that enforces Digest authentication.

    Requests without ``Authorization`` get a 401 challenge; authorized
    requests are checked against ``password`` and answered by ``handler``.
    """

    def __init__(
        self,
        *,
        qop: Optional[str] = "auth",
        opaque: Optional[str] = OPAQUE,
        password: str = PASSWORD,
        challenge: Optional[str] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ):
        self.qop = qop
        self.opaque = opaque
        self.password = password
        self.challenge = challenge
        self.handler = handler or (lambda request: httpx.Response(200, json={"success": True}))
        self.requests: List[httpx.Request] = []

    @property
    def www_authenticate(self) -> str:
        if self.challenge is not None:
            return self.challenge
        value = f'Digest realm="{REALM}", nonce="{NONCE}"'
        if self.qop:
            value += f', qop="{self.qop}"'
        if self.opaque:
            value += f', opaque="{self.opaque}"'
        return value

    def expected_response(self, request: httpx.Request, params: dict) -> str:
        ha1 = md5_hex(f"{params['username']}:{REALM}:{self.password}")
        ha2 = md5_hex(f"{request.method}:{params['uri']}")
        if "qop" in params:
            return md5_hex(
                f"{ha1}:{NONCE}:{params['nc']}:{params['cnonce']}:{params['qop']}:{ha2}"
            )
        return md5_hex(f"{ha1}:{NONCE}:{ha2}")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        header = request.headers.get("Authorization")
        if header is None:
            return httpx.Response(401, headers={"WWW-Authenticate": self.www_authenticate})

        params = parse_authorization(header)
        if params.get("response") != self.expected_response(request, params):
            return httpx.Response(401, headers={"WWW-Authenticate": self.www_authenticate})
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def device() -> DigestDevice:
    return DigestDevice()
