"""
Request and response models.

``RequestSpec`` describes one logical request; it is replayed unchanged on
the authenticated retry. ``DigestResponse`` is the normalized result handed
back to callers, independent of the underlying HTTP library.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

from .._types import HttpMethod, ResponseEncoding
from .._utils import DEFAULT_TIMEOUT_MS, timeout_seconds

JSONValue = Any
ResponseData = Union[JSONValue, bytes]


@dataclass(frozen=True)
class RequestSpec:
    """
    A single logical request.

    Attributes:
        method: GET, POST, PUT or DELETE
        url: Absolute URL of the device endpoint
        body: JSON-serializable payload, or None for no body
        timeout_ms: Timeout applied to each attempt independently
        response_encoding: JSON or BINARY body decoding
    """

    method: HttpMethod
    url: str
    body: Optional[JSONValue] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    response_encoding: ResponseEncoding = ResponseEncoding.JSON

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", HttpMethod.coerce(self.method))
        object.__setattr__(
            self, "response_encoding", ResponseEncoding(self.response_encoding)
        )
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")

    @property
    def uri(self) -> str:
        """Path plus query string, as it appears on the request line."""
        return httpx.URL(self.url).raw_path.decode("ascii")

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(timeout_seconds(self.timeout_ms))


@dataclass
class DigestResponse:
    """
    Normalized HTTP response.

    Attributes:
        status_code: HTTP status code (always 2xx for returned responses)
        reason_phrase: HTTP reason phrase
        headers: Response headers with lower-cased names
        data: Decoded JSON, text when the body is not JSON, or raw bytes
        url: Final request URL
    """

    status_code: int
    reason_phrase: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    data: ResponseData = None
    url: str = ""

    @classmethod
    def from_httpx(
        cls, response: httpx.Response, encoding: ResponseEncoding
    ) -> DigestResponse:
        return cls(
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            headers=dict(response.headers.items()),
            data=_decode_body(response, encoding),
            url=str(response.url),
        )

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    def __repr__(self) -> str:
        return f"<DigestResponse [{self.status_code} {self.reason_phrase}]>"


def _decode_body(response: httpx.Response, encoding: ResponseEncoding) -> ResponseData:
    if encoding is ResponseEncoding.BINARY:
        return response.content
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


__all__ = ["DigestResponse", "RequestSpec", "ResponseData"]
