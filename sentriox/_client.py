from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Union

import httpx

from ._fsm import DigestExchange
from ._models._auth import DigestCredentials, generate_cnonce
from ._models._message import DigestResponse, RequestSpec
from ._types import ClientConfig, DigestState, HttpMethod, ResponseEncoding
from ._utils import DEFAULT_TIMEOUT_MS, logger, timeout_seconds


class AsyncDigestClient:
    """
    Asynchronous HTTP client that answers Digest challenges.

    Each call to ``request`` runs one independent exchange: an
    unauthenticated request and, on ``401 WWW-Authenticate: Digest``, exactly
    one retry carrying the computed ``Authorization`` header. No nonce or
    session survives the call; the only shared resource is the connection
    pool of the underlying ``httpx.AsyncClient``.

    Example:
        >>> async with AsyncDigestClient() as client:
        ...     response = await client.request(
        ...         "https://10.0.0.12/api/call/status",
        ...         username="admin",
        ...         password="admin",
        ...     )
        ...     print(response.data)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        cnonce_factory: Callable[[], str] = generate_cnonce,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration. If None, uses defaults.
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
            http_client: Externally owned httpx client; not closed by us
            cnonce_factory: Source of client nonces
        """
        self.config = config or ClientConfig()
        self._cnonce_factory = cnonce_factory

        if http_client is not None:
            self._http = http_client
            self._owns_http = False
        else:
            self._http = self._create_http_client(transport)
            self._owns_http = True

        self._closed = False

    def _create_http_client(
        self, transport: Optional[httpx.AsyncBaseTransport]
    ) -> httpx.AsyncClient:
        if not self.config.verify:
            logger.warning(
                "TLS certificate verification disabled for device requests "
                "(self-signed device certificates are accepted)"
            )
        return httpx.AsyncClient(verify=self.config.verify, transport=transport)

    async def request(
        self,
        url: str,
        method: Union[str, HttpMethod] = HttpMethod.GET,
        body: Optional[Any] = None,
        *,
        username: str,
        password: str,
        timeout_ms: Optional[int] = None,
        response_encoding: Optional[Union[str, ResponseEncoding]] = None,
    ) -> DigestResponse:
        """
        Perform a Digest-authenticated request.

        Args:
            url: Absolute device URL
            method: GET, POST, PUT or DELETE
            body: JSON-serializable payload or None
            username: Digest username
            password: Digest password
            timeout_ms: Per-attempt timeout (default from config)
            response_encoding: "json" or "binary" (default from config)

        Returns:
            The 2xx response, normalized

        Raises:
            UnsupportedAuthScheme: 401 without a Digest challenge
            AuthenticationFailed: Authenticated retry rejected with 401
            MalformedChallenge: Incomplete challenge, strict mode only
            TransportError: Network failure, timeout or unexpected status
        """
        spec = RequestSpec(
            method=method,
            url=url,
            body=body,
            timeout_ms=timeout_ms if timeout_ms is not None else self.config.timeout_ms,
            response_encoding=(
                response_encoding
                if response_encoding is not None
                else self.config.response_encoding
            ),
        )
        exchange = DigestExchange(
            request=spec,
            credentials=DigestCredentials(username, password),
            strict_challenge=self.config.strict_challenge,
            cnonce_factory=self._cnonce_factory,
        )
        return await self.run(exchange)

    async def run(self, exchange: DigestExchange) -> DigestResponse:
        """Drive an exchange to a terminal state and return its outcome."""
        while not exchange.is_terminal:
            try:
                response = await self._send(exchange)
            except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as exc:
                logger.debug(f"{exchange.request.method.value} {exchange.request.url} failed: {exc!r}")
                exchange.on_transport_error(exc)
            else:
                exchange.on_response(response)

        if exchange.state is DigestState.FAILED:
            logger.debug(f"Digest request failed: {exchange.error}")
        return exchange.outcome()

    async def _send(self, exchange: DigestExchange) -> httpx.Response:
        spec = exchange.request
        headers = {**self.config.headers, **exchange.headers}
        logger.debug(
            f"{spec.method.value} {spec.url} "
            f"({'authenticated' if exchange.authorization else 'unauthenticated'})"
        )
        # httpx limits each phase separately; wait_for bounds the whole attempt
        response = await asyncio.wait_for(
            self._http.request(
                spec.method.value,
                spec.url,
                json=spec.body,
                headers=headers,
                timeout=spec.timeout,
            ),
            timeout=timeout_seconds(spec.timeout_ms),
        )
        logger.debug(f"{spec.method.value} {spec.url} → {response.status_code}")
        return response

    async def aclose(self) -> None:
        """Close the client and cleanup resources."""
        if self._closed:
            return
        self._closed = True
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
        return False

    @property
    def is_closed(self) -> bool:
        """Check if client is closed."""
        return self._closed

    def __repr__(self):
        return f"<AsyncDigestClient(verify={self.config.verify}, closed={self._closed})>"


async def perform_digest_request(
    url: str,
    method: Union[str, HttpMethod],
    body: Optional[Any],
    username: str,
    password: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    response_encoding: Union[str, ResponseEncoding] = ResponseEncoding.JSON,
    *,
    verify: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> DigestResponse:
    """
    Perform one Digest-authenticated request with a short-lived client.

    See ``AsyncDigestClient.request`` for the failure modes.
    """
    config = ClientConfig(verify=verify, timeout_ms=timeout_ms)
    async with AsyncDigestClient(config, transport=transport) as client:
        return await client.request(
            url,
            method,
            body,
            username=username,
            password=password,
            response_encoding=response_encoding,
        )


__all__ = ["AsyncDigestClient", "perform_digest_request"]
