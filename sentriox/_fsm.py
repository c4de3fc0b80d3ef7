"""
Finite State Machine for a single Digest exchange.

FSM Overview:
=============

  INITIAL ──401 + Digest──→ CHALLENGED ──2xx──→ AUTHENTICATED
     │                          └──401/other/error──→ FAILED
     ├──2xx──→ AUTHENTICATED
     └──401 w/o Digest, other status, transport error──→ FAILED

An exchange sends at most two requests: the unauthenticated request and one
authenticated retry. Nothing carries over between exchanges.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Union

import httpx

from ._models._auth import (
    ChallengeParameters,
    DigestCredentials,
    build_authorization_header,
    compute_digest_response,
    generate_cnonce,
    parse_challenge,
)
from ._models._message import DigestResponse, RequestSpec
from ._types import (
    AuthenticationFailed,
    DigestError,
    DigestState,
    InvalidTransition,
    MalformedChallenge,
    TimeoutError,
    TransportError,
    UnsupportedAuthScheme,
)
from ._utils import AUTHORIZATION, SCHEME, WWW_AUTHENTICATE, is_success, logger

TRANSITIONS: Dict[DigestState, FrozenSet[DigestState]] = {
    DigestState.INITIAL: frozenset(
        {DigestState.CHALLENGED, DigestState.AUTHENTICATED, DigestState.FAILED}
    ),
    DigestState.CHALLENGED: frozenset(
        {DigestState.AUTHENTICATED, DigestState.FAILED}
    ),
    DigestState.AUTHENTICATED: frozenset(),
    DigestState.FAILED: frozenset(),
}


def _status_error(response: httpx.Response) -> TransportError:
    return TransportError(
        f"HTTP {response.status_code}: {response.reason_phrase}",
        status_code=response.status_code,
        reason_phrase=response.reason_phrase,
    )


def _digest_challenge_header(response: httpx.Response) -> Optional[str]:
    """Return the first WWW-Authenticate value offering Digest, if any."""
    for value in response.headers.get_list(WWW_AUTHENTICATE):
        if SCHEME in value:
            return value
    return None


@dataclass
class DigestExchange:
    """
    One request's walk through the Digest handshake.

    The caller sends ``request`` with ``headers`` and feeds each outcome
    back through ``on_response`` or ``on_transport_error`` until
    ``is_terminal`` is true, then reads ``outcome()``.
    """

    request: RequestSpec
    credentials: DigestCredentials
    strict_challenge: bool = False
    cnonce_factory: Callable[[], str] = generate_cnonce

    # Identity
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # State
    state: DigestState = DigestState.INITIAL
    history: List[DigestState] = field(default_factory=list)
    attempts: int = 0

    # Handshake data
    challenge: Optional[ChallengeParameters] = None
    authorization: Optional[str] = field(default=None, repr=False)

    # Outcome
    result: Optional[DigestResponse] = None
    error: Optional[DigestError] = None

    def transition_to(self, new_state: DigestState) -> DigestState:
        """
        Transition to a new state.

        Raises:
            InvalidTransition: If the transition table does not allow it
        """
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"Cannot move Digest exchange from {self.state.name} to {new_state.name}"
            )
        logger.debug(
            f"Digest exchange {self.id[:8]}: {self.state.name} → {new_state.name}"
        )
        self.history.append(self.state)
        self.state = new_state
        return new_state

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.state]

    @property
    def headers(self) -> Dict[str, str]:
        """Headers for the next attempt."""
        if self.state is DigestState.CHALLENGED and self.authorization:
            return {AUTHORIZATION: self.authorization}
        return {}

    # ------------------------------------------------------------------
    # Transition function
    # ------------------------------------------------------------------

    def on_response(self, response: httpx.Response) -> DigestState:
        """Advance the exchange with the response to the current attempt."""
        self.attempts += 1
        if self.state is DigestState.INITIAL:
            return self._on_initial_response(response)
        if self.state is DigestState.CHALLENGED:
            return self._on_challenged_response(response)
        raise InvalidTransition(f"Digest exchange already {self.state.name}")

    def on_transport_error(
        self, exc: Union[httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError]
    ) -> DigestState:
        """Fail the exchange because the current attempt never got a response."""
        if self.is_terminal:
            raise InvalidTransition(f"Digest exchange already {self.state.name}")
        self.attempts += 1
        if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
            error: TransportError = TimeoutError(
                f"Request timed out after {self.request.timeout_ms} ms"
            )
        else:
            error = TransportError(str(exc) or exc.__class__.__name__)
        error.__cause__ = exc
        return self._fail(error)

    def outcome(self) -> DigestResponse:
        """
        Return the authenticated response.

        Raises:
            DigestError: The error that failed the exchange
            InvalidTransition: If the exchange has not finished
        """
        if self.state is DigestState.AUTHENTICATED and self.result is not None:
            return self.result
        if self.state is DigestState.FAILED and self.error is not None:
            raise self.error
        raise InvalidTransition(f"Digest exchange not finished ({self.state.name})")

    # ------------------------------------------------------------------
    # Per-state handlers
    # ------------------------------------------------------------------

    def _on_initial_response(self, response: httpx.Response) -> DigestState:
        if is_success(response.status_code):
            return self._succeed(response)

        if response.status_code != 401:
            return self._fail(_status_error(response))

        header = _digest_challenge_header(response)
        if header is None:
            return self._fail(
                UnsupportedAuthScheme("Server does not support digest authentication")
            )

        try:
            challenge = parse_challenge(header, strict=self.strict_challenge)
        except MalformedChallenge as exc:
            return self._fail(exc)

        uri = self.request.uri
        digest = compute_digest_response(
            self.credentials,
            self.request.method.value,
            uri,
            challenge,
            cnonce_factory=self.cnonce_factory,
        )
        self.challenge = challenge
        self.authorization = build_authorization_header(
            self.credentials, uri, challenge, digest
        )
        return self.transition_to(DigestState.CHALLENGED)

    def _on_challenged_response(self, response: httpx.Response) -> DigestState:
        if is_success(response.status_code):
            return self._succeed(response)
        if response.status_code == 401:
            return self._fail(
                AuthenticationFailed(
                    f"HTTP 401: {response.reason_phrase}",
                    reason_phrase=response.reason_phrase,
                )
            )
        return self._fail(_status_error(response))

    def _succeed(self, response: httpx.Response) -> DigestState:
        self.result = DigestResponse.from_httpx(
            response, self.request.response_encoding
        )
        return self.transition_to(DigestState.AUTHENTICATED)

    def _fail(self, error: DigestError) -> DigestState:
        self.error = error
        return self.transition_to(DigestState.FAILED)

    def __repr__(self) -> str:
        return (
            f"<DigestExchange({self.request.method.value} {self.request.url}, "
            f"{self.state.name}, {self.attempts} attempts)>"
        )


__all__ = ["DigestExchange", "TRANSITIONS"]
