import asyncio

import httpx
import pytest

from sentriox import (
    TRANSITIONS,
    AuthenticationFailed,
    DigestCredentials,
    DigestExchange,
    DigestState,
    InvalidTransition,
    MalformedChallenge,
    RequestSpec,
    TimeoutError,
    TransportError,
    UnsupportedAuthScheme,
)

URL = "https://10.0.0.12/api/call/status?verbose=1"


def _exchange(**kwargs) -> DigestExchange:
    return DigestExchange(
        request=RequestSpec(method="GET", url=URL),
        credentials=DigestCredentials("admin", "secret"),
        cnonce_factory=lambda: "0123456789abcdef",
        **kwargs,
    )


def _response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("GET", URL), **kwargs)


def _challenge(value: str = 'Digest realm="x", nonce="y", qop="auth"') -> httpx.Response:
    return _response(401, headers={"WWW-Authenticate": value})


def test_transition_table_has_two_terminal_states():
    terminal = {state for state, targets in TRANSITIONS.items() if not targets}
    assert terminal == {DigestState.AUTHENTICATED, DigestState.FAILED}
    assert TRANSITIONS[DigestState.CHALLENGED] == {
        DigestState.AUTHENTICATED,
        DigestState.FAILED,
    }


def test_initial_success_authenticates_without_challenge():
    exchange = _exchange()
    assert exchange.on_response(_response(200, json={"ok": True})) is DigestState.AUTHENTICATED
    assert exchange.is_terminal
    assert exchange.authorization is None
    assert exchange.outcome().data == {"ok": True}
    assert exchange.history == [DigestState.INITIAL]


def test_challenge_prepares_authorization_header():
    exchange = _exchange()
    assert exchange.headers == {}
    assert exchange.on_response(_challenge()) is DigestState.CHALLENGED
    assert not exchange.is_terminal

    authorization = exchange.headers["Authorization"]
    assert authorization.startswith('Digest username="admin", realm="x", nonce="y"')
    assert 'uri="/api/call/status?verbose=1"' in authorization
    assert 'cnonce="0123456789abcdef"' in authorization
    assert exchange.challenge.realm == "x"


def test_challenge_then_success():
    exchange = _exchange()
    exchange.on_response(_challenge())
    assert exchange.on_response(_response(204)) is DigestState.AUTHENTICATED
    assert exchange.outcome().status_code == 204
    assert exchange.attempts == 2
    assert exchange.history == [DigestState.INITIAL, DigestState.CHALLENGED]


def test_second_401_fails_authentication():
    exchange = _exchange()
    exchange.on_response(_challenge())
    assert exchange.on_response(_challenge()) is DigestState.FAILED
    with pytest.raises(AuthenticationFailed) as excinfo:
        exchange.outcome()
    assert excinfo.value.status_code == 401


def test_second_round_server_error_is_transport_error():
    exchange = _exchange()
    exchange.on_response(_challenge())
    exchange.on_response(_response(503))
    with pytest.raises(TransportError) as excinfo:
        exchange.outcome()
    assert excinfo.value.status_code == 503
    assert excinfo.value.reason_phrase == "Service Unavailable"
    assert str(excinfo.value) == "HTTP 503: Service Unavailable"


def test_401_without_digest_is_unsupported():
    exchange = _exchange()
    exchange.on_response(_challenge('Basic realm="x"'))
    assert exchange.state is DigestState.FAILED
    with pytest.raises(UnsupportedAuthScheme):
        exchange.outcome()


def test_401_without_header_is_unsupported():
    exchange = _exchange()
    exchange.on_response(_response(401))
    assert isinstance(exchange.error, UnsupportedAuthScheme)


def test_digest_challenge_is_picked_among_several():
    exchange = _exchange()
    response = _response(
        401,
        headers=[
            ("WWW-Authenticate", 'Basic realm="other"'),
            ("WWW-Authenticate", 'Digest realm="x", nonce="y"'),
        ],
    )
    assert exchange.on_response(response) is DigestState.CHALLENGED
    assert exchange.challenge.realm == "x"


def test_initial_unexpected_status_is_transport_error():
    exchange = _exchange()
    exchange.on_response(_response(404))
    assert isinstance(exchange.error, TransportError)
    assert exchange.error.status_code == 404


def test_strict_mode_fails_on_malformed_challenge():
    exchange = _exchange(strict_challenge=True)
    exchange.on_response(_challenge('Digest qop="auth"'))
    assert isinstance(exchange.error, MalformedChallenge)


def test_lenient_mode_proceeds_with_malformed_challenge():
    exchange = _exchange()
    exchange.on_response(_challenge("Digest qop=auth"))
    assert exchange.state is DigestState.CHALLENGED
    assert 'realm="", nonce=""' in exchange.authorization


def test_timeout_maps_to_timeout_error():
    exchange = _exchange()
    cause = httpx.ReadTimeout("timed out")
    exchange.on_transport_error(cause)
    with pytest.raises(TimeoutError) as excinfo:
        exchange.outcome()
    assert isinstance(excinfo.value, TransportError)
    assert excinfo.value.__cause__ is cause


def test_deadline_expiry_maps_to_timeout_error():
    exchange = _exchange()
    exchange.on_transport_error(asyncio.TimeoutError())
    assert exchange.state is DigestState.FAILED
    assert isinstance(exchange.error, TimeoutError)
    assert "ms" in str(exchange.error)


def test_connect_error_maps_to_transport_error():
    exchange = _exchange()
    exchange.on_transport_error(httpx.ConnectError("connection refused"))
    assert type(exchange.error) is TransportError
    assert "connection refused" in str(exchange.error)


def test_terminal_exchange_rejects_further_input():
    exchange = _exchange()
    exchange.on_response(_response(200))
    with pytest.raises(InvalidTransition):
        exchange.on_response(_response(200))
    with pytest.raises(InvalidTransition):
        exchange.on_transport_error(httpx.ConnectError("late"))


def test_illegal_transition_is_rejected():
    exchange = _exchange()
    exchange.on_response(_challenge())
    with pytest.raises(InvalidTransition):
        exchange.transition_to(DigestState.CHALLENGED)


def test_outcome_before_finish_raises():
    with pytest.raises(InvalidTransition):
        _exchange().outcome()
