from typing import Any

import httpx
import pytest
from pydantic import ValidationError

from remote_driver.core.errors import NegotiationError, TransportError
from remote_driver.io.session import Endpoint, establish
from remote_driver.io.transport import WireTransport
from remote_driver.protocol.commands import ProtocolVersion

BASE = "http://127.0.0.1:4444/wd/hub"


def _transport(status: int, body: Any) -> WireTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    return WireTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_w3c_response_fixes_w3c(w3c_endpoint) -> None:
    session = establish(w3c_endpoint.transport(), BASE, {"browserName": "chrome"})
    assert session.protocol_version is ProtocolVersion.W3C
    assert session.session_id == "sess-1"
    assert session.capabilities == {"browserName": "chrome"}
    assert session.base_url == BASE


def test_legacy_response_fixes_legacy(legacy_endpoint) -> None:
    session = establish(legacy_endpoint.transport(), BASE, {"browserName": "firefox"})
    assert session.protocol_version is ProtocolVersion.LEGACY
    assert session.session_id == "sess-1"


def test_capabilities_are_sent_in_both_envelopes(w3c_endpoint) -> None:
    caps = {"browserName": "chrome", "goog:chromeOptions": {"args": ["--headless"]}}
    establish(w3c_endpoint.transport(), BASE, caps)
    call = w3c_endpoint.last
    assert (call.method, call.path) == ("POST", "/session")
    assert call.body == {"capabilities": {"alwaysMatch": caps}, "desiredCapabilities": caps}


def test_w3c_envelope_wins_when_both_are_present() -> None:
    body = {
        "sessionId": "legacy-id",
        "status": 0,
        "value": {"sessionId": "w3c-id", "capabilities": {}},
    }
    session = establish(_transport(200, body), BASE)
    assert session.protocol_version is ProtocolVersion.W3C
    assert session.session_id == "w3c-id"


@pytest.mark.parametrize(
    "status, body",
    [
        (500, {"value": {"error": "session not created", "message": "no chrome binary"}}),
        (200, {"value": {"browserName": "chrome"}}),
        (200, {"sessionId": "s", "status": 33, "value": {"message": "nope"}}),
        (200, {"value": {"sessionId": ""}}),
    ],
)
def test_no_usable_session_id_is_a_negotiation_error(status: int, body: Any) -> None:
    with pytest.raises(NegotiationError):
        establish(_transport(status, body), BASE)


def test_negotiation_error_carries_remote_message() -> None:
    body = {"value": {"error": "session not created", "message": "no chrome binary"}}
    with pytest.raises(NegotiationError, match="no chrome binary"):
        establish(_transport(500, body), BASE)


def test_connection_failure_is_a_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = WireTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(TransportError):
        establish(transport, BASE)


def test_session_handle_is_frozen(w3c_endpoint) -> None:
    session = establish(w3c_endpoint.transport(), BASE)
    with pytest.raises(ValidationError):
        session.protocol_version = ProtocolVersion.LEGACY  # type: ignore[misc]


@pytest.mark.parametrize(
    "base_path, expected",
    [("/wd/hub", "http://h:1/wd/hub"), ("wd/hub/", "http://h:1/wd/hub"), ("", "http://h:1")],
)
def test_endpoint_base_url(base_path: str, expected: str) -> None:
    assert Endpoint(host="h", port=1, base_path=base_path).base_url == expected
