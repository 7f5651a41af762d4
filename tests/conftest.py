"""Shared fixtures: a scripted WebDriver endpoint behind httpx.MockTransport (no network)."""

from __future__ import annotations

import json
import socket
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import httpx
import pytest

from remote_driver.io.driver import RemoteDriver
from remote_driver.io.transport import WireTransport

W3C_KEY = "element-6066-11e4-a52e-4f735466cecf"
BASE_PATH = "/wd/hub"
SESSION_ID = "sess-1"


@dataclass
class Call:
    method: str
    path: str
    body: Any


Responder = Callable[[Call], tuple[int, Any]]


class FakeEndpoint:
    """
    Answers WebDriver requests in the envelope of `protocol`.

    Routes are keyed by (method, path) with the /wd/hub prefix removed. A route
    is either a value (wrapped in a success envelope) or a responder returning
    (http_status, raw_body).
    """

    def __init__(self, protocol: str = "w3c", session_id: str = SESSION_ID) -> None:
        self.protocol = protocol
        self.session_id = session_id
        self.calls: list[Call] = []
        self._routes: dict[tuple[str, str], Any] = {}

    # ---------------- scripting ----------------

    def ok(self, value: Any = None) -> dict[str, Any]:
        if self.protocol == "w3c":
            return {"value": value}
        return {"sessionId": self.session_id, "status": 0, "value": value}

    def route(self, method: str, path: str, value: Any = None) -> None:
        self._routes[(method, path)] = lambda call: (200, self.ok(value))

    def respond(self, method: str, path: str, responder: Responder) -> None:
        self._routes[(method, path)] = responder

    def fail(self, method: str, path: str, error: str, message: str = "boom", status: int = 7) -> None:
        if self.protocol == "w3c":
            body = {"value": {"error": error, "message": message, "stacktrace": "at foo"}}
            self._routes[(method, path)] = lambda call: (404, body)
        else:
            body = {"sessionId": self.session_id, "status": status, "value": {"message": message}}
            self._routes[(method, path)] = lambda call: (500, body)

    def spath(self, suffix: str = "") -> str:
        return f"/session/{self.session_id}{suffix}"

    # ---------------- inspection ----------------

    @property
    def commands(self) -> list[Call]:
        """Calls after the new-session request."""
        return [c for c in self.calls if not (c.method == "POST" and c.path == "/session")]

    @property
    def last(self) -> Call:
        return self.calls[-1]

    # ---------------- transport ----------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(BASE_PATH):
            path = path[len(BASE_PATH):]
        body = json.loads(request.content) if request.content else None
        call = Call(request.method, path, body)
        self.calls.append(call)

        responder = self._routes.get((call.method, call.path))
        if responder is not None:
            status, payload = responder(call)
        elif call.method == "POST" and call.path == "/session":
            status, payload = 200, self._new_session()
        else:
            status, payload = 200, self.ok(None)
        if isinstance(payload, (bytes, str)):
            return httpx.Response(status, content=payload)
        return httpx.Response(status, json=payload)

    def _new_session(self) -> dict[str, Any]:
        caps = {"browserName": "chrome"}
        if self.protocol == "w3c":
            return {"value": {"sessionId": self.session_id, "capabilities": caps}}
        return {"sessionId": self.session_id, "status": 0, "value": caps}

    def transport(self) -> WireTransport:
        return WireTransport(client=httpx.Client(transport=httpx.MockTransport(self.handler)))


@pytest.fixture
def w3c_endpoint() -> FakeEndpoint:
    return FakeEndpoint("w3c")


@pytest.fixture
def legacy_endpoint() -> FakeEndpoint:
    return FakeEndpoint("legacy")


@pytest.fixture
def make_driver() -> Iterator[Callable[..., RemoteDriver]]:
    def _make(endpoint: FakeEndpoint, **kw: Any) -> RemoteDriver:
        return RemoteDriver(
            remote_server_addr="127.0.0.1", port=4444, transport=endpoint.transport(), **kw
        )

    yield _make


@pytest.fixture
def free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
