"""
RemoteDriver: the caller-facing handle on one WebDriver session.

Where the session lives:
- `remote_server_addr` and/or `port` given: talk to that endpoint, start nothing.
- otherwise, with a `supervisor` injected: let it start a local driver binary
  (or hand back its fallback endpoint) and talk to that.
- otherwise: 127.0.0.1:4444 (a standalone server).

Every command goes through one CommandDispatcher bound to the negotiated
SessionHandle, so the protocol version never changes mid-session.

Notes:
- Element lookups return WebElement handles; find_elements returns [] when
  nothing matches.
- Commands missing from the session's protocol raise UnsupportedCommandError
  before anything is sent.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from ..core.errors import RemoteCommandError, RemoteDriverError
from ..protocol.commands import ProtocolVersion
from .binary import EndpointProvider
from .dispatcher import CommandDispatcher
from .element import WebElement, is_element_reference
from .session import Endpoint, SessionHandle, establish
from .transport import WireTransport

log = logging.getLogger(__name__)

# finder name -> wire "using" strategy
FINDERS: dict[str, str] = {
    "class": "class name",
    "class_name": "class name",
    "css": "css selector",
    "id": "id",
    "link": "link text",
    "link_text": "link text",
    "name": "name",
    "partial_link_text": "partial link text",
    "tag_name": "tag name",
    "xpath": "xpath",
}

TIMEOUT_TYPES = ("script", "implicit", "page load")


class RemoteDriver:
    def __init__(
        self,
        *,
        remote_server_addr: Optional[str] = None,
        port: Optional[int] = None,
        base_path: str = "/wd/hub",
        browser_name: str = "chrome",
        desired_capabilities: Optional[Mapping[str, Any]] = None,
        extra_capabilities: Optional[Mapping[str, Any]] = None,
        supervisor: Optional[EndpointProvider] = None,
        transport: Optional[WireTransport] = None,
        request_timeout_seconds: float = 60.0,
        default_finder: str = "xpath",
    ) -> None:
        if default_finder not in FINDERS:
            raise ValueError(f"Bad default finder {default_finder!r}")
        self.default_finder = default_finder
        self.supervisor: Optional[EndpointProvider] = None
        self._transport = transport or WireTransport(timeout_seconds=request_timeout_seconds)

        if remote_server_addr is not None or port is not None:
            endpoint = Endpoint(host=remote_server_addr or "127.0.0.1", port=port or 4444, base_path=base_path)
        elif supervisor is not None:
            self.supervisor = supervisor
            endpoint = supervisor.start()
        else:
            endpoint = Endpoint(base_path=base_path)

        caps: dict[str, Any] = {"browserName": browser_name}
        if desired_capabilities is not None:
            caps = dict(desired_capabilities)
        if extra_capabilities:
            caps.update(extra_capabilities)

        try:
            self.session: SessionHandle = establish(self._transport, endpoint.base_url, caps)
        except BaseException:
            self._shutdown_binary()
            self._transport.close()
            raise
        self._dispatcher = CommandDispatcher(self.session, self._transport)
        self._quit = False

    # ---------------- plumbing ----------------

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def protocol_version(self) -> ProtocolVersion:
        return self.session.protocol_version

    @property
    def capabilities(self) -> dict[str, Any]:
        return dict(self.session.capabilities)

    @property
    def binary_mode(self) -> bool:
        return self.supervisor is not None and self.supervisor.binary_mode

    def supports(self, command: str) -> bool:
        return self._dispatcher.supports(command)

    def execute(
        self,
        command: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        element_id: Optional[str] = None,
    ) -> Any:
        if self._quit:
            raise RemoteDriverError(f"session {self.session_id} already quit; cannot run {command!r}")
        return self._dispatcher.dispatch(command, params, element_id)

    def __enter__(self) -> "RemoteDriver":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        if exc_type is None:
            self.quit()
            return
        # the block's own exception wins over a failed session delete
        try:
            self.quit()
        except RemoteDriverError as e:
            log.warning("quit failed during error unwind", extra={"session_id": self.session_id, "error": str(e)})

    def quit(self) -> None:
        """Delete the session and stop a spawned binary. Safe to call twice."""
        if self._quit:
            return
        self._quit = True
        try:
            self._dispatcher.dispatch("quit")
            log.info("session quit", extra={"session_id": self.session_id})
        finally:
            self._shutdown_binary()
            self._transport.close()

    def _shutdown_binary(self) -> None:
        if self.supervisor is not None:
            self.supervisor.stop()

    # ---------------- status & navigation ----------------

    def status(self) -> Any:
        return self.execute("status")

    def get(self, url: str) -> None:
        self.execute("get", {"url": url})

    navigate = get

    def get_current_url(self) -> str:
        return self.execute("get_current_url")

    def go_back(self) -> None:
        self.execute("go_back")

    def go_forward(self) -> None:
        self.execute("go_forward")

    def refresh(self) -> None:
        self.execute("refresh")

    def get_title(self) -> str:
        return self.execute("get_title")

    def get_page_source(self) -> str:
        return self.execute("get_page_source")

    # ---------------- timeouts ----------------

    def set_timeout(self, type: str, ms: int) -> None:
        if type not in TIMEOUT_TYPES:
            raise ValueError(f"timeout type must be one of {TIMEOUT_TYPES}, got {type!r}")
        self.execute("set_timeout", {"type": type, "ms": int(ms)})

    def set_implicit_wait_timeout(self, ms: int) -> None:
        self.execute("set_implicit_wait_timeout", {"ms": int(ms)})

    def set_async_script_timeout(self, ms: int) -> None:
        self.execute("set_async_script_timeout", {"ms": int(ms)})

    def get_timeouts(self) -> dict[str, Any]:
        return self.execute("get_timeouts")

    # ---------------- scripts & screenshots ----------------

    def execute_script(self, script: str, *args: Any) -> Any:
        result = self.execute("execute_script", {"script": script, "args": self._wire_args(args)})
        return self._unwrap(result)

    def execute_async_script(self, script: str, *args: Any) -> Any:
        result = self.execute("execute_async_script", {"script": script, "args": self._wire_args(args)})
        return self._unwrap(result)

    def screenshot(self) -> str:
        """Base64-encoded PNG of the current viewport."""
        return self.execute("screenshot")

    def capture_screenshot(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(base64.b64decode(self.screenshot()))
        return target

    def _wire_args(self, args: tuple[Any, ...]) -> list[Any]:
        return [self._to_wire(a) for a in args]

    def _to_wire(self, value: Any) -> Any:
        if isinstance(value, WebElement):
            return value.to_wire()
        if isinstance(value, (list, tuple)):
            return [self._to_wire(v) for v in value]
        if isinstance(value, dict):
            return {k: self._to_wire(v) for k, v in value.items()}
        return value

    def _unwrap(self, value: Any) -> Any:
        if is_element_reference(value):
            return WebElement(value, self)
        if isinstance(value, list):
            return [self._unwrap(v) for v in value]
        if isinstance(value, dict):
            return {k: self._unwrap(v) for k, v in value.items()}
        return value

    # ---------------- windows & frames ----------------

    def get_current_window_handle(self) -> str:
        return self.execute("get_current_window_handle")

    def get_window_handles(self) -> list[str]:
        return self.execute("get_window_handles")

    def switch_to_window(self, handle: str) -> None:
        self.execute("switch_to_window", {"handle": handle})

    def switch_to_frame(self, frame: Any = None) -> None:
        """Switch by index, name/id, WebElement, or None for the top-level document."""
        self.execute("switch_to_frame", {"id": self._to_wire(frame)})

    def switch_to_parent_frame(self) -> None:
        self.execute("switch_to_parent_frame")

    def close_window(self) -> Any:
        return self.execute("close_window")

    def get_window_size(self) -> dict[str, int]:
        return self.execute("get_window_size")

    def set_window_size(self, width: int, height: int) -> None:
        self.execute("set_window_size", {"width": int(width), "height": int(height)})

    def get_window_position(self) -> dict[str, int]:
        return self.execute("get_window_position")

    def set_window_position(self, x: int, y: int) -> None:
        self.execute("set_window_position", {"x": int(x), "y": int(y)})

    def get_window_rect(self) -> dict[str, int]:
        return self.execute("get_window_rect")

    def set_window_rect(
        self,
        *,
        x: Optional[int] = None,
        y: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> dict[str, int]:
        rect = {k: v for k, v in {"x": x, "y": y, "width": width, "height": height}.items() if v is not None}
        return self.execute("set_window_rect", rect)

    def maximize_window(self) -> None:
        self.execute("maximize_window")

    def minimize_window(self) -> None:
        self.execute("minimize_window")

    def fullscreen_window(self) -> None:
        self.execute("fullscreen_window")

    def get_orientation(self) -> str:
        return self.execute("get_orientation")

    def set_orientation(self, orientation: str) -> None:
        value = orientation.upper()
        if value not in ("LANDSCAPE", "PORTRAIT"):
            raise ValueError("orientation must be LANDSCAPE or PORTRAIT")
        self.execute("set_orientation", {"orientation": value})

    # ---------------- cookies ----------------

    def get_all_cookies(self) -> list[dict[str, Any]]:
        return self.execute("get_all_cookies") or []

    def get_cookie_named(self, name: str) -> dict[str, Any]:
        return self.execute("get_cookie_named", {"name": name})

    def add_cookie(self, name: str, value: str, **attributes: Any) -> None:
        cookie = {"name": name, "value": value, **attributes}
        self.execute("add_cookie", {"cookie": cookie})

    def delete_all_cookies(self) -> None:
        self.execute("delete_all_cookies")

    def delete_cookie_named(self, name: str) -> None:
        self.execute("delete_cookie_named", {"name": name})

    # ---------------- alerts ----------------

    def get_alert_text(self) -> str:
        return self.execute("get_alert_text")

    def send_keys_to_prompt(self, text: str) -> None:
        self.execute("send_keys_to_prompt", {"text": text})

    def accept_alert(self) -> None:
        self.execute("accept_alert")

    def dismiss_alert(self) -> None:
        self.execute("dismiss_alert")

    # ---------------- input ----------------

    def send_keys_to_active_element(self, *strings: Any) -> None:
        if not strings:
            raise ValueError("no keys to send")
        self.execute("send_keys_to_active_element", {"text": "".join(str(s) for s in strings)})

    def perform_actions(self, actions: list[dict[str, Any]]) -> None:
        self.execute("perform_actions", {"actions": self._to_wire(actions)})

    def release_actions(self) -> None:
        self.execute("release_actions")

    # ---------------- element lookup ----------------

    def find_element(self, locator: str, by: Optional[str] = None) -> WebElement:
        return self._find("find_element", locator, by)

    def find_elements(self, locator: str, by: Optional[str] = None) -> list[WebElement]:
        return self._find("find_elements", locator, by)

    def find_child_element(self, parent: WebElement, locator: str, by: Optional[str] = None) -> WebElement:
        return parent.find_child_element(locator, by)

    def find_child_elements(
        self, parent: WebElement, locator: str, by: Optional[str] = None
    ) -> list[WebElement]:
        return parent.find_child_elements(locator, by)

    def get_active_element(self) -> WebElement:
        return WebElement(self.execute("get_active_element"), self)

    def _find(
        self,
        command: str,
        locator: str,
        by: Optional[str],
        *,
        parent_id: Optional[str] = None,
    ) -> Any:
        finder = by or self.default_finder
        try:
            using = FINDERS[finder]
        except KeyError as e:
            raise ValueError(f"Bad finder {finder!r}; expected one of {sorted(FINDERS)}") from e

        many = command.endswith("elements")
        try:
            result = self.execute(command, {"using": using, "value": locator}, element_id=parent_id)
        except RemoteCommandError as e:
            if many and e.error == "no such element":
                return []
            raise

        if many:
            return [WebElement(r, self, selector=locator, selector_type=finder) for r in result or []]
        if result is None:
            raise RemoteDriverError(f"{command} returned no element for {finder}={locator!r}")
        return WebElement(result, self, selector=locator, selector_type=finder)
