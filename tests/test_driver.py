import base64
from pathlib import Path

import httpx
import pytest

from remote_driver.core.errors import (
    NegotiationError,
    RemoteCommandError,
    RemoteDriverError,
    TransportError,
    UnsupportedCommandError,
)
from remote_driver.io.driver import RemoteDriver
from remote_driver.io.element import WebElement
from remote_driver.io.session import Endpoint
from remote_driver.protocol.commands import ProtocolVersion

W3C_KEY = "element-6066-11e4-a52e-4f735466cecf"


class FakeSupervisor:
    def __init__(self, endpoint: Endpoint) -> None:
        self.endpoint = endpoint
        self.started = 0
        self.stopped = 0

    @property
    def binary_mode(self) -> bool:
        return self.started > self.stopped

    def start(self) -> Endpoint:
        self.started += 1
        return self.endpoint

    def stop(self) -> None:
        self.stopped += 1


# ---------------------------------------------------------------------------
# End-to-end through the object model
# ---------------------------------------------------------------------------


def test_w3c_find_then_click_uses_w3c_paths(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("POST", w3c_endpoint.spath("/element"), {W3C_KEY: "el-1"})
    driver = make_driver(w3c_endpoint)
    assert driver.protocol_version is ProtocolVersion.W3C

    body = driver.find_element("body", "tag_name")
    assert body.id == "el-1"
    assert (body.selector, body.selector_type) == ("body", "tag_name")
    assert w3c_endpoint.last.body == {"using": "tag name", "value": "body"}

    body.click()
    assert (w3c_endpoint.last.method, w3c_endpoint.last.path) == (
        "POST",
        "/session/sess-1/element/el-1/click",
    )


def test_legacy_element_round_trip(legacy_endpoint, make_driver) -> None:
    legacy_endpoint.route("POST", legacy_endpoint.spath("/element"), {"ELEMENT": "7"})
    driver = make_driver(legacy_endpoint)
    assert driver.protocol_version is ProtocolVersion.LEGACY

    field = driver.find_element("q", "name")
    assert legacy_endpoint.last.body == {"using": "name", "value": "q"}
    field.send_keys("ab", "c")
    assert legacy_endpoint.last.path == "/session/sess-1/element/7/value"
    assert legacy_endpoint.last.body == {"value": ["a", "b", "c"]}


def test_legacy_only_command_on_w3c_session_is_unsupported(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("POST", w3c_endpoint.spath("/element"), {W3C_KEY: "el-1"})
    driver = make_driver(w3c_endpoint)
    checkbox = driver.find_element("#agree", "css")
    sent = len(w3c_endpoint.calls)

    with pytest.raises(UnsupportedCommandError):
        checkbox.toggle()
    assert len(w3c_endpoint.calls) == sent


def test_default_finder_is_xpath(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("POST", w3c_endpoint.spath("/element"), {W3C_KEY: "el-1"})
    driver = make_driver(w3c_endpoint)
    driver.find_element("//a")
    assert w3c_endpoint.last.body == {"using": "xpath", "value": "//a"}


def test_bad_finder_is_rejected(w3c_endpoint, make_driver) -> None:
    driver = make_driver(w3c_endpoint)
    with pytest.raises(ValueError):
        driver.find_element("x", "telepathy")


def test_find_elements_returns_ordered_handles(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("POST", w3c_endpoint.spath("/elements"), [{W3C_KEY: "a"}, {W3C_KEY: "b"}])
    driver = make_driver(w3c_endpoint)
    assert [e.id for e in driver.find_elements("li", "tag_name")] == ["a", "b"]


def test_find_elements_without_match_is_empty(w3c_endpoint, legacy_endpoint, make_driver) -> None:
    w3c_endpoint.route("POST", w3c_endpoint.spath("/elements"), [])
    assert make_driver(w3c_endpoint).find_elements(".none", "css") == []

    legacy_endpoint.fail("POST", legacy_endpoint.spath("/elements"), "no such element", status=7)
    assert make_driver(legacy_endpoint).find_elements(".none", "css") == []


def test_child_lookup_is_scoped_to_parent(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("POST", w3c_endpoint.spath("/element"), {W3C_KEY: "form"})
    w3c_endpoint.route("POST", w3c_endpoint.spath("/element/form/element"), {W3C_KEY: "input"})
    driver = make_driver(w3c_endpoint)
    child = driver.find_element("form", "tag_name").find_child_element("q", "id")
    assert child.id == "input"
    assert w3c_endpoint.last.body == {"using": "css selector", "value": '[id="q"]'}


# ---------------------------------------------------------------------------
# Click strategies
# ---------------------------------------------------------------------------


def test_javascript_click_uses_recorded_selector(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("POST", w3c_endpoint.spath("/element"), {W3C_KEY: "el-1"})
    driver = make_driver(w3c_endpoint)
    driver.find_element("#go", "css").click("javascript")

    call = w3c_endpoint.last
    assert call.path == "/session/sess-1/execute/sync"
    assert "querySelector" in call.body["script"]
    assert call.body["args"] == ["#go"]


def test_javascript_click_without_selector_falls_back_to_native(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("GET", w3c_endpoint.spath("/element/active"), {W3C_KEY: "el-9"})
    driver = make_driver(w3c_endpoint)
    active = driver.get_active_element()
    active.click("javascript")
    assert w3c_endpoint.last.path == "/session/sess-1/element/el-9/click"


def test_keydown_click_sends_enter(w3c_endpoint, make_driver) -> None:
    driver = make_driver(w3c_endpoint)
    WebElement("el-1", driver).click("keydown")
    assert w3c_endpoint.last.path == "/session/sess-1/element/el-1/value"
    assert w3c_endpoint.last.body == {"text": "\ue007", "value": ["\ue007"]}


def test_unknown_click_method_is_rejected(w3c_endpoint, make_driver) -> None:
    driver = make_driver(w3c_endpoint)
    with pytest.raises(ValueError):
        WebElement("el-1", driver).click("telekinesis")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Session-scoped commands
# ---------------------------------------------------------------------------


def test_execute_script_converts_element_references(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route(
        "POST", w3c_endpoint.spath("/execute/sync"), {"el": {W3C_KEY: "x"}, "n": [1, {"ELEMENT": "y"}]}
    )
    driver = make_driver(w3c_endpoint)
    arg = WebElement("a1", driver)
    result = driver.execute_script("return arguments[0];", arg, 3)

    assert w3c_endpoint.last.body == {
        "script": "return arguments[0];",
        "args": [{"ELEMENT": "a1", W3C_KEY: "a1"}, 3],
    }
    assert isinstance(result["el"], WebElement) and result["el"].id == "x"
    assert result["n"][0] == 1 and result["n"][1].id == "y"


def test_element_geometry_on_w3c_comes_from_rect(w3c_endpoint, make_driver) -> None:
    rect = {"x": 10, "y": 20, "width": 30, "height": 40}
    w3c_endpoint.route("GET", w3c_endpoint.spath("/element/el-1/rect"), rect)
    driver = make_driver(w3c_endpoint)
    el = WebElement("el-1", driver)
    assert el.get_element_location() == {"x": 10, "y": 20}
    assert el.get_size() == {"width": 30, "height": 40}
    assert el.get_rect() == rect


def test_attribute_and_css_reads(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.route("GET", w3c_endpoint.spath("/element/el-1/attribute/value"), "hello")
    w3c_endpoint.route("GET", w3c_endpoint.spath("/element/el-1/css/background-color"), "red")
    driver = make_driver(w3c_endpoint)
    el = WebElement("el-1", driver)
    assert el.get_value() == "hello"
    assert el.get_css_attribute("background-color") == "red"
    with pytest.raises(ValueError):
        el.get_attribute("")


def test_timeouts_and_window_switch_are_reshaped(w3c_endpoint, legacy_endpoint, make_driver) -> None:
    w3c = make_driver(w3c_endpoint)
    w3c.set_timeout("page load", 500)
    assert w3c_endpoint.last.body == {"pageLoad": 500}
    w3c.switch_to_window("win-2")
    assert w3c_endpoint.last.body == {"handle": "win-2"}

    legacy = make_driver(legacy_endpoint)
    legacy.set_timeout("page load", 500)
    assert legacy_endpoint.last.body == {"type": "page load", "ms": 500}
    legacy.switch_to_window("win-2")
    assert legacy_endpoint.last.body == {"name": "win-2"}

    with pytest.raises(ValueError):
        w3c.set_timeout("forever", 1)


def test_timeout_getter_missing_on_endpoint_is_unsupported(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.fail("GET", w3c_endpoint.spath("/timeouts"), "unknown command")
    driver = make_driver(w3c_endpoint)
    with pytest.raises(UnsupportedCommandError) as ei:
        driver.get_timeouts()
    assert ei.value.remote is True


def test_capture_screenshot_writes_png(w3c_endpoint, make_driver, tmp_path: Path) -> None:
    png = b"\x89PNG\r\n\x1a\nfake"
    w3c_endpoint.route("GET", w3c_endpoint.spath("/screenshot"), base64.b64encode(png).decode())
    driver = make_driver(w3c_endpoint)
    out = driver.capture_screenshot(tmp_path / "shots" / "page.png")
    assert out.read_bytes() == png


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def test_quit_is_idempotent(w3c_endpoint, make_driver) -> None:
    driver = make_driver(w3c_endpoint)
    driver.quit()
    driver.quit()
    quits = [c for c in w3c_endpoint.calls if c.method == "DELETE" and c.path == "/session/sess-1"]
    assert len(quits) == 1


def test_context_manager_quits(w3c_endpoint, make_driver) -> None:
    with make_driver(w3c_endpoint) as driver:
        driver.get("https://example.com")
    assert w3c_endpoint.calls[-2].body == {"url": "https://example.com"}
    assert w3c_endpoint.last.method == "DELETE"


def test_injected_supervisor_provides_endpoint_and_is_stopped_on_quit(w3c_endpoint) -> None:
    supervisor = FakeSupervisor(Endpoint(port=9515))
    driver = RemoteDriver(supervisor=supervisor, transport=w3c_endpoint.transport())
    assert supervisor.started == 1
    assert driver.binary_mode
    assert driver.session.base_url == "http://127.0.0.1:9515"

    driver.quit()
    assert supervisor.stopped == 1


def test_supervisor_is_stopped_when_negotiation_fails(w3c_endpoint) -> None:
    w3c_endpoint.respond("POST", "/session", lambda call: (500, {"value": {"error": "session not created", "message": "x"}}))
    supervisor = FakeSupervisor(Endpoint(port=9515))
    with pytest.raises(NegotiationError):
        RemoteDriver(supervisor=supervisor, transport=w3c_endpoint.transport())
    assert supervisor.stopped == 1


def test_explicit_endpoint_skips_supervisor(w3c_endpoint) -> None:
    supervisor = FakeSupervisor(Endpoint(port=9515))
    driver = RemoteDriver(
        remote_server_addr="10.0.0.5", port=4444, supervisor=supervisor, transport=w3c_endpoint.transport()
    )
    assert supervisor.started == 0
    assert not driver.binary_mode
    assert driver.session.base_url == "http://10.0.0.5:4444/wd/hub"


def test_block_error_survives_a_failed_quit(w3c_endpoint, make_driver) -> None:
    def down(call):
        raise httpx.ConnectError("down")

    w3c_endpoint.respond("DELETE", w3c_endpoint.spath(), down)
    driver = make_driver(w3c_endpoint)
    with pytest.raises(KeyError, match="original failure"):
        with driver:
            raise KeyError("original failure")


def test_failed_quit_still_surfaces_on_clean_exit(w3c_endpoint, make_driver) -> None:
    def down(call):
        raise httpx.ConnectError("down")

    w3c_endpoint.respond("DELETE", w3c_endpoint.spath(), down)
    with pytest.raises(TransportError):
        with make_driver(w3c_endpoint):
            pass


def test_commands_after_quit_are_rejected(w3c_endpoint, make_driver) -> None:
    driver = make_driver(w3c_endpoint)
    driver.quit()
    sent = len(w3c_endpoint.calls)
    with pytest.raises(RemoteDriverError, match="already quit"):
        driver.get_title()
    assert len(w3c_endpoint.calls) == sent


def test_w3c_error_object_under_http_200_is_a_remote_error(w3c_endpoint, make_driver) -> None:
    w3c_endpoint.respond(
        "POST",
        w3c_endpoint.spath("/element"),
        lambda call: (200, {"value": {"error": "no such element", "message": "no #q", "stacktrace": ""}}),
    )
    driver = make_driver(w3c_endpoint)
    with pytest.raises(RemoteCommandError) as ei:
        driver.find_element("#q", "css")
    assert ei.value.error == "no such element"
