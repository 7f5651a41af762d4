"""
Command table for both wire generations.

Each logical command has at most one binding per protocol version. A missing
binding means the command does not exist in that generation; `resolve()`
reports it as UNSUPPORTED instead of guessing.

Bindings also own shape normalization: the dispatcher hands over one
protocol-agnostic parameter dict and the binding turns it into the path and
body that generation expects (and, for a few commands, projects the result
back into a common shape).
"""
# @file purpose: Static logical-command table and per-protocol request shaping.

from __future__ import annotations

import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping
from urllib.parse import quote


class ProtocolVersion(str, Enum):
    LEGACY = "legacy"
    W3C = "w3c"


ELEMENT_KEY_LEGACY = "ELEMENT"
ELEMENT_KEY_W3C = "element-6066-11e4-a52e-4f735466cecf"

Encoder = Callable[[dict[str, Any]], dict[str, Any]]
Decoder = Callable[[Any], Any]

_FORMATTER = string.Formatter()


@dataclass(frozen=True)
class Binding:
    """One concrete wire shape: HTTP method, path template, body/result shaping."""

    method: str
    path: str
    encode: Encoder | None = None
    decode: Decoder | None = None
    defaults: Mapping[str, Any] = field(default_factory=dict)

    @property
    def path_fields(self) -> tuple[str, ...]:
        return tuple(name for _, name, _, _ in _FORMATTER.parse(self.path) if name)

    def build(
        self,
        params: Mapping[str, Any] | None = None,
        *,
        session_id: str | None = None,
        element_id: str | None = None,
    ) -> tuple[str, str, dict[str, Any] | None]:
        """
        Return (method, relative_path, body).

        Path placeholders are filled from session_id / element_id and then from
        params; whatever is left in params becomes the (encoded) JSON body.
        """
        values: dict[str, Any] = dict(self.defaults)
        body = dict(params or {})
        if session_id is not None:
            values["session_id"] = session_id
        if element_id is not None:
            values["element_id"] = element_id
        for name in self.path_fields:
            if name in body:
                values[name] = body.pop(name)
            if name not in values:
                raise ValueError(f"missing path parameter {name!r} for {self.path}")
        path = self.path.format(**{k: quote(str(v), safe="") for k, v in values.items()})

        if self.encode is not None:
            body = self.encode(body)
        if self.method == "POST":
            return self.method, path, body
        return self.method, path, body or None

    def result(self, value: Any) -> Any:
        return self.decode(value) if self.decode is not None else value


@dataclass(frozen=True)
class CommandDescriptor:
    name: str
    legacy: Binding | None = None
    w3c: Binding | None = None

    def binding_for(self, version: ProtocolVersion) -> Binding | None:
        return self.w3c if version is ProtocolVersion.W3C else self.legacy


class Unsupported:
    """Marker returned by resolve() when a command has no binding in a protocol."""

    _instance: "Unsupported | None" = None

    def __new__(cls) -> "Unsupported":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSUPPORTED"

    def __bool__(self) -> bool:
        return False


UNSUPPORTED = Unsupported()


# ---------------- shape normalization ----------------


def _split_keys(params: dict[str, Any]) -> dict[str, Any]:
    text = "".join(str(s) for s in params.get("text", ""))
    return {"value": list(text)}


def _split_keys_w3c(params: dict[str, Any]) -> dict[str, Any]:
    text = "".join(str(s) for s in params.get("text", ""))
    return {"text": text, "value": list(text)}


def _css_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _css_ident(value: str) -> str:
    """Serialize `value` as a CSS identifier (CSSOM escaping rules)."""
    out = []
    for i, ch in enumerate(value):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif ch.isascii() and ch.isdigit() and (i == 0 or (i == 1 and value[0] == "-")):
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(value) == 1:
            out.append("\\-")
        elif code >= 0x80 or ch in "-_" or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def _class_selector(value: str) -> str:
    if not value or any(c.isspace() for c in value):
        raise ValueError(f"Compound or empty class names are not permitted: {value!r}")
    return "." + _css_ident(value)


def _w3c_locator(params: dict[str, Any]) -> dict[str, Any]:
    using, value = params["using"], params["value"]
    if using == "id":
        return {"using": "css selector", "value": f'[id="{_css_escape(value)}"]'}
    if using == "name":
        return {"using": "css selector", "value": f'[name="{_css_escape(value)}"]'}
    if using == "class name":
        return {"using": "css selector", "value": _class_selector(value)}
    return {"using": using, "value": value}


def _window_handle_legacy(params: dict[str, Any]) -> dict[str, Any]:
    return {"name": params["handle"]}


_W3C_TIMEOUT_KEYS = {"script": "script", "implicit": "implicit", "page load": "pageLoad"}


def _timeout_w3c(params: dict[str, Any]) -> dict[str, Any]:
    kind = params["type"]
    try:
        key = _W3C_TIMEOUT_KEYS[kind]
    except KeyError as e:
        raise ValueError(f"unknown timeout type {kind!r}") from e
    return {key: params["ms"]}


def _timeout_as(key: str) -> Encoder:
    return lambda params: {key: params["ms"]}


def _project(*keys: str) -> Decoder:
    return lambda value: {k: value[k] for k in keys} if isinstance(value, dict) else value


# ---------------- table ----------------

S = "session/{session_id}"
E = S + "/element/{element_id}"


def _b(method: str, path: str, **kw: Any) -> Binding:
    return Binding(method, path, **kw)


def _cmd(name: str, legacy: Binding | None = None, w3c: Binding | None = None) -> CommandDescriptor:
    return CommandDescriptor(name=name, legacy=legacy, w3c=w3c)


def _same(name: str, method: str, path: str, **kw: Any) -> CommandDescriptor:
    return _cmd(name, _b(method, path, **kw), _b(method, path, **kw))


_CURRENT = {"window_handle": "current"}

_TABLE: tuple[CommandDescriptor, ...] = (
    # session
    _same("status", "GET", "status"),
    _same("new_session", "POST", "session"),
    _same("quit", "DELETE", S),
    _cmd("get_timeouts", None, _b("GET", S + "/timeouts")),
    _cmd("set_timeout", _b("POST", S + "/timeouts"), _b("POST", S + "/timeouts", encode=_timeout_w3c)),
    _cmd(
        "set_async_script_timeout",
        _b("POST", S + "/timeouts/async_script", encode=_timeout_as("ms")),
        _b("POST", S + "/timeouts", encode=_timeout_as("script")),
    ),
    _cmd(
        "set_implicit_wait_timeout",
        _b("POST", S + "/timeouts/implicit_wait", encode=_timeout_as("ms")),
        _b("POST", S + "/timeouts", encode=_timeout_as("implicit")),
    ),
    # navigation
    _same("get", "POST", S + "/url"),
    _same("get_current_url", "GET", S + "/url"),
    _same("go_back", "POST", S + "/back"),
    _same("go_forward", "POST", S + "/forward"),
    _same("refresh", "POST", S + "/refresh"),
    _same("get_title", "GET", S + "/title"),
    _same("get_page_source", "GET", S + "/source"),
    # windows and frames
    _cmd("get_current_window_handle", _b("GET", S + "/window_handle"), _b("GET", S + "/window")),
    _cmd("get_window_handles", _b("GET", S + "/window_handles"), _b("GET", S + "/window/handles")),
    _cmd(
        "switch_to_window",
        _b("POST", S + "/window", encode=_window_handle_legacy),
        _b("POST", S + "/window"),
    ),
    _same("close_window", "DELETE", S + "/window"),
    _same("switch_to_frame", "POST", S + "/frame"),
    _same("switch_to_parent_frame", "POST", S + "/frame/parent"),
    _cmd(
        "get_window_size",
        _b("GET", S + "/window/{window_handle}/size", defaults=_CURRENT),
        _b("GET", S + "/window/rect", decode=_project("width", "height")),
    ),
    _cmd(
        "set_window_size",
        _b("POST", S + "/window/{window_handle}/size", defaults=_CURRENT),
        _b("POST", S + "/window/rect"),
    ),
    _cmd(
        "get_window_position",
        _b("GET", S + "/window/{window_handle}/position", defaults=_CURRENT),
        _b("GET", S + "/window/rect", decode=_project("x", "y")),
    ),
    _cmd(
        "set_window_position",
        _b("POST", S + "/window/{window_handle}/position", defaults=_CURRENT),
        _b("POST", S + "/window/rect"),
    ),
    _cmd("get_window_rect", None, _b("GET", S + "/window/rect")),
    _cmd("set_window_rect", None, _b("POST", S + "/window/rect")),
    _cmd(
        "maximize_window",
        _b("POST", S + "/window/{window_handle}/maximize", defaults=_CURRENT),
        _b("POST", S + "/window/maximize"),
    ),
    _cmd("minimize_window", None, _b("POST", S + "/window/minimize")),
    _cmd("fullscreen_window", None, _b("POST", S + "/window/fullscreen")),
    _cmd("get_orientation", _b("GET", S + "/orientation"), None),
    _cmd("set_orientation", _b("POST", S + "/orientation"), None),
    # scripts and screenshots
    _cmd("execute_script", _b("POST", S + "/execute"), _b("POST", S + "/execute/sync")),
    _cmd("execute_async_script", _b("POST", S + "/execute_async"), _b("POST", S + "/execute/async")),
    _same("screenshot", "GET", S + "/screenshot"),
    # cookies
    _same("get_all_cookies", "GET", S + "/cookie"),
    _cmd("get_cookie_named", None, _b("GET", S + "/cookie/{name}")),
    _same("add_cookie", "POST", S + "/cookie"),
    _same("delete_all_cookies", "DELETE", S + "/cookie"),
    _same("delete_cookie_named", "DELETE", S + "/cookie/{name}"),
    # alerts
    _cmd("get_alert_text", _b("GET", S + "/alert_text"), _b("GET", S + "/alert/text")),
    _cmd("send_keys_to_prompt", _b("POST", S + "/alert_text"), _b("POST", S + "/alert/text")),
    _cmd("accept_alert", _b("POST", S + "/accept_alert"), _b("POST", S + "/alert/accept")),
    _cmd("dismiss_alert", _b("POST", S + "/dismiss_alert"), _b("POST", S + "/alert/dismiss")),
    # input
    _cmd("send_keys_to_active_element", _b("POST", S + "/keys", encode=_split_keys), None),
    _cmd("perform_actions", None, _b("POST", S + "/actions")),
    _cmd("release_actions", None, _b("DELETE", S + "/actions")),
    # element lookup
    _cmd("find_element", _b("POST", S + "/element"), _b("POST", S + "/element", encode=_w3c_locator)),
    _cmd("find_elements", _b("POST", S + "/elements"), _b("POST", S + "/elements", encode=_w3c_locator)),
    _cmd(
        "find_child_element",
        _b("POST", E + "/element"),
        _b("POST", E + "/element", encode=_w3c_locator),
    ),
    _cmd(
        "find_child_elements",
        _b("POST", E + "/elements"),
        _b("POST", E + "/elements", encode=_w3c_locator),
    ),
    _cmd("get_active_element", _b("POST", S + "/element/active"), _b("GET", S + "/element/active")),
    # element commands
    _same("click_element", "POST", E + "/click"),
    _cmd("submit_element", _b("POST", E + "/submit"), None),
    _cmd(
        "send_keys_to_element",
        _b("POST", E + "/value", encode=_split_keys),
        _b("POST", E + "/value", encode=_split_keys_w3c),
    ),
    _same("is_element_selected", "GET", E + "/selected"),
    _cmd("set_element_selected", _b("POST", E + "/selected"), None),
    _cmd("toggle_element", _b("POST", E + "/toggle"), None),
    _same("is_element_enabled", "GET", E + "/enabled"),
    _same("is_element_displayed", "GET", E + "/displayed"),
    _cmd(
        "get_element_location",
        _b("GET", E + "/location"),
        _b("GET", E + "/rect", decode=_project("x", "y")),
    ),
    _cmd("get_element_location_in_view", _b("GET", E + "/location_in_view"), None),
    _cmd(
        "get_element_size",
        _b("GET", E + "/size"),
        _b("GET", E + "/rect", decode=_project("width", "height")),
    ),
    _cmd("get_element_rect", None, _b("GET", E + "/rect")),
    _same("get_element_tag_name", "GET", E + "/name"),
    _same("clear_element", "POST", E + "/clear"),
    _same("get_element_attribute", "GET", E + "/attribute/{name}"),
    _cmd("get_element_property", None, _b("GET", E + "/property/{name}")),
    _same("get_element_value_of_css_property", "GET", E + "/css/{property_name}"),
    _same("get_element_text", "GET", E + "/text"),
    _cmd("describe_element", _b("GET", E), None),
    _cmd("element_screenshot", None, _b("GET", E + "/screenshot")),
)

COMMANDS: dict[str, CommandDescriptor] = {c.name: c for c in _TABLE}


def resolve(logical_name: str, version: ProtocolVersion) -> Binding | Unsupported:
    """Look up the binding of `logical_name` for `version`; UNSUPPORTED if it has none."""
    try:
        descriptor = COMMANDS[logical_name]
    except KeyError as e:
        raise KeyError(f"Unknown command: {logical_name}") from e
    binding = descriptor.binding_for(version)
    return UNSUPPORTED if binding is None else binding
