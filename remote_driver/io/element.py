"""
WebElement: a remote element reference scoped to a RemoteDriver.

The identity given at construction may be any of the three wire shapes:

    "abc"                                             bare id
    {"ELEMENT": "abc"}                                legacy wrapped id
    {"element-6066-11e4-a52e-4f735466cecf": "abc"}    W3C reference

All three normalize to the same canonical id. Anything else is rejected with
ElementIdentityError. The element only holds a weak reference to its driver;
all commands go through the driver's dispatcher.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, Literal, Optional

from ..core.errors import ElementIdentityError, RemoteDriverError
from ..protocol.commands import ELEMENT_KEY_LEGACY, ELEMENT_KEY_W3C

if TYPE_CHECKING:
    from .driver import RemoteDriver

ClickMethod = Literal["native", "keydown", "javascript"]

ENTER_KEY = "\ue007"

# selector_type -> script locating the first match of arguments[0]
_CLICK_SCRIPTS: dict[str, str] = {
    "css": "document.querySelector(arguments[0]).click();",
    "id": "document.getElementById(arguments[0]).click();",
    "tag_name": "document.getElementsByTagName(arguments[0])[0].click();",
    "class": "document.getElementsByClassName(arguments[0])[0].click();",
    "class_name": "document.getElementsByClassName(arguments[0])[0].click();",
    "name": "document.getElementsByName(arguments[0])[0].click();",
    "xpath": (
        "document.evaluate(arguments[0], document, null,"
        " XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue.click();"
    ),
}
_XPATH_CLICK = _CLICK_SCRIPTS["xpath"]


def parse_element_id(raw: Any) -> str:
    """Normalize one of the three element identity shapes to a canonical id."""
    if isinstance(raw, dict):
        if ELEMENT_KEY_W3C in raw:
            return _scalar_id(raw[ELEMENT_KEY_W3C], raw)
        if ELEMENT_KEY_LEGACY in raw:
            return _scalar_id(raw[ELEMENT_KEY_LEGACY], raw)
        raise ElementIdentityError(
            f"element reference must have an {ELEMENT_KEY_LEGACY} or {ELEMENT_KEY_W3C} key: {raw!r}"
        )
    return _scalar_id(raw, raw)


def _scalar_id(value: Any, raw: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ElementIdentityError(f"unrecognized element reference: {raw!r}")
    if isinstance(value, str) and not value:
        raise ElementIdentityError("element id must not be empty")
    return str(value)


def is_element_reference(value: Any) -> bool:
    return isinstance(value, dict) and (ELEMENT_KEY_W3C in value or ELEMENT_KEY_LEGACY in value)


class WebElement:
    def __init__(
        self,
        id: Any,
        driver: "RemoteDriver",
        *,
        selector: Optional[str] = None,
        selector_type: Optional[str] = None,
    ) -> None:
        self._id = parse_element_id(id)
        self._driver_ref = weakref.ref(driver)
        self.selector = selector
        self.selector_type = selector_type

    @property
    def id(self) -> str:
        return self._id

    @property
    def driver(self) -> "RemoteDriver":
        driver = self._driver_ref()
        if driver is None:
            raise RemoteDriverError(f"driver of element {self._id} no longer exists")
        return driver

    def __repr__(self) -> str:
        return f"WebElement(id={self._id!r}, selector={self.selector!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, WebElement) and other._id == self._id

    def __hash__(self) -> int:
        return hash(self._id)

    def to_wire(self) -> dict[str, str]:
        """Reference usable as a script argument under either protocol."""
        return {ELEMENT_KEY_LEGACY: self._id, ELEMENT_KEY_W3C: self._id}

    def _execute(self, command: str, params: Optional[dict[str, Any]] = None) -> Any:
        return self.driver.execute(command, params, element_id=self._id)

    # ---------------- interactions ----------------

    def click(self, method: ClickMethod = "native") -> Any:
        """
        Click the element.

        'native' uses the click command; 'keydown' sends ENTER to the element;
        'javascript' clicks via an injected script keyed by the selector this
        element was found with, and falls through to 'native' when there is no
        recorded selector (or no script for its selector type).
        """
        if method not in ("native", "keydown", "javascript"):
            raise ValueError(
                f"Invalid click method {method!r}. Valid methods are 'native', 'keydown' or 'javascript'."
            )
        if method == "keydown":
            return self.send_keys(ENTER_KEY)
        if method == "javascript" and self.selector:
            script = self._click_script()
            if script is not None:
                return self.driver.execute_script(script, self._script_selector())
        return self._execute("click_element")

    def _click_script(self) -> Optional[str]:
        kind = self.selector_type or "xpath"
        if kind in ("link", "link_text", "partial_link_text"):
            return _XPATH_CLICK
        return _CLICK_SCRIPTS.get(kind)

    def _script_selector(self) -> str:
        kind = self.selector_type or "xpath"
        text = (self.selector or "").replace('"', '\\"')
        if kind in ("link", "link_text"):
            return f'//a[text()="{text}"]'
        if kind == "partial_link_text":
            return f'//a[contains(text(),"{text}")]'
        return self.selector or ""

    def submit(self) -> Any:
        return self._execute("submit_element")

    def send_keys(self, *strings: Any) -> Any:
        if not strings:
            raise ValueError("no keys to send")
        return self._execute("send_keys_to_element", {"text": "".join(str(s) for s in strings)})

    def clear(self) -> Any:
        return self._execute("clear_element")

    def set_selected(self) -> Any:
        """Deprecated upstream; legacy protocol only. Use click()."""
        return self._execute("set_element_selected")

    def toggle(self) -> Any:
        """Deprecated upstream; legacy protocol only. Use click()."""
        return self._execute("toggle_element")

    # ---------------- state ----------------

    def is_selected(self) -> bool:
        return bool(self._execute("is_element_selected"))

    def is_enabled(self) -> bool:
        return bool(self._execute("is_element_enabled"))

    def is_displayed(self) -> bool:
        return bool(self._execute("is_element_displayed"))

    def is_hidden(self) -> bool:
        return not self.is_displayed()

    def get_tag_name(self) -> str:
        return self._execute("get_element_tag_name")

    def get_text(self) -> str:
        return self._execute("get_element_text")

    def get_attribute(self, name: str) -> Any:
        if not name:
            raise ValueError("Attribute name not provided")
        return self._execute("get_element_attribute", {"name": name})

    def get_property(self, name: str) -> Any:
        if not name:
            raise ValueError("Property name not provided")
        return self._execute("get_element_property", {"name": name})

    def get_value(self) -> Any:
        return self.get_attribute("value")

    def get_css_attribute(self, name: str) -> str:
        if not name:
            raise ValueError("CSS attribute name not provided")
        return self._execute("get_element_value_of_css_property", {"property_name": name})

    def describe(self) -> Any:
        return self._execute("describe_element")

    # ---------------- geometry ----------------

    def get_element_location(self) -> dict[str, Any]:
        return self._execute("get_element_location")

    def get_element_location_in_view(self) -> dict[str, Any]:
        return self._execute("get_element_location_in_view")

    def get_size(self) -> dict[str, Any]:
        return self._execute("get_element_size")

    def get_rect(self) -> dict[str, Any]:
        return self._execute("get_element_rect")

    def screenshot(self) -> str:
        """Base64-encoded PNG of this element."""
        return self._execute("element_screenshot")

    # ---------------- lookup ----------------

    def find_child_element(self, locator: str, by: Optional[str] = None) -> "WebElement":
        return self.driver._find("find_child_element", locator, by, parent_id=self._id)

    def find_child_elements(self, locator: str, by: Optional[str] = None) -> list["WebElement"]:
        return self.driver._find("find_child_elements", locator, by, parent_id=self._id)
