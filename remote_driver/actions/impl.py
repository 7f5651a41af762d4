"""
Scripted actions bound to RemoteDriver:
- open_url / wait_for / click / type / extract_text / snapshot

Each action:
  1) takes a RemoteDriver and validated params
  2) returns ActionResult, or raises ActionExecutionError wrapping the driver error
"""

# @file purpose: Implement and register scripted actions.
from __future__ import annotations

import time

from remote_driver.core.errors import ActionExecutionError, RemoteDriverError
from remote_driver.core.registry import action
from remote_driver.core.result import ActionResult
from remote_driver.io.driver import RemoteDriver

from .params import (
    ClickParams,
    ExtractTextParams,
    OpenUrlParams,
    SnapshotParams,
    TypeParams,
    WaitForParams,
)


@action("open_url", params_model=OpenUrlParams)
def open_url(driver: RemoteDriver, params: OpenUrlParams) -> ActionResult:
    try:
        driver.get(str(params.url))
        return ActionResult.success(step="open_url", url=str(params.url))
    except RemoteDriverError as e:
        raise ActionExecutionError(
            action="open_url", message="failed to open url", url=str(params.url), cause=e
        ) from e


@action("wait_for", params_model=WaitForParams)
def wait_for(driver: RemoteDriver, params: WaitForParams) -> ActionResult:
    """Poll find_elements until something matches; deadline on the monotonic clock."""
    deadline = time.monotonic() + params.timeout_ms / 1000
    try:
        while True:
            found = driver.find_elements(params.selector, params.by)
            if found:
                return ActionResult.success(step="wait_for", selector=params.selector, element=found[0].id)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            time.sleep(min(params.poll_ms / 1000, remaining))
    except RemoteDriverError as e:
        raise ActionExecutionError(
            action="wait_for", message="lookup failed", selector=params.selector, cause=e
        ) from e
    raise ActionExecutionError(
        action="wait_for",
        message="element did not appear in time",
        selector=params.selector,
        details={"timeout_ms": params.timeout_ms},
    )


@action("click", params_model=ClickParams)
def click(driver: RemoteDriver, params: ClickParams) -> ActionResult:
    try:
        driver.find_element(params.selector, params.by).click(params.method)
        return ActionResult.success(step="click", selector=params.selector, method=params.method)
    except RemoteDriverError as e:
        raise ActionExecutionError(
            action="click", message="failed to click element", selector=params.selector, cause=e
        ) from e


@action("type", params_model=TypeParams)
def type_action(driver: RemoteDriver, params: TypeParams) -> ActionResult:
    """
    Named type_action to avoid shadowing Python's built-in `type`.
    Registered name is still "type".
    """
    try:
        element = driver.find_element(params.selector, params.by)
        if params.clear_first:
            element.clear()
        element.send_keys(params.text)
        return ActionResult.success(step="type", selector=params.selector, length=len(params.text))
    except RemoteDriverError as e:
        raise ActionExecutionError(
            action="type", message="failed to input text", selector=params.selector, cause=e
        ) from e


@action("extract_text", params_model=ExtractTextParams)
def extract_text(driver: RemoteDriver, params: ExtractTextParams) -> ActionResult:
    try:
        txt = driver.find_element(params.selector, params.by).get_text()
    except RemoteDriverError as e:
        raise ActionExecutionError(
            action="extract_text", message="failed to extract text", selector=params.selector, cause=e
        ) from e
    txt = txt.strip() if txt is not None else None
    return ActionResult(
        ok=True,
        extracted_content=txt,
        meta={"step": "extract_text", "selector": params.selector, "empty": not txt},
    )


@action("snapshot", params_model=SnapshotParams)
def snapshot_action(driver: RemoteDriver, params: SnapshotParams) -> ActionResult:
    try:
        path = driver.capture_screenshot(params.path)
        return ActionResult.success(step="snapshot", path=str(path))
    except (RemoteDriverError, OSError, ValueError) as e:
        raise ActionExecutionError(
            action="snapshot",
            message="failed to take screenshot",
            details={"path": params.path},
            cause=e,
        ) from e
