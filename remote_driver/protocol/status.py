"""
Response envelopes of the two wire generations.

Legacy:  {"sessionId": ..., "status": <int>, "value": ...}; status 0 is success,
         anything else is a numeric error code with {"message": ...} in value.
W3C:     {"value": ...} on success; {"value": {"error", "message", "stacktrace"}}
         on failure, normally with a 4xx/5xx HTTP status (honoured under 2xx too).
"""
# @file purpose: Decode legacy and W3C response envelopes into values or typed errors.

from __future__ import annotations

from typing import Any

from ..core.errors import RemoteCommandError, UnsupportedCommandError
from .commands import ProtocolVersion

# JSON wire protocol status codes -> W3C error slugs
LEGACY_STATUS: dict[int, str] = {
    6: "invalid session id",
    7: "no such element",
    8: "no such frame",
    9: "unknown command",
    10: "stale element reference",
    11: "element not interactable",
    12: "invalid element state",
    13: "unknown error",
    15: "element not selectable",
    17: "javascript error",
    19: "invalid selector",
    21: "timeout",
    23: "no such window",
    24: "invalid cookie domain",
    25: "unable to set cookie",
    26: "unexpected alert open",
    27: "no such alert",
    28: "script timeout",
    29: "invalid element coordinates",
    30: "ime not available",
    31: "ime engine activation failed",
    32: "invalid selector",
    33: "session not created",
    34: "move target out of bounds",
}

UNKNOWN_COMMAND_SLUGS = frozenset({"unknown command", "unknown method"})


def decode_response(
    version: ProtocolVersion,
    command: str,
    http_status: int,
    body: Any,
) -> Any:
    """Return the command's value, or raise the error the envelope describes."""
    if version is ProtocolVersion.W3C:
        return _decode_w3c(command, http_status, body)
    return _decode_legacy(command, http_status, body)


def _decode_w3c(command: str, http_status: int, body: Any) -> Any:
    value = body.get("value") if isinstance(body, dict) else body
    # an error object is honoured whatever the HTTP status
    failed = isinstance(value, dict) and isinstance(value.get("error"), str)
    if http_status < 400 and not (failed and "message" in value):
        return value
    if failed:
        _raise(
            command,
            ProtocolVersion.W3C,
            error=str(value["error"]),
            message=str(value.get("message", "")),
            stacktrace=value.get("stacktrace"),
            http_status=http_status,
        )
    _raise(
        command,
        ProtocolVersion.W3C,
        error="unknown error",
        message=_fallback_message(value, http_status),
        http_status=http_status,
    )


def _decode_legacy(command: str, http_status: int, body: Any) -> Any:
    if not isinstance(body, dict) or "status" not in body:
        if http_status < 400:
            return body.get("value") if isinstance(body, dict) else body
        _raise(
            command,
            ProtocolVersion.LEGACY,
            error="unknown error",
            message=_fallback_message(body, http_status),
            http_status=http_status,
        )

    status = body["status"]
    value = body.get("value")
    if status == 0:
        return value
    message = value.get("message", "") if isinstance(value, dict) else str(value or "")
    _raise(
        command,
        ProtocolVersion.LEGACY,
        error=LEGACY_STATUS.get(status, "unknown error"),
        message=message,
        stacktrace=_legacy_stacktrace(value),
        status=status,
        http_status=http_status,
    )


def _raise(
    command: str,
    version: ProtocolVersion,
    *,
    error: str,
    message: str,
    stacktrace: Any = None,
    status: int | None = None,
    http_status: int | None = None,
) -> None:
    if error in UNKNOWN_COMMAND_SLUGS:
        raise UnsupportedCommandError(command, version.value, remote=True)
    raise RemoteCommandError(
        error,
        message,
        command=command,
        stacktrace=stacktrace if isinstance(stacktrace, str) else None,
        status=status,
        http_status=http_status,
    )


def _legacy_stacktrace(value: Any) -> str | None:
    if not isinstance(value, dict):
        return None
    frames = value.get("stackTrace")
    if isinstance(frames, list):
        return "\n".join(str(f) for f in frames)
    return None


def _fallback_message(value: Any, http_status: int) -> str:
    if isinstance(value, dict) and "message" in value:
        return str(value["message"])
    if value:
        return str(value)
    return f"HTTP {http_status}"
