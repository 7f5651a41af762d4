"""
Error taxonomy for remote-driver.

- RemoteDriverError: base for every custom error
- TransportError: network-level failure talking to the endpoint
- NegotiationError: no usable session could be established
- UnsupportedCommandError: the command has no binding in the session's protocol
- RemoteCommandError: the endpoint ran the command and reported a failure
- BinaryNotFoundError / PortExhaustionError / StartupTimeoutError: local driver binary
- ActionExecutionError: a scripted action failed (runner level)
"""
# @file purpose: Define error taxonomy for remote-driver.

from typing import Any


class RemoteDriverError(Exception):
    """Base class for all custom errors in remote-driver."""


class TransportError(RemoteDriverError):
    """Connection refused, timeout or an undecodable response body."""

    def __init__(self, message: str, *, method: str | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.method = method
        self.url = url


class NegotiationError(RemoteDriverError):
    """The new-session request did not yield a session id in either envelope."""


class UnsupportedCommandError(RemoteDriverError):
    """
    The logical command cannot run on this session.

    `remote` is False when the local command table has no binding for the
    negotiated protocol, True when the endpoint itself answered "unknown command".
    """

    def __init__(self, command: str, protocol: str, *, remote: bool = False) -> None:
        where = "endpoint" if remote else "protocol"
        super().__init__(f"{command} is not supported by this {where} ({protocol})")
        self.command = command
        self.protocol = protocol
        self.remote = remote


class RemoteCommandError(RemoteDriverError):
    """Semantic failure reported by the endpoint; slug and message kept verbatim."""

    def __init__(
        self,
        error: str,
        message: str,
        *,
        command: str | None = None,
        stacktrace: str | None = None,
        status: int | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.command = command
        self.stacktrace = stacktrace
        self.status = status
        self.http_status = http_status

    def __str__(self) -> str:
        prefix = f"[{self.command}] " if self.command else ""
        return f"{prefix}{self.error}: {self.message}"


class ElementIdentityError(RemoteDriverError, ValueError):
    """An element reference did not match any known wire shape."""


class BinaryNotFoundError(RemoteDriverError):
    """No driver executable could be resolved."""


class PortExhaustionError(RemoteDriverError):
    """Every candidate port above the preferred one was already bound."""


class StartupTimeoutError(RemoteDriverError):
    """The spawned driver did not accept connections before its deadline."""


class ActionExecutionError(RemoteDriverError):
    """
    Raised when a scripted action fails to execute.
    Wraps the underlying driver error with the action context so the CLI
    can print a consistent line per failed step.
    """

    def __init__(
        self,
        action: str,
        message: str,
        *,
        selector: str | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.action: str = action
        self.selector: str | None = selector
        self.url: str | None = url
        self.details: dict[str, Any] = details or {}
        self.cause: BaseException | None = cause

    def __str__(self) -> str:
        parts = [f"[{self.action}] {super().__str__()}"]
        if self.selector:
            parts.append(f"selector={self.selector}")
        if self.url:
            parts.append(f"url={self.url}")
        if self.cause is not None:
            parts.append(f"cause={self.cause}")
        if self.details:
            kv = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            parts.append(f"details={{ {kv} }}")
        return " | ".join(parts)
