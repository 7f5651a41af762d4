"""
Session establishment and the immutable Session Handle.

One new-session request carries the desired capabilities in both envelopes
(`capabilities.alwaysMatch` for W3C, `desiredCapabilities` for legacy). The
response is decoded as W3C first and as legacy second; whichever matches fixes
the session's protocol version for its whole life.
"""
# @file purpose: Negotiate a session and decide the wire protocol generation.

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import NegotiationError
from ..protocol.commands import ProtocolVersion, resolve
from .transport import WireTransport

log = logging.getLogger(__name__)


class Endpoint(BaseModel):
    """Where a WebDriver endpoint listens."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 4444
    base_path: str = ""

    @property
    def base_url(self) -> str:
        prefix = "/" + self.base_path.strip("/") if self.base_path.strip("/") else ""
        return f"http://{self.host}:{self.port}{prefix}"


class SessionHandle(BaseModel):
    """
    Result of a successful negotiation. Frozen: the protocol version decided
    here is the one every later dispatch uses.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    protocol_version: ProtocolVersion
    base_url: str
    capabilities: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_w3c(self) -> bool:
        return self.protocol_version is ProtocolVersion.W3C

    def url(self, path: str) -> str:
        return join_url(self.base_url, path)


def join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def new_session_payload(desired_capabilities: Mapping[str, Any]) -> dict[str, Any]:
    caps = dict(desired_capabilities)
    return {
        "capabilities": {"alwaysMatch": caps},
        "desiredCapabilities": caps,
    }


def establish(
    transport: WireTransport,
    base_url: str,
    desired_capabilities: Optional[Mapping[str, Any]] = None,
) -> SessionHandle:
    """
    Issue the new-session request and build a SessionHandle from the reply.
    Raises NegotiationError when neither envelope carries a session id.
    """
    # new_session has the same shape in both tables
    method, path, _ = resolve("new_session", ProtocolVersion.W3C).build()
    status, body = transport.send(
        method, join_url(base_url, path), new_session_payload(desired_capabilities or {})
    )

    handle = _decode_w3c(body, base_url) if status < 400 else None
    if handle is None and status < 400:
        handle = _decode_legacy(body, base_url)
    if handle is None:
        raise NegotiationError(_describe_failure(status, body))

    log.info(
        "session negotiated",
        extra={"session_id": handle.session_id, "protocol": handle.protocol_version.value},
    )
    return handle


def _decode_w3c(body: Any, base_url: str) -> SessionHandle | None:
    if not isinstance(body, dict):
        return None
    value = body.get("value")
    if not isinstance(value, dict):
        return None
    session_id = value.get("sessionId")
    if not session_id or not isinstance(session_id, str):
        return None
    caps = value.get("capabilities")
    return SessionHandle(
        session_id=session_id,
        protocol_version=ProtocolVersion.W3C,
        base_url=base_url,
        capabilities=caps if isinstance(caps, dict) else {},
    )


def _decode_legacy(body: Any, base_url: str) -> SessionHandle | None:
    if not isinstance(body, dict):
        return None
    session_id = body.get("sessionId")
    if not session_id or not isinstance(session_id, str):
        return None
    if body.get("status", 0) != 0:
        return None
    caps = body.get("value")
    return SessionHandle(
        session_id=session_id,
        protocol_version=ProtocolVersion.LEGACY,
        base_url=base_url,
        capabilities=caps if isinstance(caps, dict) else {},
    )


def _describe_failure(status: int, body: Any) -> str:
    value = body.get("value") if isinstance(body, dict) else None
    if isinstance(value, dict):
        error = value.get("error") or "session not created"
        message = value.get("message") or ""
        return f"could not establish session (HTTP {status}): {error}: {message}".rstrip(": ")
    return f"could not establish session (HTTP {status}): no session id in response"
