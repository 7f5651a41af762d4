"""
Command dispatcher: logical command + params -> wire request -> value or typed error.

The dispatcher is bound to one SessionHandle and one WireTransport and keeps
no state of its own between calls. The protocol version always comes from the
handle, never from the shape of the latest response.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..core.errors import RemoteDriverError, UnsupportedCommandError
from ..protocol.commands import Unsupported, resolve
from ..protocol.status import decode_response
from .session import SessionHandle
from .transport import WireTransport

log = logging.getLogger(__name__)


class CommandDispatcher:
    def __init__(self, session: SessionHandle, transport: WireTransport) -> None:
        self._session = session
        self._transport = transport

    @property
    def session(self) -> SessionHandle:
        return self._session

    def supports(self, logical_name: str) -> bool:
        return not isinstance(resolve(logical_name, self._session.protocol_version), Unsupported)

    def dispatch(
        self,
        logical_name: str,
        params: Optional[Mapping[str, Any]] = None,
        element_id: Optional[str] = None,
    ) -> Any:
        version = self._session.protocol_version
        binding = resolve(logical_name, version)
        if isinstance(binding, Unsupported):
            raise UnsupportedCommandError(logical_name, version.value)

        method, path, body = binding.build(
            params, session_id=self._session.session_id, element_id=element_id
        )
        url = self._session.url(path)
        log.debug("dispatch", extra={"command": logical_name, "method": method, "url": url})

        status, payload = self._transport.send(method, url, body)
        try:
            value = decode_response(version, logical_name, status, payload)
        except RemoteDriverError as e:
            log.debug("command failed", extra={"command": logical_name, "error": str(e)})
            raise
        return binding.result(value)
