"""
HTTP/JSON transport to a WebDriver endpoint.

send(method, url, body) -> (status_code, decoded_json | None)

Network failures, timeouts and bodies that are not JSON are raised as
TransportError. Nothing is retried here.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from ..core.errors import TransportError

log = logging.getLogger(__name__)


class WireTransport:
    """Thin wrapper around an `httpx.Client`; one instance per driver."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 60.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self.timeout_seconds = timeout_seconds

    def send(self, method: str, url: str, body: Any = None) -> tuple[int, Any]:
        headers = {"Accept": "application/json"}
        content: bytes | None = None
        if body is not None:
            headers["Content-Type"] = "application/json;charset=UTF-8"
            content = json.dumps(body).encode("utf-8")

        try:
            response = self._client.request(method, url, content=content, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"request timed out: {e}", method=method, url=url) from e
        except httpx.HTTPError as e:
            log.debug("transport failure", extra={"method": method, "url": url, "error": str(e)})
            raise TransportError(f"request failed: {e}", method=method, url=url) from e

        return response.status_code, self._decode(response, method, url)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @staticmethod
    def _decode(response: httpx.Response, method: str, url: str) -> Any:
        raw = response.content
        if not raw or not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            log.debug("undecodable body", extra={"url": url, "body": response.text[:200]})
            raise TransportError(
                f"malformed response body (HTTP {response.status_code})", method=method, url=url
            ) from e
