"""
Supervisor for a locally spawned driver binary (chromedriver, geckodriver, ...).

Lifecycle:
    IDLE -> LOCATING -> PORT_PROBING -> LAUNCHING -> AWAITING_READY -> READY
         -> TERMINATING -> TERMINATED
    AWAITING_READY -> FAILED when the port never accepts a connection in time.

Ports are probed upward from the preferred one. Ports handed out to live
supervisors in this process are reserved, so two supervisors started at the
same time never pick the same port. Teardown is registered with atexit and is
idempotent: stopping twice, or stopping a process that already exited, is fine.
"""

from __future__ import annotations

import atexit
import logging
import os
import shutil
import socket
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import IO, Optional, Protocol, Sequence

from ..core.errors import BinaryNotFoundError, PortExhaustionError, StartupTimeoutError
from .session import Endpoint

log = logging.getLogger(__name__)

_PORT_LOCK = threading.Lock()
_RESERVED_PORTS: set[int] = set()


class SupervisorState(str, Enum):
    IDLE = "idle"
    LOCATING = "locating"
    PORT_PROBING = "port_probing"
    LAUNCHING = "launching"
    AWAITING_READY = "awaiting_ready"
    READY = "ready"
    TERMINATING = "terminating"
    TERMINATED = "terminated"
    FAILED = "failed"


@dataclass
class ProcessRecord:
    executable_path: str
    bound_port: int
    process: subprocess.Popen
    readiness_deadline: float


class EndpointProvider(Protocol):
    """What RemoteDriver needs from an injected binary strategy."""

    @property
    def binary_mode(self) -> bool: ...
    def start(self) -> Endpoint: ...
    def stop(self) -> None: ...


# ---------------- helpers ----------------


def resolve_binary(explicit: Optional[str], default_name: str) -> str:
    """Explicit path (or name on PATH) first, then the default name on PATH."""
    for candidate in (explicit, default_name):
        if not candidate:
            continue
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return os.path.abspath(candidate)
        found = shutil.which(candidate)
        if found:
            return found
    wanted = explicit or default_name
    raise BinaryNotFoundError(f"driver binary not found: {wanted}")


def port_is_free(port: int, host: str = "127.0.0.1") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
        except OSError:
            return False
        return True


def reserve_port(preferred: int, attempts: int = 50, host: str = "127.0.0.1") -> int:
    """Return the first free port in [preferred, preferred + attempts) and reserve it."""
    with _PORT_LOCK:
        for port in range(preferred, min(preferred + attempts, 65536)):
            if port in _RESERVED_PORTS:
                continue
            if port_is_free(port, host):
                _RESERVED_PORTS.add(port)
                return port
            log.debug("port in use", extra={"port": port})
    raise PortExhaustionError(
        f"no free port in {preferred}..{preferred + attempts - 1} after {attempts} attempts"
    )


def release_port(port: int) -> None:
    with _PORT_LOCK:
        _RESERVED_PORTS.discard(port)


def accepts_connections(host: str, port: int, timeout: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


# ---------------- supervisor ----------------


class BinarySupervisor:
    """
    Start, health-check and stop one driver binary.

    `args` are templates formatted with the bound port (``"--port={port}"``);
    `custom_args` are appended verbatim.
    """

    def __init__(
        self,
        *,
        binary: Optional[str] = None,
        binary_name: str = "chromedriver",
        preferred_port: int = 9515,
        args: Sequence[str] = ("--port={port}",),
        custom_args: Sequence[str] = (),
        host: str = "127.0.0.1",
        base_path: str = "",
        port_attempts: int = 50,
        startup_timeout: float = 10.0,
        poll_interval: float = 0.25,
        teardown_grace: float = 5.0,
        fallback: Optional[Endpoint] = None,
        log_file: Optional[str] = None,
    ) -> None:
        self.binary = binary
        self.binary_name = binary_name
        self.preferred_port = preferred_port
        self.args = tuple(args)
        self.custom_args = tuple(custom_args)
        self.host = host
        self.base_path = base_path
        self.port_attempts = max(1, port_attempts)
        self.startup_timeout = startup_timeout
        self.poll_interval = poll_interval
        self.teardown_grace = teardown_grace
        self.fallback = fallback
        self.log_file = log_file

        self._state = SupervisorState.IDLE
        self._record: Optional[ProcessRecord] = None
        self._log_handle: Optional[IO[bytes]] = None
        self._endpoint: Optional[Endpoint] = None
        self._lock = threading.RLock()

    # ---------------- properties ----------------

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def record(self) -> Optional[ProcessRecord]:
        return self._record

    @property
    def binary_mode(self) -> bool:
        """True while a spawned binary (not the fallback endpoint) is in use."""
        return self._record is not None

    @property
    def port(self) -> Optional[int]:
        return self._record.bound_port if self._record else None

    def _set_state(self, state: SupervisorState) -> None:
        log.debug("supervisor state", extra={"from": self._state.value, "to": state.value})
        self._state = state

    # ---------------- lifecycle ----------------

    def start(self) -> Endpoint:
        with self._lock:
            if self._state is SupervisorState.READY and self._endpoint is not None:
                return self._endpoint

            self._set_state(SupervisorState.LOCATING)
            try:
                path = resolve_binary(self.binary, self.binary_name)
            except BinaryNotFoundError:
                if self.fallback is None:
                    self._set_state(SupervisorState.FAILED)
                    raise
                log.warning(
                    "driver binary not found, using fallback endpoint",
                    extra={"binary": self.binary or self.binary_name, "endpoint": self.fallback.base_url},
                )
                self._set_state(SupervisorState.IDLE)
                return self.fallback

            self._set_state(SupervisorState.PORT_PROBING)
            try:
                port = reserve_port(self.preferred_port, self.port_attempts, self.host)
            except PortExhaustionError:
                self._set_state(SupervisorState.FAILED)
                raise

            self._set_state(SupervisorState.LAUNCHING)
            command = [path, *(a.format(port=port) for a in self.args), *self.custom_args]
            try:
                process = self._launch(command)
            except OSError as e:
                release_port(port)
                self._close_log()
                self._set_state(SupervisorState.FAILED)
                raise BinaryNotFoundError(f"could not launch {path}: {e}") from e

            self._record = ProcessRecord(
                executable_path=path,
                bound_port=port,
                process=process,
                readiness_deadline=time.monotonic() + self.startup_timeout,
            )
            atexit.register(self.stop)
            log.info("driver binary launched", extra={"pid": process.pid, "port": port, "binary": path})

            self._set_state(SupervisorState.AWAITING_READY)
            self._await_ready(self._record)

            self._set_state(SupervisorState.READY)
            self._endpoint = Endpoint(host=self.host, port=port, base_path=self.base_path)
            return self._endpoint

    def _launch(self, command: list[str]) -> subprocess.Popen:
        if self.log_file:
            self._log_handle = open(self.log_file, "ab")
            out: int | IO[bytes] = self._log_handle
        else:
            out = subprocess.DEVNULL
        return subprocess.Popen(command, stdin=subprocess.DEVNULL, stdout=out, stderr=subprocess.STDOUT)

    def _await_ready(self, record: ProcessRecord) -> None:
        while True:
            code = record.process.poll()
            if code is not None:
                self._fail_startup(f"driver binary exited with code {code} before accepting connections")
            if accepts_connections(self.host, record.bound_port, self.poll_interval):
                return
            remaining = record.readiness_deadline - time.monotonic()
            if remaining <= 0:
                self._fail_startup(
                    f"driver binary did not listen on port {record.bound_port} "
                    f"within {self.startup_timeout}s"
                )
            time.sleep(min(self.poll_interval, remaining))

    def _fail_startup(self, message: str) -> None:
        self.stop()
        self._set_state(SupervisorState.FAILED)
        raise StartupTimeoutError(message)

    def stop(self) -> None:
        """Stop the binary: terminate, then kill after the grace period. Never raises for a dead process."""
        with self._lock:
            record = self._record
            if record is None:
                return
            self._set_state(SupervisorState.TERMINATING)
            process = record.process
            try:
                if process.poll() is None:
                    process.terminate()
                    try:
                        process.wait(timeout=self.teardown_grace)
                    except subprocess.TimeoutExpired:
                        log.warning("driver binary ignored terminate, killing", extra={"pid": process.pid})
                        process.kill()
                        process.wait()
            except ProcessLookupError:
                pass  # exited between poll() and terminate()
            finally:
                release_port(record.bound_port)
                self._close_log()
                self._record = None
                self._endpoint = None
                atexit.unregister(self.stop)
                self._set_state(SupervisorState.TERMINATED)

    def _close_log(self) -> None:
        if self._log_handle is not None:
            self._log_handle.close()
            self._log_handle = None

    def __enter__(self) -> "BinarySupervisor":
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()
