"""
CLI entrypoint.

doctor:   print effective settings.
validate: offline check of a JSON ActionSpec[] script.
run:      execute a script against a remote endpoint or a locally spawned driver binary.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..core import registry
from ..core.action import ActionSpec
from ..core.controller.runner import Runner, StepOutcome
from ..core.errors import RemoteDriverError
from ..core.settings import settings
from ..io.binary import BinarySupervisor
from ..io.driver import RemoteDriver
from ..io.session import Endpoint

app = typer.Typer(help="remote-driver CLI")
console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_specs(script: Path, cmd: str) -> list[ActionSpec]:
    if not script.exists():
        typer.secho(f"[{cmd}] file not found: {script}", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    try:
        data = json.loads(script.read_text(encoding="utf-8"))
        specs = TypeAdapter(list[ActionSpec]).validate_python(data)
    except (ValidationError, ValueError) as e:
        typer.secho(f"[{cmd}] invalid file format for ActionSpec[]", fg=typer.colors.RED)
        console.print(e)
        raise typer.Exit(code=2)

    import remote_driver.actions.impl  # noqa: F401  (registers actions)

    return specs


@app.command("doctor")
def doctor() -> None:
    """Print the settings the CLI will use."""
    console.print("[bold green]remote-driver[/] environment")
    if settings.remote_server_addr or settings.port:
        endpoint = Endpoint(
            host=settings.remote_server_addr or "127.0.0.1",
            port=settings.port or 4444,
            base_path=settings.base_path,
        )
        console.print(f"- endpoint:        {endpoint.base_url}")
    else:
        console.print(f"- binary:          {settings.binary or settings.binary_name}")
        console.print(f"- binary port:     {settings.binary_port} (+{settings.port_probe_attempts})")
        console.print(f"- startup timeout: {settings.startup_timeout_seconds}s")
    console.print(f"- browser:         {settings.browser_name}")
    console.print(f"- request timeout: {settings.request_timeout_seconds}s")
    console.print(f"- log level:       {settings.log_level}")


@app.command("validate")
def validate(script: Path = typer.Argument(..., help="Path to JSON file of ActionSpec[]")) -> None:
    """
    Offline validation: check each step against the params model bound in the
    registry. Exits non-zero if any step fails.
    """
    specs = _load_specs(script, "validate")

    table = Table(title="Validation Results", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("name")
    table.add_column("result")
    table.add_column("detail")

    failures = 0
    for i, spec in enumerate(specs, start=1):
        try:
            registry.validate_spec(spec)
            table.add_row(str(i), spec.name, "[green]OK[/]", "-")
        except KeyError as ke:
            failures += 1
            table.add_row(str(i), spec.name, "[red]Not Registered[/]", str(ke))
        except ValidationError as ve:
            failures += 1
            msg = ve.errors()[0].get("msg", "invalid args")
            table.add_row(str(i), spec.name, "[red]Invalid Args[/]", msg)

    console.print(table)
    if failures:
        raise typer.Exit(code=1)
    typer.secho("[validate] all specs passed", fg=typer.colors.GREEN)


def build_driver(
    *,
    remote_addr: Optional[str],
    port: Optional[int],
    browser: str,
    binary: Optional[str],
    binary_arg: List[str],
    startup_timeout: float,
) -> RemoteDriver:
    """Wire settings and options into a RemoteDriver (binary mode unless an endpoint is given)."""
    remote_addr = remote_addr or settings.remote_server_addr
    port = port or settings.port
    supervisor = None
    if remote_addr is None and port is None:
        supervisor = BinarySupervisor(
            binary=binary or settings.binary,
            binary_name=settings.binary_name,
            preferred_port=settings.binary_port,
            custom_args=binary_arg,
            port_attempts=settings.port_probe_attempts,
            startup_timeout=startup_timeout,
            poll_interval=settings.poll_interval_seconds,
            teardown_grace=settings.teardown_grace_seconds,
            fallback=Endpoint(
                host=settings.fallback_server_addr,
                port=settings.fallback_port,
                base_path=settings.base_path,
            ),
        )
    return RemoteDriver(
        remote_server_addr=remote_addr,
        port=port,
        base_path=settings.base_path,
        browser_name=browser,
        supervisor=supervisor,
        request_timeout_seconds=settings.request_timeout_seconds,
    )


@app.command("run")
def run(
    script: Path = typer.Argument(..., help="Path to JSON file of ActionSpec[]"),
    remote_addr: Optional[str] = typer.Option(None, "--remote-addr", help="WebDriver server host"),
    port: Optional[int] = typer.Option(None, "--port", help="WebDriver server port"),
    browser: str = typer.Option(settings.browser_name, "--browser", help="browserName capability"),
    binary: Optional[str] = typer.Option(None, "--binary", help="Driver binary to spawn"),
    binary_arg: List[str] = typer.Option([], "--binary-arg", help="Extra argument for the binary"),
    startup_timeout: float = typer.Option(
        settings.startup_timeout_seconds, "--startup-timeout", help="Seconds to wait for the binary"
    ),
    retries: int = typer.Option(0, "--retries", help="Retry times on ActionExecutionError"),
    artifacts_dir: Path = typer.Option(
        Path("artifacts"), "--artifacts-dir", help="Where to save failure screenshots"
    ),
    # NOTE: Typer parses tuple as two space-separated ints, e.g. "--random-delay-ms 500 1500"
    random_delay_ms: Tuple[int, int] = typer.Option(
        (0, 0),
        "--random-delay-ms",
        help="Random delay range in ms, e.g. --random-delay-ms 500 1500",
    ),
) -> None:
    """
    Execute a list of actions: read JSON -> validate -> run against a session.
    Prints a table of results; returns non-zero on any failure.
    """
    _setup_logging(settings.log_level)
    specs = _load_specs(script, "run")

    try:
        driver = build_driver(
            remote_addr=remote_addr,
            port=port,
            browser=browser,
            binary=binary,
            binary_arg=binary_arg,
            startup_timeout=startup_timeout,
        )
    except RemoteDriverError as e:
        typer.secho(f"[run] could not start session: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=2)

    with driver:
        console.print(
            f"session [bold]{driver.session_id}[/] ({driver.protocol_version.value}"
            f"{', local binary' if driver.binary_mode else ''})"
        )
        rnd = None if random_delay_ms == (0, 0) else random_delay_ms
        runner = Runner(retries=retries, artifacts_dir=artifacts_dir, random_delay_ms=rnd)
        rows: list[StepOutcome] = runner.run(driver, specs)

    table = Table(title="Run Results", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("name")
    table.add_column("result")
    table.add_column("detail")

    failures = 0
    for r in rows:
        result = "[green]OK[/]" if r.ok else "[red]FAIL[/]"
        detail = r.detail
        if not r.ok:
            failures += 1
            if r.artifact_path:
                detail = f"{detail} (artifact: {r.artifact_path})"
        table.add_row(str(r.index), r.name, result, detail)

    console.print(table)
    if failures:
        raise typer.Exit(code=1)
    typer.secho("[run] completed successfully", fg=typer.colors.GREEN)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
