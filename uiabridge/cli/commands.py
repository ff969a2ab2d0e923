"""CLI commands for uiabridge.

`worker` runs the worker loop on stdin/stdout; `exec` runs one operation in a
supervised worker; `operations` lists the registry; `doctor` checks that a
worker can be started; `serve` runs the MCP server; `config` manages the
config file.
"""

from __future__ import annotations

import importlib.util
import json
import platform
import sys
import time
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from uiabridge import __logo__, __version__
from uiabridge.cli.command_groups.config_commands import register_config_commands
from uiabridge.cli.shared.logging_utils import ensure_rotating_log_file, set_console_log_level

app = typer.Typer(
    name="uiabridge",
    help=f"{__logo__} uiabridge - out-of-process UI automation host",
    no_args_is_help=True,
)

console = Console()

register_config_commands(app, console)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} uiabridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """uiabridge - out-of-process UI automation host."""
    pass


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _build_parameters(params_json: str | None, pairs: list[str] | None) -> dict[str, Any]:
    parameters: dict[str, Any] = {}
    if params_json:
        try:
            loaded = json.loads(params_json)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"--params is not valid JSON: {e.msg}") from e
        if not isinstance(loaded, dict):
            raise typer.BadParameter("--params must be a JSON object")
        parameters.update(loaded)
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"--param expects key=value, got {pair!r}")
        parameters[key.strip()] = _parse_value(value)
    return parameters


def _load_host_config(backend: str | None, fixture: str | None):
    from uiabridge.config import get_config

    try:
        cfg = get_config().model_copy(deep=True)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if backend:
        cfg.worker.backend = backend
    if fixture:
        cfg.worker.fixture_path = fixture
    return cfg


# ============================================================================
# Worker
# ============================================================================


@app.command()
def worker(
    backend: str = typer.Option("auto", "--backend", "-b", help="Automation backend: auto, memory or uia"),
    fixture: str = typer.Option(None, "--fixture", help="JSON element tree for the memory backend"),
    log_level: str = typer.Option("INFO", "--log-level", help="Minimum level relayed to the host"),
    max_line_bytes: int = typer.Option(1024 * 1024, "--max-line-bytes", min=1, help="Reject longer request lines"),
):
    """Serve operations over stdin/stdout (normally started by the host)."""
    from uiabridge.worker.main import run_worker

    raise typer.Exit(run_worker(backend=backend, fixture=fixture, log_level=log_level, max_line_bytes=max_line_bytes))


# ============================================================================
# Exec
# ============================================================================


@app.command("exec")
def exec_operation(
    operation: str = typer.Argument(..., help="Operation name or alias, e.g. FindElements"),
    params: str = typer.Option(None, "--params", help="Parameters as a JSON object"),
    param: list[str] = typer.Option(None, "--param", "-p", help="Single parameter key=value (value may be JSON)"),
    timeout: float = typer.Option(None, "--timeout", "-t", help="Deadline in seconds (default from config)"),
    backend: str = typer.Option(None, "--backend", "-b", help="Override the configured backend"),
    fixture: str = typer.Option(None, "--fixture", help="Override the memory backend fixture"),
    raw: bool = typer.Option(False, "--raw", help="Print the response as a single JSON line"),
):
    """Run one operation in a supervised worker and print the response."""
    from uiabridge.host.supervisor import WorkerSupervisor
    from uiabridge.protocol import OperationRequest, encode_response_line

    parameters = _build_parameters(params, param)
    cfg = _load_host_config(backend, fixture)
    set_console_log_level("WARNING")
    if cfg.logging.file_enabled:
        ensure_rotating_log_file("exec", cfg.logging.level)

    request = OperationRequest(operation=operation, parameters=parameters)
    with WorkerSupervisor.from_config(cfg, name="exec") as supervisor:
        response = supervisor.execute(request, timeout)

    line = encode_response_line(response)
    if raw:
        print(line)
    else:
        console.print_json(line)
    if not response.success:
        raise typer.Exit(1)


# ============================================================================
# Operations
# ============================================================================


@app.command()
def operations(
    as_json: bool = typer.Option(False, "--json", help="Print as JSON instead of a table"),
):
    """List the operations every worker supports."""
    from uiabridge.worker.registry import build_default_registry

    registry = build_default_registry()
    rows = [
        {"name": op.name, "aliases": list(op.aliases), "description": op.description}
        for op in registry.operations()
    ]
    if as_json:
        console.print_json(json.dumps(rows))
        return
    table = Table(title=f"Operations ({len(rows)})")
    table.add_column("Name", style="cyan")
    table.add_column("Aliases")
    table.add_column("Description")
    for row in rows:
        table.add_row(row["name"], ", ".join(row["aliases"]), row["description"])
    console.print(table)


# ============================================================================
# Doctor
# ============================================================================


@app.command()
def doctor(
    backend: str = typer.Option(None, "--backend", "-b", help="Override the configured backend"),
    fixture: str = typer.Option(None, "--fixture", help="Override the memory backend fixture"),
    timeout: float = typer.Option(15.0, "--timeout", "-t", help="Seconds to wait for the worker"),
):
    """Check the environment and ping a freshly started worker."""
    from uiabridge.config.access import resolve_config_path
    from uiabridge.host.supervisor import WorkerSupervisor
    from uiabridge.protocol import OperationRequest

    cfg = _load_host_config(backend, fixture)
    set_console_log_level("WARNING")
    config_path = resolve_config_path()

    console.print(f"{__logo__} uiabridge doctor\n")
    console.print(f"Version: {__version__}")
    console.print(f"Python: {sys.executable} ({platform.python_version()})")
    console.print(f"Platform: {sys.platform}")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[dim](defaults)[/dim]'}")
    console.print(f"Backend: {cfg.worker.backend}")
    has_pywinauto = importlib.util.find_spec("pywinauto") is not None
    if sys.platform == "win32":
        console.print(f"pywinauto: {'[green]✓[/green]' if has_pywinauto else '[red]✗ pip install uiabridge[windows][/red]'}")
    else:
        console.print("pywinauto: [dim]not applicable (Windows only)[/dim]")

    started = time.monotonic()
    with WorkerSupervisor.from_config(cfg, name="doctor") as supervisor:
        response = supervisor.execute(OperationRequest("Ping"), timeout)
    elapsed_ms = (time.monotonic() - started) * 1000
    if not response.success:
        console.print(f"Worker: [red]✗ {response.error}[/red]")
        raise typer.Exit(1)
    data = response.data or {}
    console.print(
        f"Worker: [green]✓[/green] pid={data.get('pid')} backend={data.get('backend')} "
        f"[dim]({elapsed_ms:.0f} ms round trip)[/dim]"
    )


# ============================================================================
# MCP server
# ============================================================================


@app.command()
def serve(
    backend: str = typer.Option(None, "--backend", "-b", help="Override the configured backend"),
    fixture: str = typer.Option(None, "--fixture", help="Override the memory backend fixture"),
    pool_size: int = typer.Option(None, "--pool-size", min=1, help="Number of worker processes"),
):
    """Run the MCP server on stdio, backed by a worker pool."""
    from uiabridge.mcp_server import run_server

    cfg = _load_host_config(backend, fixture)
    if pool_size:
        cfg.supervisor.pool_size = pool_size
    # stdout carries MCP frames; console logging stays on stderr.
    set_console_log_level(cfg.logging.level)
    if cfg.logging.file_enabled:
        ensure_rotating_log_file("serve", cfg.logging.level)
    run_server(cfg)


if __name__ == "__main__":
    app()
