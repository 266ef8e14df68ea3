"""
Root Typer application for the luaplug CLI.

The CLI is a host environment for plugin handles: it runs one Lua body in
a ``PluginHandle`` (with the ``plugin`` module available so the script can
spawn nested plugins), enforces an optional timeout through cancellation,
and reports the terminal outcome.

Exit codes:
    0  the run finished without error
    1  the run finished with an error (or did not stop after cancellation)
    2  usage or configuration error
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from typer import Typer

from luaplug import __version__
from luaplug.binding import host_registry
from luaplug.core.errors import ConfigError
from luaplug.core.logging import LogContext, configure_logging, get_logger
from luaplug.core.settings import get_settings
from luaplug.execution.engine import LuaEngine
from luaplug.execution.handle import HandleSnapshot, PluginHandle

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

app = Typer(
    name="luaplug",
    help="luaplug — run Lua plugins in supervised, cancellable sub-interpreters.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"luaplug {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """luaplug CLI — run and supervise Lua plugins."""


# ── Output helpers ───────────────────────────────────────────────────────


def _render_outcome(handle: PluginHandle, snap: HandleSnapshot, as_json: bool) -> None:
    if as_json:
        payload = {
            "plugin_id": handle.plugin_id,
            "state": snap.state.value,
            "running": snap.running,
            "error": snap.error,
            "runs": snap.runs,
        }
        typer.echo(json.dumps(payload))
        return

    if snap.running:
        err_console.print(f"[yellow]{handle.plugin_id} did not stop within the grace period[/yellow]")
    elif snap.error is None:
        console.print(f"[green]{handle.plugin_id} finished OK[/green]")
    else:
        err_console.print(f"[red]{handle.plugin_id} failed:[/red] {snap.error}")


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def run(
    script: Path | None = typer.Argument(
        None, exists=True, dir_okay=False, readable=True, help="Lua script to run"
    ),
    expr: str | None = typer.Option(None, "--expr", "-e", help="Lua code to run instead of a file"),
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", min=0, help="Cancel the run after this many seconds"
    ),
    json_out: bool = typer.Option(False, "--json", help="Print the outcome as JSON"),
) -> None:
    """Run a Lua body in a plugin handle and wait for its outcome."""
    if (script is None) == (expr is None):
        err_console.print("[red]Give exactly one of SCRIPT or --expr[/red]")
        raise typer.Exit(2)

    try:
        settings = get_settings()
    except ConfigError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc

    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    body = expr if expr is not None else script.read_text(encoding="utf-8")
    engine = LuaEngine(host_registry(), settings)
    handle = PluginHandle(body, engine)

    with LogContext(script=str(script) if script is not None else "<expr>"):
        logger.debug("cli_run_started", plugin_id=handle.plugin_id, timeout=timeout, **engine.describe())
        handle.start()
        try:
            finished = handle.wait(timeout)
        except KeyboardInterrupt:
            finished = False
        if not finished:
            handle.cancel("timeout" if timeout is not None else "interrupted")
            handle.wait(settings.cancel_grace)

    snap = handle.snapshot()
    _render_outcome(handle, snap, json_out)
    if snap.running or snap.error is not None:
        raise typer.Exit(1)


@app.command()
def capabilities(
    json_out: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """List the Lua modules available to host scripts."""
    modules = host_registry().describe()
    if json_out:
        typer.echo(json.dumps(modules))
        return

    table = Table(title="Capabilities")
    table.add_column("Module", style="cyan")
    table.add_column("Description")
    for name, description in modules.items():
        table.add_row(name, description or "")
    console.print(table)
