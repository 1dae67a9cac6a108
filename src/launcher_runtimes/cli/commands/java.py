"""Java runtime commands: list, install, update, uninstall."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from launcher_runtimes.config import ConfigError, load_config
from launcher_runtimes.home import get_java_directory, get_launcher_home
from launcher_runtimes.java.errors import RuntimeStoreError
from launcher_runtimes.java.metadata import MetadataClient
from launcher_runtimes.java.orchestrator import BatchResult, InstallationOrchestrator
from launcher_runtimes.java.policy import needed_for
from launcher_runtimes.java.store import LocalRuntimeStore, RuntimeStoreClient

app = typer.Typer(help="Managed Java runtime commands")
console = Console()


def _store() -> RuntimeStoreClient:
    home = get_launcher_home()
    config = load_config(home)
    metadata = MetadataClient(config.metadata_server, timeout=config.http_timeout)
    return LocalRuntimeStore(get_java_directory(home), metadata)


def _orchestrator() -> InstallationOrchestrator:
    return InstallationOrchestrator(_store())


def _run_or_exit(fn):
    try:
        return fn()
    except (RuntimeStoreError, ConfigError, ValueError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


def _render_builds(orchestrator: InstallationOrchestrator) -> None:
    if not orchestrator.snapshot:
        console.print("[dim]No Java builds installed. Java versions are installed automatically as needed.[/dim]")
        return

    table = Table(title="Java Installations")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Provider")
    table.add_column("Version")
    table.add_column("Needed For", style="magenta")
    for record in orchestrator.snapshot:
        table.add_row(record.id, record.provider, record.version, orchestrator.needed_for(record))
    console.print(table)


def _report(result: BatchResult, label: str) -> None:
    for target, outcome in result.outcomes.items():
        if outcome.ok:
            suffix = f" ({outcome.detail})" if outcome.detail else ""
            console.print(f"[green]✓[/green] {label} {target}{suffix}")
        else:
            console.print(f"[red]✗[/red] {label} {target}: {outcome.error}")
    if result.refresh_error is not None:
        console.print(f"[red]Could not refresh installed builds:[/red] {result.refresh_error}")


def _finish(result: BatchResult, orchestrator: InstallationOrchestrator, label: str) -> None:
    _report(result, label)
    _render_builds(orchestrator)
    if not result.ok:
        raise typer.Exit(1)


@app.command("list")
def list_command(as_json: bool = typer.Option(False, "--json", help="Render builds as JSON")) -> None:
    """List installed Java builds."""

    def _run() -> None:
        orchestrator = _orchestrator()
        records = asyncio.run(orchestrator.refresh())
        if as_json:
            payload: list[dict[str, Any]] = [
                {**record.to_dict(), "needed_for": needed_for(record.major)} for record in records
            ]
            typer.echo(json.dumps(payload, indent=2))
            return
        _render_builds(orchestrator)

    _run_or_exit(_run)


@app.command("install")
def install_command() -> None:
    """Install every Java major version the launcher requires."""

    def _run() -> None:
        orchestrator = _orchestrator()
        result = asyncio.run(orchestrator.ensure_required())
        _finish(result, orchestrator, "Java")

    _run_or_exit(_run)


@app.command("update")
def update_command(ids: list[str] = typer.Argument(..., help="Ids of the builds to update")) -> None:
    """Update the given Java builds to their latest version."""

    def _run() -> None:
        orchestrator = _orchestrator()
        for build_id in ids:
            orchestrator.selection.select(build_id)
        result = asyncio.run(orchestrator.update_selected())
        _finish(result, orchestrator, "Update")

    _run_or_exit(_run)


@app.command("uninstall")
def uninstall_command(ids: list[str] = typer.Argument(..., help="Ids of the builds to remove")) -> None:
    """Remove the given Java builds."""

    def _run() -> None:
        orchestrator = _orchestrator()
        for build_id in ids:
            orchestrator.selection.select(build_id)
        result = asyncio.run(orchestrator.uninstall_selected())
        _finish(result, orchestrator, "Uninstall")

    _run_or_exit(_run)


@app.command("needed-for")
def needed_for_command(major: int = typer.Argument(..., min=0, help="Java major version")) -> None:
    """Show which game versions need a Java major version."""
    typer.echo(needed_for(major))
