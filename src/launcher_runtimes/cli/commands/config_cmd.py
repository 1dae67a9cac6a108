"""``launcher-runtimes config`` commands."""

from __future__ import annotations

from urllib.parse import urlparse

import typer
from rich.console import Console
from rich.table import Table

from launcher_runtimes.config import ConfigError, config_path, load_config, save_config
from launcher_runtimes.home import get_java_directory, get_launcher_home

app = typer.Typer(help="Launcher configuration commands")
console = Console()


@app.command("show")
def show_command() -> None:
    """Display the resolved launcher configuration."""
    home = get_launcher_home()
    try:
        config = load_config(home)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc

    table = Table(title="Launcher Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Home", str(home))
    table.add_row("Config file", str(config_path(home)))
    table.add_row("Java directory", str(get_java_directory(home)))
    table.add_row("Metadata server", config.metadata_server)
    table.add_row("HTTP timeout", f"{config.http_timeout:g}s")
    console.print(table)


@app.command("set-server")
def set_server_command(url: str = typer.Argument(..., help="Base URL of the metadata server")) -> None:
    """Set the metadata server Java builds are resolved from."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        typer.secho(f"Invalid server URL: {url}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    home = get_launcher_home()
    try:
        config = load_config(home)
        config.metadata_server = url.rstrip("/")
        save_config(config, home)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc

    console.print(f"[green]✅ Metadata server set to:[/green] {config.metadata_server}")
