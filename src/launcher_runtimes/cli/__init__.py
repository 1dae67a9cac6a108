"""Command line entry point for launcher-runtimes."""

from __future__ import annotations

import logging

import typer

from launcher_runtimes import __version__
from launcher_runtimes.cli.commands import config_cmd, java

app = typer.Typer(
    name="launcher-runtimes",
    help="Manage the Java runtimes used by the game launcher",
    add_completion=False,
    no_args_is_help=True,
)
app.add_typer(java.app, name="java")
app.add_typer(config_cmd.app, name="config")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"launcher-runtimes {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Manage the Java runtimes used by the game launcher."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
