"""Main Typer application, entry point for the ``topsload`` CLI."""

from __future__ import annotations

import typer

from topsload import __version__
from topsload.cli.run import run_cmd
from topsload.cli.summarize import summarize_cmd

app = typer.Typer(
    name="topsload",
    help="Synthetic HTTP load against the TOPS health and status endpoints.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run the load test.")(run_cmd)
app.command("summarize", help="Print the summary of a saved results file.")(summarize_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"topsload {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """topsload: synthetic HTTP load against the TOPS endpoints."""
