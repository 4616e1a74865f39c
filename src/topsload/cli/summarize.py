"""``topsload summarize``: re-print the summary of a saved snapshot."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from topsload.summary import build_summary, format_summary

console = Console(stderr=True)


def summarize_cmd(
    results_file: Path = typer.Argument(
        ...,
        help="Snapshot JSON written by a previous run (e.g. /tmp/results.json).",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Print the summary lines for a saved results file."""
    try:
        data = json.loads(results_file.read_text())
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid results file:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if not isinstance(data, dict):
        console.print("[red]Invalid results file:[/red] expected a JSON object")
        raise typer.Exit(code=1)

    for line in format_summary(build_summary(data)):
        typer.echo(line)
