"""``topsload run``: execute the load test with live terminal output."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from topsload._internal.config import TARGET_URL_VAR, load_config
from topsload._internal.errors import TopsLoadError
from topsload._internal.logging import setup_logging
from topsload.engine.session import TestSession
from topsload.engine.thresholds import evaluate_thresholds
from topsload.metrics.recorder import InMemoryRecorder
from topsload.options import DEFAULT_OPTIONS, Options, Stage
from topsload.script import ENDPOINTS, LoadTestScript
from topsload.summary import handle_summary, write_outputs

if TYPE_CHECKING:
    from topsload.engine.thresholds import ThresholdResult

console = Console(stderr=True)

# Same exit status k6 uses when thresholds are crossed.
THRESHOLDS_FAILED_EXIT_CODE = 99


def _parse_env(pairs: list[str]) -> dict[str, str]:
    """Overlay ``KEY=VALUE`` pairs on the process environment.

    Raises:
        typer.BadParameter: If a pair has no ``=``.
    """
    env = dict(os.environ)
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            msg = f"--env expects KEY=VALUE, got: {pair!r}"
            raise typer.BadParameter(msg)
        env[key] = value
    return env


def _build_options(stages: list[str]) -> Options:
    if not stages:
        return DEFAULT_OPTIONS
    return Options(
        stages=tuple(Stage.from_string(s) for s in stages),
        thresholds=DEFAULT_OPTIONS.thresholds,
    )


def _make_live_table(elapsed: float, active_users: int, total: float) -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Elapsed", f"{elapsed:.0f}s / {total:.0f}s")
    table.add_row("Active VUs", str(active_users))
    return table


def _print_thresholds(results: list[ThresholdResult]) -> None:
    table = Table(title="Thresholds", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Condition")
    table.add_column("Observed", justify="right")
    table.add_column("Result", justify="right")
    for result in results:
        observed = "n/a" if result.observed is None else f"{result.observed:.4f}"
        verdict = "[green]PASS[/green]" if result.ok else "[red]FAIL[/red]"
        table.add_row(result.threshold.metric, result.threshold.expression, observed, verdict)
    console.print(table)


def run_cmd(
    target_url: str | None = typer.Option(
        None,
        "--target-url",
        "-t",
        help="Base URL of the service under test (sets TARGET_URL).",
    ),
    env_pairs: list[str] = typer.Option(
        [],
        "--env",
        "-e",
        help="Environment variable for the script, as KEY=VALUE. Repeatable.",
    ),
    stages: list[str] = typer.Option(
        [],
        "--stage",
        "-s",
        help="Replace the stage schedule, as DURATION:TARGET (e.g. 30s:5). Repeatable.",
    ),
    tick: float = typer.Option(
        1.0,
        "--tick",
        help="Seconds between virtual-user adjustments.",
        min=0.01,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Emit logs as JSON lines.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Hide the banner and live progress table.",
    ),
) -> None:
    """Run the load test, print the summary and export the results."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO, json_format=log_json)

    env = _parse_env(env_pairs)
    if target_url is not None:
        env[TARGET_URL_VAR] = target_url

    try:
        config = load_config(env)
        options = _build_options(stages)
    except TopsLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if not quiet:
        console.print(
            Panel(
                f"[bold]Target:[/bold]    {config.target_url}\n"
                f"[bold]Endpoints:[/bold] {', '.join(ENDPOINTS)}\n"
                f"[bold]Duration:[/bold]  {options.total_duration:g}s\n"
                f"[bold]Max VUs:[/bold]   {options.max_vus}",
                title="topsload",
                border_style="cyan",
            )
        )

    recorder = InMemoryRecorder()
    script = LoadTestScript(recorder, env=env)

    try:
        if quiet:
            session = TestSession(
                script, options, tick_interval=tick, request_timeout=config.request_timeout
            )
            snapshot = asyncio.run(session.run())
        else:
            with Live(
                _make_live_table(0.0, 0, options.total_duration),
                console=console,
                refresh_per_second=2,
                transient=True,
            ) as live:

                def _on_tick(elapsed: float, active_users: int) -> None:
                    live.update(_make_live_table(elapsed, active_users, options.total_duration))

                session = TestSession(
                    script,
                    options,
                    tick_interval=tick,
                    request_timeout=config.request_timeout,
                    on_tick=_on_tick,
                )
                snapshot = asyncio.run(session.run())
    except TopsLoadError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    results = evaluate_thresholds(snapshot, options.thresholds)
    write_outputs(handle_summary(snapshot))

    if not quiet:
        _print_thresholds(results)

    failed = [r for r in results if not r.ok]
    if failed:
        console.print(f"[red]FAIL:[/red] {len(failed)} threshold(s) crossed")
        raise typer.Exit(code=THRESHOLDS_FAILED_EXIT_CODE)

    console.print("[green]Load test completed successfully.[/green]")
