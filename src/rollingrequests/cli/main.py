import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from rollingrequests.config import DEFAULT_TIMEOUT_SECONDS, RollingConfig
from rollingrequests.exceptions import ConfigurationError
from rollingrequests.models import Outcome
from rollingrequests.rolling import RollingRequests
from rollingrequests.utils.files import load_requests, write_outcomes
from rollingrequests.utils.logging import setup_logging

app = typer.Typer(no_args_is_help=True)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Log every dispatched request"),
    ] = False,
):
    """Execute HTTP requests in windows of bounded concurrency"""
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING)


def print_summary(outcomes: list[Outcome], window_count: int):
    table = Table("#", "Method", "URL", "Tag", "Result", title="Outcomes")
    for index, outcome in enumerate(outcomes, start=1):
        if outcome.ok:
            result = f"[green]{escape(outcome.request.response_info or '')}[/green]"
        else:
            result = f"[red]{escape(outcome.request.response_error or '')}[/red]"
        table.add_row(
            str(index),
            str(outcome.request.method),
            escape(outcome.request.url),
            escape(outcome.request.extra_info or ""),
            result,
        )
    console = Console()
    console.print(table)
    error_count = sum(1 for outcome in outcomes if not outcome.ok)
    console.print(
        f"{len(outcomes)} request(s) in {window_count} window(s): "
        f"[green]{len(outcomes) - error_count} succeeded[/green], "
        f"[red]{error_count} failed[/red]"
    )


async def drain_requests(
    rolling: RollingRequests, output: Path | None, progress: Progress
) -> tuple[list[Outcome], int]:
    outcomes: list[Outcome] = []
    window_count = 0
    total = rolling.pending_count
    task = progress.add_task(description="Executing requests...", total=total)
    async with rolling:
        async for window in rolling.drain():
            window_count += 1
            outcomes.extend(window)
            if output is not None:
                write_outcomes(output, window)
            progress.update(
                task,
                advance=len(window),
                description=f"Executed {len(outcomes)}/{total} requests",
            )
    return outcomes, window_count


@app.command(name="run")
def run(
    input_file: Annotated[
        Path,
        typer.Argument(help="JSONL file with one request per line", exists=True, dir_okay=False),
    ],
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="JSONL file to append outcomes to"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option(
            "-l",
            "--limit",
            help="Maximum number of simultaneous requests",
            envvar="ROLLINGREQUESTS_LIMIT",
            min=1,
        ),
    ] = 1,
    timeout: Annotated[
        float,
        typer.Option(
            "-t",
            "--timeout",
            help="Per-request timeout in seconds",
            envvar="ROLLINGREQUESTS_TIMEOUT",
        ),
    ] = DEFAULT_TIMEOUT_SECONDS,
    http2: Annotated[
        bool,
        typer.Option("--http2", help="Force HTTP/2", envvar="ROLLINGREQUESTS_HTTP2"),
    ] = False,
    fail_on_error: Annotated[
        bool,
        typer.Option("--fail-on-error", help="Exit with code 1 if any request failed"),
    ] = False,
):
    """Execute every request of a JSONL file"""
    console = Console()
    try:
        requests = load_requests(input_file)
    except (ValueError, ValidationError) as error:
        console.print(
            f"[red]Invalid request file {escape(str(input_file))}:[/red] {escape(str(error))}"
        )
        raise typer.Exit(code=2)

    try:
        config = RollingConfig(
            simultaneous_limit=limit, timeout=timeout, force_http2=http2, auto_advance=True
        )
        rolling = RollingRequests(config)
    except (ValidationError, ConfigurationError) as error:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(error))}")
        raise typer.Exit(code=2)

    rolling.add_requests(requests)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    ) as progress:
        outcomes, window_count = asyncio.run(
            drain_requests(rolling=rolling, output=output, progress=progress)
        )

    print_summary(outcomes=outcomes, window_count=window_count)
    if fail_on_error and any(not outcome.ok for outcome in outcomes):
        raise typer.Exit(code=1)
