from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_readings, render_result
from models.records import MeterReading
from services.chunk_source import ChunkSourceError, CsvChunkSource
from services.interpreter import iter_readings
from services.sql_formatter import format_statements, join_statements


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Generate meter_readings INSERT statements from NEM12 files.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _write_sql(sql: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(sql)
        return
    output.write_text(sql + "\n" if sql else "", encoding="utf-8")
    typer.secho(f"Wrote SQL to {output}", fg=typer.colors.GREEN, err=True)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Generator API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between status checks when waiting for completion.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait when polling for results.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a NEM12 CSV file."),
    wait: bool = typer.Option(
        False,
        "--wait/--no-wait",
        help="Wait for processing to finish and display the result.",
    ),
) -> None:
    """Upload a NEM12 file to the service for SQL generation."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    file_id = state.client.upload_file(file)
    typer.secho(f"Upload accepted. file_id={file_id}", fg=typer.colors.GREEN)

    if not wait:
        return

    typer.echo(
        f"Waiting for processing (interval={state.config.poll_interval}s, "
        f"timeout={state.config.poll_timeout}s)..."
    )
    result = state.client.poll_result(
        file_id,
        interval=state.config.poll_interval,
        timeout=state.config.poll_timeout,
    )
    typer.echo()
    render_result(result)


@app.command("result")
def result_command(
    ctx: typer.Context,
    file_id: str = typer.Argument(..., help="Identifier returned from the upload command."),
) -> None:
    """Show job status and the generated meter readings."""
    state = _get_state(ctx)
    render_result(state.client.get_result(file_id))


@app.command("sql")
def sql_command(
    ctx: typer.Context,
    file_id: str = typer.Argument(..., help="Identifier returned from the upload command."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", dir_okay=False, help="Write SQL to this file."),
) -> None:
    """Export the INSERT statements of a completed job."""
    state = _get_state(ctx)
    _write_sql(state.client.get_sql(file_id), output)


@app.command("generate")
def generate_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a NEM12 CSV file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", dir_okay=False, help="Write SQL to this file."),
    chunk_rows: Optional[int] = typer.Option(None, "--chunk-rows", min=1, help="Rows per batch fed to the interpreter."),
    show_table: bool = typer.Option(False, "--table/--no-table", help="Print the readings table instead of SQL."),
) -> None:
    """Convert a NEM12 file locally, without the service."""
    state = _get_state(ctx)
    source = CsvChunkSource.from_path(file, chunk_rows=chunk_rows or state.config.chunk_rows)

    readings: List[MeterReading] = []
    try:
        for batch_readings in iter_readings(source.batches()):
            readings.extend(batch_readings)
    except ChunkSourceError as exc:
        typer.secho(exc.user_message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if show_table:
        render_readings((asdict(reading) for reading in readings), len(readings))
        return
    _write_sql(join_statements(format_statements(readings)), output)
