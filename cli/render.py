from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

import typer

from services.sql_formatter import format_display_consumption


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_readings(readings: Iterable[Mapping[str, Any]], count: int) -> None:
    echo_heading(f"Generated SQL ({count} statements)")
    typer.echo(f"{'NMI':<12} {'Timestamp':<19} {'Consumption':>12}")
    for reading in readings:
        typer.echo(
            f"{reading['nmi']:<12} {reading['timestamp']:<19} "
            f"{format_display_consumption(reading['consumption']):>12}"
        )


def render_result(payload: Dict[str, Any]) -> None:
    echo_heading("Processing Result")
    echo_key_values(
        [
            ("file_id", payload.get("file_id")),
            ("filename", payload.get("filename")),
            ("status", payload.get("status")),
            ("uploaded_at", payload.get("uploaded_at")),
            ("processed_at", payload.get("processed_at")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )

    error = payload.get("error")
    if error:
        typer.echo()
        typer.secho(error, fg=typer.colors.RED)
        return

    readings = payload.get("readings") or []
    if payload.get("status") == "completed" and readings:
        typer.echo()
        render_readings(readings, payload.get("statement_count", len(readings)))
