from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _outcome_line(outcome: Mapping[str, Any]) -> str:
    verdict = "sent" if outcome.get("transmitted") else f"failed ({outcome.get('error')})"
    return (
        f"  - {outcome.get('sensor_id')} cycle {outcome.get('cycle')}: {verdict}, "
        f"{outcome.get('raw_samples')} -> {outcome.get('compressed_samples')} samples"
    )


def render_outcomes(outcomes: List[Mapping[str, Any]]) -> None:
    echo_heading("Cycles")
    if not outcomes:
        typer.echo("No cycles ran.")
        return
    for outcome in outcomes:
        typer.echo(_outcome_line(outcome))


def render_run(payload: Dict[str, Any]) -> None:
    echo_heading("Fleet Run")
    echo_key_values(
        [
            ("run_id", payload.get("run_id")),
            ("status", payload.get("status")),
            ("strategy", payload.get("strategy")),
            ("devices", ", ".join(payload.get("device_ids") or [])),
            ("created_at", payload.get("created_at")),
            ("finished_at", payload.get("finished_at")),
            ("processing_ms", payload.get("processing_ms")),
            ("transmitted", payload.get("transmitted_count")),
            ("failed", payload.get("failed_count")),
        ]
    )
    if payload.get("error"):
        typer.secho(f"error: {payload['error']}", fg=typer.colors.RED)
    typer.echo()
    render_outcomes(payload.get("outcomes") or [])


def render_run_list(runs: List[Mapping[str, Any]]) -> None:
    echo_heading("Fleet Runs")
    if not runs:
        typer.echo("No runs recorded.")
        return
    for run in runs:
        typer.echo(
            f"  - {run.get('run_id')} [{run.get('status')}] "
            f"devices={len(run.get('device_ids') or [])} "
            f"sent={run.get('transmitted_count')} failed={run.get('failed_count')} "
            f"created_at={run.get('created_at')}"
        )
