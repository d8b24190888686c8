from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer

from app.schemas import RunStatus
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_heading, render_outcomes, render_run, render_run_list
from logging_config import configure_logging
from models.records import CycleStrategy, DeviceConfig
from services.fleet import Device, Fleet
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Simulate sensor fleets locally or drive the fleet runner service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Runner API base URL (defaults to SENSORFLEET_API_URL env or http://localhost:8000).",
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


@app.command("simulate")
def simulate_command(
    device: Optional[List[str]] = typer.Option(
        None,
        "--device",
        "-d",
        help="Device identity; repeat for a fleet (default: sensor_001).",
    ),
    cycles: Optional[int] = typer.Option(None, "--cycles", "-n", help="Cycles per device."),
    strategy: Optional[CycleStrategy] = typer.Option(
        None, "--strategy", "-s", help="Concurrency arrangement inside each cycle."
    ),
    sample_rate: Optional[int] = typer.Option(None, "--sample-rate", help="Samples per second."),
    bit_depth: Optional[int] = typer.Option(None, "--bit-depth", help="Bits per sample."),
    duration: Optional[int] = typer.Option(None, "--duration", help="Seconds of audio per cycle."),
    cooldown: Optional[float] = typer.Option(
        None, "--cooldown", help="Seconds a device sleeps between cycles."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker threads."),
    concurrent_devices: bool = typer.Option(
        True,
        "--concurrent/--sequential-devices",
        help="Run device cycle loops side by side.",
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Base seed for reproducible runs; device i uses seed + i."
    ),
) -> None:
    """Run simulated devices in this process.

    Transmission failures are reported but never change the exit status.
    """
    configure_logging()
    settings = get_settings()
    device_ids = list(device or ["sensor_001"])
    cycle_strategy = strategy or CycleStrategy(settings.strategy)
    worker_count = workers if workers and workers > 0 else settings.workers

    devices = [
        Device(
            DeviceConfig(
                sensor_id=device_id,
                sample_rate=settings.sample_rate if sample_rate is None else sample_rate,
                bit_depth=settings.bit_depth if bit_depth is None else bit_depth,
                duration=settings.duration if duration is None else duration,
                cooldown=settings.cooldown if cooldown is None else cooldown,
            ),
            strategy=cycle_strategy,
            workers=worker_count,
            success_probability=settings.success_probability,
            latency=settings.latency,
            seed=None if seed is None else seed + offset,
        )
        for offset, device_id in enumerate(device_ids)
    ]
    try:
        fleet = Fleet(devices, concurrent=concurrent_devices, workers=worker_count)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--device") from exc

    results = fleet.run(settings.cycles if cycles is None else cycles)

    typer.echo()
    echo_heading("Summary")
    outcomes = [outcome for device_id in device_ids for outcome in results.get(device_id, [])]
    render_outcomes(
        [
            {
                "sensor_id": outcome.sensor_id,
                "cycle": outcome.cycle,
                "transmitted": outcome.transmitted,
                "error": outcome.error.value if outcome.error else None,
                "raw_samples": outcome.raw_samples,
                "compressed_samples": outcome.compressed_samples,
            }
            for outcome in outcomes
        ]
    )


@app.command("submit")
def submit_command(
    ctx: typer.Context,
    device: Optional[List[str]] = typer.Option(
        None, "--device", "-d", help="Device identity; repeat for a fleet."
    ),
    cycles: Optional[int] = typer.Option(None, "--cycles", "-n", help="Cycles per device."),
    strategy: Optional[CycleStrategy] = typer.Option(
        None, "--strategy", "-s", help="Concurrency arrangement inside each cycle."
    ),
    cooldown: Optional[float] = typer.Option(None, "--cooldown", help="Seconds between cycles."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Base seed for the run."),
    wait: bool = typer.Option(
        False,
        "--wait/--no-wait",
        help="Wait for the run to finish and display the result.",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Override poll interval while waiting.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Override timeout while waiting.",
    ),
) -> None:
    """Start a fleet run on the runner service."""
    state = _get_state(ctx)
    device_ids = list(device or ["sensor_001"])
    typer.echo(f"Submitting run for {', '.join(device_ids)} to {state.config.base_url} ...")
    run_id = state.client.submit_run(
        device_ids,
        cycles=cycles,
        strategy=strategy.value if strategy else None,
        cooldown=cooldown,
        seed=seed,
    )
    typer.secho(f"Run accepted. run_id={run_id}", fg=typer.colors.GREEN)

    if not wait:
        return

    interval = poll_interval if poll_interval is not None else state.config.poll_interval
    poll_timeout = timeout if timeout is not None else state.config.poll_timeout
    typer.echo(f"Waiting for run (interval={interval}s, timeout={poll_timeout}s)...")
    result = state.client.poll_run(run_id, interval=interval, timeout=poll_timeout)
    typer.echo()
    render_run(result)


@app.command("status")
def status_command(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Identifier returned from the submit command."),
) -> None:
    """Fetch status and cycle outcomes for a run."""
    state = _get_state(ctx)
    render_run(state.client.get_run(run_id))


@app.command("cancel")
def cancel_command(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Identifier returned from the submit command."),
) -> None:
    """Ask a run to stop before its devices start another cycle."""
    state = _get_state(ctx)
    payload = state.client.cancel_run(run_id)
    typer.secho(
        f"Cancellation requested. run_id={run_id} status={payload.get('status')}",
        fg=typer.colors.YELLOW,
    )


@app.command("runs")
def runs_command(
    ctx: typer.Context,
    status: Optional[RunStatus] = typer.Option(
        None, "--status", help="Only list runs in this state."
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", min=1, help="Maximum number of runs to list."
    ),
) -> None:
    """List runs known to the runner service, newest first."""
    state = _get_state(ctx)
    render_run_list(state.client.list_runs(status=status.value if status else None, limit=limit))
