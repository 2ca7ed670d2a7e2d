"""CLI for the node sampler.

Provides a rich command-line interface using Typer for:
- Running the sampling loop
- Taking a single sample and showing it
- Generating a sample configuration
"""

from __future__ import annotations

import time
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from node_sampler.core.config import load_config
from node_sampler.core.schemas import MetricsSnapshot, SamplerConfig
from node_sampler.sampler import build_sampler
from node_sampler.utils.logging import setup_logging

app = typer.Typer(
    name="node-sampler",
    help="Host and container telemetry sampler",
    add_completion=False,
)

console = Console()


def _load(config: Path | None) -> SamplerConfig:
    if config is None:
        return SamplerConfig()
    try:
        return load_config(config)
    except Exception as e:
        console.print(f"[bold red]Error loading config: {e}[/]")
        raise typer.Exit(1) from e


@app.command()
def run(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to sampler configuration file (YAML/JSON)"
    ),
    interval: int | None = typer.Option(
        None, "--interval", "-i", help="Sampling interval in seconds (overrides config)"
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Append snapshots to this JSON-lines file"
    ),
    once: bool = typer.Option(False, "--once", help="Exit after the first cycle"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Sample host and container metrics every interval."""
    sampler_config = _load(config)

    overrides = {}
    if interval is not None:
        overrides["interval_seconds"] = interval
    if output is not None:
        overrides["output_path"] = output
    if log_level is not None:
        overrides["log_level"] = log_level
    if overrides:
        sampler_config = SamplerConfig.model_validate(
            {**sampler_config.model_dump(), **overrides}
        )

    setup_logging(
        level=sampler_config.log_level,
        log_file=log_file,
        json_format=json_logs,
        rich_console=not json_logs,
    )

    sampler = build_sampler(sampler_config)

    if once:
        time.sleep(sampler.interval_seconds)
        sampler.sample()
        sampler.stop()
        return

    console.print(f"[bold blue]Sampling every {sampler.interval_seconds}s (Ctrl+C to stop)[/]")
    try:
        sampler.run_forever()
    except KeyboardInterrupt:
        console.print("[bold yellow]Stopping[/]")
    finally:
        sampler.stop()


@app.command()
def sample(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to sampler configuration file (YAML/JSON)"
    ),
    interval: int = typer.Option(5, "--interval", "-i", help="Seconds between the two readings"),
) -> None:
    """Take one sample after a short baseline and print it."""
    setup_logging(level="WARNING")

    sampler_config = _load(config).model_copy(update={"interval_seconds": interval})
    sampler = build_sampler(sampler_config)
    try:
        time.sleep(sampler.interval_seconds)
        snapshot = sampler.sample()
    finally:
        sampler.stop()

    _show_snapshot(snapshot)


@app.command()
def init_config(
    output: Path = typer.Option(
        Path("node-sampler.yaml"), "--output", "-o", help="Output configuration file"
    ),
) -> None:
    """Generate a sample configuration file."""
    sample_config = """\
# Node sampler configuration

# Prefix for exported metric keys (defaults to the Docker node name)
# node_name: node-1

# Length of one sampling window (seconds)
interval_seconds: 60

# Filesystem to report (defaults to the Docker root dir, or /)
# filesystem_path: /var/lib/docker

# Host counter sources; point these at a bind-mounted host /proc and /sys
proc_root: /proc
sys_class_net: /sys/class/net

# Account container-seconds via the Docker daemon
docker_enabled: true

# Append every snapshot to a JSON-lines file
# output_path: ./stats/node-stats.jsonl

log_level: INFO
"""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(sample_config)
    console.print(f"[bold green]Sample configuration written to {output}[/]")


def _fmt(value: float | int | None, fmt: str = ",.0f", suffix: str = "") -> str:
    if value is None:
        return "N/A"
    return f"{value:{fmt}}{suffix}"


def _show_snapshot(snapshot: MetricsSnapshot) -> None:
    """Display a metrics snapshot."""
    table = Table(title=f"Node stats at {snapshot.time.isoformat()}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    cpu = snapshot.cpu_average
    table.add_row("[yellow]CPU[/]", "")
    table.add_row("  System", _fmt(cpu.system if cpu else None, ".1f", "%"))
    table.add_row("  User", _fmt(cpu.user if cpu else None, ".1f", "%"))
    table.add_row("  Idle", _fmt(cpu.idle if cpu else None, ".1f", "%"))
    if snapshot.load is not None:
        table.add_row(
            "  Load",
            f"{snapshot.load.one_minute:.2f} {snapshot.load.five_minutes:.2f} "
            f"{snapshot.load.fifteen_minutes:.2f}",
        )

    memory = snapshot.memory
    table.add_row("[magenta]Memory[/]", "")
    table.add_row("  Total", _fmt(memory.total if memory else None, suffix=" B"))
    table.add_row("  Used", _fmt(memory.used if memory else None, suffix=" B"))
    table.add_row("  Free", _fmt(memory.free if memory else None, suffix=" B"))

    network = snapshot.network
    table.add_row("[green]Network[/]", "")
    table.add_row("  In", _fmt(network.in_bytes_per_second if network else None, suffix=" B/s"))
    table.add_row("  Out", _fmt(network.out_bytes_per_second if network else None, suffix=" B/s"))

    for fs in snapshot.filesystem:
        table.add_row(f"[red]Filesystem {fs.name}[/]", "")
        table.add_row("  Used", _fmt(fs.used, suffix=" B"))
        table.add_row("  Available", _fmt(fs.available, suffix=" B"))

    table.add_row("[blue]Containers[/]", "")
    table.add_row("  Runtime", f"{snapshot.usage.container_seconds}s")

    console.print(table)


if __name__ == "__main__":
    app()
