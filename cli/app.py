from __future__ import annotations

import asyncio
import dataclasses
from typing import Optional

import typer

from app.entrypoint import run_bridge
from app.server import ExporterBindError
from cli.client import MetricsClient
from cli.config import load_config
from cli.render import render_reading, render_settings
from logging_config import configure_logging
from settings import get_settings


app = typer.Typer(
    help="Bridge a serial sensor to a Prometheus gauge.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main() -> None:
    """Entry point for the CLI."""


@app.command("serve")
def serve_command(
    device: Optional[str] = typer.Option(None, "--device", "-d", help="Serial device path."),
    baud_rate: Optional[int] = typer.Option(None, "--baud-rate", min=1, help="Serial baud rate."),
    read_timeout_ms: Optional[int] = typer.Option(
        None, "--read-timeout-ms", min=1, help="Serial read timeout in milliseconds."
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Address to bind the metrics endpoint to."),
    port: Optional[int] = typer.Option(None, "--port", "-p", min=0, help="Metrics endpoint port."),
    metric_name: Optional[str] = typer.Option(None, "--metric-name", help="Gauge name."),
    metric_help: Optional[str] = typer.Option(None, "--metric-help", help="Gauge help text."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Read the sensor and serve its latest value until interrupted."""
    overrides = {
        "device_path": device,
        "baud_rate": baud_rate,
        "read_timeout_ms": read_timeout_ms,
        "metrics_host": host,
        "metrics_port": port,
        "metric_name": metric_name,
        "metric_help": metric_help,
        "log_level": log_level.upper() if log_level else None,
    }
    settings = dataclasses.replace(
        get_settings(), **{key: value for key, value in overrides.items() if value is not None}
    )
    configure_logging(settings.log_level)
    render_settings(settings)
    try:
        asyncio.run(run_bridge(settings))
    except ExporterBindError as exc:
        typer.secho(f"Metrics exporter failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.command("scrape")
def scrape_command(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Exporter base URL (defaults to EXPORTER_BASE_URL env or http://localhost:9898).",
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="HTTP timeout in seconds."),
    metric: str = typer.Option("moisture", "--metric", "-m", help="Gauge to read."),
) -> None:
    """Print the current gauge value from a running exporter."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = MetricsClient(config)
    ctx.call_on_close(client.close)
    render_reading(metric, client.read_gauge(metric))
