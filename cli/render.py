from __future__ import annotations

from typing import Any, Iterable, Optional

import typer

from settings import Settings


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(name: str, value: Optional[float]) -> None:
    if value is None:
        typer.echo(f"{name}: no value exported")
        return
    typer.echo(f"{name}: {value}")


def render_settings(settings: Settings) -> None:
    echo_heading("Bridge Settings")
    echo_key_values(
        [
            ("device", settings.device_path),
            ("baud_rate", settings.baud_rate),
            ("read_timeout_ms", settings.read_timeout_ms),
            ("listen", f"{settings.metrics_host}:{settings.metrics_port}"),
            ("metric", settings.metric_name),
        ]
    )
