from __future__ import annotations

from typing import Optional

import httpx
import typer
from prometheus_client.parser import text_string_to_metric_families

from cli.config import CLIConfig


class MetricsClient:
    """Minimal HTTP client for a running exporter."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def fetch_text(self) -> str:
        try:
            response = self._client.get("/metrics")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._fail(f"Request failed with status {exc.response.status_code}.")
        except httpx.TransportError as exc:
            self._fail(f"Cannot reach exporter at {self._config.base_url}: {exc}")
        return response.text

    def read_gauge(self, name: str) -> Optional[float]:
        for family in text_string_to_metric_families(self.fetch_text()):
            if family.name != name:
                continue
            for sample in family.samples:
                if sample.name == name:
                    return sample.value
        return None

    @staticmethod
    def _fail(message: str) -> None:
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
