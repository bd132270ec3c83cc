"""Thread-safe holder for the latest sensor reading."""

from __future__ import annotations

from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest


class GaugeCell:
    """Owns a private registry with a single gauge.

    The serial reader thread writes through ``set`` while HTTP handlers call
    ``snapshot``; ``prometheus_client`` guards the value with its own lock.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self,
        name: str = "moisture",
        documentation: str = "Soil Moisture",
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        self.name = name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._gauge = Gauge(name, documentation, registry=self.registry)

    def set(self, value: float) -> None:
        self._gauge.set(value)

    def value(self) -> float:
        sample = self.registry.get_sample_value(self.name)
        return 0.0 if sample is None else sample

    def snapshot(self) -> bytes:
        """Render every metric in the registry in the text exposition format."""
        return generate_latest(self.registry)
