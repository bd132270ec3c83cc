"""Process wiring: serial reader, metrics exporter and shutdown coordinator."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

from app.main import create_app
from app.server import ExporterBindError, MetricsExporter
from logging_config import configure_logging
from metrics.gauge import GaugeCell
from services.reader import SerialReaderLoop
from services.serial_port import SerialConnection
from services.shutdown import ShutdownCoordinator
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def open_connection(settings: Settings) -> Optional[SerialConnection]:
    """Open the sensor device, or log the failure and return ``None``."""
    connection = SerialConnection(
        settings.device_path, settings.baud_rate, settings.read_timeout_ms
    )
    extra = {"device": settings.device_path, "baud_rate": settings.baud_rate}
    try:
        connection.open()
    except ConnectionError as exc:
        logger.error("Failed to open %s: %s", settings.device_path, exc, extra=extra)
        return None
    logger.info(
        "Receiving data on %s at %s baud", settings.device_path, settings.baud_rate, extra=extra
    )
    return connection


async def run_bridge(
    settings: Settings,
    coordinator: Optional[ShutdownCoordinator] = None,
) -> None:
    """Run until an interrupt arrives or the exporter stops.

    A reader thread that is still blocked on the device when this returns is
    left to process exit.
    """
    coordinator = coordinator or ShutdownCoordinator()
    coordinator.install()
    signal_task = asyncio.create_task(coordinator.wait(), name="shutdown-signal")

    connection = open_connection(settings)
    gauge = GaugeCell(settings.metric_name, settings.metric_help)

    exporter = MetricsExporter(
        create_app(gauge),
        host=settings.metrics_host,
        port=settings.metrics_port,
        grace_period=settings.shutdown_grace_period,
    )
    server_task = asyncio.create_task(exporter.serve(coordinator.wait), name="metrics-exporter")

    reader: Optional[SerialReaderLoop] = None
    if connection is not None:
        reader = SerialReaderLoop(
            connection,
            gauge,
            error_log_interval=settings.read_error_log_interval,
            max_backoff=settings.read_error_max_backoff,
        )
        reader.start()

    try:
        done, _ = await asyncio.wait(
            {server_task, signal_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if signal_task in done:
            logger.info("Shutdown signal received")
            await server_task
        else:
            signal_task.cancel()
            server_task.result()
    finally:
        signal_task.cancel()
        coordinator.uninstall()
        if reader is not None:
            await asyncio.to_thread(reader.stop, settings.read_timeout_ms / 1000)


def main() -> int:
    configure_logging()
    settings = get_settings()
    try:
        asyncio.run(run_bridge(settings))
    except ExporterBindError as exc:
        logger.error("Metrics exporter failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
