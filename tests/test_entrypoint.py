from __future__ import annotations

import asyncio
import logging
import signal
import threading
import time
from typing import Awaitable, Callable, List, Optional

import pytest
import serial

from app.entrypoint import run_bridge
from app.server import ExporterBindError
from services.reader import SerialReaderLoop
from services.shutdown import ShutdownCoordinator
from settings import Settings


class FakeConnection:
    instances: List["FakeConnection"] = []
    fail_open = False

    def __init__(self, port: str, baud: int, timeout_ms: int) -> None:
        self.port = port
        self.baud = baud
        self.timeout_ms = timeout_ms
        self.lines = ["ERROR\n", "42.5\n"]
        self.closed = False
        FakeConnection.instances.append(self)

    def open(self) -> None:
        if FakeConnection.fail_open:
            raise ConnectionError(f"Cannot open {self.port}: no such device")

    def readline(self) -> str:
        if self.lines:
            return self.lines.pop(0)
        time.sleep(0.01)
        raise serial.SerialTimeoutException("Read timed out")

    def close(self) -> None:
        self.closed = True


class FakeExporter:
    instances: List["FakeExporter"] = []
    error: Optional[BaseException] = None

    def __init__(self, app, host: str, port: int, grace_period: Optional[float] = None) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.grace_period = grace_period
        self.stopped = False
        FakeExporter.instances.append(self)

    async def serve(self, shutdown_trigger: Callable[[], Awaitable[None]]) -> None:
        if FakeExporter.error is not None:
            raise FakeExporter.error
        await shutdown_trigger()
        self.stopped = True


@pytest.fixture(autouse=True)
def fakes(monkeypatch):
    FakeConnection.instances = []
    FakeConnection.fail_open = False
    FakeExporter.instances = []
    FakeExporter.error = None
    monkeypatch.setattr("app.entrypoint.SerialConnection", FakeConnection)
    monkeypatch.setattr("app.entrypoint.MetricsExporter", FakeExporter)


def _run(settings: Settings, delay: Optional[float] = 0.2) -> ShutdownCoordinator:
    async def scenario() -> ShutdownCoordinator:
        coordinator = ShutdownCoordinator()
        if delay is not None:
            asyncio.get_running_loop().call_later(delay, coordinator.trigger)
        await asyncio.wait_for(run_bridge(settings, coordinator), timeout=10)
        return coordinator

    return asyncio.run(scenario())


def test_reader_feeds_gauge_until_interrupt(caplog) -> None:
    caplog.set_level(logging.INFO)

    coordinator = _run(Settings(device_path="/dev/ttyFAKE", metrics_port=9999))

    (connection,) = FakeConnection.instances
    (exporter,) = FakeExporter.instances
    assert coordinator.fired
    assert exporter.stopped is True
    assert (exporter.host, exporter.port) == ("0.0.0.0", 9999)
    assert exporter.app.state.gauge.value() == 42.5
    assert connection.closed is True
    assert (connection.baud, connection.timeout_ms) == (9600, 2000)
    messages = [record.getMessage() for record in caplog.records]
    assert "Receiving data on /dev/ttyFAKE at 9600 baud" in messages
    assert "Shutdown signal received" in messages


def test_missing_device_still_serves_default_gauge(caplog) -> None:
    FakeConnection.fail_open = True
    caplog.set_level(logging.INFO)

    _run(Settings(device_path="/dev/missing"))

    (exporter,) = FakeExporter.instances
    assert exporter.stopped is True
    assert "moisture 0.0" in exporter.app.state.gauge.snapshot().decode("utf-8")
    errors = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].getMessage().startswith("Failed to open /dev/missing")


def test_exporter_failure_propagates_and_stops_reader() -> None:
    FakeExporter.error = ExporterBindError(98, "Cannot bind 0.0.0.0:9898: Address already in use")

    with pytest.raises(ExporterBindError):
        _run(Settings(), delay=None)

    (connection,) = FakeConnection.instances
    assert connection.closed is True
    assert signal.getsignal(signal.SIGINT) is signal.default_int_handler


def test_custom_metric_settings_reach_the_gauge() -> None:
    _run(Settings(metric_name="soil_temperature", metric_help="Soil Temperature"))

    (exporter,) = FakeExporter.instances
    body = exporter.app.state.gauge.snapshot().decode("utf-8")
    assert "# HELP soil_temperature Soil Temperature" in body


def test_reader_is_joined_off_the_event_loop_thread(monkeypatch) -> None:
    joined_on: List[threading.Thread] = []
    original_stop = SerialReaderLoop.stop

    def recording_stop(self, timeout=None):
        joined_on.append(threading.current_thread())
        return original_stop(self, timeout)

    monkeypatch.setattr(SerialReaderLoop, "stop", recording_stop)

    _run(Settings())

    assert len(joined_on) == 1
    assert joined_on[0] is not threading.main_thread()
    assert FakeConnection.instances[0].closed is True
