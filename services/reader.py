"""Background loop feeding serial readings into the gauge."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import serial

from metrics.gauge import GaugeCell
from services.parser import parse_reading
from services.serial_port import SerialConnection

logger = logging.getLogger(__name__)

_INITIAL_BACKOFF = 0.1


class ReadErrorReporter:
    """Logs the first error of a streak, then at most once per interval."""

    def __init__(
        self,
        device: str,
        interval: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.device = device
        self.interval = interval
        self._clock = clock
        self._last_logged: Optional[float] = None
        self._suppressed = 0

    @property
    def suppressed(self) -> int:
        return self._suppressed

    def report(self, exc: BaseException) -> bool:
        """Record an error; returns whether it was written to the log."""
        now = self._clock()
        if self._last_logged is not None and now - self._last_logged < self.interval:
            self._suppressed += 1
            return False

        logger.error(
            "Serial read failed: %s",
            exc,
            extra={"device": self.device, "suppressed": self._suppressed or None},
        )
        self._last_logged = now
        self._suppressed = 0
        return True

    def reset(self) -> None:
        if self._suppressed:
            logger.info(
                "Serial reads recovered",
                extra={"device": self.device, "suppressed": self._suppressed},
            )
        self._last_logged = None
        self._suppressed = 0


class SerialReaderLoop:
    """Reads lines on a dedicated daemon thread and updates the gauge.

    Read errors never end the loop and the device is never reopened. Only
    ``stop`` or process exit ends it.
    """

    def __init__(
        self,
        connection: SerialConnection,
        gauge: GaugeCell,
        error_log_interval: float = 10.0,
        max_backoff: float = 5.0,
    ) -> None:
        self.connection = connection
        self.gauge = gauge
        self.max_backoff = max_backoff
        self.reporter = ReadErrorReporter(connection.port, interval=error_log_interval)
        self._backoff = 0.0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="serial-reader", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Request the loop to exit; returns whether the thread finished in time."""
        self._stop.set()
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        if thread.is_alive():
            logger.warning(
                "Serial reader still blocked in a read; leaving it to process exit",
                extra={"device": self.connection.port},
            )
            return False
        self._thread = None
        return True

    def process_line(self, line: str) -> bool:
        value = parse_reading(line)
        if value is None:
            logger.debug("Discarding non-numeric line %r", line.strip())
            return False
        self.gauge.set(value)
        return True

    def step(self) -> None:
        """Perform one read and apply its result."""
        try:
            line = self.connection.readline()
        except serial.SerialTimeoutException as exc:
            # the read already waited out the device timeout
            self.reporter.report(exc)
            return
        except (serial.SerialException, OSError) as exc:
            self.reporter.report(exc)
            self._wait_backoff()
            return

        self._backoff = 0.0
        self.reporter.reset()
        self.process_line(line)

    def _wait_backoff(self) -> None:
        if self.max_backoff <= 0:
            return
        if self._backoff:
            self._backoff = min(self._backoff * 2, self.max_backoff)
        else:
            self._backoff = min(_INITIAL_BACKOFF, self.max_backoff)
        logger.debug(
            "Backing off before the next read",
            extra={"device": self.connection.port, "backoff_s": self._backoff},
        )
        self._stop.wait(self._backoff)

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                self.step()
        finally:
            self.connection.close()
