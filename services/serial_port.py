"""Line-oriented access to the sensor's serial device."""

from __future__ import annotations

import logging
from typing import Optional

import serial

logger = logging.getLogger(__name__)

DEFAULT_DEVICE = "/dev/ttyACM0"
DEFAULT_BAUD = 9600
DEFAULT_TIMEOUT_MS = 2000
# partial-line bytes kept across timeouts
MAX_PENDING_BYTES = 4096


class SerialConnection:
    """Blocking reader for newline-terminated text from a serial port."""

    def __init__(
        self,
        port: str = DEFAULT_DEVICE,
        baud: int = DEFAULT_BAUD,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.port = port
        self.baud = baud
        self.timeout_ms = timeout_ms
        self._ser: Optional[serial.Serial] = None
        self._pending = b""

    @property
    def is_open(self) -> bool:
        return self._ser is not None and self._ser.is_open

    def open(self) -> None:
        """Open the device, raising ``ConnectionError`` when it is unavailable."""
        try:
            self._ser = serial.Serial(
                self.port,
                self.baud,
                timeout=self.timeout_ms / 1000,
            )
        except (serial.SerialException, OSError) as exc:
            raise ConnectionError(f"Cannot open {self.port}: {exc}") from exc
        logger.debug("Opened %s", self.port, extra={"device": self.port, "baud_rate": self.baud})

    def readline(self) -> str:
        """Return the next complete line.

        Raises ``serial.SerialTimeoutException`` when no newline arrives within
        the read timeout. Bytes received before the timeout are kept and
        prefixed to the next line.
        """
        if self._ser is None:
            raise serial.PortNotOpenError()

        raw = self._ser.readline()
        if not raw.endswith(b"\n"):
            self._pending += raw
            if len(self._pending) > MAX_PENDING_BYTES:
                logger.warning(
                    "Discarding %d bytes received without a newline",
                    len(self._pending),
                    extra={"device": self.port},
                )
                self._pending = b""
            raise serial.SerialTimeoutException(
                f"Read timed out after {self.timeout_ms} ms"
            )

        data = self._pending + raw
        self._pending = b""
        return data.decode("utf-8", errors="replace")

    def close(self) -> None:
        if self._ser is None:
            return
        try:
            if self._ser.is_open:
                self._ser.close()
        except (serial.SerialException, OSError) as exc:
            logger.warning("Error closing %s: %s", self.port, exc, extra={"device": self.port})
        self._ser = None
        self._pending = b""
