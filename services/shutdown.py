"""One-shot translation of an interrupt into a shutdown request."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


class ShutdownCoordinator:
    """Waits for SIGINT and fires exactly once."""

    def __init__(self, signals: Sequence[signal.Signals] = (signal.SIGINT,)) -> None:
        self.signals = tuple(signals)
        self._event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._fallback = False

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Route the configured signals to ``trigger``.

        Errors from the platform signal facility propagate to the caller.
        """
        loop = loop or asyncio.get_running_loop()
        self._loop = loop
        try:
            for sig in self.signals:
                loop.add_signal_handler(sig, self.trigger)
        except NotImplementedError:
            self._fallback = True
            for sig in self.signals:
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.trigger))

    def uninstall(self) -> None:
        if self._loop is None:
            return
        for sig in self.signals:
            if self._fallback:
                signal.signal(sig, signal.default_int_handler if sig == signal.SIGINT else signal.SIG_DFL)
            elif not self._loop.is_closed():
                self._loop.remove_signal_handler(sig)
        self._loop = None

    def trigger(self) -> None:
        if self._event.is_set():
            logger.debug("Shutdown already requested; ignoring signal")
            return
        logger.info("Interrupt received, requesting shutdown")
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
