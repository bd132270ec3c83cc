from __future__ import annotations

import asyncio
import logging
import signal

from services.shutdown import ShutdownCoordinator


def test_trigger_fires_once(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="services.shutdown")

    async def scenario() -> ShutdownCoordinator:
        coordinator = ShutdownCoordinator()
        assert coordinator.fired is False
        coordinator.trigger()
        coordinator.trigger()
        await asyncio.wait_for(coordinator.wait(), timeout=1)
        return coordinator

    coordinator = asyncio.run(scenario())

    assert coordinator.fired is True
    infos = [record for record in caplog.records if record.levelno == logging.INFO]
    assert len(infos) == 1


def test_wait_blocks_until_triggered() -> None:
    async def scenario() -> bool:
        coordinator = ShutdownCoordinator()
        waiter = asyncio.create_task(coordinator.wait())
        await asyncio.sleep(0.05)
        pending = not waiter.done()
        coordinator.trigger()
        await asyncio.wait_for(waiter, timeout=1)
        return pending

    assert asyncio.run(scenario()) is True


def test_sigint_is_translated_into_shutdown() -> None:
    async def scenario() -> bool:
        coordinator = ShutdownCoordinator()
        coordinator.install()
        try:
            signal.raise_signal(signal.SIGINT)
            await asyncio.wait_for(coordinator.wait(), timeout=2)
            # a second interrupt is absorbed while the handler is installed
            signal.raise_signal(signal.SIGINT)
            await asyncio.sleep(0.05)
            return coordinator.fired
        finally:
            coordinator.uninstall()

    assert asyncio.run(scenario()) is True
    assert signal.getsignal(signal.SIGINT) is signal.default_int_handler
