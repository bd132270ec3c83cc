"""uvicorn hosting for the metrics app with an externally driven shutdown."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import socket
from typing import Awaitable, Callable, Iterator, Optional

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)


class ExporterBindError(OSError):
    """The metrics port could not be bound."""


class ExporterServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the shutdown coordinator."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class MetricsExporter:
    """Serves the metrics app until a shutdown trigger resolves."""

    def __init__(
        self,
        app: FastAPI,
        host: str = "0.0.0.0",
        port: int = 9898,
        grace_period: Optional[float] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_config=None,
            access_log=False,
            lifespan="on",
            timeout_graceful_shutdown=math.ceil(grace_period) if grace_period else None,
        )
        self.server = ExporterServer(self.config)
        self.socket: Optional[socket.socket] = None

    @property
    def address(self) -> Optional[tuple[str, int]]:
        if self.socket is None:
            return None
        host, port = self.socket.getsockname()[:2]
        return host, port

    def bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as exc:
            sock.close()
            raise ExporterBindError(
                exc.errno, f"Cannot bind {self.host}:{self.port}: {exc.strerror or exc}"
            ) from exc
        sock.set_inheritable(True)
        self.socket = sock
        return sock

    async def serve(self, shutdown_trigger: Callable[[], Awaitable[None]]) -> None:
        """Run until ``shutdown_trigger`` resolves, then drain in-flight requests."""
        sock = self.bind()
        host, port = self.address or (self.host, self.port)
        logger.info("Serving metrics on http://%s:%s", host, port, extra={"address": f"{host}:{port}"})

        server_task = asyncio.create_task(self.server.serve(sockets=[sock]), name="uvicorn")
        trigger_task = asyncio.ensure_future(shutdown_trigger())
        try:
            done, _ = await asyncio.wait(
                {server_task, trigger_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if trigger_task in done:
                logger.info("Stopping metrics server", extra={"address": f"{host}:{port}"})
                self.server.should_exit = True
            await server_task
        finally:
            trigger_task.cancel()
            if not server_task.done():
                self.server.should_exit = True
                await asyncio.gather(server_task, return_exceptions=True)
            sock.close()
