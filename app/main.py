from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from metrics.gauge import GaugeCell

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Metrics exporter started", extra={"metric": app.state.gauge.name})
    try:
        yield
    finally:
        logger.info("Metrics exporter stopped", extra={"metric": app.state.gauge.name})


def create_app(gauge: GaugeCell) -> FastAPI:
    app = FastAPI(
        title="Serial Gauge Exporter",
        description="Exposes the latest serial sensor reading as a Prometheus gauge.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.gauge = gauge
    app.include_router(router)
    return app
