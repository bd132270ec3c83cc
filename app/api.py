"""HTTP route definitions for the exporter."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from metrics.gauge import GaugeCell

router = APIRouter(include_in_schema=False)

# the endpoint ignores the request method
EXPORT_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_gauge(request: Request) -> GaugeCell:
    return request.app.state.gauge


@router.api_route(
    "/{path:path}",
    methods=EXPORT_METHODS,
    status_code=status.HTTP_200_OK,
    response_class=Response,
    summary="Current metric values in the Prometheus text format.",
)
async def export_metrics(
    path: str,
    gauge: GaugeCell = Depends(get_gauge),
) -> Response:
    # every path and method serves the same snapshot
    return Response(content=gauge.snapshot(), media_type=gauge.content_type)
