# servicehub/routes/internal.py
"""Operational endpoints: outbox drain and Prometheus scrape."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from ..api.dependencies.services import get_outbox_dispatch_service
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..services.outbox_dispatch_service import OutboxDispatchService

router = APIRouter(tags=["internal"])


class OutboxDrainResponse(BaseModel):
    sent: int
    retrying: int
    failed: int


@router.post("/internal/outbox/dispatch", response_model=OutboxDrainResponse)
def dispatch_outbox(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: OutboxDispatchService = Depends(get_outbox_dispatch_service),
) -> OutboxDrainResponse:
    summary = service.dispatch_pending(limit=limit)
    return OutboxDrainResponse(sent=summary.sent, retrying=summary.retrying, failed=summary.failed)


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
