from __future__ import annotations

from fastapi import APIRouter

from tableside.core.metrics import request_metrics
from tableside.services.broadcaster import broadcaster

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def metrics():
    return {
        "endpoints": request_metrics.snapshot(),
        "organizations": request_metrics.snapshot_per_organization(),
        "websocketConnections": broadcaster.connection_count,
    }
