from __future__ import annotations

from fastapi import APIRouter, Depends

from boom_booking.core.metrics import request_metrics
from boom_booking.deps import require_super_admin
from boom_booking.services.auth import Claims
from boom_booking.services.realtime import realtime_hub

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def metrics(_claims: Claims = Depends(require_super_admin)):
    return {
        "endpoints": request_metrics.snapshot(),
        "booking_events": request_metrics.snapshot_booking_events(),
        "websocket_connections": realtime_hub.connection_count(),
    }


@router.get("/tenants")
def tenant_metrics(_claims: Claims = Depends(require_super_admin)):
    return {"tenants": request_metrics.snapshot_per_tenant()}
