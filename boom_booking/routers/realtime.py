from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from boom_booking.core.database import SessionLocal
from boom_booking.core.errors import Unauthorized
from boom_booking.deps import resolve_claims
from boom_booking.services.realtime import realtime_hub

router = APIRouter(tags=["realtime"])

logger = logging.getLogger(__name__)


def _authenticate(token: str | None):
    db = SessionLocal()
    try:
        claims, _ = resolve_claims(db, token)
        return claims
    finally:
        db.close()


@router.websocket("/ws/bookings")
async def booking_updates(websocket: WebSocket, token: str | None = None):
    try:
        claims = await run_in_threadpool(_authenticate, token)
    except Unauthorized as exc:
        logger.warning("websocket rejected code=%s", exc.code)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if claims.tenant_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await realtime_hub.connect(websocket, claims.tenant_id)
    try:
        await websocket.send_json({"event_type": "connected", "tenant_id": claims.tenant_id})
        while True:
            # mensagens do cliente são ignoradas; serve só para detectar desconexão
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        realtime_hub.disconnect(websocket, claims.tenant_id)
