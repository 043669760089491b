from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from threading import Lock
from typing import Any, DefaultDict, Optional, Set

from fastapi import WebSocket

from boom_booking.services.booking_events import BOOKING_EVENTS
from boom_booking.services.event_bus import EventBus, event_bus

logger = logging.getLogger(__name__)


class RealtimeHub:
    """WebSocket connections grouped by tenant. Messages are hints; clients re-fetch."""

    def __init__(self) -> None:
        self._connections: DefaultDict[int, Set[WebSocket]] = defaultdict(set)
        self._lock = Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def connect(self, websocket: WebSocket, tenant_id: int) -> None:
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        with self._lock:
            self._connections[tenant_id].add(websocket)
        logger.info("websocket connected", extra={"tenant_id": tenant_id})

    def disconnect(self, websocket: WebSocket, tenant_id: int) -> None:
        with self._lock:
            sockets = self._connections.get(tenant_id)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(tenant_id, None)
        logger.info("websocket disconnected", extra={"tenant_id": tenant_id})

    def connection_count(self, tenant_id: int | None = None) -> int:
        with self._lock:
            if tenant_id is not None:
                return len(self._connections.get(tenant_id, ()))
            return sum(len(sockets) for sockets in self._connections.values())

    async def broadcast(self, tenant_id: int, message: dict[str, Any]) -> None:
        with self._lock:
            sockets = list(self._connections.get(tenant_id, ()))
        for websocket in sockets:
            try:
                await websocket.send_json(message)
            except Exception:
                logger.warning("dropping websocket after send failure", extra={"tenant_id": tenant_id})
                self.disconnect(websocket, tenant_id)

    def handle_booking_event(self, payload: dict[str, Any]) -> None:
        # chamado de forma síncrona pelo event bus, possivelmente fora do loop
        tenant_id = payload.get("tenant_id")
        loop = self._loop
        if tenant_id is None or loop is None or loop.is_closed():
            return
        if not self.connection_count(tenant_id):
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(tenant_id, dict(payload)), loop)

    def register(self, bus: EventBus) -> None:
        for event_type in BOOKING_EVENTS:
            bus.subscribe(event_type, self.handle_booking_event)


realtime_hub = RealtimeHub()
realtime_hub.register(event_bus)
