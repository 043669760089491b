from __future__ import annotations

from boom_booking.core.metrics import request_metrics
from boom_booking.models import Booking
from boom_booking.services.event_bus import event_bus

BOOKING_CREATED = "booking.created"
BOOKING_UPDATED = "booking.updated"
BOOKING_CANCELLED = "booking.cancelled"
BOOKING_EVENTS = (BOOKING_CREATED, BOOKING_UPDATED, BOOKING_CANCELLED)


def build_booking_payload(booking: Booking, event_type: str) -> dict:
    return {
        "event_type": event_type,
        "tenant_id": booking.tenant_id,
        "room_id": booking.room_id,
        "booking_id": booking.id,
    }


def _emit(booking: Booking, event_type: str) -> None:
    request_metrics.count_booking_event(event_type)
    event_bus.emit(event_type, build_booking_payload(booking, event_type))


def emit_booking_created(booking: Booking) -> None:
    _emit(booking, BOOKING_CREATED)


def emit_booking_updated(booking: Booking) -> None:
    _emit(booking, BOOKING_UPDATED)


def emit_booking_cancelled(booking: Booking) -> None:
    _emit(booking, BOOKING_CANCELLED)
