from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from boom_booking.core.database import get_db
from boom_booking.core.errors import Forbidden
from boom_booking.deps import log_access_denied, require_booking_manager, require_tenant_member
from boom_booking.models.user import ROLE_ADMIN
from boom_booking.schemas.booking import (
    AvailabilityResponse,
    BookingCreate,
    BookingMove,
    BookingRead,
    BookingUpdate,
    CompleteElapsedResponse,
)
from boom_booking.services import booking_service
from boom_booking.services.auth import Claims
from boom_booking.services.booking_service import BookingFilters, BookingPatch, CustomerInfo
from boom_booking.services.intervals import TimeInterval

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


def _ensure_override_allowed(request: Request, claims: Claims, override_hours: bool) -> bool:
    if not override_hours:
        return False
    if claims.role != ROLE_ADMIN:
        log_access_denied(reason="hours_override_denied", claims=claims, request=request)
        raise Forbidden("Only admins can book outside business hours")
    return True


@router.get("", response_model=List[BookingRead])
def list_bookings(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    room_id: Optional[int] = None,
    status: Optional[str] = None,
    claims: Claims = Depends(require_tenant_member),
    db: Session = Depends(get_db),
):
    filters = BookingFilters(start=start, end=end, room_id=room_id, status=status)
    bookings = booking_service.list_bookings(db, tenant_id=claims.tenant_id, filters=filters)
    return [BookingRead.from_booking(booking) for booking in bookings]


@router.post("", response_model=BookingRead, status_code=201)
def create_booking(
    request: Request,
    payload: BookingCreate,
    claims: Claims = Depends(require_tenant_member),
    db: Session = Depends(get_db),
):
    booking = booking_service.create_booking(
        db,
        tenant_id=claims.tenant_id,
        room_id=payload.room_id,
        interval=TimeInterval(payload.start_time, payload.end_time),
        customer=CustomerInfo(
            name=payload.customer_name,
            email=payload.customer_email,
            phone=payload.customer_phone,
        ),
        notes=payload.notes,
        override_hours=_ensure_override_allowed(request, claims, payload.override_hours),
    )
    return BookingRead.from_booking(booking)


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    room_id: int,
    start_time: datetime,
    end_time: datetime,
    claims: Claims = Depends(require_tenant_member),
    db: Session = Depends(get_db),
):
    interval = TimeInterval(start_time, end_time)
    conflicts = booking_service.check_availability(
        db,
        tenant_id=claims.tenant_id,
        room_id=room_id,
        interval=interval,
    )
    return AvailabilityResponse(
        room_id=room_id,
        start_time=interval.start,
        end_time=interval.end,
        available=not conflicts,
        conflicts=[BookingRead.from_booking(booking) for booking in conflicts],
    )


@router.post("/complete-elapsed", response_model=CompleteElapsedResponse)
def complete_elapsed_bookings(claims: Claims = Depends(require_booking_manager), db: Session = Depends(get_db)):
    completed = booking_service.complete_elapsed_bookings(db, tenant_id=claims.tenant_id)
    return CompleteElapsedResponse(completed=completed)


@router.get("/{booking_id}", response_model=BookingRead)
def get_booking(booking_id: int, claims: Claims = Depends(require_tenant_member), db: Session = Depends(get_db)):
    booking = booking_service.get_booking(db, tenant_id=claims.tenant_id, booking_id=booking_id)
    return BookingRead.from_booking(booking)


@router.put("/{booking_id}", response_model=BookingRead)
def update_booking(
    request: Request,
    booking_id: int,
    payload: BookingUpdate,
    claims: Claims = Depends(require_booking_manager),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"override_hours"})
    booking = booking_service.update_booking(
        db,
        tenant_id=claims.tenant_id,
        booking_id=booking_id,
        patch=BookingPatch(**changes),
        override_hours=_ensure_override_allowed(request, claims, payload.override_hours),
    )
    return BookingRead.from_booking(booking)


@router.put("/{booking_id}/cancel", response_model=BookingRead)
def cancel_booking(booking_id: int, claims: Claims = Depends(require_booking_manager), db: Session = Depends(get_db)):
    booking = booking_service.cancel_booking(db, tenant_id=claims.tenant_id, booking_id=booking_id)
    return BookingRead.from_booking(booking)


@router.put("/{booking_id}/move", response_model=BookingRead)
def move_booking(
    request: Request,
    booking_id: int,
    payload: BookingMove,
    claims: Claims = Depends(require_booking_manager),
    db: Session = Depends(get_db),
):
    booking = booking_service.move_booking(
        db,
        tenant_id=claims.tenant_id,
        booking_id=booking_id,
        room_id=payload.room_id,
        interval=TimeInterval(payload.start_time, payload.end_time),
        override_hours=_ensure_override_allowed(request, claims, payload.override_hours),
    )
    return BookingRead.from_booking(booking)
