from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from boom_booking.core import config
from boom_booking.core.errors import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidTransition,
    NotFound,
    OutOfHours,
    QuotaExceeded,
)
from boom_booking.models import Booking, Room, Tenant
from boom_booking.models.booking import (
    BOOKING_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_NO_SHOW,
)
from boom_booking.services.booking_events import (
    emit_booking_cancelled,
    emit_booking_created,
    emit_booking_updated,
)
from boom_booking.services.business_hours import get_business_hours, is_within_business_hours, tenant_zone, weekday_index
from boom_booking.services.intervals import TimeInterval, as_utc
from boom_booking.services.pricing import booking_total

logger = logging.getLogger(__name__)

EXCLUSION_CONSTRAINT = "ex_bookings_room_no_overlap"
EXCLUSION_VIOLATION_PGCODE = "23P01"

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_CONFIRMED: frozenset({STATUS_CANCELLED, STATUS_COMPLETED, STATUS_NO_SHOW}),
    STATUS_CANCELLED: frozenset(),
    STATUS_COMPLETED: frozenset(),
    STATUS_NO_SHOW: frozenset(),
}


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class BookingFilters:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    room_id: Optional[int] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class BookingPatch:
    """Partial update. None leaves the field unchanged."""

    room_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None


def booking_interval(booking: Booking) -> TimeInterval:
    return TimeInterval(booking.start_time, booking.end_time)


def check_transition(current: str, target: str) -> None:
    if target not in BOOKING_STATUSES:
        raise InvalidInput(f"Unknown booking status '{target}'")
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Cannot change booking status from {current} to {target}",
            current_status=current,
            requested_status=target,
        )


def _get_tenant(db: Session, tenant_id: int, *, lock: bool = False) -> Tenant:
    query = db.query(Tenant).filter(Tenant.id == tenant_id, Tenant.is_active.is_(True))
    if lock:
        # serializa a cota mensal entre salas diferentes do mesmo tenant
        query = query.with_for_update()
    tenant = query.first()
    if not tenant:
        raise NotFound("Tenant not found")
    return tenant


def _lock_room(db: Session, tenant_id: int, room_id: int) -> Room:
    # FOR UPDATE serializa reservas concorrentes da mesma sala (no-op no SQLite)
    room = (
        db.query(Room)
        .filter(Room.id == room_id, Room.tenant_id == tenant_id, Room.is_active.is_(True))
        .with_for_update()
        .first()
    )
    if not room:
        raise NotFound("Room not found")
    return room


def _get_booking(db: Session, tenant_id: int, booking_id: int, *, lock: bool = False) -> Booking:
    query = db.query(Booking).filter(Booking.id == booking_id, Booking.tenant_id == tenant_id)
    if lock:
        query = query.with_for_update()
    booking = query.first()
    if not booking:
        raise NotFound("Booking not found")
    return booking


def _find_conflicts(
    db: Session,
    *,
    room_id: int,
    interval: TimeInterval,
    exclude_booking_id: Optional[int] = None,
) -> list[Booking]:
    query = db.query(Booking).filter(
        Booking.room_id == room_id,
        Booking.status == STATUS_CONFIRMED,
        Booking.start_time < interval.end,
        Booking.end_time > interval.start,
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.order_by(Booking.start_time.asc(), Booking.id.asc()).all()


def _conflict_error(existing: Booking) -> Conflict:
    return Conflict(
        conflicting_booking_id=existing.id,
        conflicting_start_time=as_utc(existing.start_time).isoformat(),
        conflicting_end_time=as_utc(existing.end_time).isoformat(),
    )


def _is_overlap_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == EXCLUSION_VIOLATION_PGCODE:
        return True
    return EXCLUSION_CONSTRAINT in str(orig)


def _check_business_hours(db: Session, tenant: Tenant, interval: TimeInterval, *, override_hours: bool) -> None:
    if not config.ENFORCE_BUSINESS_HOURS:
        return
    if override_hours:
        if not config.ALLOW_ADMIN_HOURS_OVERRIDE:
            raise Forbidden("Business hours override is disabled")
        logger.info("business hours override applied", extra={"tenant_id": tenant.id})
        return

    hours = get_business_hours(db, tenant.id)
    if not hours:
        # sem horários cadastrados não há restrição
        return
    tz = tenant_zone(tenant.timezone)
    if not is_within_business_hours(hours, interval, tz):
        raise OutOfHours(
            day_of_week=weekday_index(interval.start.astimezone(tz)),
            timezone=tz.key,
        )


def _month_start(now: datetime) -> datetime:
    return as_utc(now).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def count_bookings_this_month(db: Session, tenant_id: int, *, now: Optional[datetime] = None) -> int:
    month_start = _month_start(now or datetime.now(timezone.utc))
    return int(
        db.query(func.count(Booking.id))
        .filter(
            Booking.tenant_id == tenant_id,
            Booking.status == STATUS_CONFIRMED,
            Booking.created_at >= month_start,
        )
        .scalar()
        or 0
    )


def _check_monthly_quota(db: Session, tenant: Tenant, *, now: Optional[datetime]) -> None:
    limit = tenant.max_bookings_per_month
    if limit is None:
        return
    current = count_bookings_this_month(db, tenant.id, now=now)
    if current >= limit:
        raise QuotaExceeded(
            "Monthly booking limit reached for your plan",
            limit=limit,
            current=current,
        )


def create_booking(
    db: Session,
    *,
    tenant_id: int,
    room_id: int,
    interval: TimeInterval,
    customer: CustomerInfo,
    notes: Optional[str] = None,
    override_hours: bool = False,
    now: Optional[datetime] = None,
) -> Booking:
    customer_name = (customer.name or "").strip()
    if not customer_name:
        raise InvalidInput("customer_name is required")

    try:
        tenant = _get_tenant(db, tenant_id, lock=True)
        room = _lock_room(db, tenant_id, room_id)
        _check_business_hours(db, tenant, interval, override_hours=override_hours)
        _check_monthly_quota(db, tenant, now=now)

        conflicts = _find_conflicts(db, room_id=room.id, interval=interval)
        if conflicts:
            raise _conflict_error(conflicts[0])

        booking = Booking(
            tenant_id=tenant_id,
            room_id=room.id,
            customer_name=customer_name,
            customer_email=customer.email,
            customer_phone=customer.phone,
            start_time=interval.start,
            end_time=interval.end,
            status=STATUS_CONFIRMED,
            notes=notes,
            total_price=booking_total(interval, room.price_per_hour),
        )
        db.add(booking)
        db.flush()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_overlap_violation(exc):
            raise Conflict() from exc
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        "booking created",
        extra={"tenant_id": tenant_id, "room_id": booking.room_id, "booking_id": booking.id},
    )
    emit_booking_created(booking)
    return booking


def update_booking(
    db: Session,
    *,
    tenant_id: int,
    booking_id: int,
    patch: BookingPatch,
    override_hours: bool = False,
) -> Booking:
    try:
        booking = _get_booking(db, tenant_id, booking_id, lock=True)
        previous_status = booking.status

        target_room_id = patch.room_id if patch.room_id is not None else booking.room_id
        current = booking_interval(booking)
        target = TimeInterval(
            patch.start_time if patch.start_time is not None else current.start,
            patch.end_time if patch.end_time is not None else current.end,
        )
        reschedule = target_room_id != booking.room_id or target != current

        target_status = patch.status if patch.status is not None else booking.status
        if target_status != booking.status:
            check_transition(booking.status, target_status)

        if reschedule:
            if previous_status != STATUS_CONFIRMED:
                raise InvalidTransition(
                    "Only confirmed bookings can change room or time",
                    current_status=previous_status,
                )
            tenant = _get_tenant(db, tenant_id)
            room = _lock_room(db, tenant_id, target_room_id)
            _check_business_hours(db, tenant, target, override_hours=override_hours)
            if target_status == STATUS_CONFIRMED:
                conflicts = _find_conflicts(
                    db,
                    room_id=room.id,
                    interval=target,
                    exclude_booking_id=booking.id,
                )
                if conflicts:
                    raise _conflict_error(conflicts[0])
            booking.room_id = room.id
            booking.start_time = target.start
            booking.end_time = target.end
            booking.total_price = booking_total(target, room.price_per_hour)

        if patch.customer_name is not None:
            name = patch.customer_name.strip()
            if not name:
                raise InvalidInput("customer_name is required")
            booking.customer_name = name
        if patch.customer_email is not None:
            booking.customer_email = patch.customer_email
        if patch.customer_phone is not None:
            booking.customer_phone = patch.customer_phone
        if patch.notes is not None:
            booking.notes = patch.notes
        booking.status = target_status

        db.flush()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_overlap_violation(exc):
            raise Conflict() from exc
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        "booking updated status=%s->%s",
        previous_status,
        booking.status,
        extra={"tenant_id": tenant_id, "room_id": booking.room_id, "booking_id": booking.id},
    )
    if booking.status == STATUS_CANCELLED and previous_status != STATUS_CANCELLED:
        emit_booking_cancelled(booking)
    else:
        emit_booking_updated(booking)
    return booking


def move_booking(
    db: Session,
    *,
    tenant_id: int,
    booking_id: int,
    room_id: int,
    interval: TimeInterval,
    override_hours: bool = False,
) -> Booking:
    patch = BookingPatch(room_id=room_id, start_time=interval.start, end_time=interval.end)
    return update_booking(
        db,
        tenant_id=tenant_id,
        booking_id=booking_id,
        patch=patch,
        override_hours=override_hours,
    )


def cancel_booking(db: Session, *, tenant_id: int, booking_id: int) -> Booking:
    try:
        booking = _get_booking(db, tenant_id, booking_id, lock=True)
        check_transition(booking.status, STATUS_CANCELLED)
        booking.status = STATUS_CANCELLED
        db.flush()
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        "booking cancelled",
        extra={"tenant_id": tenant_id, "room_id": booking.room_id, "booking_id": booking.id},
    )
    emit_booking_cancelled(booking)
    return booking


def get_booking(db: Session, *, tenant_id: int, booking_id: int) -> Booking:
    return _get_booking(db, tenant_id, booking_id)


def list_bookings(db: Session, *, tenant_id: int, filters: Optional[BookingFilters] = None) -> list[Booking]:
    filters = filters or BookingFilters()
    query = db.query(Booking).filter(Booking.tenant_id == tenant_id)

    if filters.room_id is not None:
        query = query.filter(Booking.room_id == filters.room_id)
    if filters.status is not None:
        if filters.status not in BOOKING_STATUSES:
            raise InvalidInput(f"Unknown booking status '{filters.status}'")
        query = query.filter(Booking.status == filters.status)
    if filters.start is not None:
        query = query.filter(Booking.end_time > as_utc(filters.start))
    if filters.end is not None:
        query = query.filter(Booking.start_time < as_utc(filters.end))

    return query.order_by(Booking.start_time.asc(), Booking.id.asc()).all()


def complete_elapsed_bookings(db: Session, *, tenant_id: int, now: Optional[datetime] = None) -> int:
    cutoff = as_utc(now or datetime.now(timezone.utc))
    try:
        elapsed = (
            db.query(Booking)
            .filter(
                Booking.tenant_id == tenant_id,
                Booking.status == STATUS_CONFIRMED,
                Booking.end_time <= cutoff,
            )
            .with_for_update()
            .all()
        )
        for booking in elapsed:
            booking.status = STATUS_COMPLETED
        db.commit()
    except Exception:
        db.rollback()
        raise

    if elapsed:
        logger.info("completed %s elapsed bookings", len(elapsed), extra={"tenant_id": tenant_id})
    for booking in elapsed:
        emit_booking_updated(booking)
    return len(elapsed)


def check_availability(db: Session, *, tenant_id: int, room_id: int, interval: TimeInterval) -> list[Booking]:
    room = (
        db.query(Room)
        .filter(Room.id == room_id, Room.tenant_id == tenant_id, Room.is_active.is_(True))
        .first()
    )
    if not room:
        raise NotFound("Room not found")
    return _find_conflicts(db, room_id=room.id, interval=interval)
