from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from boom_booking.core.errors import AlreadyExists, InvalidInput, NotFound, QuotaExceeded
from boom_booking.models import Room, Tenant
from boom_booking.services.pricing import to_money

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "capacity", "category", "description", "price_per_hour", "is_active")


def _validate_room_values(values: dict[str, Any]) -> None:
    if "name" in values and not (values["name"] or "").strip():
        raise InvalidInput("Room name is required")
    if "category" in values and not (values["category"] or "").strip():
        raise InvalidInput("Room category is required")
    if "capacity" in values and (values["capacity"] is None or int(values["capacity"]) < 1):
        raise InvalidInput("Room capacity must be at least 1")
    if "price_per_hour" in values and (values["price_per_hour"] is None or Decimal(str(values["price_per_hour"])) < 0):
        raise InvalidInput("Room price_per_hour must not be negative")


def count_active_rooms(db: Session, tenant_id: int) -> int:
    return int(
        db.query(func.count(Room.id))
        .filter(Room.tenant_id == tenant_id, Room.is_active.is_(True))
        .scalar()
        or 0
    )


def _name_taken(db: Session, tenant_id: int, name: str, exclude_room_id: Optional[int] = None) -> bool:
    query = db.query(Room.id).filter(Room.tenant_id == tenant_id, func.lower(Room.name) == name.lower())
    if exclude_room_id is not None:
        query = query.filter(Room.id != exclude_room_id)
    return query.first() is not None


def list_rooms(
    db: Session,
    tenant_id: int,
    *,
    active_only: bool = True,
    category: Optional[str] = None,
) -> list[Room]:
    query = db.query(Room).filter(Room.tenant_id == tenant_id)
    if active_only:
        query = query.filter(Room.is_active.is_(True))
    if category:
        query = query.filter(Room.category == category)
    return query.order_by(Room.name.asc(), Room.id.asc()).all()


def get_room(db: Session, tenant_id: int, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id, Room.tenant_id == tenant_id).first()
    if not room:
        raise NotFound("Room not found")
    return room


def create_room(
    db: Session,
    tenant_id: int,
    *,
    name: str,
    capacity: int,
    category: str,
    price_per_hour,
    description: Optional[str] = None,
) -> Room:
    values = {"name": name, "capacity": capacity, "category": category, "price_per_hour": price_per_hour}
    _validate_room_values(values)
    name = name.strip()

    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise NotFound("Tenant not found")
    current = count_active_rooms(db, tenant_id)
    if tenant.max_rooms is not None and current >= tenant.max_rooms:
        raise QuotaExceeded("Room limit reached for your plan", limit=tenant.max_rooms, current=current)
    if _name_taken(db, tenant_id, name):
        raise AlreadyExists("A room with this name already exists")

    room = Room(
        tenant_id=tenant_id,
        name=name,
        capacity=int(capacity),
        category=category.strip(),
        description=description,
        price_per_hour=to_money(price_per_hour),
        is_active=True,
    )
    try:
        db.add(room)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyExists("A room with this name already exists") from exc
    except Exception:
        db.rollback()
        raise
    db.refresh(room)
    logger.info("room created", extra={"tenant_id": tenant_id, "room_id": room.id})
    return room


def update_room(db: Session, tenant_id: int, room_id: int, changes: dict[str, Any]) -> Room:
    room = get_room(db, tenant_id, room_id)
    values = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
    _validate_room_values(values)

    if "name" in values:
        values["name"] = values["name"].strip()
        if _name_taken(db, tenant_id, values["name"], exclude_room_id=room.id):
            raise AlreadyExists("A room with this name already exists")
    if "category" in values:
        values["category"] = values["category"].strip()
    if "price_per_hour" in values:
        values["price_per_hour"] = to_money(values["price_per_hour"])

    if values.get("is_active") and not room.is_active:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
        current = count_active_rooms(db, tenant_id)
        if tenant is not None and tenant.max_rooms is not None and current >= tenant.max_rooms:
            raise QuotaExceeded("Room limit reached for your plan", limit=tenant.max_rooms, current=current)

    for key, value in values.items():
        setattr(room, key, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyExists("A room with this name already exists") from exc
    except Exception:
        db.rollback()
        raise
    db.refresh(room)
    logger.info("room updated fields=%s", sorted(values), extra={"tenant_id": tenant_id, "room_id": room.id})
    return room


def deactivate_room(db: Session, tenant_id: int, room_id: int) -> Room:
    """Soft delete. Existing bookings are kept as they are."""
    room = get_room(db, tenant_id, room_id)
    room.is_active = False
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(room)
    logger.info("room deactivated", extra={"tenant_id": tenant_id, "room_id": room.id})
    return room
