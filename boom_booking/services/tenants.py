from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from boom_booking.core.config import (
    DEFAULT_CURRENCY,
    DEFAULT_MAX_BOOKINGS_PER_MONTH,
    DEFAULT_MAX_ROOMS,
    DEFAULT_PLAN,
    DEFAULT_TIMEZONE,
)
from boom_booking.core.errors import AlreadyExists, InvalidInput, NotFound
from boom_booking.models import Room, Tenant, User
from boom_booking.models.user import ROLE_ADMIN
from boom_booking.services.booking_service import count_bookings_this_month
from boom_booking.services.business_hours import default_business_hours, tenant_zone
from boom_booking.services.passwords import hash_password
from boom_booking.services.rooms import count_active_rooms
from boom_booking.utils.slug import is_valid_slug, normalize_slug

logger = logging.getLogger(__name__)

DEFAULT_ROOM = {
    "name": "Main Room",
    "capacity": 4,
    "category": "Standard",
    "description": "Default karaoke room",
    "price_per_hour": Decimal("25.00"),
}

UPDATABLE_FIELDS = (
    "name",
    "email",
    "phone",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "timezone",
    "currency",
)


@dataclass(frozen=True)
class TenantRegistration:
    name: str
    slug: str
    email: str
    admin_name: str
    admin_password: str
    admin_email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "US"
    timezone: str = DEFAULT_TIMEZONE
    currency: str = DEFAULT_CURRENCY


@dataclass(frozen=True)
class UsageCounter:
    current: int
    limit: Optional[int]

    @property
    def remaining(self) -> Optional[int]:
        if self.limit is None:
            return None
        return max(self.limit - self.current, 0)


@dataclass(frozen=True)
class SubscriptionUsage:
    tenant_id: int
    plan: str
    rooms: UsageCounter
    bookings_this_month: UsageCounter


def _slug_exists(db: Session, slug: str) -> bool:
    return db.query(Tenant.id).filter(Tenant.slug == slug).first() is not None


def _email_exists(db: Session, email: str, exclude_tenant_id: Optional[int] = None) -> bool:
    query = db.query(Tenant.id).filter(func.lower(Tenant.email) == email)
    if exclude_tenant_id is not None:
        query = query.filter(Tenant.id != exclude_tenant_id)
    return query.first() is not None


def _validate_timezone(name: str) -> str:
    zone = tenant_zone(name)
    if zone.key != name:
        raise InvalidInput(f"Unknown timezone '{name}'")
    return name


def _validate_currency(code: str) -> str:
    normalized = (code or "").strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise InvalidInput("currency must be a 3-letter code")
    return normalized


def register_tenant(db: Session, payload: TenantRegistration) -> tuple[Tenant, User]:
    slug = (payload.slug or "").strip().lower()
    if not is_valid_slug(slug):
        raise InvalidInput(
            "Invalid slug: use lowercase letters, numbers and hyphens",
            suggestion=normalize_slug(payload.slug or payload.name) or None,
        )
    email = payload.email.strip().lower()
    if _slug_exists(db, slug):
        raise AlreadyExists("Tenant slug already taken", field="slug")
    if _email_exists(db, email):
        raise AlreadyExists("Tenant email already registered", field="email")
    timezone_name = _validate_timezone(payload.timezone or DEFAULT_TIMEZONE)
    currency = _validate_currency(payload.currency or DEFAULT_CURRENCY)

    try:
        tenant = Tenant(
            slug=slug,
            name=payload.name.strip(),
            email=email,
            phone=payload.phone,
            address=payload.address,
            city=payload.city,
            state=payload.state,
            zip_code=payload.zip_code,
            country=payload.country or "US",
            timezone=timezone_name,
            currency=currency,
            subscription_plan=DEFAULT_PLAN,
            max_rooms=DEFAULT_MAX_ROOMS,
            max_bookings_per_month=DEFAULT_MAX_BOOKINGS_PER_MONTH,
            is_active=True,
        )
        db.add(tenant)
        db.flush()

        db.add_all(default_business_hours(tenant.id))
        db.add(Room(tenant_id=tenant.id, is_active=True, **DEFAULT_ROOM))

        admin = User(
            tenant_id=tenant.id,
            email=(payload.admin_email or email).strip().lower(),
            name=payload.admin_name.strip(),
            password_hash=hash_password(payload.admin_password),
            role=ROLE_ADMIN,
            is_active=True,
        )
        db.add(admin)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyExists("Tenant already exists") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(tenant)
    db.refresh(admin)
    logger.info("tenant registered slug=%s", tenant.slug, extra={"tenant_id": tenant.id, "user_id": admin.id})
    return tenant, admin


def get_tenant(db: Session, tenant_id: int) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise NotFound("Tenant not found")
    return tenant


def get_tenant_by_slug(db: Session, slug: str) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.slug == normalize_slug(slug)).first()
    if not tenant:
        raise NotFound("Tenant not found")
    return tenant


def update_tenant(db: Session, tenant_id: int, changes: dict[str, Any]) -> Tenant:
    tenant = get_tenant(db, tenant_id)
    values = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}

    if "name" in values and not (values["name"] or "").strip():
        raise InvalidInput("Tenant name is required")
    if "email" in values:
        values["email"] = (values["email"] or "").strip().lower()
        if not values["email"]:
            raise InvalidInput("Tenant email is required")
        if _email_exists(db, values["email"], exclude_tenant_id=tenant.id):
            raise AlreadyExists("Tenant email already registered", field="email")
    if "timezone" in values:
        values["timezone"] = _validate_timezone(values["timezone"])
    if "currency" in values:
        values["currency"] = _validate_currency(values["currency"])

    for key, value in values.items():
        setattr(tenant, key, value)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(tenant)
    logger.info("tenant updated fields=%s", sorted(values), extra={"tenant_id": tenant.id})
    return tenant


def set_tenant_active(db: Session, tenant_id: int, is_active: bool) -> Tenant:
    tenant = get_tenant(db, tenant_id)
    tenant.is_active = bool(is_active)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(tenant)
    logger.info("tenant active=%s", tenant.is_active, extra={"tenant_id": tenant.id})
    return tenant


def list_tenants(db: Session, *, include_inactive: bool = True) -> list[Tenant]:
    query = db.query(Tenant)
    if not include_inactive:
        query = query.filter(Tenant.is_active.is_(True))
    return query.order_by(Tenant.id.asc()).all()


def subscription_usage(db: Session, tenant_id: int, *, now: Optional[datetime] = None) -> SubscriptionUsage:
    tenant = get_tenant(db, tenant_id)
    return SubscriptionUsage(
        tenant_id=tenant.id,
        plan=tenant.subscription_plan,
        rooms=UsageCounter(current=count_active_rooms(db, tenant.id), limit=tenant.max_rooms),
        bookings_this_month=UsageCounter(
            current=count_bookings_this_month(db, tenant.id, now=now or datetime.now(timezone.utc)),
            limit=tenant.max_bookings_per_month,
        ),
    )
