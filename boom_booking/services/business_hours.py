from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from boom_booking.core.errors import InvalidInput, NotFound
from boom_booking.models import BusinessHours, Tenant
from boom_booking.services.intervals import TimeInterval

logger = logging.getLogger(__name__)

# 0 = domingo
DEFAULT_WEEK = {
    0: (time(10, 0), time(21, 0)),
    1: (time(9, 0), time(22, 0)),
    2: (time(9, 0), time(22, 0)),
    3: (time(9, 0), time(22, 0)),
    4: (time(9, 0), time(22, 0)),
    5: (time(9, 0), time(23, 0)),
    6: (time(10, 0), time(23, 0)),
}


@dataclass(frozen=True)
class DayHours:
    day_of_week: int
    open_time: Optional[time]
    close_time: Optional[time]
    is_closed: bool = False


def weekday_index(value: datetime) -> int:
    """Python weekday() starts on Monday; stored hours start on Sunday."""
    return (value.weekday() + 1) % 7


def tenant_zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown tenant timezone=%s, falling back to UTC", name)
        return ZoneInfo("UTC")


def _window_for(day: datetime, hours: DayHours | BusinessHours, tz: ZoneInfo) -> tuple[datetime, datetime] | None:
    if hours.is_closed or hours.open_time is None or hours.close_time is None:
        return None
    opens = datetime.combine(day.date(), hours.open_time, tzinfo=tz)
    closes = datetime.combine(day.date(), hours.close_time, tzinfo=tz)
    if closes <= opens:
        # janela atravessa a meia-noite
        closes += timedelta(days=1)
    return opens, closes


def is_within_business_hours(
    hours: Iterable[DayHours | BusinessHours],
    interval: TimeInterval,
    tz: ZoneInfo,
) -> bool:
    by_day = {h.day_of_week: h for h in hours}
    local_start = interval.start.astimezone(tz)
    local_end = interval.end.astimezone(tz)

    # o início pode cair na janela do dia anterior quando ela passa da meia-noite
    for offset in (0, -1):
        day = local_start + timedelta(days=offset)
        entry = by_day.get(weekday_index(day))
        if entry is None:
            continue
        window = _window_for(day, entry, tz)
        if window is None:
            continue
        opens, closes = window
        if opens <= local_start and local_end <= closes:
            return True
    return False


def get_business_hours(db: Session, tenant_id: int) -> list[BusinessHours]:
    return (
        db.query(BusinessHours)
        .filter(BusinessHours.tenant_id == tenant_id)
        .order_by(BusinessHours.day_of_week.asc())
        .all()
    )


def default_business_hours(tenant_id: int) -> list[BusinessHours]:
    return [
        BusinessHours(
            tenant_id=tenant_id,
            day_of_week=day,
            open_time=opens,
            close_time=closes,
            is_closed=False,
        )
        for day, (opens, closes) in sorted(DEFAULT_WEEK.items())
    ]


def _validate_day(entry: DayHours) -> None:
    if entry.day_of_week not in range(7):
        raise InvalidInput("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    if not entry.is_closed and (entry.open_time is None or entry.close_time is None):
        raise InvalidInput(
            "open_time and close_time are required when the day is not closed",
            day_of_week=entry.day_of_week,
        )
    if not entry.is_closed and entry.open_time == entry.close_time:
        raise InvalidInput("open_time and close_time must differ", day_of_week=entry.day_of_week)


def replace_business_hours(db: Session, tenant_id: int, hours: Sequence[DayHours]) -> list[BusinessHours]:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise NotFound("Tenant not found")

    seen: set[int] = set()
    for entry in hours:
        _validate_day(entry)
        if entry.day_of_week in seen:
            raise InvalidInput("Duplicate day_of_week", day_of_week=entry.day_of_week)
        seen.add(entry.day_of_week)

    existing = {row.day_of_week: row for row in get_business_hours(db, tenant_id)}
    try:
        for entry in hours:
            row = existing.get(entry.day_of_week)
            if row is None:
                row = BusinessHours(tenant_id=tenant_id, day_of_week=entry.day_of_week)
                db.add(row)
            row.is_closed = entry.is_closed
            row.open_time = None if entry.is_closed else entry.open_time
            row.close_time = None if entry.is_closed else entry.close_time
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("business hours replaced days=%s", sorted(seen), extra={"tenant_id": tenant_id})
    return get_business_hours(db, tenant_id)
