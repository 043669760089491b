from datetime import time
from zoneinfo import ZoneInfo

import pytest

from boom_booking.core.errors import InvalidInput, NotFound
from boom_booking.services.business_hours import (
    DayHours,
    get_business_hours,
    is_within_business_hours,
    replace_business_hours,
    weekday_index,
)
from boom_booking.services.intervals import TimeInterval
from tests.fixtures_data import build_session_factory, seed_tenant, utc

UTC = ZoneInfo("UTC")
MONDAY_HOURS = [DayHours(day_of_week=1, open_time=time(9, 0), close_time=time(22, 0))]
# sexta 20:00 -> sábado 02:00
FRIDAY_NIGHT = [DayHours(day_of_week=5, open_time=time(20, 0), close_time=time(2, 0))]


def test_weekday_index_starts_on_sunday():
    assert weekday_index(utc(12, day=(2030, 1, 6))) == 0
    assert weekday_index(utc(12)) == 1
    assert weekday_index(utc(12, day=(2030, 1, 12))) == 6


def test_interval_inside_window():
    assert is_within_business_hours(MONDAY_HOURS, TimeInterval(utc(9), utc(22)), UTC)
    assert is_within_business_hours(MONDAY_HOURS, TimeInterval(utc(14), utc(15)), UTC)


def test_interval_crossing_open_or_close_is_outside():
    assert not is_within_business_hours(MONDAY_HOURS, TimeInterval(utc(8, 30), utc(9, 30)), UTC)
    assert not is_within_business_hours(MONDAY_HOURS, TimeInterval(utc(21, 30), utc(22, 30)), UTC)


def test_closed_or_missing_day_is_outside():
    closed = [DayHours(day_of_week=1, open_time=None, close_time=None, is_closed=True)]

    assert not is_within_business_hours(closed, TimeInterval(utc(14), utc(15)), UTC)
    assert not is_within_business_hours([], TimeInterval(utc(14), utc(15)), UTC)


def test_overnight_window_covers_after_midnight():
    friday = (2030, 1, 11)
    saturday = (2030, 1, 12)

    assert is_within_business_hours(FRIDAY_NIGHT, TimeInterval(utc(23, day=friday), utc(1, day=saturday)), UTC)
    assert is_within_business_hours(FRIDAY_NIGHT, TimeInterval(utc(0, 30, day=saturday), utc(2, day=saturday)), UTC)
    assert not is_within_business_hours(
        FRIDAY_NIGHT,
        TimeInterval(utc(1, day=saturday), utc(3, day=saturday)),
        UTC,
    )


def test_window_evaluated_in_local_time():
    tokyo = ZoneInfo("Asia/Tokyo")

    # 01:00 UTC de segunda = 10:00 de segunda em Tóquio
    assert is_within_business_hours(MONDAY_HOURS, TimeInterval(utc(1), utc(2)), tokyo)
    # 14:00 UTC de segunda = 23:00 em Tóquio, após o fechamento
    assert not is_within_business_hours(MONDAY_HOURS, TimeInterval(utc(14), utc(15)), tokyo)


def test_replace_business_hours_upserts_per_day():
    db = build_session_factory()()
    tenant = seed_tenant(db, slug="hours", with_hours=True)

    rows = replace_business_hours(
        db,
        tenant.id,
        [
            DayHours(day_of_week=0, open_time=None, close_time=None, is_closed=True),
            DayHours(day_of_week=5, open_time=time(18, 0), close_time=time(3, 0)),
        ],
    )

    assert len(rows) == 7
    by_day = {row.day_of_week: row for row in rows}
    assert by_day[0].is_closed is True
    assert by_day[0].open_time is None
    assert by_day[5].open_time == time(18, 0)
    assert by_day[5].close_time == time(3, 0)
    assert by_day[1].open_time == time(9, 0)
    assert [row.day_of_week for row in get_business_hours(db, tenant.id)] == list(range(7))
    db.close()


def test_replace_business_hours_requires_times_for_open_days():
    db = build_session_factory()()
    tenant = seed_tenant(db, slug="hours")

    with pytest.raises(InvalidInput):
        replace_business_hours(db, tenant.id, [DayHours(day_of_week=2, open_time=time(9, 0), close_time=None)])
    with pytest.raises(InvalidInput):
        replace_business_hours(
            db,
            tenant.id,
            [
                DayHours(day_of_week=2, open_time=time(9, 0), close_time=time(17, 0)),
                DayHours(day_of_week=2, open_time=time(10, 0), close_time=time(18, 0)),
            ],
        )
    with pytest.raises(NotFound):
        replace_business_hours(db, 999, [DayHours(day_of_week=2, open_time=time(9, 0), close_time=time(17, 0))])
    db.close()
