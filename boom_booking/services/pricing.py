from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from boom_booking.services.intervals import TimeInterval

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def booking_total(interval: TimeInterval, price_per_hour) -> Decimal:
    seconds = Decimal(int((interval.end - interval.start).total_seconds()))
    hours = seconds / Decimal(3600)
    return to_money(hours * to_money(price_per_hour))
