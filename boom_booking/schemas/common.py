from datetime import datetime
from typing import Optional

from boom_booking.services.intervals import as_utc


def utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite devolve datetimes sem tzinfo; tudo é gravado em UTC
    if value is None:
        return None
    return as_utc(value)
