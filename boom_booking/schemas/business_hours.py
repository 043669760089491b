from datetime import time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BusinessHoursDay(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_closed: bool = False


class BusinessHoursRead(BusinessHoursDay):
    model_config = ConfigDict(from_attributes=True)

    day_name: str


class BusinessHoursReplace(BaseModel):
    hours: List[BusinessHoursDay] = Field(..., min_length=1, max_length=7)
