from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from boom_booking.schemas.common import utc_or_none


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., ge=1)
    category: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price_per_hour: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    capacity: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price_per_hour: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    is_active: Optional[bool] = None


class RoomRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    name: str
    capacity: int
    category: str
    description: Optional[str] = None
    price_per_hour: Decimal
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamps(self, value: Optional[datetime]) -> Optional[datetime]:
        return utc_or_none(value)
