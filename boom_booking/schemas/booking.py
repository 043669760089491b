from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_serializer

from boom_booking.models import Booking
from boom_booking.schemas.common import utc_or_none


class BookingCreate(BaseModel):
    room_id: int
    start_time: datetime
    end_time: datetime
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None
    override_hours: bool = False


class BookingUpdate(BaseModel):
    room_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None
    status: Optional[str] = None
    override_hours: bool = False


class BookingMove(BaseModel):
    room_id: int
    start_time: datetime
    end_time: datetime
    override_hours: bool = False


class BookingRead(BaseModel):
    id: int
    tenant_id: int
    room_id: int
    room_name: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    notes: Optional[str] = None
    total_price: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("start_time", "end_time", "created_at", "updated_at")
    def _serialize_timestamps(self, value: Optional[datetime]) -> Optional[datetime]:
        return utc_or_none(value)

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingRead":
        return cls(
            id=booking.id,
            tenant_id=booking.tenant_id,
            room_id=booking.room_id,
            room_name=booking.room.name if booking.room is not None else None,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=booking.status,
            notes=booking.notes,
            total_price=booking.total_price,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class AvailabilityResponse(BaseModel):
    room_id: int
    start_time: datetime
    end_time: datetime
    available: bool
    conflicts: List[BookingRead] = []


class CompleteElapsedResponse(BaseModel):
    completed: int
