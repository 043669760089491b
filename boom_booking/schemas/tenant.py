from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer

from boom_booking.core.config import DEFAULT_CURRENCY, DEFAULT_TIMEZONE
from boom_booking.schemas.auth import TokenResponse
from boom_booking.schemas.common import utc_or_none


class TenantRegisterPayload(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    slug: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    admin_name: str = Field(..., min_length=2, max_length=255)
    admin_email: Optional[EmailStr] = None
    admin_password: str = Field(..., min_length=8, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=50)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: str = Field(default="US", max_length=50)
    timezone: str = Field(default=DEFAULT_TIMEZONE, max_length=50)
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=3, max_length=3)


class TenantUpdatePayload(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=50)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=50)
    timezone: Optional[str] = Field(default=None, max_length=50)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class TenantActivePayload(BaseModel):
    is_active: bool


class TenantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str
    timezone: str
    currency: str
    subscription_plan: str
    max_rooms: int
    max_bookings_per_month: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamps(self, value: Optional[datetime]) -> Optional[datetime]:
        return utc_or_none(value)


class TenantRegisterResponse(TokenResponse):
    pass


class UsageCounterRead(BaseModel):
    current: int
    limit: Optional[int]
    remaining: Optional[int]


class SubscriptionUsageRead(BaseModel):
    tenant_id: int
    plan: str
    rooms: UsageCounterRead
    bookings_this_month: UsageCounterRead
