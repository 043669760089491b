from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer

from boom_booking.schemas.common import utc_or_none


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=200)
    tenant_slug: Optional[str] = Field(default=None, max_length=100)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: Optional[int]
    email: str
    name: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None

    @field_serializer("last_login")
    def _serialize_last_login(self, value: Optional[datetime]) -> Optional[datetime]:
        return utc_or_none(value)


class TenantSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    timezone: str
    currency: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
    tenant: Optional[TenantSummary] = None


class MeResponse(BaseModel):
    user: UserRead
    tenant: Optional[TenantSummary] = None
    expires_at: datetime
