from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from boom_booking.core.database import get_db
from boom_booking.deps import require_tenant_admin, require_tenant_member
from boom_booking.schemas.business_hours import BusinessHoursRead, BusinessHoursReplace
from boom_booking.services import business_hours as hours_service
from boom_booking.services.auth import Claims
from boom_booking.services.business_hours import DayHours

router = APIRouter(prefix="/api/business-hours", tags=["business-hours"])


@router.get("", response_model=List[BusinessHoursRead])
def get_business_hours(claims: Claims = Depends(require_tenant_member), db: Session = Depends(get_db)):
    return hours_service.get_business_hours(db, claims.tenant_id)


@router.put("", response_model=List[BusinessHoursRead])
def replace_business_hours(
    payload: BusinessHoursReplace,
    claims: Claims = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    hours = [DayHours(**day.model_dump()) for day in payload.hours]
    return hours_service.replace_business_hours(db, claims.tenant_id, hours)
