from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from boom_booking.core.database import get_db
from boom_booking.deps import require_tenant_admin, require_tenant_member
from boom_booking.routers.auth import build_token_response
from boom_booking.schemas.tenant import (
    SubscriptionUsageRead,
    TenantRead,
    TenantRegisterPayload,
    TenantRegisterResponse,
    TenantUpdatePayload,
)
from boom_booking.services import tenants as tenant_service
from boom_booking.services.auth import Claims, create_access_token
from boom_booking.services.auth_service import LoginResult
from boom_booking.services.tenants import TenantRegistration

router = APIRouter(prefix="/api/tenants", tags=["tenants"])


@router.post("/register", response_model=TenantRegisterResponse, status_code=201)
def register_tenant(payload: TenantRegisterPayload, db: Session = Depends(get_db)):
    tenant, admin = tenant_service.register_tenant(db, TenantRegistration(**payload.model_dump()))
    token = create_access_token(admin.id, tenant_id=tenant.id, role=admin.role)
    response = build_token_response(LoginResult(token=token, user=admin, tenant=tenant))
    return TenantRegisterResponse(**response.model_dump())


@router.get("/current", response_model=TenantRead)
def get_current_tenant(claims: Claims = Depends(require_tenant_member), db: Session = Depends(get_db)):
    return tenant_service.get_tenant(db, claims.tenant_id)


@router.put("/current", response_model=TenantRead)
def update_current_tenant(
    payload: TenantUpdatePayload,
    claims: Claims = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return tenant_service.update_tenant(db, claims.tenant_id, payload.model_dump(exclude_unset=True))


@router.get("/current/usage", response_model=SubscriptionUsageRead)
def get_current_usage(claims: Claims = Depends(require_tenant_admin), db: Session = Depends(get_db)):
    usage = tenant_service.subscription_usage(db, claims.tenant_id)
    return SubscriptionUsageRead(
        tenant_id=usage.tenant_id,
        plan=usage.plan,
        rooms={**asdict(usage.rooms), "remaining": usage.rooms.remaining},
        bookings_this_month={
            **asdict(usage.bookings_this_month),
            "remaining": usage.bookings_this_month.remaining,
        },
    )
