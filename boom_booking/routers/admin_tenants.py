from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from boom_booking.core.database import get_db
from boom_booking.deps import require_super_admin
from boom_booking.schemas.tenant import TenantActivePayload, TenantRead
from boom_booking.services import tenants as tenant_service
from boom_booking.services.auth import Claims

router = APIRouter(prefix="/api/admin/tenants", tags=["admin-tenants"])


@router.get("", response_model=List[TenantRead])
def list_tenants(
    include_inactive: bool = True,
    _claims: Claims = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return tenant_service.list_tenants(db, include_inactive=include_inactive)


@router.put("/{tenant_id}/active", response_model=TenantRead)
def set_tenant_active(
    tenant_id: int,
    payload: TenantActivePayload,
    _claims: Claims = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return tenant_service.set_tenant_active(db, tenant_id, payload.is_active)
