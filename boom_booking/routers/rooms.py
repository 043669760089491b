from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from boom_booking.core.database import get_db
from boom_booking.deps import require_tenant_admin, require_tenant_member
from boom_booking.models.user import ROLE_USER
from boom_booking.schemas.room import RoomCreate, RoomRead, RoomUpdate
from boom_booking.services import rooms as room_service
from boom_booking.services.auth import Claims

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@router.get("", response_model=List[RoomRead])
def list_rooms(
    category: Optional[str] = None,
    include_inactive: bool = False,
    claims: Claims = Depends(require_tenant_member),
    db: Session = Depends(get_db),
):
    # clientes finais só enxergam salas ativas
    active_only = not include_inactive or claims.role == ROLE_USER
    return room_service.list_rooms(db, claims.tenant_id, active_only=active_only, category=category)


@router.get("/{room_id}", response_model=RoomRead)
def get_room(room_id: int, claims: Claims = Depends(require_tenant_member), db: Session = Depends(get_db)):
    return room_service.get_room(db, claims.tenant_id, room_id)


@router.post("", response_model=RoomRead, status_code=201)
def create_room(payload: RoomCreate, claims: Claims = Depends(require_tenant_admin), db: Session = Depends(get_db)):
    return room_service.create_room(db, claims.tenant_id, **payload.model_dump())


@router.put("/{room_id}", response_model=RoomRead)
def update_room(
    room_id: int,
    payload: RoomUpdate,
    claims: Claims = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return room_service.update_room(db, claims.tenant_id, room_id, payload.model_dump(exclude_unset=True))


@router.delete("/{room_id}", response_model=RoomRead)
def deactivate_room(room_id: int, claims: Claims = Depends(require_tenant_admin), db: Session = Depends(get_db)):
    return room_service.deactivate_room(db, claims.tenant_id, room_id)
