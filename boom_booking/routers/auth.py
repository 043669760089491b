# boom_booking/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from boom_booking.core.config import JWT_EXPIRE_MINUTES
from boom_booking.core.database import get_db
from boom_booking.deps import get_claims, get_current_user
from boom_booking.models import User
from boom_booking.schemas.auth import LoginPayload, MeResponse, TenantSummary, TokenResponse, UserRead
from boom_booking.services import auth_service
from boom_booking.services.auth import Claims
from boom_booking.services.auth_service import LoginResult

router = APIRouter(prefix="/api/auth", tags=["auth"])


def build_token_response(result: LoginResult) -> TokenResponse:
    return TokenResponse(
        access_token=result.token,
        expires_in=JWT_EXPIRE_MINUTES * 60,
        user=UserRead.model_validate(result.user),
        tenant=TenantSummary.model_validate(result.tenant) if result.tenant is not None else None,
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginPayload, db: Session = Depends(get_db)):
    result = auth_service.login(
        db,
        email=payload.email,
        password=payload.password,
        tenant_slug=payload.tenant_slug,
    )
    return build_token_response(result)


@router.post("/token", response_model=TokenResponse)
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Endpoint usado pelo botão Authorize do Swagger UI (form-data username/password)."""
    result = auth_service.login(db, email=form_data.username, password=form_data.password)
    return build_token_response(result)


@router.get("/me", response_model=MeResponse)
def me(
    claims: Claims = Depends(get_claims),
    user: User = Depends(get_current_user),
):
    return MeResponse(
        user=UserRead.model_validate(user),
        tenant=TenantSummary.model_validate(user.tenant) if user.tenant is not None else None,
        expires_at=claims.expires_at,
    )
