# boom_booking/deps.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from boom_booking.core.database import get_db
from boom_booking.core.errors import Forbidden, InvalidToken, Unauthorized
from boom_booking.core.request_context import set_request_context
from boom_booking.models import Tenant, User
from boom_booking.models.user import ROLE_ADMIN, ROLE_STAFF, ROLE_SUPER_ADMIN, ROLE_USER
from boom_booking.services.auth import Claims, decode_access_token

# Swagger "Authorize" usa o endpoint de login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)

logger = logging.getLogger(__name__)

TENANT_ROLES = (ROLE_ADMIN, ROLE_STAFF, ROLE_USER)
BOOKING_MANAGERS = (ROLE_ADMIN, ROLE_STAFF)


def resolve_claims(db: Session, token: Optional[str]) -> tuple[Claims, User]:
    """Verify the token and check that its user and tenant are still active."""
    if not token:
        raise Unauthorized()

    claims = decode_access_token(token)

    user = db.query(User).filter(User.id == claims.user_id).first()
    if not user or not user.is_active:
        raise InvalidToken("User is inactive or no longer exists")
    if user.tenant_id != claims.tenant_id or (user.role or "").lower() != claims.role:
        raise InvalidToken("Token no longer matches the account")

    if claims.tenant_id is not None:
        tenant = db.query(Tenant.is_active).filter(Tenant.id == claims.tenant_id).first()
        if tenant is None or not tenant.is_active:
            raise InvalidToken("Tenant is inactive")

    return claims, user


def get_claims(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Claims:
    claims, user = resolve_claims(db, token)
    request.state.claims = claims
    request.state.user = user
    set_request_context(tenant_id=claims.tenant_id, user_id=claims.user_id)
    return claims


def get_current_user(request: Request, _: Claims = Depends(get_claims)) -> User:
    return request.state.user


def log_access_denied(*, reason: str, claims: Claims, request: Request) -> None:
    endpoint = f"{request.method} {request.url.path}"
    logger.warning(
        "Access denied (%s): user_id=%s user_role=%s tenant_id=%s endpoint=%s",
        reason,
        claims.user_id,
        claims.role,
        claims.tenant_id,
        endpoint,
    )


def require_role(roles: Iterable[str]):
    allowed = {role.strip().lower() for role in roles}

    def _dependency(request: Request, claims: Claims = Depends(get_claims)) -> Claims:
        if claims.role not in allowed:
            log_access_denied(reason="role_denied", claims=claims, request=request)
            raise Forbidden()
        if claims.role != ROLE_SUPER_ADMIN and claims.tenant_id is None:
            log_access_denied(reason="missing_tenant", claims=claims, request=request)
            raise Forbidden("Tenant-scoped account required")
        return claims

    return _dependency


require_tenant_member = require_role(TENANT_ROLES)
require_booking_manager = require_role(BOOKING_MANAGERS)
require_tenant_admin = require_role((ROLE_ADMIN,))
require_super_admin = require_role((ROLE_SUPER_ADMIN,))
