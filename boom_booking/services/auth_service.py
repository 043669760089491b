from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from boom_booking.core.errors import InvalidCredentials
from boom_booking.models import Tenant, User
from boom_booking.models.user import ROLE_SUPER_ADMIN
from boom_booking.services.auth import Claims, create_access_token, decode_access_token
from boom_booking.services.passwords import verify_password
from boom_booking.utils.slug import normalize_slug

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User
    tenant: Optional[Tenant]


def _active_users_by_email(db: Session, email: str):
    return (
        db.query(User)
        .outerjoin(Tenant, Tenant.id == User.tenant_id)
        .filter(
            func.lower(User.email) == email,
            User.is_active.is_(True),
            or_(
                Tenant.is_active.is_(True),
                and_(User.tenant_id.is_(None), User.role == ROLE_SUPER_ADMIN),
            ),
        )
    )


def resolve_login_user(db: Session, email: str, password: str, tenant_slug: str | None = None) -> User | None:
    """Pick the single active account the credentials belong to.

    Sem slug, a senha precisa bater com exatamente um usuário ativo com esse email.
    """
    normalized_email = (email or "").strip().lower()
    if not normalized_email or not password:
        return None

    query = _active_users_by_email(db, normalized_email)
    if tenant_slug:
        slug = normalize_slug(tenant_slug)
        if not slug:
            return None
        query = query.filter(Tenant.slug == slug)

    matched = [user for user in query.all() if verify_password(password, user.password_hash)]
    if len(matched) != 1:
        return None
    return matched[0]


def login(db: Session, *, email: str, password: str, tenant_slug: str | None = None) -> LoginResult:
    user = resolve_login_user(db, email, password, tenant_slug)
    if user is None:
        logger.warning("login failed tenant_slug=%s", tenant_slug or "-")
        raise InvalidCredentials()

    try:
        user.last_login = datetime.now(timezone.utc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)

    token = create_access_token(user.id, tenant_id=user.tenant_id, role=user.role)
    logger.info("login succeeded", extra={"tenant_id": user.tenant_id, "user_id": user.id})
    return LoginResult(token=token, user=user, tenant=user.tenant)


def verify(token: str) -> Claims:
    return decode_access_token(token)
