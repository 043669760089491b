from __future__ import annotations

from typing import Optional

from sqlalchemy import func, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from boom_booking.core.errors import InvalidInput
from boom_booking.models import User
from boom_booking.models.user import ROLE_SUPER_ADMIN, USER_ROLES
from boom_booking.services.passwords import hash_password


def ensure_users_table(engine: Engine) -> None:
    inspector = inspect(engine)
    if not inspector.has_table("users"):
        raise RuntimeError("Tabela users não encontrada. Rode `alembic upgrade head` primeiro.")


def upsert_user(
    db: Session,
    *,
    tenant_id: Optional[int],
    email: str,
    name: str,
    role: str,
    password: str | None,
) -> tuple[User, bool]:
    role = (role or "").strip().lower()
    if role not in USER_ROLES:
        raise InvalidInput(f"Unknown role '{role}'")
    if (role == ROLE_SUPER_ADMIN) != (tenant_id is None):
        raise InvalidInput("super_admin users have no tenant; every other role needs one")

    email = email.strip().lower()
    query = db.query(User).filter(func.lower(User.email) == email)
    if tenant_id is None:
        query = query.filter(User.tenant_id.is_(None))
    else:
        query = query.filter(User.tenant_id == tenant_id)
    existing = query.first()

    if existing:
        existing.name = name
        existing.role = role
        existing.is_active = True
        if password:
            existing.password_hash = hash_password(password)
        db.commit()
        db.refresh(existing)
        return existing, False

    if not password:
        raise InvalidInput("Senha é obrigatória para criar um novo usuário.")

    user = User(
        tenant_id=tenant_id,
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True


def upsert_super_admin(db: Session, *, email: str, name: str, password: str | None) -> tuple[User, bool]:
    return upsert_user(db, tenant_id=None, email=email, name=name, role=ROLE_SUPER_ADMIN, password=password)
