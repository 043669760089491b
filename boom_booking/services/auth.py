from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from boom_booking.core.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_SECRET_KEY
from boom_booking.core.errors import InvalidToken, TokenExpired


@dataclass(frozen=True)
class Claims:
    user_id: int
    tenant_id: Optional[int]
    role: str
    expires_at: datetime


def _secret() -> str:
    if not JWT_SECRET_KEY:
        raise RuntimeError("JWT_SECRET_KEY não configurado.")
    return JWT_SECRET_KEY


def create_access_token(
    user_id: int,
    *,
    tenant_id: Optional[int],
    role: str,
    expires_minutes: int = JWT_EXPIRE_MINUTES,
    now: Optional[datetime] = None,
) -> str:
    """
    "sub" precisa ser STRING (senão dá 'Subject must be a string').
    """
    issued_at = now or datetime.now(timezone.utc)
    exp = issued_at + timedelta(minutes=expires_minutes)

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "tenant_id": tenant_id,
        "role": role,
        "iat": int(issued_at.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Claims:
    """Verify signature and expiry and return the claims, or raise InvalidToken/TokenExpired."""
    try:
        payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except JWTError as exc:
        raise InvalidToken() from exc

    raw_sub = str(payload.get("sub") or "").strip()
    if not raw_sub.isdigit():
        raise InvalidToken("Invalid token (missing subject)")

    role = str(payload.get("role") or "").strip().lower()
    if not role:
        raise InvalidToken("Invalid token (missing role)")

    raw_tenant = payload.get("tenant_id")
    try:
        tenant_id = int(raw_tenant) if raw_tenant is not None else None
    except (TypeError, ValueError) as exc:
        raise InvalidToken("Invalid token (bad tenant)") from exc

    return Claims(
        user_id=int(raw_sub),
        tenant_id=tenant_id,
        role=role,
        expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
    )
