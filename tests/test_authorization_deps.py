from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from starlette.requests import Request

from boom_booking.core.errors import Forbidden, InvalidToken, Unauthorized
from boom_booking.deps import require_role, resolve_claims
from boom_booking.services.auth import create_access_token
from tests.fixtures_data import build_session_factory, seed_tenant, seed_user


def _build_request(path: str = "/api/resource", method: str = "GET") -> Request:
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [],
        "path_params": {},
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


def _claims(role: str, tenant_id: int | None = 1):
    return SimpleNamespace(
        user_id=12,
        tenant_id=tenant_id,
        role=role,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


def test_require_role_denies_role_outside_allowed_set():
    dependency = require_role(["admin"])

    with pytest.raises(Forbidden) as exc:
        dependency(request=_build_request(path="/api/rooms", method="POST"), claims=_claims("staff"))

    assert exc.value.status_code == 403
    assert exc.value.message == "Insufficient permissions"


def test_require_role_allows_listed_role():
    dependency = require_role(["admin", "staff"])
    claims = _claims("staff")

    assert dependency(request=_build_request(), claims=claims) is claims


def test_require_role_rejects_tenant_role_without_tenant():
    dependency = require_role(["admin"])

    with pytest.raises(Forbidden):
        dependency(request=_build_request(), claims=_claims("admin", tenant_id=None))


def test_super_admin_is_not_a_tenant_member():
    dependency = require_role(["admin", "staff", "user"])

    with pytest.raises(Forbidden):
        dependency(request=_build_request(), claims=_claims("super_admin", tenant_id=None))


def test_resolve_claims_requires_token():
    db = build_session_factory()()

    with pytest.raises(Unauthorized):
        resolve_claims(db, None)
    db.close()


def test_resolve_claims_rejects_inactive_user_and_tenant():
    db = build_session_factory()()
    tenant = seed_tenant(db, slug="boom-nyc")
    user = seed_user(db, tenant, email="admin@boom.example.com")
    token = create_access_token(user.id, tenant_id=tenant.id, role="admin")

    claims, resolved_user = resolve_claims(db, token)
    assert claims.tenant_id == tenant.id
    assert resolved_user.id == user.id

    tenant.is_active = False
    db.commit()
    with pytest.raises(InvalidToken):
        resolve_claims(db, token)

    tenant.is_active = True
    user.is_active = False
    db.commit()
    with pytest.raises(InvalidToken):
        resolve_claims(db, token)
    db.close()


def test_resolve_claims_rejects_token_for_other_tenant():
    db = build_session_factory()()
    tenant = seed_tenant(db, slug="boom-nyc")
    other = seed_tenant(db, slug="boom-la")
    user = seed_user(db, tenant, email="admin@boom.example.com")
    forged_scope = create_access_token(user.id, tenant_id=other.id, role="admin")

    with pytest.raises(InvalidToken):
        resolve_claims(db, forged_scope)
    db.close()
