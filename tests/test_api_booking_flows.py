from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from boom_booking.core.database import get_db
from boom_booking.models import Tenant
from boom_booking.routers import realtime as realtime_router
from tests.fixtures_data import (
    DEFAULT_PASSWORD,
    SECOND_TENANT_REGISTRATION_PAYLOAD,
    TENANT_REGISTRATION_PAYLOAD,
    build_session_factory,
    seed_user,
    utc,
)


@pytest.fixture
def api(monkeypatch):
    from boom_booking import main

    session_factory = build_session_factory()
    monkeypatch.setattr(main, "_startup_tasks", lambda: None)
    monkeypatch.setattr(realtime_router, "SessionLocal", session_factory)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    main.app.dependency_overrides[get_db] = override_get_db
    with TestClient(main.app) as client:
        yield client, session_factory
    main.app.dependency_overrides.clear()


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _register(client, payload=TENANT_REGISTRATION_PAYLOAD) -> dict:
    response = client.post("/api/tenants/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _login(client, email: str, tenant_slug: str | None = None) -> str:
    body = {"email": email, "password": DEFAULT_PASSWORD}
    if tenant_slug:
        body["tenant_slug"] = tenant_slug
    response = client.post("/api/auth/login", json=body)
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def _seed_member(session_factory, tenant_id: int, email: str, role: str) -> None:
    db = session_factory()
    try:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
        seed_user(db, tenant, email=email, role=role)
    finally:
        db.close()


def _booking_body(room_id: int, start: datetime, end: datetime, **extra) -> dict:
    return {
        "room_id": room_id,
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "customer_name": "Ana Singer",
        "customer_email": "ana@example.com",
        **extra,
    }


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _main_room_id(client, token: str) -> int:
    response = client.get("/api/rooms", headers=_auth(token))
    assert response.status_code == 200
    return response.json()[0]["id"]


def test_register_login_and_me(api):
    client, _ = api

    registered = _register(client)
    assert registered["token_type"] == "bearer"
    assert registered["expires_in"] == 24 * 60 * 60
    assert registered["user"]["role"] == "admin"
    assert registered["tenant"]["slug"] == "boom-nyc"

    token = _login(client, TENANT_REGISTRATION_PAYLOAD["email"])
    me = client.get("/api/auth/me", headers=_auth(token))

    assert me.status_code == 200
    assert me.json()["user"]["email"] == TENANT_REGISTRATION_PAYLOAD["email"]
    assert me.json()["tenant"]["id"] == registered["tenant"]["id"]
    assert "password_hash" not in me.json()["user"]


def test_registration_conflict_returns_409(api):
    client, _ = api
    _register(client)

    response = client.post("/api/tenants/register", json=TENANT_REGISTRATION_PAYLOAD)

    assert response.status_code == 409
    assert response.json()["code"] == "already_exists"


def test_login_with_wrong_password_is_401(api):
    client, _ = api
    _register(client)

    response = client.post(
        "/api/auth/login",
        json={"email": TENANT_REGISTRATION_PAYLOAD["email"], "password": "nope-nope"},
    )

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid credentials", "code": "invalid_credentials"}


def test_booking_scenario_with_overlap_adjacent_and_other_tenant(api):
    client, _ = api
    token = _register(client)["access_token"]
    other_token = _register(client, SECOND_TENANT_REGISTRATION_PAYLOAD)["access_token"]
    room_id = _main_room_id(client, token)

    first = client.post("/api/bookings", json=_booking_body(room_id, utc(14), utc(15)), headers=_auth(token))
    assert first.status_code == 201, first.text
    created = first.json()
    assert created["status"] == "confirmed"
    assert created["room_name"] == "Main Room"
    assert created["total_price"] == "25.00"
    assert _parse(created["start_time"]) == utc(14)

    overlap = client.post("/api/bookings", json=_booking_body(room_id, utc(14, 30), utc(15, 30)), headers=_auth(token))
    assert overlap.status_code == 409
    assert overlap.json()["code"] == "conflict"
    assert overlap.json()["conflicting_booking_id"] == created["id"]

    adjacent = client.post("/api/bookings", json=_booking_body(room_id, utc(15), utc(16)), headers=_auth(token))
    assert adjacent.status_code == 201

    foreign = client.post("/api/bookings", json=_booking_body(room_id, utc(14), utc(15)), headers=_auth(other_token))
    assert foreign.status_code == 404
    assert foreign.json()["code"] == "not_found"

    assert client.get(f"/api/bookings/{created['id']}", headers=_auth(other_token)).status_code == 404
    assert client.get("/api/bookings", headers=_auth(other_token)).json() == []
    assert len(client.get("/api/bookings", headers=_auth(token)).json()) == 2


def test_tenant_id_in_body_is_ignored(api):
    client, _ = api
    token = _register(client)["access_token"]
    other = _register(client, SECOND_TENANT_REGISTRATION_PAYLOAD)
    room_id = _main_room_id(client, token)

    response = client.post(
        "/api/bookings",
        json=_booking_body(room_id, utc(14), utc(15), tenant_id=other["tenant"]["id"]),
        headers=_auth(token),
    )

    assert response.status_code == 201
    assert response.json()["tenant_id"] != other["tenant"]["id"]


def test_invalid_interval_and_validation_errors(api):
    client, _ = api
    token = _register(client)["access_token"]
    room_id = _main_room_id(client, token)

    reversed_interval = client.post("/api/bookings", json=_booking_body(room_id, utc(15), utc(14)), headers=_auth(token))
    missing_fields = client.post("/api/bookings", json={"room_id": room_id}, headers=_auth(token))

    assert reversed_interval.status_code == 400
    assert reversed_interval.json()["code"] == "invalid_interval"
    assert missing_fields.status_code == 422


def test_business_hours_and_admin_override(api):
    client, session_factory = api
    registered = _register(client)
    token = registered["access_token"]
    _seed_member(session_factory, registered["tenant"]["id"], "guest@example.com", "user")
    user_token = _login(client, "guest@example.com")
    room_id = _main_room_id(client, token)

    late = _booking_body(room_id, utc(3), utc(4))
    out_of_hours = client.post("/api/bookings", json=late, headers=_auth(token))
    user_override = client.post("/api/bookings", json={**late, "override_hours": True}, headers=_auth(user_token))
    admin_override = client.post("/api/bookings", json={**late, "override_hours": True}, headers=_auth(token))

    assert out_of_hours.status_code == 400
    assert out_of_hours.json()["code"] == "out_of_hours"
    assert user_override.status_code == 403
    assert admin_override.status_code == 201


def test_role_matrix_for_bookings_and_rooms(api):
    client, session_factory = api
    registered = _register(client)
    token = registered["access_token"]
    tenant_id = registered["tenant"]["id"]
    _seed_member(session_factory, tenant_id, "staff@example.com", "staff")
    _seed_member(session_factory, tenant_id, "guest@example.com", "user")
    staff_token = _login(client, "staff@example.com")
    user_token = _login(client, "guest@example.com")
    room_id = _main_room_id(client, token)

    booking = client.post("/api/bookings", json=_booking_body(room_id, utc(14), utc(15)), headers=_auth(user_token))
    assert booking.status_code == 201
    booking_id = booking.json()["id"]

    assert client.put(f"/api/bookings/{booking_id}/cancel", headers=_auth(user_token)).status_code == 403
    assert client.post("/api/rooms", json={"name": "X", "capacity": 2, "category": "VIP", "price_per_hour": "10"}, headers=_auth(staff_token)).status_code == 403
    assert client.get("/api/rooms", headers=_auth(staff_token)).status_code == 200

    cancelled = client.put(f"/api/bookings/{booking_id}/cancel", headers=_auth(staff_token))
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = client.put(f"/api/bookings/{booking_id}/cancel", headers=_auth(staff_token))
    assert again.status_code == 400
    assert again.json()["code"] == "invalid_transition"


def test_move_update_and_availability_routes(api):
    client, _ = api
    token = _register(client)["access_token"]
    room_id = _main_room_id(client, token)
    booking_id = client.post(
        "/api/bookings",
        json=_booking_body(room_id, utc(14), utc(15)),
        headers=_auth(token),
    ).json()["id"]

    busy = client.get(
        "/api/bookings/availability",
        params={"room_id": room_id, "start_time": utc(14, 30).isoformat(), "end_time": utc(15, 30).isoformat()},
        headers=_auth(token),
    )
    assert busy.status_code == 200
    assert busy.json()["available"] is False
    assert [b["id"] for b in busy.json()["conflicts"]] == [booking_id]

    moved = client.put(
        f"/api/bookings/{booking_id}/move",
        json={"room_id": room_id, "start_time": utc(18).isoformat(), "end_time": utc(20).isoformat()},
        headers=_auth(token),
    )
    assert moved.status_code == 200
    assert _parse(moved.json()["end_time"]) == utc(20)
    assert moved.json()["total_price"] == "50.00"

    updated = client.put(f"/api/bookings/{booking_id}", json={"notes": "mic check"}, headers=_auth(token))
    assert updated.status_code == 200
    assert updated.json()["notes"] == "mic check"

    free = client.get(
        "/api/bookings/availability",
        params={"room_id": room_id, "start_time": utc(14).isoformat(), "end_time": utc(15).isoformat()},
        headers=_auth(token),
    )
    assert free.json()["available"] is True


def test_complete_elapsed_route(api):
    client, _ = api
    token = _register(client)["access_token"]

    response = client.post("/api/bookings/complete-elapsed", headers=_auth(token))

    assert response.status_code == 200
    assert response.json() == {"completed": 0}


def test_room_quota_and_usage(api):
    client, _ = api
    token = _register(client)["access_token"]

    response = client.post(
        "/api/rooms",
        json={"name": "VIP Room", "capacity": 10, "category": "VIP", "price_per_hour": "60.00"},
        headers=_auth(token),
    )
    usage = client.get("/api/tenants/current/usage", headers=_auth(token))

    assert response.status_code == 403
    assert response.json()["code"] == "quota_exceeded"
    assert usage.json()["rooms"] == {"current": 1, "limit": 1, "remaining": 0}


def test_business_hours_routes(api):
    client, session_factory = api
    registered = _register(client)
    token = registered["access_token"]
    _seed_member(session_factory, registered["tenant"]["id"], "staff@example.com", "staff")
    staff_token = _login(client, "staff@example.com")

    hours = client.get("/api/business-hours", headers=_auth(staff_token))
    assert hours.status_code == 200
    assert [h["day_name"] for h in hours.json()][:2] == ["Sunday", "Monday"]

    body = {"hours": [{"day_of_week": 0, "is_closed": True}]}
    assert client.put("/api/business-hours", json=body, headers=_auth(staff_token)).status_code == 403

    replaced = client.put("/api/business-hours", json=body, headers=_auth(token))
    assert replaced.status_code == 200
    assert replaced.json()[0]["is_closed"] is True


def test_unauthenticated_and_bad_tokens(api):
    client, _ = api

    missing = client.get("/api/bookings")
    garbage = client.get("/api/bookings", headers=_auth("not-a-jwt"))

    assert missing.status_code == 401
    assert missing.headers["WWW-Authenticate"] == "Bearer"
    assert missing.json()["code"] == "unauthorized"
    assert garbage.status_code == 401
    assert garbage.json()["code"] == "invalid_token"


def test_super_admin_deactivation_revokes_tenant_tokens(api):
    client, session_factory = api
    registered = _register(client)
    token = registered["access_token"]
    db = session_factory()
    seed_user(db, None, email="root@example.com", role="super_admin")
    db.close()
    root_token = _login(client, "root@example.com")

    assert client.get("/api/admin/tenants", headers=_auth(token)).status_code == 403
    assert client.get("/api/rooms", headers=_auth(root_token)).status_code == 403

    listed = client.get("/api/admin/tenants", headers=_auth(root_token))
    assert [t["slug"] for t in listed.json()] == ["boom-nyc"]

    deactivated = client.put(
        f"/api/admin/tenants/{registered['tenant']['id']}/active",
        json={"is_active": False},
        headers=_auth(root_token),
    )
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    rejected = client.get("/api/rooms", headers=_auth(token))
    assert rejected.status_code == 401
    assert rejected.json()["code"] == "invalid_token"


def test_update_current_tenant(api):
    client, _ = api
    token = _register(client)["access_token"]

    response = client.put("/api/tenants/current", json={"name": "Boom Midtown"}, headers=_auth(token))

    assert response.status_code == 200
    assert response.json()["name"] == "Boom Midtown"
    assert client.get("/api/tenants/current", headers=_auth(token)).json()["name"] == "Boom Midtown"


def test_request_id_header_is_echoed(api):
    client, _ = api

    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["X-Request-ID"] == "req-123"


def test_internal_metrics_visible_to_super_admin_only(api):
    client, session_factory = api
    token = _register(client)["access_token"]
    db = session_factory()
    seed_user(db, None, email="root@example.com", role="super_admin")
    db.close()
    root_token = _login(client, "root@example.com")
    room_id = _main_room_id(client, token)
    client.post("/api/bookings", json=_booking_body(room_id, utc(14), utc(15)), headers=_auth(token))

    assert client.get("/internal/metrics", headers=_auth(token)).status_code == 403

    response = client.get("/internal/metrics", headers=_auth(root_token))
    assert response.status_code == 200
    body = response.json()
    assert body["booking_events"]["booking.created"] >= 1
    assert "websocket_connections" in body
    assert body["endpoints"]["POST /api/bookings"]["total_requests"] >= 1

    tenants = client.get("/internal/metrics/tenants", headers=_auth(root_token))
    assert tenants.status_code == 200
    assert "tenants" in tenants.json()
