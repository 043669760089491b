import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect


REQUIRED_ROUTES = {
    "/api/auth/login",
    "/api/auth/token",
    "/api/auth/me",
    "/api/tenants/register",
    "/api/tenants/current",
    "/api/tenants/current/usage",
    "/api/admin/tenants",
    "/api/admin/tenants/{tenant_id}/active",
    "/api/rooms",
    "/api/rooms/{room_id}",
    "/api/business-hours",
    "/api/bookings",
    "/api/bookings/availability",
    "/api/bookings/complete-elapsed",
    "/api/bookings/{booking_id}",
    "/api/bookings/{booking_id}/cancel",
    "/api/bookings/{booking_id}/move",
    "/internal/metrics",
    "/internal/metrics/tenants",
}


def test_api_startup_and_router_registration(monkeypatch):
    from boom_booking import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/")
        docs_response = client.get("/docs")
        openapi_response = client.get("/openapi.json")

        # rota websocket não aparece no openapi; sem token fecha com 1008
        with pytest.raises(WebSocketDisconnect) as ws_exc:
            with client.websocket_connect("/ws/bookings"):
                pass

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert docs_response.status_code == 200
    assert openapi_response.status_code == 200
    assert ws_exc.value.code == 1008

    paths = set(openapi_response.json()["paths"])
    assert REQUIRED_ROUTES.issubset(paths)
