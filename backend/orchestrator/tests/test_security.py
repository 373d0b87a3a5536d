import pytest
from fastapi.routing import APIRoute
from starlette.websockets import WebSocketDisconnect

from orchestrator.auth import get_current_user
from orchestrator.main import app, audit_routes

PUBLIC_PATHS = {
    "/api/auth/login",
    "/api/auth/register",
    "/api/users/invites/{token}",
    "/api/jsr/public/{token}",
    "/api/jsr/public/{token}/tasks",
}


def test_all_routes_protected():
    for route in app.routes:
        if not isinstance(route, APIRoute) or not route.path.startswith("/api"):
            continue
        if route.path in PUBLIC_PATHS:
            continue
        deps = [d.call for d in route.dependant.dependencies]
        assert get_current_user in deps, f"{route.path} missing authentication"
    audit_routes()


def test_requests_without_token_are_rejected(client):
    resp = client.get("/api/briefs/")
    assert resp.status_code == 401


def test_public_share_view_needs_no_token(client):
    resp = client.get("/api/jsr/public/unknown")
    assert resp.status_code == 200
    assert resp.json() is None


def test_metrics_endpoint(client):
    client.get("/api/jsr/public/unknown")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "request_count" in resp.text


def test_notification_socket_requires_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/notifications") as ws:
            ws.receive_text()
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/notifications?token=garbage") as ws:
            ws.receive_text()
