from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Response, Request, status
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import logging
import os
import time
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from . import models, pubsub
from .auth import decode_token_subject
from .database import SessionLocal
from .ratelimit import limiter, testing
from .routes import (
    auth,
    users,
    teams,
    brands,
    briefs,
    tasks,
    deliverables,
    comments,
    attachments,
    time_tracking,
    notifications,
    activity,
    jsr,
    messages,
    templates,
    search,
    analytics,
)

logger = logging.getLogger(__name__)

dsn = os.getenv("SENTRY_DSN")
if dsn:
    sentry_sdk.init(dsn=dsn, integrations=[FastApiIntegration()])

REQUEST_COUNT = Counter("request_count", "Total requests", ["method", "endpoint"])
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Request latency", ["endpoint"]
)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

app = FastAPI(title="Orchestrator API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, lambda r, e: Response("Too Many Requests", status_code=429))
if not testing:
    app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    endpoint = request.url.path
    REQUEST_COUNT.labels(request.method, endpoint).inc()
    REQUEST_LATENCY.labels(endpoint).observe(time.time() - start)
    return response

@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(teams.router)
app.include_router(brands.router)
app.include_router(briefs.router)
app.include_router(tasks.router)
app.include_router(deliverables.router)
app.include_router(comments.router)
app.include_router(attachments.router)
app.include_router(time_tracking.router)
app.include_router(notifications.router)
app.include_router(activity.router)
app.include_router(jsr.router)
app.include_router(messages.router)
app.include_router(templates.router)
app.include_router(search.router)
app.include_router(analytics.router)


def audit_routes():
    from fastapi.routing import APIRoute
    from .auth import get_current_user

    public_paths = {
        "/api/auth/login",
        "/api/auth/register",
        "/api/users/invites/{token}",
        "/api/jsr/public/{token}",
        "/api/jsr/public/{token}/tasks",
        "/metrics",
    }
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api") and route.path not in public_paths:
            calls = [dep.call for dep in route.dependant.dependencies]
            if get_current_user not in calls:
                raise RuntimeError(f"Route {route.path} missing authentication")


audit_routes()


def _websocket_user_id(token: str | None) -> str | None:
    email = decode_token_subject(token) if token else None
    if email is None:
        return None
    db = SessionLocal()
    try:
        user = db.query(models.User).filter(models.User.email == email).first()
        return str(user.id) if user else None
    finally:
        db.close()


@app.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: str | None = None):
    user_id = _websocket_user_id(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()
    try:
        async for data in pubsub.iter_user_events(user_id):
            await websocket.send_text(data)
    except WebSocketDisconnect:
        logger.debug("notification socket closed for user %s", user_id)
