import os
os.environ["TESTING"] = "1"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
import pytest
from dataclasses import dataclass
from uuid import UUID, uuid4
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

import sys
from pathlib import Path
import shutil

sys.path.append(str(Path(__file__).resolve().parents[2]))

from orchestrator.main import app
from orchestrator.database import Base, get_db
from orchestrator import auth, models, notify, pubsub

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@dataclass
class Account:
    id: UUID
    email: str
    headers: dict


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    notify.EMAIL_OUTBOX.clear()
    yield


@pytest.fixture(autouse=True)
def upload_dir(tmp_path):
    d = tmp_path / "uploads"
    d.mkdir()
    os.environ["UPLOAD_DIR"] = str(d)
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def password_hash():
    return auth.get_password_hash("secret")


@pytest.fixture
def make_user(password_hash):
    """Insert a user with the given role and return an authenticated ``Account``."""

    def _make(role: str = "employee", name: str | None = None, email: str | None = None) -> Account:
        email = email or f"{role}-{uuid4().hex[:8]}@example.com"
        session = TestingSessionLocal()
        try:
            user = models.User(
                email=email,
                hashed_password=password_hash,
                name=name or role.title(),
                role=role,
            )
            session.add(user)
            session.commit()
            user_id = user.id
        finally:
            session.close()
        token = auth.create_access_token({"sub": email})
        return Account(id=user_id, email=email, headers={"Authorization": f"Bearer {token}"})

    return _make


@pytest.fixture
def published(monkeypatch):
    """Capture realtime events instead of sending them to redis."""
    events: list[tuple[str, dict]] = []

    async def fake_publish(user_id, event):
        events.append((user_id, event))

    monkeypatch.setattr(pubsub, "publish_user_event", fake_publish)
    return events


@pytest.fixture
def inbox():
    """Return a lookup of the notifications stored for a user, oldest first."""

    def _inbox(user_id: UUID) -> list[models.Notification]:
        session = TestingSessionLocal()
        try:
            return (
                session.query(models.Notification)
                .filter(models.Notification.recipient_id == user_id)
                .order_by(models.Notification.created_at)
                .all()
            )
        finally:
            session.close()

    return _inbox
