"""Pytest fixtures: a throwaway SQLite database for fast, isolated tests."""
import uuid
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from campusconnect.config import settings
from campusconnect.database import Base, get_db
from campusconnect.main import app
from campusconnect.services import auth_service

# Import all models so they register with Base.metadata
from campusconnect.models.user import User                                # noqa: F401
from campusconnect.models.organization import Club, Department            # noqa: F401
from campusconnect.models.clearance_request import ClearanceRequest       # noqa: F401
from campusconnect.models.conversation import Conversation, ConversationParticipant  # noqa: F401
from campusconnect.models.message import Message                          # noqa: F401

SQLITE_URL = "sqlite:///./test.db"

DEFAULT_PASSWORD = "correct-horse-battery"
ROOT_ADMIN = {"email": "root-admin@campus.edu", "full_name": "Root Admin"}


@pytest.fixture(autouse=True)
def _fast_settings(monkeypatch):
    """Cheap password hashing, no real AI calls, and short retry backoff."""
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_EMAIL", "")
    monkeypatch.setattr(settings, "CLEARANCE_RETRY_BACKOFF_SECONDS", 0.0)


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session, closed after the test."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite.

    The database starts with one SSG admin (``ROOT_ADMIN``), the way a
    deployment is seeded from the bootstrap settings.
    """
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    seed = TestingSession()
    try:
        auth_service.ensure_bootstrap_admin(seed, ROOT_ADMIN["email"], DEFAULT_PASSWORD, ROOT_ADMIN["full_name"])
    finally:
        seed.close()

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create records via the API, return the JSON response dict
# ---------------------------------------------------------------------------
def root_headers(client: TestClient) -> dict:
    """Helper: auth headers for the seeded SSG admin."""
    return auth_headers(client, ROOT_ADMIN)


def create_test_user(
    client: TestClient,
    name: str = "Test User",
    role: str = "student",
    department_id: str | None = None,
    club_id: str | None = None,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    headers: dict | None = None,
) -> dict:
    """Helper: POST /api/users and return response JSON.

    Students self-register; other roles are created by the seeded SSG admin
    unless ``headers`` says otherwise.
    """
    if headers is None and role != "student":
        headers = root_headers(client)
    resp = client.post("/api/users/", json={
        "email": email or f"{uuid.uuid4().hex[:10]}@campus.edu",
        "full_name": name,
        "password": password,
        "role": role,
        "department_id": department_id,
        "club_id": club_id,
    }, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def login(client: TestClient, user: dict, password: str = DEFAULT_PASSWORD) -> str:
    """Helper: sign in and return the bearer token."""
    resp = client.post("/api/auth/login", json={"email": user["email"], "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client: TestClient, user: dict) -> dict:
    return {"Authorization": f"Bearer {login(client, user)}"}


def create_ssg_admin(client: TestClient, name: str = "SSG Admin") -> tuple[dict, dict]:
    """Helper: an SSG admin and their auth headers."""
    admin = create_test_user(client, name=name, role="ssg_admin")
    return admin, auth_headers(client, admin)


def create_department(client: TestClient, headers: dict, name: str = "Computer Science") -> dict:
    """Helper: POST /api/departments as an SSG admin."""
    resp = client.post("/api/departments/", json={"name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_club(client: TestClient, headers: dict, name: str = "Robotics Club", department_id: str | None = None) -> dict:
    """Helper: POST /api/clubs as an SSG admin."""
    resp = client.post("/api/clubs/", json={"name": name, "department_id": department_id}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
