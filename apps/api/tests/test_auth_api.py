from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from onebase.auth.models import Session as UserSession
from onebase.auth.repository import OrganizationRepository, SessionRepository
from onebase.auth.schemas import UserRead
from onebase.auth.service import AuthService, auth_service, hash_password, verify_password
from onebase.core.database import Base, get_db, unit_of_work
from onebase.main import app


PASSWORD = "s3cret-pass"


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def user(db_session: Session) -> UserRead:
    with unit_of_work(db_session):
        org_id = OrganizationRepository().add(db_session, "Demo Org").id
    return auth_service.create_user(
        db_session,
        org_id=org_id,
        email="Admin@Demo.com",
        password=PASSWORD,
        role="admin",
        bcrypt_rounds=4,
    )


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _session_count(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(UserSession)) or 0


def test_password_hashing() -> None:
    hashed = hash_password(PASSWORD, rounds=4)

    assert hashed != PASSWORD
    assert verify_password(PASSWORD, hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password(PASSWORD, "not-a-bcrypt-hash")


def test_login_sets_session_cookie(client: TestClient, db_session: Session, user: UserRead) -> None:
    response = client.post("/api/v1/auth/login", json={"email": "admin@demo.com", "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()["data"]["user"]
    assert body["email"] == "admin@demo.com"
    assert body["role"] == "admin"
    assert body["orgId"] == str(user.org_id)
    assert "passwordHash" not in body

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("session_token=")
    assert "HttpOnly" in cookie
    assert "samesite=lax" in cookie.lower()
    assert "Max-Age=2592000" in cookie
    assert len(client.cookies.get("session_token") or "") == 64
    assert _session_count(db_session) == 1


def test_me_and_logout(client: TestClient, db_session: Session, user: UserRead) -> None:
    client.post("/api/v1/auth/login", json={"email": "admin@demo.com", "password": PASSWORD})

    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.json()["data"]["user"]["id"] == str(user.id)

    accounts = client.get("/api/v1/accounts")
    assert accounts.status_code == 200
    assert accounts.json() == {"data": []}

    logout = client.post("/api/v1/auth/logout")
    assert logout.status_code == 200
    assert logout.json() == {"data": {"success": True}}
    assert _session_count(db_session) == 0

    client.cookies.clear()
    after = client.get("/api/v1/auth/me")
    assert after.status_code == 401
    assert after.json()["error"] == {"code": "AUTH_REQUIRED", "message": "Authentication required"}


def test_logout_without_session_is_harmless(client: TestClient) -> None:
    response = client.post("/api/v1/auth/logout")

    assert response.status_code == 200
    assert response.json()["data"]["success"] is True


def test_login_rejects_bad_credentials(client: TestClient, db_session: Session, user: UserRead) -> None:
    wrong_password = client.post("/api/v1/auth/login", json={"email": "admin@demo.com", "password": "nope"})
    assert wrong_password.status_code == 401
    assert wrong_password.json()["error"]["code"] == "AUTH_INVALID"

    unknown_user = client.post("/api/v1/auth/login", json={"email": "ghost@demo.com", "password": PASSWORD})
    assert unknown_user.status_code == 401
    assert unknown_user.json()["error"]["message"] == wrong_password.json()["error"]["message"]

    assert client.post("/api/v1/auth/login", json={"email": "not-an-email", "password": PASSWORD}).status_code == 400
    assert client.post("/api/v1/auth/login", json={"email": "admin@demo.com", "password": ""}).status_code == 400
    assert _session_count(db_session) == 0


def test_unknown_token_is_rejected(client: TestClient, user: UserRead) -> None:
    client.cookies.set("session_token", "0" * 64)

    response = client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired session"


def test_expired_session_is_rejected_and_removed(client: TestClient, db_session: Session, user: UserRead) -> None:
    token = "e" * 64
    with unit_of_work(db_session):
        SessionRepository().add(
            db_session,
            user_id=user.id,
            token=token,
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
    client.cookies.set("session_token", token)

    response = client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_REQUIRED"
    assert _session_count(db_session) == 0


def test_purge_expired_sessions(db_session: Session, user: UserRead) -> None:
    now = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
    service = AuthService(clock=lambda: now)
    with unit_of_work(db_session):
        SessionRepository().add(db_session, user_id=user.id, token="a" * 64, expires_at=now - timedelta(days=1))
        SessionRepository().add(db_session, user_id=user.id, token="b" * 64, expires_at=now + timedelta(days=1))

    assert service.purge_expired_sessions(db_session) == 1
    assert service.resolve_user(db_session, "a" * 64) is None
    resolved = service.resolve_user(db_session, "b" * 64)
    assert resolved is not None
    assert resolved.id == user.id
