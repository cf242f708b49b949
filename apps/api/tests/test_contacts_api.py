from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from onebase.auth.dependencies import CurrentUser, get_current_user
from onebase.auth.repository import OrganizationRepository, UserRepository
from onebase.core.database import Base, get_db, unit_of_work
from onebase.main import app


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


def _make_user(session: Session, org_name: str, email: str) -> CurrentUser:
    with unit_of_work(session):
        org = OrganizationRepository().add(session, org_name)
        user = UserRepository().add(session, org_id=org.id, email=email, password_hash="x", role="member")
        actor = CurrentUser(id=user.id, org_id=org.id, email=user.email, role=user.role)
    return actor


@pytest.fixture()
def actors(db_session: Session) -> dict[str, CurrentUser]:
    return {
        "a": _make_user(db_session, "Org A", "a@example.com"),
        "b": _make_user(db_session, "Org B", "b@example.com"),
    }


@pytest.fixture()
def acting_as(actors: dict[str, CurrentUser]) -> dict[str, CurrentUser]:
    return {"user": actors["a"]}


@pytest.fixture()
def client(db_session: Session, acting_as: dict[str, CurrentUser]) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_user() -> CurrentUser:
        return acting_as["user"]

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _account(client: TestClient, name: str) -> dict:
    response = client.post("/api/v1/accounts", json={"name": name})
    assert response.status_code == 201
    return response.json()["data"]


def test_contact_crud_and_account_filter(client: TestClient) -> None:
    acme = _account(client, "Acme Corp")
    globex = _account(client, "Globex")

    john = client.post(
        "/api/v1/contacts",
        json={
            "accountId": acme["id"],
            "firstName": "John",
            "lastName": "Smith",
            "email": "john.smith@acme.example.com",
            "title": "CEO",
        },
    )
    assert john.status_code == 201
    john_id = john.json()["data"]["id"]
    assert john.json()["data"]["firstName"] == "John"

    jane = client.post("/api/v1/contacts", json={"accountId": globex["id"], "firstName": "Jane", "lastName": "Doe"})
    assert jane.status_code == 201
    loner = client.post("/api/v1/contacts", json={"firstName": "Mike", "lastName": "Williams"})
    assert loner.status_code == 201
    assert loner.json()["data"]["accountId"] is None

    everyone = client.get("/api/v1/contacts").json()["data"]
    assert [row["lastName"] for row in everyone] == ["Doe", "Smith", "Williams"]

    at_acme = client.get("/api/v1/contacts", params={"account_id": acme["id"]}).json()["data"]
    assert [row["id"] for row in at_acme] == [john_id]

    by_email = client.get("/api/v1/contacts", params={"search": "acme.example"}).json()["data"]
    assert [row["id"] for row in by_email] == [john_id]

    moved = client.patch(f"/api/v1/contacts/{john_id}", json={"accountId": globex["id"], "title": None})
    assert moved.status_code == 200
    assert moved.json()["data"]["accountId"] == globex["id"]
    assert moved.json()["data"]["title"] is None

    assert client.delete(f"/api/v1/contacts/{john_id}").status_code == 204
    assert client.get(f"/api/v1/contacts/{john_id}").status_code == 404


def test_contact_validation(client: TestClient) -> None:
    assert client.post("/api/v1/contacts", json={"firstName": "John"}).status_code == 400
    assert client.post("/api/v1/contacts", json={"firstName": "John", "lastName": "Smith", "email": "nope"}).status_code == 400

    contact = client.post("/api/v1/contacts", json={"firstName": "John", "lastName": "Smith", "email": ""})
    assert contact.status_code == 201
    assert contact.json()["data"]["email"] is None

    contact_id = contact.json()["data"]["id"]
    assert client.patch(f"/api/v1/contacts/{contact_id}", json={"lastName": None}).status_code == 400


def test_contact_rejects_account_from_other_organization(
    client: TestClient,
    actors: dict[str, CurrentUser],
    acting_as: dict[str, CurrentUser],
) -> None:
    acting_as["user"] = actors["b"]
    foreign = _account(client, "Org B account")

    acting_as["user"] = actors["a"]
    created = client.post("/api/v1/contacts", json={"accountId": foreign["id"], "firstName": "J", "lastName": "S"})
    assert created.status_code == 400
    assert created.json()["error"]["details"][0]["field"] == "accountId"

    contact = client.post("/api/v1/contacts", json={"firstName": "J", "lastName": "S"}).json()["data"]
    patched = client.patch(f"/api/v1/contacts/{contact['id']}", json={"accountId": foreign["id"]})
    assert patched.status_code == 400
    assert client.get(f"/api/v1/contacts/{contact['id']}").json()["data"]["accountId"] is None


def test_deleting_account_detaches_contacts(client: TestClient) -> None:
    acme = _account(client, "Acme Corp")
    contact = client.post(
        "/api/v1/contacts",
        json={"accountId": acme["id"], "firstName": "John", "lastName": "Smith"},
    ).json()["data"]

    assert client.delete(f"/api/v1/accounts/{acme['id']}").status_code == 204

    fetched = client.get(f"/api/v1/contacts/{contact['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["accountId"] is None
