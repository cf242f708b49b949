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
        user = UserRepository().add(session, org_id=org.id, email=email, password_hash="not-used", role="member")
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


def test_customer_crud(client: TestClient) -> None:
    created = client.post(
        "/api/v1/invoice-customers",
        json={
            "name": "  Acme Corp  ",
            "email": "",
            "vatId": "DE123456789",
            "billingAddressLine1": "Hauptstrasse 1",
            "billingCity": "Berlin",
        },
    )
    assert created.status_code == 201
    customer = created.json()["data"]
    assert customer["name"] == "Acme Corp"
    assert customer["email"] is None
    assert customer["vatId"] == "DE123456789"
    assert customer["billingAddressLine1"] == "Hauptstrasse 1"

    patched = client.patch(
        f"/api/v1/invoice-customers/{customer['id']}",
        json={"billingCity": "Hamburg", "email": "billing@acme.example.com"},
    )
    assert patched.status_code == 200
    assert patched.json()["data"]["billingCity"] == "Hamburg"
    assert patched.json()["data"]["vatId"] == "DE123456789"

    listed = client.get("/api/v1/invoice-customers", params={"search": "acme"})
    assert [row["id"] for row in listed.json()["data"]] == [customer["id"]]

    assert client.delete(f"/api/v1/invoice-customers/{customer['id']}").status_code == 204
    assert client.get(f"/api/v1/invoice-customers/{customer['id']}").status_code == 404


def test_customer_validation(client: TestClient) -> None:
    assert client.post("/api/v1/invoice-customers", json={"name": "   "}).status_code == 400
    assert client.post("/api/v1/invoice-customers", json={"name": "X", "email": "not-an-email"}).status_code == 400

    customer = client.post("/api/v1/invoice-customers", json={"name": "X"}).json()["data"]
    nulled = client.patch(f"/api/v1/invoice-customers/{customer['id']}", json={"name": None})
    assert nulled.status_code == 400


def test_customer_with_invoices_cannot_be_deleted(client: TestClient) -> None:
    customer = client.post("/api/v1/invoice-customers", json={"name": "Acme Corp"}).json()["data"]
    invoice = client.post(
        "/api/v1/invoices",
        json={
            "customerId": customer["id"],
            "issueDate": "2026-03-15",
            "items": [{"description": "Consulting", "unitPriceCents": 100}],
        },
    ).json()["data"]

    blocked = client.delete(f"/api/v1/invoice-customers/{customer['id']}")
    assert blocked.status_code == 409
    assert blocked.json()["error"] == {"code": "CONFLICT", "message": "Invoice customer still has invoices"}

    assert client.delete(f"/api/v1/invoices/{invoice['id']}").status_code == 204
    assert client.delete(f"/api/v1/invoice-customers/{customer['id']}").status_code == 204


def test_account_reference_must_belong_to_organization(
    client: TestClient,
    actors: dict[str, CurrentUser],
    acting_as: dict[str, CurrentUser],
) -> None:
    acting_as["user"] = actors["b"]
    foreign_account = client.post("/api/v1/accounts", json={"name": "Org B account"}).json()["data"]

    acting_as["user"] = actors["a"]
    response = client.post(
        "/api/v1/invoice-customers",
        json={"name": "Acme Corp", "accountId": foreign_account["id"]},
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Account not found or does not belong to organization"
    assert error["details"] == [
        {
            "field": "accountId",
            "message": "Account not found or does not belong to organization",
            "type": "missing_relation",
        }
    ]

    own_account = client.post("/api/v1/accounts", json={"name": "Org A account"}).json()["data"]
    linked = client.post("/api/v1/invoice-customers", json={"name": "Acme Corp", "accountId": own_account["id"]})
    assert linked.status_code == 201
    assert linked.json()["data"]["accountId"] == own_account["id"]
