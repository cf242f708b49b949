from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from onebase.auth.dependencies import CurrentUser, get_current_user
from onebase.auth.repository import OrganizationRepository, UserRepository
from onebase.core.database import Base, get_db, unit_of_work
from onebase.crm.schemas import DealStageCreate
from onebase.crm.service import deal_stage_service
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


@pytest.fixture()
def current_user(db_session: Session) -> CurrentUser:
    with unit_of_work(db_session):
        org = OrganizationRepository().add(db_session, "CRM Org")
        user = UserRepository().add(db_session, org_id=org.id, email="crm@example.com", password_hash="x", role="member")
        actor = CurrentUser(id=user.id, org_id=org.id, email=user.email, role=user.role)
    return actor


@pytest.fixture()
def client(db_session: Session, current_user: CurrentUser) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_user() -> CurrentUser:
        return current_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_account_crud(client: TestClient) -> None:
    created = client.post(
        "/api/v1/accounts",
        json={"name": "Acme Corp", "industry": "Technology", "website": "https://acme.example.com"},
    )
    assert created.status_code == 201
    account = created.json()["data"]
    assert account["name"] == "Acme Corp"
    assert account["website"] == "https://acme.example.com"
    assert "orgId" in account and "createdAt" in account

    fetched = client.get(f"/api/v1/accounts/{account['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"] == account

    patched = client.patch(f"/api/v1/accounts/{account['id']}", json={"phone": "+1-555-0101", "industry": None})
    assert patched.status_code == 200
    body = patched.json()["data"]
    assert body["phone"] == "+1-555-0101"
    assert body["industry"] is None
    assert body["name"] == "Acme Corp"

    deleted = client.delete(f"/api/v1/accounts/{account['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/api/v1/accounts/{account['id']}").status_code == 404


def test_account_list_search_and_paging(client: TestClient) -> None:
    for name, industry in (("Globex", "Energy"), ("Acme Corp", "Technology"), ("Initech", "Software")):
        assert client.post("/api/v1/accounts", json={"name": name, "industry": industry}).status_code == 201

    names = [row["name"] for row in client.get("/api/v1/accounts").json()["data"]]
    assert names == ["Acme Corp", "Globex", "Initech"]

    searched = client.get("/api/v1/accounts", params={"search": "SOFT"}).json()["data"]
    assert [row["name"] for row in searched] == ["Initech"]

    page = client.get("/api/v1/accounts", params={"limit": 1, "offset": 1}).json()["data"]
    assert [row["name"] for row in page] == ["Globex"]

    assert client.get("/api/v1/accounts", params={"limit": 0}).status_code == 400
    assert client.get("/api/v1/accounts", params={"limit": 201}).status_code == 400


def test_account_validation(client: TestClient) -> None:
    missing_name = client.post("/api/v1/accounts", json={"industry": "Technology"})
    assert missing_name.status_code == 400
    assert missing_name.json()["error"]["details"][0]["field"] == "name"

    assert client.post("/api/v1/accounts", json={"name": "X", "website": "not a url"}).status_code == 400
    assert client.post("/api/v1/accounts", json={"name": "X", "website": ""}).status_code == 201

    account = client.post("/api/v1/accounts", json={"name": "Y"}).json()["data"]
    assert client.patch(f"/api/v1/accounts/{account['id']}", json={"name": None}).status_code == 400
    assert client.patch(f"/api/v1/accounts/{account['id']}", json={"name": ""}).status_code == 400


def test_unknown_account_is_not_found(client: TestClient) -> None:
    missing = uuid.uuid4()

    assert client.get(f"/api/v1/accounts/{missing}").status_code == 404
    assert client.patch(f"/api/v1/accounts/{missing}", json={"name": "Z"}).status_code == 404
    response = client.delete(f"/api/v1/accounts/{missing}")
    assert response.status_code == 404
    assert response.json() == {"error": {"code": "NOT_FOUND", "message": "Account not found"}}
    assert client.get("/api/v1/accounts/not-a-uuid").status_code == 400


def test_account_with_deals_cannot_be_deleted(client: TestClient, db_session: Session, current_user: CurrentUser) -> None:
    stage = deal_stage_service.create(db_session, current_user.org_id, DealStageCreate(name="Lead", sort_order=1))
    account = client.post("/api/v1/accounts", json={"name": "Acme Corp"}).json()["data"]
    deal = client.post(
        "/api/v1/deals",
        json={"accountId": account["id"], "stageId": str(stage.id), "name": "Enterprise license"},
    )
    assert deal.status_code == 201

    blocked = client.delete(f"/api/v1/accounts/{account['id']}")
    assert blocked.status_code == 409
    assert blocked.json()["error"] == {"code": "CONFLICT", "message": "Account still has deals"}
    assert client.get(f"/api/v1/accounts/{account['id']}").status_code == 200
