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
from onebase.core.errors import ConflictError
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
def stages(db_session: Session, actors: dict[str, CurrentUser]) -> dict[str, str]:
    org_a = actors["a"].org_id
    org_b = actors["b"].org_id
    return {
        "won": str(deal_stage_service.create(db_session, org_a, DealStageCreate(name="Won", sort_order=5, is_closed=True)).id),
        "lead": str(deal_stage_service.create(db_session, org_a, DealStageCreate(name="Lead", sort_order=1)).id),
        "proposal": str(deal_stage_service.create(db_session, org_a, DealStageCreate(name="Proposal", sort_order=3)).id),
        "foreign": str(deal_stage_service.create(db_session, org_b, DealStageCreate(name="Lead", sort_order=1)).id),
    }


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


def _account(client: TestClient, name: str = "Acme Corp") -> dict:
    response = client.post("/api/v1/accounts", json={"name": name})
    assert response.status_code == 201
    return response.json()["data"]


def test_deal_stages_are_listed_in_order(client: TestClient, stages: dict[str, str]) -> None:
    response = client.get("/api/v1/deal-stages")

    assert response.status_code == 200
    rows = response.json()["data"]
    assert [row["name"] for row in rows] == ["Lead", "Proposal", "Won"]
    assert [row["isClosed"] for row in rows] == [False, False, True]


def test_deal_crud(client: TestClient, stages: dict[str, str]) -> None:
    account = _account(client)
    contact = client.post(
        "/api/v1/contacts",
        json={"accountId": account["id"], "firstName": "John", "lastName": "Smith"},
    ).json()["data"]

    created = client.post(
        "/api/v1/deals",
        json={
            "accountId": account["id"],
            "primaryContactId": contact["id"],
            "stageId": stages["lead"],
            "name": "Enterprise license",
            "amountCents": 5_000_000,
            "expectedCloseDate": "2026-06-30",
        },
    )
    assert created.status_code == 201
    deal = created.json()["data"]
    assert deal["currency"] == "EUR"
    assert deal["amountCents"] == 5_000_000
    assert deal["expectedCloseDate"] == "2026-06-30"

    moved = client.patch(f"/api/v1/deals/{deal['id']}", json={"stageId": stages["won"], "currency": "usd"})
    assert moved.status_code == 200
    assert moved.json()["data"]["stageId"] == stages["won"]
    assert moved.json()["data"]["currency"] == "USD"

    assert client.get("/api/v1/deals", params={"stage_id": stages["won"]}).json()["data"][0]["id"] == deal["id"]
    assert client.get("/api/v1/deals", params={"stage_id": stages["lead"]}).json()["data"] == []
    assert len(client.get("/api/v1/deals", params={"account_id": account["id"]}).json()["data"]) == 1
    assert len(client.get("/api/v1/deals", params={"search": "enterprise"}).json()["data"]) == 1

    assert client.delete(f"/api/v1/deals/{deal['id']}").status_code == 204
    assert client.get(f"/api/v1/deals/{deal['id']}").status_code == 404


def test_deal_validation(client: TestClient, stages: dict[str, str]) -> None:
    account = _account(client)
    base = {"accountId": account["id"], "stageId": stages["lead"], "name": "Deal"}

    assert client.post("/api/v1/deals", json={**base, "amountCents": -1}).status_code == 400
    assert client.post("/api/v1/deals", json={**base, "currency": "EURO"}).status_code == 400
    assert client.post("/api/v1/deals", json={"stageId": stages["lead"], "name": "Deal"}).status_code == 400

    deal = client.post("/api/v1/deals", json=base).json()["data"]
    assert client.patch(f"/api/v1/deals/{deal['id']}", json={"stageId": None}).status_code == 400
    assert client.patch(f"/api/v1/deals/{deal['id']}", json={"amountCents": None}).status_code == 400


def test_deal_references_must_belong_to_organization(
    client: TestClient,
    stages: dict[str, str],
    actors: dict[str, CurrentUser],
    acting_as: dict[str, CurrentUser],
) -> None:
    acting_as["user"] = actors["b"]
    foreign_account = _account(client, "Org B account")
    foreign_contact = client.post("/api/v1/contacts", json={"firstName": "B", "lastName": "B"}).json()["data"]

    acting_as["user"] = actors["a"]
    own_account = _account(client)

    wrong_stage = client.post(
        "/api/v1/deals",
        json={"accountId": own_account["id"], "stageId": stages["foreign"], "name": "Deal"},
    )
    assert wrong_stage.status_code == 400
    assert wrong_stage.json()["error"]["message"] == "Deal stage not found or does not belong to organization"
    assert wrong_stage.json()["error"]["details"][0]["field"] == "stageId"

    wrong_account = client.post(
        "/api/v1/deals",
        json={"accountId": foreign_account["id"], "stageId": stages["lead"], "name": "Deal"},
    )
    assert wrong_account.status_code == 400
    assert wrong_account.json()["error"]["details"][0]["field"] == "accountId"

    wrong_contact = client.post(
        "/api/v1/deals",
        json={
            "accountId": own_account["id"],
            "stageId": stages["lead"],
            "primaryContactId": foreign_contact["id"],
            "name": "Deal",
        },
    )
    assert wrong_contact.status_code == 400
    assert wrong_contact.json()["error"]["details"][0]["field"] == "primaryContactId"


def test_stage_with_deals_cannot_be_deleted(
    client: TestClient,
    db_session: Session,
    stages: dict[str, str],
    actors: dict[str, CurrentUser],
) -> None:
    account = _account(client)
    client.post("/api/v1/deals", json={"accountId": account["id"], "stageId": stages["lead"], "name": "Deal"})
    org_id = actors["a"].org_id

    with pytest.raises(ConflictError):
        deal_stage_service.delete(db_session, org_id, deal_stage_service.list(db_session, org_id)[0].id)

    deal_stage_service.delete(db_session, org_id, deal_stage_service.list(db_session, org_id)[-1].id)
    assert [stage.name for stage in deal_stage_service.list(db_session, org_id)] == ["Lead", "Proposal"]
