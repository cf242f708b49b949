from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from onebase.auth.dependencies import CurrentUser, get_current_user
from onebase.core.database import get_db
from onebase.core.repository import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from onebase.core.schemas import DataResponse
from onebase.crm.schemas import (
    AccountCreate,
    AccountRead,
    AccountUpdate,
    ActivityCreate,
    ActivityRead,
    ActivityUpdate,
    ContactCreate,
    ContactRead,
    ContactUpdate,
    DealCreate,
    DealRead,
    DealStageRead,
    DealUpdate,
)
from onebase.crm.service import (
    account_service,
    activity_service,
    contact_service,
    deal_service,
    deal_stage_service,
)


accounts_router = APIRouter(prefix="/accounts", tags=["crm.accounts"])
contacts_router = APIRouter(prefix="/contacts", tags=["crm.contacts"])
deals_router = APIRouter(tags=["crm.deals"])
activities_router = APIRouter(prefix="/activities", tags=["crm.activities"])


@accounts_router.get("", response_model=DataResponse[list[AccountRead]])
def list_accounts(
    search: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[list[AccountRead]]:
    return DataResponse(data=account_service.list(db, user.org_id, search=search, limit=limit, offset=offset))


@accounts_router.post("", response_model=DataResponse[AccountRead], status_code=status.HTTP_201_CREATED)
def create_account(
    dto: AccountCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[AccountRead]:
    return DataResponse(data=account_service.create(db, user.org_id, dto))


@accounts_router.get("/{account_id}", response_model=DataResponse[AccountRead])
def get_account(
    account_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[AccountRead]:
    return DataResponse(data=account_service.get(db, user.org_id, account_id))


@accounts_router.patch("/{account_id}", response_model=DataResponse[AccountRead])
def patch_account(
    account_id: uuid.UUID,
    dto: AccountUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[AccountRead]:
    return DataResponse(data=account_service.update(db, user.org_id, account_id, dto))


@accounts_router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_account(
    account_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    account_service.delete(db, user.org_id, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@contacts_router.get("", response_model=DataResponse[list[ContactRead]])
def list_contacts(
    search: str | None = Query(default=None),
    account_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[list[ContactRead]]:
    contacts = contact_service.list(
        db,
        user.org_id,
        search=search,
        filters={"account_id": account_id},
        limit=limit,
        offset=offset,
    )
    return DataResponse(data=contacts)


@contacts_router.post("", response_model=DataResponse[ContactRead], status_code=status.HTTP_201_CREATED)
def create_contact(
    dto: ContactCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[ContactRead]:
    return DataResponse(data=contact_service.create(db, user.org_id, dto))


@contacts_router.get("/{contact_id}", response_model=DataResponse[ContactRead])
def get_contact(
    contact_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[ContactRead]:
    return DataResponse(data=contact_service.get(db, user.org_id, contact_id))


@contacts_router.patch("/{contact_id}", response_model=DataResponse[ContactRead])
def patch_contact(
    contact_id: uuid.UUID,
    dto: ContactUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[ContactRead]:
    return DataResponse(data=contact_service.update(db, user.org_id, contact_id, dto))


@contacts_router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_contact(
    contact_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    contact_service.delete(db, user.org_id, contact_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@deals_router.get("/deal-stages", response_model=DataResponse[list[DealStageRead]])
def list_deal_stages(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[list[DealStageRead]]:
    return DataResponse(data=deal_stage_service.list(db, user.org_id, limit=MAX_PAGE_SIZE))


@deals_router.get("/deals", response_model=DataResponse[list[DealRead]])
def list_deals(
    search: str | None = Query(default=None),
    stage_id: uuid.UUID | None = Query(default=None),
    account_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[list[DealRead]]:
    deals = deal_service.list(
        db,
        user.org_id,
        search=search,
        filters={"stage_id": stage_id, "account_id": account_id},
        limit=limit,
        offset=offset,
    )
    return DataResponse(data=deals)


@deals_router.post("/deals", response_model=DataResponse[DealRead], status_code=status.HTTP_201_CREATED)
def create_deal(
    dto: DealCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[DealRead]:
    return DataResponse(data=deal_service.create(db, user.org_id, dto))


@deals_router.get("/deals/{deal_id}", response_model=DataResponse[DealRead])
def get_deal(
    deal_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[DealRead]:
    return DataResponse(data=deal_service.get(db, user.org_id, deal_id))


@deals_router.patch("/deals/{deal_id}", response_model=DataResponse[DealRead])
def patch_deal(
    deal_id: uuid.UUID,
    dto: DealUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[DealRead]:
    return DataResponse(data=deal_service.update(db, user.org_id, deal_id, dto))


@deals_router.delete("/deals/{deal_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_deal(
    deal_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    deal_service.delete(db, user.org_id, deal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@activities_router.get("", response_model=DataResponse[list[ActivityRead]])
def list_activities(
    search: str | None = Query(default=None),
    account_id: uuid.UUID | None = Query(default=None),
    contact_id: uuid.UUID | None = Query(default=None),
    deal_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[list[ActivityRead]]:
    activities = activity_service.list(
        db,
        user.org_id,
        search=search,
        filters={"account_id": account_id, "contact_id": contact_id, "deal_id": deal_id},
        limit=limit,
        offset=offset,
    )
    return DataResponse(data=activities)


@activities_router.post("", response_model=DataResponse[ActivityRead], status_code=status.HTTP_201_CREATED)
def create_activity(
    dto: ActivityCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[ActivityRead]:
    return DataResponse(data=activity_service.log_activity(db, user.org_id, dto, created_by_user_id=user.id))


@activities_router.get("/{activity_id}", response_model=DataResponse[ActivityRead])
def get_activity(
    activity_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[ActivityRead]:
    return DataResponse(data=activity_service.get(db, user.org_id, activity_id))


@activities_router.patch("/{activity_id}", response_model=DataResponse[ActivityRead])
def patch_activity(
    activity_id: uuid.UUID,
    dto: ActivityUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[ActivityRead]:
    return DataResponse(data=activity_service.update(db, user.org_id, activity_id, dto))


@activities_router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_activity(
    activity_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    activity_service.delete(db, user.org_id, activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
