from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import BaseModel
from sqlalchemy.orm import Session

from onebase.core.config import get_settings
from onebase.core.service import Reference, TenantCrudService
from onebase.crm.models import Account, Activity, Contact, Deal, DealStage
from onebase.crm.repositories import (
    AccountRepository,
    ActivityRepository,
    ContactRepository,
    DealRepository,
    DealStageRepository,
)
from onebase.crm.schemas import AccountRead, ActivityRead, ContactRead, DealRead, DealStageRead


logger = logging.getLogger(__name__)

account_repository = AccountRepository()
contact_repository = ContactRepository()
deal_stage_repository = DealStageRepository()
deal_repository = DealRepository()
activity_repository = ActivityRepository()


class AccountService(TenantCrudService[Account, AccountRead]):
    repository = account_repository
    read_model = AccountRead
    label = "Account"
    in_use_message = "Account still has deals"


class ContactService(TenantCrudService[Contact, ContactRead]):
    repository = contact_repository
    read_model = ContactRead
    label = "Contact"
    references = (Reference("account_id", "Account", account_repository),)


class DealStageService(TenantCrudService[DealStage, DealStageRead]):
    repository = deal_stage_repository
    read_model = DealStageRead
    label = "Deal stage"
    in_use_message = "Deal stage still has deals"


class DealService(TenantCrudService[Deal, DealRead]):
    repository = deal_repository
    read_model = DealRead
    label = "Deal"
    references = (
        Reference("account_id", "Account", account_repository),
        Reference("stage_id", "Deal stage", deal_stage_repository),
        Reference("primary_contact_id", "Contact", contact_repository),
    )

    def create(self, session: Session, org_id: uuid.UUID, dto: BaseModel, **extra: Any) -> DealRead:
        if getattr(dto, "currency", None) is None:
            extra.setdefault("currency", get_settings().default_currency)
        return super().create(session, org_id, dto, **extra)


class ActivityService(TenantCrudService[Activity, ActivityRead]):
    repository = activity_repository
    read_model = ActivityRead
    label = "Activity"
    references = (
        Reference("account_id", "Account", account_repository),
        Reference("contact_id", "Contact", contact_repository),
        Reference("deal_id", "Deal", deal_repository),
    )

    def log_activity(
        self,
        session: Session,
        org_id: uuid.UUID,
        dto: BaseModel,
        *,
        created_by_user_id: uuid.UUID,
    ) -> ActivityRead:
        activity = self.create(session, org_id, dto, created_by_user_id=created_by_user_id)
        logger.info("activity.created", extra={"org_id": str(org_id), "user_id": str(created_by_user_id)})
        return activity


account_service = AccountService()
contact_service = ContactService()
deal_stage_service = DealStageService()
deal_service = DealService()
activity_service = ActivityService()
