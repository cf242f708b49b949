from __future__ import annotations

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import model_validator

from onebase.core.schemas import CamelModel, reject_nulls
from onebase.core.types import CurrencyCode, NonNegativeCents, OptionalEmail, RequiredText, WebsiteUrl


ActivityType = Literal["note", "call", "meeting"]


class AccountCreate(CamelModel):
    name: RequiredText
    industry: str | None = None
    website: WebsiteUrl | None = None
    phone: str | None = None
    notes: str | None = None


class AccountUpdate(CamelModel):
    name: RequiredText | None = None
    industry: str | None = None
    website: WebsiteUrl | None = None
    phone: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def check_required_fields(self) -> AccountUpdate:
        reject_nulls(self, ("name",))
        return self


class AccountRead(CamelModel):
    id: UUID
    org_id: UUID
    name: str
    industry: str | None
    website: str | None
    phone: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class ContactCreate(CamelModel):
    account_id: UUID | None = None
    first_name: RequiredText
    last_name: RequiredText
    email: OptionalEmail | None = None
    phone: str | None = None
    title: str | None = None


class ContactUpdate(CamelModel):
    account_id: UUID | None = None
    first_name: RequiredText | None = None
    last_name: RequiredText | None = None
    email: OptionalEmail | None = None
    phone: str | None = None
    title: str | None = None

    @model_validator(mode="after")
    def check_required_fields(self) -> ContactUpdate:
        reject_nulls(self, ("first_name", "last_name"))
        return self


class ContactRead(CamelModel):
    id: UUID
    org_id: UUID
    account_id: UUID | None
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    title: str | None
    created_at: datetime
    updated_at: datetime


class DealStageCreate(CamelModel):
    name: RequiredText
    sort_order: int = 0
    is_closed: bool = False


class DealStageRead(CamelModel):
    id: UUID
    org_id: UUID
    name: str
    sort_order: int
    is_closed: bool
    created_at: datetime
    updated_at: datetime


class DealCreate(CamelModel):
    account_id: UUID
    primary_contact_id: UUID | None = None
    stage_id: UUID
    name: RequiredText
    amount_cents: NonNegativeCents = 0
    currency: CurrencyCode | None = None
    expected_close_date: date | None = None


class DealUpdate(CamelModel):
    account_id: UUID | None = None
    primary_contact_id: UUID | None = None
    stage_id: UUID | None = None
    name: RequiredText | None = None
    amount_cents: NonNegativeCents | None = None
    currency: CurrencyCode | None = None
    expected_close_date: date | None = None

    @model_validator(mode="after")
    def check_required_fields(self) -> DealUpdate:
        reject_nulls(self, ("account_id", "stage_id", "name", "amount_cents", "currency"))
        return self


class DealRead(CamelModel):
    id: UUID
    org_id: UUID
    account_id: UUID
    primary_contact_id: UUID | None
    stage_id: UUID
    name: str
    amount_cents: int
    currency: str
    expected_close_date: date | None
    created_at: datetime
    updated_at: datetime


class ActivityCreate(CamelModel):
    type: ActivityType
    subject: str | None = None
    body: str | None = None
    occurred_at: datetime | None = None
    account_id: UUID | None = None
    contact_id: UUID | None = None
    deal_id: UUID | None = None


class ActivityUpdate(CamelModel):
    type: ActivityType | None = None
    subject: str | None = None
    body: str | None = None
    occurred_at: datetime | None = None
    account_id: UUID | None = None
    contact_id: UUID | None = None
    deal_id: UUID | None = None

    @model_validator(mode="after")
    def check_required_fields(self) -> ActivityUpdate:
        reject_nulls(self, ("type",))
        return self


class ActivityRead(CamelModel):
    id: UUID
    org_id: UUID
    type: str
    subject: str | None
    body: str | None
    occurred_at: datetime | None
    account_id: UUID | None
    contact_id: UUID | None
    deal_id: UUID | None
    created_by_user_id: UUID
    created_at: datetime
    updated_at: datetime
