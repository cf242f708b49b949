from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import Field, model_validator

from onebase.core.schemas import CamelModel, reject_nulls
from onebase.core.types import CurrencyCode, OptionalEmail, RequiredText


InvoiceStatus = Literal["draft", "sent", "paid", "void"]
INVOICE_STATUSES: tuple[str, ...] = ("draft", "sent", "paid", "void")

Quantity = Annotated[int, Field(ge=1)]
Cents = Annotated[int, Field(ge=0)]
TaxRateBps = Annotated[int, Field(ge=0, le=10_000)]


class InvoiceCustomerCreate(CamelModel):
    account_id: UUID | None = None
    name: RequiredText
    email: OptionalEmail | None = None
    phone: str | None = None
    vat_id: str | None = None
    billing_address_line1: str | None = None
    billing_address_line2: str | None = None
    billing_postal_code: str | None = None
    billing_city: str | None = None
    billing_country: str | None = None


class InvoiceCustomerUpdate(CamelModel):
    account_id: UUID | None = None
    name: RequiredText | None = None
    email: OptionalEmail | None = None
    phone: str | None = None
    vat_id: str | None = None
    billing_address_line1: str | None = None
    billing_address_line2: str | None = None
    billing_postal_code: str | None = None
    billing_city: str | None = None
    billing_country: str | None = None

    @model_validator(mode="after")
    def check_required_fields(self) -> InvoiceCustomerUpdate:
        reject_nulls(self, ("name",))
        return self


class InvoiceCustomerRead(CamelModel):
    id: UUID
    org_id: UUID
    account_id: UUID | None
    name: str
    email: str | None
    phone: str | None
    vat_id: str | None
    billing_address_line1: str | None
    billing_address_line2: str | None
    billing_postal_code: str | None
    billing_city: str | None
    billing_country: str | None
    created_at: datetime
    updated_at: datetime


class InvoiceItemInput(CamelModel):
    description: RequiredText
    quantity: Quantity = 1
    unit_price_cents: Cents = 0
    tax_rate_bps: TaxRateBps = 0
    sort_order: Annotated[int, Field(ge=0)] | None = None


class InvoiceCreate(CamelModel):
    customer_id: UUID
    invoice_number: RequiredText | None = None
    status: InvoiceStatus = "draft"
    currency: CurrencyCode | None = None
    issue_date: date
    due_date: date | None = None
    notes: str | None = None
    items: list[InvoiceItemInput] = Field(min_length=1)


class InvoiceUpdate(CamelModel):
    """Partial update; ``items``, when present, replaces every existing line."""

    customer_id: UUID | None = None
    invoice_number: RequiredText | None = None
    status: InvoiceStatus | None = None
    currency: CurrencyCode | None = None
    issue_date: date | None = None
    due_date: date | None = None
    notes: str | None = None
    items: list[InvoiceItemInput] | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def check_required_fields(self) -> InvoiceUpdate:
        reject_nulls(self, ("customer_id", "invoice_number", "status", "currency", "issue_date", "items"))
        return self


class InvoiceItemRead(CamelModel):
    id: UUID
    org_id: UUID
    invoice_id: UUID
    description: str
    quantity: int
    unit_price_cents: int
    tax_rate_bps: int
    line_total_cents: int
    sort_order: int
    created_at: datetime
    updated_at: datetime


class InvoiceSummaryRead(CamelModel):
    id: UUID
    org_id: UUID
    customer_id: UUID
    invoice_number: str
    status: InvoiceStatus
    currency: str
    issue_date: date
    due_date: date | None
    notes: str | None
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    created_at: datetime
    updated_at: datetime


class InvoiceListRead(InvoiceSummaryRead):
    customer_name: str | None = None
    customer_email: str | None = None


class InvoiceRead(InvoiceListRead):
    items: list[InvoiceItemRead] = Field(default_factory=list)
