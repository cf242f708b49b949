from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from onebase.business.billing.models import INVOICE_NUMBER_CONSTRAINT, InvoiceCustomer, InvoiceItem
from onebase.business.billing.numbering import next_invoice_number
from onebase.business.billing.repository import (
    InvoiceCustomerRepository,
    InvoiceItemRepository,
    InvoiceRepository,
)
from onebase.business.billing.schemas import (
    INVOICE_STATUSES,
    InvoiceCreate,
    InvoiceCustomerRead,
    InvoiceItemInput,
    InvoiceItemRead,
    InvoiceListRead,
    InvoiceRead,
    InvoiceUpdate,
)
from onebase.business.billing.totals import InvoiceTotals, compute_invoice_totals
from onebase.core.config import get_settings
from onebase.core.database import unit_of_work
from onebase.core.errors import ConflictError, NotFoundError, ValidationError
from onebase.core.repository import DEFAULT_PAGE_SIZE
from onebase.core.service import Reference, TenantCrudService, blank_to_none
from onebase.crm.service import account_repository
from onebase.metrics import observe_invoice_number_collision, observe_invoice_write
from onebase.otel import get_tracer


logger = logging.getLogger(__name__)
tracer = get_tracer("onebase.billing")

invoice_customer_repository = InvoiceCustomerRepository()


class InvoiceCustomerService(TenantCrudService[InvoiceCustomer, InvoiceCustomerRead]):
    repository = invoice_customer_repository
    read_model = InvoiceCustomerRead
    label = "Invoice customer"
    references = (Reference("account_id", "Account", account_repository),)
    in_use_message = "Invoice customer still has invoices"

    def __init__(self, invoices: InvoiceRepository | None = None) -> None:
        self.invoices = invoices or InvoiceRepository()

    def delete(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID) -> None:
        if self.invoices.count_for_customer(session, org_id, entity_id) > 0:
            raise ConflictError(self.in_use_message or "Invoice customer still has invoices")
        super().delete(session, org_id, entity_id)


def is_invoice_number_collision(exc: IntegrityError) -> bool:
    """True when the error comes from the per-organization invoice number constraint.

    PostgreSQL names the constraint; SQLite only lists the constrained columns.
    """
    diag = getattr(exc.orig, "diag", None)
    if getattr(diag, "constraint_name", None) == INVOICE_NUMBER_CONSTRAINT:
        return True
    message = str(exc.orig)
    return INVOICE_NUMBER_CONSTRAINT in message or "invoices.org_id, invoices.invoice_number" in message


def _item_error(index: int, field_name: str, message: str) -> dict[str, Any]:
    return {"field": f"items.{index}.{field_name}", "message": message, "type": "value_error"}


@dataclass(slots=True)
class InvoiceService:
    """Invoice writes: ownership checks, numbering, totals and the invoice+items unit of work."""

    customers: InvoiceCustomerRepository = field(default_factory=lambda: invoice_customer_repository)
    invoices: InvoiceRepository = field(default_factory=InvoiceRepository)
    items: InvoiceItemRepository = field(default_factory=InvoiceItemRepository)
    today: Callable[[], date] = date.today
    max_number_attempts: int | None = None

    def create_invoice(self, session: Session, org_id: uuid.UUID, dto: InvoiceCreate) -> InvoiceRead:
        with tracer.start_as_current_span("billing.invoice.create") as span:
            span.set_attribute("org_id", str(org_id))

            if not self.customers.exists(session, org_id, dto.customer_id):
                raise NotFoundError("Invoice customer not found")
            explicit_number = dto.invoice_number
            if explicit_number is not None and self.invoices.number_in_use(session, org_id, explicit_number):
                raise ConflictError(f"Invoice number {explicit_number} already exists")
            drafts = self._validated_items(dto.items)
            self._validate_status(dto.status)

            totals = compute_invoice_totals(drafts)
            attempts = 1 if explicit_number is not None else self._number_attempts()
            values = blank_to_none(dto.model_dump(exclude={"items", "invoice_number"}))
            values["currency"] = values.get("currency") or get_settings().default_currency

            for attempt in range(1, attempts + 1):
                invoice_number = explicit_number or next_invoice_number(session, self.invoices, org_id, self.today())
                try:
                    with unit_of_work(session):
                        invoice = self.invoices.add(
                            session,
                            org_id,
                            {
                                **values,
                                "invoice_number": invoice_number,
                                "subtotal_cents": totals.subtotal_cents,
                                "tax_cents": totals.tax_cents,
                                "total_cents": totals.total_cents,
                            },
                        )
                        invoice_id = invoice.id
                        self.items.add_many(session, self._build_items(org_id, invoice_id, drafts, totals))
                except IntegrityError as exc:
                    if not is_invoice_number_collision(exc):
                        raise
                    if explicit_number is not None:
                        raise ConflictError(f"Invoice number {explicit_number} already exists") from exc
                    observe_invoice_number_collision()
                    logger.warning(
                        "invoice.number_collision",
                        extra={"org_id": str(org_id), "invoice_number": invoice_number, "attempt": attempt},
                    )
                    continue

                span.set_attribute("invoice_id", str(invoice_id))
                observe_invoice_write("create")
                logger.info(
                    "invoice.created",
                    extra={"org_id": str(org_id), "invoice_id": str(invoice_id), "invoice_number": invoice_number},
                )
                return self.get_invoice_with_items(session, org_id, invoice_id)

            raise ConflictError("Could not allocate a unique invoice number, please retry")

    def update_invoice(
        self,
        session: Session,
        org_id: uuid.UUID,
        invoice_id: uuid.UUID,
        dto: InvoiceUpdate,
    ) -> InvoiceRead:
        with tracer.start_as_current_span("billing.invoice.update") as span:
            span.set_attribute("org_id", str(org_id))
            span.set_attribute("invoice_id", str(invoice_id))

            invoice = self.invoices.get(session, org_id, invoice_id)
            if invoice is None:
                raise NotFoundError("Invoice not found")

            patch = blank_to_none(dto.model_dump(exclude_unset=True, exclude={"items"}))
            new_customer = patch.get("customer_id")
            if new_customer is not None and new_customer != invoice.customer_id:
                if not self.customers.exists(session, org_id, new_customer):
                    raise NotFoundError("Invoice customer not found")
            new_number = patch.get("invoice_number")
            if new_number is not None and new_number != invoice.invoice_number:
                if self.invoices.number_in_use(session, org_id, new_number, exclude_id=invoice_id):
                    raise ConflictError(f"Invoice number {new_number} already exists")
            if "status" in patch:
                self._validate_status(patch["status"])

            new_items: list[InvoiceItem] | None = None
            if "items" in dto.model_fields_set:
                drafts = self._validated_items(dto.items)
                totals = compute_invoice_totals(drafts)
                new_items = self._build_items(org_id, invoice_id, drafts, totals)
                patch.update(
                    subtotal_cents=totals.subtotal_cents,
                    tax_cents=totals.tax_cents,
                    total_cents=totals.total_cents,
                )

            try:
                with unit_of_work(session):
                    self.invoices.update(session, org_id, invoice_id, patch)
                    if new_items is not None:
                        self.items.delete_for_invoice(session, org_id, invoice_id)
                        self.items.add_many(session, new_items)
            except IntegrityError as exc:
                if not is_invoice_number_collision(exc):
                    raise
                raise ConflictError("Invoice number already exists") from exc

            observe_invoice_write("update")
            logger.info("invoice.updated", extra={"org_id": str(org_id), "invoice_id": str(invoice_id)})
            return self.get_invoice_with_items(session, org_id, invoice_id)

    def get_invoice_with_items(self, session: Session, org_id: uuid.UUID, invoice_id: uuid.UUID) -> InvoiceRead:
        row = self.invoices.get_with_customer(session, org_id, invoice_id)
        if row is None:
            raise NotFoundError("Invoice not found")
        invoice, customer_name, customer_email = row
        detail = InvoiceRead.model_validate(invoice)
        return detail.model_copy(update={"customer_name": customer_name, "customer_email": customer_email})

    def list_invoice_items(self, session: Session, org_id: uuid.UUID, invoice_id: uuid.UUID) -> list[InvoiceItemRead]:
        return [InvoiceItemRead.model_validate(item) for item in self.items.list_for_invoice(session, org_id, invoice_id)]

    def delete_invoice(self, session: Session, org_id: uuid.UUID, invoice_id: uuid.UUID) -> None:
        with tracer.start_as_current_span("billing.invoice.delete") as span:
            span.set_attribute("org_id", str(org_id))
            span.set_attribute("invoice_id", str(invoice_id))

            if not self.invoices.exists(session, org_id, invoice_id):
                raise NotFoundError("Invoice not found")
            with unit_of_work(session):
                self.items.delete_for_invoice(session, org_id, invoice_id)
                self.invoices.delete(session, org_id, invoice_id)

            observe_invoice_write("delete")
            logger.info("invoice.deleted", extra={"org_id": str(org_id), "invoice_id": str(invoice_id)})

    def list_invoices(
        self,
        session: Session,
        org_id: uuid.UUID,
        *,
        search: str | None = None,
        status: str | None = None,
        customer_id: uuid.UUID | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[InvoiceListRead]:
        rows = self.invoices.list_with_customer(
            session,
            org_id,
            search=search,
            filters={"status": status, "customer_id": customer_id},
            limit=limit,
            offset=offset,
        )
        result: list[InvoiceListRead] = []
        for invoice, customer_name, customer_email in rows:
            summary = InvoiceListRead.model_validate(invoice)
            result.append(summary.model_copy(update={"customer_name": customer_name, "customer_email": customer_email}))
        return result

    def _number_attempts(self) -> int:
        if self.max_number_attempts is not None:
            return max(1, self.max_number_attempts)
        return max(1, get_settings().invoice_number_max_attempts)

    @staticmethod
    def _validate_status(value: str) -> None:
        if value not in INVOICE_STATUSES:
            raise ValidationError(
                f"Unknown invoice status: {value}",
                details=[{"field": "status", "message": "must be one of " + ", ".join(INVOICE_STATUSES), "type": "value_error"}],
            )

    @staticmethod
    def _validated_items(items: Sequence[InvoiceItemInput] | None) -> list[InvoiceItemInput]:
        if not items:
            raise ValidationError(
                "At least one item is required",
                details=[{"field": "items", "message": "At least one item is required", "type": "too_short"}],
            )
        errors: list[dict[str, Any]] = []
        for index, item in enumerate(items):
            if not item.description or not item.description.strip():
                errors.append(_item_error(index, "description", "Description is required"))
            if item.quantity < 1:
                errors.append(_item_error(index, "quantity", "Quantity must be at least 1"))
            if item.unit_price_cents < 0:
                errors.append(_item_error(index, "unitPriceCents", "Unit price must not be negative"))
            if not 0 <= item.tax_rate_bps <= 10_000:
                errors.append(_item_error(index, "taxRateBps", "Tax rate must be between 0 and 10000"))
            if item.sort_order is not None and item.sort_order < 0:
                errors.append(_item_error(index, "sortOrder", "Sort order must not be negative"))
        if errors:
            raise ValidationError("Invalid invoice items", details=errors)
        return list(items)

    @staticmethod
    def _build_items(
        org_id: uuid.UUID,
        invoice_id: uuid.UUID,
        drafts: Sequence[InvoiceItemInput],
        totals: InvoiceTotals,
    ) -> list[InvoiceItem]:
        return [
            InvoiceItem(
                org_id=org_id,
                invoice_id=invoice_id,
                description=draft.description,
                quantity=draft.quantity,
                unit_price_cents=draft.unit_price_cents,
                tax_rate_bps=draft.tax_rate_bps,
                line_total_cents=line.total_cents,
                sort_order=draft.sort_order if draft.sort_order is not None else position,
            )
            for position, (draft, line) in enumerate(zip(drafts, totals.lines), start=1)
        ]


invoice_customer_service = InvoiceCustomerService()
invoice_service = InvoiceService()
