from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, and_, delete, func, or_, select
from sqlalchemy.orm import Session, selectinload

from onebase.business.billing.models import Invoice, InvoiceCustomer, InvoiceItem
from onebase.core.repository import DEFAULT_PAGE_SIZE, TenantRepository


class InvoiceCustomerRepository(TenantRepository[InvoiceCustomer]):
    model = InvoiceCustomer
    search_columns = ("name", "email")
    ordering = ("name",)


class InvoiceRepository(TenantRepository[Invoice]):
    model = Invoice
    filter_columns = ("status", "customer_id")
    ordering = ("-issue_date", "-invoice_number")

    def number_in_use(
        self,
        session: Session,
        org_id: uuid.UUID,
        invoice_number: str,
        *,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(Invoice.id).where(Invoice.org_id == org_id, Invoice.invoice_number == invoice_number)
        if exclude_id is not None:
            stmt = stmt.where(Invoice.id != exclude_id)
        return session.scalar(stmt.limit(1)) is not None

    def highest_number_with_prefix(self, session: Session, org_id: uuid.UUID, prefix: str) -> str | None:
        stmt = select(func.max(Invoice.invoice_number)).where(
            Invoice.org_id == org_id,
            Invoice.invoice_number.startswith(prefix, autoescape=True),
        )
        return session.scalar(stmt)

    def count_for_customer(self, session: Session, org_id: uuid.UUID, customer_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(Invoice).where(
            Invoice.org_id == org_id,
            Invoice.customer_id == customer_id,
        )
        return session.scalar(stmt) or 0

    @staticmethod
    def _with_customer(org_id: uuid.UUID) -> Select[tuple[Invoice, str | None, str | None]]:
        return (
            select(Invoice, InvoiceCustomer.name, InvoiceCustomer.email)
            .outerjoin(
                InvoiceCustomer,
                and_(InvoiceCustomer.id == Invoice.customer_id, InvoiceCustomer.org_id == Invoice.org_id),
            )
            .where(Invoice.org_id == org_id)
        )

    def get_with_customer(
        self,
        session: Session,
        org_id: uuid.UUID,
        invoice_id: uuid.UUID,
    ) -> tuple[Invoice, str | None, str | None] | None:
        stmt = self._with_customer(org_id).where(Invoice.id == invoice_id).options(selectinload(Invoice.items))
        row = session.execute(stmt).first()
        if row is None:
            return None
        return row[0], row[1], row[2]

    def list_with_customer(
        self,
        session: Session,
        org_id: uuid.UUID,
        *,
        search: str | None = None,
        filters: dict[str, Any] | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Sequence[tuple[Invoice, str | None, str | None]]:
        stmt = self.apply_filters(self._with_customer(org_id), filters)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Invoice.invoice_number.ilike(pattern),
                    Invoice.notes.ilike(pattern),
                    InvoiceCustomer.name.ilike(pattern),
                )
            )
        stmt = stmt.order_by(*self.order_clauses()).offset(offset).limit(limit)
        return [(row[0], row[1], row[2]) for row in session.execute(stmt).all()]


class InvoiceItemRepository:
    def add_many(self, session: Session, items: Sequence[InvoiceItem]) -> None:
        session.add_all(items)
        session.flush()

    def list_for_invoice(self, session: Session, org_id: uuid.UUID, invoice_id: uuid.UUID) -> list[InvoiceItem]:
        stmt = (
            select(InvoiceItem)
            .where(InvoiceItem.org_id == org_id, InvoiceItem.invoice_id == invoice_id)
            .order_by(InvoiceItem.sort_order.asc(), InvoiceItem.created_at.asc())
        )
        return list(session.scalars(stmt).all())

    def delete_for_invoice(self, session: Session, org_id: uuid.UUID, invoice_id: uuid.UUID) -> int:
        result = session.execute(
            delete(InvoiceItem).where(InvoiceItem.org_id == org_id, InvoiceItem.invoice_id == invoice_id)
        )
        return result.rowcount
