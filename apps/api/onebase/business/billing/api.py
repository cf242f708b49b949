from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from onebase.auth.dependencies import CurrentUser, get_current_user
from onebase.business.billing.schemas import (
    InvoiceCreate,
    InvoiceCustomerCreate,
    InvoiceCustomerRead,
    InvoiceCustomerUpdate,
    InvoiceListRead,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
)
from onebase.business.billing.service import invoice_customer_service, invoice_service
from onebase.core.database import get_db
from onebase.core.repository import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from onebase.core.schemas import DataResponse


customers_router = APIRouter(prefix="/invoice-customers", tags=["billing.customers"])
invoices_router = APIRouter(prefix="/invoices", tags=["billing.invoices"])


@customers_router.get("", response_model=DataResponse[list[InvoiceCustomerRead]])
def list_invoice_customers(
    search: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[list[InvoiceCustomerRead]]:
    customers = invoice_customer_service.list(db, user.org_id, search=search, limit=limit, offset=offset)
    return DataResponse(data=customers)


@customers_router.post("", response_model=DataResponse[InvoiceCustomerRead], status_code=status.HTTP_201_CREATED)
def create_invoice_customer(
    dto: InvoiceCustomerCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[InvoiceCustomerRead]:
    return DataResponse(data=invoice_customer_service.create(db, user.org_id, dto))


@customers_router.get("/{customer_id}", response_model=DataResponse[InvoiceCustomerRead])
def get_invoice_customer(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[InvoiceCustomerRead]:
    return DataResponse(data=invoice_customer_service.get(db, user.org_id, customer_id))


@customers_router.patch("/{customer_id}", response_model=DataResponse[InvoiceCustomerRead])
def patch_invoice_customer(
    customer_id: uuid.UUID,
    dto: InvoiceCustomerUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[InvoiceCustomerRead]:
    return DataResponse(data=invoice_customer_service.update(db, user.org_id, customer_id, dto))


@customers_router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_invoice_customer(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    invoice_customer_service.delete(db, user.org_id, customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@invoices_router.get("", response_model=DataResponse[list[InvoiceListRead]])
def list_invoices(
    search: str | None = Query(default=None),
    status_filter: InvoiceStatus | None = Query(default=None, alias="status"),
    customer_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[list[InvoiceListRead]]:
    invoices = invoice_service.list_invoices(
        db,
        user.org_id,
        search=search,
        status=status_filter,
        customer_id=customer_id,
        limit=limit,
        offset=offset,
    )
    return DataResponse(data=invoices)


@invoices_router.post("", response_model=DataResponse[InvoiceRead], status_code=status.HTTP_201_CREATED)
def create_invoice(
    dto: InvoiceCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[InvoiceRead]:
    return DataResponse(data=invoice_service.create_invoice(db, user.org_id, dto))


@invoices_router.get("/{invoice_id}", response_model=DataResponse[InvoiceRead])
def get_invoice(
    invoice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[InvoiceRead]:
    return DataResponse(data=invoice_service.get_invoice_with_items(db, user.org_id, invoice_id))


@invoices_router.patch("/{invoice_id}", response_model=DataResponse[InvoiceRead])
def patch_invoice(
    invoice_id: uuid.UUID,
    dto: InvoiceUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[InvoiceRead]:
    return DataResponse(data=invoice_service.update_invoice(db, user.org_id, invoice_id, dto))


@invoices_router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_invoice(
    invoice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    invoice_service.delete_invoice(db, user.org_id, invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
