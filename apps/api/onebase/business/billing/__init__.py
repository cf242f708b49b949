from onebase.business.billing.api import customers_router, invoices_router
from onebase.business.billing.models import Invoice, InvoiceCustomer, InvoiceItem
from onebase.business.billing.service import (
    InvoiceCustomerService,
    InvoiceService,
    invoice_customer_service,
    invoice_service,
)

__all__ = [
    "customers_router",
    "invoices_router",
    "Invoice",
    "InvoiceCustomer",
    "InvoiceItem",
    "InvoiceCustomerService",
    "InvoiceService",
    "invoice_customer_service",
    "invoice_service",
]
