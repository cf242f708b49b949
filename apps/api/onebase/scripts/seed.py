"""Populate an empty database with a demo organization.

Usage: ``python -m onebase.scripts.seed``. Does nothing when any organization exists.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from onebase.auth.repository import OrganizationRepository
from onebase.auth.service import auth_service
from onebase.business.billing.schemas import InvoiceCreate, InvoiceCustomerCreate, InvoiceItemInput
from onebase.business.billing.service import invoice_customer_service, invoice_service
from onebase.core.config import Settings, get_settings
from onebase.core.database import Database, unit_of_work
from onebase.crm.schemas import AccountCreate, ActivityCreate, ContactCreate, DealCreate, DealStageCreate
from onebase.crm.service import (
    account_service,
    activity_service,
    contact_service,
    deal_service,
    deal_stage_service,
)
from onebase.logging import configure_logging


logger = logging.getLogger("onebase.seed")

DEFAULT_DEAL_STAGES: tuple[tuple[str, bool], ...] = (
    ("Lead", False),
    ("Qualified", False),
    ("Proposal", False),
    ("Negotiation", False),
    ("Won", True),
    ("Lost", True),
)

DEMO_ACCOUNTS = (
    AccountCreate(name="Acme Corp", industry="Technology", website="https://acme.example.com", phone="+1-555-0101"),
    AccountCreate(name="TechStart Inc", industry="Software", website="https://techstart.example.com", phone="+1-555-0102"),
    AccountCreate(name="Global Solutions", industry="Consulting", website="https://globalsol.example.com"),
)


def seed(session: Session, settings: Settings) -> bool:
    """Return False when the database already holds data."""
    organizations = OrganizationRepository()
    if organizations.any_exists(session):
        logger.info("seed.skipped")
        return False

    with unit_of_work(session):
        org_id = organizations.add(session, "Demo Org").id
    admin = auth_service.create_user(
        session,
        org_id=org_id,
        email=settings.seed_admin_email,
        password=settings.seed_admin_password,
        role="admin",
        bcrypt_rounds=settings.bcrypt_rounds,
    )

    stages = [
        deal_stage_service.create(session, org_id, DealStageCreate(name=name, sort_order=position, is_closed=closed))
        for position, (name, closed) in enumerate(DEFAULT_DEAL_STAGES, start=1)
    ]
    accounts = [account_service.create(session, org_id, dto) for dto in DEMO_ACCOUNTS]

    john = contact_service.create(
        session,
        org_id,
        ContactCreate(
            account_id=accounts[0].id,
            first_name="John",
            last_name="Smith",
            email="john.smith@acme.example.com",
            title="CEO",
        ),
    )
    contact_service.create(
        session,
        org_id,
        ContactCreate(account_id=accounts[1].id, first_name="Mike", last_name="Williams", title="Founder"),
    )

    deal = deal_service.create(
        session,
        org_id,
        DealCreate(
            account_id=accounts[0].id,
            primary_contact_id=john.id,
            stage_id=stages[2].id,
            name="Acme Enterprise License",
            amount_cents=5_000_000,
        ),
    )
    activity_service.log_activity(
        session,
        org_id,
        ActivityCreate(
            type="call",
            subject="Discovery call",
            body="Discussed requirements and timeline",
            occurred_at=datetime.now(timezone.utc),
            deal_id=deal.id,
            contact_id=john.id,
        ),
        created_by_user_id=admin.id,
    )

    customer = invoice_customer_service.create(
        session,
        org_id,
        InvoiceCustomerCreate(
            account_id=accounts[0].id,
            name="Acme Corp",
            email="billing@acme.example.com",
            vat_id="DE123456789",
            billing_address_line1="Hauptstrasse 1",
            billing_postal_code="10115",
            billing_city="Berlin",
            billing_country="DE",
        ),
    )
    invoice = invoice_service.create_invoice(
        session,
        org_id,
        InvoiceCreate(
            customer_id=customer.id,
            status="sent",
            issue_date=date.today(),
            items=[
                InvoiceItemInput(description="Consulting", quantity=20, unit_price_cents=15_000, tax_rate_bps=1_900),
                InvoiceItemInput(description="Support plan", quantity=1, unit_price_cents=49_900, tax_rate_bps=1_900),
            ],
        ),
    )
    logger.info("seed.completed", extra={"org_id": str(org_id), "invoice_number": invoice.invoice_number})
    return True


def main() -> None:
    configure_logging()
    settings = get_settings()
    database = Database(settings.database_url, echo=settings.database_echo)
    try:
        database.create_all()
        with database.session() as session:
            seed(session, settings)
    finally:
        database.dispose()


if __name__ == "__main__":
    main()
