from __future__ import annotations

import re
import uuid
from datetime import date

from sqlalchemy.orm import Session

from onebase.business.billing.repository import InvoiceRepository

INVOICE_NUMBER_PREFIX = "INV"
SEQUENCE_WIDTH = 4

_TRAILING_DIGITS_RE = re.compile(r"(\d+)$")


def year_prefix(year: int) -> str:
    return f"{INVOICE_NUMBER_PREFIX}-{year:04d}-"


def format_invoice_number(year: int, sequence: int) -> str:
    return f"{year_prefix(year)}{sequence:0{SEQUENCE_WIDTH}d}"


def next_sequence(highest: str | None) -> int:
    """Sequence that follows ``highest``; 1 when there is nothing to follow."""
    if not highest:
        return 1
    match = _TRAILING_DIGITS_RE.search(highest)
    if match is None:
        return 1
    return int(match.group(1)) + 1


def next_invoice_number(
    session: Session,
    repository: InvoiceRepository,
    org_id: uuid.UUID,
    today: date,
) -> str:
    prefix = year_prefix(today.year)
    highest = repository.highest_number_with_prefix(session, org_id, prefix)
    return format_invoice_number(today.year, next_sequence(highest))
