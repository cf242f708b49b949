"""Invoice arithmetic in integer minor units.

Tax is rounded half up per line and the invoice tax is the sum of those rounded
line taxes. Rounding the aggregate instead would change persisted totals, so the
two must never be mixed.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

BPS_DENOMINATOR = 10_000


class PricedLine(Protocol):
    quantity: int
    unit_price_cents: int
    tax_rate_bps: int


@dataclass(frozen=True, slots=True)
class LineTotals:
    subtotal_cents: int
    tax_cents: int
    total_cents: int


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    lines: tuple[LineTotals, ...]


def round_half_up_div(numerator: int, denominator: int) -> int:
    return (numerator + denominator // 2) // denominator


def compute_line_totals(quantity: int, unit_price_cents: int, tax_rate_bps: int) -> LineTotals:
    subtotal = quantity * unit_price_cents
    tax = round_half_up_div(subtotal * tax_rate_bps, BPS_DENOMINATOR)
    return LineTotals(subtotal_cents=subtotal, tax_cents=tax, total_cents=subtotal + tax)


def compute_invoice_totals(items: Iterable[PricedLine]) -> InvoiceTotals:
    lines = tuple(
        compute_line_totals(item.quantity, item.unit_price_cents, item.tax_rate_bps) for item in items
    )
    subtotal = sum(line.subtotal_cents for line in lines)
    tax = sum(line.tax_cents for line in lines)
    return InvoiceTotals(subtotal_cents=subtotal, tax_cents=tax, total_cents=subtotal + tax, lines=lines)
