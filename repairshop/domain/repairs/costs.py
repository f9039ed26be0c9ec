"""
Repair cost calculation

The amount owed on a repair. Customer texts and the cost summary endpoint
both go through calculate_costs.

Rules:
- Parts total is the sum of quantity x unit_price over billable lines
  (unit_price > 0). Zero-priced inventory-tracking lines are not billed.
- Tax is 7.5% of (parts + labor) unless the repair is tax exempt.
- Return shipping, on-site and rush fees are added after tax, untaxed.
- A diagnostic fee that was collected up front is credited against the
  total, never taking the amount due below zero.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

TAX_RATE = Decimal("0.075")
DEFAULT_DIAGNOSTIC_FEE = Decimal("89.00")
CENTS = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class CostBreakdown:
    parts_total: Decimal
    labor_total: Decimal
    subtotal: Decimal
    tax: Decimal
    fees: Decimal
    total: Decimal
    diagnostic_credit: Decimal
    amount_due: Decimal

    def as_dict(self) -> dict:
        return {
            "parts_total": float(self.parts_total),
            "labor_total": float(self.labor_total),
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "fees": float(self.fees),
            "total": float(self.total),
            "diagnostic_credit": float(self.diagnostic_credit),
            "amount_due": float(self.amount_due),
        }


def to_money(value: Any) -> Decimal:
    """Coerce a column value (Decimal, float, str, None) to a Decimal amount"""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return ZERO


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from an ORM object or a plain dict"""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def resolve_diagnostic_fee(repair: Any) -> Decimal:
    """
    Diagnostic fee to credit, by precedence: deposit amount, then the
    recorded diagnostic fee, then the flat default when the fee was flagged
    as collected without an amount.
    """
    deposit = to_money(_field(repair, "deposit_amount"))
    if deposit > 0:
        return deposit

    recorded_fee = to_money(_field(repair, "diagnostic_fee"))
    if recorded_fee > 0:
        return recorded_fee

    if _field(repair, "diagnostic_fee_collected", False):
        return DEFAULT_DIAGNOSTIC_FEE

    return ZERO


def billable_parts_total(parts: Optional[Iterable[Any]]) -> Decimal:
    total = ZERO
    for part in parts or []:
        unit_price = to_money(_field(part, "unit_price"))
        if unit_price <= 0:
            continue
        quantity = _field(part, "quantity") or 0
        total += unit_price * int(quantity)
    return total


def calculate_costs(repair: Any, parts: Optional[Iterable[Any]] = None) -> CostBreakdown:
    """
    Compute what is owed on a repair.

    Args:
        repair: Repair model (or dict with the same field names)
        parts: Repair line items; defaults to repair.parts

    Returns:
        CostBreakdown with every amount rounded to cents
    """
    if parts is None:
        parts = _field(repair, "parts", None)

    parts_total = billable_parts_total(parts)
    labor_total = to_money(_field(repair, "labor_cost"))
    subtotal = parts_total + labor_total

    if _field(repair, "is_tax_exempt", False):
        tax = ZERO
    else:
        tax = _cents(subtotal * TAX_RATE)

    fees = (
        to_money(_field(repair, "return_shipping_cost"))
        + to_money(_field(repair, "on_site_fee"))
        + to_money(_field(repair, "rush_fee"))
    )
    total = subtotal + tax + fees

    diagnostic_credit = ZERO
    if _field(repair, "diagnostic_fee_collected", False):
        diagnostic_credit = resolve_diagnostic_fee(repair)

    amount_due = max(ZERO, total - diagnostic_credit)

    return CostBreakdown(
        parts_total=_cents(parts_total),
        labor_total=_cents(labor_total),
        subtotal=_cents(subtotal),
        tax=_cents(tax),
        fees=_cents(fees),
        total=_cents(total),
        diagnostic_credit=_cents(diagnostic_credit),
        amount_due=_cents(amount_due),
    )
