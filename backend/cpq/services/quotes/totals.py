"""Quote line items and totals."""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

from cpq.config import settings

CENT = Decimal("0.01")


class QuoteLine(BaseModel):
    """One line of a quote: a catalog product, quantity and unit price.

    A blank product_name or a missing unit_price is filled in from the
    catalog when the quote is saved.
    """

    product_id: str
    product_name: str = ""
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)

    @property
    def amount(self) -> Decimal:
        return self.quantity * (self.unit_price or Decimal("0"))


class QuoteTotals(BaseModel):
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_totals(lines: Iterable[QuoteLine], tax_rate: Decimal | None = None) -> QuoteTotals:
    """Subtotal of all lines, tax on the subtotal, and the grand total (rounded to cents)."""
    rate = settings.tax_rate if tax_rate is None else tax_rate
    subtotal = _cents(sum((line.amount for line in lines), Decimal("0")))
    tax = _cents(subtotal * rate)
    return QuoteTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)
