"""VAT arithmetic on Decimal amounts."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert JSON numbers and strings to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def vat_from_amount(amount: Any, rate: Any, included: bool) -> Decimal:
    """VAT portion of ``amount``.

    When VAT is included the amount is gross and the VAT fraction is
    ``rate / (1 + rate)``; otherwise VAT is added on top at ``rate``.
    """
    amount = to_decimal(amount)
    rate = to_decimal(rate)
    if included:
        return quantize(amount * rate / (1 + rate))
    return quantize(amount * rate)


@dataclass(frozen=True)
class InvoiceTotals:
    net: Decimal
    vat: Decimal
    total: Decimal


def invoice_totals(amount: Any, rate: Any, included: bool) -> InvoiceTotals:
    amount = quantize(to_decimal(amount))
    vat = vat_from_amount(amount, rate, included)
    if included:
        return InvoiceTotals(net=amount - vat, vat=vat, total=amount)
    return InvoiceTotals(net=amount, vat=vat, total=amount + vat)


def expense_vat(amount: Any, rate: Any) -> Decimal:
    """Claimable input VAT on an expense."""
    return quantize(to_decimal(amount) * to_decimal(rate))


def net_vat(collected: Decimal, claimable: Decimal) -> Decimal:
    """Output VAT minus input VAT. Positive is payable, negative refundable."""
    return quantize(collected - claimable)
