"""Money arithmetic for assignment amounts and vendor commission."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from backoffice.exceptions import ValidationException

CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize to cents. Floats go through ``str`` to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_amount(unit_price: Decimal, quantity: int) -> Decimal:
    return to_money(Decimal(unit_price) * quantity)


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    return to_money(sum((Decimal(a) for a in amounts), Decimal("0")))


def commission_for(amount: Decimal, commission_rate: Decimal | None) -> Decimal:
    """Commission payable on ``amount`` at a percentage rate in [0, 100].

    A vendor without a configured rate earns no commission.
    """
    if commission_rate is None:
        return to_money(0)
    rate = Decimal(commission_rate)
    if rate < 0 or rate > _HUNDRED:
        raise ValidationException(f"Commission rate {rate} must be between 0 and 100")
    return to_money(Decimal(amount) * rate / _HUNDRED)
