"""Money helpers and the consignor/shop split calculation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    """Coerce ints, floats, strings or Decimals to a Decimal rounded to cents."""

    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_float(value) -> float:
    """Money value as a float for JSON payloads (None counts as zero)."""

    return float(to_money(value))


@dataclass(frozen=True)
class SplitResult:
    consignor_amount: Decimal
    shop_amount: Decimal
    split_percentage: Decimal


def calculate_split(sale_price, split_percentage) -> SplitResult:
    """Split a sale between consignor and shop.

    The consignor share is rounded half-up to the cent and the shop keeps the
    remainder, so both parts always add up to the sale price.
    """

    price = to_money(sale_price)
    if price < 0:
        raise ValueError("Sale price cannot be negative")
    try:
        pct = Decimal(str(split_percentage))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid split percentage: {split_percentage!r}") from exc
    if pct < 0 or pct > HUNDRED:
        raise ValueError("Split percentage must be between 0 and 100")

    consignor_amount = (price * pct / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    return SplitResult(
        consignor_amount=consignor_amount,
        shop_amount=price - consignor_amount,
        split_percentage=pct.quantize(CENT, rounding=ROUND_HALF_UP),
    )


__all__ = ["SplitResult", "calculate_split", "to_float", "to_money"]
