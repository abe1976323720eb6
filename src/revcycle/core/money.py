"""Money helpers: cent rounding and exact proportional allocation."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from revcycle.core.errors import MalformedInputError


if TYPE_CHECKING:
    from collections.abc import Sequence

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
TOLERANCE = Decimal("0.01")


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Quantize a value to two decimal places, rounding half up.

    Floats go through ``str`` first so binary noise is not carried over.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def within_tolerance(left: Decimal, right: Decimal, tolerance: Decimal = TOLERANCE) -> bool:
    return abs(left - right) <= tolerance


def allocate(total: Decimal, weights: Sequence[Decimal | float | int]) -> list[Decimal]:
    """Split ``total`` across ``weights`` so the parts sum to it exactly.

    Weights are normalized to proportions, each share is rounded to the cent,
    and whatever residual remains is assigned to the share with the largest
    weight (the first one on ties).

    Args:
        total: Amount to split, already quantized to cents.
        weights: Non-negative relative weights, at least one positive.

    Returns:
        One amount per weight, in the same order.
    """
    if not weights:
        raise MalformedInputError("Cannot allocate across zero weights")
    parts = [Decimal(str(w)) if isinstance(w, float) else Decimal(w) for w in weights]
    if any(w < 0 for w in parts):
        raise MalformedInputError(f"Negative allocation weight in {list(weights)}")
    weight_sum = sum(parts)
    if weight_sum <= 0:
        raise MalformedInputError("Allocation weights must have a positive sum")

    total = to_money(total)
    shares = [to_money(total * w / weight_sum) for w in parts]
    residual = total - sum(shares)
    if residual:
        largest = max(range(len(parts)), key=lambda i: (parts[i], -i))
        shares[largest] += residual
    return shares
