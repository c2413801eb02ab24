"""
Tier Resolver — which bracket applies to an aggregate pledged quantity.

Quantities are integers and never rounded. Prices stay Decimal end to end.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Generic, Sequence

from campaigns.brackets import B, BracketLike, contains, sort_by_bracket_order, sort_by_min_quantity, to_decimal


@dataclass(frozen=True)
class TierResolution(Generic[B]):
    current: B | None
    next: B | None
    units_to_next: int | None


def resolve_tier(total_quantity: int, brackets: Sequence[B]) -> TierResolution[B]:
    """
    Resolve the current and next bracket for a total pledged quantity.

    The current bracket is the first (by min_quantity) whose inclusive range
    contains the quantity; next is the bracket right after it. Outside every
    range (below the first bracket, or in a gap) current is None and next is
    the first bracket starting above the quantity.
    """
    ordered = sort_by_min_quantity(brackets)

    current: B | None = None
    following: B | None = None
    for position, bracket in enumerate(ordered):
        if contains(bracket, total_quantity):
            current = bracket
            following = ordered[position + 1] if position + 1 < len(ordered) else None
            break

    if current is None:
        following = next((b for b in ordered if b.min_quantity > total_quantity), None)

    units_to_next = following.min_quantity - total_quantity if following is not None else None
    return TierResolution(current=current, next=following, units_to_next=units_to_next)


def unit_price_for_quantity(quantity: int, brackets: Sequence[BracketLike]) -> Decimal | None:
    """Unit price of the bracket containing ``quantity``; None outside every bracket."""
    current = resolve_tier(quantity, brackets).current
    return to_decimal(current.unit_price) if current is not None else None


def minimum_quantity(brackets: Sequence[BracketLike]) -> int:
    """Lowest bracket start; the quantity a campaign must reach to lock."""
    return min((b.min_quantity for b in brackets), default=0)


def base_unit_price(brackets: Sequence[BracketLike]) -> Decimal | None:
    """Undiscounted price: the first bracket by bracket_order."""
    ordered = sort_by_bracket_order(brackets)
    return to_decimal(ordered[0].unit_price) if ordered else None


def discount_percentage(base_price: Any, final_price: Any) -> int:
    """Whole-percent saving of ``final_price`` against ``base_price`` (half-up)."""
    base = to_decimal(base_price)
    if base == 0:
        return 0
    saving = (base - to_decimal(final_price)) * 100 / base
    return int(saving.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
