"""Discount bracket value type and helpers shared by the pricing engine."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol, Sequence, TypeVar
from uuid import UUID


class BracketLike(Protocol):
    min_quantity: int
    max_quantity: int | None
    unit_price: Any
    bracket_order: int


B = TypeVar("B", bound=BracketLike)


@dataclass(frozen=True)
class Bracket:
    """Engine-side snapshot of a discount bracket.

    ORM rows and request payloads expose the same attributes and can be
    passed to the engine directly; this type exists for callers that
    build bracket sets in memory.
    """

    min_quantity: int
    max_quantity: int | None
    unit_price: Decimal
    bracket_order: int
    bracket_id: UUID | None = None
    campaign_id: UUID | None = None


def to_decimal(value: Any) -> Decimal:
    """Parse a price into an exact Decimal. Floats are refused."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"unit price must be a decimal string or Decimal, got {type(value).__name__}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"invalid decimal price: {value!r}") from exc


def contains(bracket: BracketLike, quantity: int) -> bool:
    """Inclusive on both ends; a NULL max is unbounded above."""
    if quantity < bracket.min_quantity:
        return False
    return bracket.max_quantity is None or quantity <= bracket.max_quantity


def sort_by_min_quantity(brackets: Sequence[B]) -> list[B]:
    # sorted() is stable, so equal minimums keep their original order
    return sorted(brackets, key=lambda b: b.min_quantity)


def sort_by_bracket_order(brackets: Sequence[B]) -> list[B]:
    return sorted(brackets, key=lambda b: b.bracket_order)


def describe_range(bracket: BracketLike) -> str:
    if bracket.max_quantity is None:
        return f"{bracket.min_quantity}+ units"
    return f"{bracket.min_quantity} - {bracket.max_quantity} units"
