"""
Progress Calculator — display affordances built on the Tier Resolver.

Nothing here affects pricing. Inputs are trusted (they come from
``resolve_tier``); out-of-range values are clamped rather than rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, Sequence

from campaigns.brackets import B, BracketLike, describe_range, sort_by_min_quantity
from campaigns.tiers import resolve_tier

BracketStatus = Literal["achieved", "current", "locked"]


@dataclass(frozen=True)
class BracketProgress(Generic[B]):
    bracket: B
    status: BracketStatus
    label: str


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _position(brackets: Sequence[BracketLike], target: BracketLike) -> int | None:
    for index, bracket in enumerate(brackets):
        if bracket is target:
            return index
    for index, bracket in enumerate(brackets):
        if bracket == target:
            return index
    return None


def classify_bracket(
    bracket: BracketLike,
    current: BracketLike | None,
    sorted_brackets: Sequence[BracketLike],
) -> BracketStatus:
    """Brackets before the current one are achieved, after it locked."""
    if current is None:
        return "locked"
    bracket_pos = _position(sorted_brackets, bracket)
    current_pos = _position(sorted_brackets, current)
    if bracket_pos is None or current_pos is None:
        return "locked"
    if bracket_pos < current_pos:
        return "achieved"
    if bracket_pos == current_pos:
        return "current"
    return "locked"


def percent_within_bracket(
    quantity: int,
    current: BracketLike | None,
    next_bracket: BracketLike | None,
) -> float:
    """Fill of the bar from the current bracket's start to the next bracket's start."""
    if next_bracket is None:
        return 100.0
    start = current.min_quantity if current is not None else 0
    span = next_bracket.min_quantity - start
    if span == 0:
        return 100.0
    return _clamp((quantity - start) / span * 100)


def percent_of_target(quantity: int, target_quantity: int | None) -> float:
    if not target_quantity or target_quantity <= 0:
        return 0.0
    return _clamp(quantity / target_quantity * 100)


def bracket_progress(quantity: int, brackets: Sequence[B]) -> list[BracketProgress[B]]:
    ordered = sort_by_min_quantity(brackets)
    current = resolve_tier(quantity, ordered).current
    return [
        BracketProgress(bracket=b, status=classify_bracket(b, current, ordered), label=describe_range(b))
        for b in ordered
    ]
