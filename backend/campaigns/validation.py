"""
BracketSet Validator — consistency rules for a campaign's discount brackets.

Checks, in order:
  1. Inverted range: max_quantity < min_quantity (first offender in the
     caller's original order).
  2. Overlap: after sorting a copy by min_quantity, each bracket must end
     strictly before the next one starts. A NULL max is +inf, so an
     unbounded bracket may only be the last one.
  3. (opt-in) Price order: unit_price may not rise as bracket_order rises.

Failures are returned as values, never raised, so editors can show inline
messages while the supplier keeps editing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from campaigns.brackets import BracketLike, to_decimal


class BracketErrorKind(str, Enum):
    MIN_EXCEEDS_MAX = "min_exceeds_max"
    OVERLAPPING_RANGES = "overlapping_ranges"
    PRICE_NOT_DECREASING = "price_not_decreasing"


ERROR_MESSAGES: dict[BracketErrorKind, str] = {
    BracketErrorKind.MIN_EXCEEDS_MAX: "Min must be less than max quantity",
    BracketErrorKind.OVERLAPPING_RANGES: "Brackets cannot overlap",
    BracketErrorKind.PRICE_NOT_DECREASING: "Unit price cannot increase in later brackets",
}


@dataclass(frozen=True)
class BracketValidationResult:
    valid: bool
    error_kind: BracketErrorKind | None = None
    offending_indices: tuple[int, ...] = ()
    message: str | None = None

    @classmethod
    def ok(cls) -> "BracketValidationResult":
        return cls(valid=True)

    @classmethod
    def failure(cls, kind: BracketErrorKind, *indices: int) -> "BracketValidationResult":
        return cls(valid=False, error_kind=kind, offending_indices=tuple(indices), message=ERROR_MESSAGES[kind])


def validate_brackets(
    brackets: Sequence[BracketLike],
    *,
    enforce_price_order: bool = False,
) -> BracketValidationResult:
    """Validate a bracket set. An empty set is valid."""
    for index, bracket in enumerate(brackets):
        if bracket.max_quantity is not None and bracket.max_quantity < bracket.min_quantity:
            return BracketValidationResult.failure(BracketErrorKind.MIN_EXCEEDS_MAX, index)

    ordered = sorted(range(len(brackets)), key=lambda i: brackets[i].min_quantity)
    for current_idx, next_idx in zip(ordered, ordered[1:]):
        current, following = brackets[current_idx], brackets[next_idx]
        # an unbounded bracket must be last; older editors let it sit below another bracket
        if current.max_quantity is None or current.max_quantity >= following.min_quantity:
            return BracketValidationResult.failure(BracketErrorKind.OVERLAPPING_RANGES, current_idx, next_idx)

    if enforce_price_order:
        by_order = sorted(range(len(brackets)), key=lambda i: brackets[i].bracket_order)
        for prev_idx, next_idx in zip(by_order, by_order[1:]):
            if to_decimal(brackets[next_idx].unit_price) > to_decimal(brackets[prev_idx].unit_price):
                return BracketValidationResult.failure(BracketErrorKind.PRICE_NOT_DECREASING, prev_idx, next_idx)

    return BracketValidationResult.ok()
