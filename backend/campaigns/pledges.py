"""
Pledge Aggregator — reduces pledge records to the Tier Resolver's input.

Which statuses count is an explicit policy argument:
  ACTIVE_PLEDGE_STATUSES     pending + committed, used for displayed pricing
  COMMITTED_PLEDGE_STATUSES  committed only, used when locking/evaluating
  None                       every supplied pledge (caller pre-filtered)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class PledgeStatus(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    WITHDRAWN = "withdrawn"

    @classmethod
    def parse(cls, value: "str | PledgeStatus") -> "PledgeStatus":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"{value!r} is not a valid pledge status") from None


ACTIVE_PLEDGE_STATUSES = frozenset({PledgeStatus.PENDING, PledgeStatus.COMMITTED})
COMMITTED_PLEDGE_STATUSES = frozenset({PledgeStatus.COMMITTED})


@dataclass(frozen=True)
class PledgeTotals:
    total_pledges: int
    total_quantity: int


def aggregate_pledges(
    pledges: Iterable[Any],
    counted_statuses: frozenset[PledgeStatus] | None = ACTIVE_PLEDGE_STATUSES,
) -> PledgeTotals:
    """Count and sum pledges (objects with ``quantity`` and ``status``)."""
    total_pledges = 0
    total_quantity = 0
    for pledge in pledges:
        if counted_statuses is not None and PledgeStatus.parse(pledge.status) not in counted_statuses:
            continue
        total_pledges += 1
        total_quantity += pledge.quantity
    return PledgeTotals(total_pledges=total_pledges, total_quantity=total_quantity)
