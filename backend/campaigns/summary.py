"""CampaignPledgeSummary — the one shared view over brackets + pledges."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Generic, Iterable, Sequence
from uuid import UUID

from campaigns.brackets import B, to_decimal
from campaigns.pledges import ACTIVE_PLEDGE_STATUSES, PledgeStatus, aggregate_pledges
from campaigns.progress import BracketProgress, bracket_progress, percent_of_target, percent_within_bracket
from campaigns.tiers import resolve_tier


@dataclass(frozen=True)
class CampaignPledgeSummary(Generic[B]):
    campaign_id: UUID | None
    total_pledges: int
    total_quantity: int
    current_bracket: B | None
    next_bracket: B | None
    units_to_next_bracket: int | None
    current_unit_price: Decimal | None
    percent_to_next_bracket: float
    percent_of_target: float
    brackets: list[BracketProgress[B]]


def build_pledge_summary(
    campaign_id: UUID | None,
    brackets: Sequence[B],
    pledges: Iterable[Any],
    *,
    target_quantity: int | None = None,
    counted_statuses: frozenset[PledgeStatus] | None = ACTIVE_PLEDGE_STATUSES,
) -> CampaignPledgeSummary[B]:
    totals = aggregate_pledges(pledges, counted_statuses)
    tier = resolve_tier(totals.total_quantity, brackets)
    return CampaignPledgeSummary(
        campaign_id=campaign_id,
        total_pledges=totals.total_pledges,
        total_quantity=totals.total_quantity,
        current_bracket=tier.current,
        next_bracket=tier.next,
        units_to_next_bracket=tier.units_to_next,
        current_unit_price=to_decimal(tier.current.unit_price) if tier.current is not None else None,
        percent_to_next_bracket=percent_within_bracket(totals.total_quantity, tier.current, tier.next),
        percent_of_target=percent_of_target(totals.total_quantity, target_quantity),
        brackets=bracket_progress(totals.total_quantity, brackets),
    )
