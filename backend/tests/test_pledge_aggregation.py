from decimal import Decimal
from types import SimpleNamespace

import pytest

from campaigns.brackets import Bracket
from campaigns.pledges import (
    ACTIVE_PLEDGE_STATUSES,
    COMMITTED_PLEDGE_STATUSES,
    PledgeStatus,
    aggregate_pledges,
)
from campaigns.summary import build_pledge_summary

BRACKETS = [
    Bracket(min_quantity=10, max_quantity=49, unit_price=Decimal("25.00"), bracket_order=1),
    Bracket(min_quantity=50, max_quantity=99, unit_price=Decimal("22.00"), bracket_order=2),
    Bracket(min_quantity=100, max_quantity=None, unit_price=Decimal("19.00"), bracket_order=3),
]


def _pledge(quantity, status="pending"):
    return SimpleNamespace(quantity=quantity, status=status)


PLEDGES = [
    _pledge(20, "pending"),
    _pledge(15, "COMMITTED"),
    _pledge(40, "withdrawn"),
    _pledge(5, "committed"),
]


def test_default_policy_counts_pending_and_committed():
    totals = aggregate_pledges(PLEDGES)
    assert totals.total_pledges == 3
    assert totals.total_quantity == 40


def test_committed_policy():
    totals = aggregate_pledges(PLEDGES, COMMITTED_PLEDGE_STATUSES)
    assert totals.total_pledges == 2
    assert totals.total_quantity == 20


def test_unfiltered_policy_counts_everything():
    totals = aggregate_pledges(PLEDGES, None)
    assert totals.total_pledges == 4
    assert totals.total_quantity == 80


def test_empty_pledge_list():
    totals = aggregate_pledges([])
    assert totals.total_pledges == 0
    assert totals.total_quantity == 0


def test_unknown_pledge_status_is_rejected():
    with pytest.raises(ValueError, match="not a valid pledge status"):
        aggregate_pledges([_pledge(5, "refunded")])


def test_status_sets():
    assert ACTIVE_PLEDGE_STATUSES == {PledgeStatus.PENDING, PledgeStatus.COMMITTED}
    assert PledgeStatus.parse("Withdrawn") is PledgeStatus.WITHDRAWN


def test_summary_combines_aggregate_and_tier():
    summary = build_pledge_summary(None, BRACKETS, PLEDGES, target_quantity=200)
    assert summary.total_pledges == 3
    assert summary.total_quantity == 40
    assert summary.current_bracket is BRACKETS[0]
    assert summary.next_bracket is BRACKETS[1]
    assert summary.units_to_next_bracket == 10
    assert summary.current_unit_price == Decimal("25.00")
    assert summary.percent_to_next_bracket == 75.0
    assert summary.percent_of_target == 20.0
    assert [p.status for p in summary.brackets] == ["current", "locked", "locked"]


def test_summary_respects_counting_policy():
    summary = build_pledge_summary(None, BRACKETS, PLEDGES, counted_statuses=COMMITTED_PLEDGE_STATUSES)
    assert summary.total_quantity == 20
    assert summary.current_bracket is BRACKETS[0]
    assert summary.percent_of_target == 0.0


def test_summary_without_pledges():
    summary = build_pledge_summary(None, BRACKETS, [])
    assert summary.current_bracket is None
    assert summary.current_unit_price is None
    assert summary.next_bracket is BRACKETS[0]
    assert summary.units_to_next_bracket == 10
    assert summary.percent_to_next_bracket == 0.0


def test_summary_at_top_bracket():
    summary = build_pledge_summary(None, BRACKETS, [_pledge(150, "committed")])
    assert summary.current_bracket is BRACKETS[2]
    assert summary.next_bracket is None
    assert summary.units_to_next_bracket is None
    assert summary.percent_to_next_bracket == 100.0
