"""
Campaign Lifecycle State Machine.

    draft ──publish──▶ active ──▶ grace_period ──▶ locked ──▶ done
      │                  │             │    └──────────────────▶ done
      └──────────────────┴─────────────┴──▶ cancelled

Transitions are caller-triggered; the time-based ones (entering and leaving
the grace period) are fired by the Celery jobs in ``workers.campaign_jobs``.
Nothing moves backwards. Every gate raises on violation.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Sequence

from campaigns.brackets import BracketLike
from campaigns.errors import CampaignScheduleError, EmptyBracketSetOnPublish, InvalidBracketSet, InvalidTransition
from campaigns.tiers import minimum_quantity
from campaigns.validation import validate_brackets


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    GRACE_PERIOD = "grace_period"
    LOCKED = "locked"
    CANCELLED = "cancelled"
    DONE = "done"

    @classmethod
    def parse(cls, value: "str | CampaignStatus") -> "CampaignStatus":
        """Case-insensitive lookup ("DRAFT", "Draft" and "draft" all parse)."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"{value!r} is not a valid campaign status") from None


TRANSITIONS: dict[CampaignStatus, frozenset[CampaignStatus]] = {
    CampaignStatus.DRAFT: frozenset({CampaignStatus.ACTIVE, CampaignStatus.CANCELLED}),
    CampaignStatus.ACTIVE: frozenset({CampaignStatus.GRACE_PERIOD, CampaignStatus.CANCELLED}),
    CampaignStatus.GRACE_PERIOD: frozenset({CampaignStatus.LOCKED, CampaignStatus.DONE, CampaignStatus.CANCELLED}),
    CampaignStatus.LOCKED: frozenset({CampaignStatus.DONE}),
    CampaignStatus.CANCELLED: frozenset(),
    CampaignStatus.DONE: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)
PLEDGE_ACCEPTING_STATUSES = frozenset({CampaignStatus.ACTIVE, CampaignStatus.GRACE_PERIOD})


def can_transition(current: "str | CampaignStatus", target: "str | CampaignStatus") -> bool:
    return CampaignStatus.parse(target) in TRANSITIONS[CampaignStatus.parse(current)]


def ensure_transition(current: "str | CampaignStatus", target: "str | CampaignStatus") -> CampaignStatus:
    current_status = CampaignStatus.parse(current)
    target_status = CampaignStatus.parse(target)
    if target_status not in TRANSITIONS[current_status]:
        raise InvalidTransition(
            current_status.value,
            f"move to '{target_status.value}'",
            f"Cannot transition campaign from '{current_status.value}' to '{target_status.value}'",
        )
    return target_status


def _require(status: "str | CampaignStatus", allowed: frozenset[CampaignStatus], operation: str) -> None:
    current = CampaignStatus.parse(status)
    if current not in allowed:
        allowed_names = ", ".join(sorted(f"'{s.value}'" for s in allowed))
        raise InvalidTransition(
            current.value,
            operation,
            f"Cannot {operation} while campaign is '{current.value}'. Allowed: {allowed_names}.",
        )


def ensure_brackets_editable(status: "str | CampaignStatus") -> None:
    _require(status, frozenset({CampaignStatus.DRAFT}), "edit brackets")


def ensure_campaign_editable(status: "str | CampaignStatus") -> None:
    _require(status, frozenset({CampaignStatus.DRAFT}), "edit campaign details")


def ensure_pledge_commit_allowed(status: "str | CampaignStatus") -> None:
    _require(status, frozenset({CampaignStatus.GRACE_PERIOD}), "commit pledges")


def ensure_accepts_pledges(status: "str | CampaignStatus") -> None:
    _require(status, PLEDGE_ACCEPTING_STATUSES, "create pledges")


def ensure_pledges_modifiable(status: "str | CampaignStatus") -> None:
    _require(status, frozenset({CampaignStatus.ACTIVE}), "modify pledges")


def ensure_publishable(
    status: "str | CampaignStatus",
    brackets: Sequence[BracketLike],
    *,
    enforce_price_order: bool = False,
) -> CampaignStatus:
    """Gate for draft -> active: at least one bracket, and a valid set."""
    target = ensure_transition(status, CampaignStatus.ACTIVE)
    if not brackets:
        raise EmptyBracketSetOnPublish()
    result = validate_brackets(brackets, enforce_price_order=enforce_price_order)
    if not result.valid:
        raise InvalidBracketSet(result)
    return target


def ensure_schedule_window(start_date: date, end_date: date, today: date) -> None:
    if start_date > today:
        raise CampaignScheduleError("Campaign start date must be on or before today to publish")
    if end_date <= today:
        raise CampaignScheduleError("Campaign end date must be in the future to publish")


def grace_period_end(end_date: date, grace_period_days: int) -> date:
    return end_date + timedelta(days=grace_period_days)


def is_due_for_grace_period(end_date: date, now: datetime, hours_before_end: int = 48) -> bool:
    return end_date <= (now + timedelta(hours=hours_before_end)).date()


def is_grace_period_over(grace_period_end_date: date | None, today: date) -> bool:
    return grace_period_end_date is not None and grace_period_end_date < today


def evaluation_outcome(committed_quantity: int, brackets: Sequence[BracketLike]) -> CampaignStatus:
    """Lock when committed demand reaches the first bracket, else cancel."""
    if committed_quantity >= minimum_quantity(brackets):
        return CampaignStatus.LOCKED
    return CampaignStatus.CANCELLED
