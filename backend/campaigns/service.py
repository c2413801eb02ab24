"""
Campaign Lifecycle Service — the pure engine applied to stored campaigns.

Each status change is written together with a campaign_status_audit row in
the caller's transaction. Methods flush but never commit; API endpoints and
Celery jobs own the commit.

Serialization of concurrent transitions on one campaign is the database's
job (row lock / transaction isolation); this class holds no state of its own.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campaigns.errors import (
    CampaignNotFound,
    InvalidPledgeState,
    InvalidTransition,
    MinimumNotMet,
    PledgeAccessDenied,
    PledgeAlreadyExists,
    PledgeNotFound,
)
from campaigns.lifecycle import (
    CampaignStatus,
    ensure_accepts_pledges,
    ensure_pledge_commit_allowed,
    ensure_pledges_modifiable,
    ensure_publishable,
    ensure_schedule_window,
    ensure_transition,
    evaluation_outcome,
    grace_period_end,
)
from campaigns.pledges import COMMITTED_PLEDGE_STATUSES, PledgeStatus, aggregate_pledges
from campaigns.summary import CampaignPledgeSummary, build_pledge_summary
from campaigns.tiers import minimum_quantity, resolve_tier
from core.config import Settings, get_settings
from db.models import Campaign, CampaignStatusAudit, DiscountBracket, Pledge

logger = structlog.get_logger()


async def load_brackets(db: AsyncSession, campaign_id: UUID) -> list[DiscountBracket]:
    result = await db.execute(
        select(DiscountBracket)
        .where(DiscountBracket.campaign_id == campaign_id)
        .order_by(DiscountBracket.bracket_order)
    )
    return list(result.scalars().all())


async def load_pledges(
    db: AsyncSession,
    campaign_id: UUID,
    statuses: frozenset[PledgeStatus] | None = None,
) -> list[Pledge]:
    query = select(Pledge).where(Pledge.campaign_id == campaign_id)
    if statuses is not None:
        query = query.where(Pledge.status.in_([s.value for s in statuses]))
    result = await db.execute(query.order_by(Pledge.created_at))
    return list(result.scalars().all())


class CampaignLifecycleService:
    """Status transitions for persisted campaigns."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    async def get_campaign(self, campaign_id: UUID) -> Campaign:
        campaign = await self.db.get(Campaign, campaign_id)
        if campaign is None:
            raise CampaignNotFound(f"Campaign with id {campaign_id} not found")
        return campaign

    async def publish(self, campaign_id: UUID, today: date | None = None) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        brackets = await load_brackets(self.db, campaign_id)

        target = ensure_publishable(
            campaign.status,
            brackets,
            enforce_price_order=self.settings.enforce_bracket_price_order,
        )
        ensure_schedule_window(campaign.start_date, campaign.end_date, today or date.today())

        await self._transition(campaign, target, "published", {"bracket_count": len(brackets)})
        return campaign

    async def start_grace_period(self, campaign_id: UUID) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        target = ensure_transition(campaign.status, CampaignStatus.GRACE_PERIOD)

        campaign.grace_period_end_date = grace_period_end(campaign.end_date, self.settings.grace_period_days)
        await self._transition(
            campaign,
            target,
            "grace_period_started",
            {"grace_period_end_date": campaign.grace_period_end_date.isoformat()},
        )
        return campaign

    async def evaluate(self, campaign_id: UUID) -> Campaign:
        """
        Close the grace period: lock if committed demand reached the first
        bracket, otherwise cancel. Pledges still pending are withdrawn
        either way, since they were never committed.
        """
        campaign = await self.get_campaign(campaign_id)
        if CampaignStatus.parse(campaign.status) != CampaignStatus.GRACE_PERIOD:
            raise InvalidTransition(campaign.status, "evaluate campaign")

        brackets = await load_brackets(self.db, campaign_id)
        pledges = await load_pledges(self.db, campaign_id)
        committed = aggregate_pledges(pledges, COMMITTED_PLEDGE_STATUSES).total_quantity
        withdrawn = self._withdraw_pending(pledges)

        outcome = evaluation_outcome(committed, brackets)
        snapshot = self._pricing_snapshot(committed, brackets)
        snapshot["withdrawn_pending_pledges"] = withdrawn
        reason = "minimum_met" if outcome == CampaignStatus.LOCKED else "minimum_not_met"
        await self._transition(campaign, outcome, reason, snapshot)
        return campaign

    async def lock(self, campaign_id: UUID) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        target = ensure_transition(campaign.status, CampaignStatus.LOCKED)

        brackets = await load_brackets(self.db, campaign_id)
        pledges = await load_pledges(self.db, campaign_id)
        committed = aggregate_pledges(pledges, COMMITTED_PLEDGE_STATUSES).total_quantity
        minimum_required = minimum_quantity(brackets)
        if committed < minimum_required:
            logger.warning(
                "campaign.lock_rejected",
                campaign_id=str(campaign_id),
                committed_quantity=committed,
                minimum_required=minimum_required,
            )
            raise MinimumNotMet(committed, minimum_required)

        snapshot = self._pricing_snapshot(committed, brackets)
        snapshot["withdrawn_pending_pledges"] = self._withdraw_pending(pledges)
        await self._transition(campaign, target, "manual_lock", snapshot)
        return campaign

    async def cancel(self, campaign_id: UUID, reason_code: str = "cancelled_by_supplier") -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        target = ensure_transition(campaign.status, CampaignStatus.CANCELLED)
        await self._transition(campaign, target, reason_code, {})
        return campaign

    async def complete(self, campaign_id: UUID) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        target = ensure_transition(campaign.status, CampaignStatus.DONE)
        await self._transition(campaign, target, "completed", {})
        return campaign

    async def pledge_summary(self, campaign_id: UUID) -> CampaignPledgeSummary[DiscountBracket]:
        campaign = await self.get_campaign(campaign_id)
        brackets = await load_brackets(self.db, campaign_id)
        pledges = await load_pledges(self.db, campaign_id)
        return build_pledge_summary(
            campaign.campaign_id,
            brackets,
            pledges,
            target_quantity=campaign.target_quantity,
        )

    # ─── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _withdraw_pending(pledges: list[Pledge]) -> int:
        withdrawn = 0
        for pledge in pledges:
            if PledgeStatus.parse(pledge.status) == PledgeStatus.PENDING:
                pledge.status = PledgeStatus.WITHDRAWN.value
                withdrawn += 1
        return withdrawn

    @staticmethod
    def _pricing_snapshot(committed: int, brackets: list[DiscountBracket]) -> dict[str, Any]:
        final = resolve_tier(committed, brackets).current
        return {
            "committed_quantity": committed,
            "minimum_required": minimum_quantity(brackets),
            "final_bracket_id": str(final.bracket_id) if final is not None else None,
            "final_unit_price": str(final.unit_price) if final is not None else None,
        }

    async def _transition(
        self,
        campaign: Campaign,
        target: CampaignStatus,
        reason_code: str,
        snapshot: dict[str, Any],
    ) -> None:
        previous = CampaignStatus.parse(campaign.status)
        campaign.status = target.value
        campaign.updated_at = datetime.utcnow()
        self.db.add(
            CampaignStatusAudit(
                campaign_id=campaign.campaign_id,
                from_status=previous.value,
                to_status=target.value,
                reason_code=reason_code,
                snapshot=snapshot,
            )
        )
        await self.db.flush()
        logger.info(
            "campaign.status_changed",
            campaign_id=str(campaign.campaign_id),
            from_status=previous.value,
            to_status=target.value,
            reason_code=reason_code,
        )


class PledgeService:
    """Buyer-side pledge operations, gated by the campaign's status."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_owned_pledge(self, pledge_id: UUID, buyer_org_id: UUID) -> tuple[Pledge, Campaign]:
        pledge = await self.db.get(Pledge, pledge_id)
        if pledge is None:
            raise PledgeNotFound(f"Pledge with id {pledge_id} not found")
        if pledge.buyer_org_id != buyer_org_id:
            raise PledgeAccessDenied()
        campaign = await self.db.get(Campaign, pledge.campaign_id)
        return pledge, campaign

    async def create(self, campaign_id: UUID, buyer_org_id: UUID, quantity: int) -> Pledge:
        campaign = await self.db.get(Campaign, campaign_id)
        if campaign is None:
            raise CampaignNotFound(f"Campaign with id {campaign_id} not found")
        ensure_accepts_pledges(campaign.status)

        result = await self.db.execute(
            select(Pledge).where(Pledge.campaign_id == campaign_id, Pledge.buyer_org_id == buyer_org_id)
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            if PledgeStatus.parse(existing.status) != PledgeStatus.WITHDRAWN:
                raise PledgeAlreadyExists(
                    f"A pledge already exists for campaign {campaign_id} by buyer {buyer_org_id}"
                )
            logger.info(
                "pledge.reactivated",
                pledge_id=str(existing.pledge_id),
                campaign_id=str(campaign_id),
                buyer_org_id=str(buyer_org_id),
            )
            existing.status = PledgeStatus.PENDING.value
            existing.quantity = quantity
            existing.committed_at = None
            await self.db.flush()
            return existing

        pledge = Pledge(
            campaign_id=campaign_id,
            buyer_org_id=buyer_org_id,
            quantity=quantity,
            status=PledgeStatus.PENDING.value,
        )
        self.db.add(pledge)
        await self.db.flush()
        logger.info("pledge.created", pledge_id=str(pledge.pledge_id), campaign_id=str(campaign_id), quantity=quantity)
        return pledge

    async def update_quantity(self, pledge_id: UUID, buyer_org_id: UUID, quantity: int) -> Pledge:
        pledge, campaign = await self._get_owned_pledge(pledge_id, buyer_org_id)
        ensure_pledges_modifiable(campaign.status)
        if PledgeStatus.parse(pledge.status) == PledgeStatus.WITHDRAWN:
            raise InvalidPledgeState(f"Pledge {pledge_id} is withdrawn and cannot be updated")
        pledge.quantity = quantity
        await self.db.flush()
        return pledge

    async def withdraw(self, pledge_id: UUID, buyer_org_id: UUID) -> Pledge:
        pledge, campaign = await self._get_owned_pledge(pledge_id, buyer_org_id)
        if PledgeStatus.parse(pledge.status) == PledgeStatus.WITHDRAWN:
            logger.debug("pledge.already_withdrawn", pledge_id=str(pledge_id))
            return pledge
        ensure_pledges_modifiable(campaign.status)
        pledge.status = PledgeStatus.WITHDRAWN.value
        await self.db.flush()
        logger.info("pledge.withdrawn", pledge_id=str(pledge_id), campaign_id=str(campaign.campaign_id))
        return pledge

    async def commit(self, pledge_id: UUID, buyer_org_id: UUID) -> Pledge:
        pledge, campaign = await self._get_owned_pledge(pledge_id, buyer_org_id)
        ensure_pledge_commit_allowed(campaign.status)
        if PledgeStatus.parse(pledge.status) != PledgeStatus.PENDING:
            raise InvalidPledgeState(
                f"Only pending pledges can be committed. Pledge {pledge_id} is '{pledge.status}'"
            )
        pledge.status = PledgeStatus.COMMITTED.value
        pledge.committed_at = datetime.utcnow()
        await self.db.flush()
        logger.info("pledge.committed", pledge_id=str(pledge_id), campaign_id=str(campaign.campaign_id))
        return pledge
