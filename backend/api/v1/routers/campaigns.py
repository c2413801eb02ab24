"""
Campaigns Router — CRUD, lifecycle actions and pricing views.

Suppliers own their campaigns; details and brackets are editable only in
'draft'. Lifecycle actions go through CampaignLifecycleService so every
status change is audited.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, get_organization_id
from api.v1.routers.brackets import BracketIn, BracketResponse, check_bracket_set, get_owned_campaign
from campaigns.errors import CampaignNotFound, InvalidTransition
from campaigns.lifecycle import CampaignStatus, ensure_brackets_editable, ensure_campaign_editable
from campaigns.service import CampaignLifecycleService, load_brackets
from campaigns.tiers import base_unit_price, discount_percentage, resolve_tier
from db.models import Campaign, CampaignStatusAudit, DiscountBracket

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/campaigns", tags=["campaigns"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class CampaignCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    product_details: dict[str, Any] | None = None
    target_quantity: int = Field(..., gt=0)
    start_date: date
    end_date: date
    brackets: list[BracketIn] = []

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class CampaignUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    product_details: dict[str, Any] | None = None
    target_quantity: int | None = Field(None, gt=0)
    start_date: date | None = None
    end_date: date | None = None
    brackets: list[BracketIn] | None = Field(None, description="Replaces the whole bracket set")

    @model_validator(mode="after")
    def reject_nulls(self):
        for field in ("title", "target_quantity", "start_date", "end_date"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class CampaignResponse(BaseModel):
    campaign_id: UUID
    supplier_id: UUID
    title: str
    description: str | None
    product_details: dict[str, Any] | None
    target_quantity: int
    start_date: date
    end_date: date
    grace_period_end_date: date | None
    status: str
    created_at: datetime
    updated_at: datetime
    brackets: list[BracketResponse] = []


class CancelRequest(BaseModel):
    reason_code: str = Field("cancelled_by_supplier", min_length=1, max_length=64)


class BracketProgressResponse(BaseModel):
    bracket: BracketResponse
    status: str
    label: str


class PledgeSummaryResponse(BaseModel):
    campaign_id: UUID
    total_pledges: int
    total_quantity: int
    current_bracket: BracketResponse | None
    next_bracket: BracketResponse | None
    units_to_next_bracket: int | None
    current_unit_price: Decimal | None
    percent_to_next_bracket: float
    percent_of_target: float
    brackets: list[BracketProgressResponse]


class PriceQuoteResponse(BaseModel):
    quantity: int
    bracket: BracketResponse | None
    unit_price: Decimal | None
    total_price: Decimal | None
    discount_percentage: int | None
    next_bracket: BracketResponse | None
    units_to_next_bracket: int | None


class StatusAuditResponse(BaseModel):
    audit_id: UUID
    from_status: str | None
    to_status: str
    reason_code: str
    snapshot: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ─── Helpers ────────────────────────────────────────────────────────────────


async def _campaign_response(db: AsyncSession, campaign: Campaign) -> CampaignResponse:
    brackets = await load_brackets(db, campaign.campaign_id)
    return CampaignResponse(
        campaign_id=campaign.campaign_id,
        supplier_id=campaign.supplier_id,
        title=campaign.title,
        description=campaign.description,
        product_details=campaign.product_details,
        target_quantity=campaign.target_quantity,
        start_date=campaign.start_date,
        end_date=campaign.end_date,
        grace_period_end_date=campaign.grace_period_end_date,
        status=campaign.status,
        created_at=campaign.created_at,
        updated_at=campaign.updated_at,
        brackets=[BracketResponse.model_validate(b) for b in brackets],
    )


async def _get_campaign(db: AsyncSession, campaign_id: UUID) -> Campaign:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise CampaignNotFound(f"Campaign with id {campaign_id} not found")
    return campaign


def _bracket_or_none(bracket: DiscountBracket | None) -> BracketResponse | None:
    return BracketResponse.model_validate(bracket) if bracket is not None else None


# ─── CRUD ───────────────────────────────────────────────────────────────────


@router.get("/", response_model=list[CampaignResponse])
async def list_campaigns(
    status_filter: str | None = Query(None, alias="status"),
    supplier_id: UUID | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List campaigns, newest first."""
    query = select(Campaign)
    if status_filter:
        try:
            query = query.where(Campaign.status == CampaignStatus.parse(status_filter).value)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from None
    if supplier_id:
        query = query.where(Campaign.supplier_id == supplier_id)
    query = query.order_by(Campaign.created_at.desc()).offset(skip).limit(limit)

    result = await db.execute(query)
    return [await _campaign_response(db, c) for c in result.scalars().all()]


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: UUID, db: AsyncSession = Depends(get_db)):
    campaign = await _get_campaign(db, campaign_id)
    return await _campaign_response(db, campaign)


@router.post("/", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    body: CampaignCreate,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    """Create a draft campaign, optionally with its bracket set."""
    if body.brackets:
        check_bracket_set(body.brackets)

    campaign = Campaign(
        supplier_id=organization_id,
        status=CampaignStatus.DRAFT.value,
        **body.model_dump(exclude={"brackets"}),
    )
    db.add(campaign)
    await db.flush()
    for bracket in body.brackets:
        db.add(DiscountBracket(campaign_id=campaign.campaign_id, **bracket.model_dump()))
    await db.commit()
    await db.refresh(campaign)

    logger.info(
        "campaign.created",
        campaign_id=str(campaign.campaign_id),
        supplier_id=str(organization_id),
        bracket_count=len(body.brackets),
    )
    return await _campaign_response(db, campaign)


@router.patch("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: UUID,
    body: CampaignUpdate,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    campaign = await get_owned_campaign(db, campaign_id, organization_id)
    ensure_campaign_editable(campaign.status)

    changes = body.model_dump(exclude_unset=True, exclude={"brackets"})
    start = changes.get("start_date", campaign.start_date)
    end = changes.get("end_date", campaign.end_date)
    if end < start:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")

    if body.brackets is not None:
        ensure_brackets_editable(campaign.status)
        check_bracket_set(body.brackets)
        await db.execute(delete(DiscountBracket).where(DiscountBracket.campaign_id == campaign_id))
        for bracket in body.brackets:
            db.add(DiscountBracket(campaign_id=campaign_id, **bracket.model_dump()))

    for field, value in changes.items():
        setattr(campaign, field, value)
    await db.commit()
    await db.refresh(campaign)
    return await _campaign_response(db, campaign)


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    """Delete a draft. Published campaigns are cancelled, never deleted."""
    campaign = await get_owned_campaign(db, campaign_id, organization_id)
    if CampaignStatus.parse(campaign.status) != CampaignStatus.DRAFT:
        raise InvalidTransition(campaign.status, "delete campaign", "Only draft campaigns can be deleted")
    await db.delete(campaign)
    await db.commit()
    logger.info("campaign.deleted", campaign_id=str(campaign_id))


# ─── Lifecycle Actions ──────────────────────────────────────────────────────


@router.post("/{campaign_id}/publish", response_model=CampaignResponse)
@router.patch("/{campaign_id}/publish", response_model=CampaignResponse)
async def publish_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    await get_owned_campaign(db, campaign_id, organization_id)
    campaign = await CampaignLifecycleService(db).publish(campaign_id)
    await db.commit()
    await db.refresh(campaign)
    return await _campaign_response(db, campaign)


@router.post("/{campaign_id}/grace-period", response_model=CampaignResponse)
async def start_grace_period(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    """Open the commit window early (normally done by the hourly job)."""
    await get_owned_campaign(db, campaign_id, organization_id)
    campaign = await CampaignLifecycleService(db).start_grace_period(campaign_id)
    await db.commit()
    await db.refresh(campaign)
    return await _campaign_response(db, campaign)


@router.post("/{campaign_id}/evaluate", response_model=CampaignResponse)
async def evaluate_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    await get_owned_campaign(db, campaign_id, organization_id)
    campaign = await CampaignLifecycleService(db).evaluate(campaign_id)
    await db.commit()
    await db.refresh(campaign)
    return await _campaign_response(db, campaign)


@router.post("/{campaign_id}/lock", response_model=CampaignResponse)
async def lock_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    await get_owned_campaign(db, campaign_id, organization_id)
    campaign = await CampaignLifecycleService(db).lock(campaign_id)
    await db.commit()
    await db.refresh(campaign)
    return await _campaign_response(db, campaign)


@router.post("/{campaign_id}/cancel", response_model=CampaignResponse)
async def cancel_campaign(
    campaign_id: UUID,
    body: CancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    await get_owned_campaign(db, campaign_id, organization_id)
    reason_code = body.reason_code if body is not None else "cancelled_by_supplier"
    campaign = await CampaignLifecycleService(db).cancel(campaign_id, reason_code=reason_code)
    await db.commit()
    await db.refresh(campaign)
    return await _campaign_response(db, campaign)


@router.post("/{campaign_id}/complete", response_model=CampaignResponse)
async def complete_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    await get_owned_campaign(db, campaign_id, organization_id)
    campaign = await CampaignLifecycleService(db).complete(campaign_id)
    await db.commit()
    await db.refresh(campaign)
    return await _campaign_response(db, campaign)


# ─── Pricing Views ──────────────────────────────────────────────────────────


@router.get("/{campaign_id}/summary", response_model=PledgeSummaryResponse)
async def get_pledge_summary(campaign_id: UUID, db: AsyncSession = Depends(get_db)):
    """Live pledge totals, current/next bracket and progress bars."""
    summary = await CampaignLifecycleService(db).pledge_summary(campaign_id)
    return PledgeSummaryResponse(
        campaign_id=summary.campaign_id,
        total_pledges=summary.total_pledges,
        total_quantity=summary.total_quantity,
        current_bracket=_bracket_or_none(summary.current_bracket),
        next_bracket=_bracket_or_none(summary.next_bracket),
        units_to_next_bracket=summary.units_to_next_bracket,
        current_unit_price=summary.current_unit_price,
        percent_to_next_bracket=summary.percent_to_next_bracket,
        percent_of_target=summary.percent_of_target,
        brackets=[
            BracketProgressResponse(
                bracket=BracketResponse.model_validate(p.bracket),
                status=p.status,
                label=p.label,
            )
            for p in summary.brackets
        ],
    )


@router.get("/{campaign_id}/price", response_model=PriceQuoteResponse)
async def quote_price(
    campaign_id: UUID,
    quantity: int = Query(..., ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Unit price a given aggregate quantity would unlock."""
    await _get_campaign(db, campaign_id)
    brackets = await load_brackets(db, campaign_id)
    tier = resolve_tier(quantity, brackets)

    unit_price = tier.current.unit_price if tier.current is not None else None
    base_price = base_unit_price(brackets)
    return PriceQuoteResponse(
        quantity=quantity,
        bracket=_bracket_or_none(tier.current),
        unit_price=unit_price,
        total_price=unit_price * quantity if unit_price is not None else None,
        discount_percentage=(
            discount_percentage(base_price, unit_price) if unit_price is not None and base_price is not None else None
        ),
        next_bracket=_bracket_or_none(tier.next),
        units_to_next_bracket=tier.units_to_next,
    )


@router.get("/{campaign_id}/history", response_model=list[StatusAuditResponse])
async def get_status_history(campaign_id: UUID, db: AsyncSession = Depends(get_db)):
    """Lifecycle transitions, oldest first."""
    await _get_campaign(db, campaign_id)
    result = await db.execute(
        select(CampaignStatusAudit)
        .where(CampaignStatusAudit.campaign_id == campaign_id)
        .order_by(CampaignStatusAudit.created_at)
    )
    return result.scalars().all()
