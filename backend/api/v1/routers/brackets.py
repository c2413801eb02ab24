"""
Discount Bracket Router — tier editing for draft campaigns.

Brackets are editable only while the campaign is in 'draft'. Every write is
checked against the whole resulting set, so a stored set is always valid:
  - POST   /campaigns/{id}/brackets              add one bracket
  - PATCH  /campaigns/{id}/brackets/{bracket_id} change one bracket
  - DELETE /campaigns/{id}/brackets/{bracket_id} remove one bracket
  - POST   /campaigns/{id}/brackets/validate     dry run for editors (never errors)
"""

from decimal import Decimal
from typing import Sequence
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, get_organization_id
from api.errors import validation_payload
from campaigns.brackets import Bracket, BracketLike
from campaigns.errors import CampaignNotFound, InvalidBracketSet
from campaigns.lifecycle import ensure_brackets_editable
from campaigns.service import load_brackets
from campaigns.validation import validate_brackets
from core.config import get_settings
from db.models import Campaign, DiscountBracket

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/campaigns", tags=["brackets"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class BracketIn(BaseModel):
    min_quantity: int = Field(..., ge=1)
    max_quantity: int | None = Field(None, ge=1, description="NULL = unbounded above (last bracket only)")
    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    bracket_order: int = Field(..., gt=0)


class BracketUpdate(BaseModel):
    min_quantity: int | None = Field(None, ge=1)
    max_quantity: int | None = Field(None, ge=1)
    unit_price: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    bracket_order: int | None = Field(None, gt=0)

    @model_validator(mode="after")
    def reject_nulls(self):
        # max_quantity may be cleared to make the bracket unbounded
        for field in ("min_quantity", "unit_price", "bracket_order"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class BracketResponse(BaseModel):
    bracket_id: UUID
    campaign_id: UUID
    min_quantity: int
    max_quantity: int | None
    unit_price: Decimal
    bracket_order: int

    model_config = {"from_attributes": True}


class BracketValidationResponse(BaseModel):
    valid: bool
    error_kind: str | None
    offending_indices: list[int]
    message: str | None


# ─── Helpers ────────────────────────────────────────────────────────────────


async def get_owned_campaign(db: AsyncSession, campaign_id: UUID, organization_id: UUID) -> Campaign:
    """Campaign owned by the calling supplier; others' campaigns look absent."""
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None or campaign.supplier_id != organization_id:
        raise CampaignNotFound(f"Campaign with id {campaign_id} not found")
    return campaign


def check_bracket_set(candidate: Sequence[BracketLike]) -> None:
    """Raise unless the full candidate set is consistent."""
    orders = [b.bracket_order for b in candidate]
    if len(orders) != len(set(orders)):
        raise HTTPException(status_code=422, detail="bracket_order must be unique within a campaign")
    result = validate_brackets(candidate, enforce_price_order=get_settings().enforce_bracket_price_order)
    if not result.valid:
        raise InvalidBracketSet(result)


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/{campaign_id}/brackets", response_model=list[BracketResponse])
async def list_brackets(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Brackets of a campaign, ordered by bracket_order."""
    if await db.get(Campaign, campaign_id) is None:
        raise CampaignNotFound(f"Campaign with id {campaign_id} not found")
    return await load_brackets(db, campaign_id)


@router.post("/{campaign_id}/brackets/validate", response_model=BracketValidationResponse)
async def validate_bracket_set(campaign_id: UUID, body: list[BracketIn]):
    """Validate a proposed bracket set without saving it."""
    result = validate_brackets(body, enforce_price_order=get_settings().enforce_bracket_price_order)
    return validation_payload(result)


@router.post("/{campaign_id}/brackets", response_model=BracketResponse, status_code=status.HTTP_201_CREATED)
async def create_bracket(
    campaign_id: UUID,
    body: BracketIn,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    campaign = await get_owned_campaign(db, campaign_id, organization_id)
    ensure_brackets_editable(campaign.status)

    existing = await load_brackets(db, campaign_id)
    check_bracket_set([*existing, body])

    bracket = DiscountBracket(campaign_id=campaign_id, **body.model_dump())
    db.add(bracket)
    await db.commit()
    await db.refresh(bracket)
    logger.info("bracket.created", campaign_id=str(campaign_id), bracket_id=str(bracket.bracket_id))
    return bracket


@router.patch("/{campaign_id}/brackets/{bracket_id}", response_model=BracketResponse)
async def update_bracket(
    campaign_id: UUID,
    bracket_id: UUID,
    body: BracketUpdate,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    campaign = await get_owned_campaign(db, campaign_id, organization_id)
    ensure_brackets_editable(campaign.status)

    existing = await load_brackets(db, campaign_id)
    bracket = next((b for b in existing if b.bracket_id == bracket_id), None)
    if bracket is None:
        raise HTTPException(status_code=404, detail="Bracket not found")

    changes = body.model_dump(exclude_unset=True)
    proposed = Bracket(
        min_quantity=changes.get("min_quantity", bracket.min_quantity),
        max_quantity=changes.get("max_quantity", bracket.max_quantity),
        unit_price=changes.get("unit_price", bracket.unit_price),
        bracket_order=changes.get("bracket_order", bracket.bracket_order),
    )
    check_bracket_set([b for b in existing if b is not bracket] + [proposed])

    for field, value in changes.items():
        setattr(bracket, field, value)
    await db.commit()
    await db.refresh(bracket)
    return bracket


@router.delete("/{campaign_id}/brackets/{bracket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bracket(
    campaign_id: UUID,
    bracket_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    campaign = await get_owned_campaign(db, campaign_id, organization_id)
    ensure_brackets_editable(campaign.status)

    bracket = await db.get(DiscountBracket, bracket_id)
    if bracket is None or bracket.campaign_id != campaign_id:
        raise HTTPException(status_code=404, detail="Bracket not found")
    await db.delete(bracket)
    await db.commit()
    logger.info("bracket.deleted", campaign_id=str(campaign_id), bracket_id=str(bracket_id))
