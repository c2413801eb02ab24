"""
Pledges Router — buyer quantity commitments.

Buyers pledge while a campaign is active or in its grace period, adjust or
withdraw only while it is active, and commit only during the grace period.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, get_organization_id
from api.v1.routers.brackets import get_owned_campaign
from campaigns.pledges import PledgeStatus
from campaigns.service import PledgeService
from db.models import Pledge

router = APIRouter(prefix="/api/v1", tags=["pledges"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class PledgeCreate(BaseModel):
    quantity: int = Field(..., gt=0)


class PledgeUpdate(BaseModel):
    quantity: int = Field(..., gt=0)


class PledgeResponse(BaseModel):
    pledge_id: UUID
    campaign_id: UUID
    buyer_org_id: UUID
    quantity: int
    status: str
    committed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


def _parse_status(value: str) -> PledgeStatus:
    try:
        return PledgeStatus.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.post(
    "/campaigns/{campaign_id}/pledges",
    response_model=PledgeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_pledge(
    campaign_id: UUID,
    body: PledgeCreate,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    pledge = await PledgeService(db).create(campaign_id, organization_id, body.quantity)
    await db.commit()
    await db.refresh(pledge)
    return pledge


@router.get("/campaigns/{campaign_id}/pledges", response_model=list[PledgeResponse])
async def list_campaign_pledges(
    campaign_id: UUID,
    status_filter: str | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    """All pledges on a campaign. Visible to the owning supplier only."""
    await get_owned_campaign(db, campaign_id, organization_id)
    query = select(Pledge).where(Pledge.campaign_id == campaign_id)
    if status_filter:
        query = query.where(Pledge.status == _parse_status(status_filter).value)
    result = await db.execute(query.order_by(Pledge.created_at))
    return result.scalars().all()


@router.get("/pledges/", response_model=list[PledgeResponse])
async def list_my_pledges(
    status_filter: str | None = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    """The caller's pledges. Withdrawn pledges are hidden unless asked for."""
    query = select(Pledge).where(Pledge.buyer_org_id == organization_id)
    if status_filter:
        query = query.where(Pledge.status == _parse_status(status_filter).value)
    else:
        query = query.where(Pledge.status != PledgeStatus.WITHDRAWN.value)
    query = query.order_by(Pledge.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.patch("/pledges/{pledge_id}", response_model=PledgeResponse)
async def update_pledge(
    pledge_id: UUID,
    body: PledgeUpdate,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    pledge = await PledgeService(db).update_quantity(pledge_id, organization_id, body.quantity)
    await db.commit()
    await db.refresh(pledge)
    return pledge


@router.post("/pledges/{pledge_id}/withdraw", response_model=PledgeResponse)
async def withdraw_pledge(
    pledge_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    pledge = await PledgeService(db).withdraw(pledge_id, organization_id)
    await db.commit()
    await db.refresh(pledge)
    return pledge


@router.post("/pledges/{pledge_id}/commit", response_model=PledgeResponse)
async def commit_pledge(
    pledge_id: UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: UUID = Depends(get_organization_id),
):
    """Firm up a pending pledge during the grace period."""
    pledge = await PledgeService(db).commit(pledge_id, organization_id)
    await db.commit()
    await db.refresh(pledge)
    return pledge
