"""
GroupBuy Database Models

5 tables for the cooperative procurement marketplace.
Suppliers publish time-boxed campaigns with quantity-based discount brackets;
buyer organizations pledge quantities against them.

Tables:
  1. organizations          - Supplier and buyer organizations
  2. campaigns              - Time-boxed group-buying campaigns (lifecycle status)
  3. discount_brackets      - Quantity ranges with a unit price, per campaign
  4. pledges                - Buyer quantity commitments, per campaign
  5. campaign_status_audit  - Audit trail of lifecycle transitions
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


from sqlalchemy.orm import relationship

from db.session import Base

# ─── 1. Organizations ──────────────────────────────────────────────────────


class Organization(Base):
    __tablename__ = "organizations"

    organization_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    org_type = Column(String(20), nullable=False, default="buyer")
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("org_type IN ('supplier', 'buyer')", name="ck_organization_type"),
        CheckConstraint("status IN ('active', 'pending', 'inactive')", name="ck_organization_status"),
    )

    campaigns = relationship("Campaign", back_populates="supplier")
    pledges = relationship("Pledge", back_populates="buyer")


# ─── 2. Campaigns ──────────────────────────────────────────────────────────


class Campaign(Base):
    __tablename__ = "campaigns"

    campaign_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    supplier_id = Column(GUID(), ForeignKey("organizations.organization_id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    product_details = Column(JSON)  # free-form key/value pairs
    target_quantity = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    grace_period_end_date = Column(Date)  # set when the grace period starts
    status = Column(String(20), nullable=False, default="draft")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_campaigns_supplier_status", "supplier_id", "status"),
        Index("ix_campaigns_status_dates", "status", "start_date", "end_date"),
        CheckConstraint("target_quantity > 0", name="ck_campaign_target_positive"),
        CheckConstraint("end_date >= start_date", name="ck_campaign_dates_valid"),
        CheckConstraint(
            "status IN ('draft', 'active', 'grace_period', 'locked', 'cancelled', 'done')",
            name="ck_campaign_status",
        ),
    )

    supplier = relationship("Organization", back_populates="campaigns")
    brackets = relationship(
        "DiscountBracket",
        back_populates="campaign",
        cascade="all, delete-orphan",
        order_by="DiscountBracket.bracket_order",
    )
    pledges = relationship("Pledge", back_populates="campaign", cascade="all, delete-orphan")


# ─── 3. Discount Brackets ──────────────────────────────────────────────────


class DiscountBracket(Base):
    __tablename__ = "discount_brackets"

    bracket_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(GUID(), ForeignKey("campaigns.campaign_id", ondelete="CASCADE"), nullable=False)
    min_quantity = Column(Integer, nullable=False)
    max_quantity = Column(Integer)  # NULL = unbounded above
    unit_price = Column(Numeric(12, 2), nullable=False)
    bracket_order = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("campaign_id", "bracket_order", name="uq_bracket_order_per_campaign"),
        Index("ix_brackets_campaign", "campaign_id"),
        CheckConstraint("min_quantity >= 1", name="ck_bracket_min_positive"),
        CheckConstraint("max_quantity IS NULL OR max_quantity >= min_quantity", name="ck_bracket_range_valid"),
        CheckConstraint("unit_price >= 0", name="ck_bracket_price_positive"),
        CheckConstraint("bracket_order > 0", name="ck_bracket_order_positive"),
    )

    campaign = relationship("Campaign", back_populates="brackets")


# ─── 4. Pledges ────────────────────────────────────────────────────────────


class Pledge(Base):
    __tablename__ = "pledges"

    pledge_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(GUID(), ForeignKey("campaigns.campaign_id", ondelete="CASCADE"), nullable=False)
    buyer_org_id = Column(GUID(), ForeignKey("organizations.organization_id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    committed_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("campaign_id", "buyer_org_id", name="uq_pledge_campaign_buyer"),
        Index("ix_pledges_campaign_status", "campaign_id", "status"),
        Index("ix_pledges_buyer", "buyer_org_id"),
        CheckConstraint("quantity > 0", name="ck_pledge_quantity_positive"),
        CheckConstraint("status IN ('pending', 'committed', 'withdrawn')", name="ck_pledge_status"),
    )

    campaign = relationship("Campaign", back_populates="pledges")
    buyer = relationship("Organization", back_populates="pledges")


# ─── 5. Campaign Status Audit ──────────────────────────────────────────────


class CampaignStatusAudit(Base):
    __tablename__ = "campaign_status_audit"

    audit_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(GUID(), ForeignKey("campaigns.campaign_id", ondelete="CASCADE"), nullable=False)
    from_status = Column(String(20))
    to_status = Column(String(20), nullable=False)
    reason_code = Column(String(64), nullable=False)
    snapshot = Column(JSON)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (Index("ix_status_audit_campaign", "campaign_id", "created_at"),)
