"""
Initial schema - organizations, campaigns, brackets, pledges, status audit

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. Organizations
    op.create_table(
        "organizations",
        sa.Column(
            "organization_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("org_type", sa.String(20), nullable=False, server_default="buyer"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("org_type IN ('supplier', 'buyer')", name="ck_organization_type"),
        sa.CheckConstraint("status IN ('active', 'pending', 'inactive')", name="ck_organization_status"),
    )

    # 2. Campaigns
    op.create_table(
        "campaigns",
        sa.Column("campaign_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "supplier_id", UUID(as_uuid=True), sa.ForeignKey("organizations.organization_id"), nullable=False
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("product_details", JSONB),
        sa.Column("target_quantity", sa.Integer, nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("grace_period_end_date", sa.Date),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("target_quantity > 0", name="ck_campaign_target_positive"),
        sa.CheckConstraint("end_date >= start_date", name="ck_campaign_dates_valid"),
        sa.CheckConstraint(
            "status IN ('draft', 'active', 'grace_period', 'locked', 'cancelled', 'done')",
            name="ck_campaign_status",
        ),
    )
    op.create_index("ix_campaigns_supplier_status", "campaigns", ["supplier_id", "status"])
    op.create_index("ix_campaigns_status_dates", "campaigns", ["status", "start_date", "end_date"])

    # 3. Discount brackets
    op.create_table(
        "discount_brackets",
        sa.Column("bracket_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "campaign_id",
            UUID(as_uuid=True),
            sa.ForeignKey("campaigns.campaign_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("min_quantity", sa.Integer, nullable=False),
        sa.Column("max_quantity", sa.Integer),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("bracket_order", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("campaign_id", "bracket_order", name="uq_bracket_order_per_campaign"),
        sa.CheckConstraint("min_quantity >= 1", name="ck_bracket_min_positive"),
        sa.CheckConstraint("max_quantity IS NULL OR max_quantity >= min_quantity", name="ck_bracket_range_valid"),
        sa.CheckConstraint("unit_price >= 0", name="ck_bracket_price_positive"),
        sa.CheckConstraint("bracket_order > 0", name="ck_bracket_order_positive"),
    )
    op.create_index("ix_brackets_campaign", "discount_brackets", ["campaign_id"])

    # 4. Pledges
    op.create_table(
        "pledges",
        sa.Column("pledge_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "campaign_id",
            UUID(as_uuid=True),
            sa.ForeignKey("campaigns.campaign_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "buyer_org_id", UUID(as_uuid=True), sa.ForeignKey("organizations.organization_id"), nullable=False
        ),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("committed_at", sa.DateTime),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("campaign_id", "buyer_org_id", name="uq_pledge_campaign_buyer"),
        sa.CheckConstraint("quantity > 0", name="ck_pledge_quantity_positive"),
        sa.CheckConstraint("status IN ('pending', 'committed', 'withdrawn')", name="ck_pledge_status"),
    )
    op.create_index("ix_pledges_campaign_status", "pledges", ["campaign_id", "status"])
    op.create_index("ix_pledges_buyer", "pledges", ["buyer_org_id"])

    # 5. Campaign status audit
    op.create_table(
        "campaign_status_audit",
        sa.Column("audit_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "campaign_id",
            UUID(as_uuid=True),
            sa.ForeignKey("campaigns.campaign_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(20)),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("reason_code", sa.String(64), nullable=False),
        sa.Column("snapshot", JSONB),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_status_audit_campaign", "campaign_status_audit", ["campaign_id", "created_at"])


def downgrade() -> None:
    tables = [
        "campaign_status_audit",
        "pledges",
        "discount_brackets",
        "campaigns",
        "organizations",
    ]
    for table in tables:
        op.drop_table(table)
