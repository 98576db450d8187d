"""resolution schema: canonical entities, review queue, audit and run ledger

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None

PENDING_ONLY = sa.text("status = 'pending'")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("domain", name="uq_companies_domain"),
    )
    op.create_index("idx_companies_owner_name", "companies", ["owner_id", "name"])
    op.create_index("ix_companies_owner_id", "companies", ["owner_id"])
    op.create_index("uq_companies_domain_lower", "companies", [sa.text("lower(domain)")], unique=True)

    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_contacts_email"),
    )
    op.create_index("idx_contacts_company", "contacts", ["company_id"])
    op.create_index("ix_contacts_owner_id", "contacts", ["owner_id"])
    op.create_index("uq_contacts_email_lower", "contacts", [sa.text("lower(email)")], unique=True)

    op.create_table(
        "deals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("value", sa.Numeric(12, 2), nullable=True),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("contact_name", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=320), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("primary_contact_id", sa.Integer(), nullable=True),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["primary_contact_id"], ["contacts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_deals_company_id", "deals", ["company_id"])
    op.create_index("idx_deals_primary_contact_id", "deals", ["primary_contact_id"])
    op.create_index("idx_deals_created_at", "deals", ["created_at"])
    op.create_index("ix_deals_owner_id", "deals", ["owner_id"])

    op.create_table(
        "review_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("deal_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("original_company", sa.String(length=255), nullable=True),
        sa.Column("original_contact_name", sa.String(length=255), nullable=True),
        sa.Column("original_contact_email", sa.String(length=320), nullable=True),
        sa.Column("suggested_company_id", sa.Integer(), nullable=True),
        sa.Column("suggested_contact_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.String(length=255), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["suggested_company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["suggested_contact_id"], ["contacts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_review_records_pending_deal",
        "review_records",
        ["deal_id"],
        unique=True,
        sqlite_where=PENDING_ONLY,
        postgresql_where=PENDING_ONLY,
    )
    op.create_index("idx_review_records_status", "review_records", ["status"])

    op.create_table(
        "entity_audit",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=40), nullable=False),
        sa.Column("actor", sa.String(length=255), nullable=False),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_entity_audit_entity", "entity_audit", ["entity_type", "entity_id"])

    op.create_table(
        "resolution_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("run_key", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("dry_run", sa.Boolean(), nullable=False),
        sa.Column("params", sa.JSON(), nullable=True),
        sa.Column("processed", sa.Integer(), nullable=False),
        sa.Column("succeeded", sa.Integer(), nullable=False),
        sa.Column("flagged", sa.Integer(), nullable=False),
        sa.Column("errors", sa.Integer(), nullable=False),
        sa.Column("quality_before", sa.JSON(), nullable=True),
        sa.Column("quality_after", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("run_key"),
    )
    op.create_index("idx_resolution_runs_status", "resolution_runs", ["status"])


def downgrade() -> None:
    op.drop_index("idx_resolution_runs_status", table_name="resolution_runs")
    op.drop_table("resolution_runs")
    op.drop_index("idx_entity_audit_entity", table_name="entity_audit")
    op.drop_table("entity_audit")
    op.drop_index("idx_review_records_status", table_name="review_records")
    op.drop_index("uq_review_records_pending_deal", table_name="review_records")
    op.drop_table("review_records")
    for index in ("ix_deals_owner_id", "idx_deals_created_at", "idx_deals_primary_contact_id", "idx_deals_company_id"):
        op.drop_index(index, table_name="deals")
    op.drop_table("deals")
    op.drop_index("uq_contacts_email_lower", table_name="contacts")
    op.drop_index("ix_contacts_owner_id", table_name="contacts")
    op.drop_index("idx_contacts_company", table_name="contacts")
    op.drop_table("contacts")
    op.drop_index("uq_companies_domain_lower", table_name="companies")
    op.drop_index("ix_companies_owner_id", table_name="companies")
    op.drop_index("idx_companies_owner_name", table_name="companies")
    op.drop_table("companies")
