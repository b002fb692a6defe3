"""Initial schema: crm.contact_entities, crm.leads, crm.user_roles.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS crm")

    op.create_table(
        "contact_entities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("first_name", sa.Text, nullable=True),
        sa.Column("last_name", sa.Text, nullable=True),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("location", sa.Text, nullable=True),
        sa.Column("business_name", sa.Text, nullable=True),
        sa.Column("business_address", sa.Text, nullable=True),
        sa.Column("loan_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("loan_type", sa.Text, nullable=True),
        sa.Column("annual_revenue", sa.Numeric(14, 2), nullable=True),
        sa.Column("net_operating_income", sa.Numeric(14, 2), nullable=True),
        sa.Column("credit_score", sa.Integer, nullable=True),
        sa.Column("stage", sa.Text, nullable=True),
        sa.Column("priority", sa.Text, nullable=True),
        sa.Column("naics_code", sa.Text, nullable=True),
        sa.Column("ownership_structure", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("call_notes", sa.Text, nullable=True),
        sa.Column("bdo_name", sa.Text, nullable=True),
        sa.Column("bdo_telephone", sa.Text, nullable=True),
        sa.Column("bdo_email", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        schema="crm",
    )

    op.create_table(
        "leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("lead_number", sa.BigInteger, sa.Identity(always=False), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("contact_entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_converted_to_client", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("loan_originator_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("processor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("underwriter_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("contact_entity_id", name="uq_lead_contact_entity"),
        sa.ForeignKeyConstraint(
            ["contact_entity_id"], ["crm.contact_entities.id"],
            name="fk_lead_contact_entity", ondelete="SET NULL",
        ),
        schema="crm",
    )
    op.create_index("ix_leads_user_id", "leads", ["user_id"], schema="crm")
    op.create_index("ix_leads_created_at", "leads", ["created_at"], schema="crm")

    op.create_table(
        "user_roles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "role IN ('viewer','tech','closer','underwriter','funder',"
            "'loan_processor','loan_originator','manager','admin','super_admin')",
            name="ck_user_role",
        ),
        sa.UniqueConstraint("user_id", "role", name="uq_user_role"),
        schema="crm",
    )


def downgrade() -> None:
    op.drop_index("ix_leads_created_at", table_name="leads", schema="crm")
    op.drop_index("ix_leads_user_id", table_name="leads", schema="crm")
    # Drop in reverse dependency order
    op.drop_table("user_roles", schema="crm")
    op.drop_table("leads", schema="crm")
    op.drop_table("contact_entities", schema="crm")
