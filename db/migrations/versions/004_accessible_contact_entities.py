"""crm.get_accessible_contact_entities(ids): detail rows for accessible leads.

The contact_entities row policy only admits the caller's own entities, so
leads returned through an assignment or a role grant would join to nothing.
This function returns the requested entities that back any lead
crm.get_accessible_leads() gives the caller.

Revision ID: 004
Revises: 003
Create Date: 2026-10-20
"""
from alembic import op

revision = "004"
down_revision = "003"
branch_labels = None
depends_on = None

_CURRENT_USER = "nullif(current_setting('app.current_user_id', true), '')::uuid"


def upgrade() -> None:
    op.execute(f"""
        CREATE OR REPLACE FUNCTION crm.get_accessible_contact_entities(ids uuid[])
        RETURNS SETOF crm.contact_entities
        LANGUAGE sql
        STABLE
        SECURITY DEFINER
        SET search_path = crm, pg_temp
        AS $$
            SELECT c.*
            FROM crm.contact_entities c
            WHERE c.id = ANY(ids)
              AND (
                  c.user_id = {_CURRENT_USER}
                  OR EXISTS (
                      SELECT 1 FROM crm.get_accessible_leads() l
                      WHERE l.contact_entity_id = c.id
                  )
              )
        $$
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS crm.get_accessible_contact_entities(uuid[])")
