"""Row-level policies on leads/contact_entities and crm.get_accessible_leads().

The caller is read from the transaction-local setting app.current_user_id.
get_accessible_leads() is SECURITY DEFINER so it can honour role grants that
the plain SELECT policies do not see.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from alembic import op

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

_CURRENT_USER = "nullif(current_setting('app.current_user_id', true), '')::uuid"


def upgrade() -> None:
    op.execute("ALTER TABLE crm.leads ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE crm.contact_entities ENABLE ROW LEVEL SECURITY")

    op.execute(f"""
        CREATE POLICY leads_owner_select ON crm.leads
        FOR SELECT USING (user_id = {_CURRENT_USER})
    """)
    op.execute(f"""
        CREATE POLICY contact_entities_owner_select ON crm.contact_entities
        FOR SELECT USING (
            user_id = {_CURRENT_USER}
            OR EXISTS (
                SELECT 1 FROM crm.leads l
                WHERE l.contact_entity_id = contact_entities.id
                  AND l.user_id = {_CURRENT_USER}
            )
        )
    """)

    op.execute(f"""
        CREATE OR REPLACE FUNCTION crm.get_accessible_leads()
        RETURNS SETOF crm.leads
        LANGUAGE sql
        STABLE
        SECURITY DEFINER
        SET search_path = crm, pg_temp
        AS $$
            SELECT l.*
            FROM crm.leads l
            WHERE l.user_id = {_CURRENT_USER}
               OR {_CURRENT_USER} IN (l.loan_originator_id, l.processor_id, l.underwriter_id)
               OR EXISTS (
                   SELECT 1 FROM crm.user_roles r
                   WHERE r.user_id = {_CURRENT_USER}
                     AND r.is_active
                     AND r.role IN ('manager', 'admin', 'super_admin')
               )
        $$
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS crm.get_accessible_leads()")
    op.execute("DROP POLICY IF EXISTS contact_entities_owner_select ON crm.contact_entities")
    op.execute("DROP POLICY IF EXISTS leads_owner_select ON crm.leads")
    op.execute("ALTER TABLE crm.contact_entities DISABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE crm.leads DISABLE ROW LEVEL SECURITY")
