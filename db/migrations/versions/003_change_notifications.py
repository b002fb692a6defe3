"""Row change notifications on leads and contact_entities.

Each INSERT/UPDATE/DELETE publishes
{"schema", "table", "eventType", "new", "old"} on the realtime_changes
channel for the change channel listener.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from alembic import op

revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None

_TABLES = ("leads", "contact_entities")


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION crm.notify_row_change()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            PERFORM pg_notify(
                'realtime_changes',
                json_build_object(
                    'schema', TG_TABLE_SCHEMA,
                    'table', TG_TABLE_NAME,
                    'eventType', TG_OP,
                    'new', CASE WHEN TG_OP = 'DELETE' THEN '{}'::json ELSE row_to_json(NEW) END,
                    'old', CASE WHEN TG_OP = 'INSERT' THEN '{}'::json ELSE row_to_json(OLD) END
                )::text
            );
            RETURN NULL;
        END;
        $$
    """)
    for table in _TABLES:
        op.execute(f"""
            CREATE TRIGGER trg_{table}_notify
            AFTER INSERT OR UPDATE OR DELETE ON crm.{table}
            FOR EACH ROW EXECUTE FUNCTION crm.notify_row_change()
        """)


def downgrade() -> None:
    for table in _TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_notify ON crm.{table}")
    op.execute("DROP FUNCTION IF EXISTS crm.notify_row_change()")
