"""Keep change notifications under the pg_notify payload limit.

pg_notify rejects payloads of 8000 bytes or more, which would abort the
write that fired the trigger. Rows too large to publish in full (long
notes, call notes) are published with their id only; listeners refetch.

Revision ID: 005
Revises: 004
Create Date: 2026-10-20
"""
from alembic import op

revision = "005"
down_revision = "004"
branch_labels = None
depends_on = None

MAX_PAYLOAD_BYTES = 7900

_FULL_ROW_FUNCTION = """
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
"""


def upgrade() -> None:
    op.execute(f"""
        CREATE OR REPLACE FUNCTION crm.notify_row_change()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        DECLARE
            payload text;
        BEGIN
            payload := json_build_object(
                'schema', TG_TABLE_SCHEMA,
                'table', TG_TABLE_NAME,
                'eventType', TG_OP,
                'new', CASE WHEN TG_OP = 'DELETE' THEN '{{}}'::json ELSE row_to_json(NEW) END,
                'old', CASE WHEN TG_OP = 'INSERT' THEN '{{}}'::json ELSE row_to_json(OLD) END
            )::text;
            IF octet_length(payload) > {MAX_PAYLOAD_BYTES} THEN
                payload := json_build_object(
                    'schema', TG_TABLE_SCHEMA,
                    'table', TG_TABLE_NAME,
                    'eventType', TG_OP,
                    'new', CASE WHEN TG_OP = 'DELETE' THEN '{{}}'::json ELSE json_build_object('id', NEW.id) END,
                    'old', CASE WHEN TG_OP = 'INSERT' THEN '{{}}'::json ELSE json_build_object('id', OLD.id) END
                )::text;
            END IF;
            PERFORM pg_notify('realtime_changes', payload);
            RETURN NULL;
        END;
        $$
    """)


def downgrade() -> None:
    op.execute(_FULL_ROW_FUNCTION)
