"""add postgresql triggers for updated_at and append-only submissions

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-18 09:30:00.000000

The ORM listeners cover writes made through the application; these
triggers cover everything else (dashboards, manual SQL, webhooks).
"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "2b3c4d5e6f7a"
down_revision: Union[str, None] = "1a2b3c4d5e6f"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ---------------------------------------------------------------
    # Trigger 1: Keep forms.updated_at current
    # ---------------------------------------------------------------
    op.execute("""
        CREATE OR REPLACE FUNCTION set_forms_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.execute("""
        CREATE TRIGGER trg_forms_updated_at
        BEFORE UPDATE ON forms
        FOR EACH ROW
        EXECUTE FUNCTION set_forms_updated_at();
    """)

    # ---------------------------------------------------------------
    # Trigger 2: Submissions are never updated
    # ---------------------------------------------------------------
    op.execute("""
        CREATE OR REPLACE FUNCTION block_submission_update()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'Submissions are immutable once recorded';
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.execute("""
        CREATE TRIGGER trg_block_submission_update
        BEFORE UPDATE ON submissions
        FOR EACH ROW
        EXECUTE FUNCTION block_submission_update();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_block_submission_update ON submissions")
    op.execute("DROP FUNCTION IF EXISTS block_submission_update()")
    op.execute("DROP TRIGGER IF EXISTS trg_forms_updated_at ON forms")
    op.execute("DROP FUNCTION IF EXISTS set_forms_updated_at()")
