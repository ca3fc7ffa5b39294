"""create forms, questions, answer_options and submissions

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "forms",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_name", sa.String(length=200), nullable=False),
        sa.Column("subdomain", sa.String(length=63), nullable=False),
        sa.Column(
            "score_threshold", sa.Integer(), nullable=False, server_default=sa.text("60")
        ),
        sa.Column("redirect_good_url", sa.Text(), nullable=False),
        sa.Column("redirect_bad_url", sa.Text(), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column("google_sheet_url", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.CheckConstraint(
            "subdomain ~ '^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$'",
            name="ck_forms_subdomain_slug",
        ),
    )
    op.create_index("uq_forms_subdomain", "forms", ["subdomain"], unique=True)
    op.create_index("idx_forms_owner", "forms", ["owner_id"])

    op.create_table(
        "questions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "form_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column(
            "question_type",
            sa.String(length=20),
            nullable=False,
            server_default="radio",
        ),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.CheckConstraint(
            "question_type IN ('radio', 'select')", name="ck_question_type"
        ),
    )
    op.create_index(
        "idx_questions_form_order", "questions", ["form_id", "order_index"]
    )

    op.create_table(
        "answer_options",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "question_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("option_text", sa.Text(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "order_index", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
    )
    op.create_index(
        "idx_answer_options_question_order",
        "answer_options",
        ["question_id", "order_index"],
    )

    op.create_table(
        "submissions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "form_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("calculated_score", sa.Integer(), nullable=False),
        sa.Column(
            "submitted_data",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "utm_params",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "idx_submissions_form_created", "submissions", ["form_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("idx_submissions_form_created", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("idx_answer_options_question_order", table_name="answer_options")
    op.drop_table("answer_options")
    op.drop_index("idx_questions_form_order", table_name="questions")
    op.drop_table("questions")
    op.drop_index("idx_forms_owner", table_name="forms")
    op.drop_index("uq_forms_subdomain", table_name="forms")
    op.drop_table("forms")
