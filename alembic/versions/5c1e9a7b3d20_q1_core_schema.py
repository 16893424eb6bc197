"""q1_core_schema

Revision ID: 5c1e9a7b3d20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5c1e9a7b3d20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

QUIZ_TYPES = "'WORDLE','NUMBER_SEQUENCE','RHYME_TIME','CONCEPT_CONNECTION'"


def upgrade() -> None:
    op.create_table(
        "templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("html", sa.Text(), nullable=False),
        sa.Column("css", sa.Text(), nullable=True),
        sa.Column(
            "variables",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("quiz_type", sa.String(32), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(f"quiz_type IN ({QUIZ_TYPES})", name="ck_templates_quiz_type"),
    )
    op.create_index("idx_templates_quiz_type", "templates", ["quiz_type"])

    op.create_table(
        "quiz_batches",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("template_ids", postgresql.ARRAY(postgresql.UUID(as_uuid=True)), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("completed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("theme", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.String(16), nullable=False),
        sa.Column("variety", sa.SmallInteger(), nullable=False),
        sa.Column("language", sa.String(8), nullable=False),
        sa.Column("time_slot_distribution", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("current_stage", sa.String(32), nullable=False),
        sa.Column("current_template_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('PROCESSING','COMPLETE','FAILED','CANCELLED')",
            name="ck_quiz_batches_status",
        ),
        sa.CheckConstraint(
            "current_stage IN ('preparing','generating','scheduling','processing-images','complete')",
            name="ck_quiz_batches_stage",
        ),
        sa.CheckConstraint(
            "difficulty IN ('easy','medium','hard','progressive')",
            name="ck_quiz_batches_difficulty",
        ),
        sa.CheckConstraint("count > 0", name="ck_quiz_batches_count_positive"),
        sa.CheckConstraint(
            "completed_count >= 0 AND completed_count <= count",
            name="ck_quiz_batches_completed_range",
        ),
        sa.CheckConstraint("variety >= 0 AND variety <= 100", name="ck_quiz_batches_variety_range"),
    )
    op.create_index("idx_quiz_batches_status_created", "quiz_batches", ["status", "created_at"])

    op.create_table(
        "quizzes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("solution", sa.Text(), nullable=True),
        sa.Column(
            "variables",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("language", sa.String(8), nullable=False, server_default=sa.text("'en'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('DRAFT','READY','SCHEDULED','PUBLISHED','FAILED')",
            name="ck_quizzes_status",
        ),
        sa.ForeignKeyConstraint(["template_id"], ["templates.id"]),
        sa.ForeignKeyConstraint(["batch_id"], ["quiz_batches.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_quizzes_template", "quizzes", ["template_id"])
    op.create_index("idx_quizzes_batch_created", "quizzes", ["batch_id", "created_at"])
    op.create_index("idx_quizzes_status_created", "quizzes", ["status", "created_at"])

    op.create_table(
        "scheduled_posts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("fb_post_id", sa.String(128), nullable=True),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('PENDING','PROCESSING','PUBLISHED','FAILED','CANCELLED')",
            name="ck_scheduled_posts_status",
        ),
        sa.CheckConstraint("retry_count >= 0", name="ck_scheduled_posts_retry_count_non_negative"),
        sa.CheckConstraint(
            "(status != 'PUBLISHED') OR published_at IS NOT NULL",
            name="ck_scheduled_posts_published_at_required",
        ),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "uq_scheduled_posts_pending_quiz_time",
        "scheduled_posts",
        ["quiz_id", "scheduled_at"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )
    op.create_index(
        "idx_scheduled_posts_pending_due",
        "scheduled_posts",
        ["scheduled_at"],
        postgresql_where=sa.text("status = 'PENDING'"),
    )
    op.create_index("idx_scheduled_posts_quiz", "scheduled_posts", ["quiz_id"])
    op.create_index("idx_scheduled_posts_status_scheduled", "scheduled_posts", ["status", "scheduled_at"])

    op.create_table(
        "auto_schedule_slots",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("time_of_day", sa.String(5), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_auto_schedule_slots_day_range"),
        sa.CheckConstraint(
            "time_of_day ~ '^([01][0-9]|2[0-3]):[0-5][0-9]$'",
            name="ck_auto_schedule_slots_time_format",
        ),
        sa.UniqueConstraint("day_of_week", "time_of_day", name="uq_auto_schedule_slots_day_time"),
    )

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'NEW'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('NEW','SENT','FAILED')", name="ck_outbox_events_status"),
    )
    op.create_index(
        "idx_outbox_events_type_created_desc",
        "outbox_events",
        ["event_type", sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_outbox_events_new_created",
        "outbox_events",
        ["created_at"],
        postgresql_where=sa.text("status = 'NEW'"),
    )


def downgrade() -> None:
    op.drop_index("idx_outbox_events_new_created", table_name="outbox_events")
    op.drop_index("idx_outbox_events_type_created_desc", table_name="outbox_events")
    op.drop_table("outbox_events")
    op.drop_table("auto_schedule_slots")
    op.drop_index("idx_scheduled_posts_status_scheduled", table_name="scheduled_posts")
    op.drop_index("idx_scheduled_posts_quiz", table_name="scheduled_posts")
    op.drop_index("idx_scheduled_posts_pending_due", table_name="scheduled_posts")
    op.drop_index("uq_scheduled_posts_pending_quiz_time", table_name="scheduled_posts")
    op.drop_table("scheduled_posts")
    op.drop_index("idx_quizzes_status_created", table_name="quizzes")
    op.drop_index("idx_quizzes_batch_created", table_name="quizzes")
    op.drop_index("idx_quizzes_template", table_name="quizzes")
    op.drop_table("quizzes")
    op.drop_index("idx_quiz_batches_status_created", table_name="quiz_batches")
    op.drop_table("quiz_batches")
    op.drop_index("idx_templates_quiz_type", table_name="templates")
    op.drop_table("templates")
