"""series, videos, quizzes and cumulative quizzes

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-17 10:12:41.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "series",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("title", sa.String(length=512), nullable=True),
    )

    op.create_table(
        "videos",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("title", sa.String(length=512), nullable=True),
        sa.Column("series_id", sa.BigInteger(), sa.ForeignKey("series.id", ondelete="SET NULL"), nullable=True),
        sa.Column("state", sa.String(length=32), nullable=False, server_default="ready"),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("created", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_videos_series_id", "videos", ["series_id"])

    op.create_table(
        "ai_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("video_id", sa.BigInteger(), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("quiz_data", sa.Text(), nullable=False),
        sa.Column("model", sa.String(length=50), nullable=False),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("video_id", "language", name="uq_ai_quizzes_video_lang"),
    )
    op.create_index("ix_ai_quizzes_id", "ai_quizzes", ["id"])
    op.create_index("ix_ai_quizzes_video_id", "ai_quizzes", ["video_id"])

    op.create_table(
        "ai_cumulative_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("video_id", sa.BigInteger(), nullable=False),
        sa.Column("series_id", sa.BigInteger(), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("model", sa.String(length=50), nullable=False),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        sa.Column("questions_json", sa.Text(), nullable=False),
        sa.Column("included_video_ids_json", sa.Text(), nullable=False),
        sa.Column("member_statuses_json", sa.Text(), nullable=True),
        sa.Column("video_count", sa.Integer(), nullable=False),
        sa.Column("question_count", sa.Integer(), nullable=False, server_default="0"),
        # moderation columns are written by the admin layer only
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edited_by_human", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("flag_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("video_id", "language", name="uq_cumulative_quiz_video_lang"),
        sa.CheckConstraint("video_count > 0", name="ck_cumulative_quiz_video_count"),
    )
    op.create_index("ix_ai_cumulative_quizzes_id", "ai_cumulative_quizzes", ["id"])
    op.create_index("ix_ai_cumulative_quizzes_video_id", "ai_cumulative_quizzes", ["video_id"])
    op.create_index("ix_ai_cumulative_quizzes_series_id", "ai_cumulative_quizzes", ["series_id"])
    op.create_index("ix_ai_cumulative_quizzes_language", "ai_cumulative_quizzes", ["language"])

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("job_type", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("jobs")
    op.drop_index("ix_ai_cumulative_quizzes_language", table_name="ai_cumulative_quizzes")
    op.drop_index("ix_ai_cumulative_quizzes_series_id", table_name="ai_cumulative_quizzes")
    op.drop_index("ix_ai_cumulative_quizzes_video_id", table_name="ai_cumulative_quizzes")
    op.drop_index("ix_ai_cumulative_quizzes_id", table_name="ai_cumulative_quizzes")
    op.drop_table("ai_cumulative_quizzes")
    op.drop_index("ix_ai_quizzes_video_id", table_name="ai_quizzes")
    op.drop_index("ix_ai_quizzes_id", table_name="ai_quizzes")
    op.drop_table("ai_quizzes")
    op.drop_index("ix_videos_series_id", table_name="videos")
    op.drop_table("videos")
    op.drop_table("series")
