"""baseline engine schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

sensor_samples, medications and daily_summary are written by upstream
producers; baseline_metrics / baseline_history are owned by this service.
baseline_history is append-only.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- sensor_samples ---
    op.create_table(
        "sensor_samples",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("metric_type", sa.String(64), nullable=False),
        sa.Column("metric_value", sa.Float(), nullable=False),
        sa.Column("sample_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sensor_samples_id", "sensor_samples", ["id"])
    op.create_index("ix_sensor_samples_user_id", "sensor_samples", ["user_id"])
    op.create_index("ix_sensor_samples_user_time", "sensor_samples", ["user_id", "sample_time"])

    # --- medications ---
    op.create_table(
        "medications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("med_name", sa.String(128), nullable=False),
        sa.Column("dosage", sa.String(64), nullable=False),
        sa.Column("schedule", sa.String(64), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_medications_id", "medications", ["id"])
    op.create_index("ix_medications_user_id", "medications", ["user_id"])
    op.create_index("ix_medications_created_at", "medications", ["created_at"])

    # --- daily_summary ---
    op.create_table(
        "daily_summary",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("summary_date", sa.Date(), nullable=False),
        sa.Column("sleep_hours", sa.Float(), nullable=True),
        sa.Column("steps", sa.Float(), nullable=True),
        sa.Column("screen_unlocks", sa.Float(), nullable=True),
        sa.Column("risk_level", sa.String(16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "summary_date", name="uq_daily_summary_user_date"),
    )
    op.create_index("ix_daily_summary_id", "daily_summary", ["id"])
    op.create_index("ix_daily_summary_user_id", "daily_summary", ["user_id"])
    op.create_index("ix_daily_summary_summary_date", "daily_summary", ["summary_date"])

    # --- baseline_metrics ---
    op.create_table(
        "baseline_metrics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("sleep_mean", sa.Float(), nullable=True),
        sa.Column("sleep_sd", sa.Float(), nullable=True),
        sa.Column("steps_mean", sa.Float(), nullable=True),
        sa.Column("steps_sd", sa.Float(), nullable=True),
        sa.Column("unlocks_mean", sa.Float(), nullable=True),
        sa.Column("unlocks_sd", sa.Float(), nullable=True),
        sa.Column("calculation_method", sa.String(64), nullable=True),
        sa.Column("window_days", sa.Integer(), nullable=True),
        sa.Column("medication_changes_detected", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("(sleep_mean IS NULL) = (sleep_sd IS NULL)", name="ck_baseline_sleep_pair"),
        sa.CheckConstraint("(steps_mean IS NULL) = (steps_sd IS NULL)", name="ck_baseline_steps_pair"),
        sa.CheckConstraint("(unlocks_mean IS NULL) = (unlocks_sd IS NULL)", name="ck_baseline_unlocks_pair"),
    )
    op.create_index("ix_baseline_metrics_id", "baseline_metrics", ["id"])
    op.create_index("ix_baseline_metrics_user_id", "baseline_metrics", ["user_id"], unique=True)
    op.create_index("ix_baseline_metrics_updated_at", "baseline_metrics", ["updated_at"])

    # --- baseline_history ---
    op.create_table(
        "baseline_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("baseline_data", sa.Text(), nullable=False),
        sa.Column("replaced_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_baseline_history_id", "baseline_history", ["id"])
    op.create_index("ix_baseline_history_user_id", "baseline_history", ["user_id"])


def downgrade() -> None:
    op.drop_table("baseline_history")
    op.drop_table("baseline_metrics")
    op.drop_table("daily_summary")
    op.drop_table("medications")
    op.drop_table("sensor_samples")
