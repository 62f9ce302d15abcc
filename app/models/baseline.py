"""
Personal baseline tables.

BaselineMetrics — one active row per user. Each *_mean/*_sd pair is either
both set or both NULL; NULL means "not enough data", never zero. Written
only by app/services/baseline_store.py.

BaselineHistory — append-only. One row per overwrite of BaselineMetrics,
holding a JSON-encoded copy of the replaced row (stdlib json, stored as Text).
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Float, Boolean, DateTime, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

CALCULATION_METHOD = "weighted_rolling_window"


class BaselineMetrics(Base):
    __tablename__ = "baseline_metrics"
    __table_args__ = (
        CheckConstraint("(sleep_mean IS NULL) = (sleep_sd IS NULL)", name="ck_baseline_sleep_pair"),
        CheckConstraint("(steps_mean IS NULL) = (steps_sd IS NULL)", name="ck_baseline_steps_pair"),
        CheckConstraint("(unlocks_mean IS NULL) = (unlocks_sd IS NULL)", name="ck_baseline_unlocks_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    sleep_mean: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleep_sd: Mapped[float | None] = mapped_column(Float, nullable=True)
    steps_mean: Mapped[float | None] = mapped_column(Float, nullable=True)
    steps_sd: Mapped[float | None] = mapped_column(Float, nullable=True)
    unlocks_mean: Mapped[float | None] = mapped_column(Float, nullable=True)
    unlocks_sd: Mapped[float | None] = mapped_column(Float, nullable=True)

    calculation_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    window_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    medication_changes_detected: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )


class BaselineHistory(Base):
    __tablename__ = "baseline_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    baseline_data: Mapped[str] = mapped_column(
        Text, nullable=False,
        comment="JSON-encoded snapshot of the replaced baseline_metrics row",
    )
    replaced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
