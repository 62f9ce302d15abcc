"""
SensorSample — raw timestamped readings produced by the ingestion layer.

Read-only for the baseline engine. `metric_type` is a free string because
producers may send types the engine does not map; the known ones live in
MetricType.
"""
from datetime import datetime
import enum

from sqlalchemy import Integer, String, Float, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class MetricType(str, enum.Enum):
    sleep_hours = "sleep_hours"
    sleep_quality = "sleep_quality"
    steps = "steps"
    activity_level = "activity_level"
    unlocks = "unlocks"
    screen_unlocks = "screen_unlocks"
    screen_time = "screen_time"
    app_usage = "app_usage"


class SensorSample(Base):
    __tablename__ = "sensor_samples"
    __table_args__ = (
        Index("ix_sensor_samples_user_time", "user_id", "sample_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    metric_type: Mapped[str] = mapped_column(String(64), nullable=False)
    metric_value: Mapped[float] = mapped_column(Float, nullable=False)
    sample_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
