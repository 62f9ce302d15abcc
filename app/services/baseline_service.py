"""
Per-user baseline recomputation.

Pipeline for one user (strictly sequential, each step feeds the next):
  read observed updated_at → fetch samples (max window) → detect confounds
  → pick window → re-filter samples → aggregate per day → weighted stats
  per metric (≥ BASELINE_MIN_DAYS distinct days) → archive + upsert

Public API
----------
recalculate_user_baseline(db, user_id, now) -> UserRecalculation
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.aggregation import (
    DailyAggregate,
    aggregate_daily,
    as_utc,
    fetch_samples,
    filter_to_window,
)
from app.services.baseline_store import archive_and_upsert, current_updated_at
from app.services.weighted_stats import WeightedStats, weighted_stats
from app.services.windowing import WindowSelection, fetch_confound_events, select_window

logger = logging.getLogger(__name__)


# Raw metric types feeding each baseline column, in order of preference.
METRIC_SOURCES: dict[str, tuple[str, ...]] = {
    "sleep": ("sleep_hours", "sleep_quality"),
    "steps": ("steps", "activity_level"),
    "unlocks": ("unlocks", "screen_unlocks", "screen_time", "app_usage"),
}


class RecalcStatus:
    UPDATED           = "updated"
    NO_DATA           = "no_data"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass
class UserRecalculation:
    user_id: str
    status: str
    window: Optional[WindowSelection] = None
    stats: dict[str, WeightedStats] = field(default_factory=dict)
    source_metrics: dict[str, str] = field(default_factory=dict)  # column → raw metric type
    days_per_metric: dict[str, int] = field(default_factory=dict)

    @property
    def updated(self) -> bool:
        return self.status == RecalcStatus.UPDATED


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def compute_column_stats(
    daily: dict[str, list[DailyAggregate]],
    today: date,
) -> tuple[dict[str, WeightedStats], dict[str, str]]:
    """
    Weighted stats per baseline column. For each column the first raw metric
    type that meets the minimum-days threshold is used.
    """
    stats: dict[str, WeightedStats] = {}
    sources: dict[str, str] = {}
    for column, metric_types in METRIC_SOURCES.items():
        for metric_type in metric_types:
            points = daily.get(metric_type)
            if not points:
                continue
            result = weighted_stats(points, today)
            if result is None:
                continue
            stats[column] = result
            sources[column] = metric_type
            break
    return stats, sources


def recalculate_user_baseline(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None,
) -> UserRecalculation:
    """
    Recompute and persist one user's baseline. Writes nothing unless at least
    one metric has enough distinct days. Errors propagate to the caller.
    """
    now = as_utc(now) if now else _utcnow()
    observed_updated_at = current_updated_at(db, user_id)

    horizon_start = now - timedelta(days=settings.BASELINE_MAX_WINDOW_DAYS)
    samples = fetch_samples(db, user_id, horizon_start)
    if not samples:
        logger.info("User %s has no recent sensor data", user_id)
        return UserRecalculation(user_id=user_id, status=RecalcStatus.NO_DATA)

    window = select_window(fetch_confound_events(db, user_id, now))
    logger.info(
        "Using %s-day window for user %s (med changes: %s)",
        window.window_days, user_id, window.has_medication_changes,
    )

    tz = ZoneInfo(settings.BASELINE_TIMEZONE)
    daily = aggregate_daily(filter_to_window(samples, window.start(now)), tz)
    days_per_metric = {metric: len(points) for metric, points in daily.items()}
    logger.debug("User %s days per metric: %s", user_id, days_per_metric)

    stats, sources = compute_column_stats(daily, now.astimezone(tz).date())
    outcome = UserRecalculation(
        user_id=user_id,
        status=RecalcStatus.INSUFFICIENT_DATA,
        window=window,
        stats=stats,
        source_metrics=sources,
        days_per_metric=days_per_metric,
    )
    if not stats:
        logger.info("User %s does not have enough data for baseline recalculation", user_id)
        return outcome

    for column, s in stats.items():
        logger.debug(
            "User %s %s (%s): mean=%.4f sd=%.4f points=%d",
            user_id, column, sources[column], s.mean, s.sd, s.data_points,
        )

    archive_and_upsert(db, user_id, stats, window, now, observed_updated_at)
    outcome.status = RecalcStatus.UPDATED
    return outcome
