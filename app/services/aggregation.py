"""
Sample aggregation: raw sensor samples → one averaged value per (metric, day).

Public API
----------
fetch_samples(db, user_id, since)        -> list[SensorSample]
filter_to_window(samples, window_start)  -> list[SensorSample]
aggregate_daily(samples, tz)             -> dict[str, list[DailyAggregate]]
as_utc(dt)                               -> datetime (tz-aware, UTC)
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.sensor_sample import SensorSample


@dataclass(frozen=True)
class DailyAggregate:
    metric_type: str
    day: date
    value: float          # mean of that day's samples
    sample_count: int


def as_utc(dt: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def fetch_samples(db: Session, user_id: str, since: datetime) -> list[SensorSample]:
    """All of a user's samples with sample_time >= since, oldest first."""
    return (
        db.query(SensorSample)
        .filter(
            SensorSample.user_id == user_id,
            SensorSample.sample_time >= since,
            SensorSample.metric_type.isnot(None),
            SensorSample.metric_value.isnot(None),
        )
        .order_by(SensorSample.sample_time)
        .all()
    )


def filter_to_window(
    samples: Iterable[SensorSample],
    window_start: datetime,
) -> list[SensorSample]:
    start = as_utc(window_start)
    return [s for s in samples if as_utc(s.sample_time) >= start]


def aggregate_daily(
    samples: Iterable[SensorSample],
    tz: Optional[tzinfo] = None,
) -> dict[str, list[DailyAggregate]]:
    """
    Group samples by metric type, then by local calendar date, and average
    same-day values. Metrics without samples are simply absent.
    Each list is ordered oldest day first.
    """
    zone = tz or timezone.utc
    buckets: dict[str, dict[date, list[float]]] = defaultdict(lambda: defaultdict(list))

    for sample in samples:
        local_day = as_utc(sample.sample_time).astimezone(zone).date()
        buckets[sample.metric_type][local_day].append(float(sample.metric_value))

    result: dict[str, list[DailyAggregate]] = {}
    for metric_type, by_day in buckets.items():
        result[metric_type] = [
            DailyAggregate(
                metric_type=metric_type,
                day=day,
                value=sum(values) / len(values),
                sample_count=len(values),
            )
            for day, values in sorted(by_day.items())
        ]
    return result
