"""
Recency-weighted mean / standard deviation.

    weight = exp(-|age_days| * ln2 / half_life)

A point `half_life` days old counts half as much as one from today.

    mean     = Σ(value·w) / Σw
    variance = Σ(w·(value − mean)²) / Σw
    sd       = sqrt(variance)

Points are summed in (day, value) order so permuting the input never
changes the floating-point result.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Protocol

from app.core.config import settings


class DailyPoint(Protocol):
    day: date
    value: float


@dataclass(frozen=True)
class WeightedStats:
    mean: float
    sd: float
    data_points: int
    distinct_days: int
    start: date
    end: date


def decay_weight(age_days: float, half_life_days: float | None = None) -> float:
    half_life = half_life_days or settings.BASELINE_HALF_LIFE_DAYS
    return math.exp(-abs(age_days) * math.log(2) / half_life)


def weighted_stats(
    points: Iterable[DailyPoint],
    today: date,
    min_days: int | None = None,
    half_life_days: float | None = None,
) -> Optional[WeightedStats]:
    """
    Weighted stats for one metric's daily aggregates, or None when fewer
    than `min_days` distinct days are present.
    """
    required = min_days if min_days is not None else settings.BASELINE_MIN_DAYS
    ordered = sorted(points, key=lambda p: (p.day, p.value))

    distinct_days = len({p.day for p in ordered})
    if not ordered or distinct_days < required:
        return None

    weights = [decay_weight((today - p.day).days, half_life_days) for p in ordered]
    total_weight = math.fsum(weights)

    mean = math.fsum(p.value * w for p, w in zip(ordered, weights)) / total_weight
    variance = math.fsum(w * (p.value - mean) ** 2 for p, w in zip(ordered, weights)) / total_weight

    return WeightedStats(
        mean=mean,
        sd=math.sqrt(variance),
        data_points=len(ordered),
        distinct_days=distinct_days,
        start=ordered[0].day,
        end=ordered[-1].day,
    )
