"""
Deviation scorer — compares one observed day against the personal baseline.

For every metric with a baseline mean and an observed value:

    diff        = baseline_mean − observed
    z_score     = |diff| / sd   (0 when sd is 0)
    significant = z_score > 1

diff > 0 means the observation fell BELOW the user's normal ("down").

Public API
----------
score_observation(observation, baseline)            -> DeviationReport
observation_from_summary(summary)                   -> DailyObservation
compose_explanation(count, risk_level, day, today)  -> str
get_summary(db, user_id, day)                       -> DailySummary | None
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.models.daily_summary import DailySummary

SIGNIFICANCE_Z = 1.0


@dataclass(frozen=True)
class DailyObservation:
    user_id: str
    day: date
    sleep_hours: Optional[float] = None
    steps: Optional[float] = None
    screen_unlocks: Optional[float] = None
    risk_level: Optional[str] = None


@dataclass(frozen=True)
class MetricDelta:
    metric: str             # "sleep" | "steps" | "screen"
    direction: str          # "up" | "down"
    value: str              # formatted magnitude, e.g. "2.9" or "1,700"
    unit: str               # e.g. "hours below normal"
    z_score: float
    difference: float       # baseline_mean − observed


@dataclass
class DeviationReport:
    user_id: str
    day: date
    deltas: list[MetricDelta] = field(default_factory=list)

    @property
    def significant_count(self) -> int:
        return len(self.deltas)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def _one_decimal(magnitude: float) -> str:
    return f"{magnitude:.1f}"


def _grouped(magnitude: float) -> str:
    """Thousands separators, at most three decimals, no trailing zeros."""
    rounded = round(magnitude, 3)
    if rounded == int(rounded):
        return f"{int(rounded):,}"
    return f"{rounded:,.3f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class _MetricRule:
    metric: str
    observed_attr: str
    baseline_prefix: str
    below_label: str
    above_label: str
    fmt: Callable[[float], str]


_RULES = (
    _MetricRule("sleep", "sleep_hours", "sleep",
                "hours below normal", "hours above normal", _one_decimal),
    _MetricRule("steps", "steps", "steps",
                "steps below average", "steps above average", _grouped),
    _MetricRule("screen", "screen_unlocks", "unlocks",
                "below usual usage", "above usual usage", _one_decimal),
)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def z_score(diff: float, sd: Optional[float]) -> float:
    if not sd or sd <= 0:
        return 0.0
    return abs(diff) / sd


def _score_metric(rule: _MetricRule, observed: float, mean: float, sd: Optional[float]) -> Optional[MetricDelta]:
    diff = mean - observed
    z = z_score(diff, sd)
    if z <= SIGNIFICANCE_Z:
        return None
    below = diff > 0
    return MetricDelta(
        metric=rule.metric,
        direction="down" if below else "up",
        value=rule.fmt(abs(diff)),
        unit=rule.below_label if below else rule.above_label,
        z_score=z,
        difference=diff,
    )


def score_observation(observation: DailyObservation, baseline: object) -> DeviationReport:
    """
    Score `observation` against `baseline` (anything exposing the
    baseline_metrics columns). Metrics with a NULL baseline or no observed
    value are not scored.
    """
    report = DeviationReport(user_id=observation.user_id, day=observation.day)
    for rule in _RULES:
        observed = getattr(observation, rule.observed_attr)
        mean = getattr(baseline, f"{rule.baseline_prefix}_mean", None)
        if observed is None or mean is None:
            continue
        sd = getattr(baseline, f"{rule.baseline_prefix}_sd", None)
        delta = _score_metric(rule, float(observed), float(mean), sd)
        if delta is not None:
            report.deltas.append(delta)
    return report


def observation_from_summary(summary: DailySummary) -> DailyObservation:
    return DailyObservation(
        user_id=summary.user_id,
        day=summary.summary_date,
        sleep_hours=summary.sleep_hours,
        steps=summary.steps,
        screen_unlocks=summary.screen_unlocks,
        risk_level=summary.risk_level,
    )


def get_summary(db: Session, user_id: str, day: Optional[date] = None) -> Optional[DailySummary]:
    """The summary for `day`, or the most recent one when day is None."""
    q = db.query(DailySummary).filter(DailySummary.user_id == user_id)
    if day is not None:
        return q.filter(DailySummary.summary_date == day).first()
    return q.order_by(DailySummary.summary_date.desc()).first()


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------

def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def compose_explanation(
    count: int,
    risk_level: Optional[str],
    day: date,
    today: Optional[date] = None,
) -> str:
    context = "today" if today is not None and day == today else f"on {day.isoformat()}"
    if risk_level == "red":
        return (
            f"Your metrics {context} show {_plural(count, 'significant departure')} "
            "from your personal baseline patterns."
        )
    if risk_level == "amber":
        return (
            f"Your data {context} shows {_plural(count, 'moderate deviation')} "
            "from your established patterns."
        )
    return f"Analysis shows {_plural(count, 'notable change')} in your health metrics."
