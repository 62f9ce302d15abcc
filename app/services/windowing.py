"""
Window selection / confound detection.

A medication regimen change inside the lookback horizon can shift the
user's sleep and activity distribution, so the window contracts from
BASELINE_MAX_WINDOW_DAYS (60) to BASELINE_CONFOUND_WINDOW_DAYS (30).
Only the existence of such a record matters, not what changed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.medication import Medication


@dataclass(frozen=True)
class WindowSelection:
    window_days: int
    has_medication_changes: bool
    confound_count: int = 0

    def start(self, now: datetime) -> datetime:
        return now - timedelta(days=self.window_days)


def fetch_confound_events(
    db: Session,
    user_id: str,
    now: datetime,
    horizon_days: int | None = None,
) -> list[Medication]:
    """Medication records created within the last `horizon_days` (default: max window)."""
    horizon = horizon_days if horizon_days is not None else settings.BASELINE_MAX_WINDOW_DAYS
    since = now - timedelta(days=horizon)
    return (
        db.query(Medication)
        .filter(Medication.user_id == user_id, Medication.created_at >= since)
        .order_by(Medication.created_at.desc())
        .all()
    )


def select_window(
    confound_events: Sequence[object],
    max_window_days: int | None = None,
    confound_window_days: int | None = None,
) -> WindowSelection:
    max_days = max_window_days or settings.BASELINE_MAX_WINDOW_DAYS
    short_days = confound_window_days or settings.BASELINE_CONFOUND_WINDOW_DAYS

    if confound_events:
        return WindowSelection(
            window_days=short_days,
            has_medication_changes=True,
            confound_count=len(confound_events),
        )
    return WindowSelection(window_days=max_days, has_medication_changes=False)
