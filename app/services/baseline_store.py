"""
Baseline versioning store.

Public API
----------
get_baseline(db, user_id)                         -> BaselineMetrics | None
current_updated_at(db, user_id)                   -> datetime | None
archive_and_upsert(db, user_id, computed, window, now, expected_updated_at)
                                                  -> BaselineMetrics | None
list_history(db, user_id, limit, offset)          -> (total, list[BaselineHistory])
snapshot(baseline)                                -> dict

Write protocol (one transaction, committed once):
  1. lock + re-read the current row; abort with BaselineConflictError if its
     updated_at is not the one observed when the run started
  2. archive the current row into baseline_history (if it exists)
  3. upsert baseline_metrics

Nothing is written when `computed` is empty.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from app.core.errors import BaselineConflictError
from app.models.baseline import BaselineHistory, BaselineMetrics, CALCULATION_METHOD
from app.services.aggregation import as_utc
from app.services.weighted_stats import WeightedStats
from app.services.windowing import WindowSelection

logger = logging.getLogger(__name__)

# Baseline column prefixes; each owns a <prefix>_mean / <prefix>_sd pair.
METRIC_COLUMNS = ("sleep", "steps", "unlocks")

_SNAPSHOT_FIELDS = (
    "user_id",
    "sleep_mean", "sleep_sd",
    "steps_mean", "steps_sd",
    "unlocks_mean", "unlocks_sd",
    "calculation_method",
    "window_days",
    "medication_changes_detected",
    "created_at",
    "updated_at",
)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_baseline(db: Session, user_id: str) -> Optional[BaselineMetrics]:
    return db.query(BaselineMetrics).filter(BaselineMetrics.user_id == user_id).first()


def current_updated_at(db: Session, user_id: str, lock: bool = False) -> Optional[datetime]:
    """updated_at straight from the database (bypasses the identity map)."""
    q = db.query(BaselineMetrics.updated_at).filter(BaselineMetrics.user_id == user_id)
    if lock:
        q = q.with_for_update()
    value = q.scalar()
    return as_utc(value) if value is not None else None


def list_history(
    db: Session,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[BaselineHistory]]:
    """Return (total, page) of a user's archived baselines, newest first."""
    q = db.query(BaselineHistory).filter(BaselineHistory.user_id == user_id)
    total = q.count()
    items = (
        q.order_by(BaselineHistory.replaced_at.desc(), BaselineHistory.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def snapshot(baseline: BaselineMetrics) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for field in _SNAPSHOT_FIELDS:
        value = getattr(baseline, field)
        if isinstance(value, datetime):
            value = as_utc(value).isoformat()
        data[field] = value
    return data


def version_notes(window: WindowSelection) -> str:
    notes = f"Replaced by rolling {window.window_days}-day update"
    if window.has_medication_changes:
        notes += " (medication changes detected)"
    return notes


def _same_instant(a: Optional[datetime], b: Optional[datetime]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return as_utc(a) == as_utc(b)


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------

def archive_and_upsert(
    db: Session,
    user_id: str,
    computed: Mapping[str, WeightedStats],
    window: WindowSelection,
    now: datetime,
    expected_updated_at: Optional[datetime],
) -> Optional[BaselineMetrics]:
    """
    Archive the current baseline and replace it with `computed`.

    `computed` maps a column prefix ("sleep" | "steps" | "unlocks") to its
    stats; pairs missing from it are stored as NULL. Returns the written row,
    or None when `computed` is empty (no-op).
    """
    unknown = set(computed) - set(METRIC_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown baseline columns: {sorted(unknown)}")

    if not computed:
        logger.info("User %s: no metric met the minimum-days threshold; baseline left untouched", user_id)
        return None

    try:
        found = current_updated_at(db, user_id, lock=True)
        if not _same_instant(found, expected_updated_at):
            raise BaselineConflictError(user_id, expected=expected_updated_at, found=found)

        current = get_baseline(db, user_id)
        if current is not None:
            db.add(BaselineHistory(
                user_id=user_id,
                baseline_data=json.dumps(snapshot(current), default=str),
                replaced_at=now,
                version_notes=version_notes(window),
            ))
            row = current
        else:
            row = BaselineMetrics(user_id=user_id, created_at=now)
            db.add(row)

        for column in METRIC_COLUMNS:
            stats = computed.get(column)
            setattr(row, f"{column}_mean", stats.mean if stats else None)
            setattr(row, f"{column}_sd", stats.sd if stats else None)

        row.calculation_method = CALCULATION_METHOD
        row.window_days = window.window_days
        row.medication_changes_detected = window.has_medication_changes
        row.updated_at = now

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(row)
    logger.info(
        "User %s: baseline %s (%s-day window, metrics=%s)",
        user_id,
        "replaced" if current is not None else "created",
        window.window_days,
        ",".join(sorted(computed)),
    )
    return row
