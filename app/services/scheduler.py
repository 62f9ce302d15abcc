"""
Eligibility scheduler — decides whose baseline to recompute and runs them.

Modes
-----
  forced : a user_id is supplied → that user only, unconditionally
  batch  : every user with a baseline_metrics row whose updated_at is at
           least BASELINE_RECALC_INTERVAL_DAYS old
           (+ users with samples but no row when BASELINE_INCLUDE_COLD_START)

Failure policy
--------------
  selection failure  → BaselineSelectionError, the run aborts
  per-user failure   → logged with the user id, the run continues

Users are fanned out to a bounded thread pool. Each worker owns one user
end-to-end with its own Session. A per-user lock keeps two workers in this
process off the same user; baseline_store's updated_at check covers races
with other processes.

Public API
----------
select_users(db, now, user_id)                               -> list[str]
run_recalculation(session_factory, user_id, now, max_workers) -> RecalculationRun
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import BaselineSelectionError
from app.models.baseline import BaselineMetrics, CALCULATION_METHOD
from app.models.sensor_sample import SensorSample
from app.services.aggregation import as_utc
from app.services.baseline_service import RecalcStatus, recalculate_user_baseline

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class UserOutcome:
    UPDATED = RecalcStatus.UPDATED
    SKIPPED = "skipped"    # no data / not enough days
    BUSY    = "busy"       # another worker holds this user
    FAILED  = "failed"


@dataclass
class UserResult:
    user_id: str
    outcome: str
    error: Optional[str] = None


@dataclass
class RecalculationRun:
    forced: bool
    selected_users: list[str]
    results: list[UserResult] = field(default_factory=list)
    method: str = CALCULATION_METHOD

    def _with(self, outcome: str) -> list[str]:
        return [r.user_id for r in self.results if r.outcome == outcome]

    @property
    def processed_users(self) -> int:
        return len(self._with(UserOutcome.UPDATED))

    @property
    def skipped_users(self) -> list[str]:
        return self._with(UserOutcome.SKIPPED) + self._with(UserOutcome.BUSY)

    @property
    def failed_users(self) -> list[str]:
        return self._with(UserOutcome.FAILED)

    @property
    def message(self) -> str:
        if not self.selected_users:
            return "No users need baseline updates at this time"
        return f"Baseline recalculation complete. Updated {self.processed_users} users."


# ---------------------------------------------------------------------------
# Per-user locks (in-process)
# ---------------------------------------------------------------------------

_locks_guard = threading.Lock()
_user_locks: dict[str, threading.Lock] = {}


def _user_lock(user_id: str) -> threading.Lock:
    with _locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = _user_locks[user_id] = threading.Lock()
        return lock


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def is_due(updated_at: datetime, now: datetime, interval_days: Optional[int] = None) -> bool:
    interval = interval_days if interval_days is not None else settings.BASELINE_RECALC_INTERVAL_DAYS
    return now - as_utc(updated_at) >= timedelta(days=interval)


def _cold_start_users(db: Session) -> list[str]:
    """Users with sensor samples but no baseline row yet."""
    rows = (
        db.query(SensorSample.user_id)
        .filter(~exists().where(BaselineMetrics.user_id == SensorSample.user_id))
        .distinct()
        .all()
    )
    return [user_id for (user_id,) in rows]


def select_users(
    db: Session,
    now: Optional[datetime] = None,
    user_id: Optional[str] = None,
    include_cold_start: Optional[bool] = None,
) -> list[str]:
    """Return the user ids to process this run, in a stable order."""
    if user_id:
        return [user_id]

    now = as_utc(now) if now else _utcnow()
    cold_start = (
        include_cold_start if include_cold_start is not None
        else settings.BASELINE_INCLUDE_COLD_START
    )
    try:
        rows = (
            db.query(BaselineMetrics.user_id, BaselineMetrics.updated_at)
            .order_by(BaselineMetrics.user_id)
            .all()
        )
        due = [uid for uid, updated_at in rows if is_due(updated_at, now)]
        if cold_start:
            due.extend(sorted(_cold_start_users(db)))
    except SQLAlchemyError as exc:
        logger.error("Error fetching existing baselines: %s", exc)
        raise BaselineSelectionError(str(exc)) from exc
    return due


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def _process_user(
    session_factory: Callable[[], Session],
    user_id: str,
    now: datetime,
) -> UserResult:
    lock = _user_lock(user_id)
    if not lock.acquire(blocking=False):
        logger.warning("User %s is already being recalculated; skipping", user_id)
        return UserResult(user_id=user_id, outcome=UserOutcome.BUSY)

    try:
        logger.info("Recalculating baseline for user %s...", user_id)
        db = session_factory()
        try:
            result = recalculate_user_baseline(db, user_id, now)
        finally:
            db.close()
    except Exception as exc:
        logger.exception("Error processing user %s", user_id)
        return UserResult(user_id=user_id, outcome=UserOutcome.FAILED, error=str(exc))
    finally:
        lock.release()

    if result.updated:
        return UserResult(user_id=user_id, outcome=UserOutcome.UPDATED)
    return UserResult(user_id=user_id, outcome=UserOutcome.SKIPPED)


def run_recalculation(
    session_factory: Callable[[], Session],
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
    max_workers: Optional[int] = None,
    include_cold_start: Optional[bool] = None,
) -> RecalculationRun:
    """
    Select users and recompute their baselines.
    Raises BaselineSelectionError if the selection step fails; never raises
    for a single user's failure.
    """
    now = as_utc(now) if now else _utcnow()
    workers = max(1, max_workers if max_workers is not None else settings.BASELINE_MAX_WORKERS)

    db = session_factory()
    try:
        users = select_users(db, now, user_id=user_id, include_cold_start=include_cold_start)
    finally:
        db.close()

    run = RecalculationRun(forced=bool(user_id), selected_users=users)
    logger.info("Found %d users needing baseline updates", len(users))
    if not users:
        return run

    if workers == 1 or len(users) == 1:
        run.results = [_process_user(session_factory, uid, now) for uid in users]
    else:
        with ThreadPoolExecutor(max_workers=min(workers, len(users))) as pool:
            run.results = list(pool.map(lambda uid: _process_user(session_factory, uid, now), users))

    logger.info(
        "Baseline recalculation complete. Updated %d users (skipped=%d, failed=%d).",
        run.processed_users, len(run.skipped_users), len(run.failed_users),
    )
    return run
