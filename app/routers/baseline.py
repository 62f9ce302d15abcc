"""
Baseline router.

POST    /baseline/recalculate            — recompute one user (forced) or the due batch
OPTIONS /baseline/recalculate            — CORS preflight
GET     /baseline/{user_id}              — current baseline
GET     /baseline/{user_id}/history      — archived baselines (newest first)
GET     /baseline/{user_id}/deviations   — score a daily summary against the baseline
"""
from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Response
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.errors import BaselineNotFoundError, ObservationNotFoundError
from app.db.base import get_db, get_session_factory
from app.models.baseline import BaselineHistory, BaselineMetrics
from app.schemas.baseline import (
    BaselineHistoryListResponse,
    BaselineHistoryResponse,
    BaselineResponse,
    DeviationResponse,
    MetricDeltaResponse,
    RecalculateRequest,
    RecalculateResponse,
)
from app.services.baseline_store import get_baseline, list_history
from app.services.deviation import (
    compose_explanation,
    get_summary,
    observation_from_summary,
    score_observation,
)
from app.services.scheduler import run_recalculation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/baseline", tags=["baseline"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _parse_snapshot(raw: Optional[str]) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return {}


def _iso(dt: Optional[datetime]) -> str:
    if dt is None:
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _baseline_to_response(b: BaselineMetrics) -> BaselineResponse:
    return BaselineResponse(
        user_id=b.user_id,
        sleep_mean=b.sleep_mean,
        sleep_sd=b.sleep_sd,
        steps_mean=b.steps_mean,
        steps_sd=b.steps_sd,
        unlocks_mean=b.unlocks_mean,
        unlocks_sd=b.unlocks_sd,
        calculation_method=b.calculation_method,
        window_days=b.window_days,
        medication_changes_detected=b.medication_changes_detected,
        updated_at=_iso(b.updated_at),
    )


def _history_to_response(h: BaselineHistory) -> BaselineHistoryResponse:
    return BaselineHistoryResponse(
        id=h.id,
        user_id=h.user_id,
        baseline_data=_parse_snapshot(h.baseline_data),
        replaced_at=_iso(h.replaced_at),
        version_notes=h.version_notes,
    )


# ---------------------------------------------------------------------------
# POST /baseline/recalculate
# ---------------------------------------------------------------------------

@router.options("/recalculate", include_in_schema=False)
def recalculate_preflight() -> Response:
    return Response(status_code=200)


@router.post(
    "/recalculate",
    response_model=RecalculateResponse,
    summary="Recompute personal baselines",
    responses={
        200: {"description": "Run finished (also when no user was due)."},
        500: {"description": "The set of users to process could not be read."},
    },
)
def recalculate(
    payload: Optional[RecalculateRequest] = Body(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Recompute recency-weighted baselines.

    - With `user_id`: that user is recomputed unconditionally.
    - Without: every user whose baseline is at least
      `BASELINE_RECALC_INTERVAL_DAYS` old is recomputed.

    Users without at least 14 distinct days of data for some metric are
    skipped without writes. A failure for one user never fails the request.
    """
    user_id = payload.user_id if payload else None
    run = run_recalculation(
        session_factory,
        user_id=user_id,
        max_workers=settings.BASELINE_MAX_WORKERS,
    )
    return RecalculateResponse(
        message=run.message,
        processed_users=run.processed_users,
        method=run.method,
    )


# ---------------------------------------------------------------------------
# GET /baseline/{user_id}
# ---------------------------------------------------------------------------

@router.get(
    "/{user_id}",
    response_model=BaselineResponse,
    summary="Current baseline for a user",
    responses={404: {"description": "No baseline computed yet."}},
)
def read_baseline(user_id: str, db: Session = Depends(get_db)):
    baseline = get_baseline(db, user_id)
    if baseline is None:
        raise BaselineNotFoundError(user_id)
    return _baseline_to_response(baseline)


# ---------------------------------------------------------------------------
# GET /baseline/{user_id}/history
# ---------------------------------------------------------------------------

@router.get(
    "/{user_id}/history",
    response_model=BaselineHistoryListResponse,
    summary="Archived baselines (newest first)",
)
def read_history(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    db: Session = Depends(get_db),
):
    total, items = list_history(db, user_id, limit=limit, offset=offset)
    return BaselineHistoryListResponse(
        total=total,
        items=[_history_to_response(h) for h in items],
    )


# ---------------------------------------------------------------------------
# GET /baseline/{user_id}/deviations
# ---------------------------------------------------------------------------

@router.get(
    "/{user_id}/deviations",
    response_model=DeviationResponse,
    summary="Significant deviations of one day from the baseline",
    responses={404: {"description": "No baseline or no daily summary for the day."}},
)
def read_deviations(
    user_id: str,
    day: Optional[date] = Query(
        default=None,
        description="Day to score. Defaults to the most recent daily summary.",
        examples=["2026-10-18"],
    ),
    risk_level: Optional[str] = Query(
        default=None,
        pattern="^(green|amber|red)$",
        description="Risk tier for the explanation. Defaults to the summary's own tier.",
    ),
    db: Session = Depends(get_db),
):
    """
    Compare a day's observed sleep, steps and screen unlocks with the user's
    baseline. Only metrics more than one baseline SD away are returned.
    """
    baseline = get_baseline(db, user_id)
    if baseline is None:
        raise BaselineNotFoundError(user_id)
    summary = get_summary(db, user_id, day)
    if summary is None:
        raise ObservationNotFoundError(user_id, day)

    observation = observation_from_summary(summary)
    report = score_observation(observation, baseline)
    tier = risk_level or observation.risk_level
    today = datetime.now(tz=timezone.utc).date()

    return DeviationResponse(
        user_id=user_id,
        day=str(report.day),
        risk_level=tier,
        significant_count=report.significant_count,
        deltas=[
            MetricDeltaResponse(
                type=d.metric,
                direction=d.direction,
                value=d.value,
                unit=d.unit,
                z_score=round(d.z_score, 4),
            )
            for d in report.deltas
        ],
        explanation=compose_explanation(report.significant_count, tier, report.day, today),
    )
