"""
Baseline engine schemas.

POST /baseline/recalculate              → RecalculateRequest → RecalculateResponse
GET  /baseline/{user_id}                → BaselineResponse
GET  /baseline/{user_id}/history        → BaselineHistoryListResponse
GET  /baseline/{user_id}/deviations     → DeviationResponse
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------

class RecalculateRequest(BaseModel):
    """Optional body. Omit `user_id` to run the batch eligibility rule."""

    user_id: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Recompute this user's baseline unconditionally.",
        examples=["7f3c2a9e-5b1d-4e8a-9c61-2d0f4b7a1e53"],
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class RecalculateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(examples=["Baseline recalculation complete. Updated 3 users."])
    processed_users: int = Field(
        alias="processedUsers",
        description="Users whose baseline was written in this run.",
    )
    method: str = Field(examples=["weighted_rolling_window"])


# ---------------------------------------------------------------------------
# Baseline reads
# ---------------------------------------------------------------------------

class BaselineResponse(BaseModel):
    """Current baseline. NULL mean/sd = not enough data for that metric."""
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    sleep_mean: Optional[float] = None
    sleep_sd: Optional[float] = None
    steps_mean: Optional[float] = None
    steps_sd: Optional[float] = None
    unlocks_mean: Optional[float] = None
    unlocks_sd: Optional[float] = None
    calculation_method: Optional[str] = None
    window_days: Optional[int] = None
    medication_changes_detected: Optional[bool] = None
    updated_at: str


class BaselineHistoryResponse(BaseModel):
    id: int
    user_id: str
    baseline_data: dict[str, Any] = Field(description="Snapshot of the replaced baseline.")
    replaced_at: str
    version_notes: Optional[str] = None


class BaselineHistoryListResponse(BaseModel):
    total: int
    items: list[BaselineHistoryResponse]


# ---------------------------------------------------------------------------
# Deviations
# ---------------------------------------------------------------------------

class MetricDeltaResponse(BaseModel):
    type: str = Field(description='"sleep" | "steps" | "screen"')
    direction: str = Field(description='"up" | "down"')
    value: str = Field(examples=["2.9", "1,700"])
    unit: str = Field(examples=["hours below normal"])
    z_score: float


class DeviationResponse(BaseModel):
    user_id: str
    day: str = Field(description="ISO date of the scored observation.")
    risk_level: Optional[str] = Field(
        default=None,
        description="Externally assigned tier used for the explanation.",
    )
    significant_count: int
    deltas: list[MetricDeltaResponse]
    explanation: str
