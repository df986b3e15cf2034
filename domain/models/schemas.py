"""Domain models shared by the alerting pipeline, insight service and REST API."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==================== Environmental snapshots ====================


class SeverityTier(str, Enum):
    """AQI severity tiers, ordered by increasing severity."""

    NORMAL = "normal"
    MODERATE = "moderate"  # informational "moderate watch" tier
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, SeverityTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, SeverityTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, SeverityTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, SeverityTier):
            return NotImplemented
        return self.rank >= other.rank


_TIER_RANK = {
    SeverityTier.NORMAL: 0,
    SeverityTier.MODERATE: 1,
    SeverityTier.WARNING: 2,
    SeverityTier.CRITICAL: 3,
}


class EnvironmentalSnapshot(BaseModel):
    """One immutable point-in-time weather/AQI reading for a location."""

    model_config = ConfigDict(frozen=True)

    location: str
    aqi: int | None = Field(None, ge=0, description="US EPA AQI; None means unknown")
    temperature: float = Field(allow_inf_nan=False)
    humidity: float = Field(allow_inf_nan=False)
    wind_speed: float = Field(0.0, allow_inf_nan=False)
    description: str = ""
    observed_at: datetime = Field(default_factory=utcnow)
    source: Literal["live", "fallback"] = "live"


# ==================== Notifications ====================

NotificationType = Literal["aqi", "project", "system"]
NotificationSeverity = Literal["info", "warning", "critical"]


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: NotificationType
    severity: NotificationSeverity
    title: str
    message: str
    location: str
    observed_at: datetime
    read: bool = False


# ==================== Insights ====================

InsightType = Literal["prediction", "recommendation", "alert", "trend"]
InsightPriority = Literal["low", "medium", "high", "critical"]
InsightCategory = Literal["capacity", "staffing", "equipment", "environmental", "outbreak"]
InsightSource = Literal["ai", "fallback"]

PRIORITY_RANK: dict[str, int] = {"critical": 4, "high": 3, "medium": 2, "low": 1}


class HospitalSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    occupancy_rate: float = Field(0.0, alias="occupancyRate", ge=0, allow_inf_nan=False)
    total_beds: int = Field(0, alias="totalBeds", ge=0)
    trend: Literal["increasing", "stable", "decreasing"] = "stable"


class AQISummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    value: int | None = Field(None, ge=0)
    location: str | None = None


class PredictionPoint(BaseModel):
    model_config = ConfigDict(extra="ignore")

    predicted: float = Field(0.0, allow_inf_nan=False)
    label: str | None = None


class PredictionSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    predictions: list[PredictionPoint] = Field(default_factory=list)


class InsightRequest(BaseModel):
    """Caller-assembled, read-only analysis context."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    hospital_data: HospitalSummary | None = Field(None, alias="hospitalData")
    aqi_data: AQISummary | None = Field(None, alias="aqiData")
    prediction_data: PredictionSummary | None = Field(None, alias="predictionData")
    timeframe: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.hospital_data is None and self.aqi_data is None and self.prediction_data is None


class Insight(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: InsightType = "recommendation"
    title: str
    description: str
    confidence: float = Field(0.75, ge=0.0, le=1.0)
    priority: InsightPriority = "medium"
    category: InsightCategory = "capacity"
    generated_at: datetime = Field(default_factory=utcnow)
    source: InsightSource = "fallback"
    data: dict[str, Any] | None = None

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK[self.priority]


class StaffingRecommendation(Insight):
    predicted_load: float
    current_staff: int
    recommended_staff: int
    staffing_gap: int


# ==================== Recommendations ====================

RecommendationStatus = Literal["pending", "approved", "rejected"]
DecisionOutcome = Literal["approved", "rejected"]


class Recommendation(BaseModel):
    """An insight promoted into a decision-tracked lifecycle object."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: RecommendationStatus = "pending"
    location: str | None = None
    insight_id: str
    type: InsightType
    title: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    priority: InsightPriority
    category: InsightCategory
    source: InsightSource
    data: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=utcnow)
    decided_at: datetime | None = None
