from pydantic import BaseModel, Field

from domain.models.schemas import (
    DecisionOutcome,
    EnvironmentalSnapshot,
    Insight,
    Notification,
    SeverityTier,
)


class HealthCheck(BaseModel):
    status: str
    version: str
    ai_provider: str
    ai_configured: bool
    monitored_locations: list[str] = []


class EnvironmentResponse(BaseModel):
    """Latest snapshot for one location with its severity classification"""
    snapshot: EnvironmentalSnapshot
    tier: SeverityTier
    message: str


class NotificationListResponse(BaseModel):
    notifications: list[Notification]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int = Field(..., description="How many notifications changed to read")


class StaffingRequest(BaseModel):
    predicted_load: float = Field(
        ..., ge=0, allow_inf_nan=False, description="Predicted patients for the shift"
    )
    current_staff: int = Field(..., ge=0, description="Nursing staff currently scheduled")


class SupplyRequest(BaseModel):
    category: str = Field(..., min_length=1, description="Supply category, e.g. 'Oxygen cylinders'")
    current_stock: float = Field(..., ge=0, allow_inf_nan=False)
    predicted_demand: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Expected consumption over 7 days"
    )


class ProposeRequest(BaseModel):
    """Promote an insight into a decision-tracked recommendation"""
    insight: Insight
    location: str | None = None


class DecisionRequest(BaseModel):
    outcome: DecisionOutcome
