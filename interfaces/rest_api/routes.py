import logging

from fastapi import APIRouter, Depends, status

from domain.models.schemas import (
    Insight,
    InsightRequest,
    Notification,
    Recommendation,
    RecommendationStatus,
    StaffingRecommendation,
)
from domain.services.alerting_service import AlertingService
from domain.services.insight_service import InsightService
from domain.services.recommendation_store import RecommendationStore
from interfaces.rest_api.dependencies import (
    get_alerting_service,
    get_insight_service,
    get_recommendation_store,
)
from interfaces.rest_api.models import (
    DecisionRequest,
    EnvironmentResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    ProposeRequest,
    StaffingRequest,
    SupplyRequest,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# ==================== Environment & notifications ====================


@router.get("/environment/{location}", response_model=EnvironmentResponse)
async def get_environment(
    location: str, alerting: AlertingService = Depends(get_alerting_service)
):
    """Latest snapshot for a location. Polls once on demand if none has been taken yet."""
    view = await alerting.snapshot_view(location)
    return EnvironmentResponse(snapshot=view.snapshot, tier=view.tier, message=view.message)


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    location: str | None = None, alerting: AlertingService = Depends(get_alerting_service)
):
    center = alerting.notifications
    return NotificationListResponse(
        notifications=center.current(location),
        unread_count=center.unread_count(location),
    )


@router.post("/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    location: str | None = None, alerting: AlertingService = Depends(get_alerting_service)
):
    return MarkAllReadResponse(updated=alerting.notifications.mark_all_read(location))


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str, alerting: AlertingService = Depends(get_alerting_service)
):
    return alerting.notifications.mark_read(notification_id)


# ==================== Insights ====================


@router.post("/insights", response_model=list[Insight])
async def generate_insights(
    request: InsightRequest, insights: InsightService = Depends(get_insight_service)
):
    """Ranked insights. Falls back to rule-based insights when the AI service is unavailable."""
    return await insights.generate_insights(request)


@router.post("/staffing", response_model=StaffingRecommendation)
async def staffing_recommendation(
    request: StaffingRequest, insights: InsightService = Depends(get_insight_service)
):
    return await insights.get_staffing_recommendation(request.predicted_load, request.current_staff)


@router.post("/supplies", response_model=Insight)
async def supply_recommendation(
    request: SupplyRequest, insights: InsightService = Depends(get_insight_service)
):
    return insights.get_supply_recommendation(
        request.category, request.current_stock, request.predicted_demand
    )


# ==================== Recommendations ====================


@router.post(
    "/recommendations", response_model=Recommendation, status_code=status.HTTP_201_CREATED
)
async def propose_recommendation(
    request: ProposeRequest, store: RecommendationStore = Depends(get_recommendation_store)
):
    return await store.propose(request.insight, request.location)


@router.post("/recommendations/{recommendation_id}/decision", response_model=Recommendation)
async def decide_recommendation(
    recommendation_id: str,
    request: DecisionRequest,
    store: RecommendationStore = Depends(get_recommendation_store),
):
    """Approve or reject a pending recommendation. Repeating the same decision is a no-op."""
    return await store.decide(recommendation_id, request.outcome)


@router.get("/recommendations", response_model=list[Recommendation])
async def list_recommendations(
    status: RecommendationStatus | None = None,
    location: str | None = None,
    store: RecommendationStore = Depends(get_recommendation_store),
):
    return await store.list(status=status, location=location)
