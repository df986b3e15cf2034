from fastapi import Request

from domain.services.alerting_service import AlertingService
from domain.services.insight_service import InsightService
from domain.services.recommendation_store import RecommendationStore


def get_alerting_service(request: Request) -> AlertingService:
    return request.app.state.alerting


def get_insight_service(request: Request) -> InsightService:
    return request.app.state.insights


def get_recommendation_store(request: Request) -> RecommendationStore:
    return request.app.state.recommendations
