"""
Insight Generation Orchestrator

Per request:

    Building -> Requesting -> Parsed -> Done
                          \-> Failed -> Fallback -> Done

- Building: an empty request skips straight to the "System ready" default.
- Requesting: one deterministic prompt, one provider attempt. The credential
  is checked before calling; timeouts come from the provider.
- Failed: any UpstreamUnavailable or MalformedUpstreamResponse.
- Done: insights ranked by priority (critical > high > medium > low), with
  ties kept in their original order.

Raw upstream errors never leave this module; the caller always receives a
renderable result.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from datetime import datetime

from core.prompts import ANALYST_SYSTEM_INSTRUCTION, build_insights_prompt, build_staffing_prompt
from core.providers.base_provider import BaseAIProvider
from domain.exceptions import ValidationError
from domain.models.schemas import Insight, InsightRequest, StaffingRecommendation, utcnow
from domain.services.fallback_insights import (
    build_fallback_insights,
    recommended_staff,
    system_ready_insight,
)
from domain.services.insight_parser import parse_insights_reply, parse_staffing_reply
from shared.config.settings import Settings, get_settings
from shared.utils.provider_errors import MalformedUpstreamResponse, UpstreamUnavailable

logger = logging.getLogger(__name__)

STAFFING_HIGH_PRIORITY_GAP = 5
SUPPLY_CRITICAL_DAYS = 7
SUPPLY_LOW_DAYS = 14


def rank_insights(insights: Iterable[Insight]) -> list[Insight]:
    """Sort by descending priority. `sorted` is stable, so ties keep input order."""
    return sorted(insights, key=lambda insight: insight.priority_rank, reverse=True)


def _require_number(name: str, value, minimum: float = 0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise ValidationError(f"{name} must be a finite number")
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum:g}")
    return value


class InsightService:
    def __init__(
        self,
        provider: BaseAIProvider,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.provider = provider
        self.settings = settings or get_settings()
        self._clock = clock

    async def generate_insights(self, request: InsightRequest) -> list[Insight]:
        generated_at = self._clock()

        if request.is_empty:
            logger.debug("Empty insight request, returning system-ready default")
            return [system_ready_insight(generated_at)]

        if not self.provider.configured:
            logger.info(f"{self.provider.name} credential missing, using rule-based insights")
            return rank_insights(build_fallback_insights(request, generated_at))

        try:
            reply = await self.provider.generate(
                build_insights_prompt(request),
                system_instruction=ANALYST_SYSTEM_INSTRUCTION,
            )
            insights = parse_insights_reply(reply, self.provider.name, generated_at)
            logger.info(f"Generated {len(insights)} AI insights via {self.provider.name}")
        except (UpstreamUnavailable, MalformedUpstreamResponse) as e:
            logger.warning(
                f"AI insight generation failed ({type(e).__name__}: {e.internal_message}); "
                "using rule-based insights"
            )
            insights = build_fallback_insights(request, generated_at)

        return rank_insights(insights)

    # ------------------------------------------------------------------ staffing

    def _staffing_fallback(
        self, predicted_load: float, current_staff: int, generated_at: datetime
    ) -> StaffingRecommendation:
        recommended = recommended_staff(predicted_load, self.settings.STAFF_PATIENT_RATIO)
        gap = recommended - current_staff

        if gap > 0:
            title = "Additional Staffing Needed"
            description = (
                f"Based on predicted patient load of {predicted_load:g}, recommend {recommended} "
                f"staff members (current: {current_staff}). Shortage of {gap} staff. Consider "
                "calling in part-time staff or activating on-call personnel."
            )
        else:
            title = "Adequate Staffing Levels"
            description = (
                f"Current staffing of {current_staff} is adequate for predicted load of "
                f"{predicted_load:g} patients. Maintain current levels."
            )

        return StaffingRecommendation(
            id=f"staffing-{generated_at.strftime('%Y%m%dT%H%M%S%f')}",
            type="recommendation",
            title=title,
            description=description,
            confidence=0.85,
            priority="high" if gap > STAFFING_HIGH_PRIORITY_GAP else "medium",
            category="staffing",
            generated_at=generated_at,
            source="fallback",
            predicted_load=predicted_load,
            current_staff=current_staff,
            recommended_staff=recommended,
            staffing_gap=gap,
        )

    async def get_staffing_recommendation(
        self, predicted_load: float, current_staff: int
    ) -> StaffingRecommendation:
        _require_number("predicted_load", predicted_load)
        _require_number("current_staff", current_staff)
        if not isinstance(current_staff, int):
            raise ValidationError("current_staff must be an integer")

        generated_at = self._clock()
        if not self.provider.configured:
            return self._staffing_fallback(predicted_load, current_staff, generated_at)

        try:
            reply = await self.provider.generate(
                build_staffing_prompt(
                    predicted_load, current_staff, self.settings.STAFF_PATIENT_RATIO
                ),
                system_instruction=ANALYST_SYSTEM_INSTRUCTION,
            )
            parsed = parse_staffing_reply(reply, self.provider.name)
        except (UpstreamUnavailable, MalformedUpstreamResponse) as e:
            logger.warning(
                f"AI staffing recommendation failed ({type(e).__name__}: {e.internal_message}); "
                "using ratio-based recommendation"
            )
            return self._staffing_fallback(predicted_load, current_staff, generated_at)

        gap = parsed.recommended_staff - current_staff
        return StaffingRecommendation(
            id=f"staffing-{generated_at.strftime('%Y%m%dT%H%M%S%f')}",
            type="recommendation",
            title=parsed.title,
            description=parsed.description,
            confidence=parsed.confidence,
            priority=parsed.priority
            or ("high" if gap > STAFFING_HIGH_PRIORITY_GAP else "medium"),
            category="staffing",
            generated_at=generated_at,
            source="ai",
            predicted_load=predicted_load,
            current_staff=current_staff,
            recommended_staff=parsed.recommended_staff,
            staffing_gap=gap,
        )

    # ------------------------------------------------------------------ supplies

    def get_supply_recommendation(
        self, category: str, current_stock: float, predicted_demand: float
    ) -> Insight:
        """Days-of-supply check for one stock category.

        Args:
            category: Supply name, e.g. "Oxygen cylinders"
            current_stock: Units on hand
            predicted_demand: Units expected to be consumed over the next 7 days
        """
        if not isinstance(category, str) or not category.strip():
            raise ValidationError("category is required")
        _require_number("current_stock", current_stock)
        _require_number("predicted_demand", predicted_demand)
        if predicted_demand == 0:
            raise ValidationError("predicted_demand must be greater than 0")

        category = category.strip()
        days_of_supply = current_stock / (predicted_demand / 7)
        is_low = days_of_supply < SUPPLY_LOW_DAYS
        generated_at = self._clock()

        if days_of_supply < SUPPLY_CRITICAL_DAYS:
            priority = "critical"
        elif is_low:
            priority = "high"
        else:
            priority = "medium"

        if is_low:
            title = f"Low {category} Stock Alert"
            description = (
                f"Current {category} stock ({current_stock:g} units) provides only "
                f"{round(days_of_supply)} days of supply based on predicted demand. "
                "Reorder immediately to prevent stockouts."
            )
        else:
            title = f"{category} Stock Status"
            description = (
                f"{category} stock adequate with {round(days_of_supply)} days of supply "
                f"remaining. Next review in {max(7, round(days_of_supply / 2))} days."
            )

        return Insight(
            id=f"supply-{generated_at.strftime('%Y%m%dT%H%M%S%f')}",
            type="alert" if is_low else "recommendation",
            title=title,
            description=description,
            confidence=0.83,
            priority=priority,
            category="equipment",
            generated_at=generated_at,
            source="fallback",
            data={
                "category": category,
                "current_stock": current_stock,
                "predicted_demand": predicted_demand,
                "days_of_supply": round(days_of_supply, 1),
            },
        )
