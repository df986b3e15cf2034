import asyncio
import json
import math
from unittest.mock import AsyncMock, patch

import pytest

from core.providers import GeminiProvider, MockProvider
from domain.exceptions import ValidationError
from domain.models.schemas import InsightRequest
from domain.services.insight_service import InsightService, rank_insights


def _item(title, priority):
    return {"title": title, "description": f"{title} details", "priority": priority}


def _request(**kwargs):
    return InsightRequest.model_validate(kwargs)


@pytest.fixture
def mock_provider(settings):
    return MockProvider(settings)


@pytest.fixture
def unconfigured_provider(settings):
    return GeminiProvider(settings.model_copy(update={"AI_PROVIDER": "gemini", "AI_API_KEY": ""}))


class TestGenerateInsights:
    @pytest.mark.asyncio
    async def test_empty_request_short_circuits(self, settings, mock_provider, clock):
        service = InsightService(mock_provider, settings, clock=clock)

        [insight] = await service.generate_insights(InsightRequest())

        assert insight.title == "System ready"
        assert mock_provider.prompts == []

    @pytest.mark.asyncio
    async def test_ai_reply_is_ranked_stably(self, settings, mock_provider, clock):
        mock_provider.queue_reply(
            json.dumps(
                [
                    _item("A", "medium"),
                    _item("B", "critical"),
                    _item("C", "medium"),
                    _item("D", "high"),
                ]
            )
        )
        service = InsightService(mock_provider, settings, clock=clock)

        insights = await service.generate_insights(_request(aqiData={"value": 180}))

        assert [i.title for i in insights] == ["B", "D", "A", "C"]
        assert all(i.source == "ai" for i in insights)

    @pytest.mark.asyncio
    async def test_prompt_is_deterministic(self, settings, mock_provider, clock):
        service = InsightService(mock_provider, settings, clock=clock)
        request = _request(
            hospitalData={"occupancyRate": 82.5, "totalBeds": 120, "trend": "increasing"},
            aqiData={"value": 180, "location": "Kolkata"},
        )

        await service.generate_insights(request)
        await service.generate_insights(request)

        first, second = mock_provider.prompts
        assert first == second
        assert first.index("## Hospital") < first.index("## Air Quality")
        assert "82.5%" in first

    @pytest.mark.asyncio
    async def test_malformed_reply_falls_back(self, settings, mock_provider, clock):
        mock_provider.queue_reply("Sorry, I can't help with that.")
        service = InsightService(mock_provider, settings, clock=clock)

        insights = await service.generate_insights(_request(aqiData={"value": 250}))

        assert insights[0].title == "Critical Air Quality Alert"
        assert insights[0].source == "fallback"

    @pytest.mark.asyncio
    async def test_missing_credential_skips_the_call(self, settings, unconfigured_provider, clock):
        service = InsightService(unconfigured_provider, settings, clock=clock)

        with patch.object(unconfigured_provider, "_complete", new_callable=AsyncMock) as complete:
            insights = await service.generate_insights(
                _request(hospitalData={"occupancyRate": 92, "totalBeds": 100}, aqiData={"value": 180})
            )

        complete.assert_not_called()
        assert [i.priority for i in insights] == ["critical", "high"]
        assert all(i.source == "fallback" for i in insights)

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, settings, mock_provider, clock):
        async def slow(*_args, **_kwargs):
            await asyncio.sleep(5)
            return "[]"

        service = InsightService(mock_provider, settings, clock=clock)
        with patch.object(mock_provider, "_complete", side_effect=slow):
            insights = await service.generate_insights(_request(aqiData={"value": 160}))

        assert insights[0].priority == "high"
        assert insights[0].source == "fallback"

    @pytest.mark.asyncio
    async def test_provider_exception_falls_back(self, settings, mock_provider, clock):
        service = InsightService(mock_provider, settings, clock=clock)
        with patch.object(
            mock_provider, "_complete", new_callable=AsyncMock, side_effect=RuntimeError("boom")
        ):
            insights = await service.generate_insights(_request(aqiData={"value": 120}))

        assert insights[0].priority == "medium"


class TestStaffing:
    @pytest.mark.asyncio
    async def test_fallback_ratio(self, settings, unconfigured_provider, clock):
        service = InsightService(unconfigured_provider, settings, clock=clock)

        recommendation = await service.get_staffing_recommendation(300, 40)

        assert recommendation.recommended_staff == 50
        assert recommendation.staffing_gap == 10
        assert recommendation.priority == "high"
        assert recommendation.category == "staffing"
        assert recommendation.title == "Additional Staffing Needed"
        assert recommendation.source == "fallback"

    @pytest.mark.asyncio
    async def test_adequate_staffing(self, settings, unconfigured_provider, clock):
        service = InsightService(unconfigured_provider, settings, clock=clock)

        recommendation = await service.get_staffing_recommendation(60, 12)

        assert recommendation.staffing_gap == -2
        assert recommendation.priority == "medium"
        assert recommendation.title == "Adequate Staffing Levels"

    @pytest.mark.asyncio
    async def test_ai_reply(self, settings, mock_provider, clock):
        mock_provider.queue_reply(
            json.dumps({"recommended_staff": 48, "title": "Add 8 nurses", "description": "Call in."})
        )
        service = InsightService(mock_provider, settings, clock=clock)

        recommendation = await service.get_staffing_recommendation(300, 40)

        assert recommendation.source == "ai"
        assert recommendation.recommended_staff == 48
        assert recommendation.staffing_gap == 8
        assert recommendation.priority == "high"

    @pytest.mark.asyncio
    async def test_malformed_ai_reply_uses_ratio(self, settings, mock_provider, clock):
        mock_provider.queue_reply("[]")
        service = InsightService(mock_provider, settings, clock=clock)

        recommendation = await service.get_staffing_recommendation(300, 40)

        assert recommendation.source == "fallback"
        assert recommendation.recommended_staff == 50

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "load, staff",
        [
            (-1, 10),
            (100, -3),
            ("300", 40),
            (100, 4.5),
            (math.inf, 1),
            (math.nan, 1),
            (100, math.inf),
            (10**400, 1),
        ],
    )
    async def test_invalid_input_rejected(self, settings, mock_provider, load, staff):
        service = InsightService(mock_provider, settings)
        with pytest.raises(ValidationError):
            await service.get_staffing_recommendation(load, staff)
        assert mock_provider.prompts == []


class TestSupplies:
    def test_critical_shortage(self, settings, mock_provider, clock):
        service = InsightService(mock_provider, settings, clock=clock)

        insight = service.get_supply_recommendation("Oxygen cylinders", 50, 70)

        assert insight.type == "alert"
        assert insight.priority == "critical"
        assert insight.category == "equipment"
        assert insight.data["days_of_supply"] == 5.0

    def test_low_stock(self, settings, mock_provider, clock):
        insight = InsightService(mock_provider, settings, clock=clock).get_supply_recommendation(
            "Masks", 100, 70
        )
        assert insight.priority == "high"

    def test_adequate_stock(self, settings, mock_provider, clock):
        insight = InsightService(mock_provider, settings, clock=clock).get_supply_recommendation(
            "Masks", 300, 70
        )
        assert insight.type == "recommendation"
        assert insight.priority == "medium"

    @pytest.mark.parametrize(
        "category, stock, demand",
        [
            ("", 10, 5),
            ("Masks", -1, 5),
            ("Masks", 10, 0),
            ("Masks", math.inf, 5),
            ("Masks", 10, math.inf),
            ("Masks", math.nan, 5),
        ],
    )
    def test_invalid_input(self, settings, mock_provider, category, stock, demand):
        with pytest.raises(ValidationError):
            InsightService(mock_provider, settings).get_supply_recommendation(category, stock, demand)


def test_rank_insights_keeps_ties_in_order(clock):
    from domain.models.schemas import Insight

    insights = [
        Insight(id=str(i), title=str(i), description="d", priority=p, generated_at=clock())
        for i, p in enumerate(["low", "high", "low", "critical", "high"])
    ]
    assert [i.id for i in rank_insights(insights)] == ["3", "1", "4", "0", "2"]
