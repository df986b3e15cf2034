import pytest

from domain.models.schemas import InsightRequest
from domain.services.fallback_insights import build_fallback_insights, recommended_staff


def _request(**kwargs):
    return InsightRequest.model_validate(kwargs)


def _predictions(*values):
    return {"predictions": [{"predicted": v} for v in values]}


class TestAirQualityRules:
    def test_very_poor_air_is_critical(self, clock):
        [insight] = build_fallback_insights(_request(aqiData={"value": 250}), clock())

        assert insight.type == "alert"
        assert insight.priority == "critical"
        assert insight.confidence == 0.92
        assert insight.category == "environmental"
        assert "40-50%" in insight.description
        assert insight.source == "fallback"

    @pytest.mark.parametrize(
        "aqi, priority, expected_rise",
        [(200, "critical", "40-50%"), (199, "high", "25-30%"), (150, "high", "25-30%"), (100, "medium", "10-15%")],
    )
    def test_thresholds(self, clock, aqi, priority, expected_rise):
        [insight] = build_fallback_insights(_request(aqiData={"value": aqi}), clock())
        assert insight.priority == priority
        assert expected_rise in insight.description

    def test_clean_air_yields_system_ready(self, clock):
        [insight] = build_fallback_insights(_request(aqiData={"value": 60}), clock())
        assert insight.title == "System ready"

    def test_unknown_aqi_is_ignored(self, clock):
        [insight] = build_fallback_insights(_request(aqiData={"value": None}), clock())
        assert insight.title == "System ready"


class TestCapacityRules:
    def test_critical_occupancy(self, clock):
        [insight] = build_fallback_insights(
            _request(hospitalData={"occupancyRate": 92, "totalBeds": 200}), clock()
        )
        assert insight.priority == "critical"
        assert insight.data["available_beds"] == 16

    def test_high_occupancy(self, clock):
        [insight] = build_fallback_insights(
            _request(hospitalData={"occupancyRate": 80, "totalBeds": 200}), clock()
        )
        assert insight.priority == "high"
        assert insight.type == "recommendation"

    def test_rising_trend_adds_prediction(self, clock):
        insights = build_fallback_insights(
            _request(hospitalData={"occupancyRate": 78, "totalBeds": 100, "trend": "increasing"}),
            clock(),
        )
        assert [i.type for i in insights] == ["recommendation", "prediction"]

    def test_rising_trend_needs_meaningful_occupancy(self, clock):
        [insight] = build_fallback_insights(
            _request(hospitalData={"occupancyRate": 50, "totalBeds": 100, "trend": "increasing"}),
            clock(),
        )
        assert insight.title == "System ready"


class TestPredictionRules:
    def test_surge(self, clock):
        [insight] = build_fallback_insights(
            _request(predictionData=_predictions(100, 100, 100, 140)), clock()
        )
        assert insight.category == "outbreak"
        assert insight.priority == "high"
        assert insight.data["percent_change"] == pytest.approx(27.3)

    def test_decline(self, clock):
        [insight] = build_fallback_insights(
            _request(predictionData=_predictions(100, 100, 100, 70)), clock()
        )
        assert insight.type == "trend"
        assert insight.priority == "low"

    def test_too_few_points(self, clock):
        [insight] = build_fallback_insights(_request(predictionData=_predictions(10, 90)), clock())
        assert insight.title == "System ready"

    def test_zero_baseline_is_ignored(self, clock):
        [insight] = build_fallback_insights(_request(predictionData=_predictions(0, 0, 0)), clock())
        assert insight.title == "System ready"


class TestCombined:
    def test_every_group_contributes(self, clock):
        insights = build_fallback_insights(
            _request(
                hospitalData={"occupancyRate": 92, "totalBeds": 100},
                aqiData={"value": 180},
                predictionData=_predictions(100, 100, 100, 140),
            ),
            clock(),
        )
        assert [i.category for i in insights] == ["environmental", "capacity", "outbreak"]

    def test_deterministic(self, clock):
        request = _request(aqiData={"value": 180}, hospitalData={"occupancyRate": 80, "totalBeds": 10})
        assert build_fallback_insights(request, clock()) == build_fallback_insights(request, clock())


def test_recommended_staff_rounds_up():
    assert recommended_staff(300, 6) == 50
    assert recommended_staff(301, 6) == 51
    assert recommended_staff(0, 6) == 0
