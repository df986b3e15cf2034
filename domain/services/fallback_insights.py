"""
Rule-based insight synthesis.

Used whenever the generation API is unavailable or its reply is rejected.
Each rule group looks at one input independently; the results are
concatenated, and a single "System ready" insight is emitted when nothing
fires.

Thresholds
----------
AQI (expected respiratory admission rise):
    >= 200        alert / critical     40-50% within 24-48h
    150 .. 199    recommendation / high   25-30%
    100 .. 149    recommendation / medium 10-15%
Occupancy:
    >= 90%        alert / critical
    75 .. 89.x%   recommendation / high
    trend "increasing" and > 60%   prediction / medium
Predictions (>= 3 points, latest vs mean of all points):
    > +20%        alert / high / outbreak
    < -15%        trend / low / capacity
"""

from __future__ import annotations

import math
from datetime import datetime

from domain.models.schemas import (
    AQISummary,
    HospitalSummary,
    Insight,
    InsightRequest,
    PredictionSummary,
    utcnow,
)

MIN_PREDICTION_POINTS = 3
SURGE_THRESHOLD_PCT = 20.0
DECLINE_THRESHOLD_PCT = -15.0


def system_ready_insight(generated_at: datetime | None = None) -> Insight:
    generated_at = generated_at or utcnow()
    return Insight(
        id=f"system-ready-{generated_at.strftime('%Y%m%dT%H%M%S%f')}",
        type="trend",
        title="System ready",
        description=(
            "No hospital, air quality or prediction data supplied yet. "
            "Insights will appear as soon as data is available."
        ),
        confidence=1.0,
        priority="low",
        category="capacity",
        generated_at=generated_at,
        source="fallback",
    )


def _stamp(generated_at: datetime) -> str:
    return generated_at.strftime("%Y%m%dT%H%M%S%f")


def aqi_insights(aqi_data: AQISummary, generated_at: datetime) -> list[Insight]:
    aqi = aqi_data.value
    if aqi is None:
        return []

    common = {
        "id": f"aqi-{_stamp(generated_at)}",
        "category": "environmental",
        "generated_at": generated_at,
        "source": "fallback",
    }
    if aqi >= 200:
        return [
            Insight(
                **common,
                type="alert",
                title="Critical Air Quality Alert",
                description=(
                    f"AQI level of {aqi} (Very Poor) indicates severe respiratory health risks. "
                    "Expect 40-50% increase in respiratory admissions within 24-48 hours. "
                    "Immediate action required: increase ICU capacity, stock respiratory "
                    "medications, and activate emergency protocols."
                ),
                confidence=0.92,
                priority="critical",
                data={"aqi": aqi, "expected_increase": "40-50%", "timeframe": "24-48h"},
            )
        ]
    if aqi >= 150:
        return [
            Insight(
                **common,
                type="recommendation",
                title="Elevated Respiratory Risk",
                description=(
                    f"AQI at {aqi} (Poor). Anticipate 25-30% increase in respiratory cases. "
                    "Prepare additional respiratory care beds, ensure adequate ventilator "
                    "availability, brief staff on air quality-related symptoms."
                ),
                confidence=0.85,
                priority="high",
                data={"aqi": aqi, "expected_increase": "25-30%"},
            )
        ]
    if aqi >= 100:
        return [
            Insight(
                **common,
                type="recommendation",
                title="Moderate Air Quality Impact",
                description=(
                    f"AQI at {aqi} (Moderate). Expect slight increase (10-15%) in respiratory "
                    "consultations. Monitor sensitive patient populations closely."
                ),
                confidence=0.78,
                priority="medium",
                data={"aqi": aqi, "expected_increase": "10-15%"},
            )
        ]
    return []


def capacity_insights(hospital: HospitalSummary, generated_at: datetime) -> list[Insight]:
    insights: list[Insight] = []
    occupancy = hospital.occupancy_rate
    total_beds = hospital.total_beds
    occupied = round(total_beds * occupancy / 100)
    stamp = _stamp(generated_at)

    if occupancy >= 90:
        insights.append(
            Insight(
                id=f"capacity-{stamp}-1",
                type="alert",
                title="Critical Bed Capacity",
                description=(
                    f"Hospital at {occupancy:g}% occupancy ({occupied}/{total_beds} beds). "
                    "Critical threshold reached. Activate overflow protocols, defer non-urgent "
                    "surgeries, coordinate with nearby facilities for patient transfers."
                ),
                confidence=0.95,
                priority="critical",
                category="capacity",
                generated_at=generated_at,
                source="fallback",
                data={
                    "occupancy_rate": occupancy,
                    "total_beds": total_beds,
                    "available_beds": total_beds - occupied,
                },
            )
        )
    elif occupancy >= 75:
        insights.append(
            Insight(
                id=f"capacity-{stamp}-2",
                type="recommendation",
                title="Approaching Capacity Limits",
                description=(
                    f"Current occupancy at {occupancy:g}%. Prepare for potential capacity "
                    "constraints. Consider early discharge planning for stable patients and "
                    "optimize bed turnover processes."
                ),
                confidence=0.87,
                priority="high",
                category="capacity",
                generated_at=generated_at,
                source="fallback",
                data={"occupancy_rate": occupancy, "total_beds": total_beds},
            )
        )

    if hospital.trend == "increasing" and occupancy > 60:
        insights.append(
            Insight(
                id=f"trend-{stamp}",
                type="prediction",
                title="Rising Admission Trend Detected",
                description=(
                    f"Admission rate trending upward with current occupancy at {occupancy:g}%. "
                    "Expect capacity to reach 85-90% within 3-5 days. Proactive capacity "
                    "planning recommended."
                ),
                confidence=0.82,
                priority="medium",
                category="capacity",
                generated_at=generated_at,
                source="fallback",
                data={
                    "current_occupancy": occupancy,
                    "projected_occupancy": "85-90%",
                    "timeframe": "3-5 days",
                },
            )
        )
    return insights


def prediction_insights(predictions: PredictionSummary, generated_at: datetime) -> list[Insight]:
    points = [p.predicted for p in predictions.predictions]
    if len(points) < MIN_PREDICTION_POINTS:
        return []

    mean = sum(points) / len(points)
    if mean <= 0:
        return []
    latest = points[-1]
    percent_change = (latest - mean) / mean * 100
    stamp = _stamp(generated_at)

    if percent_change > SURGE_THRESHOLD_PCT:
        return [
            Insight(
                id=f"surge-{stamp}",
                type="alert",
                title="Patient Surge Pattern Detected",
                description=(
                    f"Predictive models indicate {round(percent_change)}% increase above average "
                    "baseline. Likely triggers: seasonal factors, local outbreaks, or environmental "
                    "conditions. Prepare for increased ED volume and general ward admissions."
                ),
                confidence=0.88,
                priority="high",
                category="outbreak",
                generated_at=generated_at,
                source="fallback",
                data={
                    "percent_change": round(percent_change, 1),
                    "avg_baseline": round(mean),
                    "projected": round(latest),
                },
            )
        ]
    if percent_change < DECLINE_THRESHOLD_PCT:
        return [
            Insight(
                id=f"decline-{stamp}",
                type="trend",
                title="Declining Admission Trend",
                description=(
                    f"Admissions tracking {abs(round(percent_change))}% below recent average. "
                    "Opportunity to focus on elective procedures, staff training, and facility "
                    "maintenance."
                ),
                confidence=0.80,
                priority="low",
                category="capacity",
                generated_at=generated_at,
                source="fallback",
                data={"percent_change": round(percent_change, 1), "avg_baseline": round(mean)},
            )
        ]
    return []


def build_fallback_insights(
    request: InsightRequest, generated_at: datetime | None = None
) -> list[Insight]:
    """Evaluate every rule group and return the unsorted results."""
    generated_at = generated_at or utcnow()
    insights: list[Insight] = []

    if request.aqi_data is not None:
        insights.extend(aqi_insights(request.aqi_data, generated_at))
    if request.hospital_data is not None:
        insights.extend(capacity_insights(request.hospital_data, generated_at))
    if request.prediction_data is not None:
        insights.extend(prediction_insights(request.prediction_data, generated_at))

    if not insights:
        insights.append(system_ready_insight(generated_at))
    return insights


def recommended_staff(predicted_load: float, patient_ratio: int) -> int:
    return math.ceil(predicted_load / patient_ratio)
