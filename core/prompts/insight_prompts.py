"""
CarePulse analysis prompts.

Prompts are deterministic: the same InsightRequest always renders the same
text, with sections in a fixed order (hospital, AQI, predictions, task).
"""

from domain.models.schemas import InsightRequest

# =============================================================================
# SYSTEM INSTRUCTION
# =============================================================================

ANALYST_SYSTEM_INSTRUCTION = """You are CarePulse, a hospital operations analyst. You turn bed occupancy, air quality and admission forecasts into short, actionable insights for hospital administrators.

<rules>
- Use only the numbers you are given. Never invent measurements.
- Be concrete: name the ward, resource or action.
- Do not diagnose patients or recommend specific medications.
- Reply with JSON only. No prose before or after it.
</rules>"""


# =============================================================================
# INSIGHT PROMPT
# =============================================================================

INSIGHTS_TASK = """## Task
Analyse the data above and respond with a JSON array of 1 to 5 insights.
Each element must be an object with:
- "title": short headline (required)
- "description": 1-3 sentences with the recommended action (required)
- "type": one of "prediction", "recommendation", "alert", "trend"
- "priority": one of "low", "medium", "high", "critical"
- "category": one of "capacity", "staffing", "equipment", "environmental", "outbreak"
- "confidence": number between 0 and 1
Respond with the JSON array only."""


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_insights_prompt(request: InsightRequest) -> str:
    sections: list[str] = []

    if request.hospital_data is not None:
        hospital = request.hospital_data
        sections.append(
            "## Hospital\n"
            f"- Occupancy rate: {_format_number(hospital.occupancy_rate)}%\n"
            f"- Total beds: {hospital.total_beds}\n"
            f"- Admission trend: {hospital.trend}"
        )

    if request.aqi_data is not None:
        aqi = request.aqi_data
        value = "unknown" if aqi.value is None else str(aqi.value)
        lines = [f"- Current AQI: {value}"]
        if aqi.location:
            lines.append(f"- Location: {aqi.location}")
        sections.append("## Air Quality\n" + "\n".join(lines))

    if request.prediction_data is not None:
        points = request.prediction_data.predictions
        if points:
            series = ", ".join(_format_number(p.predicted) for p in points)
            sections.append(
                "## Predictions\n"
                f"- Predicted daily admissions ({len(points)} points, oldest first): {series}"
            )
        else:
            sections.append("## Predictions\n- No prediction points supplied")

    if request.timeframe:
        sections.append(f"## Timeframe\n- {request.timeframe}")

    sections.append(INSIGHTS_TASK)
    return "\n\n".join(sections)


# =============================================================================
# STAFFING PROMPT
# =============================================================================


def build_staffing_prompt(predicted_load: float, current_staff: int, patient_ratio: int) -> str:
    return (
        "## Staffing\n"
        f"- Predicted patient load: {_format_number(predicted_load)}\n"
        f"- Current nursing staff on shift: {current_staff}\n"
        f"- Target ratio: 1 nurse per {patient_ratio} patients\n\n"
        "## Task\n"
        "Recommend a staffing level. Respond with a single JSON object with:\n"
        '- "recommended_staff": integer (required)\n'
        '- "title": short headline (required)\n'
        '- "description": 1-3 sentences (required)\n'
        '- "priority": one of "low", "medium", "high", "critical"\n'
        '- "confidence": number between 0 and 1\n'
        "Respond with the JSON object only."
    )
