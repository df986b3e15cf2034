"""
AQI Severity Classifier

Maps an AQI value onto one canonical threshold table. Every component that
needs a tier (notifications, snapshot views) goes through `classify` so the
boundaries can't drift between call sites.

    aqi is None     -> NORMAL   (unknown is treated as non-alarming)
    aqi <= 100      -> NORMAL
    100 < aqi <= 150 -> MODERATE (moderate watch)
    150 < aqi <= 300 -> WARNING
    aqi > 300       -> CRITICAL (hazardous)
"""

from __future__ import annotations

from domain.models.schemas import NotificationSeverity, SeverityTier

MODERATE_THRESHOLD = 100
WARNING_THRESHOLD = 150
CRITICAL_THRESHOLD = 300

TIER_MESSAGES: dict[SeverityTier, str] = {
    SeverityTier.NORMAL: "Conditions stable. Continue monitoring.",
    SeverityTier.MODERATE: "Moderate watch: sensitive patients may be affected.",
    SeverityTier.WARNING: "Air quality deteriorating. Prepare advisory.",
    SeverityTier.CRITICAL: "Hazardous air quality. Trigger respiratory surge plan.",
}

TIER_LABELS: dict[SeverityTier, str] = {
    SeverityTier.NORMAL: "Satisfactory",
    SeverityTier.MODERATE: "Moderate",
    SeverityTier.WARNING: "Very Unhealthy",
    SeverityTier.CRITICAL: "Hazardous",
}

_NOTIFICATION_SEVERITY: dict[SeverityTier, NotificationSeverity] = {
    SeverityTier.MODERATE: "info",
    SeverityTier.WARNING: "warning",
    SeverityTier.CRITICAL: "critical",
}


def classify(aqi: int | None) -> SeverityTier:
    if aqi is None:
        return SeverityTier.NORMAL
    if aqi > CRITICAL_THRESHOLD:
        return SeverityTier.CRITICAL
    if aqi > WARNING_THRESHOLD:
        return SeverityTier.WARNING
    if aqi > MODERATE_THRESHOLD:
        return SeverityTier.MODERATE
    return SeverityTier.NORMAL


def tier_message(tier: SeverityTier, aqi: int | None = None) -> str:
    if aqi is None and tier is SeverityTier.NORMAL:
        return "AQI unavailable. Continue monitoring."
    return TIER_MESSAGES[tier]


def notification_severity(tier: SeverityTier) -> NotificationSeverity | None:
    """Notification severity for a tier, or None when the tier is not reported."""
    return _NOTIFICATION_SEVERITY.get(tier)
