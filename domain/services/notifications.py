"""
Notification derivation and the notification center.

`derive` is pure: it turns a classified snapshot into at most one live AQI
notification per location, superseding older AQI records for that location.
`NotificationCenter` owns the notification list for the running process and
applies every change as a single tuple swap so readers never see the
intermediate state between removing a superseded record and inserting its
replacement.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone

from domain.exceptions import NotFoundError
from domain.models.schemas import EnvironmentalSnapshot, Notification, SeverityTier, utcnow
from domain.services.severity import TIER_LABELS, classify, notification_severity, tier_message

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7

_TITLES = {
    SeverityTier.MODERATE: "Moderate AQI",
    SeverityTier.WARNING: "AQI Spike Alert",
    SeverityTier.CRITICAL: "Hazardous Air Quality Alert",
}


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-") or "unknown"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def notification_id(kind: str, location: str, generated_at: datetime) -> str:
    stamp = _as_utc(generated_at).strftime("%Y%m%dT%H%M%S%f")
    return f"{kind}-{_slug(location)}-{stamp}"


def build_aqi_notification(
    snapshot: EnvironmentalSnapshot, generated_at: datetime | None = None
) -> Notification | None:
    """Build the AQI notification for a snapshot, or None below the reporting threshold."""
    tier = classify(snapshot.aqi)
    severity = notification_severity(tier)
    if severity is None:
        return None

    generated_at = generated_at or utcnow()
    return Notification(
        id=notification_id("aqi", snapshot.location, generated_at),
        type="aqi",
        severity=severity,
        title=_TITLES[tier],
        message=(
            f"Air quality in {snapshot.location} reached {snapshot.aqi} "
            f"({TIER_LABELS[tier]}). {tier_message(tier, snapshot.aqi)}"
        ),
        location=snapshot.location,
        observed_at=snapshot.observed_at,
    )


def supersede(existing: Iterable[Notification], new: Notification) -> list[Notification]:
    """Drop every record sharing (type, location) with `new`, then append it."""
    kept = [
        n
        for n in existing
        if not (n.type == new.type and n.location.lower() == new.location.lower())
    ]
    kept.append(new)
    return kept


def derive(
    snapshot: EnvironmentalSnapshot,
    existing: Iterable[Notification],
    generated_at: datetime | None = None,
) -> list[Notification]:
    """Return the notification list after applying `snapshot`.

    Emits nothing (returns `existing` as a new list) when the snapshot is in
    the NORMAL tier. Otherwise the previous AQI notification for the same
    location is retired and the new one appended.
    """
    notification = build_aqi_notification(snapshot, generated_at)
    if notification is None:
        return list(existing)
    return supersede(existing, notification)


class NotificationCenter:
    """Process-local notification state with idempotent read/acknowledge operations."""

    def __init__(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.retention = timedelta(days=retention_days)
        self._clock = clock
        self._notifications: tuple[Notification, ...] = ()

    def apply_snapshot(self, snapshot: EnvironmentalSnapshot) -> Notification | None:
        notification = build_aqi_notification(snapshot, self._clock())
        if notification is None:
            logger.debug(f"No notification for {snapshot.location} (AQI {snapshot.aqi})")
            return None

        self._notifications = tuple(supersede(self._notifications, notification))
        logger.info(
            f"{notification.severity.upper()} AQI notification for {snapshot.location}: "
            f"AQI {snapshot.aqi}"
        )
        return notification

    def publish(self, notification: Notification) -> None:
        """Add an externally produced notification (project/system channels)."""
        if notification.type == "aqi":
            self._notifications = tuple(supersede(self._notifications, notification))
        else:
            self._notifications = self._notifications + (notification,)

    def all(self) -> list[Notification]:
        """Every stored record, including those outside the retention window."""
        return list(self._notifications)

    def current(self, location: str | None = None, now: datetime | None = None) -> list[Notification]:
        """Notifications observed within the retention window, newest first."""
        cutoff = _as_utc(now or self._clock()) - self.retention
        return sorted(
            (
                n
                for n in self._notifications
                if _matches(n, location) and _as_utc(n.observed_at) >= cutoff
            ),
            key=lambda n: _as_utc(n.observed_at),
            reverse=True,
        )

    def unread_count(self, location: str | None = None, now: datetime | None = None) -> int:
        return sum(1 for n in self.current(location, now) if not n.read)

    def mark_read(self, notification_id: str) -> Notification:
        for index, n in enumerate(self._notifications):
            if n.id == notification_id:
                if n.read:
                    return n
                updated = n.model_copy(update={"read": True})
                items = list(self._notifications)
                items[index] = updated
                self._notifications = tuple(items)
                return updated
        raise NotFoundError("Notification", notification_id)

    def mark_all_read(self, location: str | None = None) -> int:
        """Acknowledge every matching record. Returns how many changed."""
        changed = 0
        items = []
        for n in self._notifications:
            if not n.read and _matches(n, location):
                items.append(n.model_copy(update={"read": True}))
                changed += 1
            else:
                items.append(n)
        if changed:
            self._notifications = tuple(items)
        return changed


def _matches(notification: Notification, location: str | None) -> bool:
    return location is None or notification.location.lower() == location.lower()
