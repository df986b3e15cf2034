"""Live environmental alerting: poller snapshots flow into the notification center."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from domain.models.schemas import EnvironmentalSnapshot, SeverityTier
from domain.services.notifications import NotificationCenter
from domain.services.severity import classify, tier_message
from domain.services.snapshot_poller import SnapshotPoller

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotView:
    snapshot: EnvironmentalSnapshot
    tier: SeverityTier
    message: str


class AlertingService:
    def __init__(self, poller: SnapshotPoller, notifications: NotificationCenter):
        self.poller = poller
        self.notifications = notifications

    def _on_snapshot(self, snapshot: EnvironmentalSnapshot) -> None:
        self.notifications.apply_snapshot(snapshot)

    def start(self, locations: list[str]) -> None:
        for location in locations:
            self.poller.start(location, self._on_snapshot)
        logger.info(f"Alerting started for {len(locations)} locations")

    async def stop(self) -> None:
        await self.poller.stop_all()
        logger.info("Alerting stopped")

    async def snapshot_view(self, location: str) -> SnapshotView:
        """Latest snapshot for `location`, polling once on demand if none exists yet."""
        snapshot = self.poller.latest(location)
        if snapshot is None:
            snapshot = await self.poller.refresh(location, self._on_snapshot)
        tier = classify(snapshot.aqi)
        return SnapshotView(snapshot=snapshot, tier=tier, message=tier_message(tier, snapshot.aqi))
