"""
Environmental Snapshot Poller

Periodically fetches a weather/AQI reading per location and hands each new
snapshot to a consumer callback.

Rules:
- One timer per location, ticking at a fixed interval.
- A tick is dropped (not queued) while the previous poll for the same
  location is still in flight, so snapshots are applied in order.
- Any upstream failure resolves to the deterministic reference snapshot for
  the location; callers always get something to render.
- Stopping a location cancels future ticks and the in-flight fetch; a
  snapshot whose fetch was in flight at stop time is never applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from domain.models.schemas import EnvironmentalSnapshot, utcnow
from shared.config.locations import DEFAULT_WIND_SPEED, get_reference_reading
from shared.utils.provider_errors import MalformedUpstreamResponse, UpstreamUnavailable

logger = logging.getLogger(__name__)

SnapshotConsumer = Callable[[EnvironmentalSnapshot], Any]


class WeatherProvider(Protocol):
    async def fetch(self, location: str) -> dict[str, Any]: ...


def fallback_snapshot(
    location: str, default_location: str = "Delhi", observed_at: datetime | None = None
) -> EnvironmentalSnapshot:
    """Deterministic offline snapshot built from the fixed per-location reference table."""
    reading = get_reference_reading(location, default_location)
    return EnvironmentalSnapshot(
        location=location,
        aqi=reading["aqi"],
        temperature=reading["temperature"],
        humidity=reading["humidity"],
        wind_speed=DEFAULT_WIND_SPEED,
        description=reading["description"],
        observed_at=observed_at or utcnow(),
        source="fallback",
    )


class SnapshotPoller:
    def __init__(
        self,
        provider: WeatherProvider,
        interval_seconds: float = 300.0,
        default_location: str = "Delhi",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.provider = provider
        self.interval = interval_seconds
        self.default_location = default_location
        self._clock = clock
        self._latest: dict[str, EnvironmentalSnapshot] = {}
        self._timers: dict[str, asyncio.Task] = {}
        self._in_flight: dict[str, asyncio.Task] = {}
        self._generation: dict[str, int] = {}

    # ------------------------------------------------------------------ fetch

    async def poll_once(self, location: str) -> EnvironmentalSnapshot:
        """Fetch one snapshot. Never raises for upstream failures."""
        try:
            reading = await self.provider.fetch(location)
        except (UpstreamUnavailable, MalformedUpstreamResponse) as e:
            logger.warning(
                f"Weather provider unavailable for {location}, using reference snapshot: "
                f"{type(e).__name__} ({e.internal_message})"
            )
            return fallback_snapshot(location, self.default_location, self._clock())

        try:
            return EnvironmentalSnapshot(
                location=location,
                aqi=reading.get("aqi"),
                temperature=reading.get("temperature", 0.0),
                humidity=reading.get("humidity", 0.0),
                wind_speed=reading.get("wind_speed", 0.0),
                description=reading.get("description", ""),
                observed_at=reading.get("observed_at") or self._clock(),
                source="live",
            )
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(
                f"Weather reading for {location} is unusable, using reference snapshot: {e}"
            )
            return fallback_snapshot(location, self.default_location, self._clock())

    def latest(self, location: str) -> EnvironmentalSnapshot | None:
        return self._latest.get(location)

    def is_polling(self, location: str) -> bool:
        return location in self._in_flight

    # ------------------------------------------------------------------ ticks

    async def _tick(
        self, location: str, generation: int, on_snapshot: SnapshotConsumer | None
    ) -> EnvironmentalSnapshot | None:
        snapshot = await self.poll_once(location)
        if self._generation.get(location, 0) != generation:
            logger.debug(f"Discarding snapshot for {location}: polling was stopped mid-fetch")
            return None

        self._latest[location] = snapshot
        if on_snapshot is not None:
            try:
                on_snapshot(snapshot)
            except Exception:
                logger.exception(f"Snapshot consumer failed for {location}")
        return snapshot

    def trigger(
        self, location: str, on_snapshot: SnapshotConsumer | None = None
    ) -> asyncio.Task | None:
        """Start a poll for `location` unless one is already in flight.

        Returns the poll task, or None when the tick was dropped.
        """
        if location in self._in_flight:
            logger.debug(f"Dropping tick for {location}: previous poll still in flight")
            return None

        generation = self._generation.get(location, 0)
        task = asyncio.create_task(self._tick(location, generation, on_snapshot))
        self._in_flight[location] = task

        def _done(finished: asyncio.Task) -> None:
            if self._in_flight.get(location) is finished:
                del self._in_flight[location]

        task.add_done_callback(_done)
        return task

    async def refresh(
        self, location: str, on_snapshot: SnapshotConsumer | None = None
    ) -> EnvironmentalSnapshot:
        """Poll now, or wait for the poll already in flight, and return the latest snapshot."""
        task = self.trigger(location, on_snapshot) or self._in_flight.get(location)
        if task is not None:
            await asyncio.wait({task})
        snapshot = self._latest.get(location)
        if snapshot is None:
            # polling was stopped while we waited
            snapshot = fallback_snapshot(location, self.default_location, self._clock())
        return snapshot

    # ------------------------------------------------------------------ timers

    async def _run(self, location: str, on_snapshot: SnapshotConsumer | None) -> None:
        while True:
            self.trigger(location, on_snapshot)
            await asyncio.sleep(self.interval)

    def start(self, location: str, on_snapshot: SnapshotConsumer | None = None) -> None:
        if location in self._timers and not self._timers[location].done():
            return
        self._timers[location] = asyncio.create_task(self._run(location, on_snapshot))
        logger.info(f"Polling {location} every {self.interval:.0f}s")

    async def stop(self, location: str) -> None:
        self._generation[location] = self._generation.get(location, 0) + 1
        tasks = [t for t in (self._timers.pop(location, None), self._in_flight.pop(location, None)) if t]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Stopped polling {location}")

    async def stop_all(self) -> None:
        for location in list(set(self._timers) | set(self._in_flight)):
            await self.stop(location)

    @property
    def locations(self) -> list[str]:
        return sorted(self._timers)
