import asyncio

import httpx
import pytest

from domain.services.snapshot_poller import SnapshotPoller, fallback_snapshot
from infrastructure.api.openweather import OpenWeatherService
from shared.utils.provider_errors import AuthError, MalformedUpstreamResponse, TransportError


class _StubWeather:
    def __init__(self, reading=None, error=None):
        self.reading = reading or {"aqi": 140, "temperature": 21, "humidity": 40}
        self.error = error
        self.calls = []

    async def fetch(self, location):
        self.calls.append(location)
        if self.error is not None:
            raise self.error
        return dict(self.reading, location=location)


class _BlockingWeather:
    """Fetch blocks until `release` is set."""

    def __init__(self, aqi=200):
        self.aqi = aqi
        self.release = asyncio.Event()
        self.started = asyncio.Event()
        self.calls = 0

    async def fetch(self, location):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return {"aqi": self.aqi, "temperature": 20}


def _transport_error():
    return TransportError(provider="openweather", public_message="down", internal_message="boom")


class TestPollOnce:
    @pytest.mark.asyncio
    async def test_live_reading(self, clock):
        poller = SnapshotPoller(_StubWeather(), clock=clock)
        snapshot = await poller.poll_once("Pune")

        assert snapshot.source == "live"
        assert snapshot.aqi == 140
        assert snapshot.location == "Pune"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            _transport_error(),
            AuthError(provider="openweather", public_message="down"),
            MalformedUpstreamResponse(provider="openweather", public_message="bad"),
        ],
    )
    async def test_upstream_failure_uses_reference_reading(self, clock, error):
        poller = SnapshotPoller(_StubWeather(error=error), clock=clock)
        snapshot = await poller.poll_once("Kolkata")

        assert snapshot.source == "fallback"
        assert snapshot.aqi == 180
        assert snapshot.observed_at == clock()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reading",
        [
            {"aqi": -5, "temperature": 21, "humidity": 40},
            {"aqi": 120, "temperature": "hot", "humidity": 40},
            {"aqi": 120, "temperature": 21, "humidity": None},
        ],
    )
    async def test_unusable_reading_uses_reference_reading(self, clock, reading):
        poller = SnapshotPoller(_StubWeather(reading), clock=clock)
        snapshot = await poller.poll_once("Kolkata")

        assert snapshot.source == "fallback"
        assert snapshot.aqi == 180

    @pytest.mark.asyncio
    async def test_null_humidity_from_openweather_falls_back(self, clock, settings):
        payload = {"name": "Kolkata", "main": {"temp": 20, "humidity": None}}
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        )
        service = OpenWeatherService(
            settings.model_copy(update={"OPENWEATHER_API_KEY": "test-key"}), client=client
        )
        poller = SnapshotPoller(service, clock=clock)

        snapshot = await poller.refresh("Kolkata")

        assert snapshot.source == "fallback"
        assert poller.latest("Kolkata") == snapshot

    @pytest.mark.asyncio
    async def test_unknown_location_uses_default_reading(self, clock):
        poller = SnapshotPoller(_StubWeather(error=_transport_error()), clock=clock)
        snapshot = await poller.poll_once("Atlantis")

        assert snapshot.location == "Atlantis"
        assert snapshot.aqi == fallback_snapshot("Delhi").aqi

    def test_fallback_is_deterministic(self, clock):
        first = fallback_snapshot("mumbai", observed_at=clock())
        second = fallback_snapshot("Mumbai", observed_at=clock())
        assert first.aqi == second.aqi == 95


class TestTicks:
    @pytest.mark.asyncio
    async def test_refresh_stores_latest_and_notifies(self, clock):
        received = []
        poller = SnapshotPoller(_StubWeather(), clock=clock)

        snapshot = await poller.refresh("Pune", received.append)

        assert poller.latest("Pune") == snapshot
        assert received == [snapshot]

    @pytest.mark.asyncio
    async def test_tick_dropped_while_previous_in_flight(self):
        weather = _BlockingWeather()
        poller = SnapshotPoller(weather)

        first = poller.trigger("Delhi")
        await weather.started.wait()
        second = poller.trigger("Delhi")

        assert first is not None
        assert second is None
        assert poller.is_polling("Delhi")

        weather.release.set()
        await first
        assert weather.calls == 1
        assert not poller.is_polling("Delhi")

    @pytest.mark.asyncio
    async def test_stop_discards_in_flight_snapshot(self):
        received = []
        weather = _BlockingWeather()
        poller = SnapshotPoller(weather)

        poller.trigger("Delhi", received.append)
        await weather.started.wait()
        await poller.stop("Delhi")
        weather.release.set()
        await asyncio.sleep(0)

        assert received == []
        assert poller.latest("Delhi") is None

    @pytest.mark.asyncio
    async def test_result_of_stale_generation_is_not_applied(self):
        received = []
        weather = _BlockingWeather()
        poller = SnapshotPoller(weather)

        task = poller.trigger("Delhi", received.append)
        await weather.started.wait()
        # bump generation without cancelling the task
        poller._generation["Delhi"] = 1
        weather.release.set()
        result = await task

        assert result is None
        assert received == []

    @pytest.mark.asyncio
    async def test_failing_consumer_does_not_break_polling(self, clock):
        def explode(_snapshot):
            raise RuntimeError("consumer bug")

        poller = SnapshotPoller(_StubWeather(), clock=clock)
        snapshot = await poller.refresh("Pune", explode)

        assert snapshot.aqi == 140
        assert poller.latest("Pune") == snapshot

    @pytest.mark.asyncio
    async def test_timer_polls_until_stopped(self):
        weather = _StubWeather()
        poller = SnapshotPoller(weather, interval_seconds=0.01)

        poller.start("Pune")
        assert poller.locations == ["Pune"]
        await asyncio.sleep(0.05)
        await poller.stop_all()
        calls = len(weather.calls)
        await asyncio.sleep(0.03)

        assert calls >= 2
        assert len(weather.calls) == calls
        assert poller.locations == []
