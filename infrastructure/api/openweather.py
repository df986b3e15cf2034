"""OpenWeather current-weather and air-pollution client.

Docs:
- https://openweathermap.org/current
- https://openweathermap.org/api/air-pollution

Important:
- The air-pollution endpoint returns raw concentrations (µg/m³), not AQI.
  PM2.5 is converted to a US EPA AQI before it leaves this module.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

import httpx

from shared.config.settings import Settings, get_settings
from shared.utils.aqi_calculator import pm25_to_aqi
from shared.utils.http_client import DEFAULT_TIMEOUT, resilient_get
from shared.utils.provider_errors import (
    AuthError,
    MalformedUpstreamResponse,
    provider_unavailable_message,
)

logger = logging.getLogger(__name__)

PROVIDER = "openweather"


def _malformed(internal_message: str) -> MalformedUpstreamResponse:
    return MalformedUpstreamResponse(
        provider=PROVIDER,
        public_message=provider_unavailable_message("OpenWeather"),
        internal_message=internal_message,
    )


def _number(value: Any, field: str, location: str) -> float:
    message = f"weather payload field '{field}' is not a finite number for {location}"
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _malformed(message)
    try:
        number = float(value)
    except OverflowError as e:
        raise _malformed(message) from e
    if not math.isfinite(number):
        raise _malformed(message)
    return number


def _section(payload: dict[str, Any], key: str, location: str) -> dict[str, Any]:
    value = payload.get(key) or {}
    if not isinstance(value, dict):
        raise _malformed(f"weather payload field '{key}' is not an object for {location}")
    return value


class OpenWeatherService:
    """Fetches one weather/AQI reading per call."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = settings or get_settings()
        self.api_key = settings.OPENWEATHER_API_KEY
        self.base_url = settings.OPENWEATHER_BASE_URL.rstrip("/")
        self.retries = settings.WEATHER_REQUEST_RETRIES
        self.client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_json(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        request_params = dict(params)
        request_params["appid"] = self.api_key
        response = await resilient_get(
            f"{self.base_url}/{endpoint}",
            provider=PROVIDER,
            params=request_params,
            timeout=DEFAULT_TIMEOUT,
            retries=self.retries,
            client=self.client,
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedUpstreamResponse(
                provider=PROVIDER,
                public_message=provider_unavailable_message("OpenWeather"),
                internal_message=f"non-JSON body from {endpoint}",
            ) from e
        if not isinstance(payload, dict):
            raise MalformedUpstreamResponse(
                provider=PROVIDER,
                public_message=provider_unavailable_message("OpenWeather"),
                internal_message=f"unexpected payload type from {endpoint}",
            )
        return payload

    async def fetch(self, location: str) -> dict[str, Any]:
        """
        Fetch the current reading for a city.

        Returns:
            dict with location, aqi (None when the pollution lookup has no
            PM2.5), temperature, humidity, wind_speed, description, observed_at

        Raises:
            AuthError: No API key configured, or key rejected
            RateLimitError / TransportError: see `resilient_get`
            MalformedUpstreamResponse: payload missing required fields
        """
        if not self.api_key:
            raise AuthError(
                provider=PROVIDER,
                public_message=provider_unavailable_message("OpenWeather"),
                internal_message="OPENWEATHER_API_KEY not configured",
            )

        weather = await self._get_json("weather", {"q": location, "units": "metric"})
        main = weather.get("main")
        if not isinstance(main, dict) or "temp" not in main:
            raise _malformed(f"weather payload missing 'main.temp' for {location}")
        parsed = self._parse_weather(weather, main, location)

        aqi = None
        coord = _section(weather, "coord", location)
        lat, lon = coord.get("lat"), coord.get("lon")
        if lat is not None and lon is not None:
            pollution = await self._get_json("air_pollution", {"lat": lat, "lon": lon})
            aqi = self._extract_aqi(pollution)

        return {
            "location": weather.get("name") or location,
            "aqi": aqi,
            **parsed,
        }

    @staticmethod
    def _parse_weather(
        weather: dict[str, Any], main: dict[str, Any], location: str
    ) -> dict[str, Any]:
        conditions = weather.get("weather") or [{}]
        if not isinstance(conditions, list) or not isinstance(conditions[0], dict):
            raise _malformed(f"weather conditions are not a list of objects for {location}")
        description = conditions[0].get("description") or "Clear"
        if not isinstance(description, str):
            raise _malformed(f"weather description is not text for {location}")

        observed = weather.get("dt")
        if observed is None:
            observed_at = datetime.now(timezone.utc)
        else:
            timestamp = _number(observed, "dt", location)
            try:
                observed_at = datetime.fromtimestamp(timestamp, tz=timezone.utc)
            except (OverflowError, OSError, ValueError) as e:
                raise _malformed(
                    f"weather timestamp {observed!r} out of range for {location}"
                ) from e

        return {
            "temperature": round(_number(main["temp"], "main.temp", location)),
            "humidity": _number(main.get("humidity", 0), "main.humidity", location),
            "wind_speed": _number(
                _section(weather, "wind", location).get("speed", 0), "wind.speed", location
            ),
            "description": description,
            "observed_at": observed_at,
        }

    @staticmethod
    def _extract_aqi(pollution: dict[str, Any]) -> int | None:
        try:
            pm25 = pollution["list"][0]["components"]["pm2_5"]
        except (KeyError, IndexError, TypeError):
            logger.debug("Air pollution payload has no PM2.5 component")
            return None
        if isinstance(pm25, bool) or not isinstance(pm25, (int, float)):
            return None
        if not math.isfinite(pm25) or pm25 < 0:
            return None
        return pm25_to_aqi(float(pm25))
