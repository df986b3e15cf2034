from datetime import datetime, timedelta, timezone

import pytest

from shared.config.settings import Settings


class FixedClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        AI_PROVIDER="mock",
        AI_API_KEY="",
        AI_REQUEST_TIMEOUT_SECONDS=0.5,
        OPENWEATHER_API_KEY="",
        WEATHER_POLLING_ENABLED=False,
        WEATHER_REQUEST_RETRIES=1,
        DATABASE_URL="sqlite:///:memory:",
        LOG_DIR=str(tmp_path / "logs"),
    )
