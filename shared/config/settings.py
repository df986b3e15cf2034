from functools import lru_cache

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv(dotenv_path=".env.local")
load_dotenv()


class Settings(BaseSettings):
    # AI Configuration
    AI_API_KEY: str = ""
    AI_MODEL: str = "gemini-2.5-flash"
    AI_PROVIDER: str = "gemini"  # gemini, openai, mock
    AI_MAX_TOKENS: int = 2048
    AI_RESPONSE_TEMPERATURE: float = 0.3
    AI_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Provider URLs
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"

    # Weather / AQI provider
    OPENWEATHER_API_KEY: str = ""
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/2.5"
    WEATHER_POLL_INTERVAL_SECONDS: float = 300.0
    WEATHER_REQUEST_RETRIES: int = 3
    WEATHER_POLLING_ENABLED: bool = True

    # Monitoring
    MONITORED_LOCATIONS: str = "Delhi,Mumbai,Bangalore,Hyderabad,Chennai,Kolkata,Pune,Ahmedabad"
    DEFAULT_LOCATION: str = "Delhi"
    NOTIFICATION_RETENTION_DAYS: int = 7

    # Healthcare analytics
    STAFF_PATIENT_RATIO: int = 6

    # Database
    DATABASE_URL: str = "sqlite:///./data/carepulse.db"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def validate_database_url(cls, v):
        return "sqlite:///./data/carepulse.db" if not v or not v.strip() else v

    @field_validator("STAFF_PATIENT_RATIO")
    @classmethod
    def validate_staff_ratio(cls, v):
        if v <= 0:
            raise ValueError("STAFF_PATIENT_RATIO must be positive")
        return v

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "CarePulse - Hospital Environmental Alerting API"
    ENVIRONMENT: str = "development"
    LOG_DIR: str = "./logs"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: str = "*"
    CORS_ALLOW_HEADERS: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def monitored_locations_list(self) -> list[str]:
        return [loc.strip() for loc in self.MONITORED_LOCATIONS.split(",") if loc.strip()]

    @property
    def ai_configured(self) -> bool:
        if self.AI_PROVIDER.lower() == "mock":
            return True
        return bool(self.AI_API_KEY.strip())

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings():
    return Settings()
