import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from core.providers import BaseAIProvider, create_provider
from domain.services.alerting_service import AlertingService
from domain.services.insight_service import InsightService
from domain.services.notifications import NotificationCenter
from domain.services.recommendation_store import RecommendationStore
from domain.services.snapshot_poller import SnapshotPoller, WeatherProvider
from infrastructure.api.openweather import OpenWeatherService
from infrastructure.database import (
    DocumentStore,
    InMemoryDocumentStore,
    SQLDocumentStore,
    create_session_factory,
    create_tables,
    ensure_database_directory,
    init_database_engine,
)
from interfaces.rest_api.error_handlers import register_error_handlers
from interfaces.rest_api.models import HealthCheck
from interfaces.rest_api.routes import router
from shared.config.settings import Settings, get_settings
from shared.monitoring.error_logger import ErrorLogger, get_error_logger
from shared.utils.http_client import create_client

VERSION = "1.0.0"


def setup_logging(settings: Settings | None = None):
    """Configure logging levels based on environment."""
    settings = settings or get_settings()
    log_level = logging.WARNING if settings.ENVIRONMENT == "production" else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    if settings.ENVIRONMENT == "production":
        # Only errors and warnings from providers, not debug info
        logging.getLogger("core.providers").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def _split(value: str) -> list[str]:
    return ["*"] if value == "*" else [v.strip() for v in value.split(",") if v.strip()]


def create_app(
    settings: Settings | None = None,
    *,
    ai_provider: BaseAIProvider | None = None,
    weather_provider: WeatherProvider | None = None,
    document_store: DocumentStore | None = None,
    error_logger: ErrorLogger | None = None,
) -> FastAPI:
    """Build the application. Collaborators left as None are created from settings at startup."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        FastAPI lifespan event handler.
        Builds the services on startup and stops polling on shutdown.
        """
        setup_logging(settings)
        app.state.error_logger = error_logger or get_error_logger(settings.LOG_DIR)

        http_client = create_client()
        weather = weather_provider or OpenWeatherService(settings, client=http_client)
        poller = SnapshotPoller(
            weather,
            interval_seconds=settings.WEATHER_POLL_INTERVAL_SECONDS,
            default_location=settings.DEFAULT_LOCATION,
        )
        app.state.alerting = AlertingService(
            poller, NotificationCenter(retention_days=settings.NOTIFICATION_RETENTION_DAYS)
        )

        provider = ai_provider or create_provider(settings)
        app.state.insights = InsightService(provider, settings)

        engine = None
        store = document_store
        if store is None:
            try:
                ensure_database_directory(settings.DATABASE_URL)
                engine = init_database_engine(settings.DATABASE_URL)
                create_tables(engine)
                store = SQLDocumentStore(create_session_factory(engine))
                logger.info("✓ Database tables initialized successfully")
            except (SQLAlchemyError, OSError) as e:
                logger.error(f"Failed to initialize database, recommendations kept in memory: {e}")
                store = InMemoryDocumentStore()
        app.state.recommendations = RecommendationStore(store)

        if settings.WEATHER_POLLING_ENABLED:
            app.state.alerting.start(settings.monitored_locations_list)

        yield

        logger.info("Shutting down...")
        await app.state.alerting.stop()
        provider.cleanup()
        await http_client.aclose()
        if engine is not None:
            engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=_split(settings.CORS_ALLOW_METHODS),
        allow_headers=_split(settings.CORS_ALLOW_HEADERS),
    )

    register_error_handlers(app)
    app.include_router(router, prefix=settings.API_V1_STR)

    @app.get("/health", response_model=HealthCheck)
    async def health_check():
        return HealthCheck(
            status="ok",
            version=VERSION,
            ai_provider=settings.AI_PROVIDER,
            ai_configured=settings.ai_configured,
            monitored_locations=app.state.alerting.poller.locations,
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
