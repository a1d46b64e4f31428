# backend/evbooking/main.py
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import settings
from .core.timezone_utils import get_zone
from .errors import register_error_handlers
from .routes import health, prometheus
from .routes.v1 import bookings as bookings_v1, stations as stations_v1

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

API_TITLE = "EV Charging Booking API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info("EV booking API starting up...")
    logger.info(f"Environment: {settings.environment}")
    # Fail fast on a bad facility zone rather than on the first booking
    get_zone(settings.default_facility_timezone)
    logger.info(
        "Booking policy: horizon=%sd cutoff=%sh grace=-%sm/+%sm",
        settings.booking_horizon_days,
        settings.modification_cutoff_hours,
        settings.qr_early_grace_minutes,
        settings.qr_late_grace_minutes,
    )
    if not settings.redis_url:
        logger.warning("REDIS_URL not set: station locks are process-local only")
    yield
    logger.info("EV booking API shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )
    register_error_handlers(app)

    # Create API v1 router
    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    api_v1.include_router(stations_v1.router)
    app.include_router(api_v1)

    # Infrastructure routes stay unversioned
    app.include_router(health.router, prefix="/health")
    app.include_router(prometheus.router, prefix="/metrics")
    return app


app = create_app()
