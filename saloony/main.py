from contextlib import asynccontextmanager
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from saloony.config import get_settings
from saloony.db import init_db
from saloony.dependencies.services import get_cache_cached, get_chat_model_cached

# Import routers directly from submodules
from saloony.routes.admin import router as admin_router
from saloony.routes.appointments import router as appointments_router
from saloony.routes.chat import router as chat_router
from saloony.routes.discovery import router as discovery_router
from saloony.routes.reviews import router as reviews_router
from saloony.routes.salons import router as salons_router
from saloony.health import router as health_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

# Configure logging as soon as the module is loaded
configure_logging()

logger = logging.getLogger(__name__)


def start_cache_sweeper(interval_seconds: int) -> BackgroundScheduler:
    cache = get_cache_cached()
    scheduler = BackgroundScheduler()
    scheduler.add_job(cache.sweep, "interval", seconds=interval_seconds, id="cache-sweep")
    scheduler.start()
    logger.info("Cache sweeper started (every %s seconds)", interval_seconds)
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    # --- Startup Logic ---
    settings = get_settings()

    settings_snapshot = settings.model_dump(
        exclude={"llm_api_key", "google_api_key"},
    )
    logger.info("Application settings on startup: %s", settings_snapshot)

    init_db()
    scheduler = start_cache_sweeper(settings.cache_sweep_interval) if settings.enable_cache_sweeper else None
    model = get_chat_model_cached()
    if not model.configured:
        logger.warning("No API key for LLM provider %s; chat will answer with fallbacks", settings.llm_provider)
    logger.info("Application startup complete.")

    try:
        yield  # The application is now running
    finally:
        # --- Shutdown Logic ---
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        logger.info("Closing LLM client connection.")
        await model.close()
        logger.info("Application shutdown complete.")


# --- Application Setup ---

settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---

app.include_router(appointments_router, prefix="/api")
app.include_router(salons_router, prefix="/api")
app.include_router(discovery_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(reviews_router, prefix="/api/reviews")
app.include_router(chat_router, prefix="/api/ai-chat")
app.include_router(health_router)
