"""FastAPI application for the prediction league service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from scoreleague import __version__
from scoreleague.config import get_settings
from scoreleague.database import close_db, init_db
from scoreleague.jobs.handlers import register_job_handlers
from scoreleague.jobs.queue import get_job_queue
from scoreleague.providers.ml_client import close_ml_prediction_service
from scoreleague.routes import api_router, core_router
from scoreleague.scheduler import start_scheduler, stop_scheduler
from scoreleague.security import limiter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting ScoreLeague {__version__}...")
    await init_db()

    queue = get_job_queue()
    register_job_handlers(queue)
    await queue.start()

    start_scheduler()
    logger.info("Startup complete.")

    yield

    # Shutdown
    logger.info("Shutting down...")
    stop_scheduler()
    await queue.stop()
    await close_ml_prediction_service()
    await close_db()


app = FastAPI(
    title="ScoreLeague",
    description="Prediction leagues: bets, scoring, standings and bot participants",
    version=__version__,
    lifespan=lifespan,
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Include routers
app.include_router(core_router)
app.include_router(api_router)
