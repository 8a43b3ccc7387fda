"""Core routes: health and metrics.

- /health: public, rate limited
- /metrics: Prometheus text format
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague import __version__
from scoreleague.database import get_async_session
from scoreleague.jobs.queue import get_job_queue
from scoreleague.jobs.tracking import get_last_success_at
from scoreleague.scheduler import scheduler
from scoreleague.security import limiter
from scoreleague.telemetry import get_metrics_text

router = APIRouter(tags=["core"])

# Scheduled jobs reported on /health
TRACKED_JOBS = ("bot_betting", "bot_betting_match_hours", "bet_results_sweep")


class HealthResponse(BaseModel):
    status: str
    version: str
    scheduler_running: bool
    job_queue_running: bool
    job_queue_pending: int
    jobs_last_success: dict[str, Optional[datetime]]


@router.get("/health", response_model=HealthResponse)
@limiter.limit("120/minute")
async def health_check(request: Request, session: AsyncSession = Depends(get_async_session)):
    """Health check endpoint."""
    queue = get_job_queue()
    return HealthResponse(
        status="ok",
        version=__version__,
        scheduler_running=scheduler.running,
        job_queue_running=queue.is_running,
        job_queue_pending=queue.pending_count,
        jobs_last_success={job: await get_last_success_at(session, job) for job in TRACKED_JOBS},
    )


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    content, content_type = get_metrics_text()
    return PlainTextResponse(content=content, media_type=content_type)
