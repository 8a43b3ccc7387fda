"""Job run tracking.

Every scheduled or dispatched job writes one job_runs row so the last
successful run survives restarts (Prometheus counters do not).

Usage:
    from scoreleague.jobs.tracking import record_job_run

    started_at = utcnow()
    try:
        # ... job logic ...
        await record_job_run(session, "bot_betting", "ok", started_at, metrics={"bets": 5})
    except Exception as e:
        await record_job_run(session, "bot_betting", "error", started_at, error=str(e))
        raise
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.clock import utcnow
from scoreleague.models import JobRun

logger = logging.getLogger(__name__)


async def record_job_run(
    session: AsyncSession,
    job_name: str,
    status: str,
    started_at: datetime,
    error: Optional[str] = None,
    metrics: Optional[dict] = None,
) -> JobRun:
    """
    Record a job execution in the database.

    Args:
        session: Database session.
        job_name: Job identifier (bot_betting, bet_results_sweep, ...).
        status: Execution status (ok, error).
        started_at: When the job started (naive UTC).
        error: Error message if failed.
        metrics: Optional job-specific metrics dict.
    """
    finished_at = utcnow()
    duration_ms = max(0, int((finished_at - started_at).total_seconds() * 1000))

    job_run = JobRun(
        job_name=job_name,
        status=status,
        started_at=started_at,
        finished_at=finished_at,
        duration_ms=duration_ms,
        error_message=error[:500] if error else None,
        metrics=metrics,
    )

    session.add(job_run)
    await session.commit()

    logger.debug(f"[JOB_TRACKING] Recorded {job_name} run: {status} in {duration_ms}ms")
    return job_run


async def get_last_success_at(session: AsyncSession, job_name: str) -> Optional[datetime]:
    """
    Get the last successful run timestamp for a job.

    Returns:
        Datetime of last successful run, or None if no successful runs.
    """
    result = await session.execute(
        select(JobRun.finished_at)
        .where(JobRun.job_name == job_name)
        .where(JobRun.status == "ok")
        .order_by(JobRun.finished_at.desc())
        .limit(1)
    )
    row = result.first()
    return row[0] if row else None


async def cleanup_old_runs(session: AsyncSession, days_to_keep: int = 7) -> int:
    """Delete job runs older than the given number of days."""
    cutoff = utcnow() - timedelta(days=days_to_keep)
    result = await session.execute(delete(JobRun).where(JobRun.finished_at < cutoff))
    await session.commit()
    deleted = result.rowcount or 0
    if deleted > 0:
        logger.info(f"[JOB_TRACKING] Cleaned up {deleted} old job runs")
    return deleted
