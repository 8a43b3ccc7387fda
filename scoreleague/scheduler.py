"""Background scheduler for bot betting and bet result sweeps."""

import asyncio
import logging
import os
import time
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from scoreleague.bets.results import BetResultCalculator
from scoreleague.bots.betting import BotBettingService
from scoreleague.clock import utcnow
from scoreleague.config import get_settings
from scoreleague.database import get_session_with_retry
from scoreleague.jobs.queue import get_job_queue
from scoreleague.jobs.tracking import cleanup_old_runs, record_job_run
from scoreleague.telemetry import record_job_run as record_job_metric

logger = logging.getLogger(__name__)

settings = get_settings()

# Flag to prevent multiple scheduler instances (e.g., with --reload)
_scheduler_started = False
scheduler = AsyncIOScheduler(timezone="UTC")

# Interval and match-hours triggers share one bot run at a time
_bot_betting_lock = asyncio.Lock()


async def run_bot_betting(job_name: str = "bot_betting") -> dict:
    """
    Place bets for every active bot on upcoming matches.

    Skips (returns {"status": "skipped"}) when disabled or when another bot
    run is still in progress.
    """
    if not settings.BOT_BETTING_ENABLED:
        logger.debug(f"[{job_name}] Bot betting disabled, skipping")
        return {"status": "disabled"}

    if _bot_betting_lock.locked():
        logger.info(f"[{job_name}] Previous bot run still in progress, skipping")
        return {"status": "skipped"}

    async with _bot_betting_lock:
        logger.info(f"[{job_name}] Starting bot betting run...")
        started_at = utcnow()
        start_time = time.time()

        try:
            async with get_session_with_retry(max_retries=3, retry_delay=1.0) as session:
                summary = await BotBettingService(session).run()

                duration_ms = (time.time() - start_time) * 1000
                record_job_metric(job_name, "ok", duration_ms)
                await record_job_run(session, job_name, "ok", started_at, metrics=summary.to_dict())

                logger.info(
                    f"[{job_name}] Complete: {summary.bets_placed} bets placed across "
                    f"{summary.leagues_processed} leagues in {duration_ms:.0f}ms"
                )
                return {"status": "ok", **summary.to_dict()}

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"[{job_name}] Bot betting run failed: {e}", exc_info=True)
            record_job_metric(job_name, "error", duration_ms)
            await _record_failure(job_name, started_at, e)
            return {"status": "error", "error": str(e)}


async def bet_results_sweep() -> dict:
    """Score finished matches that still have bets without a result."""
    job_name = "bet_results_sweep"
    started_at = utcnow()
    start_time = time.time()

    try:
        async with get_session_with_retry(max_retries=3, retry_delay=1.0) as session:
            calculator = BetResultCalculator(session, dispatcher=get_job_queue())
            stats = await calculator.calculate_pending_bet_results()

            duration_ms = (time.time() - start_time) * 1000
            record_job_metric(job_name, "ok", duration_ms)
            await record_job_run(session, job_name, "ok", started_at, metrics=stats)
            return {"status": "ok", **stats}

    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(f"[{job_name}] Sweep failed: {e}", exc_info=True)
        record_job_metric(job_name, "error", duration_ms)
        await _record_failure(job_name, started_at, e)
        return {"status": "error", "error": str(e)}


async def job_runs_cleanup() -> None:
    """Daily retention for job_runs."""
    try:
        async with get_session_with_retry() as session:
            await cleanup_old_runs(session, days_to_keep=7)
    except Exception as e:
        logger.error(f"[job_runs_cleanup] Failed: {e}")


async def _record_failure(job_name: str, started_at: datetime, error: Exception) -> None:
    try:
        async with get_session_with_retry() as session:
            await record_job_run(session, job_name, "error", started_at, error=str(error))
    except Exception as e:
        logger.warning(f"[{job_name}] Could not record failed run: {e}")


def _log_scheduler_jobs():
    """Log all registered scheduler jobs and their next run times."""
    jobs = scheduler.get_jobs()
    if not jobs:
        logger.warning("SCHEDULER: No jobs registered!")
        return

    job_info = []
    for job in jobs:
        next_run = getattr(job, "next_run_time", None)
        next_str = next_run.strftime("%Y-%m-%d %H:%M:%S UTC") if next_run else "pending"
        job_info.append(f"  - {job.id}: next={next_str}")

    logger.info(f"SCHEDULER: {len(jobs)} jobs registered:\n" + "\n".join(job_info))


def start_scheduler():
    """
    Start the background scheduler.

    Uses a module-level flag to prevent duplicate scheduler instances
    when running with --reload or multiple workers.
    """
    global _scheduler_started

    if _scheduler_started:
        logger.warning("Scheduler already started, skipping duplicate initialization")
        return

    # Uvicorn sets this env var in the reloader subprocess
    if os.environ.get("UVICORN_RELOADED"):
        logger.info("Skipping scheduler in reload subprocess")
        return

    now = datetime.now(timezone.utc)

    # Bot betting: fixed interval, first run after a warm-up delay
    scheduler.add_job(
        run_bot_betting,
        trigger=IntervalTrigger(minutes=settings.BOT_BETTING_INTERVAL_MINUTES),
        id="bot_betting",
        name=f"Bot Betting (every {settings.BOT_BETTING_INTERVAL_MINUTES}min)",
        replace_existing=True,
        next_run_time=now + timedelta(seconds=settings.BOT_BETTING_INITIAL_DELAY_SECONDS),
        max_instances=1,
        coalesce=True,
    )

    # Bot betting: faster cadence during typical match hours
    scheduler.add_job(
        run_bot_betting,
        trigger=CronTrigger(
            hour=f"{settings.BOT_BETTING_MATCH_HOURS_START}-{settings.BOT_BETTING_MATCH_HOURS_END}",
            minute=f"*/{settings.BOT_BETTING_MATCH_HOURS_INTERVAL_MINUTES}",
        ),
        kwargs={"job_name": "bot_betting_match_hours"},
        id="bot_betting_match_hours",
        name="Bot Betting (match hours)",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    # Results sweep: finished matches with unscored bets
    scheduler.add_job(
        bet_results_sweep,
        trigger=IntervalTrigger(minutes=settings.BET_RESULTS_INTERVAL_MINUTES),
        id="bet_results_sweep",
        name=f"Bet Results Sweep (every {settings.BET_RESULTS_INTERVAL_MINUTES}min)",
        replace_existing=True,
        next_run_time=now + timedelta(seconds=30),
        max_instances=1,
        coalesce=True,
    )

    # Job run retention: daily at 04:00 UTC
    scheduler.add_job(
        job_runs_cleanup,
        trigger=CronTrigger(hour=4, minute=0),
        id="job_runs_cleanup",
        name="Job Runs Cleanup",
        replace_existing=True,
    )

    scheduler.start()
    _scheduler_started = True
    _log_scheduler_jobs()


def stop_scheduler():
    """Stop the background scheduler."""
    global _scheduler_started
    if scheduler.running:
        scheduler.shutdown()
        _scheduler_started = False
        logger.info("Scheduler stopped")
