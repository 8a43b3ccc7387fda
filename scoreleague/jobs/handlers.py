"""Handlers for dispatched jobs."""

import logging
import time
from typing import Any, Callable, Dict

from scoreleague.bets.standings import StandingsService
from scoreleague.clock import utcnow
from scoreleague.database import get_session_with_retry
from scoreleague.jobs.queue import RECALCULATE_LEAGUE_STANDINGS, JobHandler, JobQueue
from scoreleague.jobs.tracking import record_job_run
from scoreleague.telemetry import record_job_run as record_job_metric

logger = logging.getLogger(__name__)

JOB_NAME = "recalculate_league_standings"


def make_recalculate_standings_handler(session_factory: Callable = get_session_with_retry) -> JobHandler:
    """
    Build the RecalculateLeagueStandings handler.

    Payload: {"league_ids": [int, ...]}. Each league is recomputed in turn;
    one league failing does not stop the others.
    """

    async def recalculate_league_standings(payload: Dict[str, Any]) -> None:
        league_ids = payload.get("league_ids") or []
        started_at = utcnow()
        start = time.time()
        recalculated, errors = [], []

        async with session_factory() as session:
            service = StandingsService(session)
            for league_id in league_ids:
                try:
                    result = await service.recalculate_league(int(league_id))
                except Exception as e:
                    await session.rollback()
                    errors.append(league_id)
                    logger.error(f"[STANDINGS] Recalculation failed for league {league_id}: {e}", exc_info=True)
                    continue
                if result.is_success:
                    recalculated.append(league_id)
                else:
                    logger.warning(f"[STANDINGS] League {league_id} skipped: {result.error.value}")

            status = "error" if errors else "ok"
            duration_ms = (time.time() - start) * 1000
            record_job_metric(JOB_NAME, status, duration_ms)
            await record_job_run(
                session,
                JOB_NAME,
                status,
                started_at,
                error=f"failed leagues: {errors}" if errors else None,
                metrics={"recalculated": recalculated, "failed": errors},
            )

    return recalculate_league_standings


def register_job_handlers(queue: JobQueue, session_factory: Callable = get_session_with_retry) -> None:
    queue.register(RECALCULATE_LEAGUE_STANDINGS, make_recalculate_standings_handler(session_factory))
