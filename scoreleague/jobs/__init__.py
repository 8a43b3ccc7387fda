"""Asynchronous job dispatch and job run tracking."""

from scoreleague.jobs.queue import (
    RECALCULATE_LEAGUE_STANDINGS,
    JobDispatcher,
    JobQueue,
    get_job_queue,
)

__all__ = [
    "RECALCULATE_LEAGUE_STANDINGS",
    "JobDispatcher",
    "JobQueue",
    "get_job_queue",
]
