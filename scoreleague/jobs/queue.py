"""
In-process job dispatch.

Producers (the bet result calculator, admin triggers) enqueue named jobs with
a JSON-like payload; a single consumer task runs them sequentially through
registered handlers. Jobs are idempotent recomputes, so a job lost on crash
is recovered by the next trigger or the periodic sweep.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

from scoreleague.clock import utcnow
from scoreleague.config import get_settings

logger = logging.getLogger(__name__)

# ── Job names ────────────────────────────────────────────────────────────────
RECALCULATE_LEAGUE_STANDINGS = "RecalculateLeagueStandings"

JobHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class JobDispatcher(ABC):
    """Fire-and-forget sink for asynchronous work."""

    @abstractmethod
    async def enqueue(self, job_name: str, payload: Dict[str, Any]) -> bool:
        """
        Request a job.

        Returns:
            True if the job was accepted, False if dropped or deduplicated.
        """
        pass


class Job:
    __slots__ = ("job_name", "payload", "created_at", "key")

    def __init__(self, job_name: str, payload: Dict[str, Any]):
        self.job_name = job_name
        self.payload = payload
        self.created_at = utcnow()
        self.key = f"{job_name}:{json.dumps(payload, sort_keys=True, default=str)}"

    def __repr__(self):
        return f"Job({self.job_name}, {self.payload})"


class JobQueue(JobDispatcher):
    """
    asyncio.Queue with a sequential consumer.

    Identical jobs (same name and payload) already waiting in the queue are
    not enqueued twice. stop() drains what is queued before returning.
    """

    def __init__(self, max_queue_size: Optional[int] = None):
        if max_queue_size is None:
            max_queue_size = get_settings().JOB_QUEUE_MAX_SIZE
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._handlers: Dict[str, JobHandler] = {}
        self._pending_keys: set = set()
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.processed_count = 0
        self.failed_count = 0

    def register(self, job_name: str, handler: JobHandler) -> None:
        """Register the async handler for a job name (one per name)."""
        if job_name in self._handlers:
            logger.warning(f"JobQueue: replacing handler for {job_name}")
        self._handlers[job_name] = handler
        logger.info(f"JobQueue: registered {getattr(handler, '__name__', handler)} for {job_name}")

    async def enqueue(self, job_name: str, payload: Dict[str, Any]) -> bool:
        job = Job(job_name, payload)
        if job.key in self._pending_keys:
            logger.info(f"JobQueue: {job} already pending, skipping")
            return False
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.error(f"JobQueue: queue full ({self._queue.maxsize}), dropping {job}")
            return False
        self._pending_keys.add(job.key)
        logger.info(f"JobQueue: enqueued {job}")
        return True

    async def start(self) -> None:
        """Start the background consumer task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._consumer_loop())
        logger.info("JobQueue: started consumer loop")

    async def stop(self, timeout: float = 10.0) -> None:
        """Graceful shutdown: process queued jobs, then stop."""
        self._running = False
        if self._task:
            # Sentinel goes behind every queued job
            await self._queue.put(None)
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                self._task.cancel()
                logger.warning(f"JobQueue: consumer did not finish in {timeout}s, cancelled")
            self._task = None
        logger.info(f"JobQueue: stopped (pending={self._queue.qsize()})")

    async def _consumer_loop(self) -> None:
        while True:
            try:
                job = await self._queue.get()
                if job is None:
                    break
                await self._dispatch(job)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"JobQueue: consumer loop error: {e}", exc_info=True)

    async def _dispatch(self, job: Job) -> None:
        self._pending_keys.discard(job.key)

        handler = self._handlers.get(job.job_name)
        if handler is None:
            logger.warning(f"JobQueue: no handler for {job.job_name}")
            return

        try:
            await handler(job.payload)
            self.processed_count += 1
        except Exception as e:
            self.failed_count += 1
            logger.error(f"JobQueue: handler for {job} failed: {e}", exc_info=True)

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._running


# ── Singleton ────────────────────────────────────────────────────────────────

_queue_instance: Optional[JobQueue] = None


def get_job_queue() -> JobQueue:
    """Get or create the singleton JobQueue instance."""
    global _queue_instance
    if _queue_instance is None:
        _queue_instance = JobQueue()
    return _queue_instance
