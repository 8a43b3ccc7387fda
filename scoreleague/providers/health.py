"""Integration health tracking and signal availability."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.clock import Clock, SystemClock
from scoreleague.models import IntegrationStatus
from scoreleague.providers.base import DataAvailability, DataAvailabilityProvider

logger = logging.getLogger(__name__)

# ── Integration names ────────────────────────────────────────────────────────
UNDERSTAT = "understat"
ODDS = "football_data_odds"
INJURIES = "transfermarkt_injuries"
LINEUPS = "lineups"
CLUBELO = "clubelo"

KNOWN_INTEGRATIONS = (UNDERSTAT, ODDS, INJURIES, LINEUPS, CLUBELO)

# Consecutive failures before an integration is considered failed
FAILURE_THRESHOLD = 3


class IntegrationHealthService(DataAvailabilityProvider):
    """Reads and updates integration_statuses rows."""

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or SystemClock()

    async def get_status(self, name: str) -> Optional[IntegrationStatus]:
        result = await self.session.execute(
            select(IntegrationStatus).where(IntegrationStatus.integration_name == name)
        )
        return result.scalar_one_or_none()

    async def get_all_statuses(self) -> list[IntegrationStatus]:
        result = await self.session.execute(
            select(IntegrationStatus).order_by(IntegrationStatus.integration_name)
        )
        return list(result.scalars().all())

    async def _get_or_create(self, name: str) -> IntegrationStatus:
        status = await self.get_status(name)
        if status is None:
            now = self.clock.now()
            status = IntegrationStatus(integration_name=name, created_at=now, updated_at=now)
            self.session.add(status)
        return status

    async def record_success(self, name: str, duration_ms: Optional[int] = None) -> IntegrationStatus:
        now = self.clock.now()
        status = await self._get_or_create(name)
        status.last_success_at = now
        status.consecutive_failures = 0
        status.last_sync_duration_ms = duration_ms
        if not status.is_manually_disabled:
            status.health = "healthy"
        status.updated_at = now
        await self.session.commit()
        return status

    async def record_failure(self, name: str, error: str) -> IntegrationStatus:
        now = self.clock.now()
        status = await self._get_or_create(name)
        status.last_failure_at = now
        status.consecutive_failures += 1
        status.last_error = error[:500]
        if not status.is_manually_disabled:
            status.health = "failed" if status.consecutive_failures >= FAILURE_THRESHOLD else "degraded"
        status.updated_at = now
        await self.session.commit()

        logger.warning(
            f"[HEALTH] {name} failure #{status.consecutive_failures}: {error[:200]}"
        )
        return status

    async def disable(self, name: str, reason: str, disabled_by: str) -> IntegrationStatus:
        now = self.clock.now()
        status = await self._get_or_create(name)
        status.is_manually_disabled = True
        status.health = "disabled"
        status.disabled_reason = reason
        status.disabled_by = disabled_by
        status.disabled_at = now
        status.updated_at = now
        await self.session.commit()
        logger.info(f"[HEALTH] {name} disabled by {disabled_by}: {reason}")
        return status

    async def enable(self, name: str) -> IntegrationStatus:
        now = self.clock.now()
        status = await self._get_or_create(name)
        status.is_manually_disabled = False
        status.disabled_reason = None
        status.disabled_by = None
        status.disabled_at = None
        if status.consecutive_failures >= FAILURE_THRESHOLD:
            status.health = "failed"
        elif status.consecutive_failures > 0:
            status.health = "degraded"
        elif status.last_success_at is not None:
            status.health = "healthy"
        else:
            status.health = "unknown"
        status.updated_at = now
        await self.session.commit()
        logger.info(f"[HEALTH] {name} re-enabled (health={status.health})")
        return status

    async def get_data_availability(self) -> DataAvailability:
        now = self.clock.now()
        statuses = {s.integration_name: s for s in await self.get_all_statuses()}

        def fresh_and_operational(name: str) -> bool:
            status = statuses.get(name)
            return status is not None and status.is_operational and not status.is_data_stale(now)

        def operational(name: str) -> bool:
            status = statuses.get(name)
            return status is not None and status.is_operational

        return DataAvailability(
            form=True,
            xg=fresh_and_operational(UNDERSTAT),
            odds=fresh_and_operational(ODDS),
            injuries=operational(INJURIES),
            lineups=operational(LINEUPS),
            elo=fresh_and_operational(CLUBELO),
        )
