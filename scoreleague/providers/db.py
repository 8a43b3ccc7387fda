"""Database-backed signal providers over the snapshot tables."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.models import (
    MatchLineup,
    MatchOdds,
    TeamEloRating,
    TeamInjuries,
    TeamXgStats,
)
from scoreleague.providers.base import (
    EloProvider,
    InjuryProvider,
    LineupProvider,
    OddsProvider,
    XgProvider,
)

logger = logging.getLogger(__name__)


class DbXgProvider(XgProvider):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_team_xg(
        self, team_id: int, competition_id: int, season: str
    ) -> Optional[TeamXgStats]:
        result = await self.session.execute(
            select(TeamXgStats)
            .where(TeamXgStats.team_id == team_id)
            .where(TeamXgStats.competition_id == competition_id)
            .where(TeamXgStats.season == season)
        )
        stats = result.scalar_one_or_none()
        if stats is None or stats.matches_played == 0:
            return None
        return stats


class DbOddsProvider(OddsProvider):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_odds_for_match(self, match_id: int) -> Optional[MatchOdds]:
        result = await self.session.execute(
            select(MatchOdds).where(MatchOdds.match_id == match_id)
        )
        odds = result.scalar_one_or_none()
        if odds is None:
            return None
        # Rows imported without derived probabilities; derive on a transient copy
        if odds.home_win_probability == 0 and odds.away_win_probability == 0:
            derived = MatchOdds(**odds.model_dump())
            derived.calculate_probabilities()
            return derived
        return odds


class DbInjuryProvider(InjuryProvider):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_team_injuries(self, team_id: int) -> Optional[TeamInjuries]:
        result = await self.session.execute(
            select(TeamInjuries).where(TeamInjuries.team_id == team_id)
        )
        return result.scalar_one_or_none()


class DbEloProvider(EloProvider):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_team_elo(self, team_id: int) -> Optional[TeamEloRating]:
        result = await self.session.execute(
            select(TeamEloRating)
            .where(TeamEloRating.team_id == team_id)
            .order_by(TeamEloRating.rating_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class DbLineupProvider(LineupProvider):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_lineup_strength(self, match_id: int, team_id: int) -> Optional[float]:
        result = await self.session.execute(
            select(MatchLineup.xi_strength)
            .where(MatchLineup.match_id == match_id)
            .where(MatchLineup.team_id == team_id)
        )
        strength = result.scalar_one_or_none()
        if strength is None:
            return None
        return max(0.0, min(1.0, strength))
