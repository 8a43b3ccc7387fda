"""League standings: incremental updates, full replay and ranking."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.bets.lifecycle import is_league_member
from scoreleague.clock import Clock, SystemClock
from scoreleague.errors import ErrorKind, Result
from scoreleague.models import Bet, BetResult, League, LeagueMember, LeagueStanding, Match, User

logger = logging.getLogger(__name__)


@dataclass
class StandingEntry:
    """One ranked row of a league table."""

    rank: int
    user_id: int
    username: str
    is_bot: bool
    total_points: int
    bets_placed: int
    exact_matches: int
    correct_results: int
    current_streak: int
    best_streak: int

    @property
    def accuracy(self) -> float:
        """Correct results as a percentage of bets placed (2 decimals)."""
        if self.bets_placed == 0:
            return 0.0
        return round(self.correct_results / self.bets_placed * 100, 2)


def ranking_key(standing: LeagueStanding) -> tuple:
    """Points desc, exact matches desc, fewer bets first, then user id."""
    return (
        -standing.total_points,
        -standing.exact_matches,
        standing.bets_placed,
        standing.user_id,
    )


class StandingsService:
    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or SystemClock()

    async def get_member_user_ids(self, league_id: int) -> list[int]:
        result = await self.session.execute(
            select(LeagueMember.user_id).where(LeagueMember.league_id == league_id)
        )
        return list(result.scalars().all())

    async def _get_standings_by_user(self, league_id: int) -> dict[int, LeagueStanding]:
        result = await self.session.execute(
            select(LeagueStanding).where(LeagueStanding.league_id == league_id)
        )
        return {s.user_id: s for s in result.scalars().all()}

    async def get_or_create_standing(self, league_id: int, user_id: int) -> LeagueStanding:
        result = await self.session.execute(
            select(LeagueStanding)
            .where(LeagueStanding.league_id == league_id)
            .where(LeagueStanding.user_id == user_id)
        )
        standing = result.scalar_one_or_none()
        if standing is None:
            standing = LeagueStanding(
                league_id=league_id, user_id=user_id, last_updated_at=self.clock.now()
            )
            self.session.add(standing)
        return standing

    async def apply_bet_result(
        self,
        league_id: int,
        user_id: int,
        points: int,
        is_exact: bool,
        is_correct: bool,
    ) -> Optional[LeagueStanding]:
        """
        Fold one newly scored bet into the member's standing (no commit).

        Returns None for users who are no longer members.
        """
        if not await is_league_member(self.session, league_id, user_id):
            return None
        standing = await self.get_or_create_standing(league_id, user_id)
        standing.apply_bet_result(points, is_exact, is_correct, at=self.clock.now())
        return standing

    async def recalculate_league(self, league_id: int) -> Result:
        """
        Rebuild every current member's standing by replaying scored bets in kickoff order.

        Safe to repeat. Rows of departed members are left as they are.

        Returns:
            Result with the number of standings rebuilt.
        """
        league = await self.session.get(League, league_id)
        if league is None:
            return Result.failure(ErrorKind.LEAGUE_NOT_FOUND)

        now = self.clock.now()
        member_ids = await self.get_member_user_ids(league_id)
        standings = await self._get_standings_by_user(league_id)

        rebuilt: dict[int, LeagueStanding] = {}
        for user_id in member_ids:
            standing = standings.get(user_id)
            if standing is None:
                standing = LeagueStanding(league_id=league_id, user_id=user_id)
                self.session.add(standing)
            standing.reset(at=now)
            rebuilt[user_id] = standing

        if member_ids:
            result = await self.session.execute(
                select(Bet, BetResult)
                .join(BetResult, BetResult.bet_id == Bet.id)
                .join(Match, Match.id == Bet.match_id)
                .where(Bet.league_id == league_id)
                .where(Bet.user_id.in_(member_ids))
                .order_by(Match.kickoff_at, Bet.id)
            )
            for bet, bet_result in result.all():
                rebuilt[bet.user_id].apply_bet_result(
                    bet_result.points_earned,
                    bet_result.is_exact_match,
                    bet_result.is_correct_result,
                    at=now,
                )

        await self.session.commit()
        logger.info(f"[STANDINGS] Recalculated league {league_id}: {len(rebuilt)} members")
        return Result.success(len(rebuilt))

    async def _ranked(self, league_id: int) -> list[StandingEntry]:
        """Current members only, in ranking order; members without a row rank with zeros."""
        result = await self.session.execute(
            select(LeagueMember.user_id, User.username, User.is_bot, LeagueStanding)
            .join(User, User.id == LeagueMember.user_id)
            .outerjoin(
                LeagueStanding,
                (LeagueStanding.league_id == LeagueMember.league_id)
                & (LeagueStanding.user_id == LeagueMember.user_id),
            )
            .where(LeagueMember.league_id == league_id)
        )

        rows = []
        for user_id, username, is_bot, standing in result.all():
            if standing is None:
                standing = LeagueStanding(league_id=league_id, user_id=user_id)
            rows.append((standing, username, is_bot))
        rows.sort(key=lambda row: ranking_key(row[0]))

        return [
            StandingEntry(
                rank=position,
                user_id=standing.user_id,
                username=username,
                is_bot=is_bot,
                total_points=standing.total_points,
                bets_placed=standing.bets_placed,
                exact_matches=standing.exact_matches,
                correct_results=standing.correct_results,
                current_streak=standing.current_streak,
                best_streak=standing.best_streak,
            )
            for position, (standing, username, is_bot) in enumerate(rows, start=1)
        ]

    async def get_standings(self, league_id: int, requester_id: int) -> Result:
        league = await self.session.get(League, league_id)
        if league is None:
            return Result.failure(ErrorKind.LEAGUE_NOT_FOUND)
        if not await is_league_member(self.session, league_id, requester_id):
            return Result.failure(ErrorKind.NOT_A_LEAGUE_MEMBER)
        return Result.success(await self._ranked(league_id))

    async def get_member_stats(self, league_id: int, requester_id: int, user_id: int) -> Result:
        """Rank, counters and accuracy of one member, as seen by another member."""
        league = await self.session.get(League, league_id)
        if league is None:
            return Result.failure(ErrorKind.LEAGUE_NOT_FOUND)
        if not await is_league_member(self.session, league_id, requester_id):
            return Result.failure(ErrorKind.NOT_A_LEAGUE_MEMBER)

        for entry in await self._ranked(league_id):
            if entry.user_id == user_id:
                return Result.success(entry)
        return Result.failure(ErrorKind.USER_NOT_FOUND)
