"""Bet placement, deletion and deadline-gated reads."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.clock import Clock, SystemClock
from scoreleague.errors import ErrorKind, Result
from scoreleague.models import Bet, BetResult, League, LeagueMember, Match, is_deadline_passed

logger = logging.getLogger(__name__)


@dataclass
class BetView:
    """A bet with its match and (once scored) its result."""

    bet: Bet
    match: Match
    result: Optional[BetResult] = None


async def is_league_member(session: AsyncSession, league_id: int, user_id: int) -> bool:
    result = await session.execute(
        select(LeagueMember.id)
        .where(LeagueMember.league_id == league_id)
        .where(LeagueMember.user_id == user_id)
    )
    return result.first() is not None


class BetService:
    """
    Bet lifecycle for one session.

    A bet can be placed, overwritten and deleted until the league deadline
    (kickoff minus betting_deadline_minutes). At the deadline instant itself
    betting is still open; one moment later it is locked.
    """

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or SystemClock()

    async def place_bet(
        self,
        league_id: int,
        user_id: int,
        match_id: int,
        predicted_home_score: int,
        predicted_away_score: int,
    ) -> Result:
        """
        Place a bet, or overwrite the caller's existing bet on the same match.

        Returns:
            Result with the stored Bet (same id when overwritten).
        """
        if predicted_home_score < 0 or predicted_away_score < 0:
            return Result.failure(ErrorKind.INVALID_PREDICTION)

        league = await self.session.get(League, league_id)
        if league is None:
            return Result.failure(ErrorKind.LEAGUE_NOT_FOUND)

        if not await is_league_member(self.session, league_id, user_id):
            return Result.failure(ErrorKind.NOT_A_LEAGUE_MEMBER)

        match = await self.session.get(Match, match_id)
        if match is None:
            return Result.failure(ErrorKind.MATCH_NOT_FOUND)

        if not league.can_accept_bet(match.competition_id):
            return Result.failure(ErrorKind.MATCH_NOT_ALLOWED)

        if not match.is_pre_kickoff:
            return Result.failure(ErrorKind.MATCH_ALREADY_STARTED)

        now = self.clock.now()
        if is_deadline_passed(match.kickoff_at, league.betting_deadline_minutes, now):
            return Result.failure(ErrorKind.DEADLINE_PASSED)

        bet = await self._find_bet(league_id, user_id, match_id)
        if bet is not None:
            self._overwrite(bet, predicted_home_score, predicted_away_score, now)
            await self.session.commit()
            logger.debug(f"[BETS] Updated bet {bet.id} league={league_id} user={user_id} match={match_id}")
            return Result.success(bet)

        bet = Bet(
            league_id=league_id,
            user_id=user_id,
            match_id=match_id,
            predicted_home_score=predicted_home_score,
            predicted_away_score=predicted_away_score,
            placed_at=now,
        )
        self.session.add(bet)
        try:
            await self.session.commit()
        except IntegrityError:
            # Concurrent placement won the unique key; apply ours on top of it
            await self.session.rollback()
            bet = await self._find_bet(league_id, user_id, match_id)
            if bet is None:
                raise
            self._overwrite(bet, predicted_home_score, predicted_away_score, now)
            await self.session.commit()
            logger.info(f"[BETS] Resolved concurrent placement as update of bet {bet.id}")
            return Result.success(bet)

        await self.session.refresh(bet)
        logger.debug(f"[BETS] Placed bet {bet.id} league={league_id} user={user_id} match={match_id}")
        return Result.success(bet)

    async def delete_bet(self, league_id: int, bet_id: int, user_id: int) -> Result:
        """Hard-delete the caller's bet while betting is still open."""
        bet = await self.session.get(Bet, bet_id)
        if bet is None or bet.league_id != league_id:
            return Result.failure(ErrorKind.BET_NOT_FOUND)

        if bet.user_id != user_id:
            return Result.failure(ErrorKind.NOT_BET_OWNER)

        league = await self.session.get(League, league_id)
        match = await self.session.get(Match, bet.match_id)
        if league is None:
            return Result.failure(ErrorKind.LEAGUE_NOT_FOUND)
        if match is None:
            return Result.failure(ErrorKind.MATCH_NOT_FOUND)

        if not match.is_pre_kickoff:
            return Result.failure(ErrorKind.MATCH_ALREADY_STARTED)

        if is_deadline_passed(match.kickoff_at, league.betting_deadline_minutes, self.clock.now()):
            return Result.failure(ErrorKind.DEADLINE_PASSED)

        await self.session.delete(bet)
        await self.session.commit()
        logger.debug(f"[BETS] Deleted bet {bet_id} league={league_id} user={user_id}")
        return Result.success(bet_id)

    async def get_match_bets(self, league_id: int, match_id: int, user_id: int) -> Result:
        """
        All league bets on a match, visible only once the deadline has passed.

        Before the deadline the result is an empty list even when bets exist.
        """
        league = await self.session.get(League, league_id)
        if league is None:
            return Result.failure(ErrorKind.LEAGUE_NOT_FOUND)

        if not await is_league_member(self.session, league_id, user_id):
            return Result.failure(ErrorKind.NOT_A_LEAGUE_MEMBER)

        match = await self.session.get(Match, match_id)
        if match is None:
            return Result.failure(ErrorKind.MATCH_NOT_FOUND)

        if not is_deadline_passed(match.kickoff_at, league.betting_deadline_minutes, self.clock.now()):
            return Result.success([])

        result = await self.session.execute(
            select(Bet, BetResult)
            .outerjoin(BetResult, BetResult.bet_id == Bet.id)
            .where(Bet.league_id == league_id)
            .where(Bet.match_id == match_id)
            .order_by(Bet.placed_at, Bet.id)
        )
        return Result.success([BetView(bet=bet, match=match, result=res) for bet, res in result.all()])

    async def get_my_bets(self, league_id: int, user_id: int) -> Result:
        """The caller's bets in a league with results, newest kickoff first."""
        league = await self.session.get(League, league_id)
        if league is None:
            return Result.failure(ErrorKind.LEAGUE_NOT_FOUND)

        if not await is_league_member(self.session, league_id, user_id):
            return Result.failure(ErrorKind.NOT_A_LEAGUE_MEMBER)

        result = await self.session.execute(
            select(Bet, Match, BetResult)
            .join(Match, Match.id == Bet.match_id)
            .outerjoin(BetResult, BetResult.bet_id == Bet.id)
            .where(Bet.league_id == league_id)
            .where(Bet.user_id == user_id)
            .order_by(Match.kickoff_at.desc(), Bet.id.desc())
        )
        return Result.success(
            [BetView(bet=bet, match=match, result=res) for bet, match, res in result.all()]
        )

    async def _find_bet(self, league_id: int, user_id: int, match_id: int) -> Optional[Bet]:
        result = await self.session.execute(
            select(Bet)
            .where(Bet.league_id == league_id)
            .where(Bet.user_id == user_id)
            .where(Bet.match_id == match_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _overwrite(bet: Bet, home: int, away: int, now) -> None:
        bet.predicted_home_score = home
        bet.predicted_away_score = away
        bet.last_updated_at = now
