"""Scoring of bets once a match is final."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.bets.standings import StandingsService
from scoreleague.clock import Clock, SystemClock
from scoreleague.errors import ErrorKind, Result
from scoreleague.jobs.queue import RECALCULATE_LEAGUE_STANDINGS, JobDispatcher
from scoreleague.models import FINAL_STATUSES, Bet, BetResult, League, Match
from scoreleague.telemetry import record_bet_result

logger = logging.getLogger(__name__)


def _direction(home: int, away: int) -> int:
    """1 home win, 0 draw, -1 away win."""
    return (home > away) - (home < away)


def score_bet(
    predicted_home: int,
    predicted_away: int,
    actual_home: int,
    actual_away: int,
    points_exact_match: int,
    points_correct_result: int,
) -> tuple[int, bool, bool]:
    """
    Score one prediction against the final result.

    Returns:
        (points, is_exact_match, is_correct_result). An exact match is also
        a correct result.
    """
    if predicted_home == actual_home and predicted_away == actual_away:
        return points_exact_match, True, True
    if _direction(predicted_home, predicted_away) == _direction(actual_home, actual_away):
        return points_correct_result, False, True
    return 0, False, False


@dataclass
class BetResultSummary:
    match_id: int
    bets_scored: int = 0
    new_results: int = 0
    changed_results: int = 0
    league_ids: list[int] = field(default_factory=list)


class BetResultCalculator:
    """
    Writes bet_results for a finished match and requests standings recomputes.

    First-time results are folded into standings immediately; every league
    with a new or changed result also gets a RecalculateLeagueStandings job,
    which replays all results and is the authoritative path.
    """

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: Optional[JobDispatcher] = None,
        clock: Optional[Clock] = None,
    ):
        self.session = session
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.standings = StandingsService(session, self.clock)

    async def calculate_bet_results(
        self, match_id: int, competition_id: Optional[int] = None
    ) -> Result:
        """
        Score every bet on a match across all leagues.

        Args:
            match_id: Finished match.
            competition_id: Optional competition context; a mismatch counts as not found.

        Returns:
            Result with a BetResultSummary.
        """
        match = await self.session.get(Match, match_id)
        if match is None or (competition_id is not None and match.competition_id != competition_id):
            return Result.failure(ErrorKind.MATCH_NOT_FOUND)

        if not match.has_final_score:
            return Result.failure(ErrorKind.MATCH_NOT_FINALIZED)

        now = self.clock.now()
        summary = BetResultSummary(match_id=match_id)
        changed_leagues: set[int] = set()

        rows = await self.session.execute(
            select(Bet, League, BetResult)
            .join(League, League.id == Bet.league_id)
            .outerjoin(BetResult, BetResult.bet_id == Bet.id)
            .where(Bet.match_id == match_id)
            .order_by(Bet.id)
        )

        for bet, league, existing in rows.all():
            points, is_exact, is_correct = score_bet(
                bet.predicted_home_score,
                bet.predicted_away_score,
                match.home_score,
                match.away_score,
                league.points_exact_match,
                league.points_correct_result,
            )
            summary.bets_scored += 1

            if existing is None:
                self.session.add(
                    BetResult(
                        bet_id=bet.id,
                        points_earned=points,
                        is_exact_match=is_exact,
                        is_correct_result=is_correct,
                        calculated_at=now,
                    )
                )
                await self.standings.apply_bet_result(
                    bet.league_id, bet.user_id, points, is_exact, is_correct
                )
                summary.new_results += 1
                changed_leagues.add(bet.league_id)
                record_bet_result("exact" if is_exact else "correct" if is_correct else "miss")
            else:
                if (
                    existing.points_earned != points
                    or existing.is_exact_match != is_exact
                    or existing.is_correct_result != is_correct
                ):
                    summary.changed_results += 1
                    changed_leagues.add(bet.league_id)
                existing.points_earned = points
                existing.is_exact_match = is_exact
                existing.is_correct_result = is_correct
                existing.calculated_at = now

        await self.session.commit()

        summary.league_ids = sorted(changed_leagues)
        logger.info(
            f"[RESULTS] match={match_id} {match.home_score}-{match.away_score}: "
            f"scored={summary.bets_scored} new={summary.new_results} changed={summary.changed_results}"
        )

        if summary.league_ids:
            await self._request_standings_recalculation(summary.league_ids)

        return Result.success(summary)

    async def _request_standings_recalculation(self, league_ids: list[int]) -> None:
        if self.dispatcher is None:
            return
        try:
            await self.dispatcher.enqueue(RECALCULATE_LEAGUE_STANDINGS, {"league_ids": league_ids})
        except Exception as e:
            # Standings were already updated incrementally; the next recompute repairs them
            logger.warning(f"[RESULTS] Could not enqueue standings recalculation for {league_ids}: {e}")

    async def calculate_pending_bet_results(self) -> dict:
        """
        Score every finished match that still has bets without a result.

        Returns:
            Summary dict: matches, bets_scored, errors.
        """
        result = await self.session.execute(
            select(Bet.match_id)
            .join(Match, Match.id == Bet.match_id)
            .outerjoin(BetResult, BetResult.bet_id == Bet.id)
            .where(BetResult.id.is_(None))
            .where(Match.status.in_(FINAL_STATUSES))
            .where(Match.home_score.is_not(None))
            .where(Match.away_score.is_not(None))
            .distinct()
        )
        match_ids = sorted(result.scalars().all())

        stats = {"matches": 0, "bets_scored": 0, "errors": 0}
        for match_id in match_ids:
            outcome = await self.calculate_bet_results(match_id)
            if outcome.is_success:
                stats["matches"] += 1
                stats["bets_scored"] += outcome.value.bets_scored
            else:
                stats["errors"] += 1
                logger.warning(f"[RESULTS] Pending match {match_id} not scored: {outcome.error.value}")

        if match_ids:
            logger.info(f"[RESULTS] Pending sweep: {stats}")
        return stats
