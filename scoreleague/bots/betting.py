"""Bot betting run: places bets for active bots on upcoming matches."""

import logging
import random
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.bets.lifecycle import BetService
from scoreleague.bots.strategies.registry import StrategyRegistry
from scoreleague.clock import Clock, SystemClock
from scoreleague.config import get_settings
from scoreleague.models import PRE_KICKOFF_STATUSES, Bet, Bot, League, LeagueMember, Match
from scoreleague.providers.base import MlPredictionService
from scoreleague.telemetry import record_bot_bet, record_bot_prediction_error

logger = logging.getLogger(__name__)


@dataclass
class BotBettingSummary:
    leagues_processed: int = 0
    matches_considered: int = 0
    bets_placed: int = 0
    skipped_existing: int = 0
    skipped_closed: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class BotBettingService:
    """
    One pass over every league with bots enabled.

    Leagues, matches and bots are processed sequentially. A bot that already
    has a bet on a match is skipped, never overwritten. A failing prediction
    or placement only skips that bot for that match.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[Clock] = None,
        registry: Optional[StrategyRegistry] = None,
        rng: Optional[random.Random] = None,
        ml_service: Optional[MlPredictionService] = None,
        lookahead_hours: Optional[int] = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.registry = registry or StrategyRegistry(session, self.clock, rng=rng, ml_service=ml_service)
        self.bets = BetService(session, self.clock)
        if lookahead_hours is None:
            lookahead_hours = get_settings().BOT_LOOKAHEAD_HOURS
        self.lookahead = timedelta(hours=lookahead_hours)

    async def run(self) -> BotBettingSummary:
        summary = BotBettingSummary()
        now = self.clock.now()

        result = await self.session.execute(
            select(League.id).where(League.bots_enabled.is_(True)).order_by(League.id)
        )
        league_ids = list(result.scalars().all())

        for league_id in league_ids:
            # session.get reloads instances expired by an earlier rollback
            league = await self.session.get(League, league_id)
            await self._process_league(league, now, summary)

        logger.info(f"[BOTS] Run complete: {summary.to_dict()}")
        return summary

    async def _league_bots(self, league_id: int) -> list[Bot]:
        result = await self.session.execute(
            select(Bot)
            .join(LeagueMember, LeagueMember.user_id == Bot.user_id)
            .where(LeagueMember.league_id == league_id)
            .where(Bot.is_active.is_(True))
            .order_by(Bot.id)
        )
        return list(result.scalars().all())

    async def _upcoming_matches(self, league: League, now) -> list[Match]:
        result = await self.session.execute(
            select(Match)
            .where(Match.status.in_(PRE_KICKOFF_STATUSES))
            .where(Match.kickoff_at > now)
            .where(Match.kickoff_at <= now + self.lookahead)
            .order_by(Match.kickoff_at, Match.id)
        )
        return [m for m in result.scalars().all() if league.can_accept_bet(m.competition_id)]

    async def _existing_bettors(self, league_id: int, match_id: int) -> set[int]:
        result = await self.session.execute(
            select(Bet.user_id).where(Bet.league_id == league_id).where(Bet.match_id == match_id)
        )
        return set(result.scalars().all())

    async def _process_league(self, league: League, now, summary: BotBettingSummary) -> None:
        league_id = league.id
        deadline_minutes = league.betting_deadline_minutes

        bots = await self._league_bots(league_id)
        if not bots:
            return
        summary.leagues_processed += 1

        # Plain values survive a rollback that expires ORM instances
        bot_specs = [(bot.id, bot.user_id, bot.name, bot.strategy, bot.configuration) for bot in bots]

        match_ids = [m.id for m in await self._upcoming_matches(league, now)]
        for match_id in match_ids:
            match = await self.session.get(Match, match_id)
            summary.matches_considered += 1
            if not match.is_open_for_betting(deadline_minutes, now):
                summary.skipped_closed += 1
                continue

            existing = await self._existing_bettors(league_id, match_id)
            for bot_id, user_id, name, strategy_id, configuration in bot_specs:
                if user_id in existing:
                    summary.skipped_existing += 1
                    continue
                match = await self.session.get(Match, match_id)
                placed = await self._bet_for_bot(
                    league_id, match, bot_id, user_id, name, strategy_id, configuration, now
                )
                if placed:
                    summary.bets_placed += 1
                else:
                    summary.errors += 1

    async def _bet_for_bot(
        self,
        league_id: int,
        match: Match,
        bot_id: int,
        user_id: int,
        name: str,
        strategy_id: str,
        configuration: Optional[dict],
        now,
    ) -> bool:
        match_id = match.id
        strategy, config = self.registry.resolve_with_config(strategy_id, configuration)

        try:
            prediction = await strategy.predict(match, config)
            result = await self.bets.place_bet(
                league_id, user_id, match_id, prediction.home, prediction.away
            )
            if not result.is_success:
                logger.warning(
                    f"[BOTS] {name} could not bet on match {match_id} in league {league_id}: {result.error.value}"
                )
                return False

            await self.session.execute(
                update(Bot).where(Bot.id == bot_id).values(last_bet_placed_at=now)
            )
            await self.session.commit()
        except Exception as e:
            record_bot_prediction_error(strategy.name)
            logger.warning(
                f"[BOTS] {name} ({strategy.name}) failed on match {match_id} in league {league_id}: {e}",
                exc_info=True,
            )
            await self.session.rollback()
            return False

        record_bot_bet(strategy.name)
        logger.debug(
            f"[BOTS] {name} bet {prediction.home}-{prediction.away} on match {match_id} "
            f"in league {league_id} ({strategy.name})"
        )
        return True
