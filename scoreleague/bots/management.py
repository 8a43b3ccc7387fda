"""Admin management of bots: create, update and list with betting stats.

Adding a bot to a league is ordinary league membership and lives elsewhere.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.bots.config import StrategyKind, validate_strategy_config
from scoreleague.clock import Clock, SystemClock
from scoreleague.errors import ErrorKind, Result
from scoreleague.models import Bet, BetResult, Bot, LeagueMember, User

logger = logging.getLogger(__name__)


def bot_username(name: str) -> str:
    return f"bot_{name.strip().lower().replace(' ', '_')}"


@dataclass
class BotStats:
    total_bets_placed: int = 0
    leagues_joined: int = 0
    average_points_per_bet: float = 0.0
    exact_predictions: int = 0
    correct_results: int = 0


@dataclass
class BotView:
    bot: Bot
    stats: BotStats = field(default_factory=BotStats)


class BotService:
    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or SystemClock()

    async def _name_taken(self, name: str, exclude_bot_id: Optional[int] = None) -> bool:
        query = select(Bot.id).where(Bot.name == name)
        if exclude_bot_id is not None:
            query = query.where(Bot.id != exclude_bot_id)
        if (await self.session.execute(query)).first() is not None:
            return True
        user_query = select(User.id).where(User.username == bot_username(name))
        if exclude_bot_id is not None:
            user_query = user_query.where(
                User.id != select(Bot.user_id).where(Bot.id == exclude_bot_id).scalar_subquery()
            )
        return (await self.session.execute(user_query)).first() is not None

    @staticmethod
    def _check_strategy(strategy: str, configuration: Optional[dict]) -> Result:
        kind = StrategyKind.lookup(strategy)
        if kind is None:
            return Result.failure(ErrorKind.INVALID_STRATEGY, f"Unknown prediction strategy '{strategy}'")
        if configuration is not None:
            try:
                validate_strategy_config(kind, configuration)
            except ValueError as e:
                return Result.failure(ErrorKind.INVALID_STRATEGY, f"Invalid {kind.value} configuration: {e}")
        return Result.success(kind)

    async def create_bot(
        self, name: str, strategy: str, configuration: Optional[dict] = None
    ) -> Result:
        """
        Create a bot together with the user account it bets under.

        Returns:
            Result with the new Bot, or BotNameTaken / InvalidStrategy.
        """
        name = name.strip()
        checked = self._check_strategy(strategy, configuration)
        if not checked.is_success:
            return checked
        if await self._name_taken(name):
            return Result.failure(ErrorKind.BOT_NAME_TAKEN)

        now = self.clock.now()
        user = User(username=bot_username(name), is_bot=True, created_at=now)
        self.session.add(user)
        await self.session.flush()

        bot = Bot(
            user_id=user.id,
            name=name,
            strategy=checked.value.value,
            configuration=configuration,
            created_at=now,
        )
        self.session.add(bot)
        await self.session.commit()
        await self.session.refresh(bot)

        logger.info(f"[BOTS] Created bot {bot.id} '{name}' ({bot.strategy})")
        return Result.success(bot)

    async def update_bot(
        self,
        bot_id: int,
        name: Optional[str] = None,
        strategy: Optional[str] = None,
        configuration: Optional[dict] = None,
        is_active: Optional[bool] = None,
    ) -> Result:
        """Change any subset of name, strategy, configuration and active flag."""
        bot = await self.session.get(Bot, bot_id)
        if bot is None:
            return Result.failure(ErrorKind.BOT_NOT_FOUND)

        if strategy is not None or configuration is not None:
            checked = self._check_strategy(
                strategy if strategy is not None else bot.strategy,
                configuration if configuration is not None else bot.configuration,
            )
            if not checked.is_success:
                return checked
            bot.strategy = checked.value.value

        if name is not None and name.strip() and name.strip() != bot.name:
            name = name.strip()
            if await self._name_taken(name, exclude_bot_id=bot_id):
                return Result.failure(ErrorKind.BOT_NAME_TAKEN)
            bot.name = name
            user = await self.session.get(User, bot.user_id)
            if user is not None:
                user.username = bot_username(name)

        if configuration is not None:
            bot.configuration = dict(configuration)
        if is_active is not None:
            bot.is_active = is_active

        await self.session.commit()
        await self.session.refresh(bot)
        logger.info(f"[BOTS] Updated bot {bot_id}")
        return Result.success(bot)

    async def get_bots(
        self, include_inactive: bool = False, strategy: Optional[str] = None
    ) -> Result:
        """Bots ordered by name, each with its betting stats across leagues."""
        query = select(Bot).order_by(Bot.name, Bot.id)
        if not include_inactive:
            query = query.where(Bot.is_active.is_(True))
        if strategy is not None:
            kind = StrategyKind.lookup(strategy)
            if kind is None:
                return Result.failure(ErrorKind.INVALID_STRATEGY, f"Unknown prediction strategy '{strategy}'")
            query = query.where(Bot.strategy == kind.value)

        bots = list((await self.session.execute(query)).scalars().all())
        return Result.success([BotView(bot=bot, stats=await self._stats(bot)) for bot in bots])

    async def _stats(self, bot: Bot) -> BotStats:
        bets = (
            await self.session.execute(
                select(func.count(Bet.id)).where(Bet.user_id == bot.user_id)
            )
        ).scalar_one()
        leagues = (
            await self.session.execute(
                select(func.count(LeagueMember.id)).where(LeagueMember.user_id == bot.user_id)
            )
        ).scalar_one()
        results = (
            await self.session.execute(
                select(BetResult.points_earned, BetResult.is_exact_match, BetResult.is_correct_result)
                .join(Bet, Bet.id == BetResult.bet_id)
                .where(Bet.user_id == bot.user_id)
            )
        ).all()

        return BotStats(
            total_bets_placed=bets,
            leagues_joined=leagues,
            average_points_per_bet=(
                round(sum(r.points_earned for r in results) / len(results), 2) if results else 0.0
            ),
            exact_predictions=sum(1 for r in results if r.is_exact_match),
            correct_results=sum(1 for r in results if r.is_correct_result),
        )
