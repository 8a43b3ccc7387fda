"""Resolves strategy identifiers to strategy instances."""

import logging
import random
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.bots.config import (
    BasicStrategyConfig,
    MachineLearningConfig,
    StatsAnalystConfig,
    StrategyKind,
    parse_strategy_config,
)
from scoreleague.bots.strategies.base import PredictionStrategy
from scoreleague.bots.strategies.machine_learning import MachineLearningStrategy
from scoreleague.bots.strategies.simple import (
    DrawPredictorStrategy,
    FallbackStrategy,
    HighScorerStrategy,
    HomeFavorerStrategy,
    RandomStrategy,
    UnderdogSupporterStrategy,
)
from scoreleague.bots.strategies.stats_analyst import StatsAnalystStrategy
from scoreleague.clock import Clock, SystemClock
from scoreleague.models import Bot
from scoreleague.providers.base import MlPredictionService
from scoreleague.providers.db import (
    DbEloProvider,
    DbInjuryProvider,
    DbLineupProvider,
    DbOddsProvider,
    DbXgProvider,
)
from scoreleague.providers.form import TeamFormCalculator
from scoreleague.providers.health import IntegrationHealthService
from scoreleague.providers.ml_client import get_ml_prediction_service

logger = logging.getLogger(__name__)

SIMPLE_STRATEGIES: dict[StrategyKind, type] = {
    StrategyKind.RANDOM: RandomStrategy,
    StrategyKind.HOME_FAVORER: HomeFavorerStrategy,
    StrategyKind.UNDERDOG_SUPPORTER: UnderdogSupporterStrategy,
    StrategyKind.DRAW_PREDICTOR: DrawPredictorStrategy,
    StrategyKind.HIGH_SCORER: HighScorerStrategy,
    StrategyKind.FALLBACK: FallbackStrategy,
}

AnyStrategyConfig = Union[StatsAnalystConfig, MachineLearningConfig, BasicStrategyConfig]


class StrategyRegistry:
    """
    Builds strategies on demand, scoped to one database session.

    Data providers are only constructed for strategies that read them.
    Unknown identifiers resolve to RandomStrategy.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        ml_service: Optional[MlPredictionService] = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self._ml_service = ml_service
        self._stats_analyst: Optional[StatsAnalystStrategy] = None

    def resolve(self, identifier: Optional[str]) -> PredictionStrategy:
        kind = StrategyKind.parse(identifier)

        strategy_cls = SIMPLE_STRATEGIES.get(kind)
        if strategy_cls is not None:
            return strategy_cls(self.rng)

        if kind == StrategyKind.STATS_ANALYST:
            return self._build_stats_analyst()

        if kind == StrategyKind.MACHINE_LEARNING:
            if self._ml_service is None:
                self._ml_service = get_ml_prediction_service()
            return MachineLearningStrategy(self._ml_service, rng=self.rng)

        logger.warning(f"No strategy registered for {kind.value}, using random")
        return RandomStrategy(self.rng)

    def resolve_with_config(
        self, identifier: Optional[str], configuration: Optional[dict]
    ) -> tuple[PredictionStrategy, AnyStrategyConfig]:
        """Strategy instance plus the validated configuration blob."""
        kind = StrategyKind.parse(identifier)
        config = parse_strategy_config(kind, configuration)
        return self.resolve(kind.value), config

    def resolve_for_bot(self, bot: Bot) -> tuple[PredictionStrategy, AnyStrategyConfig]:
        return self.resolve_with_config(bot.strategy, bot.configuration)

    def _build_stats_analyst(self) -> StatsAnalystStrategy:
        # Providers hold only the session; one instance serves the whole run
        if self._stats_analyst is None:
            self._stats_analyst = StatsAnalystStrategy(
                form_provider=TeamFormCalculator(self.session, self.clock),
                availability_provider=IntegrationHealthService(self.session, self.clock),
                xg_provider=DbXgProvider(self.session),
                odds_provider=DbOddsProvider(self.session),
                injury_provider=DbInjuryProvider(self.session),
                elo_provider=DbEloProvider(self.session),
                lineup_provider=DbLineupProvider(self.session),
                rng=self.rng,
            )
        return self._stats_analyst
