"""Strategies that need no external data."""

from scoreleague.bots.config import StrategyKind
from scoreleague.bots.strategies.base import PredictedScore, PredictionStrategy
from scoreleague.models import Match


class RandomStrategy(PredictionStrategy):
    """Uniform home 0-4, away 0-3."""

    kind = StrategyKind.RANDOM

    async def predict(self, match: Match, config=None) -> PredictedScore:
        return PredictedScore(self.rng.randint(0, 4), self.rng.randint(0, 3))


class HomeFavorerStrategy(PredictionStrategy):
    """Home wins: home 1-3, away strictly below."""

    kind = StrategyKind.HOME_FAVORER

    async def predict(self, match: Match, config=None) -> PredictedScore:
        home = self.rng.randint(1, 3)
        away = self.rng.randint(0, home - 1)
        return PredictedScore(home, away)


class UnderdogSupporterStrategy(PredictionStrategy):
    """Away wins: away 1-3, home strictly below."""

    kind = StrategyKind.UNDERDOG_SUPPORTER

    async def predict(self, match: Match, config=None) -> PredictedScore:
        away = self.rng.randint(1, 3)
        home = self.rng.randint(0, away - 1)
        return PredictedScore(home, away)


class DrawPredictorStrategy(PredictionStrategy):
    """Draw 0-0 to 2-2 about 70% of the time, otherwise a one-goal margin."""

    kind = StrategyKind.DRAW_PREDICTOR
    DRAW_PROBABILITY = 0.7

    async def predict(self, match: Match, config=None) -> PredictedScore:
        if self.rng.random() < self.DRAW_PROBABILITY:
            goals = self.rng.randint(0, 2)
            return PredictedScore(goals, goals)

        loser = self.rng.randint(0, 1)
        winner = loser + 1
        if self.rng.random() < 0.5:
            return PredictedScore(winner, loser)
        return PredictedScore(loser, winner)


class HighScorerStrategy(PredictionStrategy):
    """Open games: home 2-4, away 1-3."""

    kind = StrategyKind.HIGH_SCORER

    async def predict(self, match: Match, config=None) -> PredictedScore:
        return PredictedScore(self.rng.randint(2, 4), self.rng.randint(1, 3))


class FallbackStrategy(PredictionStrategy):
    """Minimal-data guess used when a data-driven strategy cannot predict."""

    kind = StrategyKind.FALLBACK

    async def predict(self, match: Match, config=None) -> PredictedScore:
        return PredictedScore(self.rng.randint(1, 2), self.rng.randint(0, 2))
