"""Prediction strategy contract."""

import random
from abc import ABC, abstractmethod
from typing import NamedTuple, Optional

from scoreleague.bots.config import StrategyKind
from scoreleague.models import Match


class PredictedScore(NamedTuple):
    home: int
    away: int


class PredictionStrategy(ABC):
    """
    Turns a match into a non-negative integer score prediction.

    Strategies never raise for missing data; they degrade or fall back.
    Stochastic strategies draw from an injected random.Random so runs can
    be reproduced with a seed.
    """

    kind: StrategyKind

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    async def predict(self, match: Match, config=None) -> PredictedScore:
        """
        Predict the final score of a match.

        Args:
            match: Fixture to predict.
            config: Optional strategy configuration (see bots.config).

        Returns:
            PredictedScore(home, away), both >= 0.
        """
        pass
