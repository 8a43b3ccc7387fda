"""Pluggable score prediction strategies."""

from scoreleague.bots.strategies.base import PredictedScore, PredictionStrategy
from scoreleague.bots.strategies.machine_learning import MachineLearningStrategy
from scoreleague.bots.strategies.registry import StrategyRegistry
from scoreleague.bots.strategies.simple import (
    DrawPredictorStrategy,
    FallbackStrategy,
    HighScorerStrategy,
    HomeFavorerStrategy,
    RandomStrategy,
    UnderdogSupporterStrategy,
)
from scoreleague.bots.strategies.stats_analyst import StatsAnalystStrategy

__all__ = [
    "DrawPredictorStrategy",
    "FallbackStrategy",
    "HighScorerStrategy",
    "HomeFavorerStrategy",
    "MachineLearningStrategy",
    "PredictedScore",
    "PredictionStrategy",
    "RandomStrategy",
    "StatsAnalystStrategy",
    "StrategyRegistry",
    "UnderdogSupporterStrategy",
]
