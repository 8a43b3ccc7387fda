"""Strategy backed by the model-serving service."""

import logging
import math
import random
from typing import Optional

from scoreleague.bots.config import MachineLearningConfig, RiskProfile, StrategyKind
from scoreleague.bots.strategies.base import PredictedScore, PredictionStrategy
from scoreleague.bots.strategies.simple import FallbackStrategy
from scoreleague.config import get_settings
from scoreleague.models import Match
from scoreleague.providers.base import MlPredictionService
from scoreleague.telemetry import record_fallback

logger = logging.getLogger(__name__)

MAX_GOALS = 5


def round_goals(expected: float, risk_profile: RiskProfile) -> int:
    """Map a continuous estimate to goals: conservative floors, aggressive ceils, balanced rounds."""
    if risk_profile == RiskProfile.CONSERVATIVE:
        goals = math.floor(expected)
    elif risk_profile == RiskProfile.AGGRESSIVE:
        goals = math.ceil(expected)
    else:
        goals = math.floor(expected + 0.5)
    return max(0, min(MAX_GOALS, int(goals)))


class MachineLearningStrategy(PredictionStrategy):
    kind = StrategyKind.MACHINE_LEARNING

    def __init__(
        self,
        ml_service: MlPredictionService,
        fallback: Optional[PredictionStrategy] = None,
        config: Optional[MachineLearningConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(rng)
        self.ml_service = ml_service
        self.fallback = fallback or FallbackStrategy(self.rng)
        self.config = config or MachineLearningConfig()

    async def predict(self, match: Match, config=None) -> PredictedScore:
        cfg = config if isinstance(config, MachineLearningConfig) else self.config
        model_type = cfg.model_type or get_settings().ML_MODEL_TYPE

        try:
            version = await self.ml_service.get_active_model_version(model_type)
            if version is None:
                record_fallback(self.name, "no_model")
                logger.warning(f"[ML] No active {model_type} model, falling back for match {match.id}")
                return await self.fallback.predict(match)

            estimate = await self.ml_service.predict_scores(match)
        except Exception as e:
            record_fallback(self.name, "service_error")
            logger.warning(f"[ML] Prediction failed for match {match.id}: {e}")
            return await self.fallback.predict(match)

        if estimate is None:
            record_fallback(self.name, "service_error")
            logger.warning(f"[ML] Empty prediction for match {match.id}, falling back")
            return await self.fallback.predict(match)

        prediction = PredictedScore(
            round_goals(estimate.home_score, cfg.risk_profile),
            round_goals(estimate.away_score, cfg.risk_profile),
        )
        logger.debug(
            f"[ML] match={match.id} model={version} raw={estimate.home_score:.2f}-{estimate.away_score:.2f} "
            f"-> {prediction.home}-{prediction.away} ({cfg.risk_profile.value})"
        )
        return prediction
