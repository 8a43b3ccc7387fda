"""Read-only data collaborators consumed by prediction strategies."""

from scoreleague.providers.base import (
    DataAvailability,
    DataAvailabilityProvider,
    EloProvider,
    InjuryProvider,
    LineupProvider,
    MlPredictionService,
    OddsProvider,
    ScorePrediction,
    TeamFormProvider,
    XgProvider,
)

__all__ = [
    "DataAvailability",
    "DataAvailabilityProvider",
    "EloProvider",
    "InjuryProvider",
    "LineupProvider",
    "MlPredictionService",
    "OddsProvider",
    "ScorePrediction",
    "TeamFormProvider",
    "XgProvider",
]
