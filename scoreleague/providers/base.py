"""Abstract interfaces for the data collaborators read by prediction strategies."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from scoreleague.models import (
    Match,
    MatchOdds,
    TeamEloRating,
    TeamFormCache,
    TeamInjuries,
    TeamXgStats,
)


@dataclass
class DataAvailability:
    """Which statistical signal categories can be trusted right now.

    Form is computed from stored results and is always available; the other
    flags depend on the health of their external integrations.
    """

    form: bool = True
    xg: bool = False
    odds: bool = False
    injuries: bool = False
    lineups: bool = False
    elo: bool = False

    @classmethod
    def all_available(cls) -> "DataAvailability":
        return cls(form=True, xg=True, odds=True, injuries=True, lineups=True, elo=True)

    def summary(self) -> str:
        flags = [name for name, ok in self.__dict__.items() if ok]
        return ",".join(flags) if flags else "none"


@dataclass
class ScorePrediction:
    """Continuous score estimate returned by the model-serving service."""

    home_score: float
    away_score: float
    model_version: Optional[str] = None


class TeamFormProvider(ABC):
    @abstractmethod
    async def get_form(
        self, team_id: int, competition_id: int, matches_to_analyze: int = 5
    ) -> Optional[TeamFormCache]:
        """
        Get the recent form of a team in a competition.

        Args:
            team_id: Team ID.
            competition_id: Competition the form is scoped to.
            matches_to_analyze: Look-back window (finished matches).

        Returns:
            Form snapshot, or None if it cannot be computed.
        """
        pass


class XgProvider(ABC):
    @abstractmethod
    async def get_team_xg(
        self, team_id: int, competition_id: int, season: str
    ) -> Optional[TeamXgStats]:
        pass


class OddsProvider(ABC):
    @abstractmethod
    async def get_odds_for_match(self, match_id: int) -> Optional[MatchOdds]:
        pass


class InjuryProvider(ABC):
    @abstractmethod
    async def get_team_injuries(self, team_id: int) -> Optional[TeamInjuries]:
        pass


class EloProvider(ABC):
    @abstractmethod
    async def get_team_elo(self, team_id: int) -> Optional[TeamEloRating]:
        """Latest Elo rating snapshot for a team."""
        pass


class LineupProvider(ABC):
    @abstractmethod
    async def get_lineup_strength(self, match_id: int, team_id: int) -> Optional[float]:
        """Share (0-1) of the team's usual starting XI confirmed for the match."""
        pass


class DataAvailabilityProvider(ABC):
    @abstractmethod
    async def get_data_availability(self) -> DataAvailability:
        pass


class MlPredictionService(ABC):
    """Model-serving collaborator for the machine-learning strategy."""

    @abstractmethod
    async def get_active_model_version(self, model_type: str) -> Optional[str]:
        """Active model version for a model type, or None when nothing is deployed."""
        pass

    @abstractmethod
    async def predict_scores(self, match: Match) -> Optional[ScorePrediction]:
        pass
