"""Working state of a stats analyst prediction and its weight redistribution.

Each signal carries a configured weight. Signals whose data is missing drop
out and their weight is spread over the remaining signals in proportion to
their own weights, so the total weight mass stays constant:

    scale = total_configured / total_available
    effective[s] = configured[s] * scale    (available signals)
    effective[s] = 0                        (unavailable signals)

The data quality score is the share of configured weight that is still
backed by data, as a percentage.
"""

from dataclasses import dataclass
from typing import Optional

from scoreleague.bots.config import StatsAnalystConfig
from scoreleague.models import (
    Match,
    MatchOdds,
    TeamEloRating,
    TeamFormCache,
    TeamInjuries,
    TeamXgStats,
)
from scoreleague.providers.base import DataAvailability

SIGNALS = (
    "form",
    "home_advantage",
    "goal_trend",
    "streak",
    "lineup",
    "xg",
    "xg_defensive",
    "odds",
    "injury",
    "elo",
)

# Human-readable data source per signal, used in degradation warnings
SIGNAL_SOURCES = {
    "form": "form data",
    "goal_trend": "form data",
    "streak": "form data",
    "home_advantage": "home advantage data",
    "lineup": "lineup data",
    "xg": "xG data",
    "xg_defensive": "xG data",
    "odds": "odds data",
    "injury": "injury data",
    "elo": "Elo rating data",
}


@dataclass
class PredictionContext:
    """Signals gathered for one match plus the availability they were read under."""

    match: Match
    config: StatsAnalystConfig
    availability: DataAvailability

    home_form: Optional[TeamFormCache] = None
    away_form: Optional[TeamFormCache] = None
    home_xg: Optional[TeamXgStats] = None
    away_xg: Optional[TeamXgStats] = None
    odds: Optional[MatchOdds] = None
    home_injuries: Optional[TeamInjuries] = None
    away_injuries: Optional[TeamInjuries] = None
    home_elo: Optional[TeamEloRating] = None
    away_elo: Optional[TeamEloRating] = None
    home_lineup_strength: Optional[float] = None
    away_lineup_strength: Optional[float] = None

    # ── Per-signal availability ──────────────────────────────────────────────

    @property
    def can_use_form(self) -> bool:
        return self.availability.form and self.home_form is not None and self.away_form is not None

    @property
    def can_use_xg(self) -> bool:
        return (
            self.availability.xg
            and self.config.use_xg_data
            and self.home_xg is not None
            and self.away_xg is not None
        )

    @property
    def can_use_odds(self) -> bool:
        return self.availability.odds and self.config.use_odds_data and self.odds is not None

    @property
    def can_use_injuries(self) -> bool:
        return (
            self.availability.injuries
            and self.config.use_injury_data
            and (self.home_injuries is not None or self.away_injuries is not None)
        )

    @property
    def can_use_lineups(self) -> bool:
        return (
            self.availability.lineups
            and self.config.use_lineup_data
            and (self.home_lineup_strength is not None or self.away_lineup_strength is not None)
        )

    @property
    def can_use_elo(self) -> bool:
        return (
            self.availability.elo
            and self.config.use_elo_data
            and self.home_elo is not None
            and self.away_elo is not None
        )

    def is_signal_available(self, signal: str) -> bool:
        if signal == "home_advantage":
            return True
        if signal in ("form", "goal_trend", "streak"):
            return self.can_use_form
        if signal in ("xg", "xg_defensive"):
            return self.can_use_xg
        if signal == "odds":
            return self.can_use_odds
        if signal == "injury":
            return self.can_use_injuries
        if signal == "lineup":
            return self.can_use_lineups
        if signal == "elo":
            return self.can_use_elo
        raise ValueError(f"Unknown signal: {signal}")

    # ── Weight redistribution ────────────────────────────────────────────────

    def _weight_totals(self) -> tuple[float, float]:
        configured = self.config.weights()
        total_configured = sum(w for w in configured.values() if w > 0)
        total_available = sum(
            w for signal, w in configured.items() if w > 0 and self.is_signal_available(signal)
        )
        return total_configured, total_available

    def effective_weights(self) -> dict[str, float]:
        configured = self.config.weights()
        total_configured, total_available = self._weight_totals()
        if total_available <= 0:
            return {signal: 0.0 for signal in configured}

        scale = total_configured / total_available
        return {
            signal: (w * scale if w > 0 and self.is_signal_available(signal) else 0.0)
            for signal, w in configured.items()
        }

    @property
    def data_quality_score(self) -> float:
        """0-100 share of configured weight backed by available data."""
        total_configured, total_available = self._weight_totals()
        if total_configured <= 0:
            return 100.0
        return total_available / total_configured * 100

    def can_make_prediction(self) -> bool:
        quality = self.data_quality_score
        if not self.can_use_form or quality <= 0:
            return False
        return quality >= self.config.min_data_quality

    def degradation_warning(self) -> Optional[str]:
        """Names every data source weighted > 0 but unavailable, or None."""
        missing = []
        for signal, weight in self.config.weights().items():
            if weight > 0 and not self.is_signal_available(signal):
                source = SIGNAL_SOURCES[signal]
                if source not in missing:
                    missing.append(source)
        if not missing:
            return None
        return "Degraded prediction: " + ", ".join(f"{source} unavailable" for source in missing)
