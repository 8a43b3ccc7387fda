"""Weighted multi-signal prediction strategy ("stats analyst").

Signals are read once per team per prediction, combined into expected goals
for each side with their effective weights (see bots.context), then mapped
to an integer score inside the style envelope.
"""

import logging
import math
import random
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from scoreleague.bots.config import PredictionStyle, StatsAnalystConfig, StrategyKind
from scoreleague.bots.context import PredictionContext
from scoreleague.bots.strategies.base import PredictedScore, PredictionStrategy
from scoreleague.bots.strategies.simple import FallbackStrategy
from scoreleague.models import Match
from scoreleague.providers.base import (
    DataAvailability,
    DataAvailabilityProvider,
    EloProvider,
    InjuryProvider,
    LineupProvider,
    OddsProvider,
    TeamFormProvider,
    XgProvider,
)
from scoreleague.telemetry import record_degraded_prediction, record_fallback

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Baseline expected goals before any signal is applied
BASE_HOME_GOALS = 1.5
BASE_AWAY_GOALS = 1.2
# League-average xG conceded per match
AVERAGE_XG_AGAINST = 1.3
MIN_EXPECTED_GOALS = 0.05


def season_for(kickoff_at: datetime) -> str:
    """Season label (start year) for a kickoff; seasons start in August."""
    year = kickoff_at.year if kickoff_at.month >= 8 else kickoff_at.year - 1
    return str(year)


def _bounded(factor: float, low: float = 0.25, high: float = 2.0) -> float:
    return max(low, min(high, factor))


class StatsAnalystStrategy(PredictionStrategy):
    """Combines form, home advantage, goal trend, streak, xG, odds, injuries, lineups and Elo."""

    kind = StrategyKind.STATS_ANALYST

    def __init__(
        self,
        form_provider: TeamFormProvider,
        availability_provider: DataAvailabilityProvider,
        xg_provider: Optional[XgProvider] = None,
        odds_provider: Optional[OddsProvider] = None,
        injury_provider: Optional[InjuryProvider] = None,
        elo_provider: Optional[EloProvider] = None,
        lineup_provider: Optional[LineupProvider] = None,
        fallback: Optional[PredictionStrategy] = None,
        config: Optional[StatsAnalystConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(rng)
        self.form_provider = form_provider
        self.availability_provider = availability_provider
        self.xg_provider = xg_provider
        self.odds_provider = odds_provider
        self.injury_provider = injury_provider
        self.elo_provider = elo_provider
        self.lineup_provider = lineup_provider
        self.fallback = fallback or FallbackStrategy(self.rng)
        self.config = config or StatsAnalystConfig()

    async def predict(self, match: Match, config=None) -> PredictedScore:
        cfg = config if isinstance(config, StatsAnalystConfig) else self.config
        context = await self.build_context(match, cfg)

        warning = context.degradation_warning()
        if warning:
            record_degraded_prediction()
            logger.warning(
                f"[STATS_ANALYST] match={match.id} {warning} "
                f"(quality={context.data_quality_score:.0f}%)"
            )

        if not context.can_make_prediction():
            reason = "no_form_data" if not context.can_use_form else "low_data_quality"
            record_fallback(self.name, reason)
            logger.warning(
                f"[STATS_ANALYST] match={match.id} falling back ({reason}, "
                f"quality={context.data_quality_score:.0f}% < {cfg.min_data_quality:.0f}%)"
            )
            return await self.fallback.predict(match)

        home_expected, away_expected = self.expected_goals(context)
        home_expected = self._jitter(home_expected, cfg.random_variance)
        away_expected = self._jitter(away_expected, cfg.random_variance)

        prediction = PredictedScore(
            self._to_goals(home_expected, cfg),
            self._to_goals(away_expected, cfg),
        )
        logger.debug(
            f"[STATS_ANALYST] match={match.id} xG={home_expected:.2f}-{away_expected:.2f} "
            f"-> {prediction.home}-{prediction.away} (style={cfg.style.value})"
        )
        return prediction

    # ── Context ──────────────────────────────────────────────────────────────

    async def _safe(self, label: str, match: Match, call: Callable[[], Awaitable[T]]) -> Optional[T]:
        """Run one provider call; any failure means the signal is unavailable."""
        try:
            return await call()
        except Exception as e:
            logger.warning(f"[STATS_ANALYST] {label} lookup failed for match {match.id}: {e}")
            return None

    async def build_context(self, match: Match, cfg: StatsAnalystConfig) -> PredictionContext:
        availability = await self._safe(
            "availability", match, self.availability_provider.get_data_availability
        )
        if availability is None:
            availability = DataAvailability()

        context = PredictionContext(match=match, config=cfg, availability=availability)
        weights = cfg.weights()
        home_id, away_id = match.home_team_id, match.away_team_id

        if availability.form:
            context.home_form = await self._safe(
                "home form", match,
                lambda: self.form_provider.get_form(home_id, match.competition_id, cfg.matches_analyzed),
            )
            context.away_form = await self._safe(
                "away form", match,
                lambda: self.form_provider.get_form(away_id, match.competition_id, cfg.matches_analyzed),
            )

        wants_xg = weights["xg"] > 0 or weights["xg_defensive"] > 0
        if self.xg_provider and availability.xg and cfg.use_xg_data and wants_xg:
            season = season_for(match.kickoff_at)
            context.home_xg = await self._safe(
                "home xG", match,
                lambda: self.xg_provider.get_team_xg(home_id, match.competition_id, season),
            )
            context.away_xg = await self._safe(
                "away xG", match,
                lambda: self.xg_provider.get_team_xg(away_id, match.competition_id, season),
            )

        if self.odds_provider and availability.odds and cfg.use_odds_data and weights["odds"] > 0:
            context.odds = await self._safe(
                "odds", match, lambda: self.odds_provider.get_odds_for_match(match.id)
            )

        if self.injury_provider and availability.injuries and cfg.use_injury_data and weights["injury"] > 0:
            context.home_injuries = await self._safe(
                "home injuries", match, lambda: self.injury_provider.get_team_injuries(home_id)
            )
            context.away_injuries = await self._safe(
                "away injuries", match, lambda: self.injury_provider.get_team_injuries(away_id)
            )

        if self.elo_provider and availability.elo and cfg.use_elo_data and weights["elo"] > 0:
            context.home_elo = await self._safe(
                "home Elo", match, lambda: self.elo_provider.get_team_elo(home_id)
            )
            context.away_elo = await self._safe(
                "away Elo", match, lambda: self.elo_provider.get_team_elo(away_id)
            )

        if self.lineup_provider and availability.lineups and cfg.use_lineup_data and weights["lineup"] > 0:
            context.home_lineup_strength = await self._safe(
                "home lineup", match, lambda: self.lineup_provider.get_lineup_strength(match.id, home_id)
            )
            context.away_lineup_strength = await self._safe(
                "away lineup", match, lambda: self.lineup_provider.get_lineup_strength(match.id, away_id)
            )

        return context

    # ── Score synthesis ──────────────────────────────────────────────────────

    def expected_goals(self, context: PredictionContext) -> tuple[float, float]:
        """Expected goals (home, away) from the available signals, before jitter."""
        w = context.effective_weights()
        cfg = context.config
        home = BASE_HOME_GOALS
        away = BASE_AWAY_GOALS

        if context.can_use_form:
            home_form, away_form = context.home_form, context.away_form

            if w["form"] > 0:
                home *= _bounded(1 + (home_form.form_score() / 50 - 1) * w["form"])
                away *= _bounded(1 + (away_form.form_score() / 50 - 1) * w["form"])

            if w["goal_trend"] > 0:
                blend = min(w["goal_trend"], 1.0)
                if home_form.matches_played > 0 or away_form.matches_played > 0:
                    home_trend = (home_form.goals_per_match + away_form.goals_conceded_per_match) / 2
                    away_trend = (away_form.goals_per_match + home_form.goals_conceded_per_match) / 2
                    home = home * (1 - blend) + home_trend * blend
                    away = away * (1 - blend) + away_trend * blend

            if w["streak"] > 0:
                home *= _bounded(1 + home_form.current_streak * 0.02 * w["streak"])
                away *= _bounded(1 + away_form.current_streak * 0.02 * w["streak"])

        if w["home_advantage"] > 0:
            home *= 1 + 0.15 * w["home_advantage"]
            away *= _bounded(1 - 0.10 * w["home_advantage"])
            if context.can_use_form:
                gap = context.home_form.home_strength() - context.away_form.away_strength()
                home *= _bounded(1 + gap * 0.2 * w["home_advantage"])

        if context.can_use_xg:
            if w["xg"] > 0:
                blend = min(w["xg"], 1.0)
                if context.home_xg.xg_per_match > 0:
                    home = home * (1 - blend) + context.home_xg.xg_per_match * blend
                if context.away_xg.xg_per_match > 0:
                    away = away * (1 - blend) + context.away_xg.xg_per_match * blend
            if w["xg_defensive"] > 0:
                home *= _bounded(1 + (context.away_xg.xg_against_per_match - AVERAGE_XG_AGAINST) * w["xg_defensive"])
                away *= _bounded(1 + (context.home_xg.xg_against_per_match - AVERAGE_XG_AGAINST) * w["xg_defensive"])

        if context.can_use_odds and w["odds"] > 0:
            odds = context.odds
            if odds.market_favorite == "home":
                home *= _bounded(1 + (odds.favorite_confidence - 0.4) * w["odds"])
            elif odds.market_favorite == "away":
                away *= _bounded(1 + (odds.favorite_confidence - 0.3) * w["odds"])
            else:
                pull = min(odds.favorite_confidence * w["odds"], 1.0)
                mean = (home + away) / 2
                home = home * (1 - pull) + mean * pull
                away = away * (1 - pull) + mean * pull

        if context.can_use_injuries and w["injury"] > 0:
            if context.home_injuries is not None:
                home *= _bounded(1 - context.home_injuries.injury_impact_score / 100 * w["injury"])
            if context.away_injuries is not None:
                away *= _bounded(1 - context.away_injuries.injury_impact_score / 100 * w["injury"])

        if context.can_use_lineups and w["lineup"] > 0:
            if context.home_lineup_strength is not None:
                home *= _bounded(1 - (1 - context.home_lineup_strength) * w["lineup"])
            if context.away_lineup_strength is not None:
                away *= _bounded(1 - (1 - context.away_lineup_strength) * w["lineup"])

        if context.can_use_elo and w["elo"] > 0:
            diff = (context.home_elo.elo_rating - context.away_elo.elo_rating) / 400
            home *= _bounded(1 + diff * w["elo"])
            away *= _bounded(1 - diff * w["elo"])

        # Late-season matches are tighter
        matchday = context.match.matchday
        if cfg.high_stakes_boost and matchday is not None and matchday >= cfg.late_season_matchday:
            mean = (home + away) / 2
            home = home * 0.85 + mean * 0.15
            away = away * 0.85 + mean * 0.15

        return max(MIN_EXPECTED_GOALS, home), max(MIN_EXPECTED_GOALS, away)

    def _jitter(self, expected: float, variance: float) -> float:
        if variance <= 0:
            return expected
        return max(0.0, expected + self.rng.uniform(-variance, variance) * expected)

    @staticmethod
    def _to_goals(expected: float, cfg: StatsAnalystConfig) -> int:
        if cfg.style == PredictionStyle.CONSERVATIVE:
            goals = math.floor(expected)
        elif cfg.style == PredictionStyle.BOLD:
            goals = math.ceil(expected)
        else:
            goals = math.floor(expected + 0.5)
        return max(cfg.min_goals, min(cfg.max_goals, int(goals)))
