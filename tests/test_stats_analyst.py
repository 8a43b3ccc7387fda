"""
Tests for the stats analyst ensemble strategy.

Providers are AsyncMocks so each test controls exactly which signals exist
and can assert how often each one was read.
"""

import random
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from scoreleague.bots.config import STATS_ANALYST_PROFILES, PredictionStyle, StatsAnalystConfig
from scoreleague.bots.strategies import PredictedScore, StatsAnalystStrategy
from scoreleague.bots.strategies.stats_analyst import season_for
from scoreleague.models import Match, MatchOdds, TeamEloRating, TeamFormCache, TeamXgStats
from scoreleague.providers.base import DataAvailability

HOME_ID = 1
AWAY_ID = 2


def _match(matchday=None):
    return Match(
        id=42,
        competition_id=2021,
        home_team_id=HOME_ID,
        away_team_id=AWAY_ID,
        kickoff_at=datetime(2025, 3, 15, 15, 0),
        matchday=matchday,
    )


def _strong_home_form():
    return TeamFormCache(
        team_id=HOME_ID,
        competition_id=2021,
        matches_played=5,
        points_per_match=3.0,
        goals_per_match=2.5,
        goals_conceded_per_match=0.5,
        current_streak=5,
    )


def _weak_away_form():
    return TeamFormCache(
        team_id=AWAY_ID,
        competition_id=2021,
        matches_played=5,
        points_per_match=0.0,
        goals_per_match=0.4,
        goals_conceded_per_match=2.6,
        current_streak=-5,
    )


def _form_provider(home=None, away=None):
    forms = {HOME_ID: home or _strong_home_form(), AWAY_ID: away or _weak_away_form()}
    provider = MagicMock()
    provider.get_form = AsyncMock(side_effect=lambda team_id, competition_id, n=5: forms[team_id])
    return provider


def _availability_provider(availability=None):
    provider = MagicMock()
    provider.get_data_availability = AsyncMock(return_value=availability or DataAvailability())
    return provider


def _fallback(score=PredictedScore(1, 1)):
    fallback = MagicMock()
    fallback.predict = AsyncMock(return_value=score)
    return fallback


def _no_variance(**kwargs):
    return StatsAnalystConfig(random_variance=0.0, **kwargs)


class TestSeason:
    def test_season_starts_in_august(self):
        assert season_for(datetime(2025, 3, 15)) == "2024"
        assert season_for(datetime(2024, 8, 1)) == "2024"
        assert season_for(datetime(2024, 7, 31)) == "2023"


class TestEnsemblePrediction:
    """Form, goal trend, streak and home advantage only."""

    @pytest.mark.asyncio
    async def test_strong_home_side_predicted_to_win(self):
        """Deterministic with zero variance: 2-1."""
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=_availability_provider(),
            fallback=_fallback(),
        )
        prediction = await strategy.predict(_match(), _no_variance())
        assert prediction == PredictedScore(2, 1)

    @pytest.mark.asyncio
    async def test_expected_goals_favour_better_form(self):
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=_availability_provider(),
        )
        context = await strategy.build_context(_match(), _no_variance())
        home, away = strategy.expected_goals(context)
        assert home > away > 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("style", list(PredictionStyle))
    async def test_output_stays_in_style_envelope(self, style):
        """Many seeded draws with maximal variance never leave [min, max]."""
        config = StatsAnalystConfig(style=style, random_variance=1.0)
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=_availability_provider(),
            rng=random.Random(11),
        )
        for _ in range(200):
            prediction = await strategy.predict(_match(), config)
            assert config.min_goals <= prediction.home <= config.max_goals
            assert config.min_goals <= prediction.away <= config.max_goals

    @pytest.mark.asyncio
    async def test_bold_style_never_predicts_zero(self):
        weak = TeamFormCache(team_id=HOME_ID, competition_id=2021, matches_played=5, points_per_match=0.0,
                             goals_per_match=0.0, goals_conceded_per_match=0.0)
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(home=weak, away=_weak_away_form()),
            availability_provider=_availability_provider(),
        )
        prediction = await strategy.predict(_match(), _no_variance(style=PredictionStyle.BOLD))
        assert prediction.home >= 1
        assert prediction.away >= 1

    @pytest.mark.asyncio
    async def test_late_season_narrows_gap(self):
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=_availability_provider(),
        )
        early = strategy.expected_goals(await strategy.build_context(_match(matchday=5), _no_variance()))
        late = strategy.expected_goals(await strategy.build_context(_match(matchday=34), _no_variance()))
        assert late[0] - late[1] < early[0] - early[1]


class TestFallback:
    @pytest.mark.asyncio
    async def test_low_data_quality_uses_fallback(self):
        """form .2, home .1, xG .7 with xG unavailable."""
        fallback = _fallback(PredictedScore(2, 0))
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=_availability_provider(DataAvailability(xg=False)),
            fallback=fallback,
        )
        config = _no_variance(
            form_weight=0.2,
            home_advantage_weight=0.1,
            goal_trend_weight=0.0,
            streak_weight=0.0,
            xg_weight=0.7,
        )
        prediction = await strategy.predict(_match(), config)
        assert prediction == PredictedScore(2, 0)
        fallback.predict.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_form_provider_failure_falls_back(self):
        """A raising provider never propagates."""
        form_provider = MagicMock()
        form_provider.get_form = AsyncMock(side_effect=RuntimeError("db down"))
        fallback = _fallback()
        strategy = StatsAnalystStrategy(
            form_provider=form_provider,
            availability_provider=_availability_provider(),
            fallback=fallback,
        )
        assert await strategy.predict(_match()) == PredictedScore(1, 1)
        fallback.predict.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_default_fallback_range(self):
        form_provider = MagicMock()
        form_provider.get_form = AsyncMock(return_value=None)
        strategy = StatsAnalystStrategy(
            form_provider=form_provider,
            availability_provider=_availability_provider(),
            rng=random.Random(3),
        )
        for _ in range(50):
            prediction = await strategy.predict(_match())
            assert 1 <= prediction.home <= 2
            assert 0 <= prediction.away <= 2


class TestDegradedSignals:
    @pytest.mark.asyncio
    async def test_failing_xg_provider_degrades_without_fallback(self):
        """xg_driven keeps 45% quality without xG, above its 40% threshold."""
        xg_provider = MagicMock()
        xg_provider.get_team_xg = AsyncMock(side_effect=RuntimeError("understat timeout"))
        fallback = _fallback()
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=_availability_provider(DataAvailability(xg=True)),
            xg_provider=xg_provider,
            fallback=fallback,
        )
        config = STATS_ANALYST_PROFILES["xg_driven"].model_copy(update={"random_variance": 0.0})

        prediction = await strategy.predict(_match(), config)

        fallback.predict.assert_not_awaited()
        assert 0 <= prediction.home <= 4
        assert xg_provider.get_team_xg.await_count == 2

    @pytest.mark.asyncio
    async def test_availability_failure_means_form_only(self):
        availability_provider = MagicMock()
        availability_provider.get_data_availability = AsyncMock(side_effect=RuntimeError("boom"))
        odds_provider = MagicMock()
        odds_provider.get_odds_for_match = AsyncMock()
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=availability_provider,
            odds_provider=odds_provider,
        )
        context = await strategy.build_context(_match(), _no_variance(odds_weight=0.3))
        assert context.can_use_form is True
        assert context.can_use_odds is False
        odds_provider.get_odds_for_match.assert_not_awaited()


class TestSignalFetching:
    @pytest.mark.asyncio
    async def test_each_signal_read_once_per_team(self):
        odds = MatchOdds(match_id=42, home_win_odds=1.8, draw_odds=3.6, away_win_odds=4.5)
        odds.calculate_probabilities()

        form_provider = _form_provider()
        xg_provider = MagicMock()
        xg_provider.get_team_xg = AsyncMock(
            side_effect=lambda team_id, competition_id, season: TeamXgStats(
                team_id=team_id, competition_id=competition_id, season=season,
                matches_played=25, xg_per_match=1.6, xg_against_per_match=1.1,
            )
        )
        odds_provider = MagicMock()
        odds_provider.get_odds_for_match = AsyncMock(return_value=odds)
        elo_provider = MagicMock()
        elo_provider.get_team_elo = AsyncMock(
            side_effect=lambda team_id: TeamEloRating(
                team_id=team_id, elo_rating=1850 if team_id == HOME_ID else 1700,
                rating_date=datetime(2025, 3, 1),
            )
        )

        strategy = StatsAnalystStrategy(
            form_provider=form_provider,
            availability_provider=_availability_provider(DataAvailability.all_available()),
            xg_provider=xg_provider,
            odds_provider=odds_provider,
            elo_provider=elo_provider,
            fallback=_fallback(),
        )
        config = _no_variance(xg_weight=0.2, xg_defensive_weight=0.1, odds_weight=0.2, elo_weight=0.1)

        await strategy.predict(_match(), config)

        assert form_provider.get_form.await_count == 2
        assert xg_provider.get_team_xg.await_count == 2
        assert odds_provider.get_odds_for_match.await_count == 1
        assert elo_provider.get_team_elo.await_count == 2
        strategy.fallback.predict.assert_not_awaited()
        xg_provider.get_team_xg.assert_any_await(HOME_ID, 2021, "2024")

    @pytest.mark.asyncio
    async def test_unweighted_signals_are_not_read(self):
        elo_provider = MagicMock()
        elo_provider.get_team_elo = AsyncMock()
        strategy = StatsAnalystStrategy(
            form_provider=_form_provider(),
            availability_provider=_availability_provider(DataAvailability.all_available()),
            elo_provider=elo_provider,
        )
        await strategy.build_context(_match(), _no_variance(elo_weight=0.0))
        elo_provider.get_team_elo.assert_not_awaited()
