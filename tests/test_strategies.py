"""
Tests for the data-free prediction strategies.

Each strategy is sampled many times with a seeded RNG; every prediction must
stay inside the strategy's documented envelope.
"""

import random
from datetime import datetime

import pytest

from scoreleague.bots.strategies import (
    DrawPredictorStrategy,
    FallbackStrategy,
    HighScorerStrategy,
    HomeFavorerStrategy,
    RandomStrategy,
    UnderdogSupporterStrategy,
)
from scoreleague.models import Match

SAMPLES = 500


def _match():
    return Match(
        id=1,
        competition_id=2021,
        home_team_id=1,
        away_team_id=2,
        kickoff_at=datetime(2025, 3, 15, 15, 0),
    )


async def _sample(strategy, n=SAMPLES):
    match = _match()
    return [await strategy.predict(match) for _ in range(n)]


class TestRandomStrategy:
    """Uniform random scores."""

    @pytest.mark.asyncio
    async def test_ranges(self):
        """Home 0-4, away 0-3."""
        predictions = await _sample(RandomStrategy(random.Random(1)))
        assert all(0 <= p.home <= 4 for p in predictions)
        assert all(0 <= p.away <= 3 for p in predictions)

    @pytest.mark.asyncio
    async def test_covers_full_range(self):
        """Every value of the range eventually appears."""
        predictions = await _sample(RandomStrategy(random.Random(2)))
        assert {p.home for p in predictions} == {0, 1, 2, 3, 4}
        assert {p.away for p in predictions} == {0, 1, 2, 3}

    @pytest.mark.asyncio
    async def test_same_seed_same_predictions(self):
        """Seeded RNG makes runs reproducible."""
        first = await _sample(RandomStrategy(random.Random(7)), n=20)
        second = await _sample(RandomStrategy(random.Random(7)), n=20)
        assert first == second


class TestHomeFavorer:
    @pytest.mark.asyncio
    async def test_home_always_wins(self):
        """Home 1-3 and strictly above away."""
        predictions = await _sample(HomeFavorerStrategy(random.Random(3)))
        for p in predictions:
            assert 1 <= p.home <= 3
            assert 0 <= p.away < p.home


class TestUnderdogSupporter:
    @pytest.mark.asyncio
    async def test_away_always_wins(self):
        """Away 1-3 and strictly above home."""
        predictions = await _sample(UnderdogSupporterStrategy(random.Random(4)))
        for p in predictions:
            assert 1 <= p.away <= 3
            assert 0 <= p.home < p.away


class TestDrawPredictor:
    @pytest.mark.asyncio
    async def test_draws_and_one_goal_margins(self):
        """Draws are 0-0..2-2; non-draws differ by exactly one goal."""
        predictions = await _sample(DrawPredictorStrategy(random.Random(5)), n=2000)
        for p in predictions:
            if p.home == p.away:
                assert 0 <= p.home <= 2
            else:
                assert abs(p.home - p.away) == 1
                assert max(p.home, p.away) <= 2

    @pytest.mark.asyncio
    async def test_draw_share_near_seventy_percent(self):
        """Roughly 70% draws over a large sample."""
        predictions = await _sample(DrawPredictorStrategy(random.Random(6)), n=2000)
        share = sum(1 for p in predictions if p.home == p.away) / len(predictions)
        assert 0.62 <= share <= 0.78

    @pytest.mark.asyncio
    async def test_both_sides_win_sometimes(self):
        predictions = await _sample(DrawPredictorStrategy(random.Random(8)), n=1000)
        assert any(p.home > p.away for p in predictions)
        assert any(p.away > p.home for p in predictions)


class TestHighScorer:
    @pytest.mark.asyncio
    async def test_ranges(self):
        """Home 2-4, away 1-3, so at least three goals."""
        predictions = await _sample(HighScorerStrategy(random.Random(9)))
        for p in predictions:
            assert 2 <= p.home <= 4
            assert 1 <= p.away <= 3
            assert p.home + p.away >= 3


class TestFallback:
    @pytest.mark.asyncio
    async def test_ranges(self):
        """Home 1-2, away 0-2."""
        predictions = await _sample(FallbackStrategy(random.Random(10)))
        assert all(1 <= p.home <= 2 for p in predictions)
        assert all(0 <= p.away <= 2 for p in predictions)

    def test_name_is_strategy_identifier(self):
        assert FallbackStrategy().name == "fallback"
        assert RandomStrategy().name == "random"
