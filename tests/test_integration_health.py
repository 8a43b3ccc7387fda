"""
Tests for integration health tracking, signal availability and the
database-backed signal providers.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from scoreleague.models import MatchLineup, MatchOdds, TeamEloRating, TeamInjuries, TeamXgStats
from scoreleague.providers.base import DataAvailability
from scoreleague.providers.db import (
    DbEloProvider,
    DbInjuryProvider,
    DbLineupProvider,
    DbOddsProvider,
    DbXgProvider,
)
from scoreleague.providers.health import (
    CLUBELO,
    INJURIES,
    ODDS,
    UNDERSTAT,
    IntegrationHealthService,
)
from tests.conftest import NOW


class TestDataAvailability:
    @pytest.mark.asyncio
    async def test_nothing_recorded_means_form_only(self, session, clock):
        availability = await IntegrationHealthService(session, clock).get_data_availability()
        assert availability == DataAvailability()
        assert availability.summary() == "form"

    @pytest.mark.asyncio
    async def test_fresh_success_enables_signal(self, session, clock):
        health = IntegrationHealthService(session, clock)
        await health.record_success(UNDERSTAT, duration_ms=850)
        await health.record_success(ODDS)

        availability = await health.get_data_availability()

        assert availability.xg is True
        assert availability.odds is True
        assert availability.elo is False

    @pytest.mark.asyncio
    async def test_stale_data_disables_signal(self, session, clock):
        health = IntegrationHealthService(session, clock)
        await health.record_success(CLUBELO)
        await health.record_success(INJURIES)

        clock.advance(hours=25)
        availability = await health.get_data_availability()

        assert availability.elo is False
        # Injury availability only depends on the integration being operational
        assert availability.injuries is True

    @pytest.mark.asyncio
    async def test_failures_degrade_then_fail(self, session, clock):
        health = IntegrationHealthService(session, clock)
        await health.record_success(UNDERSTAT)

        status = await health.record_failure(UNDERSTAT, "HTTP 503")
        assert status.health == "degraded"
        assert (await health.get_data_availability()).xg is True

        await health.record_failure(UNDERSTAT, "HTTP 503")
        status = await health.record_failure(UNDERSTAT, "HTTP 503")
        assert status.health == "failed"
        assert status.consecutive_failures == 3
        assert (await health.get_data_availability()).xg is False

        status = await health.record_success(UNDERSTAT)
        assert status.health == "healthy"
        assert status.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_manual_disable_and_enable(self, session, clock):
        health = IntegrationHealthService(session, clock)
        await health.record_success(ODDS)

        status = await health.disable(ODDS, "bad lines from provider", "ops")
        assert status.health == "disabled"
        assert (await health.get_data_availability()).odds is False

        await health.record_success(ODDS)
        assert (await health.get_status(ODDS)).health == "disabled"

        status = await health.enable(ODDS)
        assert status.health == "healthy"
        assert status.disabled_by is None
        assert (await health.get_data_availability()).odds is True


class TestMatchOdds:
    def test_devig_probabilities_sum_to_one(self):
        odds = MatchOdds(match_id=1, home_win_odds=1.90, draw_odds=3.50, away_win_odds=4.20)
        odds.calculate_probabilities()
        total = odds.home_win_probability + odds.draw_probability + odds.away_win_probability
        assert total == pytest.approx(1.0)
        assert odds.market_favorite == "home"
        assert odds.favorite_confidence == pytest.approx(odds.home_win_probability)

    def test_away_favorite(self):
        odds = MatchOdds(match_id=1, home_win_odds=5.0, draw_odds=4.0, away_win_odds=1.6)
        odds.calculate_probabilities()
        assert odds.market_favorite == "away"

    def test_invalid_odds(self):
        odds = MatchOdds(match_id=1, home_win_odds=0.0, draw_odds=0.0, away_win_odds=0.0)
        odds.calculate_probabilities()
        assert odds.market_favorite == "draw"
        assert odds.favorite_confidence == 0.0


class TestDbProviders:
    @pytest.mark.asyncio
    async def test_xg_requires_matches_played(self, session):
        session.add_all([
            TeamXgStats(team_id=1, competition_id=2021, season="2024", matches_played=20, xg_per_match=1.7),
            TeamXgStats(team_id=2, competition_id=2021, season="2024", matches_played=0),
        ])
        await session.commit()
        provider = DbXgProvider(session)

        assert (await provider.get_team_xg(1, 2021, "2024")).xg_per_match == 1.7
        assert await provider.get_team_xg(2, 2021, "2024") is None
        assert await provider.get_team_xg(1, 2021, "2023") is None

    @pytest.mark.asyncio
    async def test_odds_probabilities_derived_when_missing(self, session, factory):
        match = await factory.match(NOW + timedelta(days=1))
        session.add(MatchOdds(match_id=match.id, home_win_odds=2.5, draw_odds=3.2, away_win_odds=2.9))
        await session.commit()

        odds = await DbOddsProvider(session).get_odds_for_match(match.id)

        assert odds.home_win_probability > 0
        assert odds.market_favorite == "home"
        assert await DbOddsProvider(session).get_odds_for_match(9999) is None

    @pytest.mark.asyncio
    async def test_derived_probabilities_not_written_back(self, session, session_factory, factory):
        match = await factory.match(NOW + timedelta(days=1))
        session.add(MatchOdds(match_id=match.id, home_win_odds=2.5, draw_odds=3.2, away_win_odds=2.9))
        await session.commit()

        odds = await DbOddsProvider(session).get_odds_for_match(match.id)
        assert odds.home_win_probability > 0
        await session.commit()

        async with session_factory() as fresh:
            stored = (
                await fresh.execute(select(MatchOdds).where(MatchOdds.match_id == match.id))
            ).scalar_one()
        assert stored.home_win_probability == 0.0
        assert stored.market_favorite == "draw"

    @pytest.mark.asyncio
    async def test_latest_elo_rating(self, session):
        session.add_all([
            TeamEloRating(team_id=1, elo_rating=1700, rating_date=datetime(2025, 1, 1)),
            TeamEloRating(team_id=1, elo_rating=1750, rating_date=datetime(2025, 3, 1)),
            TeamEloRating(team_id=1, elo_rating=1720, rating_date=datetime(2025, 2, 1)),
        ])
        await session.commit()
        rating = await DbEloProvider(session).get_team_elo(1)
        assert rating.elo_rating == 1750

    @pytest.mark.asyncio
    async def test_injuries(self, session):
        session.add(TeamInjuries(team_id=3, total_injured=4, injury_impact_score=22.5))
        await session.commit()
        provider = DbInjuryProvider(session)
        assert (await provider.get_team_injuries(3)).injury_impact_score == 22.5
        assert await provider.get_team_injuries(4) is None

    @pytest.mark.asyncio
    async def test_lineup_strength_clamped(self, session, factory):
        match = await factory.match(NOW + timedelta(hours=1))
        session.add_all([
            MatchLineup(match_id=match.id, team_id=match.home_team_id, xi_strength=1.3),
            MatchLineup(match_id=match.id, team_id=match.away_team_id, xi_strength=0.7),
        ])
        await session.commit()
        provider = DbLineupProvider(session)

        assert await provider.get_lineup_strength(match.id, match.home_team_id) == 1.0
        assert await provider.get_lineup_strength(match.id, match.away_team_id) == 0.7
        assert await provider.get_lineup_strength(match.id, 9999) is None
