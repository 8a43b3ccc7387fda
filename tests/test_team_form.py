"""
Tests for team form computed from stored results.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from scoreleague.models import TeamFormCache
from scoreleague.providers.form import TeamFormCalculator, _signed_streak
from tests.conftest import COMPETITION_ID, NOW


class TestSignedStreak:
    def test_wins_positive_losses_negative(self):
        assert _signed_streak(list("WWLW")) == 2
        assert _signed_streak(list("LLLW")) == -3

    def test_draw_breaks_streak(self):
        assert _signed_streak(list("DWW")) == 0
        assert _signed_streak([]) == 0


class TestTeamFormCalculator:
    async def _results(self, factory):
        """Newest first from the team's view: W (home 3-1), D (away 1-1), L (home 0-2), W (away 0-1)."""
        team = await factory.team("Subject")
        rival = await factory.team("Rival")
        await factory.finished_match(NOW - timedelta(days=1), 3, 1, home=team, away=rival)
        await factory.finished_match(NOW - timedelta(days=8), 1, 1, home=rival, away=team)
        await factory.finished_match(NOW - timedelta(days=15), 0, 2, home=team, away=rival)
        await factory.finished_match(NOW - timedelta(days=22), 0, 1, home=rival, away=team)
        return team

    @pytest.mark.asyncio
    async def test_aggregates_recent_matches(self, session, factory, clock):
        team = await self._results(factory)

        form = await TeamFormCalculator(session, clock).get_form(team.id, COMPETITION_ID, 5)

        assert form.matches_played == 4
        assert (form.wins, form.draws, form.losses) == (2, 1, 1)
        assert form.recent_form == "WDLW"
        assert form.current_streak == 1
        assert form.points_per_match == pytest.approx(7 / 4)
        assert form.goals_per_match == pytest.approx(5 / 4)
        assert form.goals_conceded_per_match == pytest.approx(4 / 4)
        assert (form.home_matches_played, form.home_wins) == (2, 1)
        assert form.home_win_rate == pytest.approx(0.5)
        assert form.away_win_rate == pytest.approx(0.5)
        assert form.last_match_date == NOW - timedelta(days=1)

    @pytest.mark.asyncio
    async def test_window_limits_matches(self, session, factory, clock):
        team = await self._results(factory)
        form = await TeamFormCalculator(session, clock).get_form(team.id, COMPETITION_ID, 2)
        assert form.matches_played == 2
        assert form.recent_form == "WD"

    @pytest.mark.asyncio
    async def test_other_competitions_ignored(self, session, factory, clock):
        team = await self._results(factory)
        form = await TeamFormCalculator(session, clock).get_form(team.id, 9999, 5)
        assert form.matches_played == 0
        assert form.form_score() == 50.0

    @pytest.mark.asyncio
    async def test_neutral_snapshot_not_saved(self, session, factory, clock):
        team = await factory.team()
        form = await TeamFormCalculator(session, clock).get_form(team.id, COMPETITION_ID)
        assert form.points_per_match == 1.0
        assert form.home_strength() == 0.5
        rows = (await session.execute(select(TeamFormCache))).scalars().all()
        assert rows == []

    @pytest.mark.asyncio
    async def test_cache_reused_within_ttl(self, session, factory, clock):
        team = await self._results(factory)
        calculator = TeamFormCalculator(session, clock, cache_ttl_hours=6)
        first = await calculator.get_form(team.id, COMPETITION_ID)
        await session.commit()

        rival = await factory.team()
        await factory.finished_match(NOW - timedelta(hours=1), 0, 5, home=team, away=rival)
        clock.advance(hours=2)
        cached = await calculator.get_form(team.id, COMPETITION_ID)

        assert cached.id == first.id
        assert cached.recent_form == "WDLW"

    @pytest.mark.asyncio
    async def test_cache_refreshed_after_ttl(self, session, factory, clock):
        team = await self._results(factory)
        calculator = TeamFormCalculator(session, clock, cache_ttl_hours=6)
        first = await calculator.get_form(team.id, COMPETITION_ID)
        await session.commit()

        rival = await factory.team()
        await factory.finished_match(NOW + timedelta(hours=1), 0, 5, home=team, away=rival)
        clock.advance(hours=7)
        refreshed = await calculator.get_form(team.id, COMPETITION_ID)

        assert refreshed.id == first.id
        assert refreshed.recent_form == "LWDLW"
        assert refreshed.current_streak == -1
        assert refreshed.calculated_at == NOW + timedelta(hours=7)
