"""Team form computed from stored results, cached per team/competition."""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.clock import Clock, SystemClock
from scoreleague.config import get_settings
from scoreleague.models import FINAL_STATUSES, Match, TeamFormCache
from scoreleague.providers.base import TeamFormProvider

logger = logging.getLogger(__name__)


class TeamFormCalculator(TeamFormProvider):
    """
    Computes recent form from the last N finished matches of a team.

    Results are cached in team_form_cache and reused until they are older
    than FORM_CACHE_TTL_HOURS. Teams without finished matches get a neutral,
    unsaved snapshot (matches_played=0).
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[Clock] = None,
        cache_ttl_hours: Optional[int] = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        if cache_ttl_hours is None:
            cache_ttl_hours = get_settings().FORM_CACHE_TTL_HOURS
        self.cache_ttl = timedelta(hours=cache_ttl_hours)

    async def get_form(
        self, team_id: int, competition_id: int, matches_to_analyze: int = 5
    ) -> Optional[TeamFormCache]:
        now = self.clock.now()

        cached = await self._get_cached(team_id, competition_id, matches_to_analyze)
        if cached is not None and now - cached.calculated_at < self.cache_ttl:
            return cached

        result = await self.session.execute(
            select(Match)
            .where(Match.competition_id == competition_id)
            .where(or_(Match.home_team_id == team_id, Match.away_team_id == team_id))
            .where(Match.status.in_(FINAL_STATUSES))
            .where(Match.home_score.is_not(None))
            .where(Match.away_score.is_not(None))
            .where(Match.kickoff_at < now)
            .order_by(Match.kickoff_at.desc())
            .limit(matches_to_analyze)
        )
        matches = list(result.scalars().all())

        if not matches:
            return TeamFormCache(
                team_id=team_id,
                competition_id=competition_id,
                matches_analyzed=matches_to_analyze,
                calculated_at=now,
            )

        form = cached or TeamFormCache(
            team_id=team_id,
            competition_id=competition_id,
            matches_analyzed=matches_to_analyze,
        )
        self._fill(form, team_id, matches)
        form.calculated_at = now

        self.session.add(form)
        await self.session.flush()

        logger.debug(
            f"[FORM] team={team_id} comp={competition_id} form={form.recent_form} "
            f"ppm={form.points_per_match:.2f} streak={form.current_streak}"
        )
        return form

    async def _get_cached(
        self, team_id: int, competition_id: int, matches_to_analyze: int
    ) -> Optional[TeamFormCache]:
        result = await self.session.execute(
            select(TeamFormCache)
            .where(TeamFormCache.team_id == team_id)
            .where(TeamFormCache.competition_id == competition_id)
            .where(TeamFormCache.matches_analyzed == matches_to_analyze)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _fill(form: TeamFormCache, team_id: int, matches: list[Match]) -> None:
        """Aggregate matches (newest first) into the form snapshot."""
        wins = draws = losses = 0
        scored = conceded = 0
        home_played = home_wins = away_played = away_wins = 0
        letters = []

        for match in matches:
            is_home = match.home_team_id == team_id
            goals_for = match.home_score if is_home else match.away_score
            goals_against = match.away_score if is_home else match.home_score
            scored += goals_for
            conceded += goals_against

            if goals_for > goals_against:
                wins += 1
                letters.append("W")
            elif goals_for == goals_against:
                draws += 1
                letters.append("D")
            else:
                losses += 1
                letters.append("L")

            if is_home:
                home_played += 1
                if goals_for > goals_against:
                    home_wins += 1
            else:
                away_played += 1
                if goals_for > goals_against:
                    away_wins += 1

        played = len(matches)
        form.matches_played = played
        form.wins, form.draws, form.losses = wins, draws, losses
        form.goals_scored, form.goals_conceded = scored, conceded
        form.home_matches_played, form.home_wins = home_played, home_wins
        form.away_matches_played, form.away_wins = away_played, away_wins

        form.points_per_match = (wins * 3 + draws) / played
        form.goals_per_match = scored / played
        form.goals_conceded_per_match = conceded / played
        form.home_win_rate = home_wins / home_played if home_played else 0.45
        form.away_win_rate = away_wins / away_played if away_played else 0.30
        form.recent_form = "".join(letters)
        form.current_streak = _signed_streak(letters)
        form.last_match_date = matches[0].kickoff_at


def _signed_streak(letters: list[str]) -> int:
    """+N for N straight wins, -N for N straight losses (newest first); draws end it."""
    if not letters or letters[0] == "D":
        return 0
    first = letters[0]
    count = 0
    for letter in letters:
        if letter != first:
            break
        count += 1
    return count if first == "W" else -count
