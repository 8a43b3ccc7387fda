"""Database models using SQLModel."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from scoreleague.clock import utcnow


class MatchStatus(str, Enum):
    """Lifecycle status of a fixture (values stored as-is in matches.status)."""

    SCHEDULED = "SCHEDULED"
    TIMED = "TIMED"
    IN_PLAY = "IN_PLAY"
    PAUSED = "PAUSED"
    EXTRA_TIME = "EXTRA_TIME"
    PENALTY_SHOOTOUT = "PENALTY_SHOOTOUT"
    FINISHED = "FINISHED"
    POSTPONED = "POSTPONED"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"
    AWARDED = "AWARDED"


PRE_KICKOFF_STATUSES = (MatchStatus.SCHEDULED.value, MatchStatus.TIMED.value)
FINAL_STATUSES = (MatchStatus.FINISHED.value, MatchStatus.AWARDED.value)


def betting_deadline(kickoff_at: datetime, deadline_minutes: int) -> datetime:
    """Instant after which bets on a match are locked for a league."""
    return kickoff_at - timedelta(minutes=deadline_minutes)


def is_deadline_passed(kickoff_at: datetime, deadline_minutes: int, now: datetime) -> bool:
    return now > betting_deadline(kickoff_at, deadline_minutes)


class User(SQLModel, table=True):
    """Platform user (human or bot). Authentication lives outside this service."""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=100, unique=True, index=True)
    email: Optional[str] = Field(default=None, max_length=255)
    is_bot: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    external_id: Optional[int] = Field(default=None, index=True, description="Provider team ID")
    name: str = Field(max_length=255)
    short_name: Optional[str] = Field(default=None, max_length=50)


class Match(SQLModel, table=True):
    """Fixture synced from the football data provider."""

    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    external_id: Optional[int] = Field(default=None, index=True, description="Provider fixture ID")
    competition_id: int = Field(index=True)
    season: Optional[int] = Field(default=None)
    matchday: Optional[int] = Field(default=None)

    home_team_id: int = Field(foreign_key="teams.id", index=True)
    away_team_id: int = Field(foreign_key="teams.id", index=True)

    kickoff_at: datetime = Field(index=True, description="Scheduled kickoff (UTC)", sa_type=DateTime)
    status: str = Field(max_length=20, default=MatchStatus.SCHEDULED.value, index=True)

    home_score: Optional[int] = Field(default=None, description="NULL until final")
    away_score: Optional[int] = Field(default=None, description="NULL until final")
    half_time_home_score: Optional[int] = Field(default=None)
    half_time_away_score: Optional[int] = Field(default=None)

    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    @property
    def is_pre_kickoff(self) -> bool:
        return self.status in PRE_KICKOFF_STATUSES

    @property
    def has_final_score(self) -> bool:
        return (
            self.status in FINAL_STATUSES
            and self.home_score is not None
            and self.away_score is not None
        )

    def is_open_for_betting(self, deadline_minutes: int, now: datetime) -> bool:
        return self.is_pre_kickoff and not is_deadline_passed(self.kickoff_at, deadline_minutes, now)


class League(SQLModel, table=True):
    """Private or public prediction league with its own scoring rule."""

    __tablename__ = "leagues"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    owner_id: int = Field(foreign_key="users.id", index=True)
    max_members: int = Field(default=255)
    is_public: bool = Field(default=False)

    points_exact_match: int = Field(default=3)
    points_correct_result: int = Field(default=1)
    betting_deadline_minutes: int = Field(default=5)

    # NULL = every competition accepted
    allowed_competition_ids: Optional[list] = Field(default=None, sa_column=Column(JSON))
    bots_enabled: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def can_accept_bet(self, competition_id: int) -> bool:
        if not self.allowed_competition_ids:
            return True
        return competition_id in self.allowed_competition_ids


class LeagueMember(SQLModel, table=True):
    """Current membership. Kicked or departed members have no row."""

    __tablename__ = "league_members"
    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_league_member"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    role: str = Field(max_length=20, default="member", description="'owner' or 'member'")
    joined_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Bet(SQLModel, table=True):
    """A member's score prediction for one match in one league."""

    __tablename__ = "bets"
    __table_args__ = (
        UniqueConstraint("league_id", "user_id", "match_id", name="uq_bet_league_user_match"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    match_id: int = Field(foreign_key="matches.id", index=True)

    predicted_home_score: int
    predicted_away_score: int

    placed_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    last_updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime)


class BetResult(SQLModel, table=True):
    """Points earned by a bet once its match is final."""

    __tablename__ = "bet_results"

    id: Optional[int] = Field(default=None, primary_key=True)
    bet_id: int = Field(foreign_key="bets.id", unique=True, index=True)
    points_earned: int = Field(default=0)
    is_exact_match: bool = Field(default=False)
    is_correct_result: bool = Field(default=False)
    calculated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class LeagueStanding(SQLModel, table=True):
    """Aggregate scoring record of one member in one league."""

    __tablename__ = "league_standings"
    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_standing_league_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    total_points: int = Field(default=0)
    bets_placed: int = Field(default=0)
    exact_matches: int = Field(default=0)
    correct_results: int = Field(default=0)
    current_streak: int = Field(default=0, description="Consecutive scoring bets")
    best_streak: int = Field(default=0)

    last_updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def apply_bet_result(
        self,
        points: int,
        is_exact: bool,
        is_correct: bool,
        at: Optional[datetime] = None,
    ) -> None:
        self.total_points += points
        self.bets_placed += 1
        if is_exact:
            self.exact_matches += 1
        if is_correct:
            self.correct_results += 1

        if points > 0:
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
        else:
            self.current_streak = 0

        self.last_updated_at = at or utcnow()

    def reset(self, at: Optional[datetime] = None) -> None:
        self.total_points = 0
        self.bets_placed = 0
        self.exact_matches = 0
        self.correct_results = 0
        self.current_streak = 0
        self.best_streak = 0
        self.last_updated_at = at or utcnow()


class Bot(SQLModel, table=True):
    """Automated participant. Bets under its own user account."""

    __tablename__ = "bots"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    name: str = Field(max_length=50)
    strategy: str = Field(max_length=50, default="random", description="Strategy identifier")
    configuration: Optional[dict] = Field(
        default=None, sa_column=Column(JSON), description="Strategy-specific parameters"
    )
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    last_bet_placed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)


# ═══════════════════════════════════════════════════════════════
# Statistical signal snapshots (written by ingestion, read-only here)
# ═══════════════════════════════════════════════════════════════


class TeamFormCache(SQLModel, table=True):
    """Recent form of a team in a competition, computed from finished matches."""

    __tablename__ = "team_form_cache"
    __table_args__ = (
        UniqueConstraint("team_id", "competition_id", "matches_analyzed", name="uq_form_team_comp_n"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(index=True)
    competition_id: int = Field(index=True)
    matches_analyzed: int = Field(default=5)

    matches_played: int = Field(default=0)
    wins: int = Field(default=0)
    draws: int = Field(default=0)
    losses: int = Field(default=0)
    goals_scored: int = Field(default=0)
    goals_conceded: int = Field(default=0)
    home_matches_played: int = Field(default=0)
    home_wins: int = Field(default=0)
    away_matches_played: int = Field(default=0)
    away_wins: int = Field(default=0)

    points_per_match: float = Field(default=1.0)
    goals_per_match: float = Field(default=1.5)
    goals_conceded_per_match: float = Field(default=1.5)
    home_win_rate: float = Field(default=0.45)
    away_win_rate: float = Field(default=0.30)
    current_streak: int = Field(default=0, description="+N wins / -N losses in a row")
    recent_form: str = Field(default="", max_length=20, description="e.g. 'WWDLW' newest first")

    last_match_date: Optional[datetime] = Field(default=None, sa_type=DateTime)
    calculated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def form_score(self) -> float:
        """0-100 score from points per match (50 = neutral)."""
        if self.matches_played == 0:
            return 50.0
        return (self.points_per_match / 3.0) * 100

    def home_strength(self) -> float:
        if self.home_matches_played == 0:
            return 0.5
        return self.home_win_rate

    def away_strength(self) -> float:
        if self.away_matches_played == 0:
            return 0.3
        return self.away_win_rate


class TeamXgStats(SQLModel, table=True):
    __tablename__ = "team_xg_stats"
    __table_args__ = (
        UniqueConstraint("team_id", "competition_id", "season", name="uq_xg_team_comp_season"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(index=True)
    competition_id: int = Field(index=True)
    season: str = Field(max_length=10)
    matches_played: int = Field(default=0)
    xg_per_match: float = Field(default=0.0)
    xg_against_per_match: float = Field(default=0.0)
    xg_overperformance: float = Field(default=0.0, description="goals - xG per match")
    synced_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class MatchOdds(SQLModel, table=True):
    """1X2 market odds for a match with derived implied probabilities."""

    __tablename__ = "match_odds"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="matches.id", unique=True, index=True)

    home_win_odds: float
    draw_odds: float
    away_win_odds: float

    home_win_probability: float = Field(default=0.0)
    draw_probability: float = Field(default=0.0)
    away_win_probability: float = Field(default=0.0)
    market_favorite: str = Field(default="draw", max_length=10, description="'home', 'draw' or 'away'")
    favorite_confidence: float = Field(default=0.0)

    source: str = Field(default="football-data.co.uk", max_length=50)
    imported_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def calculate_probabilities(self) -> None:
        """Proportional de-vig of decimal odds, then pick the market favorite."""
        implied = [
            1 / odds if odds and odds > 0 else 0.0
            for odds in (self.home_win_odds, self.draw_odds, self.away_win_odds)
        ]
        total = sum(implied)
        if total <= 0:
            self.home_win_probability = 0.0
            self.draw_probability = 0.0
            self.away_win_probability = 0.0
            self.market_favorite = "draw"
            self.favorite_confidence = 0.0
            return

        home, draw, away = (p / total for p in implied)
        self.home_win_probability = home
        self.draw_probability = draw
        self.away_win_probability = away

        if home >= draw and home >= away:
            self.market_favorite, self.favorite_confidence = "home", home
        elif away >= draw:
            self.market_favorite, self.favorite_confidence = "away", away
        else:
            self.market_favorite, self.favorite_confidence = "draw", draw


class TeamInjuries(SQLModel, table=True):
    __tablename__ = "team_injuries"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(unique=True, index=True)
    total_injured: int = Field(default=0)
    total_suspended: int = Field(default=0)
    key_players_out: int = Field(default=0)
    injury_impact_score: float = Field(default=0.0, description="0-100, share of squad value missing")
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class TeamEloRating(SQLModel, table=True):
    __tablename__ = "team_elo_ratings"
    __table_args__ = (
        UniqueConstraint("team_id", "rating_date", name="uq_elo_team_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(index=True)
    elo_rating: float
    elo_rank: Optional[int] = Field(default=None)
    rating_date: datetime = Field(index=True, sa_type=DateTime)
    synced_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class MatchLineup(SQLModel, table=True):
    """Confirmed starting XI strength relative to the team's usual XI."""

    __tablename__ = "match_lineups"
    __table_args__ = (
        UniqueConstraint("match_id", "team_id", name="uq_lineup_match_team"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="matches.id", index=True)
    team_id: int = Field(index=True)
    xi_strength: float = Field(default=1.0, description="0-1 share of usual XI starting")
    detected_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


# ═══════════════════════════════════════════════════════════════
# Operations
# ═══════════════════════════════════════════════════════════════


class IntegrationStatus(SQLModel, table=True):
    """Health of an external data integration (one row per integration)."""

    __tablename__ = "integration_statuses"

    id: Optional[int] = Field(default=None, primary_key=True)
    integration_name: str = Field(max_length=50, unique=True, index=True)
    health: str = Field(max_length=20, default="unknown", description="unknown, healthy, degraded, failed, disabled")
    consecutive_failures: int = Field(default=0)
    last_success_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    last_failure_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    last_error: Optional[str] = Field(default=None, max_length=500)
    last_sync_duration_ms: Optional[int] = Field(default=None)
    stale_after_hours: float = Field(default=24.0)

    is_manually_disabled: bool = Field(default=False)
    disabled_reason: Optional[str] = Field(default=None, max_length=255)
    disabled_by: Optional[str] = Field(default=None, max_length=100)
    disabled_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    @property
    def is_operational(self) -> bool:
        return not self.is_manually_disabled and self.health in ("healthy", "degraded")

    def is_data_stale(self, now: datetime) -> bool:
        if self.last_success_at is None:
            return True
        return now - self.last_success_at > timedelta(hours=self.stale_after_hours)


class JobRun(SQLModel, table=True):
    """Execution record of a scheduled or dispatched job."""

    __tablename__ = "job_runs"

    id: Optional[int] = Field(default=None, primary_key=True)
    job_name: str = Field(max_length=100, index=True)
    status: str = Field(max_length=20, description="ok, error")
    started_at: datetime = Field(sa_type=DateTime)
    finished_at: datetime = Field(sa_type=DateTime)
    duration_ms: int = Field(default=0)
    error_message: Optional[str] = Field(default=None, max_length=500)
    metrics: Optional[dict] = Field(default=None, sa_column=Column(JSON))
