"""Shared fixtures: in-memory database, pinned clock, seeded RNG and row factories."""

import random
from datetime import datetime, timedelta
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from scoreleague import models  # noqa: F401
from scoreleague.clock import FixedClock
from scoreleague.jobs.queue import JobDispatcher
from scoreleague.models import (
    Bet,
    BetResult,
    Bot,
    League,
    LeagueMember,
    Match,
    MatchStatus,
    Team,
    User,
)

NOW = datetime(2025, 3, 15, 12, 0, 0)
COMPETITION_ID = 2021


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def rng():
    return random.Random(42)


class RecordingDispatcher(JobDispatcher):
    """Collects enqueued jobs instead of running them."""

    def __init__(self):
        self.jobs = []

    async def enqueue(self, job_name, payload):
        self.jobs.append((job_name, payload))
        return True


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


class Factory:
    """Inserts committed rows with sensible defaults."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._teams = 0

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def user(self, username: str, is_bot: bool = False) -> User:
        return await self._save(User(username=username, is_bot=is_bot, created_at=NOW))

    async def team(self, name: Optional[str] = None) -> Team:
        self._teams += 1
        return await self._save(Team(name=name or f"Team {self._teams}"))

    async def match(
        self,
        kickoff_at: datetime,
        home: Optional[Team] = None,
        away: Optional[Team] = None,
        competition_id: int = COMPETITION_ID,
        status: str = MatchStatus.SCHEDULED.value,
        home_score: Optional[int] = None,
        away_score: Optional[int] = None,
        matchday: Optional[int] = None,
    ) -> Match:
        home = home or await self.team()
        away = away or await self.team()
        return await self._save(
            Match(
                competition_id=competition_id,
                home_team_id=home.id,
                away_team_id=away.id,
                kickoff_at=kickoff_at,
                status=status,
                home_score=home_score,
                away_score=away_score,
                matchday=matchday,
            )
        )

    async def finished_match(self, kickoff_at: datetime, home_score: int, away_score: int, **kwargs) -> Match:
        return await self.match(
            kickoff_at,
            status=MatchStatus.FINISHED.value,
            home_score=home_score,
            away_score=away_score,
            **kwargs,
        )

    async def league(self, owner: User, **kwargs) -> League:
        league = await self._save(League(name=kwargs.pop("name", "Office League"), owner_id=owner.id, **kwargs))
        await self.member(league, owner, role="owner")
        return league

    async def member(self, league: League, user: User, role: str = "member") -> LeagueMember:
        return await self._save(LeagueMember(league_id=league.id, user_id=user.id, role=role, joined_at=NOW))

    async def bot(
        self,
        name: str,
        strategy: str = "random",
        configuration: Optional[dict] = None,
        is_active: bool = True,
        league: Optional[League] = None,
    ) -> Bot:
        user = await self.user(f"bot_{name}", is_bot=True)
        bot = await self._save(
            Bot(user_id=user.id, name=name, strategy=strategy, configuration=configuration, is_active=is_active)
        )
        if league is not None:
            await self.member(league, user)
        return bot

    async def bet(self, league: League, user: User, match: Match, home: int, away: int) -> Bet:
        return await self._save(
            Bet(
                league_id=league.id,
                user_id=user.id,
                match_id=match.id,
                predicted_home_score=home,
                predicted_away_score=away,
                placed_at=match.kickoff_at - timedelta(days=1),
            )
        )

    async def bet_result(self, bet: Bet, points: int, exact: bool, correct: bool) -> BetResult:
        return await self._save(
            BetResult(
                bet_id=bet.id,
                points_earned=points,
                is_exact_match=exact,
                is_correct_result=correct,
                calculated_at=NOW,
            )
        )


@pytest.fixture
def factory(session):
    return Factory(session)
