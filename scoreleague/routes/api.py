"""League API: bets, standings, member stats, admin triggers and bot management.

Auth: caller identity from the gateway header on member endpoints,
verify_api_key on /admin/*.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from scoreleague.bets.lifecycle import BetService, BetView
from scoreleague.bets.results import BetResultCalculator
from scoreleague.bets.standings import StandingEntry, StandingsService
from scoreleague.bots.config import get_configuration_presets
from scoreleague.bots.management import BotService, BotStats
from scoreleague.config import get_settings
from scoreleague.database import get_async_session
from scoreleague.errors import ErrorKind, Result
from scoreleague.jobs.queue import get_job_queue
from scoreleague.models import Bot
from scoreleague.scheduler import run_bot_betting
from scoreleague.security import get_current_user_id, limiter, verify_api_key

router = APIRouter(tags=["leagues"])

logger = logging.getLogger(__name__)
settings = get_settings()

ERROR_STATUS = {
    ErrorKind.LEAGUE_NOT_FOUND: 404,
    ErrorKind.MATCH_NOT_FOUND: 404,
    ErrorKind.BET_NOT_FOUND: 404,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.BOT_NOT_FOUND: 404,
    ErrorKind.NOT_A_LEAGUE_MEMBER: 403,
    ErrorKind.NOT_BET_OWNER: 403,
    ErrorKind.DEADLINE_PASSED: 409,
    ErrorKind.MATCH_ALREADY_STARTED: 409,
    ErrorKind.MATCH_NOT_FINALIZED: 409,
    ErrorKind.BOT_NAME_TAKEN: 409,
    ErrorKind.MATCH_NOT_ALLOWED: 422,
    ErrorKind.INVALID_PREDICTION: 422,
    ErrorKind.INVALID_STRATEGY: 422,
}


def _unwrap(result: Result):
    """Return the value of a successful Result or raise the mapped HTTP error."""
    if result.is_success:
        return result.value
    raise HTTPException(
        status_code=ERROR_STATUS.get(result.error, 400),
        detail={"error": result.error.value, "message": result.message},
    )


# ═══════════════════════════════════════════════════════════════
# Schemas
# ═══════════════════════════════════════════════════════════════


class PlaceBetRequest(BaseModel):
    home_score: int
    away_score: int


class BetResultResponse(BaseModel):
    points_earned: int
    is_exact_match: bool
    is_correct_result: bool
    calculated_at: datetime


class BetResponse(BaseModel):
    id: int
    league_id: int
    user_id: int
    match_id: int
    predicted_home_score: int
    predicted_away_score: int
    placed_at: datetime
    last_updated_at: Optional[datetime] = None
    kickoff_at: Optional[datetime] = None
    match_status: Optional[str] = None
    result: Optional[BetResultResponse] = None

    @classmethod
    def from_view(cls, view: BetView) -> "BetResponse":
        bet, match, res = view.bet, view.match, view.result
        return cls(
            id=bet.id,
            league_id=bet.league_id,
            user_id=bet.user_id,
            match_id=bet.match_id,
            predicted_home_score=bet.predicted_home_score,
            predicted_away_score=bet.predicted_away_score,
            placed_at=bet.placed_at,
            last_updated_at=bet.last_updated_at,
            kickoff_at=match.kickoff_at if match else None,
            match_status=match.status if match else None,
            result=BetResultResponse(
                points_earned=res.points_earned,
                is_exact_match=res.is_exact_match,
                is_correct_result=res.is_correct_result,
                calculated_at=res.calculated_at,
            ) if res else None,
        )


class StandingResponse(BaseModel):
    rank: int
    user_id: int
    username: str
    is_bot: bool
    total_points: int
    bets_placed: int
    exact_matches: int
    correct_results: int
    current_streak: int
    best_streak: int
    accuracy: float

    @classmethod
    def from_entry(cls, entry: StandingEntry) -> "StandingResponse":
        return cls(
            rank=entry.rank,
            user_id=entry.user_id,
            username=entry.username,
            is_bot=entry.is_bot,
            total_points=entry.total_points,
            bets_placed=entry.bets_placed,
            exact_matches=entry.exact_matches,
            correct_results=entry.correct_results,
            current_streak=entry.current_streak,
            best_streak=entry.best_streak,
            accuracy=entry.accuracy,
        )


class RecalculateStandingsRequest(BaseModel):
    league_ids: list[int] = Field(min_length=1)


class CreateBotRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    strategy: str
    configuration: Optional[dict] = None


class UpdateBotRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=50)
    strategy: Optional[str] = None
    configuration: Optional[dict] = None
    is_active: Optional[bool] = None


class BotStatsResponse(BaseModel):
    total_bets_placed: int
    leagues_joined: int
    average_points_per_bet: float
    exact_predictions: int
    correct_results: int


class BotResponse(BaseModel):
    id: int
    user_id: int
    name: str
    strategy: str
    configuration: Optional[dict] = None
    is_active: bool
    created_at: datetime
    last_bet_placed_at: Optional[datetime] = None
    stats: Optional[BotStatsResponse] = None

    @classmethod
    def from_bot(cls, bot: Bot, stats: Optional[BotStats] = None) -> "BotResponse":
        return cls(
            id=bot.id,
            user_id=bot.user_id,
            name=bot.name,
            strategy=bot.strategy,
            configuration=bot.configuration,
            is_active=bot.is_active,
            created_at=bot.created_at,
            last_bet_placed_at=bot.last_bet_placed_at,
            stats=BotStatsResponse(**asdict(stats)) if stats else None,
        )


# ═══════════════════════════════════════════════════════════════
# Member endpoints
# ═══════════════════════════════════════════════════════════════


@router.put("/leagues/{league_id}/matches/{match_id}/bet", response_model=BetResponse)
@limiter.limit(settings.RATE_LIMIT_PER_MINUTE)
async def place_bet(
    request: Request,
    league_id: int,
    match_id: int,
    body: PlaceBetRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_async_session),
):
    """Place or overwrite the caller's bet on a match."""
    bet = _unwrap(
        await BetService(session).place_bet(
            league_id, user_id, match_id, body.home_score, body.away_score
        )
    )
    return BetResponse.from_view(BetView(bet=bet, match=None))


@router.delete("/leagues/{league_id}/bets/{bet_id}", status_code=204)
@limiter.limit(settings.RATE_LIMIT_PER_MINUTE)
async def delete_bet(
    request: Request,
    league_id: int,
    bet_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_async_session),
):
    _unwrap(await BetService(session).delete_bet(league_id, bet_id, user_id))


@router.get("/leagues/{league_id}/bets/me", response_model=list[BetResponse])
async def get_my_bets(
    league_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_async_session),
):
    views = _unwrap(await BetService(session).get_my_bets(league_id, user_id))
    return [BetResponse.from_view(v) for v in views]


@router.get("/leagues/{league_id}/matches/{match_id}/bets", response_model=list[BetResponse])
async def get_match_bets(
    league_id: int,
    match_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_async_session),
):
    """League bets on a match; empty until the betting deadline has passed."""
    views = _unwrap(await BetService(session).get_match_bets(league_id, match_id, user_id))
    return [BetResponse.from_view(v) for v in views]


@router.get("/leagues/{league_id}/standings", response_model=list[StandingResponse])
async def get_standings(
    league_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_async_session),
):
    entries = _unwrap(await StandingsService(session).get_standings(league_id, user_id))
    return [StandingResponse.from_entry(e) for e in entries]


@router.get("/leagues/{league_id}/members/{member_id}/stats", response_model=StandingResponse)
async def get_member_stats(
    league_id: int,
    member_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_async_session),
):
    entry = _unwrap(await StandingsService(session).get_member_stats(league_id, user_id, member_id))
    return StandingResponse.from_entry(entry)


# ═══════════════════════════════════════════════════════════════
# Admin triggers
# ═══════════════════════════════════════════════════════════════


@router.post("/admin/matches/{match_id}/calculate-results", dependencies=[Depends(verify_api_key)])
async def calculate_results(
    match_id: int,
    competition_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_async_session),
):
    """Score all bets on a finished match and queue standings recomputes."""
    calculator = BetResultCalculator(session, dispatcher=get_job_queue())
    summary = _unwrap(await calculator.calculate_bet_results(match_id, competition_id))
    return {
        "match_id": summary.match_id,
        "bets_scored": summary.bets_scored,
        "new_results": summary.new_results,
        "changed_results": summary.changed_results,
        "league_ids": summary.league_ids,
    }


@router.post("/admin/bet-results/sweep", dependencies=[Depends(verify_api_key)])
async def sweep_pending_results(session: AsyncSession = Depends(get_async_session)):
    calculator = BetResultCalculator(session, dispatcher=get_job_queue())
    return await calculator.calculate_pending_bet_results()


@router.post("/admin/standings/recalculate", dependencies=[Depends(verify_api_key)])
async def recalculate_standings(
    body: RecalculateStandingsRequest,
    session: AsyncSession = Depends(get_async_session),
):
    service = StandingsService(session)
    recalculated, missing = {}, []
    for league_id in body.league_ids:
        result = await service.recalculate_league(league_id)
        if result.is_success:
            recalculated[league_id] = result.value
        else:
            missing.append(league_id)
    logger.info(f"[ADMIN] Standings recalculated: {recalculated}, not found: {missing}")
    return {"recalculated": recalculated, "not_found": missing}


@router.post("/admin/bots/run", dependencies=[Depends(verify_api_key)])
async def trigger_bot_run():
    """Run the bot betting pass now (skipped if one is already running)."""
    return await run_bot_betting(job_name="bot_betting_manual")


# ═══════════════════════════════════════════════════════════════
# Bot management
# ═══════════════════════════════════════════════════════════════


@router.get("/admin/bots/presets", dependencies=[Depends(verify_api_key)])
async def get_bot_presets():
    """Named stats analyst configurations a bot can be created from."""
    return get_configuration_presets()


@router.get("/admin/bots", response_model=list[BotResponse], dependencies=[Depends(verify_api_key)])
async def list_bots(
    include_inactive: bool = Query(default=False),
    strategy: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_async_session),
):
    views = _unwrap(await BotService(session).get_bots(include_inactive, strategy))
    return [BotResponse.from_bot(v.bot, v.stats) for v in views]


@router.post("/admin/bots", response_model=BotResponse, status_code=201, dependencies=[Depends(verify_api_key)])
async def create_bot(body: CreateBotRequest, session: AsyncSession = Depends(get_async_session)):
    bot = _unwrap(await BotService(session).create_bot(body.name, body.strategy, body.configuration))
    return BotResponse.from_bot(bot)


@router.patch("/admin/bots/{bot_id}", response_model=BotResponse, dependencies=[Depends(verify_api_key)])
async def update_bot(
    bot_id: int,
    body: UpdateBotRequest,
    session: AsyncSession = Depends(get_async_session),
):
    bot = _unwrap(
        await BotService(session).update_bot(
            bot_id,
            name=body.name,
            strategy=body.strategy,
            configuration=body.configuration,
            is_active=body.is_active,
        )
    )
    return BotResponse.from_bot(bot)
