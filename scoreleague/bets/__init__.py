"""Bet lifecycle, result scoring and league standings."""

from scoreleague.bets.lifecycle import BetService, BetView
from scoreleague.bets.results import BetResultCalculator, score_bet
from scoreleague.bets.standings import StandingEntry, StandingsService

__all__ = [
    "BetResultCalculator",
    "BetService",
    "BetView",
    "StandingEntry",
    "StandingsService",
    "score_bet",
]
