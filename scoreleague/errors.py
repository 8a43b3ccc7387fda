"""Explicit success/failure results for league operations.

Operations exposed by the core never raise for expected business conditions;
they return a Result carrying either a value or an ErrorKind.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_A_LEAGUE_MEMBER = "NotALeagueMember"
    DEADLINE_PASSED = "DeadlinePassed"
    MATCH_ALREADY_STARTED = "MatchAlreadyStarted"
    BET_NOT_FOUND = "BetNotFound"
    NOT_BET_OWNER = "NotBetOwner"
    MATCH_NOT_FOUND = "MatchNotFound"
    MATCH_NOT_FINALIZED = "MatchNotFinalized"
    INVALID_PREDICTION = "InvalidPrediction"
    USER_NOT_FOUND = "UserNotFound"
    LEAGUE_NOT_FOUND = "LeagueNotFound"
    MATCH_NOT_ALLOWED = "MatchNotAllowed"
    BOT_NOT_FOUND = "BotNotFound"
    BOT_NAME_TAKEN = "BotNameTaken"
    INVALID_STRATEGY = "InvalidStrategy"


DEFAULT_MESSAGES = {
    ErrorKind.NOT_A_LEAGUE_MEMBER: "You are not a member of this league",
    ErrorKind.DEADLINE_PASSED: "Betting deadline has passed for this match",
    ErrorKind.MATCH_ALREADY_STARTED: "Match has already started",
    ErrorKind.BET_NOT_FOUND: "Bet not found",
    ErrorKind.NOT_BET_OWNER: "You can only modify your own bets",
    ErrorKind.MATCH_NOT_FOUND: "Match not found",
    ErrorKind.MATCH_NOT_FINALIZED: "Match does not have final scores yet",
    ErrorKind.INVALID_PREDICTION: "Predicted scores must be non-negative integers",
    ErrorKind.USER_NOT_FOUND: "User not found in this league",
    ErrorKind.LEAGUE_NOT_FOUND: "League not found",
    ErrorKind.MATCH_NOT_ALLOWED: "This league does not accept bets on this competition",
    ErrorKind.BOT_NOT_FOUND: "Bot not found",
    ErrorKind.BOT_NAME_TAKEN: "A bot or user with this name already exists",
    ErrorKind.INVALID_STRATEGY: "Unknown prediction strategy",
}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation: a value on success, an error kind on failure."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: Optional[str] = None) -> "Result":
        return cls(error=error, message=message or DEFAULT_MESSAGES.get(error, error.value))
