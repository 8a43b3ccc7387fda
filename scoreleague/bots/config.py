"""Typed bot strategy configuration.

A bot row stores its strategy identifier plus an optional JSON blob. The blob
is validated into one member of the StrategyConfig union, selected by the
strategy kind. Stats analyst blobs may name a profile and override fields:

    {"profile": "form_focused", "random_variance": 0.2}
"""

import logging
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class StrategyKind(str, Enum):
    RANDOM = "random"
    HOME_FAVORER = "home_favorer"
    UNDERDOG_SUPPORTER = "underdog_supporter"
    DRAW_PREDICTOR = "draw_predictor"
    HIGH_SCORER = "high_scorer"
    STATS_ANALYST = "stats_analyst"
    MACHINE_LEARNING = "machine_learning"
    FALLBACK = "fallback"

    @classmethod
    def lookup(cls, value: Optional[str]) -> Optional["StrategyKind"]:
        """Exact kind for an identifier (case, dashes and spaces normalized), else None."""
        if not value:
            return None
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            return None

    @classmethod
    def parse(cls, value: Optional[str]) -> "StrategyKind":
        """Resolve an identifier; unknown or empty identifiers map to RANDOM."""
        kind = cls.lookup(value)
        if kind is not None:
            return kind
        logger.warning(f"Unknown strategy '{value}', using random")
        return cls.RANDOM


class PredictionStyle(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    BOLD = "bold"


# (min_goals, max_goals) per style
STYLE_RANGES = {
    PredictionStyle.CONSERVATIVE: (0, 2),
    PredictionStyle.MODERATE: (0, 4),
    PredictionStyle.BOLD: (1, 5),
}


class RiskProfile(str, Enum):
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class BasicStrategyConfig(BaseModel):
    """Strategies without tunable parameters."""

    strategy: Literal[
        "random",
        "home_favorer",
        "underdog_supporter",
        "draw_predictor",
        "high_scorer",
        "fallback",
    ] = "random"


class StatsAnalystConfig(BaseModel):
    """Signal weights and output envelope for the stats analyst."""

    strategy: Literal["stats_analyst"] = "stats_analyst"

    # Signal weights (relative, need not sum to 1)
    form_weight: float = Field(default=0.35, ge=0)
    home_advantage_weight: float = Field(default=0.25, ge=0)
    goal_trend_weight: float = Field(default=0.25, ge=0)
    streak_weight: float = Field(default=0.15, ge=0)
    lineup_weight: float = Field(default=0.0, ge=0)
    xg_weight: float = Field(default=0.0, ge=0)
    xg_defensive_weight: float = Field(default=0.0, ge=0)
    odds_weight: float = Field(default=0.0, ge=0)
    injury_weight: float = Field(default=0.0, ge=0)
    elo_weight: float = Field(default=0.0, ge=0)

    # Per-bot opt-outs, applied on top of integration health
    use_xg_data: bool = True
    use_odds_data: bool = True
    use_injury_data: bool = True
    use_lineup_data: bool = True
    use_elo_data: bool = True

    matches_analyzed: int = Field(default=5, ge=1, le=20)
    high_stakes_boost: bool = True
    late_season_matchday: int = Field(default=30, ge=1)
    style: PredictionStyle = PredictionStyle.MODERATE
    random_variance: float = Field(default=0.1, ge=0, le=1)
    min_data_quality: float = Field(default=50.0, ge=0, le=100)

    @property
    def min_goals(self) -> int:
        return STYLE_RANGES[self.style][0]

    @property
    def max_goals(self) -> int:
        return STYLE_RANGES[self.style][1]

    def weights(self) -> dict[str, float]:
        """Configured weight per signal name."""
        return {
            "form": self.form_weight,
            "home_advantage": self.home_advantage_weight,
            "goal_trend": self.goal_trend_weight,
            "streak": self.streak_weight,
            "lineup": self.lineup_weight,
            "xg": self.xg_weight,
            "xg_defensive": self.xg_defensive_weight,
            "odds": self.odds_weight,
            "injury": self.injury_weight,
            "elo": self.elo_weight,
        }


class MachineLearningConfig(BaseModel):
    strategy: Literal["machine_learning"] = "machine_learning"
    risk_profile: RiskProfile = RiskProfile.BALANCED
    # None = ML_MODEL_TYPE setting
    model_type: Optional[str] = None


StrategyConfig = Annotated[
    Union[StatsAnalystConfig, MachineLearningConfig, BasicStrategyConfig],
    Field(discriminator="strategy"),
]

_config_adapter = TypeAdapter(StrategyConfig)


# ═══════════════════════════════════════════════════════════════
# Stats analyst profiles
# ═══════════════════════════════════════════════════════════════

STATS_ANALYST_PROFILES: dict[str, StatsAnalystConfig] = {
    "balanced": StatsAnalystConfig(),
    "form_focused": StatsAnalystConfig(
        form_weight=0.60,
        home_advantage_weight=0.15,
        goal_trend_weight=0.15,
        streak_weight=0.10,
    ),
    "home_advantage": StatsAnalystConfig(
        form_weight=0.20,
        home_advantage_weight=0.50,
        goal_trend_weight=0.20,
        streak_weight=0.10,
    ),
    "goal_focused": StatsAnalystConfig(
        form_weight=0.25,
        home_advantage_weight=0.15,
        goal_trend_weight=0.50,
        streak_weight=0.10,
        style=PredictionStyle.BOLD,
    ),
    "conservative": StatsAnalystConfig(
        style=PredictionStyle.CONSERVATIVE,
        random_variance=0.05,
    ),
    "chaotic": StatsAnalystConfig(
        random_variance=0.30,
        style=PredictionStyle.BOLD,
    ),
    "market_driven": StatsAnalystConfig(
        form_weight=0.20,
        home_advantage_weight=0.10,
        goal_trend_weight=0.10,
        streak_weight=0.0,
        odds_weight=0.50,
        elo_weight=0.10,
        min_data_quality=40.0,
    ),
    "xg_driven": StatsAnalystConfig(
        form_weight=0.20,
        home_advantage_weight=0.15,
        goal_trend_weight=0.05,
        streak_weight=0.05,
        xg_weight=0.35,
        xg_defensive_weight=0.20,
        min_data_quality=40.0,
    ),
    "full_analysis": StatsAnalystConfig(
        form_weight=0.20,
        home_advantage_weight=0.10,
        goal_trend_weight=0.10,
        streak_weight=0.05,
        lineup_weight=0.05,
        xg_weight=0.15,
        xg_defensive_weight=0.10,
        odds_weight=0.10,
        injury_weight=0.05,
        elo_weight=0.10,
        min_data_quality=40.0,
    ),
    "injury_aware": StatsAnalystConfig(
        form_weight=0.25,
        home_advantage_weight=0.15,
        goal_trend_weight=0.10,
        streak_weight=0.05,
        lineup_weight=0.15,
        injury_weight=0.30,
    ),
}

# Display name and blurb per profile, in listing order
PROFILE_DESCRIPTIONS: dict[str, tuple[str, str]] = {
    "balanced": ("Balanced", "All-round analysis using all available data"),
    "form_focused": ("Form Focused", "Heavily weights recent match results"),
    "home_advantage": ("Home Advantage", "Believes home teams always win"),
    "goal_focused": ("Goal Focused", "Predicts high-scoring matches"),
    "conservative": ("Conservative", "Low-risk, low-score predictions"),
    "chaotic": ("Chaotic", "Unpredictable wild predictions"),
    "full_analysis": ("Full Analysis", "Uses all external data sources"),
    "xg_driven": ("xG Expert", "Heavy expected goals weighting"),
    "market_driven": ("Market Follower", "Follows betting odds consensus"),
    "injury_aware": ("Injury Aware", "Focuses on squad availability"),
}


def get_configuration_presets() -> list[dict]:
    """Stats analyst profiles as presets a bot configuration can start from."""
    return [
        {
            "profile": key,
            "name": name,
            "description": description,
            "configuration": STATS_ANALYST_PROFILES[key].model_dump(mode="json"),
        }
        for key, (name, description) in PROFILE_DESCRIPTIONS.items()
    ]


def default_config(kind: StrategyKind) -> Union[StatsAnalystConfig, MachineLearningConfig, BasicStrategyConfig]:
    if kind == StrategyKind.STATS_ANALYST:
        return StatsAnalystConfig()
    if kind == StrategyKind.MACHINE_LEARNING:
        return MachineLearningConfig()
    return BasicStrategyConfig(strategy=kind.value)


def parse_strategy_config(
    kind: StrategyKind, raw: Optional[dict]
) -> Union[StatsAnalystConfig, MachineLearningConfig, BasicStrategyConfig]:
    """
    Validate a bot's configuration blob for its strategy kind.

    Args:
        kind: Strategy the bot is assigned (the blob cannot change it).
        raw: JSON blob from bots.configuration, possibly None.

    Returns:
        Typed config. Invalid blobs yield the kind's default config.
    """
    data = dict(raw or {})
    data.pop("strategy", None)

    if kind == StrategyKind.STATS_ANALYST:
        profile_name = data.pop("profile", None)
        if profile_name is not None:
            profile = STATS_ANALYST_PROFILES.get(str(profile_name).lower())
            if profile is None:
                logger.warning(f"Unknown stats analyst profile '{profile_name}', using balanced")
                profile = STATS_ANALYST_PROFILES["balanced"]
            data = {**profile.model_dump(), **data}

    data["strategy"] = kind.value

    try:
        return _config_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning(
            f"Invalid {kind.value} configuration, using defaults: {e.error_count()} error(s)"
        )
        return default_config(kind)


def validate_strategy_config(
    kind: StrategyKind, raw: Optional[dict]
) -> Union[StatsAnalystConfig, MachineLearningConfig, BasicStrategyConfig]:
    """
    Strict counterpart of parse_strategy_config for blobs written through the admin API.

    Raises:
        ValueError: Unknown profile, profile on a non stats-analyst kind, or
            field values that fail validation (pydantic's ValidationError).
    """
    data = dict(raw or {})
    data.pop("strategy", None)

    profile_name = data.pop("profile", None)
    if profile_name is not None:
        if kind != StrategyKind.STATS_ANALYST:
            raise ValueError(f"Profiles only apply to {StrategyKind.STATS_ANALYST.value}")
        profile = STATS_ANALYST_PROFILES.get(str(profile_name).lower())
        if profile is None:
            raise ValueError(f"Unknown stats analyst profile '{profile_name}'")
        data = {**profile.model_dump(), **data}

    data["strategy"] = kind.value
    return _config_adapter.validate_python(data)
