"""
Tests for bot administration: configuration presets, create, update and list.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from scoreleague.bots.config import (
    STATS_ANALYST_PROFILES,
    StrategyKind,
    get_configuration_presets,
    parse_strategy_config,
    validate_strategy_config,
)
from scoreleague.bots.management import BotService, bot_username
from scoreleague.errors import ErrorKind
from scoreleague.models import User
from tests.conftest import NOW


class TestConfigurationPresets:
    def test_lists_all_profiles(self):
        presets = get_configuration_presets()

        assert len(presets) == 10
        names = [p["name"] for p in presets]
        assert "Full Analysis" in names
        assert "Injury Aware" in names
        assert {p["profile"] for p in presets} == set(STATS_ANALYST_PROFILES)

    def test_preset_configuration_is_plain_json(self):
        injury = next(p for p in get_configuration_presets() if p["profile"] == "injury_aware")
        assert injury["configuration"]["injury_weight"] == 0.30
        assert injury["configuration"]["style"] == "moderate"

    def test_full_analysis_weights_every_signal(self):
        weights = STATS_ANALYST_PROFILES["full_analysis"].weights()
        assert all(weight > 0 for weight in weights.values())
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_profile_resolves_by_name(self):
        config = parse_strategy_config(StrategyKind.STATS_ANALYST, {"profile": "injury_aware"})
        assert config.injury_weight == 0.30


class TestStrictConfigValidation:
    def test_unknown_profile_rejected(self):
        with pytest.raises(ValueError):
            validate_strategy_config(StrategyKind.STATS_ANALYST, {"profile": "psychic"})

    def test_profile_on_other_kind_rejected(self):
        with pytest.raises(ValueError):
            validate_strategy_config(StrategyKind.MACHINE_LEARNING, {"profile": "balanced"})

    def test_bad_field_rejected(self):
        with pytest.raises(ValueError):
            validate_strategy_config(StrategyKind.STATS_ANALYST, {"form_weight": -1})

    def test_override_on_profile(self):
        config = validate_strategy_config(
            StrategyKind.STATS_ANALYST, {"profile": "chaotic", "random_variance": 0.2}
        )
        assert config.random_variance == 0.2


class TestBotService:
    @pytest.mark.asyncio
    async def test_create_bot_with_user_account(self, session, clock):
        result = await BotService(session, clock).create_bot(
            "Data Scientist", "Stats-Analyst", {"profile": "full_analysis"}
        )

        assert result.is_success
        bot = result.value
        assert bot.strategy == "stats_analyst"
        assert bot.created_at == NOW
        user = await session.get(User, bot.user_id)
        assert user.is_bot is True
        assert user.username == "bot_data_scientist"

    @pytest.mark.asyncio
    async def test_create_rejects_duplicates_and_bad_input(self, session, clock):
        service = BotService(session, clock)
        assert (await service.create_bot("Randy", "random")).is_success

        duplicate = await service.create_bot("Randy", "draw_predictor")
        unknown = await service.create_bot("Oracle", "crystal_ball")
        bad_config = await service.create_bot("Quant", "machine_learning", {"risk_profile": "yolo"})

        assert duplicate.error == ErrorKind.BOT_NAME_TAKEN
        assert unknown.error == ErrorKind.INVALID_STRATEGY
        assert bad_config.error == ErrorKind.INVALID_STRATEGY
        users = (await session.execute(select(User))).scalars().all()
        assert [u.username for u in users] == ["bot_randy"]

    @pytest.mark.asyncio
    async def test_update_bot(self, session, clock):
        service = BotService(session, clock)
        bot = (await service.create_bot("Randy", "random")).value

        result = await service.update_bot(
            bot.id,
            name="Randy Two",
            strategy="stats_analyst",
            configuration={"profile": "xg_driven"},
            is_active=False,
        )

        assert result.is_success
        updated = result.value
        assert updated.name == "Randy Two"
        assert updated.strategy == "stats_analyst"
        assert updated.configuration == {"profile": "xg_driven"}
        assert updated.is_active is False
        user = await session.get(User, updated.user_id)
        assert user.username == bot_username("Randy Two")

    @pytest.mark.asyncio
    async def test_update_errors(self, session, clock):
        service = BotService(session, clock)
        first = (await service.create_bot("Alpha", "random")).value
        await service.create_bot("Beta", "random")

        assert (await service.update_bot(9999, is_active=False)).error == ErrorKind.BOT_NOT_FOUND
        assert (await service.update_bot(first.id, name="Beta")).error == ErrorKind.BOT_NAME_TAKEN
        assert (await service.update_bot(first.id, strategy="nope")).error == ErrorKind.INVALID_STRATEGY
        # Renaming to its own name is a no-op
        assert (await service.update_bot(first.id, name="Alpha")).is_success

    @pytest.mark.asyncio
    async def test_list_filters_and_stats(self, session, factory):
        owner = await factory.user("owner")
        league = await factory.league(owner)
        analyst = await factory.bot("Analyst", strategy="stats_analyst", league=league)
        await factory.bot("Sleepy", is_active=False)
        await factory.bot("Drawer", strategy="draw_predictor")

        analyst_user = await session.get(User, analyst.user_id)
        first = await factory.finished_match(NOW - timedelta(days=2), 2, 1)
        second = await factory.finished_match(NOW - timedelta(days=1), 0, 0)
        await factory.bet_result(await factory.bet(league, analyst_user, first, 2, 1), 3, True, True)
        await factory.bet_result(await factory.bet(league, analyst_user, second, 1, 0), 0, False, False)

        service = BotService(session)
        active = (await service.get_bots()).value
        everyone = (await service.get_bots(include_inactive=True)).value
        analysts = (await service.get_bots(strategy="stats_analyst")).value

        assert [v.bot.name for v in active] == ["Analyst", "Drawer"]
        assert [v.bot.name for v in everyone] == ["Analyst", "Drawer", "Sleepy"]
        assert [v.bot.name for v in analysts] == ["Analyst"]
        stats = analysts[0].stats
        assert stats.total_bets_placed == 2
        assert stats.leagues_joined == 1
        assert stats.average_points_per_bet == 1.5
        assert (stats.exact_predictions, stats.correct_results) == (1, 1)

        assert (await service.get_bots(strategy="crystal_ball")).error == ErrorKind.INVALID_STRATEGY
