"""
Tests for ButlerBot.

The channel restriction is tested in isolation; wiring is checked by
building the bot with an injected provider, which needs no Discord
connection. Plugin notifications are checked with the channel lookup
mocked out.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from butler.bot.client import ButlerBot
from butler.config.settings import AISettings, BotSettings, Settings, ToolSettings
from butler.llm import ProviderConfigError
from butler.tools import EventReminderPlugin


def _make_bot(allowed_channel_ids: list[int]) -> ButlerBot:
    """Create a ButlerBot with the given channel restriction list."""
    settings = MagicMock(spec=Settings)
    settings.bot = MagicMock(spec=BotSettings)
    settings.bot.allowed_channel_ids = allowed_channel_ids
    bot = ButlerBot.__new__(ButlerBot)
    bot.settings = settings
    return bot


def _make_settings(**ai) -> Settings:
    return Settings(
        bot=BotSettings(token="t"),
        ai=AISettings(**{"provider": "gemini", "api_key": "k", **ai}),
        tools=ToolSettings(wikipedia_enabled=True),
    )


class TestBotChannelRestriction:
    def test_empty_list_allows_all_channels(self):
        bot = _make_bot([])
        assert bot.is_allowed_channel(111) is True
        assert bot.is_allowed_channel(999999) is True

    def test_listed_channel_is_allowed(self):
        bot = _make_bot([111, 222, 333])
        assert bot.is_allowed_channel(111) is True
        assert bot.is_allowed_channel(333) is True

    def test_unlisted_channel_is_blocked(self):
        bot = _make_bot([111, 222])
        assert bot.is_allowed_channel(999) is False


class TestBotWiring:
    def test_shares_registry_with_orchestrator(self):
        provider = MagicMock()
        bot = ButlerBot(_make_settings(), provider=provider)

        assert bot.provider is provider
        assert bot.orchestrator.provider is provider
        assert bot.registry.names() == [
            "wiki", "memo", "event-reminder", "event-reminder-list", "event-reminder-delete",
        ]
        assert [t.name for t in bot.orchestrator.tools] == bot.registry.names()
        assert len(bot.conversations) == 0

    def test_bad_ai_config_fails_fast(self):
        with pytest.raises(ProviderConfigError):
            ButlerBot(_make_settings(api_key=""))

    def test_event_reminders_are_sent_through_the_bot(self):
        bot = ButlerBot(_make_settings(), provider=MagicMock())
        (reminders,) = [p for p in bot.plugins if isinstance(p, EventReminderPlugin)]
        assert reminders.notify == bot.send_notification
        assert str(reminders._tz) == "Asia/Tokyo"


def _make_notifying_bot(channel_id, channel=None) -> ButlerBot:
    bot = _make_bot([])
    bot.settings.tools = MagicMock(spec=ToolSettings)
    bot.settings.tools.event_reminder_channel_id = channel_id
    bot.wait_until_ready = AsyncMock()
    bot.get_channel = MagicMock(return_value=channel)
    return bot


class TestSendNotification:
    @pytest.mark.asyncio
    async def test_posts_to_notify_channel(self):
        channel = MagicMock()
        channel.send = AsyncMock()
        bot = _make_notifying_bot(77, channel)

        await bot.send_notification(":bell: soon")

        bot.wait_until_ready.assert_awaited_once()
        bot.get_channel.assert_called_once_with(77)
        channel.send.assert_awaited_once_with(":bell: soon")

    @pytest.mark.asyncio
    async def test_without_channel_id_nothing_is_sent(self):
        bot = _make_notifying_bot(None)
        await bot.send_notification("x")
        bot.get_channel.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_channel_is_skipped(self):
        bot = _make_notifying_bot(77, channel=None)
        await bot.send_notification("x")
        bot.get_channel.assert_called_once_with(77)

    @pytest.mark.asyncio
    async def test_send_failure_is_logged_not_raised(self):
        channel = MagicMock()
        channel.send = AsyncMock(
            side_effect=discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "missing access")
        )
        bot = _make_notifying_bot(77, channel)

        await bot.send_notification("x")

        channel.send.assert_awaited_once()

