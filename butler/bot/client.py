"""
ButlerBot - discord.py bot client.

Manages the full bot lifecycle:
- Builds the AI provider (failing fast on bad configuration), the tool
  registry with its plugins, the conversation store and the orchestrator
- Starts plugins and loads cogs (ConversationCog, ButlerCog)
- Syncs slash commands (guild-local for dev, global for production)
- Posts plugin notifications (event reminders) to the notify channel
- Cleans up plugins and HTTP clients on shutdown via AsyncExitStack
"""

from __future__ import annotations

from contextlib import AsyncExitStack

import discord
from discord.ext import commands

from butler.config.logging import get_logger
from butler.config.settings import Settings
from butler.conversation import ConversationStore
from butler.llm import AgentOrchestrator
from butler.llm.providers import AIProvider, create_provider
from butler.tools import ToolRegistry, load_plugins

logger = get_logger(__name__)


class ButlerBot(commands.Bot):
    """
    Discord bot exposing the butler tools through mentions and /butler.

    Shared state (registry, conversation store, orchestrator) lives on the
    bot and is reached by the cogs through ``self.bot``.

    Args:
        settings: Full application settings
        provider: Pre-built AI provider; built from ``settings.ai`` when omitted

    Raises:
        ProviderConfigError: The AI configuration is incomplete
    """

    def __init__(self, settings: Settings, provider: AIProvider | None = None) -> None:
        intents = discord.Intents.default()
        intents.message_content = True  # Required to read message text for mention handling
        super().__init__(
            command_prefix=settings.bot.command_prefix,
            intents=intents,
        )
        self.settings = settings

        self.registry = ToolRegistry()
        self.plugins = load_plugins(
            settings.tools,
            self.registry,
            notify=self.send_notification,
            timezone=settings.ai.timezone,
        )

        self.provider = provider or create_provider(settings.ai)
        self.conversations = ConversationStore(
            max_sessions=settings.conversation.max_sessions,
            max_messages=settings.conversation.max_messages,
        )
        self.orchestrator = AgentOrchestrator(
            provider=self.provider,
            tools=self.registry.definitions(),
            tool_executor=self.registry.execute,
            prompt_append=settings.ai.prompt_append,
            max_iterations=settings.ai.max_iterations,
            tool_timeout=settings.ai.tool_timeout,
            timezone=settings.ai.timezone,
            debug=settings.ai.debug,
        )
        self._exit_stack = AsyncExitStack()

    async def setup_hook(self) -> None:
        """
        Called after login, before connecting to the Gateway.

        Starts plugins, loads cogs, and syncs slash commands.
        """
        # --- 1. Long-lived resources, released in close() ---
        self._exit_stack.push_async_callback(self.provider.aclose)
        for plugin in self.plugins:
            await self._exit_stack.enter_async_context(plugin)
            logger.info(f"Plugin {plugin.name!r} started")
        logger.info(
            f"AI provider ready ({type(self.provider).__name__}, "
            f"model: {getattr(self.provider, 'model', 'n/a')}), "
            f"{len(self.registry)} tool(s)"
        )

        # --- 2. Load cogs ---
        from butler.bot.cogs.butler import ButlerCog
        from butler.bot.cogs.conversation import ConversationCog
        await self.add_cog(ConversationCog(self))
        await self.add_cog(ButlerCog(self))
        logger.info("Cogs loaded")

        # --- 3. Sync slash commands ---
        try:
            if self.settings.bot.dev_guild_id:
                guild = discord.Object(id=self.settings.bot.dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info(f"Slash commands synced to dev guild {self.settings.bot.dev_guild_id} (instant)")
            else:
                await self.tree.sync()
                logger.info("Slash commands synced globally (may take up to 1 hour to propagate)")
        except discord.errors.Forbidden:
            logger.warning(
                "Could not sync slash commands (403 Forbidden). "
                "Re-invite the bot with both the 'bot' and 'applications.commands' scopes. "
                "Mentions keep working while /butler is unavailable."
            )
        except discord.HTTPException as e:
            logger.warning(f"Slash command sync failed: {e}. The bot will still start.")

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user} (id: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self) -> None:
        """Graceful shutdown: stop plugins and close HTTP clients, then disconnect."""
        logger.info("Shutting down butler...")
        await self._exit_stack.aclose()
        await super().close()

    async def send_notification(self, text: str) -> None:
        """
        Post a plugin notification (event reminders) to the notify channel.

        Waits until the bot is connected, so reminders due at startup are
        not lost. Send failures are logged.
        """
        channel_id = self.settings.tools.event_reminder_channel_id
        if channel_id is None:
            logger.warning("TOOL_EVENT_REMINDER_CHANNEL_ID not set, notification dropped")
            return
        await self.wait_until_ready()
        channel = self.get_channel(channel_id)
        if channel is None:
            logger.warning(f"Notify channel {channel_id} not found, notification dropped")
            return
        try:
            await channel.send(text)
        except discord.HTTPException as e:
            logger.error(f"Could not post notification to {channel_id}: {e}")

    def is_allowed_channel(self, channel_id: int) -> bool:
        """
        Return True if the bot should respond in this channel.

        An empty ``allowed_channel_ids`` (the default) means everywhere.
        """
        allowed = self.settings.bot.allowed_channel_ids
        return not allowed or channel_id in allowed
