"""
ButlerCog - /butler slash command.

Runs a registered tool directly, without the AI in between. It reaches the
same ToolRegistry the orchestrator uses, so every tool a plugin registers is
available here too.

    /butler tool:wiki args:word="Mount Fuji"
    /butler tool:wiki args:Mount Fuji        (single-argument shorthand)
"""

from __future__ import annotations

import shlex

import discord
from discord import app_commands
from discord.ext import commands

from butler.config.logging import get_logger
from butler.llm import ToolCall, ToolContext
from butler.tools import ToolSpec

logger = get_logger(__name__)

MAX_CHOICES = 25  # Discord's autocomplete limit


def parse_tool_args(text: str, spec: ToolSpec) -> dict[str, str]:
    """
    Parse ``key=value`` pairs (shell-style quoting) for ``spec``.

    Unknown keys are dropped. When the tool takes exactly one argument and
    the text has no ``=``, the whole text is that argument's value.

    Raises:
        ValueError: Unbalanced quotes, or a token without ``=``
    """
    text = text.strip()
    if not text:
        return {}
    if len(spec.arguments) == 1 and "=" not in text:
        return {spec.arguments[0].name: text}

    known = {arg.name for arg in spec.arguments}
    parsed: dict[str, str] = {}
    for token in shlex.split(text):
        key, sep, value = token.partition("=")
        if not sep:
            raise ValueError(f"expected key=value, got {token!r}")
        if key not in known:
            logger.debug(f"Ignoring unknown argument {key!r} for tool {spec.name!r}")
            continue
        parsed[key] = value
    return parsed


class ButlerCog(commands.Cog):
    """Provides /butler for direct tool execution."""

    def __init__(self, bot) -> None:
        self.bot = bot

    @app_commands.command(name="butler", description="Run a butler tool directly")
    @app_commands.describe(
        tool="Tool to run",
        args='Arguments as key=value pairs, e.g. word="Mount Fuji"',
    )
    async def butler(
        self, interaction: discord.Interaction, tool: str, args: str | None = None
    ) -> None:
        if not self.bot.is_allowed_channel(interaction.channel_id):
            await interaction.response.send_message(
                "I'm not configured to respond in this channel.", ephemeral=True
            )
            return

        spec = self.bot.registry.get(tool)
        if spec is None:
            await interaction.response.send_message(f"Unsupported command: {tool}", ephemeral=True)
            return

        try:
            arguments = parse_tool_args(args or "", spec)
        except ValueError as e:
            await interaction.response.send_message(f"Could not read arguments: {e}", ephemeral=True)
            return

        missing = [arg.name for arg in spec.arguments if arg.required and arg.name not in arguments]
        if missing:
            await interaction.response.send_message(
                f"Missing required argument(s): {', '.join(missing)}", ephemeral=True
            )
            return

        await interaction.response.defer()

        context = ToolContext(
            guild_id=str(interaction.guild_id) if interaction.guild_id else None,
            user_id=str(interaction.user.id),
        )
        try:
            result = await self.bot.registry.execute(ToolCall(name=tool, arguments=arguments), context)
        except Exception as e:
            logger.exception(f"Tool {tool!r} failed for args {arguments}: {e}")
            await interaction.followup.send(f"`{tool}` failed: {e}")
            return

        await interaction.followup.send(result[:2000])

    @butler.autocomplete("tool")
    async def tool_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        current = current.lower()
        return [
            app_commands.Choice(name=name, value=name)
            for name in self.bot.registry.names()
            if current in name.lower()
        ][:MAX_CHOICES]
