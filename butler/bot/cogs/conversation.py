"""
ConversationCog - AI replies to @mentions and reply chains.

Three ways into a conversation:
  - @butler <text>              starts a new session keyed by the message id
  - reply to a butler message   continues the session that message belongs to
  - reply to a message the      rebuilds the session from the Discord reply
    store no longer knows       chain (after eviction or a restart), then answers

Each answer runs the orchestrator over the session history and records both
the user's text and the bot's reply, linking the posted reply's id so the
next reply finds the session again.
"""

from __future__ import annotations

import re

import discord
from discord.ext import commands

from butler.config.logging import get_logger
from butler.llm import Message, TextMessage, ToolContext

logger = get_logger(__name__)

PROCESSING_EMOJI = "👀"
DISCORD_MESSAGE_LIMIT = 2000
_BROADCAST_MENTIONS = ("@everyone", "@here")


def _reference_id(message: discord.Message) -> str | None:
    reference = message.reference
    if reference is None or reference.message_id is None:
        return None
    return str(reference.message_id)


def _strip_mention(text: str, user_id: int | None) -> str:
    """Remove ``<@id>`` / ``<@!id>`` mentions of ``user_id`` and trim."""
    if user_id is None:
        return text.strip()
    return re.sub(rf"<@!?{user_id}>", "", text).strip()


def _truncate(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class ConversationCog(commands.Cog):
    """Routes mentions and replies to the AI orchestrator."""

    def __init__(self, bot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        if any(key in message.content for key in _BROADCAST_MENTIONS):
            return
        if not self.bot.is_allowed_channel(message.channel.id):
            return

        store = self.bot.conversations
        reply_to_id = _reference_id(message)

        session_id = store.get_session_id_from_reply(reply_to_id)
        if session_id is not None:
            await self._reply(message, session_id)
            return

        if self.bot.user.mentioned_in(message):
            session_id = store.create_session(str(message.id))
            await self._reply(message, session_id)
            return

        if reply_to_id is not None:
            await self._reply_with_rehydration(message)

    async def _reply(self, message: discord.Message, session_id: str) -> None:
        content = _strip_mention(message.content, self.bot.user.id)
        if not content:
            return

        store = self.bot.conversations
        reacted = await self._add_reaction(message)
        try:
            history = [*store.get_messages(session_id), TextMessage(role="user", content=content)]
            context = ToolContext(
                guild_id=str(message.guild.id) if message.guild else None,
                user_id=str(message.author.id),
            )
            async with message.channel.typing():
                text = await self.bot.orchestrator.reply(history, context)
            try:
                sent = await message.reply(_truncate(text))
            except discord.HTTPException as e:
                logger.warning(f"Could not post reply to {message.id}: {e}")
                return
            # Both turns are recorded only once the reply is visible
            store.add_user_message(session_id, content)
            store.add_assistant_message(session_id, text, str(sent.id))
        finally:
            if reacted:
                await self._remove_reaction(message)

    async def _reply_with_rehydration(self, message: discord.Message) -> None:
        session_id, messages, message_ids = await self._rehydrate(message)
        if session_id is None:
            return
        logger.info(f"Rehydrated session {session_id} from {len(message_ids)} message(s)")
        self.bot.conversations.ensure_session(session_id, messages, message_ids)
        await self._reply(message, session_id)

    async def _rehydrate(
        self, message: discord.Message
    ) -> tuple[str | None, list[Message], list[str]]:
        """
        Walk the reply chain above ``message`` back to its root.

        Returns ``(session_id, messages, message_ids)`` oldest first, where
        the session id is the oldest message's id. Chains that never touch a
        bot message are not conversations with the bot and yield ``None``.
        """
        limit = self.bot.settings.conversation.max_reply_chain
        chain: list[discord.Message] = []
        current_id = _reference_id(message)

        while current_id is not None and len(chain) < limit:
            try:
                fetched = await message.channel.fetch_message(int(current_id))
            except discord.HTTPException as e:
                logger.debug(f"Stopped reply chain walk at {current_id}: {e}")
                break
            chain.append(fetched)
            current_id = _reference_id(fetched)

        if not any(item.author.id == self.bot.user.id for item in chain):
            return None, [], []

        ordered = list(reversed(chain))
        messages: list[Message] = []
        for item in ordered:
            if item.author.bot:
                role, text = "assistant", item.content.strip()
            else:
                role, text = "user", _strip_mention(item.content, self.bot.user.id)
            if text:
                messages.append(TextMessage(role=role, content=text))

        message_ids = [str(item.id) for item in ordered]
        return message_ids[0], messages, message_ids

    async def _add_reaction(self, message: discord.Message) -> bool:
        try:
            await message.add_reaction(PROCESSING_EMOJI)
        except discord.HTTPException as e:
            logger.debug(f"Could not add reaction to {message.id}: {e}")
            return False
        return True

    async def _remove_reaction(self, message: discord.Message) -> None:
        try:
            await message.remove_reaction(PROCESSING_EMOJI, self.bot.user)
        except discord.HTTPException as e:
            logger.debug(f"Could not remove reaction from {message.id}: {e}")
