"""
Discord Bot Layer.

Wires Discord events to the AI orchestrator and the tool registry:
mentions and replies go through ConversationCog, /butler through ButlerCog.
"""

from butler.bot.client import ButlerBot

__all__ = ["ButlerBot"]
