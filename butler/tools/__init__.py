"""
Tool layer.

Plugins register tools into a ToolRegistry; the registry is shared by the
AI orchestrator and the /butler slash command.
"""

from __future__ import annotations

from butler.config.logging import get_logger
from butler.config.settings import ToolSettings
from butler.tools.base import ToolArgument, ToolHandler, ToolPlugin, ToolRegistry, ToolSpec
from butler.tools.event_reminder import EventReminderPlugin, Notifier
from butler.tools.kv import KeyValueStore, MemoryKeyValueStore
from butler.tools.memo import MemoPlugin
from butler.tools.wikipedia import WikipediaPlugin

logger = get_logger(__name__)


def load_plugins(
    settings: ToolSettings,
    registry: ToolRegistry,
    notify: Notifier | None = None,
    timezone: str = "Asia/Tokyo",
) -> list[ToolPlugin]:
    """
    Register every bundled plugin enabled in ``settings`` and return them.

    Args:
        settings: Tool toggles and options
        registry: Registry the plugins add their tools to
        notify: Delivers event reminders (the bot posts them to a channel)
        timezone: Zone event times are read and shown in
    """
    plugins: list[ToolPlugin] = []
    if settings.wikipedia_enabled:
        plugins.append(WikipediaPlugin(host=settings.wikipedia_host))
    if settings.memo_enabled:
        plugins.append(MemoPlugin())
    if settings.event_reminder_enabled:
        plugins.append(EventReminderPlugin(
            notify=notify,
            timezone=timezone,
            interval=settings.event_reminder_interval,
        ))

    for plugin in plugins:
        plugin.register(registry)
        logger.info(f"Plugin {plugin.name!r} registered")
    return plugins


__all__ = [
    "EventReminderPlugin",
    "KeyValueStore",
    "MemoPlugin",
    "MemoryKeyValueStore",
    "Notifier",
    "ToolArgument",
    "ToolHandler",
    "ToolPlugin",
    "ToolRegistry",
    "ToolSpec",
    "WikipediaPlugin",
    "load_plugins",
]
