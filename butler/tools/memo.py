"""
Memo tool.

Keeps short notes made of a key and a free-form body. Memos are scoped to
the server they were written in (or to the user, in direct messages), so
two servers never see each other's notes.

    /butler tool:memo args:action=set key=wifi value="guest / hunter2"
    /butler tool:memo args:action=get key=wifi
    /butler tool:memo args:action=list
    /butler tool:memo args:action=delete key=wifi
"""

from __future__ import annotations

from typing import Any

from butler.config.logging import get_logger
from butler.llm.agent import ToolContext
from butler.tools.base import ToolArgument, ToolPlugin, ToolRegistry, ToolSpec
from butler.tools.kv import KeyValueStore, MemoryKeyValueStore

logger = get_logger(__name__)

ACTIONS = ("set", "get", "list", "delete")

MEMO_SPEC = ToolSpec(
    name="memo",
    description="Save, read, list or delete memos made of a key and a body.",
    arguments=[
        ToolArgument(name="action", description="One of: set, get, list, delete", required=True),
        ToolArgument(name="key", description="Memo title (needed for set, get and delete)"),
        ToolArgument(name="value", description="Memo body for set; markdown and newlines are kept"),
    ],
    ai_hint="Use the user's wording for the key. Call list before guessing a key that may not exist.",
)


def _code(text: str) -> str:
    return f"```\n{text}\n```"


def _scope(context: ToolContext) -> str:
    if context.guild_id:
        return f"guild:{context.guild_id}"
    return f"user:{context.user_id or 'unknown'}"


class MemoPlugin(ToolPlugin):
    """
    Registers the ``memo`` tool.

    Args:
        store: Where memos live; an in-memory store is created otherwise
    """

    name = "memo"

    def __init__(self, store: KeyValueStore | None = None) -> None:
        self.store = store if store is not None else MemoryKeyValueStore()

    def register(self, registry: ToolRegistry) -> None:
        registry.register(MEMO_SPEC, self.handle)

    async def handle(self, args: dict[str, Any], context: ToolContext) -> str:
        action = str(args.get("action") or "").strip().lower()
        if action == "remove":
            action = "delete"
        if action not in ACTIONS:
            return f"Unknown memo action {action!r}. Use one of: {', '.join(ACTIONS)}."

        scope = _scope(context)
        if action == "list":
            return self.list_memos(scope)

        key = str(args.get("key") or "").strip()
        if not key:
            return "Please give a memo key."
        if action == "get":
            return self.get_memo(scope, key)
        if action == "set":
            return self.set_memo(scope, key, str(args.get("value") or "").strip())
        return self.delete_memo(scope, key)

    def get_memo(self, scope: str, key: str) -> str:
        value = self.store.get(f"{scope}:{key}")
        if value is None:
            return f"**{key}** is not set :cry:"
        return f"**{key}**\n{_code(value) if value else 'The memo is empty :ghost:'}"

    def set_memo(self, scope: str, key: str, value: str) -> str:
        self.store.set(f"{scope}:{key}", value)
        logger.info(f"Memo {key!r} saved in {scope}")
        if value:
            return f"Saved **{key}** with the following :wink:\n{_code(value)}"
        return f"Saved **{key}** :cat:"

    def delete_memo(self, scope: str, key: str) -> str:
        value = self.store.delete(f"{scope}:{key}")
        if value is None:
            return f"**{key}** is not set :cry:"
        logger.info(f"Memo {key!r} deleted in {scope}")
        return f"Deleted **{key}** :wave:" + (f"\n{_code(value)}" if value else "")

    def list_memos(self, scope: str) -> str:
        prefix = f"{scope}:"
        entries = self.store.items(prefix)
        if not entries:
            return "No memos yet :snail:"
        return "\n".join(f"- **{key[len(prefix):]}**\n  {value}" for key, value in entries)
