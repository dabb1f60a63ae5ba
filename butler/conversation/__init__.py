"""
Conversation memory.

Holds the last few mention threads in memory so replies can continue them.
Nothing is persisted; after a restart sessions are rebuilt from Discord's
reply chain.
"""

from butler.conversation.store import ConversationStore, Session

__all__ = ["ConversationStore", "Session"]
