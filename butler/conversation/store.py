"""
In-memory conversation sessions with LRU eviction.

A session is the message history of one mention thread. Every message the
bot posts is linked to its session, so a user replying to it continues the
same conversation. When a session falls out of the cache its links go with
it; a later reply to one of those messages has to rebuild the session from
the Discord reply chain (see ``ConversationCog``).

All mutation happens on the event loop thread, so no locking is needed.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import dataclass, field

from butler.config.logging import get_logger
from butler.llm.models import Message, TextMessage

logger = get_logger(__name__)

DEFAULT_MAX_SESSIONS = 5
DEFAULT_MAX_MESSAGES = 20


@dataclass
class Session:
    id: str
    messages: list[Message] = field(default_factory=list)
    linked_external_ids: set[str] = field(default_factory=set)


class ConversationStore:
    """
    Bounded session map plus an index from posted message ids to sessions.

    Args:
        max_sessions: Sessions kept before the least recently used is evicted
        max_messages: Messages kept per session (oldest dropped first)
    """

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ):
        self._max_sessions = max_sessions
        self._max_messages = max_messages
        # Insertion order doubles as recency order: last item = most recent
        self._sessions: OrderedDict[str, Session] = OrderedDict()
        self._external_index: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def session_ids(self) -> list[str]:
        """Session ids from least to most recently used."""
        return list(self._sessions)

    def create_session(self, root_id: str) -> str:
        """Start an empty session keyed by ``root_id`` and return its id."""
        self.ensure_session(root_id, [])
        return root_id

    def get_session_id_from_reply(self, reply_to_id: str | None) -> str | None:
        """Return the session owning ``reply_to_id``, refreshing its recency."""
        if not reply_to_id:
            return None
        session_id = self._external_index.get(reply_to_id)
        if session_id is not None:
            self._touch(session_id)
        return session_id

    def ensure_session(
        self,
        session_id: str,
        messages: Iterable[Message],
        external_ids: Iterable[str] = (),
    ) -> None:
        """
        Create or replace ``session_id`` with ``messages``.

        Used for rehydration: every id in ``external_ids`` is linked to the
        session so later replies find it.
        """
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(id=session_id)
            self._sessions[session_id] = session
        session.messages = self._trim(list(messages))
        for external_id in external_ids:
            self._link(external_id, session)
        self._touch(session_id)
        self._evict_if_needed()

    def add_user_message(self, session_id: str, text: str) -> None:
        self._append(session_id, TextMessage(role="user", content=text))

    def add_assistant_message(self, session_id: str, text: str, external_id: str) -> None:
        """Append the bot's reply and link the posted message id to the session."""
        session = self._append(session_id, TextMessage(role="assistant", content=text))
        self._link(external_id, session)

    def get_messages(self, session_id: str) -> list[Message]:
        """Return a copy of the session history (empty if unknown)."""
        session = self._sessions.get(session_id)
        if session is None:
            return []
        self._touch(session_id)
        return list(session.messages)

    def _append(self, session_id: str, message: Message) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(id=session_id)
            self._sessions[session_id] = session
        session.messages.append(message)
        session.messages = self._trim(session.messages)
        self._touch(session_id)
        self._evict_if_needed()
        return session

    def _trim(self, messages: list[Message]) -> list[Message]:
        if len(messages) <= self._max_messages:
            return messages
        return messages[-self._max_messages:]

    def _touch(self, session_id: str) -> None:
        if session_id in self._sessions:
            self._sessions.move_to_end(session_id)

    def _link(self, external_id: str, session: Session) -> None:
        previous = self._external_index.get(external_id)
        if previous is not None and previous != session.id and previous in self._sessions:
            self._sessions[previous].linked_external_ids.discard(external_id)
        self._external_index[external_id] = session.id
        session.linked_external_ids.add(external_id)

    def _evict_if_needed(self) -> None:
        while len(self._sessions) > self._max_sessions:
            session_id, session = self._sessions.popitem(last=False)
            for external_id in session.linked_external_ids:
                if self._external_index.get(external_id) == session_id:
                    del self._external_index[external_id]
            logger.debug(
                f"Evicted session {session_id} ({len(session.linked_external_ids)} linked message(s))"
            )
