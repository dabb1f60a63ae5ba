"""
Event reminder tools.

Registers server events and announces them ahead of time: one week, three
days and one day before the start, and once more on the day itself. A
background task checks the stored events every few minutes and hands due
reminders to a notifier; the bot posts them to its notify channel.

Tools:
  event-reminder         create an event (name, start, end, description, participants)
  event-reminder-list    list this server's upcoming events
  event-reminder-delete  delete an event by id
"""

from __future__ import annotations

import asyncio
import contextlib
import re
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, ValidationError

from butler.config.logging import get_logger
from butler.llm.agent import ToolContext
from butler.tools.base import ToolArgument, ToolPlugin, ToolRegistry, ToolSpec
from butler.tools.kv import KeyValueStore, MemoryKeyValueStore

logger = get_logger(__name__)

Notifier = Callable[[str], Awaitable[None]]

TIMINGS = ("7d", "3d", "1d", "0d")
TIMING_LABELS = {
    "7d": "one week before",
    "3d": "three days before",
    "1d": "the day before",
    "0d": "today",
}
# Time left before the start at which each advance reminder fires
TIMING_WINDOWS = {
    "7d": (timedelta(days=6.5), timedelta(days=7.5)),
    "3d": (timedelta(days=2.5), timedelta(days=3.5)),
    "1d": (timedelta(days=0.5), timedelta(days=1.5)),
}
DEFAULT_DURATION = timedelta(hours=2)
MAX_PARTICIPANTS = 10
CHECK_INTERVAL = 300.0
KEY_PREFIX = "event:"

_FULLWIDTH = str.maketrans("０１２３４５６７８９：／－　", "0123456789:/- ")
_DATETIME_RE = re.compile(r"^(?:(\d{4})[-/])?(\d{1,2})[-/](\d{1,2}) (\d{1,2}):(\d{2})$")
_MENTION_RE = re.compile(r"<@!?(\d+)>")
_NAME_PUNCTUATION_RE = re.compile(r"[。！!？?]+$")
_NAME_SUFFIX_RE = re.compile(r"(?:の)?イベント(?:登録)?$")

EVENT_REMINDER_SPEC = ToolSpec(
    name="event-reminder",
    description="Create a server event and remind people about it. Missing details are filled in where possible.",
    arguments=[
        ToolArgument(name="name", description="Event name", required=True),
        ToolArgument(
            name="start",
            description="Start time, e.g. 2026-12-25 19:00 or 12/25 19:00 (this year when the year is left out)",
            required=True,
        ),
        ToolArgument(
            name="end",
            description="End time in the same format; two hours after the start when left out",
        ),
        ToolArgument(name="description", description="What the event is about"),
        ToolArgument(name="participants", description="Mentions of the people to remind, e.g. <@123> <@456>"),
    ],
    ai_hint=(
        "Create the event in one call instead of asking for every missing detail. "
        "For 'the X event' use X as the name. "
        "Turn relative times such as 'tomorrow 19:00' into a concrete date and time before passing start or end. "
        "Leave end out to get two hours after the start, and leave participants out when nobody is named. "
        "Tell the user which details you filled in yourself."
    ),
)

EVENT_LIST_SPEC = ToolSpec(
    name="event-reminder-list",
    description="List the upcoming events of this server with their ids.",
    arguments=[ToolArgument(name="name", description="Only list events whose name contains this text")],
)

EVENT_DELETE_SPEC = ToolSpec(
    name="event-reminder-delete",
    description="Delete an event so that no more reminders are sent for it.",
    arguments=[ToolArgument(name="id", description="Event id shown when it was created", required=True)],
    ai_hint="Call event-reminder-list first when the user names the event instead of giving its id.",
)


class EventReminder(BaseModel):
    """A stored event and which of its reminders have gone out."""

    id: str
    guild_id: str
    name: str
    start: datetime
    end: datetime
    description: str = ""
    participants: list[str] = Field(default_factory=list)
    created_by: str = "unknown"
    notified: dict[str, bool] = Field(default_factory=lambda: {timing: False for timing in TIMINGS})

    def mentions(self) -> str:
        return " ".join(f"<@{user_id}>" for user_id in self.participants)


def normalize_datetime_text(text: str) -> str:
    """Fold full-width digits and separators to ASCII and collapse whitespace."""
    return re.sub(r"\s+", " ", text.translate(_FULLWIDTH)).strip()


def parse_datetime(text: str, tz: ZoneInfo, now: datetime | None = None) -> datetime | None:
    """
    Parse ``YYYY-MM-DD HH:MM`` in ``tz``.

    Slashes work as date separators and the year may be left out, in which
    case the year of ``now`` is used. Returns None for anything else,
    including dates that do not exist.
    """
    match = _DATETIME_RE.match(normalize_datetime_text(text))
    if not match:
        return None
    year, month, day, hour, minute = match.groups()
    if year is None:
        year = (now or datetime.now(tz)).astimezone(tz).year
    try:
        return datetime(int(year), int(month), int(day), int(hour), int(minute), tzinfo=tz)
    except ValueError:
        return None


def normalize_event_name(text: str) -> str:
    """Drop trailing punctuation and a trailing 'イベント' / 'のイベント登録'."""
    trimmed = _NAME_PUNCTUATION_RE.sub("", text.strip())
    return _NAME_SUFFIX_RE.sub("", trimmed).strip() or trimmed


def parse_participants(text: str | None) -> list[str]:
    """User ids of the ``<@id>`` / ``<@!id>`` mentions in ``text``, first occurrence order."""
    ids: list[str] = []
    for user_id in _MENTION_RE.findall(text or ""):
        if user_id not in ids:
            ids.append(user_id)
    return ids


def due_timings(start: datetime, now: datetime, notified: dict[str, bool]) -> list[str]:
    """
    Reminder timings that should fire at ``now`` for an event at ``start``.

    The advance reminders fire while the time left is within half a day of
    their mark. The same-day reminder fires on the event's calendar day, in
    the zone of ``start``, until the event begins. Timings already in
    ``notified`` never fire again.
    """
    left = start - now
    if left <= timedelta(0):
        return []
    due = [
        timing for timing, (low, high) in TIMING_WINDOWS.items()
        if not notified.get(timing) and low <= left < high
    ]
    if not notified.get("0d") and now.astimezone(start.tzinfo).date() == start.date():
        due.append("0d")
    return due


class EventReminderPlugin(ToolPlugin):
    """
    Registers the event reminder tools and runs the reminder loop.

    Args:
        store: Where events live; an in-memory store is created otherwise
        notify: Coroutine that delivers a reminder text; reminders are
            logged and dropped while it is None
        timezone: Zone used to read and show event times
        interval: Seconds between reminder checks
        clock: Returns the current aware datetime (tests pin it)
    """

    name = "event-reminder"

    def __init__(
        self,
        store: KeyValueStore | None = None,
        notify: Notifier | None = None,
        timezone: str = "Asia/Tokyo",
        interval: float = CHECK_INTERVAL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store if store is not None else MemoryKeyValueStore()
        self.notify = notify
        self._tz = ZoneInfo(timezone)
        self._interval = interval
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._task: asyncio.Task | None = None

    def register(self, registry: ToolRegistry) -> None:
        registry.register(EVENT_REMINDER_SPEC, self.handle_add)
        registry.register(EVENT_LIST_SPEC, self.handle_list)
        registry.register(EVENT_DELETE_SPEC, self.handle_delete)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="event-reminder")
            logger.info(f"Reminder loop started (every {self._interval:g}s)")

    async def shutdown(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _run(self) -> None:
        while True:
            try:
                await self.check_reminders()
            except Exception:
                logger.exception("Reminder check failed")
            await asyncio.sleep(self._interval)

    # ------------------------------------------------------------------
    # Tool handlers
    # ------------------------------------------------------------------

    async def handle_add(self, args: dict[str, Any], context: ToolContext) -> str:
        if not context.guild_id:
            return "Event reminders are only available inside a server."
        return self.add_event(context.guild_id, args, created_by=context.user_id or "unknown")

    async def handle_list(self, args: dict[str, Any], context: ToolContext) -> str:
        if not context.guild_id:
            return "Event reminders are only available inside a server."
        needle = str(args.get("name") or "").strip().lower()
        events = [event for event in self.events(context.guild_id) if needle in event.name.lower()]
        if not events:
            return "No events are scheduled :snail:"
        return "\n".join(
            f"- `{event.id}` **{event.name}** {self._format(event.start)}" for event in events
        )

    async def handle_delete(self, args: dict[str, Any], context: ToolContext) -> str:
        if not context.guild_id:
            return "Event reminders are only available inside a server."
        event_id = str(args.get("id") or "").strip()
        if not event_id:
            return "Please give the event id."
        raw = self.store.delete(f"{KEY_PREFIX}{context.guild_id}:{event_id}")
        if raw is None:
            return f"No event with id `{event_id}`."
        logger.info(f"Event {event_id} deleted in guild {context.guild_id}")
        return f"Deleted event `{event_id}` :wave:"

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event(self, guild_id: str, args: dict[str, Any], created_by: str = "unknown") -> str:
        """Validate ``args`` and store a new event. Returns the message for the user."""
        name = normalize_event_name(str(args.get("name") or ""))
        start_text = str(args.get("start") or "").strip()
        if not name:
            return "Please give the event name."
        if not start_text:
            return "Please give the start time."

        now = self._clock()
        start = parse_datetime(start_text, self._tz, now)
        if start is None:
            return "Could not read the start time. Example: `2026-12-25 19:00`"
        if start <= now:
            return "The start time must be in the future."

        end_text = str(args.get("end") or "").strip()
        if end_text:
            end = parse_datetime(end_text, self._tz, now)
            if end is None:
                return "Could not read the end time. Example: `2026-12-25 21:00`"
            if end <= start:
                return "The end time must be after the start time."
        else:
            end = start + DEFAULT_DURATION

        participants = parse_participants(str(args.get("participants") or ""))
        if len(participants) > MAX_PARTICIPANTS:
            return f"At most {MAX_PARTICIPANTS} people can be reminded."

        event = EventReminder(
            id=uuid.uuid4().hex[:8],
            guild_id=guild_id,
            name=name,
            start=start,
            end=end,
            description=str(args.get("description") or "").strip(),
            participants=participants,
            created_by=created_by,
        )
        self._save(event)
        logger.info(f"Event {event.id} ({event.name!r}) created in guild {guild_id}")
        return "\n".join([
            ":calendar: **Event created**",
            "",
            f"**{event.name}**",
            f"Start: {self._format(event.start)}",
            f"Remind: {event.mentions() or '(nobody)'}",
            f"ID: `{event.id}`",
        ])

    def events(self, guild_id: str | None = None) -> list[EventReminder]:
        """Stored events, optionally for one guild, soonest first."""
        prefix = f"{KEY_PREFIX}{guild_id}:" if guild_id else KEY_PREFIX
        events = []
        for key, raw in self.store.items(prefix):
            try:
                events.append(EventReminder.model_validate_json(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable event {key!r}: {e}")
        return sorted(events, key=lambda event: event.start)

    async def check_reminders(self) -> int:
        """Send every reminder that is due now. Returns how many were sent."""
        now = self._clock()
        sent = 0
        for event in self.events():
            if event.end <= now:
                self.store.delete(self._key(event))
                logger.info(f"Event {event.id} ({event.name!r}) is over, removed")
                continue
            due = due_timings(event.start, now, event.notified)
            if not due:
                continue
            for timing in due:
                await self._send(self.format_reminder(event, timing))
                event.notified[timing] = True
                sent += 1
            self._save(event)
        return sent

    def format_reminder(self, event: EventReminder, timing: str) -> str:
        lines = [
            f":bell: **Event reminder ({TIMING_LABELS[timing]})**",
            f"**{event.name}**",
            f"Start: {self._format(event.start)}",
        ]
        if event.description:
            lines.append(event.description)
        if event.participants:
            lines.append(event.mentions())
        return "\n".join(lines)

    async def _send(self, text: str) -> None:
        if self.notify is None:
            logger.warning("No reminder notifier configured, reminder dropped")
            return
        await self.notify(text)

    def _save(self, event: EventReminder) -> None:
        self.store.set(self._key(event), event.model_dump_json())

    def _key(self, event: EventReminder) -> str:
        return f"{KEY_PREFIX}{event.guild_id}:{event.id}"

    def _format(self, value: datetime) -> str:
        return value.astimezone(self._tz).strftime("%Y-%m-%d %H:%M")
