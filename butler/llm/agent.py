"""
Agent Orchestrator - bounded tool-calling loop.

Data flow for one ``reply()``:

    caller history  →  [system prompt] + history
                            ↓
                  AIProvider.generate(messages, tools)
                            ↓
               tool calls?  ── yes →  run all calls concurrently via the
                   │                  injected executor, append one
                   │                  (ToolCallMessage, ToolResultMessage)
                   │                  pair per call, loop
                   no
                   ↓
              final text  →  caller

The orchestrator keeps no state between calls. Provider and tool failures
never escape ``reply()``: they come back as a short ``AI_ERROR`` code block so
the Discord layer can post it as-is.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from butler.config.logging import get_logger
from butler.llm.models import (
    FALLBACK_TEXT,
    GenerateRequest,
    Message,
    TextMessage,
    ToolCall,
    ToolCallMessage,
    ToolDefinition,
    ToolResultMessage,
)
from butler.llm.providers.base import AIProvider

logger = get_logger(__name__)

ERROR_CODE = "AI_ERROR"
DEFAULT_MAX_ITERATIONS = 3

SYSTEM_PROMPT = """\
You are butler, a Discord bot.
The only capabilities you have are the slash-command tools you are given.
Call a tool only when it is needed.
Answer ordinary questions and small talk naturally, without tools.
Current date and time ({timezone}): {now}
Follow the tool descriptions and their "AI policy: ..." notes first.
Keep clarifying questions to a minimum; if a request can be carried out, do it in one go.
Briefly report any values you filled in yourself along with the result.
Never assume the result of a tool you have not run."""


@dataclass(frozen=True)
class ToolContext:
    """Who triggered a tool call, forwarded to tool handlers."""

    guild_id: str | None = None
    user_id: str | None = None


ToolExecutor = Callable[[ToolCall, ToolContext | None], Awaitable[str]]


def format_code_block(text: str, language: str = "text") -> str:
    return f"```{language}\n{text}\n```"


class AgentOrchestrator:
    """
    Runs the tool-calling loop against one provider.

    Args:
        provider: Vendor adapter used for every round
        tools: Tool catalog advertised to the model
        tool_executor: ``await tool_executor(call, context) -> str``
        prompt_append: Extra policy text appended to the system prompt
        max_iterations: Provider calls allowed per reply (default 3)
        tool_timeout: Seconds a single tool call may take; None or 0 disables
        timezone: Zone used for the clock line in the system prompt
        debug: Log a summary of every request at DEBUG
    """

    def __init__(
        self,
        provider: AIProvider,
        tools: list[ToolDefinition],
        tool_executor: ToolExecutor,
        *,
        prompt_append: str = "",
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tool_timeout: float | None = None,
        timezone: str = "Asia/Tokyo",
        debug: bool = False,
    ):
        self._provider = provider
        self._tools = list(tools)
        self._tool_executor = tool_executor
        self._prompt_append = prompt_append.strip()
        self._max_iterations = max_iterations
        self._tool_timeout = tool_timeout or None
        self._timezone = ZoneInfo(timezone)
        self._debug = debug

    @property
    def provider(self) -> AIProvider:
        return self._provider

    @property
    def tools(self) -> list[ToolDefinition]:
        return list(self._tools)

    async def reply(self, messages: list[Message], context: ToolContext | None = None) -> str:
        """
        Produce a reply for ``messages``.

        Returns the model's text, ``FALLBACK_TEXT`` when the loop runs out of
        iterations, or an ``AI_ERROR`` code block when anything fails.
        """
        try:
            return await self._reply_with_tools(messages, context)
        except Exception as e:
            logger.warning(f"AI reply failed: {type(e).__name__}: {e}")
            detail = str(e) or type(e).__name__
            return format_code_block(f"{ERROR_CODE}\n{detail}")

    def build_system_message(self) -> TextMessage:
        now = datetime.now(self._timezone).strftime("%Y-%m-%d %H:%M:%S")
        content = SYSTEM_PROMPT.format(timezone=self._timezone.key, now=now)
        if self._prompt_append:
            content = f"{content}\n{self._prompt_append}"
        return TextMessage(role="system", content=content)

    async def _reply_with_tools(self, messages: list[Message], context: ToolContext | None) -> str:
        current: list[Message] = [self.build_system_message(), *messages]

        for iteration in range(1, self._max_iterations + 1):
            request = GenerateRequest(messages=current, tools=self._tools)
            if self._debug:
                logger.debug(
                    f"Round {iteration}: {len(current)} messages, {len(self._tools)} tools "
                    f"→ {type(self._provider).__name__}"
                )

            started = time.perf_counter()
            response = await self._provider.generate(request)
            elapsed = time.perf_counter() - started

            if response.tool_calls:
                logger.info(
                    f"Round {iteration}/{self._max_iterations}: {len(response.tool_calls)} tool call(s) "
                    f"({', '.join(c.name for c in response.tool_calls)}) after {elapsed:.2f}s"
                )
                # gather() keeps the provider's order regardless of completion order
                pairs = await asyncio.gather(
                    *(self._execute_tool(call, context) for call in response.tool_calls)
                )
                current = current + [message for pair in pairs for message in pair]
                continue

            if response.content:
                logger.info(f"Round {iteration}/{self._max_iterations}: final answer after {elapsed:.2f}s")
                return response.content

        logger.warning(f"No final answer after {self._max_iterations} rounds")
        return FALLBACK_TEXT

    async def _execute_tool(
        self, call: ToolCall, context: ToolContext | None
    ) -> tuple[ToolCallMessage, ToolResultMessage]:
        call = self._ensure_tool_call_id(call)

        started = time.perf_counter()
        if self._tool_timeout:
            result = await asyncio.wait_for(self._tool_executor(call, context), self._tool_timeout)
        else:
            result = await self._tool_executor(call, context)
        logger.debug(f"Tool {call.name} ({call.id}) finished in {time.perf_counter() - started:.2f}s")

        return (
            ToolCallMessage(tool_call=call),
            ToolResultMessage(tool_name=call.name, tool_call_id=call.id, content={"result": result}),
        )

    @staticmethod
    def _ensure_tool_call_id(call: ToolCall) -> ToolCall:
        if call.id:
            return call
        return call.model_copy(update={"id": f"call_{uuid.uuid4().hex}"})
