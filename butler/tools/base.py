"""
Tool registry and plugin base class.

A tool is a named capability with string arguments. The same registry feeds
both the AI (as ToolDefinitions) and the /butler slash command, so a plugin
registers a tool once and it is reachable from both paths.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

from butler.config.logging import get_logger
from butler.llm.agent import ToolContext
from butler.llm.models import ToolCall, ToolDefinition, ToolParameter, ToolParameters

logger = get_logger(__name__)

ToolHandler = Callable[[dict[str, Any], ToolContext], Awaitable[str]]


class ToolArgument(BaseModel):
    """One string argument of a tool."""

    name: str
    description: str
    required: bool = False


class ToolSpec(BaseModel):
    """
    A tool as users and the AI see it.

    ``ai_hint`` is extra guidance for the model only. It is appended to the
    description as ``AI policy: <hint>``, which the system prompt tells the
    model to follow.

    Example:
        ToolSpec(
            name="wiki",
            description="Quote the Wikipedia summary of a word",
            arguments=[ToolArgument(name="word", description="Search word", required=True)],
            ai_hint="Use only when the user explicitly asks for Wikipedia.",
        )
    """

    name: str = Field(min_length=1)
    description: str
    arguments: list[ToolArgument] = Field(default_factory=list)
    ai_hint: str | None = None

    def to_definition(self) -> ToolDefinition:
        description = self.description
        if self.ai_hint:
            description = f"{description}\nAI policy: {self.ai_hint}"
        return ToolDefinition(
            name=self.name,
            description=description,
            parameters=ToolParameters(
                properties={
                    arg.name: ToolParameter(description=arg.description) for arg in self.arguments
                },
                required=[arg.name for arg in self.arguments if arg.required],
            ),
        )


class ToolRegistry:
    """
    Mapping from tool name to spec and handler.

    Built once during application wiring and passed to whoever needs it.
    Registration order is kept, and re-registering a name replaces the spec
    in place.
    """

    def __init__(self) -> None:
        self._specs: dict[str, ToolSpec] = {}
        self._handlers: dict[str, ToolHandler] = {}

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def register(self, spec: ToolSpec, handler: ToolHandler | None = None) -> None:
        if spec.name in self._specs:
            logger.debug(f"Replacing tool spec {spec.name!r}")
        self._specs[spec.name] = spec
        if handler is not None:
            self._handlers[spec.name] = handler

    def register_handler(self, name: str, handler: ToolHandler) -> None:
        self._handlers[name] = handler

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return list(self._specs)

    def specs(self) -> list[ToolSpec]:
        return list(self._specs.values())

    def definitions(self) -> list[ToolDefinition]:
        """Tool catalog in the form the AI layer advertises to vendors."""
        return [spec.to_definition() for spec in self._specs.values()]

    async def execute(self, call: ToolCall, context: ToolContext | None = None) -> str:
        """
        Run the handler registered for ``call.name``.

        Unknown tools answer with a message instead of raising, so the model
        can recover. Handler exceptions propagate to the caller.
        """
        handler = self._handlers.get(call.name)
        if handler is None:
            logger.warning(f"Unsupported tool requested: {call.name!r}")
            return f"Unsupported command: {call.name}"
        logger.info(f"Executing tool {call.name!r} args={call.arguments}")
        return await handler(call.arguments, context or ToolContext())


class ToolPlugin(ABC):
    """
    A bundle of tools with an optional lifecycle.

    ``register`` is called once at wiring time; ``start`` and ``shutdown``
    follow the bot's lifetime.
    """

    name: str = "plugin"

    @abstractmethod
    def register(self, registry: ToolRegistry) -> None:
        """Add this plugin's specs and handlers to ``registry``."""

    async def start(self) -> None:
        """Acquire resources (clients, schedulers). Default: nothing."""

    async def shutdown(self) -> None:
        """Release what ``start`` acquired. Default: nothing."""

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()
        return False
