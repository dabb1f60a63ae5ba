"""
OpenAI chat-completions adapter.

The translation helpers here are shared with the Workers AI adapter, which
speaks the same dialect on a different host.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from butler.config.logging import get_logger
from butler.llm.models import (
    FALLBACK_TEXT,
    GenerateRequest,
    GenerateResponse,
    Message,
    ToolCall,
    ToolCallMessage,
    ToolDefinition,
    ToolResultMessage,
)
from butler.llm.providers.base import DEFAULT_TIMEOUT, AIProvider

logger = get_logger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def to_openai_message(
    message: Message, index: int, tool_call_content: str | None = None
) -> dict[str, Any]:
    """
    Convert one message to the chat-completions shape.

    ``index`` feeds the placeholder ids used when a history entry carries no
    id. ``tool_call_content`` is the ``content`` value sent alongside
    ``tool_calls``: OpenAI wants null, Workers AI wants an empty string.
    """
    if isinstance(message, ToolResultMessage):
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id or f"tool_{index}",
            "name": message.tool_name,
            "content": json.dumps(message.content, ensure_ascii=False),
        }

    if isinstance(message, ToolCallMessage):
        call = message.tool_call
        return {
            "role": "assistant",
            "content": tool_call_content,
            "tool_calls": [
                {
                    "id": call.id or f"call_{index}",
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
            ],
        }

    return {"role": message.role, "content": message.content}


def to_openai_tools(tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    return [{"type": "function", "function": tool.to_schema()} for tool in tools]


def build_chat_body(
    model: str, request: GenerateRequest, tool_call_content: str | None = None
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "messages": [
            to_openai_message(message, index, tool_call_content)
            for index, message in enumerate(request.messages)
        ],
    }
    if request.tools:
        body["tools"] = to_openai_tools(request.tools)
        body["tool_choice"] = "auto"
    return body


def parse_tool_arguments(raw: Any) -> dict[str, Any]:
    """Decode a JSON arguments string; anything unusable becomes ``{}``."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Discarding unparseable tool arguments: {raw!r}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def parse_chat_response(data: dict[str, Any]) -> GenerateResponse:
    """Read ``choices[0].message`` into a GenerateResponse."""
    choices = data.get("choices") or [{}]
    message = (choices[0] or {}).get("message") or {}

    raw_calls = message.get("tool_calls") or []
    if raw_calls:
        calls = []
        for raw in raw_calls:
            function = raw.get("function") or {}
            name = function.get("name") or ""
            if not name:
                continue
            calls.append(
                ToolCall(
                    id=raw.get("id") or None,
                    name=name,
                    arguments=parse_tool_arguments(function.get("arguments")),
                )
            )
        return GenerateResponse(tool_calls=calls)

    content = (message.get("content") or "").strip()
    return GenerateResponse(content=content or FALLBACK_TEXT)


class OpenAIProvider(AIProvider):
    """Adapter for ``POST /v1/chat/completions``."""

    vendor = "OpenAI"

    def __init__(
        self,
        api_key: str,
        model: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(client=client, timeout=timeout)
        self._api_key = api_key
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        body = build_chat_body(self._model, request)
        data = await self._post(
            OPENAI_URL, body, headers={"Authorization": f"Bearer {self._api_key}"}
        )
        return parse_chat_response(data)
