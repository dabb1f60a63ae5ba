"""
Anthropic Messages API adapter.

Differences from the OpenAI dialect:
- system turns are lifted out of ``messages`` into a top-level ``system``
  string (joined with newlines)
- tool results travel as a ``user`` turn holding a ``tool_result`` block
- tool calls are ``tool_use`` content blocks; a response counts as
  tool-calling when such blocks exist or ``stop_reason`` is ``tool_use``
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from butler.llm.models import (
    FALLBACK_TEXT,
    GenerateRequest,
    GenerateResponse,
    Message,
    TextMessage,
    ToolCall,
    ToolCallMessage,
    ToolDefinition,
    ToolResultMessage,
)
from butler.llm.providers.base import DEFAULT_TIMEOUT, AIProvider

CLAUDE_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1024


def extract_system(messages: list[Message]) -> str | None:
    parts = [m.content for m in messages if isinstance(m, TextMessage) and m.role == "system"]
    return "\n".join(parts) if parts else None


def to_claude_messages(messages: list[Message]) -> list[dict[str, Any]]:
    result: list[dict[str, Any]] = []
    for index, message in enumerate(messages):
        if isinstance(message, ToolResultMessage):
            result.append({
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": message.tool_call_id or f"tool_{index}",
                        "content": json.dumps(message.content, ensure_ascii=False),
                    }
                ],
            })
        elif isinstance(message, ToolCallMessage):
            call = message.tool_call
            result.append({
                "role": "assistant",
                "content": [
                    {
                        "type": "tool_use",
                        "id": call.id or f"call_{index}",
                        "name": call.name,
                        "input": call.arguments,
                    }
                ],
            })
        elif message.role != "system":
            result.append({
                "role": message.role,
                "content": [{"type": "text", "text": message.content}],
            })
    return result


def to_claude_tools(tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameters.model_dump(exclude_none=True),
        }
        for tool in tools
    ]


def parse_claude_response(data: dict[str, Any]) -> GenerateResponse:
    blocks = data.get("content") or []

    calls = [
        ToolCall(
            id=block.get("id") or None,
            name=block["name"],
            arguments=block.get("input") if isinstance(block.get("input"), dict) else {},
        )
        for block in blocks
        if block.get("type") == "tool_use" and block.get("name")
    ]
    if calls or data.get("stop_reason") == "tool_use":
        return GenerateResponse(tool_calls=calls)

    text = "\n".join(
        block["text"] for block in blocks if block.get("type") == "text" and block.get("text")
    ).strip()
    return GenerateResponse(content=text or FALLBACK_TEXT)


class ClaudeProvider(AIProvider):
    vendor = "Claude"

    def __init__(
        self,
        api_key: str,
        model: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_tokens: int = MAX_TOKENS,
    ):
        super().__init__(client=client, timeout=timeout)
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens

    @property
    def model(self) -> str:
        return self._model

    def build_body(self, request: GenerateRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": to_claude_messages(request.messages),
        }
        system = extract_system(request.messages)
        if system is not None:
            body["system"] = system
        if request.tools:
            body["tools"] = to_claude_tools(request.tools)
            body["tool_choice"] = {"type": "auto"}
        return body

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        data = await self._post(
            CLAUDE_URL,
            self.build_body(request),
            headers={"x-api-key": self._api_key, "anthropic-version": ANTHROPIC_VERSION},
        )
        return parse_claude_response(data)
