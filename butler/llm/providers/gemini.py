"""
Google Gemini ``generateContent`` adapter.

Gemini correlates tool results by function name only, so call ids are never
sent. It also retries a narrower set of statuses than the other vendors.
"""

from __future__ import annotations

from typing import Any

import httpx

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
from butler.llm.providers.http import RetryPolicy

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


def to_gemini_content(message: Message) -> dict[str, Any]:
    if isinstance(message, ToolResultMessage):
        return {
            "role": "tool",
            "parts": [{"functionResponse": {"name": message.tool_name, "response": message.content}}],
        }
    if isinstance(message, ToolCallMessage):
        call = message.tool_call
        return {
            "role": "model",
            "parts": [{"functionCall": {"name": call.name, "args": call.arguments}}],
        }
    # Gemini only knows user/model for text turns; system text rides as user
    role = "model" if message.role == "assistant" else "user"
    return {"role": role, "parts": [{"text": message.content}]}


def to_gemini_tools(tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    return [
        {
            "functionDeclarations": [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters.model_dump(exclude_none=True),
                }
                for tool in tools
            ]
        }
    ]


def parse_gemini_response(data: dict[str, Any]) -> GenerateResponse:
    candidates = data.get("candidates") or [{}]
    parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []

    calls = []
    for part in parts:
        function_call = part.get("functionCall")
        if not function_call or not function_call.get("name"):
            continue
        args = function_call.get("args")
        calls.append(ToolCall(name=function_call["name"], arguments=args if isinstance(args, dict) else {}))
    if calls:
        return GenerateResponse(tool_calls=calls)

    text = "\n".join(part["text"] for part in parts if part.get("text")).strip()
    return GenerateResponse(content=text or FALLBACK_TEXT)


class GeminiProvider(AIProvider):
    vendor = "Gemini"
    retry_policy = RetryPolicy(retry_statuses=frozenset({429, 500, 503}))

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(client=client, timeout=timeout)
        self._api_key = api_key
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    @property
    def url(self) -> str:
        return f"{GEMINI_URL.format(model=self._model)}?key={self._api_key}"

    def build_body(self, request: GenerateRequest) -> dict[str, Any]:
        body: dict[str, Any] = {"contents": [to_gemini_content(m) for m in request.messages]}
        # Some Gemini configurations reject an empty tools array
        if request.tools:
            body["tools"] = to_gemini_tools(request.tools)
        return body

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        data = await self._post(self.url, self.build_body(request))
        return parse_gemini_response(data)
