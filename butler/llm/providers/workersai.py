"""Cloudflare Workers AI adapter (OpenAI-compatible endpoint)."""

from __future__ import annotations

import httpx

from butler.llm.models import GenerateRequest, GenerateResponse
from butler.llm.providers.base import DEFAULT_TIMEOUT, AIProvider
from butler.llm.providers.openai import build_chat_body, parse_chat_response

WORKERS_AI_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/v1/chat/completions"


class WorkersAIProvider(AIProvider):
    vendor = "WorkersAI"

    def __init__(
        self,
        api_key: str,
        account_id: str,
        model: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(client=client, timeout=timeout)
        self._api_key = api_key
        self._account_id = account_id
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    @property
    def url(self) -> str:
        return WORKERS_AI_URL.format(account_id=self._account_id)

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        # Workers AI rejects a null content next to tool_calls
        body = build_chat_body(self._model, request, tool_call_content="")
        data = await self._post(
            self.url, body, headers={"Authorization": f"Bearer {self._api_key}"}
        )
        return parse_chat_response(data)
