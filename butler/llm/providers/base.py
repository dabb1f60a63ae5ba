"""
Base class for AI provider adapters.

An adapter owns one vendor's wire format: it turns a GenerateRequest into the
vendor's JSON body, posts it through the shared retrying helper, and turns
the vendor's reply back into a GenerateResponse.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from butler.llm.models import GenerateRequest, GenerateResponse
from butler.llm.providers.http import RetryPolicy, post_json_with_retry

DEFAULT_TIMEOUT = 60.0


class AIProvider(ABC):
    """
    Common interface of every vendor adapter.

    Subclasses set ``vendor`` (used in error messages) and ``retry_policy``,
    and implement ``generate``. The HTTP client is created lazily unless one
    is injected, which is how tests plug in ``httpx.MockTransport``.
    """

    vendor: str = "AI"
    retry_policy: RetryPolicy = RetryPolicy()

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = DEFAULT_TIMEOUT):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    @abstractmethod
    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """
        Send one chat turn to the vendor.

        Raises:
            ProviderHTTPError: Non-retryable status, or retries exhausted
            httpx.TransportError: Network failure on every attempt
        """

    async def _post(self, url: str, body: dict, headers: dict[str, str] | None = None) -> dict:
        return await post_json_with_retry(
            self.client,
            url,
            body,
            vendor=self.vendor,
            headers=headers,
            policy=self.retry_policy,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False
