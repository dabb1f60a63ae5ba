"""
Tests for the shared retrying POST helper.

Covers:
- Success on the first attempt
- Retryable statuses: up to 3 retries with 0.5s / 1s / 2s backoff
- Non-retryable statuses raise at once
- Gemini's narrower retry set
- Network errors are retried, then re-raised
- Non-JSON success bodies decode to {}
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from butler.llm.models import ProviderHTTPError
from butler.llm.providers.gemini import GeminiProvider
from butler.llm.providers.http import RetryPolicy, post_json_with_retry

URL = "https://vendor.test/v1/chat"


def _make_client(statuses: list[int], final_body: dict | None = None):
    """Client whose responses follow ``statuses``; the last one repeats."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status = statuses[min(len(seen) - 1, len(statuses) - 1)]
        if status == 200:
            return httpx.Response(200, json=final_body or {"ok": True})
        return httpx.Response(status, text=f"status {status}")

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), seen


class TestRetryPolicy:
    def test_default_delays_double(self):
        policy = RetryPolicy()
        assert [policy.delay(n) for n in range(3)] == [0.5, 1.0, 2.0]

    def test_default_retry_statuses(self):
        policy = RetryPolicy()
        for status in (429, 500, 502, 503, 504):
            assert policy.should_retry(status)
        for status in (400, 401, 403, 404):
            assert not policy.should_retry(status)


class TestPostJsonWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        client, seen = _make_client([200], {"answer": 42})
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
            data = await post_json_with_retry(client, URL, {"q": "hi"}, vendor="Test")

        assert data == {"answer": 42}
        assert len(seen) == 1
        sleep.assert_not_called()
        assert json.loads(seen[0].content) == {"q": "hi"}
        assert seen[0].headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_extra_headers_are_sent(self):
        client, seen = _make_client([200])
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock):
            await post_json_with_retry(
                client, URL, {}, vendor="Test", headers={"Authorization": "Bearer k"}
            )
        assert seen[0].headers["Authorization"] == "Bearer k"

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        """Two 503s followed by a 200: three requests, delays 0.5s then 1s."""
        client, seen = _make_client([503, 503, 200], {"ok": 1})
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
            data = await post_json_with_retry(client, URL, {}, vendor="Test")

        assert data == {"ok": 1}
        assert len(seen) == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_four_attempts(self):
        client, seen = _make_client([429])
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ProviderHTTPError) as exc_info:
                await post_json_with_retry(client, URL, {}, vendor="OpenAI")

        assert len(seen) == 4
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0, 2.0]
        assert exc_info.value.status == 429
        assert str(exc_info.value) == "OpenAIError:429 status 429"

    @pytest.mark.asyncio
    async def test_non_retryable_status_raises_immediately(self):
        client, seen = _make_client([400])
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ProviderHTTPError) as exc_info:
                await post_json_with_retry(client, URL, {}, vendor="Claude")

        assert len(seen) == 1
        sleep.assert_not_called()
        assert exc_info.value.vendor == "Claude"
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_narrow_policy_does_not_retry_502(self):
        client, seen = _make_client([502])
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(ProviderHTTPError):
                await post_json_with_retry(
                    client, URL, {}, vendor="Gemini", policy=GeminiProvider.retry_policy
                )
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_narrow_policy_retries_500(self):
        client, seen = _make_client([500, 200])
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock):
            await post_json_with_retry(
                client, URL, {}, vendor="Gemini", policy=GeminiProvider.retry_policy
            )
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_network_error_retried_then_reraised(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(httpx.ConnectError):
                await post_json_with_retry(client, URL, {}, vendor="Test")

        assert len(attempts) == 4
        assert sleep.await_count == 3

    @pytest.mark.asyncio
    async def test_network_error_then_success(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"ok": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with patch("butler.llm.providers.http.asyncio.sleep", new_callable=AsyncMock):
            data = await post_json_with_retry(client, URL, {}, vendor="Test")

        assert data == {"ok": True}
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_non_json_success_body_decodes_to_empty_dict(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        )
        data = await post_json_with_retry(client, URL, {}, vendor="Test")
        assert data == {}

    @pytest.mark.asyncio
    async def test_json_array_body_decodes_to_empty_dict(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[1, 2]))
        )
        assert await post_json_with_retry(client, URL, {}, vendor="Test") == {}
