"""
Retrying JSON POST shared by all provider adapters.

Backoff doubles from ``base_delay`` after each failed attempt
(0.5s, 1s, 2s with the defaults), for ``max_retries`` retries on top of the
first attempt. Only the statuses in the policy are retried; any other error
status is raised at once. Network errors without a status are retried on the
same budget and re-raised when it runs out.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from butler.config.logging import get_logger
from butler.llm.models import ProviderHTTPError

logger = get_logger(__name__)

DEFAULT_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 0.5
    retry_statuses: frozenset[int] = field(default=DEFAULT_RETRY_STATUSES)

    def should_retry(self, status: int) -> bool:
        return status in self.retry_statuses

    def delay(self, attempt: int) -> float:
        """Wait before the retry that follows ``attempt`` (0-based)."""
        return self.base_delay * 2**attempt


async def post_json_with_retry(
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    *,
    vendor: str,
    headers: dict[str, str] | None = None,
    policy: RetryPolicy = RetryPolicy(),
) -> dict[str, Any]:
    """
    POST ``body`` as JSON and return the decoded JSON object.

    A success response whose body is not a JSON object decodes to ``{}`` so
    the adapters fall back to their placeholder text instead of failing.

    Raises:
        ProviderHTTPError: Non-retryable status, or retryable status on the last attempt
        httpx.TransportError: Network failure on the last attempt
    """
    request_headers = {"Content-Type": "application/json", **(headers or {})}

    for attempt in range(policy.max_retries + 1):
        is_last = attempt >= policy.max_retries
        try:
            response = await client.post(url, json=body, headers=request_headers)
        except httpx.TransportError as e:
            if is_last:
                raise
            delay = policy.delay(attempt)
            logger.warning(
                f"{vendor} request failed ({type(e).__name__}: {e}); "
                f"retry {attempt + 1}/{policy.max_retries} in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            continue

        if response.is_success:
            return _decode(response)

        if policy.should_retry(response.status_code) and not is_last:
            delay = policy.delay(attempt)
            logger.warning(
                f"{vendor} returned {response.status_code}; "
                f"retry {attempt + 1}/{policy.max_retries} in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            continue

        raise ProviderHTTPError(vendor, response.status_code, response.text)

    # range() above always returns or raises on its last iteration
    raise ProviderHTTPError(vendor, 0, "RetryFailed")


def _decode(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning(f"Non-JSON success body from {response.request.url}")
        return {}
    return data if isinstance(data, dict) else {}
