"""
Provider factory.

Builds exactly one adapter from AISettings and validates the configuration
up front, so a bad deployment fails at startup instead of on the first
mention.
"""

from __future__ import annotations

import httpx

from butler.config.settings import AISettings
from butler.llm.models import ProviderConfigError
from butler.llm.providers.base import AIProvider
from butler.llm.providers.claude import ClaudeProvider
from butler.llm.providers.gemini import DEFAULT_GEMINI_MODEL, GeminiProvider
from butler.llm.providers.openai import OpenAIProvider
from butler.llm.providers.workersai import WorkersAIProvider

PROVIDER_NAMES = ("gemini", "openai", "claude", "workersai")


def create_provider(settings: AISettings, client: httpx.AsyncClient | None = None) -> AIProvider:
    """
    Construct the adapter named by ``settings.provider``.

    Args:
        settings: AI configuration (provider, api_key, model, cloudflare_account_id)
        client: Optional shared HTTP client; the adapter creates its own otherwise

    Raises:
        ProviderConfigError: Unknown provider, or a value the provider needs is missing
    """
    provider = (settings.provider or "gemini").strip().lower()
    if provider not in PROVIDER_NAMES:
        raise ProviderConfigError(
            f"Unsupported provider: {settings.provider!r} (expected one of {', '.join(PROVIDER_NAMES)})"
        )

    if not settings.api_key:
        raise ProviderConfigError("API key is missing. Set AI_API_KEY.")

    timeout = settings.request_timeout

    if provider == "gemini":
        return GeminiProvider(
            settings.api_key, settings.model or DEFAULT_GEMINI_MODEL, client=client, timeout=timeout
        )

    if provider == "workersai" and not settings.cloudflare_account_id:
        raise ProviderConfigError(
            "Cloudflare account ID is missing. Set AI_CLOUDFLARE_ACCOUNT_ID."
        )

    if not settings.model:
        raise ProviderConfigError(f"Model is missing for provider {provider!r}. Set AI_MODEL.")

    if provider == "openai":
        return OpenAIProvider(settings.api_key, settings.model, client=client, timeout=timeout)
    if provider == "claude":
        return ClaudeProvider(settings.api_key, settings.model, client=client, timeout=timeout)
    return WorkersAIProvider(
        settings.api_key,
        settings.cloudflare_account_id,
        settings.model,
        client=client,
        timeout=timeout,
    )
