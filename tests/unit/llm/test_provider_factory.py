"""Tests for create_provider."""

from __future__ import annotations

import pytest

from butler.config.settings import AISettings
from butler.llm.models import ProviderConfigError
from butler.llm.providers import (
    ClaudeProvider,
    GeminiProvider,
    OpenAIProvider,
    WorkersAIProvider,
    create_provider,
)


def _make_settings(**kwargs) -> AISettings:
    defaults = dict(provider="gemini", api_key="key", model=None, cloudflare_account_id=None)
    defaults.update(kwargs)
    return AISettings(**defaults)


class TestCreateProvider:
    def test_gemini_defaults_model(self):
        provider = create_provider(_make_settings(provider="gemini"))
        assert isinstance(provider, GeminiProvider)
        assert provider.model == "gemini-2.5-flash"

    def test_gemini_respects_model(self):
        provider = create_provider(_make_settings(provider="gemini", model="gemini-2.5-pro"))
        assert provider.model == "gemini-2.5-pro"

    def test_openai(self):
        provider = create_provider(_make_settings(provider="openai", model="gpt-4o-mini"))
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o-mini"

    def test_claude(self):
        provider = create_provider(_make_settings(provider="claude", model="claude-sonnet-4-5"))
        assert isinstance(provider, ClaudeProvider)

    def test_workersai(self):
        provider = create_provider(
            _make_settings(provider="workersai", model="@cf/x", cloudflare_account_id="acct")
        )
        assert isinstance(provider, WorkersAIProvider)
        assert "acct" in provider.url

    def test_provider_name_is_case_insensitive(self):
        provider = create_provider(_make_settings(provider=" OpenAI ", model="gpt-4o"))
        assert isinstance(provider, OpenAIProvider)

    def test_unknown_provider(self):
        with pytest.raises(ProviderConfigError, match="Unsupported provider"):
            create_provider(_make_settings(provider="llama"))

    def test_missing_api_key(self):
        with pytest.raises(ProviderConfigError, match="API key is missing"):
            create_provider(_make_settings(api_key=""))

    @pytest.mark.parametrize("name", ["openai", "claude"])
    def test_missing_model(self, name):
        with pytest.raises(ProviderConfigError, match="Model is missing"):
            create_provider(_make_settings(provider=name))

    def test_workersai_missing_account(self):
        with pytest.raises(ProviderConfigError, match="Cloudflare account ID is missing"):
            create_provider(_make_settings(provider="workersai", model="@cf/x"))

    def test_workersai_missing_model(self):
        with pytest.raises(ProviderConfigError, match="Model is missing"):
            create_provider(_make_settings(provider="workersai", cloudflare_account_id="acct"))

    def test_request_timeout_is_passed_through(self):
        provider = create_provider(_make_settings(request_timeout=12.5))
        assert provider._timeout == 12.5
