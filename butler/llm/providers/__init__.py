"""
AI provider adapters.

One adapter per vendor dialect, all implementing ``AIProvider.generate``.
Use ``create_provider`` to pick one from configuration.
"""

from butler.llm.providers.base import AIProvider
from butler.llm.providers.claude import ClaudeProvider
from butler.llm.providers.factory import PROVIDER_NAMES, create_provider
from butler.llm.providers.gemini import GeminiProvider
from butler.llm.providers.http import RetryPolicy, post_json_with_retry
from butler.llm.providers.openai import OpenAIProvider
from butler.llm.providers.workersai import WorkersAIProvider

__all__ = [
    "AIProvider",
    "ClaudeProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "WorkersAIProvider",
    "PROVIDER_NAMES",
    "RetryPolicy",
    "create_provider",
    "post_json_with_retry",
]
