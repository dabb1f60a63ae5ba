"""
AI layer.

Normalizes requests and responses across AI vendors and runs the
tool-calling loop:

    conversation history (from ConversationStore)
                    ↓
    AgentOrchestrator.reply(messages)  ←→  ToolRegistry.execute (tool rounds)
                    ↓
    AIProvider.generate(request)       →  vendor HTTP API
                    ↓
    plain text  →  Discord bot layer

The orchestrator is stateless per call; session memory lives in
``butler.conversation``.
"""

from butler.llm.agent import AgentOrchestrator, ToolContext, ToolExecutor
from butler.llm.models import (
    FALLBACK_TEXT,
    GenerateRequest,
    GenerateResponse,
    LLMError,
    Message,
    ProviderConfigError,
    ProviderHTTPError,
    TextMessage,
    ToolCall,
    ToolCallMessage,
    ToolDefinition,
    ToolResultMessage,
)

__all__ = [
    "AgentOrchestrator",
    "FALLBACK_TEXT",
    "GenerateRequest",
    "GenerateResponse",
    "LLMError",
    "Message",
    "ProviderConfigError",
    "ProviderHTTPError",
    "TextMessage",
    "ToolCall",
    "ToolCallMessage",
    "ToolContext",
    "ToolDefinition",
    "ToolExecutor",
    "ToolResultMessage",
]
