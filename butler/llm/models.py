"""
Vendor-neutral data model for the AI layer.

Every provider adapter speaks in these types; the orchestrator and the
conversation store never see a vendor payload.

Messages are a small union:

    TextMessage        system / user / assistant turn with plain text
    ToolCallMessage    assistant asked for one tool invocation
    ToolResultMessage  result of that invocation, keyed back by tool_call_id

Tool parameters are always strings. Tools that need numbers or flags parse
them in their handler, which keeps schema translation identical across
vendors.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

FALLBACK_TEXT = "AIの応答が取得できませんでした。"
"""Returned instead of an empty string when a vendor gives nothing usable."""


class ToolCall(BaseModel):
    """A model-issued request to run one tool."""

    id: str | None = Field(default=None, description="Vendor call id; may be absent")
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolParameter(BaseModel):
    type: Literal["string"] = "string"
    description: str | None = None


class ToolParameters(BaseModel):
    type: Literal["object"] = "object"
    properties: dict[str, ToolParameter] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class ToolDefinition(BaseModel):
    """Schema of a tool as advertised to the model."""

    name: str
    description: str
    parameters: ToolParameters = Field(default_factory=ToolParameters)

    def to_schema(self) -> dict[str, Any]:
        """Plain JSON-schema dict, ``None`` descriptions dropped."""
        return self.model_dump(exclude_none=True)


class TextMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ToolCallMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    tool_call: ToolCall


class ToolResultMessage(BaseModel):
    role: Literal["tool"] = "tool"
    tool_name: str
    tool_call_id: str | None = None
    content: dict[str, Any] = Field(default_factory=dict)


Message = TextMessage | ToolCallMessage | ToolResultMessage


class GenerateRequest(BaseModel):
    messages: list[Message]
    tools: list[ToolDefinition] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    """
    One vendor turn.

    Either ``tool_calls`` is non-empty and ``content`` is None, or ``content``
    holds the final answer.
    """

    content: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


class LLMError(Exception):
    """Base error for the AI layer."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ProviderConfigError(LLMError):
    """Provider could not be built from configuration. Not retryable."""


class ProviderHTTPError(LLMError):
    """Vendor returned a non-success status (or kept failing until retries ran out)."""

    def __init__(self, vendor: str, status: int, body: str):
        super().__init__(f"{vendor}Error:{status} {body}")
        self.vendor = vendor
        self.status = status
        self.body = body
