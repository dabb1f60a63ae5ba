"""
Tests for the OpenAI chat-completions adapter.

Covers:
- Message translation (text, tool call, tool result, placeholder ids)
- tools / tool_choice only when tools are advertised
- Response parsing: tool calls, bad arguments, empty names, fallback text
- Request wiring (URL, bearer header)
"""

from __future__ import annotations

import json

import httpx
import pytest

from butler.llm.models import (
    FALLBACK_TEXT,
    GenerateRequest,
    ProviderHTTPError,
    TextMessage,
    ToolCall,
    ToolCallMessage,
    ToolDefinition,
    ToolParameter,
    ToolParameters,
    ToolResultMessage,
)
from butler.llm.providers.openai import (
    OPENAI_URL,
    OpenAIProvider,
    build_chat_body,
    parse_chat_response,
    parse_tool_arguments,
    to_openai_message,
)


def _make_tool() -> ToolDefinition:
    return ToolDefinition(
        name="wiki",
        description="Look up a word",
        parameters=ToolParameters(
            properties={"word": ToolParameter(description="Word")},
            required=["word"],
        ),
    )


def _make_provider(response_json: dict):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=response_json)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAIProvider("sk-test", "gpt-4o-mini", client=client), seen


class TestToOpenAIMessage:
    def test_text_message(self):
        message = TextMessage(role="user", content="hello")
        assert to_openai_message(message, 0) == {"role": "user", "content": "hello"}

    def test_tool_call_message(self):
        message = ToolCallMessage(
            tool_call=ToolCall(id="call_1", name="wiki", arguments={"word": "富士山"})
        )
        result = to_openai_message(message, 3)

        assert result["role"] == "assistant"
        assert result["content"] is None
        tool_call = result["tool_calls"][0]
        assert tool_call["id"] == "call_1"
        assert tool_call["type"] == "function"
        assert tool_call["function"]["name"] == "wiki"
        assert json.loads(tool_call["function"]["arguments"]) == {"word": "富士山"}
        # Non-ASCII is kept readable
        assert "富士山" in tool_call["function"]["arguments"]

    def test_tool_call_without_id_uses_index_placeholder(self):
        message = ToolCallMessage(tool_call=ToolCall(name="wiki"))
        assert to_openai_message(message, 4)["tool_calls"][0]["id"] == "call_4"

    def test_tool_result_message(self):
        message = ToolResultMessage(tool_name="wiki", tool_call_id="call_1", content={"result": "ok"})
        assert to_openai_message(message, 2) == {
            "role": "tool",
            "tool_call_id": "call_1",
            "name": "wiki",
            "content": '{"result": "ok"}',
        }

    def test_tool_result_without_id_uses_index_placeholder(self):
        message = ToolResultMessage(tool_name="wiki", content={})
        assert to_openai_message(message, 7)["tool_call_id"] == "tool_7"

    def test_tool_call_content_override(self):
        message = ToolCallMessage(tool_call=ToolCall(id="c", name="wiki"))
        assert to_openai_message(message, 0, tool_call_content="")["content"] == ""


class TestBuildChatBody:
    def test_no_tools_omits_tools_and_tool_choice(self):
        request = GenerateRequest(messages=[TextMessage(role="user", content="hi")])
        body = build_chat_body("gpt-4o-mini", request)

        assert body == {"model": "gpt-4o-mini", "messages": [{"role": "user", "content": "hi"}]}

    def test_tools_are_wrapped_as_functions(self):
        request = GenerateRequest(
            messages=[TextMessage(role="user", content="hi")], tools=[_make_tool()]
        )
        body = build_chat_body("gpt-4o-mini", request)

        assert body["tool_choice"] == "auto"
        assert body["tools"] == [
            {
                "type": "function",
                "function": {
                    "name": "wiki",
                    "description": "Look up a word",
                    "parameters": {
                        "type": "object",
                        "properties": {"word": {"type": "string", "description": "Word"}},
                        "required": ["word"],
                    },
                },
            }
        ]


class TestParseToolArguments:
    def test_valid_json(self):
        assert parse_tool_arguments('{"word": "x"}') == {"word": "x"}

    def test_empty_and_missing(self):
        assert parse_tool_arguments("") == {}
        assert parse_tool_arguments(None) == {}

    def test_invalid_json_becomes_empty(self):
        assert parse_tool_arguments("{not json") == {}

    def test_non_object_json_becomes_empty(self):
        assert parse_tool_arguments("[1, 2]") == {}

    def test_dict_passes_through(self):
        assert parse_tool_arguments({"a": "b"}) == {"a": "b"}


class TestParseChatResponse:
    def test_plain_text(self):
        data = {"choices": [{"message": {"role": "assistant", "content": "  Hello!  "}}]}
        response = parse_chat_response(data)

        assert response.content == "Hello!"
        assert response.tool_calls == []

    def test_tool_calls(self):
        data = {
            "choices": [
                {
                    "message": {
                        "content": None,
                        "tool_calls": [
                            {"id": "call_a", "function": {"name": "wiki", "arguments": '{"word":"a"}'}},
                            {"id": "call_b", "function": {"name": "wiki", "arguments": "oops"}},
                        ],
                    }
                }
            ]
        }
        response = parse_chat_response(data)

        assert response.content is None
        assert [c.id for c in response.tool_calls] == ["call_a", "call_b"]
        assert response.tool_calls[0].arguments == {"word": "a"}
        assert response.tool_calls[1].arguments == {}

    def test_tool_calls_with_empty_name_are_dropped(self):
        data = {
            "choices": [
                {
                    "message": {
                        "tool_calls": [
                            {"id": "x", "function": {"name": "", "arguments": "{}"}},
                            {"id": "y", "function": {"name": "wiki", "arguments": "{}"}},
                        ]
                    }
                }
            ]
        }
        response = parse_chat_response(data)
        assert [c.name for c in response.tool_calls] == ["wiki"]

    def test_missing_id_stays_none(self):
        data = {"choices": [{"message": {"tool_calls": [{"function": {"name": "wiki"}}]}}]}
        assert parse_chat_response(data).tool_calls[0].id is None

    def test_empty_content_falls_back(self):
        assert parse_chat_response({"choices": [{"message": {"content": "   "}}]}).content == FALLBACK_TEXT

    def test_empty_payload_falls_back(self):
        assert parse_chat_response({}).content == FALLBACK_TEXT


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_generate_posts_to_openai(self):
        provider, seen = _make_provider({"choices": [{"message": {"content": "pong"}}]})
        request = GenerateRequest(messages=[TextMessage(role="user", content="ping")])

        response = await provider.generate(request)

        assert response.content == "pong"
        assert str(seen[0].url) == OPENAI_URL
        assert seen[0].headers["Authorization"] == "Bearer sk-test"
        assert json.loads(seen[0].content)["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_error_status_surfaces_vendor_name(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
        )
        provider = OpenAIProvider("sk-test", "gpt-4o-mini", client=client)

        with pytest.raises(ProviderHTTPError) as exc_info:
            await provider.generate(GenerateRequest(messages=[TextMessage(role="user", content="x")]))
        assert str(exc_info.value) == "OpenAIError:401 bad key"

    def test_model_property(self):
        assert OpenAIProvider("k", "gpt-4o").model == "gpt-4o"
