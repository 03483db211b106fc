"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from openai.types.chat import ChatCompletion, ChatCompletionChunk

from graphrag_bridge.types import ChatMessage, ChatResponse, ToolCallRequest, ToolCallResult

_logger = logging.getLogger(__name__)


def parse_tool_arguments(raw_args: Any) -> dict[str, Any]:
    """Decode function-call arguments; malformed JSON yields an empty dict."""
    if isinstance(raw_args, dict):
        return raw_args
    if isinstance(raw_args, str) and raw_args.strip():
        try:
            decoded = json.loads(raw_args)
        except json.JSONDecodeError:
            _logger.warning("Bad JSON in tool call arguments: %s", raw_args)
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


class OpenAIRequestAdapter:
    """Adapter for converting between generic format and OpenAI format."""

    def to_provider(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert generic messages and params to OpenAI request format."""
        openai_messages: list[dict[str, Any]] = []
        for msg in messages:
            openai_msg: dict[str, Any] = {"role": msg["role"]}

            if msg.get("content") is not None:
                openai_msg["content"] = msg["content"]

            if msg.get("tool_calls"):
                openai_msg["tool_calls"] = msg["tool_calls"]
                # content must be null when tool_calls is present
                if "content" not in openai_msg:
                    openai_msg["content"] = None

            if msg.get("tool_call_id"):
                openai_msg["tool_call_id"] = msg["tool_call_id"]

            if msg.get("name"):
                openai_msg["name"] = msg["name"]

            if "content" not in openai_msg and not openai_msg.get("tool_calls"):
                openai_msg["content"] = ""

            openai_messages.append(openai_msg)

        base_params = dict(params)
        base_params.pop("stream", None)
        extras = base_params.pop("extra", {})
        if not base_params.get("tools"):
            base_params.pop("tools", None)
        for k, v in extras.items():
            base_params.setdefault(k, v)

        return {"messages": openai_messages, **base_params}

    def from_provider(self, raw: ChatCompletion) -> ChatResponse:
        """Convert an OpenAI completion to a final ChatResponse."""
        content = ""
        tool_calls = None

        if raw.choices and raw.choices[0].message:
            message = raw.choices[0].message
            content = message.content or ""
            if message.tool_calls:
                tool_calls = [
                    ToolCallRequest(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=parse_tool_arguments(tc.function.arguments),
                    )
                    for tc in message.tool_calls
                ]

        return ChatResponse(content=content, tool_calls=tool_calls, raw=raw, final=True)

    def stream_text(self, raw_chunk: ChatCompletionChunk) -> ChatResponse:
        """Extract the text delta from a streaming chunk."""
        content = ""
        if raw_chunk.choices and raw_chunk.choices[0].delta:
            content = raw_chunk.choices[0].delta.content or ""

        return ChatResponse(content=content, raw=raw_chunk)

    def assistant_message_from(self, raw: ChatCompletion) -> ChatMessage:
        """Convert an OpenAI completion to the assistant ChatMessage for the history."""
        if not raw.choices or not raw.choices[0].message:
            return {"role": "assistant", "content": ""}

        message = raw.choices[0].message
        chat_message: ChatMessage = {"role": "assistant"}

        if message.content:
            chat_message["content"] = message.content

        if message.tool_calls:
            chat_message["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": tc.type,
                    "function": {
                        "name": tc.function.name,
                        "arguments": tc.function.arguments,
                    },
                }
                for tc in message.tool_calls
            ]
            if "content" not in chat_message:
                chat_message["content"] = None

        return chat_message

    def tool_result_message(self, result: ToolCallResult) -> ChatMessage:
        """Convert ToolCallResult to OpenAI ChatMessage."""
        return {
            "role": "tool",
            "tool_call_id": result.id,
            "content": result.content
            if isinstance(result.content, str)
            else json.dumps(result.content, default=str),
        }
