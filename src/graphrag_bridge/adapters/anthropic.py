"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Sequence

from anthropic.types import Message

from graphrag_bridge.types import ChatMessage, ChatResponse, ToolCallRequest, ToolCallResult

# Anthropic requires max_tokens on every request
DEFAULT_MAX_TOKENS = 4096


def _is_tool_results(content: Any) -> bool:
    return (
        isinstance(content, list)
        and bool(content)
        and all(isinstance(b, dict) and b.get("type") == "tool_result" for b in content)
    )


class AnthropicRequestAdapter:
    """Adapter for converting between generic format and Anthropic format."""

    def to_provider(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert generic messages and params to Anthropic request format."""
        anthropic_messages: list[dict[str, Any]] = []
        system_prompt: Any = ""

        for msg in messages:
            if msg["role"] == "system":
                content = msg.get("content", "")
                system_prompt = content if isinstance(content, (str, list)) else str(content)
                continue

            anthropic_msg: dict[str, Any] = {"role": msg["role"]}

            if msg.get("content") is not None:
                content = msg["content"]
                anthropic_msg["content"] = (
                    content if isinstance(content, (str, list)) else str(content)
                )

            # OpenAI-shaped tool results become user tool_result blocks
            if msg.get("tool_call_id"):
                anthropic_msg["content"] = [
                    {
                        "type": "tool_result",
                        "tool_use_id": msg["tool_call_id"],
                        "content": msg.get("content", ""),
                    }
                ]
                anthropic_msg["role"] = "user"

            # all tool_result blocks answering one turn go in a single user message
            previous = anthropic_messages[-1] if anthropic_messages else None
            if (
                previous is not None
                and previous["role"] == "user"
                and anthropic_msg["role"] == "user"
                and _is_tool_results(previous.get("content"))
                and _is_tool_results(anthropic_msg.get("content"))
            ):
                previous["content"] = previous["content"] + anthropic_msg["content"]
                continue

            anthropic_messages.append(anthropic_msg)

        base_params = dict(params)
        base_params.pop("stream", None)
        extras = base_params.pop("extra", {})

        if base_params.get("max_tokens") is None:
            base_params["max_tokens"] = DEFAULT_MAX_TOKENS

        if "stop" in base_params:
            stop = base_params.pop("stop")
            base_params["stop_sequences"] = stop if isinstance(stop, list) else [stop]

        if base_params.get("tools"):
            anthropic_tools = []
            for tool in base_params["tools"]:
                if tool.get("type") == "function":
                    func = tool["function"]
                    anthropic_tools.append(
                        {
                            "name": func["name"],
                            "description": func.get("description", ""),
                            "input_schema": func.get("parameters", {}),
                        }
                    )
                else:
                    anthropic_tools.append(tool)
            base_params["tools"] = anthropic_tools
        else:
            base_params.pop("tools", None)

        for k, v in extras.items():
            base_params.setdefault(k, v)

        request: dict[str, Any] = {"messages": anthropic_messages, **base_params}
        if system_prompt:
            request["system"] = system_prompt
        return request

    def from_provider(self, raw: Message) -> ChatResponse:
        """Convert an Anthropic message to a final ChatResponse."""
        content = ""
        tool_calls = None

        if raw.content:
            text_parts = []
            tool_calls_list = []

            for block in raw.content:
                if block.type == "text":
                    text_parts.append(block.text)
                elif block.type == "tool_use":
                    tool_calls_list.append(
                        ToolCallRequest(
                            id=block.id,
                            name=block.name,
                            arguments=dict(block.input) if hasattr(block.input, "items") else {},
                        )
                    )

            content = "".join(text_parts)
            tool_calls = tool_calls_list or None

        return ChatResponse(content=content, tool_calls=tool_calls, raw=raw, final=True)

    def stream_text(self, raw_chunk: Any) -> ChatResponse:
        """Extract the text delta from an Anthropic streaming event."""
        content = ""

        if getattr(raw_chunk, "type", None) == "content_block_delta":
            delta = getattr(raw_chunk, "delta", None)
            if getattr(delta, "type", None) == "text_delta":
                content = delta.text

        return ChatResponse(content=content, raw=raw_chunk)

    def assistant_message_from(self, raw: Message) -> ChatMessage:
        """Convert an Anthropic message to the assistant ChatMessage for the history."""
        chat_message: ChatMessage = {"role": "assistant"}

        if not raw.content:
            chat_message["content"] = ""
            return chat_message

        text_parts = []
        tool_use_blocks = []

        for block in raw.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_use_blocks.append({
                    "type": "tool_use",
                    "id": block.id,
                    "name": block.name,
                    "input": dict(block.input) if hasattr(block.input, "items") else {},
                })

        if tool_use_blocks:
            content_list = []
            if text_parts:
                content_list.append({"type": "text", "text": "".join(text_parts)})
            content_list.extend(tool_use_blocks)
            chat_message["content"] = content_list
        else:
            chat_message["content"] = "".join(text_parts)

        return chat_message

    def tool_result_message(self, result: ToolCallResult) -> ChatMessage:
        """Convert ToolCallResult to Anthropic ChatMessage."""
        return {
            "role": "user",
            "content": [
                {
                    "type": "tool_result",
                    "tool_use_id": result.id,
                    "content": result.content,
                }
            ],
        }
