"""
Tool-calling loop that drives a chat model until it stops asking for tools.

The loop is an async generator of LangGraph-style events, so it does no work
ahead of its consumer: closing the generator stops the run before the next
model request or tool call.
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Optional, Sequence

from graphrag_bridge.errors import AgentLoopError
from graphrag_bridge.models import BaseChatModel
from graphrag_bridge.tools import ToolRegistry
from graphrag_bridge.types import AgentMessage, ChatMessage, ChatResponse, ToolCallResult

__all__ = ["ToolCallingLoop", "DEFAULT_MAX_ITERATIONS", "message_text"]

_logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 25


def message_text(message: Optional[ChatMessage]) -> str:
    """Text of a history message; block lists contribute their text blocks."""
    if not message:
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


class ToolCallingLoop:
    """Alternate model turns and tool executions over one growing history."""

    def __init__(
        self,
        model: BaseChatModel,
        registry: ToolRegistry,
        *,
        system_prompt: Optional[str] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.model = model
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.logger = logger or _logger

    def _initial_history(self, messages: Sequence[AgentMessage]) -> list[ChatMessage]:
        history: list[ChatMessage] = []
        if self.system_prompt:
            history.append({"role": "system", "content": self.system_prompt})
        history.extend({"role": m["role"], "content": m["content"]} for m in messages)
        return history

    async def astream_events(
        self, messages: Sequence[AgentMessage]
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Run the loop, yielding events as they happen.

        Raises:
            ModelCallError: The model reported an error.
            AgentLoopError: The model kept requesting tools past ``max_iterations``.
        """
        history = self._initial_history(messages)
        tools = self.registry.specs()

        for iteration in range(1, self.max_iterations + 1):
            final: Optional[ChatResponse] = None
            async with aclosing(self.model.stream(history, tools=tools)) as responses:
                async for response in responses:
                    response.raise_for_error()
                    if response.final:
                        final = response
                    elif response.content:
                        yield {
                            "event": "on_chat_model_stream",
                            "name": self.model.name,
                            "data": {"chunk": {"content": response.content}},
                        }

            if final is None:
                raise AgentLoopError(f"{self.model.name} ended its stream without a final response")

            history.append(self.model.adapter.assistant_message_from(final.raw))
            if not final.tool_calls:
                yield {
                    "event": "on_chain_end",
                    "name": "agent",
                    "data": {"output": {"messages": history}},
                }
                return

            self.logger.debug(
                "Iteration %d: %d tool call(s) requested", iteration, len(final.tool_calls)
            )
            for call in final.tool_calls:
                yield {
                    "event": "on_tool_start",
                    "name": call.name,
                    "data": {"input": call.arguments, "tool_call_id": call.id},
                }
                output = await self.registry.execute(call.name, call.arguments)
                yield {
                    "event": "on_tool_end",
                    "name": call.name,
                    "data": {"output": output, "tool_call_id": call.id},
                }
                history.append(
                    self.model.adapter.tool_result_message(ToolCallResult(id=call.id, content=output))
                )

        raise AgentLoopError(
            f"Agent stopped after {self.max_iterations} iterations without a final answer"
        )

    async def ainvoke(self, messages: Sequence[AgentMessage]) -> list[ChatMessage]:
        """Run to completion and return the final history."""
        history: list[ChatMessage] = []
        async with aclosing(self.astream_events(messages)) as events:
            async for event in events:
                if event["event"] == "on_chain_end":
                    history = event["data"]["output"]["messages"]
        return history
