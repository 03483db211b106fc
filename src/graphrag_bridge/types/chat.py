"""Chat message and response types shared by all providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional, TypedDict

from graphrag_bridge.errors import ModelCallError
from graphrag_bridge.types.tool import ToolCallRequest

__all__ = ["ChatMessage", "AgentMessage", "ChatResponse"]


# Type alias for provider-shaped chat messages
ChatMessage = dict[str, Any]


class AgentMessage(TypedDict):
    """One turn of the conversation as supplied by the caller."""
    role: Literal["user", "assistant"]
    content: str


@dataclass
class ChatResponse:
    """Unified response object for all LLM providers.

    While streaming, partial responses carry a text delta in ``content``; the
    last response of a stream has ``final=True`` and carries the whole turn,
    including any tool calls, with ``raw`` set to the provider object.
    """

    content: str
    tool_calls: list[ToolCallRequest] | None = None
    raw: Any = None
    error: Optional[str] = None
    final: bool = False

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def raise_for_error(self) -> None:
        if self.is_error:
            raise ModelCallError(self.error)
