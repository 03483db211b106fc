"""Canonical stream chunks emitted to UI consumers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Optional

from graphrag_bridge.types.tool import ToolCallRecord

__all__ = ["ChunkType", "StreamChunk"]


class ChunkType(StrEnum):
    CONTENT = "content"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class StreamChunk:
    """One unit of the canonical output stream.

    Exactly one ``done`` or ``error`` chunk ends a stream.
    """

    type: ChunkType
    content: Optional[str] = None
    tool_call: Optional[ToolCallRecord] = None
    error: Optional[str] = None

    @classmethod
    def text(cls, content: str) -> "StreamChunk":
        return cls(ChunkType.CONTENT, content=content)

    @classmethod
    def call(cls, record: ToolCallRecord) -> "StreamChunk":
        return cls(ChunkType.TOOL_CALL, tool_call=record)

    @classmethod
    def result(cls, record: ToolCallRecord) -> "StreamChunk":
        return cls(ChunkType.TOOL_RESULT, tool_call=record)

    @classmethod
    def failure(cls, message: str) -> "StreamChunk":
        return cls(ChunkType.ERROR, error=message)

    @classmethod
    def done(cls) -> "StreamChunk":
        return cls(ChunkType.DONE)

    @property
    def is_terminal(self) -> bool:
        return self.type in (ChunkType.DONE, ChunkType.ERROR)

    def as_dict(self) -> dict[str, Any]:
        """JSON-ready payload for the UI."""
        data: dict[str, Any] = {"type": self.type.value}
        if self.content is not None:
            data["content"] = self.content
        if self.tool_call is not None:
            data["tool_call"] = self.tool_call.as_dict()
        if self.error is not None:
            data["error"] = self.error
        return data
