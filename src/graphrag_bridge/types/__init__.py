from .chat import AgentMessage, ChatMessage, ChatResponse
from .stream import ChunkType, StreamChunk
from .tool import ToolCallRecord, ToolCallRequest, ToolCallResult, ToolCallStatus

__all__ = [
    "AgentMessage",
    "ChatMessage",
    "ChatResponse",
    "ChunkType",
    "StreamChunk",
    "ToolCallRecord",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolCallStatus",
]
