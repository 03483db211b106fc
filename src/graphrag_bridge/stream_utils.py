"""Shared streaming utilities for OpenAI-protocol providers."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from openai.types.chat import ChatCompletion, ChatCompletionChunk

__all__ = ["OpenAIStreamAccumulator"]


class OpenAIStreamAccumulator:
    """
    Folds ChatCompletionChunks into a single ChatCompletion as they arrive.

    Callers feed every chunk through ``add`` while relaying text deltas, then
    call ``build`` once the stream is exhausted. Tool-call fragments are
    stitched together by their ``index``.
    """

    def __init__(self, model: str) -> None:
        self.model = model
        self._content = ""
        self._tool_calls: List[Dict[str, Any]] = []
        self._role: str = "assistant"
        self._finish_reason: str = "stop"
        self._system_fingerprint: Optional[str] = None
        self._first_chunk_id: Optional[str] = None
        self._created: Optional[int] = None

    def add(self, chunk: ChatCompletionChunk) -> None:
        if not self._first_chunk_id and chunk.id:
            self._first_chunk_id = chunk.id
        if not self._created and chunk.created:
            self._created = chunk.created
        if chunk.system_fingerprint:
            self._system_fingerprint = chunk.system_fingerprint

        if not chunk.choices:
            return

        delta = chunk.choices[0].delta
        if delta.role:
            self._role = delta.role
        if delta.content:
            self._content += delta.content

        for tc_chunk in delta.tool_calls or ():
            while len(self._tool_calls) <= tc_chunk.index:
                self._tool_calls.append({
                    "id": "", "type": "function",
                    "function": {"name": "", "arguments": ""}
                })

            agg_tc = self._tool_calls[tc_chunk.index]
            if tc_chunk.id:
                agg_tc["id"] = tc_chunk.id
            if tc_chunk.type:
                agg_tc["type"] = tc_chunk.type
            if tc_chunk.function:
                if tc_chunk.function.name:
                    agg_tc["function"]["name"] += tc_chunk.function.name
                if tc_chunk.function.arguments:
                    agg_tc["function"]["arguments"] += tc_chunk.function.arguments

        if chunk.choices[0].finish_reason:
            self._finish_reason = chunk.choices[0].finish_reason

    def build(self) -> ChatCompletion:
        """Return the aggregated completion for everything added so far."""
        tool_calls = [
            tc for tc in self._tool_calls if tc["id"] and tc["function"]["name"]
        ]

        message: Dict[str, Any] = {
            "role": self._role,
            "content": self._content or (None if tool_calls else ""),
        }
        if tool_calls:
            message["tool_calls"] = tool_calls

        return ChatCompletion.model_validate({
            "id": self._first_chunk_id or "aggregated_stream",
            "choices": [
                {"finish_reason": self._finish_reason, "index": 0, "message": message}
            ],
            "created": self._created or 0,
            "model": self.model,
            "object": "chat.completion",
            "system_fingerprint": self._system_fingerprint,
        })
