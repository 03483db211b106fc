"""
Translate agent-loop events into the canonical ``StreamChunk`` stream.

Upstream events are dicts shaped like LangGraph ``astream_events`` (v2)::

    {"event": "on_tool_start", "name": "graph_query", "data": {...}}

Only three kinds matter here: model text deltas, tool starts and tool ends.
Everything else is dropped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, AsyncIterable, AsyncIterator, Optional
from uuid import uuid4

from graphrag_bridge.types import StreamChunk, ToolCallRecord, ToolCallStatus

__all__ = ["EventTranslator", "stringify_output"]

_logger = logging.getLogger(__name__)

TOOL_START_EVENTS = frozenset({"on_tool_start"})
TOOL_END_EVENTS = frozenset({"on_tool_end"})
TEXT_EVENTS = frozenset({"on_chat_model_stream", "on_llm_stream"})


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _tool_call_id(data: Any) -> Optional[str]:
    for key in ("tool_call_id", "toolCallId"):
        value = _get(data, key)
        if value:
            return str(value)
    return None


def _tool_args(raw: Any) -> dict[str, Any]:
    """Tool inputs arrive as a mapping, a JSON string, or a bare scalar."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return {"input": raw}
    if isinstance(raw, Mapping):
        return dict(raw)
    if raw is None:
        return {}
    return {"input": raw}


def stringify_output(output: Any) -> str:
    """Flatten a tool output to text: strings as-is, messages by content, else JSON."""
    if isinstance(output, str):
        return output
    content = _get(output, "content")
    if isinstance(content, str):
        return content
    try:
        return json.dumps(output, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return str(output)


class EventTranslator:
    """
    Stateless mapping from upstream events to ``StreamChunk`` objects.

    Each call to :meth:`translate` owns its own fallback-id counter, so two
    concurrent invocations never share ids.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or _logger

    async def translate(self, events: AsyncIterable[Any]) -> AsyncIterator[StreamChunk]:
        """
        Yield chunks for *events*, ending with exactly one ``done`` or ``error``.

        Ids: a tool start without an upstream id gets ``<run>-<n>``, unique for
        this invocation. A tool end without an id is passed on with an empty id.
        """
        run_prefix = uuid4().hex[:8]
        counter = 0

        try:
            async for event in events:
                kind = _get(event, "event")
                data = _get(event, "data") or {}

                if kind in TEXT_EVENTS:
                    chunk = _get(data, "chunk")
                    content = _get(chunk, "content")
                    if isinstance(content, str) and content:
                        yield StreamChunk.text(content)

                elif kind in TOOL_START_EVENTS:
                    call_id = _tool_call_id(data)
                    if call_id is None:
                        counter += 1
                        call_id = f"{run_prefix}-{counter}"
                    args = _tool_args(_get(data, "input"))
                    yield StreamChunk.call(ToolCallRecord(
                        id=call_id,
                        name=str(_get(event, "name") or "unknown"),
                        args=args,
                        status=ToolCallStatus.RUNNING,
                    ))

                elif kind in TOOL_END_EVENTS:
                    yield StreamChunk.result(ToolCallRecord(
                        id=_tool_call_id(data) or "",
                        name=str(_get(event, "name") or "unknown"),
                        status=ToolCallStatus.COMPLETED,
                        result=stringify_output(_get(data, "output")),
                    ))
        except Exception as exc:
            self.logger.exception("Agent stream failed")
            yield StreamChunk.failure(str(exc) or type(exc).__name__)
            return

        yield StreamChunk.done()
