"""
Provider-neutral dataclasses for client-side tool use.

``ToolCallRequest``/``ToolCallResult`` travel between the model and the tool
registry; ``ToolCallRecord`` is what a UI sees for one call.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Optional

__all__ = ["ToolCallRequest", "ToolCallResult", "ToolCallRecord", "ToolCallStatus"]


@dataclass(slots=True)
class ToolCallRequest:
    """A model-agnostic request emitted by the LLM to call a local tool."""
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(slots=True)
class ToolCallResult:
    """Payload to send back to the LLM after the tool finished running."""
    id: str                     # must match the request id
    content: str | dict[str, Any]


class ToolCallStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ToolCallRecord:
    """Snapshot of one tool call as reported to the UI.

    Records are frozen; a status change produces a new record.
    """
    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "args": dict(self.args),
            "status": self.status.value,
        }
        if self.result is not None:
            data["result"] = self.result
        return data
