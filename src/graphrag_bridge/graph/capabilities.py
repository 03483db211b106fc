"""
Backend capabilities consumed by the tools.

The graph engine and the embedding model live outside this package; the tools
reach them only through the callables gathered in :class:`GraphCapabilities`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable, Optional, Sequence

__all__ = [
    "EmbedderBackend",
    "GraphCapabilities",
    "QueryExecutor",
    "SemanticSearcher",
    "ContextSearcher",
    "Embedder",
    "EmbedderInitializer",
]


class EmbedderBackend(StrEnum):
    ACCELERATED = "accelerated"
    SOFTWARE = "software"


QueryExecutor = Callable[[str], Awaitable[Sequence[Any]]]
SemanticSearcher = Callable[[str, int, float], Awaitable[Sequence[Any]]]
ContextSearcher = Callable[[str, int, int], Awaitable[Sequence[Any]]]
Embedder = Callable[[str], Awaitable[Sequence[float]] | Sequence[float]]
EmbedderInitializer = Callable[[EmbedderBackend], Awaitable[None]]


@dataclass(frozen=True)
class GraphCapabilities:
    """
    Everything the tools need from the outside world.

    Attributes:
        execute_query: Run a graph query, returning rows (mappings or sequences).
            Raises ``QueryExecutionError`` when the backend rejects the query.
        semantic_search: ``(text, limit, max_distance)`` nearest code nodes.
        semantic_search_with_context: ``(text, limit, hops)`` one row per
            (match, connected node) pair.
        is_embedding_ready: Process-wide check; True once the vector index has
            been built and can be queried.
        embed: Turn text into a fixed-length vector (sync or async).
        init_embedder: Load the embedding model on the given backend. Raises
            ``AcceleratedBackendUnavailable`` when the accelerated backend
            cannot run here.
        is_embedder_ready: True once the embedding model is loaded. When
            omitted the embedder is assumed to be ready.
    """

    execute_query: QueryExecutor
    semantic_search: SemanticSearcher
    semantic_search_with_context: ContextSearcher
    is_embedding_ready: Callable[[], bool]
    embed: Optional[Embedder] = None
    init_embedder: Optional[EmbedderInitializer] = None
    is_embedder_ready: Optional[Callable[[], bool]] = None
