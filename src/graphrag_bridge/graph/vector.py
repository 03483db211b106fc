"""
Vector placeholder substitution.

A caller-written graph query may mix a vector-index lookup with arbitrary
traversal. The caller marks where the query vector goes with a placeholder;
this module embeds the natural-language query and splices the vector in as a
``CAST([...] AS FLOAT[n])`` literal.
"""

from __future__ import annotations

import inspect
import logging
import math
from numbers import Real
from typing import Any, Optional

from graphrag_bridge.errors import (
    AcceleratedBackendUnavailable,
    EmbeddingUnavailable,
    GraphRAGError,
    InvalidTemplate,
    QueryExecutionError,
)
from graphrag_bridge.graph.capabilities import EmbedderBackend, Embedder, GraphCapabilities
from graphrag_bridge.graph.schema import QUERY_VECTOR_PLACEHOLDER

__all__ = ["vector_literal", "inject_query_vector", "ensure_embedder"]

_logger = logging.getLogger(__name__)


def vector_literal(vector: Any, dimensions: Optional[int] = None) -> str:
    """Render *vector* as the backend's fixed-length float array literal.

    Raises:
        QueryExecutionError: The vector is empty, not numeric, not finite, or
            has the wrong length.
    """
    try:
        values = list(vector)
    except TypeError:
        raise QueryExecutionError(
            f"Embedding backend returned {type(vector).__name__}, expected a list of numbers"
        ) from None

    if not values:
        raise QueryExecutionError("Embedding backend returned an empty vector")
    for value in values:
        if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
            raise QueryExecutionError(
                f"Embedding backend returned a non-numeric vector component: {value!r}"
            )
    if dimensions is not None and len(values) != dimensions:
        raise QueryExecutionError(
            f"Embedding has {len(values)} dimensions, expected {dimensions}"
        )

    body = ",".join(str(value) for value in values)
    return f"CAST([{body}] AS FLOAT[{len(values)}])"


async def inject_query_vector(
    query: str,
    template: str,
    embed: Embedder,
    *,
    placeholder: str = QUERY_VECTOR_PLACEHOLDER,
    dimensions: Optional[int] = None,
) -> str:
    """
    Embed *query* and substitute the vector for every *placeholder* in *template*.

    The template is checked before anything is embedded.

    Raises:
        InvalidTemplate: *placeholder* does not occur in *template*.
        EmbeddingUnavailable: The embedding call failed.
        QueryExecutionError: The embedding call returned a malformed vector.
    """
    if placeholder not in template:
        raise InvalidTemplate(placeholder)

    try:
        vector = embed(query)
        if inspect.isawaitable(vector):
            vector = await vector
    except GraphRAGError:
        raise
    except Exception as exc:
        raise EmbeddingUnavailable(f"Embedding the query failed: {exc}") from exc

    return template.replace(placeholder, vector_literal(vector, dimensions))


async def ensure_embedder(
    capabilities: GraphCapabilities,
    *,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Make sure the embedding model is loaded before a query is embedded.

    Tries the accelerated backend first and, only if it reports itself
    unavailable, the software backend once. Never retries beyond that.

    Raises:
        EmbeddingUnavailable: No embedder is configured or it failed to start.
    """
    log = logger or _logger
    if capabilities.embed is None:
        raise EmbeddingUnavailable("No embedding model is configured")

    is_ready = capabilities.is_embedder_ready
    if is_ready is None or is_ready():
        return

    init = capabilities.init_embedder
    if init is None:
        raise EmbeddingUnavailable("Embedding model is not loaded and cannot be initialized")

    try:
        await init(EmbedderBackend.ACCELERATED)
        return
    except AcceleratedBackendUnavailable as exc:
        log.warning("Accelerated embedding backend unavailable, using software backend: %s", exc)
    except EmbeddingUnavailable:
        raise
    except Exception as exc:
        raise EmbeddingUnavailable(f"Embedding model failed to initialize: {exc}") from exc

    try:
        await init(EmbedderBackend.SOFTWARE)
    except EmbeddingUnavailable:
        raise
    except Exception as exc:
        raise EmbeddingUnavailable(
            f"Software embedding backend failed to initialize: {exc}"
        ) from exc
