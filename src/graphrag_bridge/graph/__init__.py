"""Graph-side helpers: row rendering, vector injection, capabilities, schema text."""

from .capabilities import EmbedderBackend, GraphCapabilities
from .rows import DEFAULT_DISPLAY_CAP, NO_RESULTS, field, format_row, format_rows
from .schema import GRAPH_SCHEMA_DESCRIPTION, QUERY_VECTOR_PLACEHOLDER, SCHEMA_VERSION
from .vector import ensure_embedder, inject_query_vector, vector_literal

__all__ = [
    "EmbedderBackend",
    "GraphCapabilities",
    "DEFAULT_DISPLAY_CAP",
    "NO_RESULTS",
    "field",
    "format_row",
    "format_rows",
    "GRAPH_SCHEMA_DESCRIPTION",
    "QUERY_VECTOR_PLACEHOLDER",
    "SCHEMA_VERSION",
    "ensure_embedder",
    "inject_query_vector",
    "vector_literal",
]
