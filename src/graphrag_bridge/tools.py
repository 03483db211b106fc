"""
Declarative tool registry for the graph RAG agent.

Every tool is defined once in ``TOOL_DEFINITIONS`` with a pydantic argument
model, a description for the model, and an async implementation. Tools
always answer with text: backend failures, bad arguments and unavailable
embeddings are rendered as explanations the agent can act on.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Awaitable, Callable, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator

from graphrag_bridge.errors import EmbeddingUnavailable, QueryExecutionError, error_kind
from graphrag_bridge.graph.capabilities import GraphCapabilities
from graphrag_bridge.graph.rows import field, format_rows
from graphrag_bridge.graph.schema import GRAPH_SCHEMA_DESCRIPTION, QUERY_VECTOR_PLACEHOLDER
from graphrag_bridge.graph.vector import ensure_embedder, inject_query_vector

__all__ = [
    "Tool",
    "ToolRegistry",
    "TOOL_DEFINITIONS",
    "MatchGroup",
    "group_context_rows",
    "SEMANTIC_UNAVAILABLE",
]

_logger = logging.getLogger(__name__)

DEFAULT_MAX_DISTANCE = 0.5
MAX_HOPS = 3
MAX_CONNECTIONS_SHOWN = 15

SEMANTIC_UNAVAILABLE = (
    "Semantic search is not available. Embeddings have not been generated yet. "
    "Please use the graph_query tool for structural queries instead."
)

QUERY_RETRY_HINT = "Please check your query syntax and try again."

# Positional column offsets, used when a backend returns rows as sequences
SEARCH_COLUMNS = {"nodeId": 0, "name": 1, "label": 2, "filePath": 3, "distance": 4,
                  "startLine": 5, "endLine": 6}
CONTEXT_COLUMNS = {"matchId": 0, "matchName": 1, "matchLabel": 2, "matchPath": 3,
                   "distance": 4, "connectedId": 5, "connectedName": 6,
                   "connectedLabel": 7, "relationType": 8}
CONTENT_COLUMNS = {"name": 0, "label": 1, "filePath": 2, "content": 3,
                   "startLine": 4, "endLine": 5}


def _col(row: Any, columns: dict[str, int], name: str, default: Any = None) -> Any:
    return field(row, name, columns[name], default)


def _relevance(distance: Any) -> str:
    try:
        return f"{1 - float(distance):.2f}"
    except (TypeError, ValueError):
        return "n/a"


def _lines(start: Any, end: Any) -> str:
    if start is None:
        return ""
    return f" (lines {start}-{end if end is not None else '?'})"


# --- argument models ---------------------------------------------------------

class GraphQueryArgs(BaseModel):
    query: str = Field(
        description="The Cypher query to execute. Must be valid KuzuDB Cypher syntax."
    )


class VectorGraphQueryArgs(BaseModel):
    natural_language_query: str = Field(
        description="What you are looking for, in plain language. It is embedded "
        "and used as the query vector."
    )
    templated_query: str = Field(
        description=f"A Cypher query containing {QUERY_VECTOR_PLACEHOLDER} where "
        "the FLOAT[384] query vector belongs."
    )


class SemanticSearchArgs(BaseModel):
    query: str = Field(description="Natural language description of what you are looking for")
    limit: int = Field(10, ge=1, le=100, description="Maximum number of results (default: 10)")


class SemanticSearchWithContextArgs(BaseModel):
    query: str = Field(description="Natural language description of what you are looking for")
    limit: int = Field(5, ge=1, le=50, description="Number of initial matches (default: 5)")
    hops: int = Field(2, description=f"Graph hops to expand (default: 2, max: {MAX_HOPS})")

    @field_validator("hops")
    @classmethod
    def _clamp_hops(cls, value: int) -> int:
        return max(1, min(value, MAX_HOPS))


class GetSchemaArgs(BaseModel):
    pass


class GetCodeContentArgs(BaseModel):
    node_id: str = Field(description="The ID of the node to retrieve code for")


class GetCodebaseStatsArgs(BaseModel):
    pass


# --- implementations ---------------------------------------------------------

async def graph_query_impl(caps: GraphCapabilities, args: GraphQueryArgs) -> str:
    try:
        rows = await caps.execute_query(args.query)
    except Exception as exc:
        _logger.warning("Graph query failed: %s", exc)
        return f"{error_kind(exc)}: {exc}\n\n{QUERY_RETRY_HINT}"
    return format_rows(rows)


async def vector_graph_query_impl(caps: GraphCapabilities, args: VectorGraphQueryArgs) -> str:
    if QUERY_VECTOR_PLACEHOLDER not in args.templated_query:
        return (
            f"Invalid templated_query: it must contain the placeholder "
            f"{QUERY_VECTOR_PLACEHOLDER} where the query vector belongs, e.g. "
            f"CALL QUERY_VECTOR_INDEX('CodeEmbedding', 'code_embedding_idx', "
            f"{QUERY_VECTOR_PLACEHOLDER}, 10). Use graph_query for queries "
            "without vector search."
        )

    try:
        await ensure_embedder(caps)
        final_query = await inject_query_vector(
            args.natural_language_query, args.templated_query, caps.embed
        )
    except EmbeddingUnavailable as exc:
        _logger.warning("Query embedding unavailable: %s", exc)
        return (
            f"Vector search is unavailable: could not embed the query ({exc}). "
            "Try semantic_search, or graph_query for structural queries."
        )
    except QueryExecutionError as exc:
        return f"Could not build the vector query from the query embedding: {exc}"

    try:
        rows = await caps.execute_query(final_query)
    except Exception as exc:
        _logger.warning("Vector graph query failed: %s", exc)
        return (
            f"{error_kind(exc)}: {exc}\n\n{QUERY_RETRY_HINT} Keep the "
            f"{QUERY_VECTOR_PLACEHOLDER} placeholder where the vector belongs."
        )
    return format_rows(rows)


async def semantic_search_impl(caps: GraphCapabilities, args: SemanticSearchArgs) -> str:
    try:
        rows = list(
            await caps.semantic_search(args.query, args.limit, DEFAULT_MAX_DISTANCE) or ()
        )
    except Exception as exc:
        _logger.warning("Semantic search failed: %s", exc)
        return f"Semantic search for {args.query!r} failed. {error_kind(exc)}: {exc}"

    if not rows:
        return (
            f'No code found matching "{args.query}". Try a different search term '
            "or use graph_query for structured queries."
        )

    formatted = []
    for i, row in enumerate(rows):
        location = _lines(_col(row, SEARCH_COLUMNS, "startLine"),
                          _col(row, SEARCH_COLUMNS, "endLine"))
        formatted.append(
            f"[{i + 1}] {_col(row, SEARCH_COLUMNS, 'label')}: {_col(row, SEARCH_COLUMNS, 'name')}\n"
            f"    File: {_col(row, SEARCH_COLUMNS, 'filePath')}{location}\n"
            f"    Relevance: {_relevance(_col(row, SEARCH_COLUMNS, 'distance'))}"
        )
    return (
        f"Found {len(rows)} semantically similar code elements:\n\n"
        + "\n\n".join(formatted)
    )


@dataclass
class MatchGroup:
    """One semantic match and the graph neighbours found around it."""
    id: Any
    name: Any
    label: Any
    path: Any
    distance: Any
    connections: list[str] = dataclass_field(default_factory=list)

    def render(self, position: int) -> str:
        shown = self.connections[:MAX_CONNECTIONS_SHOWN]
        if shown:
            connected = ", ".join(shown)
            hidden = len(self.connections) - len(shown)
            if hidden > 0:
                connected += f", and {hidden} more"
            connected_line = f"Connected to ({len(self.connections)}): {connected}"
        else:
            connected_line = "Connected to: none"
        return (
            f"[{position}] {self.label}: {self.name}\n"
            f"    File: {self.path}\n"
            f"    Relevance: {_relevance(self.distance)}\n"
            f"    {connected_line}"
        )


def _group_key(value: Any) -> Hashable:
    return value if isinstance(value, Hashable) else repr(value)


def group_context_rows(rows: Sequence[Any]) -> list[MatchGroup]:
    """Group (match, connection) rows by match id, keeping first-seen order."""
    groups: dict[Hashable, MatchGroup] = {}
    for row in rows:
        match_id = _col(row, CONTEXT_COLUMNS, "matchId")
        if match_id is None:
            match_id = _col(row, CONTEXT_COLUMNS, "matchName")
        key = _group_key(match_id)

        group = groups.get(key)
        if group is None:
            group = groups[key] = MatchGroup(
                id=match_id,
                name=_col(row, CONTEXT_COLUMNS, "matchName"),
                label=_col(row, CONTEXT_COLUMNS, "matchLabel"),
                path=_col(row, CONTEXT_COLUMNS, "matchPath"),
                distance=_col(row, CONTEXT_COLUMNS, "distance"),
            )

        name = _col(row, CONTEXT_COLUMNS, "connectedName")
        if name is None:
            continue
        label = _col(row, CONTEXT_COLUMNS, "connectedLabel")
        relation = _col(row, CONTEXT_COLUMNS, "relationType")
        text = f"{name} [{label}]" if label else str(name)
        if relation:
            text += f" ({relation})"
        group.connections.append(text)
    return list(groups.values())


async def semantic_search_with_context_impl(
    caps: GraphCapabilities, args: SemanticSearchWithContextArgs
) -> str:
    try:
        rows = list(
            await caps.semantic_search_with_context(args.query, args.limit, args.hops) or ()
        )
    except Exception as exc:
        _logger.warning("Semantic search with context failed: %s", exc)
        return (
            f"Semantic search with {args.hops}-hop graph context for {args.query!r} "
            f"failed. {error_kind(exc)}: {exc}"
        )

    if not rows:
        return f'No code found matching "{args.query}". Try a different search term.'

    groups = group_context_rows(rows)
    body = "\n\n".join(group.render(i + 1) for i, group in enumerate(groups))
    return f"Found {len(groups)} code elements with context:\n\n{body}"


async def get_schema_impl(caps: GraphCapabilities, args: GetSchemaArgs) -> str:
    return GRAPH_SCHEMA_DESCRIPTION


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


async def get_code_content_impl(caps: GraphCapabilities, args: GetCodeContentArgs) -> str:
    query = (
        f"MATCH (n:CodeNode {{id: {_quote(args.node_id)}}}) "
        "RETURN n.name AS name, n.label AS label, n.filePath AS filePath, "
        "n.content AS content, n.startLine AS startLine, n.endLine AS endLine"
    )
    try:
        rows = list(await caps.execute_query(query) or ())
    except Exception as exc:
        _logger.warning("Code lookup for %s failed: %s", args.node_id, exc)
        return f"Error retrieving code for node {args.node_id!r}. {error_kind(exc)}: {exc}"

    if not rows:
        return f"No node found with ID: {args.node_id}"

    node = rows[0]
    name = _col(node, CONTENT_COLUMNS, "name")
    label = _col(node, CONTENT_COLUMNS, "label")
    file_path = _col(node, CONTENT_COLUMNS, "filePath")
    content = _col(node, CONTENT_COLUMNS, "content")

    if not content:
        return f'{label} "{name}" in {file_path} (no source code available)'

    start = _col(node, CONTENT_COLUMNS, "startLine")
    end = _col(node, CONTENT_COLUMNS, "endLine")
    return f"{label}: {name}\nFile: {file_path}\nLines: {start}-{end}\n\n```\n{content}\n```"


_NODE_COUNTS_QUERY = (
    "MATCH (n:CodeNode) RETURN n.label AS label, count(*) AS count ORDER BY count DESC"
)
_RELATION_COUNTS_QUERY = (
    "MATCH ()-[r:CodeRelation]->() RETURN r.type AS type, count(*) AS count "
    "ORDER BY count DESC"
)


async def get_codebase_stats_impl(caps: GraphCapabilities, args: GetCodebaseStatsArgs) -> str:
    sections = []
    for purpose, query, key in (
        ("counting nodes by label", _NODE_COUNTS_QUERY, "label"),
        ("counting relationships by type", _RELATION_COUNTS_QUERY, "type"),
    ):
        try:
            rows = await caps.execute_query(query)
        except Exception as exc:
            _logger.warning("Codebase stats query failed while %s: %s", purpose, exc)
            return f"Error getting codebase statistics while {purpose}. {error_kind(exc)}: {exc}"
        lines = [f"  {field(r, key, 0)}: {field(r, 'count', 1)}" for r in rows]
        sections.append("\n".join(lines) or "  (none)")

    embedding_status = (
        "Ready (semantic search available)"
        if caps.is_embedding_ready()
        else "Not generated (use graph_query for queries)"
    )
    return (
        f"Codebase Statistics:\n\nNodes by type:\n{sections[0]}\n\n"
        f"Relationships by type:\n{sections[1]}\n\nEmbeddings: {embedding_status}"
    )


# --- registry ----------------------------------------------------------------

@dataclass(frozen=True)
class Tool:
    """Tool definition with metadata and implementation."""

    name: str
    description: str
    args_model: type[BaseModel]
    implementation: Callable[[GraphCapabilities, Any], Awaitable[str]]
    purpose: str
    requires_embeddings: bool = False

    @property
    def parameters(self) -> dict[str, Any]:
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def spec(self) -> dict[str, Any]:
        """OpenAI function-tool format; adapters convert it for other providers."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


TOOL_DEFINITIONS: list[Tool] = [
    Tool(
        name="get_schema",
        description="Get the graph database schema including node types, relationships, "
        "and Cypher query patterns. Call this before writing Cypher queries.",
        args_model=GetSchemaArgs,
        implementation=get_schema_impl,
        purpose="reading the graph schema",
    ),
    Tool(
        name="graph_query",
        description="Execute a Cypher query against the code knowledge graph. Use this for "
        "structural queries like finding functions, tracing call graphs, or analyzing "
        "imports. Call get_schema first if you need to see the database schema.",
        args_model=GraphQueryArgs,
        implementation=graph_query_impl,
        purpose="running the graph query",
    ),
    Tool(
        name="vector_graph_query",
        description="Run ONE Cypher query that combines vector search with custom graph "
        f"traversal. The query must contain {QUERY_VECTOR_PLACEHOLDER} where the query "
        "vector belongs; it is replaced with the embedding of natural_language_query.",
        args_model=VectorGraphQueryArgs,
        implementation=vector_graph_query_impl,
        purpose="running the vector graph query",
        requires_embeddings=True,
    ),
    Tool(
        name="semantic_search",
        description="Search for code by meaning using semantic similarity. Good for finding "
        "code related to a concept even if exact terms are not used.",
        args_model=SemanticSearchArgs,
        implementation=semantic_search_impl,
        purpose="running the semantic search",
        requires_embeddings=True,
    ),
    Tool(
        name="semantic_search_with_context",
        description="Search for code semantically AND expand to show connected code elements "
        "(callers, callees, imports). Use this to understand how code fits into the "
        "broader architecture.",
        args_model=SemanticSearchWithContextArgs,
        implementation=semantic_search_with_context_impl,
        purpose="running the semantic search with graph context",
        requires_embeddings=True,
    ),
    Tool(
        name="get_code_content",
        description="Retrieve the source code content for a specific node by its ID. Use this "
        "after finding relevant nodes to see the actual implementation.",
        args_model=GetCodeContentArgs,
        implementation=get_code_content_impl,
        purpose="retrieving source code",
    ),
    Tool(
        name="get_codebase_stats",
        description="Get an overview of the codebase including counts of different element "
        "types (files, functions, classes) and relationship types.",
        args_model=GetCodebaseStatsArgs,
        implementation=get_codebase_stats_impl,
        purpose="computing codebase statistics",
    ),
]


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


class ToolRegistry:
    """The tool set bound to one set of backend capabilities."""

    def __init__(
        self,
        capabilities: GraphCapabilities,
        *,
        tools: Optional[Sequence[Tool]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.capabilities = capabilities
        self.logger = logger or _logger
        self._tools: dict[str, Tool] = {
            tool.name: tool for tool in (tools if tools is not None else TOOL_DEFINITIONS)
        }

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def specs(self) -> list[dict[str, Any]]:
        return [tool.spec() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: Optional[dict[str, Any]] = None) -> str:
        """
        Validate *arguments* and run tool *name*.

        Never raises: every failure comes back as text for the agent.
        """
        tool = self._tools.get(name)
        if tool is None:
            return f"Unknown tool: {name}. Available tools: {', '.join(self._tools)}."

        try:
            args = tool.args_model.model_validate(arguments or {})
        except ValidationError as exc:
            return (
                f"Invalid arguments for {name}: {_validation_summary(exc)}. "
                "Check the tool's parameter schema and try again."
            )

        try:
            if tool.requires_embeddings and not self.capabilities.is_embedding_ready():
                return SEMANTIC_UNAVAILABLE
            return await tool.implementation(self.capabilities, args)
        except Exception as exc:
            self.logger.warning("Tool %s failed while %s", name, tool.purpose, exc_info=True)
            return f"Error while {tool.purpose} ({name}). {error_kind(exc)}: {exc}"
