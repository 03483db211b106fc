"""
Graph RAG agent: a tool-calling chat model over the code knowledge graph.

``GraphRAGAgent.stream`` is the UI-facing entry point. It yields the
canonical ``StreamChunk`` sequence and does no work beyond what its consumer
has pulled, so closing the stream cancels the run.
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Optional, Sequence

from graphrag_bridge.graph.capabilities import GraphCapabilities
from graphrag_bridge.graph.schema import QUERY_VECTOR_PLACEHOLDER
from graphrag_bridge.loop import DEFAULT_MAX_ITERATIONS, ToolCallingLoop, message_text
from graphrag_bridge.models import BaseChatModel, create_chat_model
from graphrag_bridge.settings import ProviderConfig
from graphrag_bridge.tools import ToolRegistry
from graphrag_bridge.translator import EventTranslator
from graphrag_bridge.types import AgentMessage, StreamChunk

__all__ = ["GraphRAGAgent", "SYSTEM_PROMPT", "NO_RESPONSE", "create_graph_rag_agent"]

_logger = logging.getLogger(__name__)

NO_RESPONSE = "No response generated."

SYSTEM_PROMPT = f"""You are a code analysis assistant. You help developers understand codebases by querying a knowledge graph (KuzuDB) that holds code structure, relationships, and semantic embeddings.

CAPABILITIES:
- Run Cypher queries to explore code structure (functions, classes, files, imports, call graphs)
- Find code by meaning with semantic search (when embeddings are available)
- Combine vector search and graph traversal in ONE Cypher query (when embeddings are available)
- Trace dependencies and relationships between code elements

APPROACH:
1. Work out what the user wants to know
2. Pick the right tool:
   - 'get_codebase_stats' for an overview
   - 'get_schema' before writing Cypher
   - 'semantic_search' for concept-based lookup
   - 'semantic_search_with_context' for semantic matches plus their 1-3 hop neighbourhood
   - 'vector_graph_query' for vector search with CUSTOM traversal, filters or returns in one query
     - The query MUST contain {QUERY_VECTOR_PLACEHOLDER} where the FLOAT[384] vector belongs
     - The vector index is code_embedding_idx on CodeEmbedding; join back to CodeNode via emb.nodeId
   - 'graph_query' for purely structural queries
   - 'get_code_content' to show the source of a node
3. Interpret the results and explain them clearly
4. Suggest follow-up explorations when useful

DATABASE:
- Nodes: CodeNode(id, label, name, filePath, startLine, endLine, content)
- Edges: CodeRelation(FROM CodeNode TO CodeNode, type), type in {{CALLS, IMPORTS, CONTAINS, DEFINES}}
- Embeddings: CodeEmbedding(nodeId, embedding), cosine distance (smaller is more similar)

VECTOR + GRAPH QUERY SKELETON (KuzuDB needs WITH after YIELD before WHERE):
CALL QUERY_VECTOR_INDEX('CodeEmbedding', 'code_embedding_idx', {QUERY_VECTOR_PLACEHOLDER}, 10)
YIELD node AS emb, distance
WITH emb, distance
WHERE distance < 0.5
MATCH (match:CodeNode {{id: emb.nodeId}})
MATCH (match)-[r:CodeRelation*1..2]-(ctx:CodeNode)
RETURN match.name, match.label, match.filePath, distance, collect(DISTINCT ctx.name) AS context
ORDER BY distance

STYLE:
- Be concise but thorough, and format code and results with markdown
- If a query fails, explain why and suggest an alternative

LIMITATIONS:
- Only indexed code is visible
- Semantic search needs embeddings to be generated first
"""


class GraphRAGAgent:
    """
    Answers questions about a codebase using the graph tools.

    Args:
        model: Chat model that supports tool calling.
        capabilities: Backend operations the tools run against.
        system_prompt: Instructions prepended to every conversation.
        max_iterations: Upper bound on model turns per request.
        logger: Optional custom logger.
    """

    def __init__(
        self,
        model: BaseChatModel,
        capabilities: GraphCapabilities,
        *,
        system_prompt: str = SYSTEM_PROMPT,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.model = model
        self.logger = logger or _logger
        self.registry = ToolRegistry(capabilities, logger=self.logger)
        self.translator = EventTranslator(logger=self.logger)
        self._loop = ToolCallingLoop(
            model,
            self.registry,
            system_prompt=system_prompt,
            max_iterations=max_iterations,
            logger=self.logger,
        )

    async def stream(self, messages: Sequence[AgentMessage]) -> AsyncIterator[StreamChunk]:
        """Yield content, tool_call and tool_result chunks, then one done or error chunk."""
        async with aclosing(self._loop.astream_events(messages)) as events:
            async with aclosing(self.translator.translate(events)) as chunks:
                async for chunk in chunks:
                    yield chunk

    async def invoke(self, messages: Sequence[AgentMessage]) -> str:
        """Run to completion and return the text of the final message."""
        history = await self._loop.ainvoke(messages)
        text = message_text(history[-1]) if history else ""
        return text or NO_RESPONSE

    async def aclose(self) -> None:
        await self.model.aclose()

    async def __aenter__(self) -> "GraphRAGAgent":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def create_graph_rag_agent(
    config: ProviderConfig,
    capabilities: GraphCapabilities,
    *,
    system_prompt: str = SYSTEM_PROMPT,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    logger: Optional[logging.Logger] = None,
    **model_kwargs: Any,
) -> GraphRAGAgent:
    """
    Build an agent for *config*.

    Raises:
        UnsupportedProvider: *config* names a provider with no chat client.
    """
    model = create_chat_model(config, logger=logger, **model_kwargs)
    return GraphRAGAgent(
        model,
        capabilities,
        system_prompt=system_prompt,
        max_iterations=max_iterations,
        logger=logger,
    )
