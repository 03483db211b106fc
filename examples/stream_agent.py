from __future__ import annotations

import argparse
import asyncio
import logging

from graphrag_bridge import (
    DEFAULT_LLM_SETTINGS,
    GraphCapabilities,
    Provider,
    StreamChunk,
    create_graph_rag_agent,
)
from graphrag_bridge.types import ChunkType

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# A tiny in-memory "graph" standing in for a real KuzuDB connection
NODES = [
    {"id": "Function:src/config.py:load_config", "label": "Function", "name": "load_config",
     "filePath": "src/config.py", "startLine": 12, "endLine": 30},
    {"id": "Function:src/main.py:main", "label": "Function", "name": "main",
     "filePath": "src/main.py", "startLine": 1, "endLine": 20},
]


async def execute_query(query: str) -> list[dict[str, object]]:
    """Stub query engine: every query returns all nodes."""
    # imagine the query being sent to the graph database here
    logger.info("Graph query: %s", query)
    return NODES


async def no_search(query: str, limit: int, extra: float | int) -> list[object]:
    return []


def print_chunk(chunk: StreamChunk) -> None:
    match chunk.type:
        case ChunkType.CONTENT:
            print(chunk.content, end="", flush=True)
        case ChunkType.TOOL_CALL:
            print(f"\n→ {chunk.tool_call.name}({chunk.tool_call.args})")
        case ChunkType.TOOL_RESULT:
            print(f"← {chunk.tool_call.result}\n")
        case ChunkType.ERROR:
            print(f"\n[error] {chunk.error}")
        case ChunkType.DONE:
            print()


async def ask(provider: Provider, question: str) -> None:
    capabilities = GraphCapabilities(
        execute_query=execute_query,
        semantic_search=no_search,
        semantic_search_with_context=no_search,
        is_embedding_ready=lambda: False,
    )
    config = DEFAULT_LLM_SETTINGS.switch_provider(provider).active_config()

    async with create_graph_rag_agent(config, capabilities) as agent:
        async for chunk in agent.stream([{"role": "user", "content": question}]):
            print_chunk(chunk)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider if p is not Provider.OLLAMA],
        default=Provider.GEMINI.value,
    )
    parser.add_argument("question", nargs="?", default="Which functions exist in src/?")
    args = parser.parse_args()

    asyncio.run(ask(Provider(args.provider), args.question))
