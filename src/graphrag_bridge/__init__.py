"""
GraphRAG Bridge - tool-calling agent over a code knowledge graph.
"""

from .agent import GraphRAGAgent, SYSTEM_PROMPT, create_graph_rag_agent
from .errors import (
    AgentLoopError,
    EmbeddingUnavailable,
    GraphRAGError,
    InvalidTemplate,
    ModelCallError,
    QueryExecutionError,
    UnsupportedProvider,
)
from .graph import GraphCapabilities, format_rows, inject_query_vector
from .models import BaseChatModel, create_chat_model
from .settings import (
    DEFAULT_LLM_SETTINGS,
    AnthropicConfig,
    AzureOpenAIConfig,
    GeminiConfig,
    LLMSettings,
    OllamaConfig,
    Provider,
    ProviderConfig,
)
from .tools import ToolRegistry
from .translator import EventTranslator
from .types import ChatResponse, StreamChunk, ToolCallRecord

__version__ = "0.1.0"

__all__ = [
    "GraphRAGAgent",
    "SYSTEM_PROMPT",
    "create_graph_rag_agent",
    "AgentLoopError",
    "EmbeddingUnavailable",
    "GraphRAGError",
    "InvalidTemplate",
    "ModelCallError",
    "QueryExecutionError",
    "UnsupportedProvider",
    "GraphCapabilities",
    "format_rows",
    "inject_query_vector",
    "BaseChatModel",
    "create_chat_model",
    "DEFAULT_LLM_SETTINGS",
    "AnthropicConfig",
    "AzureOpenAIConfig",
    "GeminiConfig",
    "LLMSettings",
    "OllamaConfig",
    "Provider",
    "ProviderConfig",
    "ToolRegistry",
    "EventTranslator",
    "ChatResponse",
    "StreamChunk",
    "ToolCallRecord",
]
