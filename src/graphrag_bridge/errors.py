"""
Error taxonomy for graphrag-bridge, plus translation of noisy provider
tracebacks into short, cause-specific messages.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

import anthropic
import openai

__all__: tuple[str, ...] = (
    "GraphRAGError",
    "InvalidTemplate",
    "EmbeddingUnavailable",
    "AcceleratedBackendUnavailable",
    "QueryExecutionError",
    "UnsupportedProvider",
    "ModelCallError",
    "AgentLoopError",
    "classify_error",
    "error_kind",
)


class GraphRAGError(RuntimeError):
    """Base class for every error raised by this package."""


class InvalidTemplate(GraphRAGError, ValueError):
    """A query template does not contain the vector placeholder token."""

    def __init__(self, placeholder: str) -> None:
        super().__init__(
            f"Query template must contain the placeholder {placeholder} "
            "where the query vector belongs"
        )
        self.placeholder = placeholder


class EmbeddingUnavailable(GraphRAGError):
    """The embedding backend is missing, not initialized, or failed."""


class AcceleratedBackendUnavailable(EmbeddingUnavailable):
    """The accelerated embedding backend cannot run in this process.

    Raised by ``init_embedder`` so callers can retry once on the software backend.
    """


class QueryExecutionError(GraphRAGError):
    """The graph backend rejected a query or returned something unusable.

    Attributes:
        kind: Backend-specific error category (e.g. "Parser exception").
    """

    def __init__(self, message: str, *, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind


class UnsupportedProvider(GraphRAGError, ValueError):
    """The provider configuration names a provider without a chat client."""

    def __init__(self, provider: object) -> None:
        super().__init__(f"Unsupported provider: {provider}")
        self.provider = provider


class ModelCallError(GraphRAGError):
    """A chat model request failed; the message is already classified."""


class AgentLoopError(GraphRAGError):
    """The tool-calling loop could not reach a final answer."""


RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.RateLimitError,
    anthropic.RateLimitError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    TimeoutError,
    ConnectionError,
)

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIError,
    anthropic.APIError,
)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> ModelCallError:
    """Wrap an SDK exception in ModelCallError with a friendly, concise message."""
    log = logger or logging.getLogger("graphrag_bridge.errors")

    # connection errors subclass APIError in both SDKs; order matters
    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded, please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the LLM provider"
    elif isinstance(exc, API_ERRORS):
        status = getattr(exc, "status_code", "unknown")
        msg = f"Provider reported an error ({status})"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception", extra={"exc": exc})
    error = ModelCallError(f"{msg}: {exc}")
    error.__cause__ = exc
    return error


def error_kind(exc: BaseException) -> str:
    """Short category name for an exception, preferring the backend's own kind."""
    kind = getattr(exc, "kind", None)
    if isinstance(kind, str) and kind:
        return kind
    return type(exc).__name__
