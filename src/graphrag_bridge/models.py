"""
Streaming chat models for every supported provider, and the factory that maps
a ``ProviderConfig`` to one of them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, Optional, Protocol, Sequence

from anthropic import AsyncAnthropic
from openai import AsyncAzureOpenAI, AsyncOpenAI

from graphrag_bridge.adapters import (
    AnthropicRequestAdapter,
    AzureOpenAIRequestAdapter,
    GeminiRequestAdapter,
)
from graphrag_bridge.errors import UnsupportedProvider, classify_error
from graphrag_bridge.settings import (
    AnthropicConfig,
    AzureOpenAIConfig,
    GeminiConfig,
    OllamaConfig,
    ProviderConfig,
    get_api_key,
)
from graphrag_bridge.stream_utils import OpenAIStreamAccumulator
from graphrag_bridge.types import ChatMessage, ChatResponse, ToolCallResult

__all__ = [
    "BaseChatModel",
    "AzureOpenAIChatModel",
    "GeminiChatModel",
    "AnthropicChatModel",
    "create_chat_model",
]

_DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class RequestAdapter(Protocol):
    """Protocol for adapting between generic chat format and provider-specific format."""

    def to_provider(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert generic messages and params to provider-specific request format."""
        ...

    def from_provider(self, raw: Any) -> ChatResponse:
        """Convert a complete provider response to a final ChatResponse."""
        ...

    def stream_text(self, raw_chunk: Any) -> ChatResponse:
        """Extract content from a streaming chunk and return as ChatResponse."""
        ...

    def assistant_message_from(self, raw: Any) -> ChatMessage:
        """Convert a provider response to a provider-specific assistant ChatMessage."""
        ...

    def tool_result_message(self, result: ToolCallResult) -> ChatMessage:
        """Convert a ToolCallResult to a provider-specific ChatMessage."""
        ...


class BaseChatModel(ABC):
    """
    Abstract base class for async streaming chat models.

    ``stream`` yields text deltas as partial ``ChatResponse`` objects, then one
    ``final`` response holding the complete turn. Provider failures never
    escape ``stream``; they arrive as a single error response.
    """

    def __init__(
        self,
        model: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this provider."""
        ...

    @abstractmethod
    def _stream_impl(
        self,
        messages: Sequence[ChatMessage],
        params: dict[str, Any],
    ) -> AsyncGenerator[ChatResponse, None]:
        """Provider-specific streaming request. May raise SDK exceptions."""
        ...

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> AsyncGenerator[ChatResponse, None]:
        """Stream one assistant turn, offering *tools* (OpenAI function format)."""
        params = self._request_params(tools)
        try:
            async for response in self._stream_impl(messages, params):
                yield response
        except Exception as exc:
            yield self._wrap_error(exc)

    def _request_params(self, tools: Optional[list[dict[str, Any]]]) -> dict[str, Any]:
        params: dict[str, Any] = {"stream": True, "extra": {}}
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens
        if tools:
            params["tools"] = tools
        return params

    def _wrap_error(self, exc: Exception) -> ChatResponse:
        """Wrap exception into an error response."""
        msg = classify_error(exc, self.logger)
        return ChatResponse(content="", error=str(msg), final=True)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> "BaseChatModel":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class _OpenAIProtocolChatModel(BaseChatModel):
    """Shared streaming for providers that speak OpenAI chat completions."""

    _client: AsyncOpenAI

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    @property
    def _request_model(self) -> str:
        return self.model

    async def _stream_impl(
        self,
        messages: Sequence[ChatMessage],
        params: dict[str, Any],
    ) -> AsyncGenerator[ChatResponse, None]:
        args = {
            "model": self._request_model,
            "stream": True,
            **self.adapter.to_provider(messages, params),
        }
        self._log(f"Streaming request to model {self._request_model}", logging.DEBUG)

        accumulator = OpenAIStreamAccumulator(self.model)
        stream = await self._client.chat.completions.create(**args)
        async for chunk in stream:
            accumulator.add(chunk)
            delta = self.adapter.stream_text(chunk)
            if delta.content:
                yield delta
        yield self.adapter.from_provider(accumulator.build())


class AzureOpenAIChatModel(_OpenAIProtocolChatModel):
    """Azure OpenAI deployment. Requests address the deployment, not the model."""

    def __init__(
        self,
        model: str,
        *,
        client: AsyncAzureOpenAI,
        deployment_name: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(
            model, temperature=temperature, max_tokens=max_tokens, logger=logger, name=name
        )
        self.deployment_name = deployment_name
        self._client = client
        self._adapter = AzureOpenAIRequestAdapter()

    @property
    def _request_model(self) -> str:
        return self.deployment_name or self.model

    @classmethod
    def from_config(
        cls,
        config: AzureOpenAIConfig,
        *,
        client: Optional[AsyncAzureOpenAI] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
    ) -> "AzureOpenAIChatModel":
        if client is None:
            client = AsyncAzureOpenAI(
                api_key=config.api_key or get_api_key(config.provider),
                azure_endpoint=config.endpoint,
                azure_deployment=config.deployment_name or None,
                api_version=config.api_version,
                timeout=timeout,
                max_retries=max_retries,
            )
        return cls(
            config.model,
            client=client,
            deployment_name=config.deployment_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            logger=logger,
        )


class GeminiChatModel(_OpenAIProtocolChatModel):
    """Gemini via the OpenAI-compatible endpoint."""

    def __init__(
        self,
        model: str,
        *,
        client: AsyncOpenAI,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(
            model, temperature=temperature, max_tokens=max_tokens, logger=logger, name=name
        )
        self._client = client
        self._adapter = GeminiRequestAdapter()

    @classmethod
    def from_config(
        cls,
        config: GeminiConfig,
        *,
        client: Optional[AsyncOpenAI] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        base_url: str = _DEFAULT_GEMINI_BASE_URL,
        logger: Optional[logging.Logger] = None,
    ) -> "GeminiChatModel":
        if client is None:
            client = AsyncOpenAI(
                api_key=config.api_key or get_api_key(config.provider),
                base_url=base_url,
                timeout=timeout,
                max_retries=max_retries,
            )
        return cls(
            config.model,
            client=client,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            logger=logger,
        )


class AnthropicChatModel(BaseChatModel):
    """Anthropic messages API with server-sent event streaming."""

    def __init__(
        self,
        model: str,
        *,
        client: AsyncAnthropic,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(
            model, temperature=temperature, max_tokens=max_tokens, logger=logger, name=name
        )
        self._client = client
        self._adapter = AnthropicRequestAdapter()

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    @classmethod
    def from_config(
        cls,
        config: AnthropicConfig,
        *,
        client: Optional[AsyncAnthropic] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
    ) -> "AnthropicChatModel":
        if client is None:
            client = AsyncAnthropic(
                api_key=config.api_key or get_api_key(config.provider),
                timeout=timeout,
                max_retries=max_retries,
            )
        return cls(
            config.model,
            client=client,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            logger=logger,
        )

    async def _stream_impl(
        self,
        messages: Sequence[ChatMessage],
        params: dict[str, Any],
    ) -> AsyncGenerator[ChatResponse, None]:
        args = {"model": self.model, **self.adapter.to_provider(messages, params)}
        self._log(f"Streaming request to Anthropic model {self.model}", logging.DEBUG)

        async with self._client.messages.stream(**args) as stream:
            async for event in stream:
                delta = self.adapter.stream_text(event)
                if delta.content:
                    yield delta
            final = await stream.get_final_message()
        yield self.adapter.from_provider(final)


def create_chat_model(
    config: ProviderConfig,
    *,
    client: Any = None,
    logger: Optional[logging.Logger] = None,
    **provider_kwargs: Any,
) -> BaseChatModel:
    """
    Build the chat model for a provider configuration.

    Args:
        config: One member of the ``ProviderConfig`` union.
        client: Optional pre-configured SDK client (``AsyncAzureOpenAI``,
            ``AsyncOpenAI`` for Gemini, ``AsyncAnthropic``).
        logger: Optional custom logger.
        **provider_kwargs: Passed through to ``from_config`` (timeout, max_retries).

    Raises:
        UnsupportedProvider: The configuration has no chat client.
        RuntimeError: No API key in the config or the environment.
    """
    match config:
        case AzureOpenAIConfig():
            return AzureOpenAIChatModel.from_config(
                config, client=client, logger=logger, **provider_kwargs
            )
        case GeminiConfig():
            return GeminiChatModel.from_config(
                config, client=client, logger=logger, **provider_kwargs
            )
        case AnthropicConfig():
            return AnthropicChatModel.from_config(
                config, client=client, logger=logger, **provider_kwargs
            )
        case OllamaConfig():
            raise UnsupportedProvider(config.provider)
        case _:
            raise UnsupportedProvider(getattr(config, "provider", type(config).__name__))
