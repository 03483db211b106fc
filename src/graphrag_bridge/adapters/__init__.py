"""Pure transformation adapters for different LLM providers."""

from .openai import OpenAIRequestAdapter
from .anthropic import AnthropicRequestAdapter

# Gemini and Azure OpenAI speak the OpenAI chat-completions protocol
GeminiRequestAdapter = OpenAIRequestAdapter
AzureOpenAIRequestAdapter = OpenAIRequestAdapter

__all__ = [
    "OpenAIRequestAdapter",
    "AnthropicRequestAdapter",
    "GeminiRequestAdapter",
    "AzureOpenAIRequestAdapter",
]
