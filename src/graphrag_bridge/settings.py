"""
Provider configuration.

``ProviderConfig`` is a closed tagged union: each dataclass fixes its own
``provider`` tag. ``LLMSettings`` is the stored form, keeping one block per
provider so that switching providers never loses the others' settings.
"""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, replace
from enum import StrEnum
from typing import Any, ClassVar, Final, Literal, Optional, Union

from dotenv import load_dotenv

from graphrag_bridge.errors import UnsupportedProvider

load_dotenv()

__all__ = [
    "Provider",
    "AzureOpenAIConfig",
    "GeminiConfig",
    "AnthropicConfig",
    "OllamaConfig",
    "ProviderConfig",
    "LLMSettings",
    "DEFAULT_LLM_SETTINGS",
    "get_api_key",
]


class Provider(StrEnum):
    AZURE_OPENAI = "azure-openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.AZURE_OPENAI: "AZURE_OPENAI_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
}

DEFAULT_TEMPERATURE: Final = 0.1
DEFAULT_AZURE_API_VERSION: Final = "2024-08-01-preview"
DEFAULT_OLLAMA_BASE_URL: Final = "http://localhost:11434"


def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* or raise RuntimeError."""
    try:
        env_var = _ENV_VARS[provider]
    except KeyError:
        raise RuntimeError(f"No API key config for {provider!s}") from None

    try:
        return os.environ[env_var]
    except KeyError as exc:
        raise RuntimeError(f"{env_var} missing") from exc


@dataclass(frozen=True)
class AzureOpenAIConfig:
    endpoint: str = ""  # e.g. https://your-resource.openai.azure.com
    deployment_name: str = ""
    api_key: str = ""
    model: str = "gpt-4o"
    api_version: str = DEFAULT_AZURE_API_VERSION
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = None
    provider: Literal[Provider.AZURE_OPENAI] = field(default=Provider.AZURE_OPENAI, init=False)


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = None
    provider: Literal[Provider.GEMINI] = field(default=Provider.GEMINI, init=False)


@dataclass(frozen=True)
class AnthropicConfig:
    api_key: str = ""
    model: str = "claude-3-5-haiku-20241022"
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = None
    provider: Literal[Provider.ANTHROPIC] = field(default=Provider.ANTHROPIC, init=False)


@dataclass(frozen=True)
class OllamaConfig:
    """Local Ollama server settings. Stored, but no chat client exists for it yet."""
    base_url: str = DEFAULT_OLLAMA_BASE_URL
    model: str = "llama3.2"
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = None
    provider: Literal[Provider.OLLAMA] = field(default=Provider.OLLAMA, init=False)


ProviderConfig = Union[AzureOpenAIConfig, GeminiConfig, AnthropicConfig, OllamaConfig]


def _config_from_dict(cls: type, data: dict[str, Any]) -> Any:
    """Build a config dataclass from stored data, ignoring unknown and tag keys."""
    names = {f.name for f in fields(cls) if f.init}
    return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class LLMSettings:
    """Stored LLM settings: the active provider plus every provider's block."""

    active_provider: Provider = Provider.GEMINI
    azure_openai: AzureOpenAIConfig = field(default_factory=AzureOpenAIConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)

    _SLOTS: ClassVar[dict[Provider, str]] = {
        Provider.AZURE_OPENAI: "azure_openai",
        Provider.GEMINI: "gemini",
        Provider.ANTHROPIC: "anthropic",
        Provider.OLLAMA: "ollama",
    }

    def active_config(self) -> ProviderConfig:
        """Return the settings block of the active provider."""
        return self.config_for(self.active_provider)

    def config_for(self, provider: Provider | str) -> ProviderConfig:
        try:
            slot = self._SLOTS[Provider(provider)]
        except ValueError:
            raise UnsupportedProvider(provider) from None
        return getattr(self, slot)

    def switch_provider(self, provider: Provider | str) -> "LLMSettings":
        """Make *provider* active. Other providers' blocks are kept as they are."""
        try:
            target = Provider(provider)
        except ValueError:
            raise UnsupportedProvider(provider) from None
        return replace(self, active_provider=target)

    def with_config(self, config: ProviderConfig) -> "LLMSettings":
        """Replace one provider's block without changing the active provider."""
        slot = self._SLOTS.get(getattr(config, "provider", None))
        if slot is None:
            raise UnsupportedProvider(getattr(config, "provider", config))
        return replace(self, **{slot: config})

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"active_provider": self.active_provider.value}
        for provider, slot in self._SLOTS.items():
            block = asdict(getattr(self, slot))
            block.pop("provider", None)
            data[slot] = block
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LLMSettings":
        """Load stored settings; missing blocks fall back to defaults."""
        kwargs: dict[str, Any] = {}
        if "active_provider" in data:
            try:
                kwargs["active_provider"] = Provider(data["active_provider"])
            except ValueError:
                raise UnsupportedProvider(data["active_provider"]) from None
        config_types = {
            "azure_openai": AzureOpenAIConfig,
            "gemini": GeminiConfig,
            "anthropic": AnthropicConfig,
            "ollama": OllamaConfig,
        }
        for slot, config_cls in config_types.items():
            block = data.get(slot)
            if isinstance(block, dict):
                kwargs[slot] = _config_from_dict(config_cls, block)
        return cls(**kwargs)


DEFAULT_LLM_SETTINGS: Final = LLMSettings()
