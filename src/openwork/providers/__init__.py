"""
Provider adapters.

One adapter per reasoning backend, all satisfying BaseProviderAdapter.
Use create_adapter() to build one from a provider id.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..errors import ConfigurationError
from .base import MAX_STEP_ITERATIONS, BaseProviderAdapter, determine_mode
from .claude_adapter import ClaudeAdapter
from .gemini_adapter import GeminiAdapter
from .ollama_adapter import OllamaAdapter
from .openai_adapter import OpenAIAdapter
from .types import (
	AdapterConfig,
	AgentMode,
	AgentProgress,
	AgentResult,
	ChatChunk,
	Message,
	MessageRole,
	PlanContext,
	ProviderId,
	StepResult,
)

logger = logging.getLogger(__name__)

ADAPTERS: dict[ProviderId, type[BaseProviderAdapter]] = {
	ProviderId.CLAUDE: ClaudeAdapter,
	ProviderId.OPENAI: OpenAIAdapter,
	ProviderId.GEMINI: GeminiAdapter,
	ProviderId.OLLAMA: OllamaAdapter,
}


@dataclass(frozen=True)
class ProviderInfo:
	"""Catalogue entry for a provider."""
	id: ProviderId
	name: str
	requires_api_key: bool


SUPPORTED_PROVIDERS: list[ProviderInfo] = [
	ProviderInfo(pid, cls.display_name, cls.requires_api_key) for pid, cls in ADAPTERS.items()
]


def _provider_id(provider: Union[ProviderId, str]) -> ProviderId:
	try:
		return ProviderId(provider)
	except ValueError:
		raise ConfigurationError(f"Unknown provider: {provider}") from None


def create_adapter(provider: Union[ProviderId, str], config: Optional[AdapterConfig] = None) -> BaseProviderAdapter:
	"""Build the adapter for a provider id."""
	adapter_cls = ADAPTERS[_provider_id(provider)]
	return adapter_cls(config or AdapterConfig())


def get_supported_models(provider: Union[ProviderId, str]) -> list[str]:
	try:
		return list(ADAPTERS[ProviderId(provider)].supported_models)
	except ValueError:
		return []


async def is_provider_available(provider: Union[ProviderId, str], config: Optional[AdapterConfig] = None) -> bool:
	"""Whether the provider is configured and answers a round trip."""
	try:
		adapter = create_adapter(provider, config)
		if not adapter.is_configured():
			return False
		return await adapter.validate_credential()
	except Exception as e:
		logger.info(f"Provider {provider} unavailable: {e}")
		return False


__all__ = [
	"ADAPTERS",
	"AdapterConfig",
	"AgentMode",
	"AgentProgress",
	"AgentResult",
	"BaseProviderAdapter",
	"ChatChunk",
	"ClaudeAdapter",
	"GeminiAdapter",
	"MAX_STEP_ITERATIONS",
	"Message",
	"MessageRole",
	"OllamaAdapter",
	"OpenAIAdapter",
	"PlanContext",
	"ProviderId",
	"ProviderInfo",
	"SUPPORTED_PROVIDERS",
	"StepResult",
	"create_adapter",
	"determine_mode",
	"get_supported_models",
	"is_provider_available",
]
