"""
Provider Adapter - Capabilities of the supported LLM providers

OpenAI-compatible endpoints support native function calling; Ollama models get
the tool catalog injected into the system prompt and answer with JSON that the
agent parses (simulated tool calling).
"""

from dataclasses import dataclass
from typing import Dict


@dataclass
class ProviderCapabilities:
    """Capabilities of an LLM provider for tool calling"""
    native_function_calling: bool

    @property
    def requires_simulation(self) -> bool:
        """Whether this provider needs simulated tool calling via prompts"""
        return not self.native_function_calling


PROVIDER_CAPABILITIES: Dict[str, ProviderCapabilities] = {
    "openai": ProviderCapabilities(native_function_calling=True),
    "ollama": ProviderCapabilities(native_function_calling=False),
}

# Default capabilities for unknown providers
DEFAULT_CAPABILITIES = ProviderCapabilities(native_function_calling=False)


def get_provider_capabilities(provider: str) -> ProviderCapabilities:
    """
    Get capabilities for a specific LLM provider.

    Args:
        provider: Provider identifier ("openai" or "ollama")
    """
    return PROVIDER_CAPABILITIES.get(provider.lower(), DEFAULT_CAPABILITIES)


def supports_native_tools(provider: str) -> bool:
    """Check if a provider supports native function calling"""
    return get_provider_capabilities(provider).native_function_calling
