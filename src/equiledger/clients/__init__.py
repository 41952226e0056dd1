"""LLM client implementations for EquiLedger."""

from enum import Enum

from equiledger.clients.base import BaseLLMClient, LLMResponse
from equiledger.clients.claude import ClaudeClient
from equiledger.clients.openai_client import OpenAIClient
from equiledger.config import get_settings

LLMClient = BaseLLMClient


class LLMProvider(str, Enum):
    """LLM provider selection."""

    CLAUDE = "claude"
    OPENAI = "openai"


def create_llm_client(provider: LLMProvider | str | None = None) -> LLMClient:
    """Create the LLM client for ``provider`` or the configured LLM_PROVIDER."""
    if provider is None:
        provider = get_settings().llm_provider
    try:
        provider = LLMProvider(provider)
    except ValueError:
        provider = LLMProvider.OPENAI

    if provider == LLMProvider.CLAUDE:
        return ClaudeClient()
    return OpenAIClient()


__all__ = [
    "BaseLLMClient",
    "ClaudeClient",
    "LLMClient",
    "LLMProvider",
    "LLMResponse",
    "OpenAIClient",
    "create_llm_client",
]
