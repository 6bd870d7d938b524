"""AI provider adapters implementing domain.ai.ports.LLMProviderPort"""

from .openai_provider import OpenAICompatibleProvider

__all__ = ["OpenAICompatibleProvider"]
