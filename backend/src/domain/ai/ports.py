"""
LLM Provider Port - Abstract interface for LLM providers.

Hexagonal Architecture: This is a domain port that infrastructure adapters implement.
Business logic depends on this port, not on concrete implementations
(Fireworks.ai, OpenAI, ...).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class LLMCompletionResult:
    """
    Result from an LLM chat completion call.

    Attributes:
        raw_output: Text content of the first choice ('' if the provider sent none)
        provider: Provider name (e.g., 'fireworks')
        model: Model name
        tokens_in: Input tokens used (None if provider doesn't report)
        tokens_out: Output tokens used (None if provider doesn't report)
        latency_ms: Latency in milliseconds
        warnings: List of non-critical warnings
    """
    raw_output: str
    provider: str
    model: str
    tokens_in: Optional[int] = None
    tokens_out: Optional[int] = None
    latency_ms: int = 0
    warnings: list[str] = field(default_factory=list)


class LLMProviderPort(ABC):
    """
    Abstract interface for LLM providers.

    Implementations must handle:
    - API authentication
    - Request formatting for provider
    - Timeouts and bounded retries
    - Error mapping to the LLMError hierarchy
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used in logs and metrics."""
        pass

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> LLMCompletionResult:
        """
        Run one chat completion.

        Args:
            system_prompt: Fixed system instruction
            user_prompt: Rendered user prompt
            temperature: Sampling temperature
            max_tokens: Output token budget

        Returns:
            LLMCompletionResult with raw text and usage metadata

        Raises:
            LLMTimeoutError: Request timed out
            LLMRateLimitError: Rate limit exceeded
            LLMAuthError: Authentication failed
            LLMServiceError: Provider service unavailable
            LLMInvalidResponseError: Response had an unexpected shape
        """
        pass


# Custom exceptions for LLM operations
class LLMError(Exception):
    """Base exception for LLM operations"""
    pass


class LLMTimeoutError(LLMError):
    """LLM request timed out"""
    pass


class LLMRateLimitError(LLMError):
    """Rate limit exceeded"""
    pass


class LLMAuthError(LLMError):
    """Authentication failed"""
    pass


class LLMServiceError(LLMError):
    """Provider service unavailable or returned error"""
    pass


class LLMInvalidResponseError(LLMError):
    """Provider returned invalid/unexpected response"""
    pass
