"""AI domain layer - Port and error types for LLM providers"""

from .ports import (
    LLMProviderPort,
    LLMCompletionResult,
    LLMError,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMAuthError,
    LLMServiceError,
    LLMInvalidResponseError,
)

__all__ = [
    "LLMProviderPort",
    "LLMCompletionResult",
    "LLMError",
    "LLMTimeoutError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMServiceError",
    "LLMInvalidResponseError",
]
