"""
OpenAI-compatible Provider - Concrete implementation of LLMProviderPort.

Talks to any OpenAI-compatible chat-completions endpoint through the async
OpenAI SDK. Defaults target Fireworks.ai, which serves the matching model.
"""

import os
import time
import logging
from typing import Optional

import httpx
from openai import (
    AsyncOpenAI,
    APIError,
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
)

from domain.ai.ports import (
    LLMProviderPort,
    LLMCompletionResult,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMAuthError,
    LLMServiceError,
    LLMInvalidResponseError,
)
from observability.metrics import ai_calls_total, ai_latency_ms, ai_tokens_total

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.fireworks.ai/inference/v1"
DEFAULT_MODEL = "accounts/fireworks/models/kimi-k2-5"


class OpenAICompatibleProvider(LLMProviderPort):
    """
    Async OpenAI-compatible implementation of LLMProviderPort.

    Per-request timeout and retry count are enforced by the SDK client;
    ``max_attempts`` counts the first call, so 2 means one retry.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = 30.0,
        max_attempts: int = 2,
        provider_name: str = "fireworks",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize provider.

        Args:
            api_key: API key (defaults to FIREWORKS_API_KEY env var)
            base_url: Chat-completions API base URL
            model: Model identifier sent with every request
            timeout_seconds: Per-request timeout
            max_attempts: Total attempts per call (first call included)
            provider_name: Name used in logs and metrics
            http_client: Optional preconfigured httpx client

        Raises:
            ValueError: If API key is not provided or max_attempts < 1
        """
        self.api_key = api_key or os.getenv("FIREWORKS_API_KEY")
        if not self.api_key:
            raise ValueError("Inference API key not provided. Set FIREWORKS_API_KEY environment variable.")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self._name = provider_name
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=max_attempts - 1,
            http_client=http_client,
        )

    @property
    def name(self) -> str:
        return self._name

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> LLMCompletionResult:
        """
        Run one chat completion against the configured model.

        Raises:
            LLMTimeoutError, LLMRateLimitError, LLMAuthError, LLMServiceError,
            LLMInvalidResponseError
        """
        start_time = time.perf_counter()
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except APITimeoutError as e:
            self._record_failure()
            raise LLMTimeoutError(f"{self._name} API timeout: {str(e)}") from e
        except RateLimitError as e:
            self._record_failure()
            raise LLMRateLimitError(f"{self._name} rate limit exceeded: {str(e)}") from e
        except AuthenticationError as e:
            self._record_failure()
            raise LLMAuthError(f"{self._name} authentication failed: {str(e)}") from e
        except (APIConnectionError, APIError) as e:
            self._record_failure()
            raise LLMServiceError(f"{self._name} service error: {str(e)}") from e
        except Exception as e:
            self._record_failure()
            raise LLMServiceError(f"Unexpected error calling {self._name}: {str(e)}") from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        if not getattr(response, "choices", None):
            self._record_failure()
            raise LLMInvalidResponseError(f"{self._name} returned no choices")

        message = response.choices[0].message
        raw_output = (message.content if message is not None else None) or ""

        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else None
        completion_tokens = usage.completion_tokens if usage else None

        warnings = []
        if not raw_output:
            warnings.append("Empty completion content")

        ai_calls_total.labels(provider=self._name, status="success").inc()
        ai_latency_ms.labels(provider=self._name).observe(latency_ms)
        if prompt_tokens:
            ai_tokens_total.labels(provider=self._name, direction="input").inc(prompt_tokens)
        if completion_tokens:
            ai_tokens_total.labels(provider=self._name, direction="output").inc(completion_tokens)

        logger.debug(
            f"{self._name} completion in {latency_ms}ms "
            f"(tokens_in={prompt_tokens}, tokens_out={completion_tokens})"
        )

        return LLMCompletionResult(
            raw_output=raw_output,
            provider=self._name,
            model=self.model,
            tokens_in=prompt_tokens,
            tokens_out=completion_tokens,
            latency_ms=latency_ms,
            warnings=warnings,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()

    def _record_failure(self) -> None:
        ai_calls_total.labels(provider=self._name, status="error").inc()
