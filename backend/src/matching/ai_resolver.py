"""AI-assisted disambiguation between fuzzy candidates."""

import asyncio
import logging
from typing import Optional, Sequence

from domain.ai.ports import LLMProviderPort, LLMError
from .ports import Candidate, MatchInput, MatchResult, InferenceError
from .prompts import MATCH_SYSTEM_PROMPT, build_match_prompt
from .response_parser import parse_match_verdict
from .status import MatchMethod

logger = logging.getLogger(__name__)


class AIResolver:
    """Ask the inference endpoint to pick the best candidate.

    The resolver is a decision function over its inputs plus one outbound
    call. It never falls back on failure; every failure surfaces as
    InferenceError and the orchestrator decides what to do.
    """

    def __init__(
        self,
        provider: Optional[LLMProviderPort],
        temperature: float = 0.1,
        max_tokens: int = 500,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize AI resolver.

        Args:
            provider: LLM provider (None disables the AI stage: every call
                raises InferenceError)
            temperature: Sampling temperature (low for determinism)
            max_tokens: Output token budget
            timeout_seconds: Overall deadline for the provider call including
                its retries (None = rely on the provider's own timeout)
        """
        self.provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def rank(self, input_data: MatchInput, candidates: Sequence[Candidate]) -> MatchResult:
        """Pick the best candidate for an order item.

        Args:
            input_data: Order item to match
            candidates: Candidates in retrieval order

        Returns:
            MatchResult with method AI; matched_product_id is None when the
            model declines or names a product outside the candidate list

        Raises:
            InferenceError: No candidates, provider failure or timeout, empty
                response, or no parseable JSON object in the response
        """
        if not candidates:
            raise InferenceError("No candidates to rank")
        if self.provider is None:
            raise InferenceError("No inference provider configured")

        prompt = build_match_prompt(input_data, candidates)

        try:
            completion = await self._call_provider(prompt)
        except asyncio.TimeoutError as e:
            raise InferenceError(
                f"AI inference timed out after {self.timeout_seconds}s"
            ) from e
        except LLMError as e:
            raise InferenceError(f"AI inference failed: {e}") from e

        content = (completion.raw_output or "").strip()
        if not content:
            raise InferenceError("Empty response from AI")

        verdict = parse_match_verdict(content)

        candidate_ids = {c.product.id for c in candidates}
        product_id = verdict.product_id
        if product_id is not None and product_id not in candidate_ids:
            logger.warning(f"AI returned product_id '{product_id}' outside the candidate list; treating as no match")
            product_id = None

        return MatchResult(
            matched_product_id=product_id,
            confidence=verdict.confidence,
            method=MatchMethod.AI,
            reasoning=verdict.reasoning,
        )

    async def _call_provider(self, prompt: str):
        call = self.provider.complete(
            MATCH_SYSTEM_PROMPT,
            prompt,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if self.timeout_seconds is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.timeout_seconds)
