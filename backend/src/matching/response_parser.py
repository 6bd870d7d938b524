"""Defensive parsing of AI matching responses.

Model output is untrusted text: it may wrap the JSON verdict in prose or code
fences, omit fields, or send values of the wrong type. Extraction is kept
separate from the HTTP call so it can be tested on its own.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .ports import InferenceError
from .scorer import clamp_confidence

_DECODER = json.JSONDecoder()

DEFAULT_REASONING = "AI match"


def extract_json_object(text: Optional[str]) -> Optional[dict]:
    """Return the first JSON object embedded in free text.

    Scans each '{' in order and decodes the longest valid JSON value starting
    there, so leading/trailing prose, nested objects and braces inside string
    values are handled.

    Args:
        text: Raw model output

    Returns:
        Parsed object, or None if the text holds no decodable object
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        try:
            value, _end = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


class MatchVerdict(BaseModel):
    """Structured verdict returned by the matching model."""

    model_config = ConfigDict(extra="ignore")

    product_id: Optional[str] = None
    confidence: int = 0
    reasoning: str = DEFAULT_REASONING

    @field_validator("product_id", mode="before")
    @classmethod
    def normalize_product_id(cls, v: Any) -> Optional[str]:
        """Accept string or integer ids; treat null-like values as no match."""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            v = str(v)
        if not isinstance(v, str):
            return None
        v = v.strip()
        if not v or v.lower() in ("null", "none"):
            return None
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        """Clamp into [0, 100] instead of rejecting."""
        return clamp_confidence(v)

    @field_validator("reasoning", mode="before")
    @classmethod
    def default_reasoning(cls, v: Any) -> str:
        if v is None:
            return DEFAULT_REASONING
        text = str(v).strip()
        return text or DEFAULT_REASONING


def parse_match_verdict(text: Optional[str]) -> MatchVerdict:
    """Extract and validate the verdict object from raw model output.

    Raises:
        InferenceError: If the text contains no JSON object
    """
    payload = extract_json_object(text)
    if payload is None:
        raise InferenceError("Invalid JSON response from AI: no JSON object found")

    try:
        return MatchVerdict.model_validate(payload)
    except ValidationError as e:
        raise InferenceError(f"Invalid JSON response from AI: {e}") from e
