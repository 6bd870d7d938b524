"""LLM prompt templates for AI-assisted product matching."""

from typing import Sequence

from .ports import Candidate, MatchInput

MATCH_SYSTEM_PROMPT = (
    "You are a product matching assistant for an order processing system. "
    "Your task is to match order items to products from a catalog. "
    "Respond only with valid JSON."
)

MATCH_USER_TEMPLATE = """Match this order item to the best product from the catalog:

ORDER ITEM:
- Item Number: {item_code}
- Description: {description}
- Quantity: {quantity}

CANDIDATE PRODUCTS:
{candidates}

Instructions:
1. Compare the order item to each candidate product
2. Consider item number similarity, description similarity, and context
3. Return the ID of the best matching product
4. Provide a confidence score (0-100)
5. Explain your reasoning briefly

If no product matches well, return null for product_id.

Respond with ONLY this JSON format:
{{
  "product_id": "id-string-or-null",
  "confidence": 85,
  "reasoning": "Brief explanation of why this matches"
}}"""

CANDIDATE_TEMPLATE = """{position}. ID: {id}
   Item Number: {item_code}
   Description: {description}
   Price: {price}"""


def _format_price(candidate: Candidate) -> str:
    price = candidate.product.unit_price
    return "N/A" if price is None else f"${price}"


def build_match_prompt(input_data: MatchInput, candidates: Sequence[Candidate]) -> str:
    """Render the user prompt for one order item.

    Output depends only on the arguments: the same item and candidate order
    always yield the same prompt.

    Args:
        input_data: Order item to match
        candidates: Candidates in retrieval order

    Returns:
        Prompt text
    """
    candidates_text = "\n\n".join(
        CANDIDATE_TEMPLATE.format(
            position=i,
            id=c.product.id,
            item_code=c.product.item_code,
            description=c.product.description,
            price=_format_price(c),
        )
        for i, c in enumerate(candidates, start=1)
    )

    return MATCH_USER_TEMPLATE.format(
        item_code=(input_data.item_code or "").strip() or "N/A",
        description=(input_data.description or "").strip() or "N/A",
        quantity=input_data.quantity,
        candidates=candidates_text,
    )
