"""Token estimation and cost accounting for Gemini calls.

The estimate is a rough ~4 characters per token for English text; it is not a
tokenizer and will drift for code, non-Latin scripts or heavy punctuation.
"""
import logging
import math

from resumeflow.models import CostCalculation, TokenUsage

logger = logging.getLogger(__name__)

# Gemini 2.0 Flash paid-tier pricing, USD per 1M tokens
GEMINI_PRICING = {
    "input_price": 0.10,
    "output_price": 0.40,
}


def estimate_token_count(text: str) -> int:
    return math.ceil(len(text) / 4)


def build_token_usage(input_tokens: int, output_tokens: int) -> TokenUsage:
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
    )


def calculate_token_cost(usage: TokenUsage) -> CostCalculation:
    input_cost = (usage.input_tokens / 1_000_000) * GEMINI_PRICING["input_price"]
    output_cost = (usage.output_tokens / 1_000_000) * GEMINI_PRICING["output_price"]
    return CostCalculation(
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )


def log_token_cost_analysis(usage: TokenUsage) -> CostCalculation:
    cost = calculate_token_cost(usage)
    logger.info(
        f"API cost analysis | input tokens: {usage.input_tokens:,} (${cost.input_cost:.6f}) "
        f"| output tokens: {usage.output_tokens:,} (${cost.output_cost:.6f}) "
        f"| total: ${cost.total_cost:.6f}"
    )
    return cost
