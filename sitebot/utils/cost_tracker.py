"""OpenAI cost estimation and tracking."""

import logging

logger = logging.getLogger(__name__)

# Price per 1K tokens (USD)
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    "gpt-3.5-turbo": {"input": 0.0005, "output": 0.0015},
}

EMBEDDING_PRICING: dict[str, float] = {
    "text-embedding-3-small": 0.00002,
    "text-embedding-3-large": 0.00013,
    "text-embedding-ada-002": 0.0001,
}

# Fallback pricing for unknown models
DEFAULT_PRICING = {"input": 0.0005, "output": 0.0015}
DEFAULT_EMBEDDING_PRICE = 0.0001


def estimate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    """Estimate cost in USD for a single chat completion."""
    pricing = MODEL_PRICING.get(model, DEFAULT_PRICING)
    cost = (input_tokens / 1000) * pricing["input"] + (output_tokens / 1000) * pricing["output"]
    return round(cost, 8)


def estimate_embedding_cost(tokens: int, model: str) -> float:
    return round((tokens / 1000) * EMBEDDING_PRICING.get(model, DEFAULT_EMBEDDING_PRICE), 8)


def log_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    """Estimate and log the cost of a chat completion."""
    cost = estimate_cost(input_tokens, output_tokens, model)
    logger.info(
        "LLM cost: model=%s input_tokens=%d output_tokens=%d cost=$%.6f",
        model, input_tokens, output_tokens, cost,
    )
    return cost
