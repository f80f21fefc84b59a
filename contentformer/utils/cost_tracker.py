"""Token usage and cost tracking per generation stage.

Costs come from LiteLLM's pricing data, with a rough fallback table for
the two default models when LiteLLM doesn't know the model.
"""

import logging
from dataclasses import dataclass, field

import litellm

logger = logging.getLogger(__name__)

# USD per 1M tokens (input, output)
_FALLBACK_PRICING = {
    "sonnet": (3.0, 15.0),
    "gpt-4": (30.0, 60.0),
}


@dataclass
class StageUsage:
    """Accumulated usage for one stage (ideas, script, linkedin, ...)."""

    stage: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    call_count: int = 0


@dataclass
class PipelineCosts:
    """Aggregate usage across all stages of a session."""

    stages: dict[str, StageUsage] = field(default_factory=dict)

    def add_usage(
        self,
        stage: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
    ) -> None:
        """Record one call's usage against a stage."""
        usage = self.stages.setdefault(stage, StageUsage(stage=stage, model=model))
        usage.model = model
        usage.input_tokens += input_tokens
        usage.output_tokens += output_tokens
        usage.cost_usd += calculate_cost(model, input_tokens, output_tokens)
        usage.call_count += 1

    def total_cost(self) -> float:
        return sum(s.cost_usd for s in self.stages.values())

    def total_tokens(self) -> tuple[int, int]:
        """Return total (input_tokens, output_tokens) across all stages."""
        return (
            sum(s.input_tokens for s in self.stages.values()),
            sum(s.output_tokens for s in self.stages.values()),
        )

    def to_dict(self) -> dict:
        input_total, output_total = self.total_tokens()
        return {
            "total_cost_usd": round(self.total_cost(), 6),
            "total_input_tokens": input_total,
            "total_output_tokens": output_total,
            "stages": {
                name: {
                    "model": usage.model,
                    "input_tokens": usage.input_tokens,
                    "output_tokens": usage.output_tokens,
                    "cost_usd": round(usage.cost_usd, 6),
                    "call_count": usage.call_count,
                }
                for name, usage in self.stages.items()
            },
        }


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Calculate cost for an API call using LiteLLM pricing.

    Args:
        model: Model identifier (e.g., "claude-3-5-sonnet-20241022", "gpt-4")
        input_tokens: Number of input/prompt tokens
        output_tokens: Number of output/completion tokens

    Returns:
        Cost in USD
    """
    if not input_tokens and not output_tokens:
        return 0.0
    try:
        prompt_cost, completion_cost = litellm.cost_per_token(
            model=model,
            prompt_tokens=input_tokens,
            completion_tokens=output_tokens,
        )
        return (prompt_cost or 0.0) + (completion_cost or 0.0)
    except Exception as e:
        logger.warning("Failed to calculate cost for model %s: %s", model, e)
        for marker, (input_price, output_price) in _FALLBACK_PRICING.items():
            if marker in model.lower():
                return (input_tokens * input_price + output_tokens * output_price) / 1_000_000
        return 0.0
