"""Token pricing table and cost calculation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ModelPricing:
    """Price per single token, in USD."""

    prompt: Decimal
    completion: Decimal


def _per_token(prompt: str, completion: str, per: int) -> ModelPricing:
    """Divide list prices quoted per ``per`` tokens down to one token."""
    return ModelPricing(Decimal(prompt) / per, Decimal(completion) / per)


_K = 1_000
_M = 1_000_000

# ── Pricing table: (provider, model) → per-token rates ─────────
_PRICING: dict[tuple[str, str], ModelPricing] = {
    # OpenAI
    ("openai", "gpt-3.5-turbo"): _per_token("0.001", "0.002", _K),
    ("openai", "gpt-3.5-turbo-0125"): _per_token("0.0005", "0.0015", _K),
    ("openai", "gpt-3.5-turbo-16k"): _per_token("0.003", "0.004", _K),
    ("openai", "gpt-4-turbo-preview"): _per_token("0.01", "0.03", _K),
    ("openai", "gpt-4-turbo"): _per_token("0.01", "0.03", _K),
    ("openai", "gpt-4o"): _per_token("0.005", "0.015", _K),
    ("openai", "gpt-4o-2024-08-06"): _per_token("0.0025", "0.010", _K),
    ("openai", "gpt-4o-mini"): _per_token("0.150", "0.600", _M),
    # Billed per image, not per token
    ("openai", "dall-e-3"): ModelPricing(Decimal(0), Decimal(0)),
    # Anthropic
    ("anthropic", "claude-3-opus-20240229"): _per_token("15", "75", _M),
    ("anthropic", "claude-3-sonnet-20240229"): _per_token("3", "15", _M),
    ("anthropic", "claude-3-5-sonnet-20240620"): _per_token("3", "15", _M),
    ("anthropic", "claude-3-haiku-20240307"): _per_token("0.25", "1.25", _M),
    # OpenRouter
    ("openrouter", "openai/gpt-3.5-turbo"): _per_token("0.001", "0.002", _K),
    ("openrouter", "openai/gpt-3.5-turbo-16k"): _per_token("0.003", "0.004", _K),
    ("openrouter", "openai/gpt-4-turbo-preview"): _per_token("0.01", "0.03", _K),
    ("openrouter", "anthropic/claude-3-opus"): _per_token("15", "75", _M),
    ("openrouter", "anthropic/claude-3-sonnet"): _per_token("3", "15", _M),
    ("openrouter", "anthropic/claude-3-5-sonnet-20240620"): _per_token("3", "15", _M),
    ("openrouter", "anthropic/claude-3-haiku"): _per_token("0.25", "1.25", _M),
}


def register_pricing(
    provider: str,
    model: str,
    prompt_per_token: Decimal | str,
    completion_per_token: Decimal | str,
) -> None:
    """Register or correct pricing for a (provider, model) pair.

    Args:
        provider: Provider name, e.g. "openai".
        model: Model identifier.
        prompt_per_token: USD per single prompt token.
        completion_per_token: USD per single completion token.
    """
    _PRICING[(provider, model)] = ModelPricing(
        Decimal(prompt_per_token), Decimal(completion_per_token)
    )


def get_pricing(provider: str, model: str) -> ModelPricing | None:
    """Return per-token pricing for a pair, or None if unknown."""
    return _PRICING.get((provider, model))


def calculate_cost(
    provider: str, model: str, prompt_tokens: int, completion_tokens: int
) -> Decimal:
    """Calculate USD cost for a given token count.

    Unknown pairs cost nothing, so an unmapped model never blocks logging.
    """
    pricing = _PRICING.get((provider, model))
    if pricing is None:
        return Decimal(0)
    return prompt_tokens * pricing.prompt + completion_tokens * pricing.completion
