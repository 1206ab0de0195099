"""Token cost estimation for model calls."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

PRICING_ENV_VAR = "RULELINT_LLM_PRICING"


@dataclass(frozen=True)
class ModelPricing:
    """Per-model input/output pricing in USD per 1M tokens."""

    input_per_1m: float
    output_per_1m: float


_BUILTIN_PRICING: Dict[str, ModelPricing] = {
    "gpt-4-turbo-preview": ModelPricing(input_per_1m=10.0, output_per_1m=30.0),
    "gpt-4-turbo": ModelPricing(input_per_1m=10.0, output_per_1m=30.0),
    "gpt-4-0125-preview": ModelPricing(input_per_1m=10.0, output_per_1m=30.0),
    "gpt-4": ModelPricing(input_per_1m=30.0, output_per_1m=60.0),
    "gpt-4o": ModelPricing(input_per_1m=2.5, output_per_1m=10.0),
    "gpt-4o-mini": ModelPricing(input_per_1m=0.15, output_per_1m=0.6),
    "gpt-3.5-turbo": ModelPricing(input_per_1m=0.5, output_per_1m=1.5),
}


def estimate_cost_usd(
    *,
    model: str,
    prompt_tokens: int | None,
    completion_tokens: int | None,
    total_tokens: int | None = None,
) -> float | None:
    """Estimate the cost of one call; ``None`` when the model has no known price."""

    pricing = lookup_pricing(model)
    if pricing is None:
        return None

    if prompt_tokens is not None and completion_tokens is not None:
        return (
            (prompt_tokens / 1_000_000) * pricing.input_per_1m
            + (completion_tokens / 1_000_000) * pricing.output_per_1m
        )

    if total_tokens is not None:
        return (total_tokens / 1_000_000) * pricing.input_per_1m
    return None


def lookup_pricing(model: str) -> Optional[ModelPricing]:
    overrides = _parse_pricing_mapping(os.getenv(PRICING_ENV_VAR, ""))
    name = model.strip()
    if name in overrides:
        return overrides[name]
    if name in _BUILTIN_PRICING:
        return _BUILTIN_PRICING[name]

    # Dated snapshots such as gpt-4o-2024-05-13 share the base model's price.
    for known in sorted(_BUILTIN_PRICING, key=len, reverse=True):
        if name.startswith(f"{known}-"):
            return _BUILTIN_PRICING[known]
    return overrides.get("*")


def _parse_pricing_mapping(raw: str) -> Dict[str, ModelPricing]:
    """Parse the ``RULELINT_LLM_PRICING`` override.

    Format: ``model:input_per_1m:output_per_1m`` entries separated by ``,``;
    ``*`` as the model name sets a fallback price.
    """

    parsed: Dict[str, ModelPricing] = {}
    if not raw.strip():
        return parsed

    for entry in raw.split(","):
        value = entry.strip()
        if not value:
            continue
        model, sep, prices = value.partition(":")
        input_price, sep2, output_price = prices.partition(":")
        if not sep or not sep2:
            continue
        try:
            parsed[model.strip()] = ModelPricing(
                input_per_1m=float(input_price),
                output_per_1m=float(output_price),
            )
        except ValueError:
            continue
    return parsed


__all__ = ["ModelPricing", "PRICING_ENV_VAR", "estimate_cost_usd", "lookup_pricing"]
