"""Tests for token cost estimation."""

from __future__ import annotations

import pytest

from rulelint.llm.pricing import PRICING_ENV_VAR, estimate_cost_usd, lookup_pricing


def test_known_model_cost() -> None:
    cost = estimate_cost_usd(model="gpt-4o", prompt_tokens=1_000_000, completion_tokens=100_000)

    assert cost == pytest.approx(3.5)


def test_dated_snapshot_uses_base_price() -> None:
    assert lookup_pricing("gpt-4o-mini-2024-07-18") == lookup_pricing("gpt-4o-mini")
    assert lookup_pricing("gpt-4o-2024-05-13") == lookup_pricing("gpt-4o")


def test_unknown_model_has_no_cost(monkeypatch) -> None:
    monkeypatch.delenv(PRICING_ENV_VAR, raising=False)

    assert estimate_cost_usd(model="local-llama", prompt_tokens=10, completion_tokens=5) is None


def test_total_tokens_fallback() -> None:
    cost = estimate_cost_usd(
        model="gpt-4", prompt_tokens=None, completion_tokens=None, total_tokens=1_000_000
    )

    assert cost == pytest.approx(30.0)


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv(PRICING_ENV_VAR, "gpt-4o:1:2, *:0.5:0.5, broken-entry")

    assert estimate_cost_usd(
        model="gpt-4o", prompt_tokens=1_000_000, completion_tokens=1_000_000
    ) == pytest.approx(3.0)
    assert estimate_cost_usd(
        model="local-llama", prompt_tokens=1_000_000, completion_tokens=0
    ) == pytest.approx(0.5)
