"""Tests for the model-backed evaluator."""

from __future__ import annotations

import asyncio
import json

import pytest

from rulelint.config import resolve_linter_config
from rulelint.llm.evaluator import LLMEvaluator, parse_evaluation
from rulelint.llm.runner import LLMResponse, LLMRunner, LLMUsage


def _runner(content: str, *, cached: bool = False, usage: LLMUsage | None = None):
    requests = []

    def fake_runner(request):
        requests.append(request)
        return LLMResponse(content=content, model=request.model, usage=usage, cached=cached)

    return LLMRunner(model="gpt-4o", api_key=None, runner=fake_runner), requests


def test_parse_evaluation_builds_errors(make_file, make_rule) -> None:
    file = make_file()
    content = json.dumps(
        {
            "errors": [
                {"ruleName": "no-console", "codeSnippet": "console.log('hello')", "confidence": "High"},
                {"ruleName": "no-console", "codeSnippet": 3, "confidence": "high"},
                {"ruleName": "no-console", "codeSnippet": "x", "confidence": "certain"},
            ],
            "message": "  Uses console.  ",
        }
    )

    errors, message = parse_evaluation(content, file=file, rule=make_rule())

    assert len(errors) == 1
    error = errors[0]
    assert error.file_path == file.file_path
    assert error.language == "typescript"
    assert error.rule_name == "no-console"
    assert error.confidence == "high"
    assert message == "Uses console."


def test_parse_evaluation_accepts_fenced_json(make_file, make_rule) -> None:
    content = '```json\n{"errors": [], "message": "Looks fine."}\n```'

    errors, message = parse_evaluation(content, file=make_file(), rule=make_rule())

    assert errors == []
    assert message == "Looks fine."


def test_parse_evaluation_keeps_rule_name_on_mismatch(make_file, make_rule) -> None:
    content = json.dumps(
        {"errors": [{"ruleName": "other", "codeSnippet": "x", "confidence": "low"}]}
    )

    errors, message = parse_evaluation(content, file=make_file(), rule=make_rule())

    assert [error.rule_name for error in errors] == ["no-console"]
    assert message is None


@pytest.mark.parametrize("content", ["", "not json", "[]", '{"errors": "none"}'])
def test_parse_evaluation_rejects_bad_replies(make_file, make_rule, content) -> None:
    with pytest.raises(RuntimeError):
        parse_evaluation(content, file=make_file(), rule=make_rule())


def test_evaluate_records_usage_and_cost(make_file, make_rule) -> None:
    reply = json.dumps(
        {"errors": [{"ruleName": "no-console", "codeSnippet": "console.log()", "confidence": "medium"}]}
    )
    runner, requests = _runner(
        reply, usage=LLMUsage(prompt_tokens=1_000, completion_tokens=100, total_tokens=1_100)
    )
    evaluator = LLMEvaluator(runner)
    config = resolve_linter_config({"linterOptions": {"debug": True}})

    result = asyncio.run(evaluator.evaluate(make_file(), make_rule(), config))

    assert len(result.lint_errors) == 1
    assert result.num_model_calls == 1
    assert result.num_model_calls_cached == 0
    assert result.num_prompt_tokens == 1_000
    assert result.num_completion_tokens == 100
    assert result.num_total_tokens == 1_100
    assert result.total_cost == pytest.approx(0.0035)
    request = requests[0]
    assert request.response_format == {"type": "json_object"}
    assert [message.role for message in request.messages] == ["system", "system", "user"]


def test_evaluate_counts_proxy_cache_hits(make_file, make_rule) -> None:
    runner, _ = _runner('{"errors": []}', cached=True)

    result = asyncio.run(
        LLMEvaluator(runner).evaluate(make_file(), make_rule(), resolve_linter_config({}))
    )

    assert result.num_model_calls == 0
    assert result.num_model_calls_cached == 1
    assert result.total_cost == 0


def test_evaluator_from_config_uses_model_options(monkeypatch) -> None:
    monkeypatch.delenv("RULELINT_LLM_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    config = resolve_linter_config({"linterOptions": {"model": "gpt-4o-mini", "temperature": 0.3}})

    evaluator = LLMEvaluator.from_config(config)

    assert evaluator.get_params() == {"model": "gpt-4o-mini", "temperature": 0.3}
