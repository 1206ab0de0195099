"""Evaluates one file against one rule with a language model."""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from ..config import ResolvedLinterConfig
from ..logging import get_logger
from ..models import CONFIDENCE_LEVELS, InputFile, LintError, LintResult, Rule
from ..prompting.builder import PromptBuilder
from .pricing import estimate_cost_usd
from .runner import LLMRunner

_JSON_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

logger = get_logger("llm")


class Evaluator(Protocol):
    """Turns a (file, rule) pair into a lint result fragment."""

    def get_params(self) -> Mapping[str, Any]:
        """Return the model parameters that influence the evaluation."""

    async def evaluate(
        self, file: InputFile, rule: Rule, config: ResolvedLinterConfig
    ) -> LintResult:
        """Run the evaluation; may raise on transport or model failure."""


class LLMEvaluator:
    """Evaluator backed by a chat completion endpoint."""

    RESPONSE_FORMAT = {"type": "json_object"}

    def __init__(
        self,
        runner: LLMRunner,
        *,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        self.runner = runner
        self.prompt_builder = prompt_builder or PromptBuilder()

    @classmethod
    def from_config(cls, config: ResolvedLinterConfig) -> "LLMEvaluator":
        options = config.linter_options
        return cls(LLMRunner(model=options.model, temperature=options.temperature))

    def get_params(self) -> Mapping[str, Any]:
        return self.runner.get_params()

    async def evaluate(
        self, file: InputFile, rule: Rule, config: ResolvedLinterConfig
    ) -> LintResult:
        messages = self.prompt_builder.build(file, rule)
        if config.linter_options.debug:
            logger.debug('>>> Rule "%s" file "%s"', rule.name, file.file_relative_path)

        response = await asyncio.to_thread(
            self.runner.complete, messages, response_format=self.RESPONSE_FORMAT
        )
        lint_errors, message = parse_evaluation(response.content, file=file, rule=rule)

        result = LintResult(lint_errors=lint_errors, message=message)
        if response.cached:
            result.num_model_calls_cached += 1
        else:
            result.num_model_calls += 1

        if response.usage is not None:
            result.num_prompt_tokens = response.usage.prompt_tokens
            result.num_completion_tokens = response.usage.completion_tokens
            result.num_total_tokens = response.usage.total_tokens
            cost = estimate_cost_usd(
                model=response.model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
            if cost:
                result.total_cost = cost

        if config.linter_options.debug:
            status = "FAIL" if lint_errors else "PASS"
            logger.debug(
                '<<< %s Rule "%s" file "%s": %d error(s) found: %s',
                status,
                rule.name,
                file.file_relative_path,
                len(lint_errors),
                _trim_message(message),
            )
        return result


def parse_evaluation(
    content: str, *, file: InputFile, rule: Rule
) -> Tuple[List[LintError], Optional[str]]:
    """Parse the model's JSON reply into lint errors and a summary message."""
    text = content.strip()
    fenced = _JSON_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    if not text:
        raise RuntimeError("model returned an empty response")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"model returned invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError("model response must be a JSON object")

    raw_errors = payload.get("errors") or []
    if not isinstance(raw_errors, list):
        raise RuntimeError('model response field "errors" must be a list')

    lint_errors: List[LintError] = []
    for entry in raw_errors:
        if not isinstance(entry, dict):
            continue
        snippet = entry.get("codeSnippet")
        confidence = str(entry.get("confidence", "")).strip().lower()
        if not isinstance(snippet, str) or confidence not in CONFIDENCE_LEVELS:
            logger.warning(
                'rule "%s" file "%s": ignoring malformed error entry %r',
                rule.name,
                file.file_relative_path,
                entry,
            )
            continue

        reported_name = str(entry.get("ruleName", rule.name)).strip().lower()
        if reported_name != rule.name:
            logger.warning(
                'rule "%s" model recorded error with unrecognized rule name "%s" on file "%s"',
                rule.name,
                reported_name,
                file.file_relative_path,
            )

        lint_errors.append(
            LintError(
                file_path=file.file_path,
                language=file.language,
                rule_name=rule.name,
                code_snippet=snippet,
                confidence=confidence,  # type: ignore[arg-type]
            )
        )

    message = payload.get("message")
    return lint_errors, message.strip() if isinstance(message, str) and message.strip() else None


def _trim_message(message: Optional[str], max_length: int = 80) -> str:
    if not message:
        return ""
    flattened = " ".join(message.split())
    if len(flattened) <= max_length:
        return flattened
    return flattened[: max_length - 3] + "..."


__all__ = ["Evaluator", "LLMEvaluator", "parse_evaluation"]
