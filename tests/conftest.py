from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Tuple

import pytest

from rulelint.cache import LintCache
from rulelint.config import ResolvedLinterConfig, resolve_linter_config
from rulelint.models import InputFile, LintError, LintResult, Rule, RuleExample

TaskKey = Tuple[str, str]


class StubEvaluator:
    """Deterministic evaluator that records every call it receives."""

    def __init__(
        self,
        *,
        errors: Dict[TaskKey, int] | None = None,
        delays: Dict[TaskKey, float] | None = None,
        failures: Iterable[TaskKey] = (),
        default_delay: float = 0.0,
        params: Dict[str, object] | None = None,
    ) -> None:
        self.errors = errors or {}
        self.delays = delays or {}
        self.failures = set(failures)
        self.default_delay = default_delay
        self.params = params or {"model": "stub-model", "temperature": 0}
        self.calls: List[TaskKey] = []
        self.completed: List[TaskKey] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def get_params(self) -> Dict[str, object]:
        return dict(self.params)

    async def evaluate(self, file: InputFile, rule: Rule, config: ResolvedLinterConfig) -> LintResult:
        key = (rule.name, file.file_relative_path)
        self.calls.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key, self.default_delay))
            if key in self.failures:
                raise RuntimeError(f"model failure for {key}")
            lint_errors = [
                LintError(
                    file_path=file.file_path,
                    language=file.language,
                    rule_name=rule.name,
                    code_snippet=f"snippet {index}",
                    confidence="high",
                )
                for index in range(self.errors.get(key, 0))
            ]
            self.completed.append(key)
            return LintResult(
                lint_errors=lint_errors,
                num_model_calls=1,
                num_prompt_tokens=100,
                num_completion_tokens=20,
                num_total_tokens=120,
                total_cost=0.25,
                message=f"checked {file.file_relative_path}",
            )
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., InputFile]:
    def _make(
        relative_path: str = "src/example.ts",
        content: str = "console.log('hello')\n",
        language: str | None = "typescript",
    ) -> InputFile:
        path = tmp_path / relative_path
        return InputFile(
            file_path=str(path),
            file_relative_path=relative_path,
            file_name=path.name,
            content=content,
            language=language,
        )

    return _make


@pytest.fixture
def make_rule() -> Callable[..., Rule]:
    def _make(name: str = "no-console", **overrides: object) -> Rule:
        fields: Dict[str, object] = {
            "name": name,
            "message": f"Rule {name}",
            "desc": "Describe the intent.",
            "negative_examples": (RuleExample(code="console.log(x)", language="ts"),),
            "positive_examples": (RuleExample(code="logger.info(x)", language="ts"),),
            "source": f"rules/{name}.md",
        }
        fields.update(overrides)
        return Rule(**fields)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def stub_evaluator_cls() -> type[StubEvaluator]:
    return StubEvaluator


@pytest.fixture
def cache(tmp_path: Path) -> LintCache:
    return LintCache(tmp_path / "cache")


@pytest.fixture
def make_config() -> Callable[..., ResolvedLinterConfig]:
    def _make(**options: object) -> ResolvedLinterConfig:
        rules = options.pop("rules", None)
        raw: Dict[str, object] = {"linterOptions": options}
        if rules is not None:
            raw["rules"] = rules
        return resolve_linter_config(raw)

    return _make
