"""Pipeline orchestration: plan, execute and aggregate lint tasks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence

from .cache import LintCache
from .config import (
    ResolvedLinterConfig,
    check_project_config,
    load_config,
    merge_linter_configs,
    parse_linter_config,
    resolve_linter_config,
)
from .executor import ProgressHandler, ProgressInitHandler, execute_lint_tasks
from .files import resolve_files
from .inline_config import parse_inline_config
from .llm.evaluator import Evaluator, LLMEvaluator
from .logging import get_logger
from .models import InputFile, LintResult, Rule
from .planner import InlineConfigParser, SkipReason, plan_lint_tasks
from .rules import discover_rules

EvaluatorFactory = Callable[[ResolvedLinterConfig], Evaluator]

logger = get_logger("linter")


@dataclass
class LintOutcome:
    """Final result of a lint run plus everything that went wrong on the way."""

    result: LintResult
    warnings: List[Exception] = field(default_factory=list)
    num_tasks: int = 0
    num_executed: int = 0
    num_skipped_early_exit: int = 0
    skip_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.result.lint_errors)


async def lint_files(
    files: Sequence[InputFile],
    rules: Sequence[Rule],
    *,
    config: ResolvedLinterConfig,
    cache: LintCache,
    evaluator: Evaluator,
    inline_config_parser: InlineConfigParser | None = parse_inline_config,
    on_progress: ProgressHandler | None = None,
    on_progress_init: ProgressInitHandler | None = None,
) -> LintOutcome:
    """Lint every file against every rule and return the aggregated outcome."""
    plan = await asyncio.to_thread(
        plan_lint_tasks,
        files,
        rules,
        config=config,
        cache=cache,
        model_params=evaluator.get_params(),
        inline_config_parser=inline_config_parser,
    )
    logger.info("Planned lint tasks %s", plan.summary())
    for task in plan.executable:
        logger.debug("Queued rule %r file %r", task.rule.name, task.file.file_relative_path)

    execution = await execute_lint_tasks(
        plan.executable,
        evaluator=evaluator,
        cache=cache,
        concurrency=config.linter_options.concurrency,
        early_exit=config.linter_options.early_exit,
        initial_result=plan.result,
        on_progress=on_progress,
        on_progress_init=on_progress_init,
    )
    if execution.early_exit_tripped and execution.num_skipped:
        logger.info("Early exit: %d task(s) not dispatched", execution.num_skipped)

    return LintOutcome(
        result=execution.result,
        warnings=[*plan.warnings, *execution.warnings],
        num_tasks=len(plan.tasks),
        num_executed=execution.num_executed,
        num_skipped_early_exit=execution.num_skipped,
        skip_counts={reason.value: plan.count(reason) for reason in SkipReason},
    )


class Linter:
    """Resolves config, rules and files, then runs the lint pipeline."""

    def __init__(
        self,
        *,
        evaluator_factory: EvaluatorFactory | None = None,
        inline_config_parser: InlineConfigParser | None = parse_inline_config,
    ) -> None:
        self._evaluator_factory = evaluator_factory or LLMEvaluator.from_config
        self._inline_config_parser = inline_config_parser

    def resolve_config(
        self,
        root: Path,
        *,
        config_path: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> ResolvedLinterConfig:
        """Merge defaults, the config file and ``overrides`` (highest precedence)."""
        config = load_config(config_path or root)
        if overrides:
            config = merge_linter_configs(
                config, check_project_config(parse_linter_config(overrides))
            )
        return resolve_linter_config(config)

    async def lint_async(
        self,
        path: str | Path = ".",
        *,
        config_path: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
        patterns: Sequence[str] | None = None,
        on_progress: ProgressHandler | None = None,
        on_progress_init: ProgressInitHandler | None = None,
    ) -> LintOutcome:
        root = Path(path).expanduser().resolve()
        if not root.is_dir():
            raise FileNotFoundError(f"Project path not found: {path}")

        config = await asyncio.to_thread(
            self.resolve_config, root, config_path=config_path, overrides=overrides
        )
        rules = await asyncio.to_thread(discover_rules, config, root)
        files = await asyncio.to_thread(resolve_files, config, root, patterns=patterns)
        if not rules:
            logger.warning("No rules configured; nothing to lint")
        if not files:
            logger.warning("No input files matched")

        cache = LintCache.from_config(config, root=root)
        evaluator = self._evaluator_factory(config)
        return await lint_files(
            files,
            rules,
            config=config,
            cache=cache,
            evaluator=evaluator,
            inline_config_parser=self._inline_config_parser,
            on_progress=on_progress,
            on_progress_init=on_progress_init,
        )

    def lint(
        self,
        path: str | Path = ".",
        *,
        config_path: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
        patterns: Sequence[str] | None = None,
        on_progress: ProgressHandler | None = None,
        on_progress_init: ProgressInitHandler | None = None,
    ) -> LintOutcome:
        """Synchronous wrapper around ``lint_async``."""
        return asyncio.run(
            self.lint_async(
                path,
                config_path=config_path,
                overrides=overrides,
                patterns=patterns,
                on_progress=on_progress,
                on_progress_init=on_progress_init,
            )
        )


__all__ = ["EvaluatorFactory", "LintOutcome", "Linter", "lint_files"]
