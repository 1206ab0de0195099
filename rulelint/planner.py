"""Expands rules × files into lint tasks and classifies which need a model call."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .cache import CacheError, CachedLintResult, LintCache, compute_cache_key
from .config import LinterConfig, ResolvedLinterConfig, merge_linter_configs
from .logging import get_logger
from .models import InputFile, LintResult, Rule, create_lint_result, merge_lint_results

InlineConfigParser = Callable[[InputFile], Optional[LinterConfig]]

logger = get_logger("planner")


class SkipReason(str, Enum):
    """Why a task does not need an evaluation call."""

    CACHED = "cached"
    INLINE_LINTER_DISABLED = "inline-linter-disabled"
    RULE_DISABLED = "rule-disabled"
    FAILED_PRECHECK = "failed-precheck"


class PrecheckError(RuntimeError):
    """Raised when a task cannot be classified."""

    def __init__(self, message: str, *, rule_name: str, file_path: str) -> None:
        super().__init__(message)
        self.rule_name = rule_name
        self.file_path = file_path


@dataclass
class PlannedTask:
    """A (file, rule) pair with its effective config and cache key."""

    file: InputFile
    rule: Rule
    config: ResolvedLinterConfig
    cache_key: str
    skip_reason: Optional[SkipReason] = None
    lint_result: Optional[LintResult] = None

    @property
    def executable(self) -> bool:
        return self.skip_reason is None


@dataclass
class LintPlan:
    """Outcome of the precheck pass over every task."""

    tasks: List[PlannedTask] = field(default_factory=list)
    result: LintResult = field(default_factory=create_lint_result)
    warnings: List[Exception] = field(default_factory=list)

    @property
    def executable(self) -> List[PlannedTask]:
        return [task for task in self.tasks if task.executable]

    @property
    def skipped(self) -> List[PlannedTask]:
        return [task for task in self.tasks if not task.executable]

    def count(self, *reasons: SkipReason) -> int:
        return sum(1 for task in self.tasks if task.skip_reason in reasons)

    def summary(self) -> Dict[str, int]:
        stats = {"numTasks": len(self.executable)}
        for reason in SkipReason:
            count = self.count(reason)
            if count:
                stats[f"numTasks[{reason.value}]"] = count
        if self.warnings:
            stats["numWarnings"] = len(self.warnings)
        return stats


class TaskPlanner:
    """Classifies every (rule, file) task before any model call is made."""

    def __init__(
        self,
        *,
        config: ResolvedLinterConfig,
        cache: LintCache,
        model_params: Mapping[str, Any],
        inline_config_parser: InlineConfigParser | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.model_params = dict(model_params)
        self.inline_config_parser = inline_config_parser

    def plan(self, files: Sequence[InputFile], rules: Sequence[Rule]) -> LintPlan:
        plan = LintPlan()
        for file, rule in iter_lint_tasks(files, rules):
            try:
                task = self.classify(file, rule, plan.warnings)
            except Exception as exc:
                error = PrecheckError(
                    f'rule "{rule.name}" file "{file.file_relative_path}" '
                    f"unexpected precheck error: {exc}",
                    rule_name=rule.name,
                    file_path=file.file_path,
                )
                error.__cause__ = exc
                logger.warning("%s", error)
                plan.warnings.append(error)
                continue

            plan.tasks.append(task)
            if task.lint_result is not None:
                plan.result = merge_lint_results(plan.result, task.lint_result)
        return plan

    def classify(
        self, file: InputFile, rule: Rule, warnings: List[Exception] | None = None
    ) -> PlannedTask:
        config = self.config
        cache_key = compute_cache_key(file, rule, self.model_params)

        if not file.content.strip():
            return self._skip(file, rule, config, cache_key, SkipReason.FAILED_PRECHECK)

        if not config.linter_options.no_inline_config and self.inline_config_parser:
            override = self.inline_config_parser(file)
            if override is not None:
                if override.linter_options is not None and override.linter_options.disabled:
                    task = self._skip(
                        file, rule, config, cache_key, SkipReason.INLINE_LINTER_DISABLED
                    )
                    self._store(task, warnings)
                    return task
                merged = merge_linter_configs(config, override)
                assert isinstance(merged, ResolvedLinterConfig)
                config = merged

        if config.rule_setting(rule.name) == "off":
            return self._skip(file, rule, config, cache_key, SkipReason.RULE_DISABLED)

        cached = self._lookup(file, rule, cache_key, warnings)
        if cached is not None:
            task = self._skip(file, rule, config, cache_key, SkipReason.CACHED)
            task.lint_result = LintResult(
                lint_errors=list(cached.lint_errors),
                message=cached.message,
                num_model_calls_cached=1,
            )
            logger.debug(
                "Cache hit rule %r file %r: %d error(s)",
                rule.name,
                file.file_relative_path,
                len(cached.lint_errors),
            )
            return task

        return PlannedTask(file=file, rule=rule, config=config, cache_key=cache_key)

    def _lookup(
        self,
        file: InputFile,
        rule: Rule,
        cache_key: str,
        warnings: List[Exception] | None,
    ) -> Optional[CachedLintResult]:
        try:
            return self.cache.get(cache_key)
        except CacheError as exc:
            logger.warning(
                'rule "%s" file "%s" cache read failed, evaluating instead: %s',
                rule.name,
                file.file_relative_path,
                exc,
            )
            if warnings is not None:
                warnings.append(exc)
            return None

    def _store(self, task: PlannedTask, warnings: List[Exception] | None) -> None:
        assert task.lint_result is not None
        try:
            self.cache.set(task.cache_key, task.lint_result)
        except CacheError as exc:
            logger.warning("%s", exc)
            if warnings is not None:
                warnings.append(exc)

    @staticmethod
    def _skip(
        file: InputFile,
        rule: Rule,
        config: ResolvedLinterConfig,
        cache_key: str,
        reason: SkipReason,
    ) -> PlannedTask:
        return PlannedTask(
            file=file,
            rule=rule,
            config=config,
            cache_key=cache_key,
            skip_reason=reason,
            lint_result=create_lint_result(),
        )


def iter_lint_tasks(
    files: Iterable[InputFile], rules: Iterable[Rule]
) -> Iterable[tuple[InputFile, Rule]]:
    """Yield the rules × files cross product, rule-major."""
    files = list(files)
    for rule in rules:
        for file in files:
            yield file, rule


def plan_lint_tasks(
    files: Sequence[InputFile],
    rules: Sequence[Rule],
    *,
    config: ResolvedLinterConfig,
    cache: LintCache,
    model_params: Mapping[str, Any],
    inline_config_parser: InlineConfigParser | None = None,
) -> LintPlan:
    """Run the precheck pass over ``rules × files``."""
    planner = TaskPlanner(
        config=config,
        cache=cache,
        model_params=model_params,
        inline_config_parser=inline_config_parser,
    )
    return planner.plan(files, rules)


__all__ = [
    "InlineConfigParser",
    "LintPlan",
    "PlannedTask",
    "PrecheckError",
    "SkipReason",
    "TaskPlanner",
    "iter_lint_tasks",
    "plan_lint_tasks",
]
