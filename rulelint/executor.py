"""Bounded-concurrency execution of lint tasks with cooperative early exit."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Sequence, Union

from .cache import CacheError, LintCache
from .logging import get_logger
from .models import (
    LintResult,
    ProgressInit,
    ProgressUpdate,
    create_lint_result,
    merge_lint_results,
)
from .planner import PlannedTask

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .llm.evaluator import Evaluator

ProgressHandler = Callable[[ProgressUpdate], Union[Awaitable[None], None]]
ProgressInitHandler = Callable[[ProgressInit], Union[Awaitable[None], None]]

logger = get_logger("executor")


class TaskExecutionError(RuntimeError):
    """Raised when evaluating a single task fails."""

    def __init__(self, message: str, *, rule_name: str, file_path: str) -> None:
        super().__init__(message)
        self.rule_name = rule_name
        self.file_path = file_path


class ProgressCallbackError(RuntimeError):
    """Raised when the ``on_progress`` handler fails for a finished task."""

    def __init__(self, message: str, *, rule_name: str, file_path: str) -> None:
        super().__init__(message)
        self.rule_name = rule_name
        self.file_path = file_path


class EarlyExit:
    """Write-once flag that stops new tasks from being dispatched.

    Tasks check it before calling the evaluator; work already in flight is
    never interrupted.
    """

    def __init__(self) -> None:
        self._tripped = False

    @property
    def tripped(self) -> bool:
        return self._tripped

    def trip(self) -> None:
        self._tripped = True


class ResultAccumulator:
    """Single owner of the run-level result; folds task fragments in."""

    def __init__(self, initial: LintResult | None = None) -> None:
        self._result = initial if initial is not None else create_lint_result()

    @property
    def result(self) -> LintResult:
        return self._result

    def add(self, fragment: LintResult) -> LintResult:
        self._result = merge_lint_results(self._result, fragment)
        return self._result


@dataclass
class ExecutionOutcome:
    """Aggregate result of executing the executable tasks."""

    result: LintResult
    warnings: List[Exception] = field(default_factory=list)
    num_executed: int = 0
    num_skipped: int = 0
    early_exit_tripped: bool = False


class LintExecutor:
    """Runs planned tasks against the evaluator with at most N in flight."""

    def __init__(
        self,
        *,
        evaluator: "Evaluator",
        cache: LintCache,
        concurrency: int,
        early_exit: bool = False,
        on_progress: ProgressHandler | None = None,
        on_progress_init: ProgressInitHandler | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be a positive integer")
        self.evaluator = evaluator
        self.cache = cache
        self.concurrency = concurrency
        self.early_exit = early_exit
        self.on_progress = on_progress
        self.on_progress_init = on_progress_init

    async def run(
        self,
        tasks: Sequence[PlannedTask],
        *,
        initial_result: LintResult | None = None,
    ) -> ExecutionOutcome:
        total = len(tasks)
        accumulator = ResultAccumulator(initial_result)
        flag = EarlyExit()
        outcome = ExecutionOutcome(result=accumulator.result)

        if self.early_exit and accumulator.result.lint_errors:
            flag.trip()

        if self.on_progress_init is not None:
            await _maybe_await(self.on_progress_init(ProgressInit(num_tasks=total)))

        semaphore = asyncio.Semaphore(self.concurrency)
        completed = 0

        async def _run_task(task: PlannedTask) -> None:
            nonlocal completed
            async with semaphore:
                if flag.tripped:
                    outcome.num_skipped += 1
                    return

                label = f'Rule "{task.rule.name}" file "{task.file.file_relative_path}"'
                try:
                    fragment = await self.evaluator.evaluate(task.file, task.rule, task.config)
                    outcome.num_executed += 1

                    aggregate = accumulator.add(fragment)
                    if self.early_exit and aggregate.lint_errors:
                        flag.trip()

                    await self._persist(task, fragment, outcome.warnings)
                    logger.debug(
                        "%s: %d error(s) found", label, len(fragment.lint_errors)
                    )
                except Exception as exc:
                    _record(
                        TaskExecutionError(
                            f'rule "{task.rule.name}" file "{task.file.file_relative_path}" '
                            f"unexpected error: {exc}",
                            rule_name=task.rule.name,
                            file_path=task.file.file_path,
                        ),
                        exc,
                    )
                finally:
                    completed += 1
                    progress = completed / total

                if self.on_progress is None:
                    return
                try:
                    await _maybe_await(
                        self.on_progress(
                            ProgressUpdate(
                                progress=progress,
                                message=label,
                                result=accumulator.result,
                            )
                        )
                    )
                except Exception as exc:
                    _record(
                        ProgressCallbackError(
                            f'rule "{task.rule.name}" file "{task.file.file_relative_path}" '
                            f"progress callback failed: {exc}",
                            rule_name=task.rule.name,
                            file_path=task.file.file_path,
                        ),
                        exc,
                    )

        def _record(error: Exception, cause: Exception) -> None:
            error.__cause__ = cause
            logger.warning("%s", error)
            outcome.warnings.append(error)

        await asyncio.gather(*(_run_task(task) for task in tasks))

        outcome.result = accumulator.result
        outcome.early_exit_tripped = flag.tripped
        return outcome

    async def _persist(
        self, task: PlannedTask, fragment: LintResult, warnings: List[Exception]
    ) -> None:
        try:
            await asyncio.to_thread(self.cache.set, task.cache_key, fragment)
        except CacheError as exc:
            # The model call already happened; keep its result and report the write.
            logger.warning("%s", exc)
            warnings.append(exc)


async def execute_lint_tasks(
    tasks: Sequence[PlannedTask],
    *,
    evaluator: "Evaluator",
    cache: LintCache,
    concurrency: int,
    early_exit: bool = False,
    initial_result: LintResult | None = None,
    on_progress: ProgressHandler | None = None,
    on_progress_init: ProgressInitHandler | None = None,
) -> ExecutionOutcome:
    """Evaluate ``tasks`` and fold their results into ``initial_result``."""
    executor = LintExecutor(
        evaluator=evaluator,
        cache=cache,
        concurrency=concurrency,
        early_exit=early_exit,
        on_progress=on_progress,
        on_progress_init=on_progress_init,
    )
    return await executor.run(tasks, initial_result=initial_result)


async def _maybe_await(value: Optional[Awaitable[None]]) -> None:
    if inspect.isawaitable(value):
        await value


__all__ = [
    "EarlyExit",
    "ExecutionOutcome",
    "LintExecutor",
    "ProgressCallbackError",
    "ProgressHandler",
    "ProgressInitHandler",
    "ResultAccumulator",
    "TaskExecutionError",
    "execute_lint_tasks",
]
