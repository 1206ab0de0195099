"""Core data models shared across rulelint components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

LintRuleErrorConfidence = Literal["low", "medium", "high"]
LintRuleLevel = Literal["warn", "error"]

CONFIDENCE_LEVELS = ("low", "medium", "high")


@dataclass(frozen=True)
class RuleExample:
    """Code snippet illustrating a rule."""

    code: str
    language: Optional[str] = None


@dataclass(frozen=True)
class Rule:
    """Natural-language rule evaluated by the model."""

    name: str
    message: str
    desc: Optional[str] = None
    positive_examples: tuple[RuleExample, ...] = ()
    negative_examples: tuple[RuleExample, ...] = ()
    fixable: bool = False
    source: Optional[str] = None
    level: LintRuleLevel = "error"


@dataclass(frozen=True)
class InputFile:
    """Source file loaded for linting."""

    file_path: str
    file_relative_path: str
    file_name: str
    content: str
    language: Optional[str] = None


@dataclass(frozen=True)
class LintError:
    """Single rule violation reported by the model."""

    file_path: str
    language: Optional[str]
    rule_name: str
    code_snippet: str
    confidence: LintRuleErrorConfidence


@dataclass
class LintResult:
    """Errors and usage metrics for one task or a whole run."""

    lint_errors: List[LintError] = field(default_factory=list)
    num_model_calls: int = 0
    num_model_calls_cached: int = 0
    num_prompt_tokens: int = 0
    num_completion_tokens: int = 0
    num_total_tokens: int = 0
    total_cost: float = 0.0
    message: Optional[str] = None


@dataclass(frozen=True)
class ProgressInit:
    """Payload of the one-time progress init callback."""

    num_tasks: int


@dataclass(frozen=True)
class ProgressUpdate:
    """Payload of the per-task progress callback."""

    progress: float
    message: str
    result: LintResult


def create_lint_result() -> LintResult:
    """Return the empty result, the identity for ``merge_lint_results``."""
    return LintResult()


def merge_lint_results(a: LintResult, b: LintResult) -> LintResult:
    """Combine two results into a new one without mutating either input.

    Errors are concatenated (``a`` first) and every counter is summed, which
    makes the merge associative and commutative on those fields. ``message``
    is the exception: the last non-empty message wins, so swapping the
    arguments can change it.
    """
    return LintResult(
        lint_errors=[*a.lint_errors, *b.lint_errors],
        num_model_calls=a.num_model_calls + b.num_model_calls,
        num_model_calls_cached=a.num_model_calls_cached + b.num_model_calls_cached,
        num_prompt_tokens=a.num_prompt_tokens + b.num_prompt_tokens,
        num_completion_tokens=a.num_completion_tokens + b.num_completion_tokens,
        num_total_tokens=a.num_total_tokens + b.num_total_tokens,
        total_cost=a.total_cost + b.total_cost,
        message=b.message or a.message,
    )


__all__ = [
    "CONFIDENCE_LEVELS",
    "InputFile",
    "LintError",
    "LintResult",
    "LintRuleErrorConfidence",
    "LintRuleLevel",
    "ProgressInit",
    "ProgressUpdate",
    "Rule",
    "RuleExample",
    "create_lint_result",
    "merge_lint_results",
]
