"""Lint source files against natural-language rules with a language model."""

from .cache import LintCache, compute_cache_key
from .config import (
    ConfigError,
    ConfigValidationError,
    LinterConfig,
    ResolvedLinterConfig,
    merge_linter_configs,
    parse_linter_config,
    resolve_linter_config,
)
from .linter import LintOutcome, Linter, lint_files
from .models import (
    InputFile,
    LintError,
    LintResult,
    Rule,
    RuleExample,
    create_lint_result,
    merge_lint_results,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "InputFile",
    "LintCache",
    "LintError",
    "LintOutcome",
    "LintResult",
    "Linter",
    "LinterConfig",
    "ResolvedLinterConfig",
    "Rule",
    "RuleExample",
    "compute_cache_key",
    "create_lint_result",
    "lint_files",
    "merge_lint_results",
    "merge_linter_configs",
    "parse_linter_config",
    "resolve_linter_config",
]
