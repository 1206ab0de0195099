"""CLI entrypoint for rulelint."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List

from .cache import CacheError, LintCache
from .config import ConfigError, ConfigValidationError
from .linter import LintOutcome, Linter
from .logging import configure_logging, get_logger
from .models import ProgressInit, ProgressUpdate
from .rules import RuleDefinitionError

EXIT_OK = 0
EXIT_LINT_ERRORS = 1
EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rulelint",
        description="Lint source files against natural-language rules using an LLM.",
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Glob patterns of files to lint (defaults to `files` from the config).",
    )
    parser.add_argument(
        "-C",
        "--cwd",
        default=".",
        help="Project root used to resolve globs and the config file.",
    )
    parser.add_argument("-c", "--config", help="Path to a config file (defaults to .rulelint.yml).")
    parser.add_argument(
        "-r",
        "--rule-file",
        action="append",
        dest="rule_files",
        default=[],
        help="Glob pattern of rule markdown files; may be repeated.",
    )
    parser.add_argument(
        "-g",
        "--guideline-file",
        action="append",
        dest="guideline_files",
        default=[],
        help="Glob pattern of guideline markdown files; may be repeated.",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        dest="ignores",
        default=[],
        help="Glob pattern of files to skip; may be repeated.",
    )
    parser.add_argument("--concurrency", type=int, help="Maximum concurrent model calls.")
    parser.add_argument(
        "-e",
        "--early-exit",
        action="store_true",
        default=None,
        help="Stop dispatching new tasks after the first error is found.",
    )
    parser.add_argument(
        "--no-cache", action="store_true", default=None, help="Disable the result cache."
    )
    parser.add_argument(
        "--no-inline-config",
        action="store_true",
        default=None,
        help="Ignore rulelint directives embedded in files.",
    )
    parser.add_argument("--cache-dir", help="Directory holding cached results.")
    parser.add_argument("-m", "--model", help="Model identifier to evaluate rules with.")
    parser.add_argument("-t", "--temperature", type=float, help="Model temperature (0-2).")
    parser.add_argument(
        "-d", "--debug", action="store_true", default=None, help="Enable debug output."
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete cached results before linting.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=False,
        help="Only log warnings and errors.",
    )
    parser.add_argument("--log-file", help="Also write debug logs to this file.")
    return parser


def _build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.rule_files:
        overrides["ruleFiles"] = list(args.rule_files)
    if args.guideline_files:
        overrides["guidelineFiles"] = list(args.guideline_files)
    if args.ignores:
        overrides["ignores"] = list(args.ignores)

    options: Dict[str, Any] = {
        "concurrency": args.concurrency,
        "earlyExit": args.early_exit,
        "noCache": args.no_cache,
        "noInlineConfig": args.no_inline_config,
        "cacheDir": args.cache_dir,
        "model": args.model,
        "temperature": args.temperature,
        "debug": args.debug,
    }
    options = {key: value for key, value in options.items() if value is not None}
    if options:
        overrides["linterOptions"] = options
    return overrides


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for rulelint."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose or args.debug),
        quiet=bool(args.quiet),
        log_file=Path(args.log_file) if args.log_file else None,
    )
    logger = get_logger("cli")

    linter = Linter()
    root = Path(args.cwd)
    config_path = Path(args.config) if args.config else None
    overrides = _build_overrides(args)

    try:
        if args.clear_cache:
            config = linter.resolve_config(
                root.resolve(), config_path=config_path, overrides=overrides
            )
            LintCache.from_config(config, root=root.resolve()).clear()
            logger.info("Cache cleared")

        outcome = linter.lint(
            root,
            config_path=config_path,
            overrides=overrides,
            patterns=args.files or None,
            on_progress_init=_log_progress_init,
            on_progress=_log_progress,
        )
    except ConfigValidationError as exc:
        details = "\n".join(f"  - {issue}" for issue in exc.issues)
        parser.exit(EXIT_USAGE, f"Invalid configuration:\n{details}\n")
    except (ConfigError, RuleDefinitionError, CacheError, FileNotFoundError) as exc:
        parser.exit(EXIT_USAGE, f"rulelint failed: {exc}\n")

    for line in _format_outcome(outcome):
        print(line)
    sys.exit(EXIT_LINT_ERRORS if outcome.has_errors else EXIT_OK)


def _log_progress_init(init: ProgressInit) -> None:
    get_logger("cli").info("Linting %d task(s) with the model", init.num_tasks)


def _log_progress(update: ProgressUpdate) -> None:
    get_logger("cli").debug("[%3d%%] %s", round(update.progress * 100), update.message)


def _format_outcome(outcome: LintOutcome) -> List[str]:
    result = outcome.result
    lines: List[str] = []
    for error in result.lint_errors:
        snippet = " ".join(error.code_snippet.split())
        if len(snippet) > 120:
            snippet = snippet[:117] + "..."
        lines.append(f"{error.file_path}: [{error.rule_name}] ({error.confidence}) {snippet}")

    num_errors = len(result.lint_errors)
    lines.append("")
    lines.append(
        f"{num_errors} {'error' if num_errors == 1 else 'errors'} found "
        f"({outcome.num_tasks} tasks, {result.num_model_calls} model calls, "
        f"{result.num_model_calls_cached} cached)"
    )
    lines.append(
        f"tokens: {result.num_prompt_tokens} prompt, {result.num_completion_tokens} completion, "
        f"{result.num_total_tokens} total; cost: ${result.total_cost:.4f}"
    )
    if outcome.warnings:
        lines.append(f"{len(outcome.warnings)} warning(s):")
        lines.extend(f"  - {warning}" for warning in outcome.warnings)
    return lines


if __name__ == "__main__":
    main(sys.argv[1:])
