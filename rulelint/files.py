"""Resolves input files from glob patterns and loads their content."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from .config import ResolvedLinterConfig
from .logging import get_logger
from .models import InputFile

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".rulelint",
}

_LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".hh": "cpp",
    ".swift": "swift",
    ".m": "objective-c",
    ".mm": "objective-c++",
    ".scala": "scala",
    ".r": "r",
    ".jl": "julia",
    ".sh": "shell",
    ".ps1": "powershell",
    ".sql": "sql",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".toml": "toml",
    ".md": "markdown",
    ".mdx": "markdown",
}

logger = get_logger("files")


def detect_language(path: Path) -> str | None:
    """Map a file suffix to a language identifier."""
    return _LANGUAGE_BY_SUFFIX.get(path.suffix.lower())


def expand_globs(root: Path, patterns: Iterable[str]) -> List[Path]:
    """Expand glob patterns relative to ``root`` into existing files.

    Results keep pattern order, are sorted within a pattern, and never repeat.
    """
    seen: set[Path] = set()
    matches: List[Path] = []
    for pattern in patterns:
        pattern = pattern.strip()
        if not pattern:
            continue
        candidate = Path(pattern).expanduser()
        if candidate.is_absolute():
            base = Path(candidate.anchor)
            relative = str(candidate.relative_to(base))
        else:
            base = root
            relative = pattern
        if not any(char in relative for char in "*?["):
            found = [base / relative]
        else:
            found = sorted(base.glob(relative))
        for path in found:
            resolved = path.resolve()
            if resolved in seen or not resolved.is_file():
                continue
            if _in_excluded_dir(resolved, base.resolve()):
                continue
            seen.add(resolved)
            matches.append(resolved)
    return matches


def is_ignored(relative_path: str, ignores: Sequence[str]) -> bool:
    """Return True when ``relative_path`` matches any ignore glob."""
    for pattern in ignores:
        pattern = pattern.strip().lstrip("/")
        if not pattern:
            continue
        if pattern.endswith("/"):
            if relative_path.startswith(pattern) or f"/{pattern}" in f"/{relative_path}":
                return True
            continue
        if fnmatchcase(relative_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatchcase(relative_path, pattern[3:]):
            return True
        if "/" not in pattern and fnmatchcase(relative_path.rsplit("/", 1)[-1], pattern):
            return True
    return False


def load_input_file(path: Path, root: Path) -> InputFile:
    """Read ``path`` into an ``InputFile``."""
    resolved = path.resolve()
    try:
        relative = resolved.relative_to(root.resolve()).as_posix()
    except ValueError:
        relative = resolved.as_posix()
    content = resolved.read_text(encoding="utf-8")
    return InputFile(
        file_path=str(resolved),
        file_relative_path=relative,
        file_name=resolved.name,
        content=content,
        language=detect_language(resolved),
    )


def resolve_files(
    config: ResolvedLinterConfig,
    root: Path,
    *,
    patterns: Sequence[str] | None = None,
) -> List[InputFile]:
    """Load every file matched by ``files`` (or ``patterns``) minus ``ignores``."""
    root = root.resolve()
    selected = list(patterns) if patterns else list(config.files)
    files: Dict[str, InputFile] = {}
    for path in expand_globs(root, selected):
        try:
            relative = path.relative_to(root).as_posix()
        except ValueError:
            relative = path.as_posix()
        if is_ignored(relative, config.ignores):
            continue
        try:
            files[str(path)] = load_input_file(path, root)
        except UnicodeDecodeError:
            logger.debug("Skipping non-text file %s", relative)
    logger.debug("Resolved %d input file(s)", len(files))
    return list(files.values())


def _in_excluded_dir(path: Path, base: Path) -> bool:
    try:
        parts = path.relative_to(base).parts[:-1]
    except ValueError:
        parts = path.parts[:-1]
    return any(part in _EXCLUDED_DIRS for part in parts)


__all__ = [
    "detect_language",
    "expand_globs",
    "is_ignored",
    "load_input_file",
    "resolve_files",
]
