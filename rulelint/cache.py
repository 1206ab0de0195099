"""Content-addressable persistent cache for lint results."""

from __future__ import annotations

import hashlib
import json
import os
import shutil
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .config import ResolvedLinterConfig
from .logging import get_logger
from .models import CONFIDENCE_LEVELS, InputFile, LintError, LintResult, Rule

_CACHE_VERSION = 1

# Fields which never influence what the model is asked.
_FILE_FIELDS_EXCLUDED = ("file_path", "file_name")
_RULE_FIELDS_EXCLUDED = ("fixable", "source", "level")

logger = get_logger("cache")


class CacheError(RuntimeError):
    """Raised when the cache backing store cannot be read or written."""


@dataclass(frozen=True)
class CachedLintResult:
    """Subset of a lint result that is persisted in the cache."""

    lint_errors: List[LintError] = field(default_factory=list)
    message: Optional[str] = None


def compute_cache_key(file: InputFile, rule: Rule, params: Mapping[str, Any]) -> str:
    """Return a deterministic fingerprint for a (file, rule, model params) tuple."""
    payload = {
        "version": _CACHE_VERSION,
        "file": _omit(asdict(file), _FILE_FIELDS_EXCLUDED),
        "rule": _omit(asdict(rule), _RULE_FIELDS_EXCLUDED),
        "params": dict(params),
    }
    canonical = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class LintCache:
    """Stores lint errors and messages keyed by content fingerprint.

    Each entry lives in its own JSON file so concurrent writers of different
    keys never contend, and writers of the same key replace the file
    atomically.
    """

    def __init__(self, cache_dir: Path | str | None, *, enabled: bool = True) -> None:
        self._cache_dir = Path(cache_dir).expanduser() if cache_dir is not None else None
        self._enabled = enabled and self._cache_dir is not None

    @classmethod
    def from_config(
        cls, config: ResolvedLinterConfig, *, root: Path | None = None
    ) -> "LintCache":
        options = config.linter_options
        cache_dir = Path(options.cache_dir).expanduser()
        if not cache_dir.is_absolute() and root is not None:
            cache_dir = root / cache_dir
        return cls(cache_dir, enabled=not options.no_cache)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def cache_dir(self) -> Optional[Path]:
        return self._cache_dir

    def get(self, key: str) -> Optional[CachedLintResult]:
        if not self._enabled:
            return None
        path = self._entry_path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheError(f"Failed to read cache entry {path}: {exc}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt cache entry %s", path)
            return None
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            logger.debug("Ignoring cache entry %s with unknown version", path)
            return None
        if data.get("key") != key:
            return None

        errors_payload = data.get("lintErrors")
        if not isinstance(errors_payload, list):
            return None
        lint_errors: List[LintError] = []
        for payload in errors_payload:
            error = _error_from_dict(payload)
            if error is None:
                logger.warning("Ignoring malformed cache entry %s", path)
                return None
            lint_errors.append(error)

        message = data.get("message")
        return CachedLintResult(
            lint_errors=lint_errors,
            message=message if isinstance(message, str) else None,
        )

    def set(self, key: str, result: LintResult | CachedLintResult) -> None:
        if not self._enabled:
            return
        path = self._entry_path(key)
        payload = {
            "version": _CACHE_VERSION,
            "key": key,
            "lintErrors": [_error_to_dict(error) for error in result.lint_errors],
            "message": result.message,
            "updatedAt": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{key[:8]}-", suffix=".tmp", dir=path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, indent=2, sort_keys=True)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CacheError(f"Failed to write cache entry {path}: {exc}") from exc

    def clear(self) -> None:
        if self._cache_dir is None or not self._cache_dir.exists():
            return
        try:
            shutil.rmtree(self._cache_dir)
        except OSError as exc:
            raise CacheError(f"Failed to clear cache at {self._cache_dir}: {exc}") from exc

    def _entry_path(self, key: str) -> Path:
        assert self._cache_dir is not None
        return self._cache_dir / key[:2] / f"{key}.json"


def _omit(data: Dict[str, Any], excluded: tuple[str, ...]) -> Dict[str, Any]:
    return {name: value for name, value in data.items() if name not in excluded}


def _error_to_dict(error: LintError) -> Dict[str, object]:
    return {
        "filePath": error.file_path,
        "language": error.language,
        "ruleName": error.rule_name,
        "codeSnippet": error.code_snippet,
        "confidence": error.confidence,
    }


def _error_from_dict(payload: object) -> Optional[LintError]:
    if not isinstance(payload, dict):
        return None
    file_path = payload.get("filePath")
    language = payload.get("language")
    rule_name = payload.get("ruleName")
    code_snippet = payload.get("codeSnippet")
    confidence = payload.get("confidence")
    if (
        not isinstance(file_path, str)
        or not isinstance(rule_name, str)
        or not isinstance(code_snippet, str)
        or confidence not in CONFIDENCE_LEVELS
    ):
        return None
    if language is not None and not isinstance(language, str):
        language = None
    return LintError(
        file_path=file_path,
        language=language,
        rule_name=rule_name,
        code_snippet=code_snippet,
        confidence=confidence,  # type: ignore[arg-type]
    )


__all__ = ["CacheError", "CachedLintResult", "LintCache", "compute_cache_key"]
