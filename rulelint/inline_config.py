"""Parses per-file configuration directives embedded in source comments.

Supported directives, inside any line or block comment:

* ``rulelint-disable`` disables the linter for the whole file.
* ``rulelint-disable rule-a, rule-b`` turns the listed rules off.
* ``rulelint rule-a: off, rule-b: warn`` sets rule severities.

A ``rulelint`` comment whose first entry is not ``<rule>: <setting>`` is
ordinary prose and is ignored.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from .config import ConfigIssue, ConfigValidationError, LinterConfig, parse_linter_config
from .logging import get_logger
from .models import InputFile

_COMMENT_PREFIX = r"(?:#|//|/\*+|<!--|--|;)"
_DISABLE_PATTERN = re.compile(
    rf"{_COMMENT_PREFIX}\s*rulelint-disable\b(?P<body>[^\n]*)", re.MULTILINE
)
_SETTINGS_PATTERN = re.compile(
    rf"{_COMMENT_PREFIX}\s*rulelint\s+(?P<body>[^\n]*)", re.MULTILINE
)
_COMMENT_SUFFIX = re.compile(r"\s*(?:\*+/|-->)\s*$")
_ENTRY_SHAPE = re.compile(r"^[^\s:]+\s*:\s*[^\s:]+$")

logger = get_logger("inline_config")


def parse_inline_config(file: InputFile) -> Optional[LinterConfig]:
    """Return the config override embedded in ``file``, if any.

    Raises ``ConfigValidationError`` for malformed directives.
    """
    rules: Dict[str, str] = {}
    disabled = False
    issues = []

    for match in _DISABLE_PATTERN.finditer(file.content):
        names = _split_entries(_strip_comment_suffix(match.group("body")))
        if not names:
            disabled = True
            continue
        for name in names:
            rules[name.lower()] = "off"

    for match in _SETTINGS_PATTERN.finditer(file.content):
        entries = _split_entries(_strip_comment_suffix(match.group("body")))
        if not entries or not _ENTRY_SHAPE.match(entries[0]):
            # Ordinary prose that happens to start with the tool name.
            logger.debug("Ignoring comment in %s: %r", file.file_relative_path, match.group(0))
            continue
        for entry in entries:
            name, sep, setting = entry.partition(":")
            if not sep or not name.strip():
                issues.append(
                    ConfigIssue(
                        location=file.file_relative_path,
                        message=f"expected '<rule>: <setting>' in directive, got {entry!r}",
                    )
                )
                continue
            rules[name.strip().lower()] = setting.strip().lower()

    if issues:
        raise ConfigValidationError("Invalid inline config", issues)

    if not rules and not disabled:
        return None

    raw: Dict[str, Any] = {}
    if rules:
        raw["rules"] = rules
    if disabled:
        raw["linterOptions"] = {"disabled": True}
    return parse_linter_config(raw)


def _strip_comment_suffix(body: str) -> str:
    return _COMMENT_SUFFIX.sub("", body).strip()


def _split_entries(body: str) -> list[str]:
    return [part.strip() for part in body.split(",") if part.strip()]


__all__ = ["parse_inline_config"]
