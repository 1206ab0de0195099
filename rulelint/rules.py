"""Loads rule definitions from markdown rule files and guideline documents.

A rule file describes one rule::

    ---
    name: prefer-fetch
    level: warn
    fixable: false
    ---
    # Prefer fetch over axios

    Free-form description.

    ### Bad

    ```ts
    axios.get(url)
    ```

    ### Good

    ```ts
    fetch(url)
    ```

A guideline file holds several rules, one per ``##`` heading, using the
same ``###`` example sections.
"""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .config import ResolvedLinterConfig
from .files import expand_globs
from .logging import get_logger
from .models import Rule, RuleExample

_FRONT_MATTER = re.compile(r"\A---\s*\n(?P<meta>.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
_CODE_FENCE = re.compile(r"^```(?P<lang>[\w+#.-]*)[^\n]*\n(?P<code>.*?)^```\s*$", re.DOTALL | re.MULTILINE)
_NEGATIVE_HEADINGS = ("bad", "incorrect", "fail", "don't", "dont", "avoid")
_POSITIVE_HEADINGS = ("good", "correct", "pass", "do", "prefer")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
_LEVELS = ("warn", "error")

logger = get_logger("rules")


class RuleDefinitionError(ValueError):
    """Raised when a rule document cannot be turned into rules."""


def slugify(title: str) -> str:
    """Derive a rule name from a heading."""
    slug = _SLUG_INVALID.sub("-", title.strip().lower()).strip("-")
    return slug


def load_rule_file(path: Path, *, root: Path | None = None) -> Rule:
    """Parse a single-rule markdown file."""
    text = _read(path)
    meta, body = _split_front_matter(text, path)
    source = _display_path(path, root)

    title, remainder = _take_heading(body, level=1)
    if title is None:
        raise RuleDefinitionError(f"{source}: rule file must start with a '# ' heading")
    return _build_rule(title, remainder, meta, source=source, example_level=3)


def load_guideline_file(path: Path, *, root: Path | None = None) -> List[Rule]:
    """Parse a guideline document into one rule per ``##`` section."""
    text = _read(path)
    meta, body = _split_front_matter(text, path)
    source = _display_path(path, root)

    rules: List[Rule] = []
    for title, section in _split_sections(body, level=2):
        rules.append(
            _build_rule(
                title,
                section,
                {key: value for key, value in meta.items() if key != "name"},
                source=source,
                example_level=3,
            )
        )
    if not rules:
        logger.warning("Guideline file %s defines no rules", source)
    return rules


def discover_rules(config: ResolvedLinterConfig, root: Path) -> List[Rule]:
    """Load every rule referenced by ``ruleFiles`` and ``guidelineFiles``.

    Severities configured under ``rules`` replace the documents' levels.
    """
    root = root.resolve()
    rules: List[Rule] = []
    for path in expand_globs(root, config.rule_files):
        rules.append(load_rule_file(path, root=root))
    for path in expand_globs(root, config.guideline_files):
        rules.extend(load_guideline_file(path, root=root))

    seen: Dict[str, str] = {}
    resolved: List[Rule] = []
    for rule in rules:
        if rule.name in seen:
            raise RuleDefinitionError(
                f'Duplicate rule "{rule.name}" defined in {seen[rule.name]} and {rule.source}'
            )
        seen[rule.name] = rule.source or ""
        setting = config.rule_setting(rule.name)
        if setting in _LEVELS and setting != rule.level:
            rule = replace(rule, level=setting)
        resolved.append(rule)
    logger.debug("Loaded %d rule(s)", len(resolved))
    return resolved


def _build_rule(
    title: str,
    body: str,
    meta: Dict[str, Any],
    *,
    source: str,
    example_level: int,
) -> Rule:
    name = str(meta.get("name") or slugify(title)).strip().lower()
    if not name:
        raise RuleDefinitionError(f"{source}: rule {title!r} has no usable name")

    level = meta.get("level", "error")
    if level not in _LEVELS:
        raise RuleDefinitionError(f'{source}: rule "{name}" has invalid level {level!r}')
    fixable = meta.get("fixable", False)
    if not isinstance(fixable, bool):
        raise RuleDefinitionError(f'{source}: rule "{name}" fixable must be a boolean')

    desc_parts: List[str] = []
    positive: List[RuleExample] = []
    negative: List[RuleExample] = []
    preamble, sections = _split_leading(body, level=example_level)
    if preamble.strip():
        desc_parts.append(preamble.strip())
    for heading, section in sections:
        kind = _example_kind(heading)
        if kind is None:
            desc_parts.append(f"{'#' * example_level} {heading}\n\n{section.strip()}".strip())
            continue
        examples = _extract_examples(section)
        (negative if kind == "negative" else positive).extend(examples)

    return Rule(
        name=name,
        message=title.strip(),
        desc="\n\n".join(desc_parts) or None,
        positive_examples=tuple(positive),
        negative_examples=tuple(negative),
        fixable=fixable,
        source=source,
        level=level,
    )


def _example_kind(heading: str) -> Optional[str]:
    words = heading.strip().lower().split()
    if not words:
        return None
    first = words[0].rstrip(":")
    if first in _NEGATIVE_HEADINGS or words[:2] == ["do", "not"]:
        return "negative"
    if first in _POSITIVE_HEADINGS:
        return "positive"
    return None


def _extract_examples(section: str) -> List[RuleExample]:
    examples: List[RuleExample] = []
    for match in _CODE_FENCE.finditer(section):
        code = match.group("code").rstrip("\n")
        if code.strip():
            examples.append(RuleExample(code=code, language=match.group("lang") or None))
    return examples


def _split_front_matter(text: str, path: Path) -> Tuple[Dict[str, Any], str]:
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text
    try:
        meta = yaml.safe_load(match.group("meta")) or {}
    except yaml.YAMLError as exc:
        raise RuleDefinitionError(f"{path}: invalid front matter: {exc}") from exc
    if not isinstance(meta, dict):
        raise RuleDefinitionError(f"{path}: front matter must be a mapping")
    return meta, text[match.end():]


def _take_heading(body: str, *, level: int) -> Tuple[Optional[str], str]:
    prefix = "#" * level + " "
    lines = body.splitlines()
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        if line.startswith(prefix):
            return line[len(prefix):].strip(), "\n".join(lines[index + 1:])
        return None, body
    return None, body


def _split_leading(body: str, *, level: int) -> Tuple[str, List[Tuple[str, str]]]:
    sections = _split_sections(body, level=level, keep_preamble=True)
    if sections and sections[0][0] == "":
        return sections[0][1], sections[1:]
    return "", sections


def _split_sections(
    body: str, *, level: int, keep_preamble: bool = False
) -> List[Tuple[str, str]]:
    prefix = "#" * level + " "
    sections: List[Tuple[str, str]] = []
    current_title: Optional[str] = "" if keep_preamble else None
    current_lines: List[str] = []
    in_fence = False
    for line in body.splitlines():
        if line.startswith("```"):
            in_fence = not in_fence
        if not in_fence and line.startswith(prefix):
            if current_title is not None:
                sections.append((current_title, "\n".join(current_lines)))
            current_title = line[len(prefix):].strip()
            current_lines = []
            continue
        current_lines.append(line)
    if current_title is not None:
        sections.append((current_title, "\n".join(current_lines)))
    return sections


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuleDefinitionError(f"Unable to read rule file {path}: {exc}") from exc


def _display_path(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return str(path)


__all__ = [
    "RuleDefinitionError",
    "discover_rules",
    "load_guideline_file",
    "load_rule_file",
    "slugify",
]
