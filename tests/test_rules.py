"""Tests for rule discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from rulelint.config import resolve_linter_config
from rulelint.rules import (
    RuleDefinitionError,
    discover_rules,
    load_guideline_file,
    load_rule_file,
    slugify,
)

RULE_FILE = """---
name: prefer-fetch
level: warn
fixable: true
---
# Prefer fetch over axios

Use the platform HTTP client.

### Bad

```ts
axios.get(url)
```

### Good

```ts
fetch(url)
```
"""

GUIDELINE_FILE = """# Team guidelines

Intro text that is not a rule.

## No console logging

Use the shared logger.

### Do not

```js
console.log(x)
```

### Do

```js
logger.info(x)
```

## Avoid magic numbers

Name your constants.
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_slugify() -> None:
    assert slugify("  No console logging! ") == "no-console-logging"


def test_load_rule_file(tmp_path: Path) -> None:
    path = _write(tmp_path / "rules" / "prefer-fetch.md", RULE_FILE)

    rule = load_rule_file(path, root=tmp_path)

    assert rule.name == "prefer-fetch"
    assert rule.message == "Prefer fetch over axios"
    assert rule.desc == "Use the platform HTTP client."
    assert [example.code for example in rule.negative_examples] == ["axios.get(url)"]
    assert [example.code for example in rule.positive_examples] == ["fetch(url)"]
    assert rule.negative_examples[0].language == "ts"
    assert rule.level == "warn"
    assert rule.fixable is True
    assert rule.source == "rules/prefer-fetch.md"


def test_rule_file_without_front_matter_uses_heading(tmp_path: Path) -> None:
    path = _write(tmp_path / "r.md", "# Keep functions short\n\nUnder 40 lines.\n")

    rule = load_rule_file(path)

    assert rule.name == "keep-functions-short"
    assert rule.level == "error"
    assert rule.positive_examples == ()


def test_rule_file_requires_heading(tmp_path: Path) -> None:
    path = _write(tmp_path / "r.md", "no heading here\n")

    with pytest.raises(RuleDefinitionError):
        load_rule_file(path)


def test_invalid_level_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "r.md", "---\nlevel: fatal\n---\n# Something\n")

    with pytest.raises(RuleDefinitionError):
        load_rule_file(path)


def test_load_guideline_file(tmp_path: Path) -> None:
    path = _write(tmp_path / "GUIDELINES.md", GUIDELINE_FILE)

    rules = load_guideline_file(path, root=tmp_path)

    assert [rule.name for rule in rules] == ["no-console-logging", "avoid-magic-numbers"]
    first = rules[0]
    assert first.desc == "Use the shared logger."
    assert [example.code for example in first.negative_examples] == ["console.log(x)"]
    assert [example.code for example in first.positive_examples] == ["logger.info(x)"]
    assert rules[1].desc == "Name your constants."
    assert all(rule.source == "GUIDELINES.md" for rule in rules)


def test_discover_rules_applies_configured_levels(tmp_path: Path) -> None:
    _write(tmp_path / "rules" / "prefer-fetch.md", RULE_FILE)
    _write(tmp_path / "GUIDELINES.md", GUIDELINE_FILE)
    config = resolve_linter_config(
        {
            "ruleFiles": ["rules/*.md"],
            "guidelineFiles": ["GUIDELINES.md"],
            "rules": {"prefer-fetch": "error", "avoid-magic-numbers": "warn"},
        }
    )

    rules = {rule.name: rule for rule in discover_rules(config, tmp_path)}

    assert set(rules) == {"prefer-fetch", "no-console-logging", "avoid-magic-numbers"}
    assert rules["prefer-fetch"].level == "error"
    assert rules["avoid-magic-numbers"].level == "warn"
    assert rules["no-console-logging"].level == "error"


def test_discover_rules_rejects_duplicates(tmp_path: Path) -> None:
    _write(tmp_path / "rules" / "a.md", RULE_FILE)
    _write(tmp_path / "rules" / "b.md", RULE_FILE)
    config = resolve_linter_config({"ruleFiles": ["rules/*.md"]})

    with pytest.raises(RuleDefinitionError, match="Duplicate rule"):
        discover_rules(config, tmp_path)
