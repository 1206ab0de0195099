"""Tests for rulelint.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from rulelint.config import (
    ConfigError,
    ConfigValidationError,
    LinterConfig,
    ResolvedLinterConfig,
    load_config,
    merge_linter_configs,
    parse_linter_config,
    resolve_linter_config,
)


def test_resolve_fills_every_default() -> None:
    config = resolve_linter_config({})

    assert isinstance(config, ResolvedLinterConfig)
    assert config.files == []
    assert config.rules == {}
    options = config.linter_options
    assert options.concurrency == 16
    assert options.early_exit is False
    assert options.no_inline_config is False
    assert options.no_cache is False
    assert options.debug is False
    assert options.model == "gpt-4-turbo-preview"
    assert options.temperature == 0
    assert options.cache_dir


def test_resolve_keeps_user_values() -> None:
    config = resolve_linter_config(
        {"files": ["src/**/*.ts"], "linterOptions": {"earlyExit": True, "temperature": 1.5}}
    )

    assert config.files == ["src/**/*.ts"]
    assert config.linter_options.early_exit is True
    assert config.linter_options.temperature == pytest.approx(1.5)
    assert config.linter_options.concurrency == 16


def test_validation_reports_every_issue() -> None:
    with pytest.raises(ConfigValidationError) as excinfo:
        parse_linter_config(
            {
                "files": "src/*.ts",
                "rules": {"no-console": "loud"},
                "linterOptions": {"temperature": 3, "concurrency": 0, "earlyExit": "yes"},
            }
        )

    locations = {issue.location for issue in excinfo.value.issues}
    assert "files" in locations
    assert "rules.no-console" in locations
    assert "linterOptions.temperature" in locations
    assert "linterOptions.concurrency" in locations
    assert "linterOptions.earlyExit" in locations
    assert len(excinfo.value.issues) >= 5


def test_validation_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigValidationError) as excinfo:
        parse_linter_config({"linterOptions": {"colour": "blue"}})

    assert [issue.location for issue in excinfo.value.issues] == ["linterOptions.colour"]


def test_merge_dedupes_globs_and_overrides_rules() -> None:
    a = parse_linter_config({"files": ["a.ts"], "rules": {"no-console": "error"}})
    b = parse_linter_config({"files": ["a.ts", "b.ts"], "rules": {"no-console": "off"}})

    merged = merge_linter_configs(a, b)

    assert merged.files == ["a.ts", "b.ts"]
    assert merged.rules == {"no-console": "off"}


def test_merge_concatenates_all_glob_lists_in_first_seen_order() -> None:
    a = parse_linter_config(
        {"ignores": ["dist/", "build/"], "ruleFiles": ["rules/*.md"], "guidelineFiles": ["g.md"]}
    )
    b = parse_linter_config(
        {"ignores": ["build/", "out/"], "ruleFiles": ["more/*.md"], "guidelineFiles": ["g.md"]}
    )

    merged = merge_linter_configs(a, b)

    assert merged.ignores == ["dist/", "build/", "out/"]
    assert merged.rule_files == ["rules/*.md", "more/*.md"]
    assert merged.guideline_files == ["g.md"]


def test_merge_shallow_merges_linter_options() -> None:
    a = parse_linter_config({"linterOptions": {"concurrency": 4, "model": "gpt-4"}})
    b = parse_linter_config({"linterOptions": {"model": "gpt-4o"}})

    merged = merge_linter_configs(a, b)

    assert merged.linter_options is not None
    assert merged.linter_options.concurrency == 4
    assert merged.linter_options.model == "gpt-4o"


def test_merge_without_linter_options_has_none() -> None:
    merged = merge_linter_configs(LinterConfig(), parse_linter_config({"files": ["x.ts"]}))

    assert merged.linter_options is None


def test_merge_into_resolved_config_stays_resolved() -> None:
    resolved = resolve_linter_config({"rules": {"no-console": "error"}})
    override = parse_linter_config({"rules": {"no-console": "off"}})

    merged = merge_linter_configs(resolved, override)

    assert isinstance(merged, ResolvedLinterConfig)
    assert merged.rules == {"no-console": "off"}
    assert merged.linter_options.concurrency == resolved.linter_options.concurrency


def test_merge_is_pure() -> None:
    a = parse_linter_config({"files": ["a.ts"]})
    b = parse_linter_config({"files": ["b.ts"]})

    merge_linter_configs(a, b)

    assert a.files == ["a.ts"]
    assert b.files == ["b.ts"]


def test_load_config_returns_empty_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config == LinterConfig()


def test_load_config_parses_yaml(tmp_path: Path) -> None:
    (tmp_path / ".rulelint.yml").write_text(
        """
files:
  - "src/**/*.ts"
ignores: ["dist/"]
ruleFiles:
  - "rules/*.md"
rules:
  no-console: off
  prefer-fetch: warn
linterOptions:
  concurrency: 4
  earlyExit: true
  temperature: 0.2
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.files == ["src/**/*.ts"]
    assert config.ignores == ["dist/"]
    assert config.rule_files == ["rules/*.md"]
    assert config.rules == {"no-console": "off", "prefer-fetch": "warn"}
    assert config.linter_options is not None
    assert config.linter_options.concurrency == 4
    assert config.linter_options.early_exit is True
    assert config.linter_options.temperature == pytest.approx(0.2)


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_file)


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    config_file = tmp_path / ".rulelint.yml"
    config_file.write_text("files: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_inline_only_disabled(tmp_path: Path) -> None:
    (tmp_path / ".rulelint.yml").write_text("linterOptions:\n  disabled: true\n", encoding="utf-8")

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(tmp_path)

    assert [issue.location for issue in excinfo.value.issues] == ["linterOptions.disabled"]
