"""Configuration schema, resolution and loading for rulelint (.rulelint.yml)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

CONFIG_FILENAME = ".rulelint.yml"

LinterConfigRule = Literal["off", "warn", "error"]

DEFAULT_CACHE_DIR = str(Path(".rulelint") / "cache")
DEFAULT_CONCURRENCY = 16
DEFAULT_MODEL = "gpt-4-turbo-preview"
DEFAULT_TEMPERATURE = 0.0


class ConfigError(RuntimeError):
    """Raised when a configuration source cannot be read or parsed."""


@dataclass(frozen=True)
class ConfigIssue:
    """Single schema violation found while validating a configuration."""

    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}" if self.location else self.message


class ConfigValidationError(ConfigError):
    """Raised when a configuration object violates the schema.

    ``issues`` lists every violation, not only the first one encountered.
    """

    def __init__(self, message: str, issues: Sequence[ConfigIssue]) -> None:
        details = "; ".join(str(issue) for issue in issues)
        super().__init__(f"{message}: {details}" if details else message)
        self.issues = list(issues)


class _SchemaModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        strict=True,
    )


class LinterOptions(_SchemaModel):
    """Settings related to the linting process; every field is optional."""

    no_inline_config: Optional[bool] = Field(
        default=None,
        alias="noInlineConfig",
        description="Whether inline configuration is ignored.",
    )
    early_exit: Optional[bool] = Field(
        default=None,
        alias="earlyExit",
        description="Stop dispatching new tasks after the first error.",
    )
    debug: Optional[bool] = Field(default=None, description="Enables debug logging.")
    no_cache: Optional[bool] = Field(
        default=None, alias="noCache", description="Disables the built-in cache."
    )
    cache_dir: Optional[str] = Field(
        default=None, alias="cacheDir", description="Path to the shared cache directory."
    )
    concurrency: Optional[int] = Field(
        default=None, gt=0, description="Maximum number of concurrent model calls."
    )
    model: Optional[str] = Field(
        default=None, description="Which LLM to use for assessing rule conformance."
    )
    temperature: Optional[float] = Field(
        default=None, ge=0.0, le=2.0, description="LLM temperature parameter."
    )
    disabled: Optional[bool] = Field(
        default=None,
        description="Disables the linter entirely; meant for inline directives.",
    )


class ResolvedLinterOptions(_SchemaModel):
    """Linter options with every default applied."""

    no_inline_config: bool = Field(default=False, alias="noInlineConfig")
    early_exit: bool = Field(default=False, alias="earlyExit")
    debug: bool = False
    no_cache: bool = Field(default=False, alias="noCache")
    cache_dir: str = Field(default=DEFAULT_CACHE_DIR, alias="cacheDir")
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, gt=0)
    model: str = DEFAULT_MODEL
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    disabled: bool = False


class LinterConfig(_SchemaModel):
    """Partial configuration as written in config files or inline directives."""

    files: Optional[List[str]] = Field(
        default=None, description="Glob patterns for the files to process."
    )
    ignores: Optional[List[str]] = Field(
        default=None, description="Glob patterns for files that should be ignored."
    )
    guideline_files: Optional[List[str]] = Field(
        default=None,
        alias="guidelineFiles",
        description="Glob patterns to guideline markdown files with several rules each.",
    )
    rule_files: Optional[List[str]] = Field(
        default=None,
        alias="ruleFiles",
        description="Glob patterns to rule definition markdown files.",
    )
    rules: Optional[Dict[str, LinterConfigRule]] = Field(
        default=None, description="Per-rule settings."
    )
    linter_options: Optional[LinterOptions] = Field(
        default=None,
        alias="linterOptions",
        description="Settings related to the linting process.",
    )


class ResolvedLinterConfig(_SchemaModel):
    """Configuration with no missing fields."""

    files: List[str] = Field(default_factory=list)
    ignores: List[str] = Field(default_factory=list)
    guideline_files: List[str] = Field(default_factory=list, alias="guidelineFiles")
    rule_files: List[str] = Field(default_factory=list, alias="ruleFiles")
    rules: Dict[str, LinterConfigRule] = Field(default_factory=dict)
    linter_options: ResolvedLinterOptions = Field(
        default_factory=ResolvedLinterOptions, alias="linterOptions"
    )

    def rule_setting(self, rule_name: str) -> Optional[LinterConfigRule]:
        return self.rules.get(rule_name)


AnyLinterConfig = Union[LinterConfig, ResolvedLinterConfig]


def parse_linter_config(raw: Mapping[str, Any] | LinterConfig | None) -> LinterConfig:
    """Validate a partial configuration object.

    Raises ``ConfigValidationError`` listing every schema violation.
    """
    if raw is None:
        return LinterConfig()
    if isinstance(raw, LinterConfig):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigValidationError(
            "Invalid linter config",
            [ConfigIssue(location="", message="configuration must be a mapping")],
        )
    try:
        return LinterConfig.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise ConfigValidationError("Invalid linter config", _collect_issues(exc)) from exc


def resolve_linter_config(
    raw: Mapping[str, Any] | AnyLinterConfig | None = None,
) -> ResolvedLinterConfig:
    """Validate ``raw`` and fill every missing field from the defaults."""
    if isinstance(raw, ResolvedLinterConfig):
        return raw
    config = parse_linter_config(raw)
    merged = _merge(ResolvedLinterConfig(), config)
    options = merged.linter_options or LinterOptions()
    return ResolvedLinterConfig(
        files=list(merged.files or []),
        ignores=list(merged.ignores or []),
        guideline_files=list(merged.guideline_files or []),
        rule_files=list(merged.rule_files or []),
        rules=dict(merged.rules or {}),
        linter_options=ResolvedLinterOptions(**options.model_dump(exclude_none=True)),
    )


def merge_linter_configs(config_a: AnyLinterConfig, config_b: AnyLinterConfig) -> AnyLinterConfig:
    """Merge two configs, ``config_b`` taking precedence.

    Glob lists are concatenated and de-duplicated in first-seen order, while
    ``rules`` and ``linterOptions`` are shallow-merged. The result has no
    ``linterOptions`` when neither side defines them. Merging into a resolved
    config returns a resolved config.
    """
    merged = _merge(config_a, config_b)
    if isinstance(config_a, ResolvedLinterConfig):
        return resolve_linter_config(merged)
    return merged


def load_config(config_path: Path) -> LinterConfig:
    """Load a configuration file from disk.

    A directory resolves to ``<dir>/.rulelint.yml``; a missing file yields an
    empty configuration.
    """
    config_file = _resolve_config_path(config_path)
    if not config_file.exists():
        return LinterConfig()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")
    return check_project_config(parse_linter_config(_normalise_yaml_rules(data)))


def check_project_config(config: LinterConfig) -> LinterConfig:
    """Reject options that are only valid in inline directives."""
    if config.linter_options is not None and config.linter_options.disabled is not None:
        raise ConfigValidationError(
            "Invalid linter config",
            [
                ConfigIssue(
                    location="linterOptions.disabled",
                    message="only allowed in inline rulelint-disable directives",
                )
            ],
        )
    return config


def dedupe(values: Iterable[str]) -> List[str]:
    """Return ``values`` without duplicates, preserving first-seen order."""
    seen: set[str] = set()
    deduped: List[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        deduped.append(value)
    return deduped


def _merge(config_a: AnyLinterConfig, config_b: AnyLinterConfig) -> LinterConfig:
    options_a = config_a.linter_options
    options_b = config_b.linter_options
    linter_options: Optional[LinterOptions] = None
    if options_a is not None or options_b is not None:
        linter_options = LinterOptions(
            **{
                **(options_a.model_dump(exclude_none=True) if options_a else {}),
                **(options_b.model_dump(exclude_none=True) if options_b else {}),
            }
        )

    return LinterConfig(
        files=dedupe([*(config_a.files or []), *(config_b.files or [])]),
        ignores=dedupe([*(config_a.ignores or []), *(config_b.ignores or [])]),
        guideline_files=dedupe(
            [*(config_a.guideline_files or []), *(config_b.guideline_files or [])]
        ),
        rule_files=dedupe([*(config_a.rule_files or []), *(config_b.rule_files or [])]),
        rules={**(config_a.rules or {}), **(config_b.rules or {})},
        linter_options=linter_options,
    )


def _normalise_yaml_rules(data: Dict[str, Any]) -> Dict[str, Any]:
    # YAML 1.1 reads a bare `off` as False.
    rules = data.get("rules")
    if not isinstance(rules, dict):
        return data
    normalised = {
        name: "off" if setting is False else setting for name, setting in rules.items()
    }
    return {**data, "rules": normalised}


def _collect_issues(exc: PydanticValidationError) -> List[ConfigIssue]:
    issues: List[ConfigIssue] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        issues.append(ConfigIssue(location=location, message=str(error.get("msg", ""))))
    return issues


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


__all__ = [
    "CONFIG_FILENAME",
    "AnyLinterConfig",
    "ConfigError",
    "ConfigIssue",
    "ConfigValidationError",
    "LinterConfig",
    "LinterConfigRule",
    "LinterOptions",
    "ResolvedLinterConfig",
    "ResolvedLinterOptions",
    "check_project_config",
    "dedupe",
    "load_config",
    "merge_linter_configs",
    "parse_linter_config",
    "resolve_linter_config",
]
