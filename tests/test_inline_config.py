"""Tests for inline configuration directives."""

from __future__ import annotations

import pytest

from rulelint.config import ConfigValidationError
from rulelint.inline_config import parse_inline_config


def test_file_without_directives_has_no_override(make_file) -> None:
    assert parse_inline_config(make_file(content="const a = 1;\n")) is None


def test_disable_whole_file(make_file) -> None:
    config = parse_inline_config(make_file(content="// rulelint-disable\nconst a = 1;\n"))

    assert config is not None
    assert config.linter_options is not None
    assert config.linter_options.disabled is True
    assert config.rules is None


def test_disable_listed_rules(make_file) -> None:
    config = parse_inline_config(
        make_file(content="# rulelint-disable No-Console, prefer-fetch\n", language="python")
    )

    assert config is not None
    assert config.rules == {"no-console": "off", "prefer-fetch": "off"}
    assert config.linter_options is None


def test_rule_settings_in_block_comments(make_file) -> None:
    content = "/* rulelint no-console: warn, prefer-fetch: off */\n<!-- rulelint a11y: error -->\n"

    config = parse_inline_config(make_file(content=content))

    assert config is not None
    assert config.rules == {"no-console": "warn", "prefer-fetch": "off", "a11y": "error"}


def test_missing_separator_after_first_entry_is_rejected(make_file) -> None:
    with pytest.raises(ConfigValidationError) as excinfo:
        parse_inline_config(make_file(content="// rulelint no-console: off, prefer-fetch\n"))

    assert excinfo.value.issues[0].location == "src/example.ts"


def test_unknown_setting_is_rejected(make_file) -> None:
    with pytest.raises(ConfigValidationError):
        parse_inline_config(make_file(content="// rulelint no-console: loud\n"))


def test_plain_mentions_are_not_directives(make_file) -> None:
    content = 'const note = "rulelint-disable is documented elsewhere";\n'

    assert parse_inline_config(make_file(content=content)) is None


def test_prose_comments_mentioning_the_tool_are_ignored(make_file) -> None:
    content = (
        "# rulelint flags this on purpose\n"
        "// rulelint no-console\n"
        "/* rulelint note: keep this loop simple */\n"
        "console.log('hello')\n"
    )

    assert parse_inline_config(make_file(content=content)) is None


def test_prose_comment_does_not_hide_later_directives(make_file) -> None:
    content = "# rulelint flags this on purpose\n# rulelint no-console: off\n"

    config = parse_inline_config(make_file(content=content, language="python"))

    assert config is not None
    assert config.rules == {"no-console": "off"}
