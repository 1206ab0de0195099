"""Builds the chat prompts used to evaluate one file against one rule."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from jinja2 import Environment, StrictUndefined

from ..models import InputFile, Rule

SYSTEM_TEMPLATE = """\
You are an expert senior software engineer who loves to lint code. You make sure \
code conforms to project-specific guidelines and best practices. You will be given \
a code rule with a description of the rule's intent and zero or more positive and \
negative code examples.

Your task is to take the given code and determine whether any portions of it \
violate the rule's intent. Accuracy is important, so think step-by-step and attach \
a confidence ("low", "medium" or "high") to every error you report.

Respond with a single JSON object of the form:
{"errors": [{"ruleName": "<rule name>", "codeSnippet": "<offending code>", \
"confidence": "low|medium|high"}], "message": "<short explanation>"}
Use an empty "errors" list when the code conforms to the rule.
"""

RULE_TEMPLATE = """\
# Rule "{{ rule.name }}"

{{ rule.message }}
{% if rule.desc %}

{{ rule.desc }}
{% endif %}
{% if rule.negative_examples %}

## Incorrect Examples
{% for example in rule.negative_examples %}

```{{ example.language or "" }}
{{ example.code }}
```
{% endfor %}
{% endif %}
{% if rule.positive_examples %}

## Correct Examples
{% for example in rule.positive_examples %}

```{{ example.language or "" }}
{{ example.code }}
```
{% endfor %}
{% endif %}
"""

FILE_TEMPLATE = """\
File: {{ file.file_name }}{{ " (%s)" % file.language if file.language else "" }}

```{{ (file.language or "") | lower }}
{{ file.content }}
```
"""


@dataclass(frozen=True)
class PromptMessage:
    """Represents a single chat message for LLM prompting."""

    role: str
    content: str


class PromptBuilder:
    """Renders rule and file templates into chat messages."""

    def __init__(
        self,
        *,
        system_template: str = SYSTEM_TEMPLATE,
        rule_template: str = RULE_TEMPLATE,
        file_template: str = FILE_TEMPLATE,
    ) -> None:
        self._env = Environment(
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            undefined=StrictUndefined,
        )
        self._system = self._env.from_string(system_template)
        self._rule = self._env.from_string(rule_template)
        self._file = self._env.from_string(file_template)

    def build(self, file: InputFile, rule: Rule) -> List[PromptMessage]:
        return [
            PromptMessage(role="system", content=self._system.render().strip()),
            PromptMessage(role="system", content=self._rule.render(rule=rule).strip()),
            PromptMessage(role="user", content=self._file.render(file=file).strip()),
        ]


__all__ = ["PromptBuilder", "PromptMessage"]
