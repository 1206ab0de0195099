"""Prompt templates for rule evaluation."""

from .builder import PromptBuilder, PromptMessage

__all__ = ["PromptBuilder", "PromptMessage"]
