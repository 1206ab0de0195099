"""Model-backed evaluation of lint tasks."""

from .evaluator import Evaluator, LLMEvaluator, parse_evaluation
from .runner import LLMRunner

__all__ = ["Evaluator", "LLMEvaluator", "LLMRunner", "parse_evaluation"]
