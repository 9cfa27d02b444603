"""
Expression language of the template engine.

Variable paths, filter pipelines, comparisons and logical operators,
parsed by an explicit lexer and recursive-descent parser.
"""

from __future__ import annotations

from .evaluator import (
    EvaluationError,
    ExpressionEvaluator,
    FilterLookup,
    apply_filters,
    evaluate_condition,
    resolve_path,
)
from .lexer import ExpressionLexer, ExpressionSyntaxError
from .model import Expression, ExpressionType, FilterCall, Literal, Path, Pipeline
from .parser import ExpressionParser, parse_expression
from .values import compare, is_truthy, to_number, to_text

__all__ = [
    "EvaluationError",
    "ExpressionEvaluator",
    "FilterLookup",
    "apply_filters",
    "evaluate_condition",
    "resolve_path",
    "ExpressionLexer",
    "ExpressionSyntaxError",
    "Expression",
    "ExpressionType",
    "FilterCall",
    "Literal",
    "Path",
    "Pipeline",
    "ExpressionParser",
    "parse_expression",
    "compare",
    "is_truthy",
    "to_number",
    "to_text",
]
