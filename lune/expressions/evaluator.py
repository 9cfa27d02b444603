"""
Evaluator of template expressions.

Walks an expression tree against a render context: resolves variable
paths, runs filter pipelines and evaluates comparisons and logical
operators.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional, Protocol, Sequence, cast, runtime_checkable

from .lexer import ExpressionSyntaxError
from .model import (
    Binary,
    Comparison,
    Expression,
    ExpressionType,
    FilterCall,
    Group,
    Literal,
    Not,
    Path,
    PathSegment,
    Pipeline,
)
from .values import compare, is_sequence, is_truthy

logger = logging.getLogger(__name__)


class EvaluationError(Exception):
    """Error while evaluating an expression."""
    pass


@runtime_checkable
class FilterLookup(Protocol):
    """Anything that can look up a filter function by name."""

    def get(self, name: str) -> Optional[Callable[..., Any]]:
        ...


def _lookup_segment(value: Any, segment: PathSegment) -> Any:
    if isinstance(segment, int):
        if is_sequence(value) and 0 <= segment < len(value):
            return value[segment]
        if isinstance(value, Mapping):
            # JSON objects decoded with numeric keys
            return value.get(segment, value.get(str(segment)))
        return None

    if isinstance(value, Mapping):
        return value.get(segment)
    if is_sequence(value) and segment.isdigit():
        index = int(segment)
        return value[index] if index < len(value) else None
    return None


def resolve_segments(context: Mapping[str, Any], segments: Sequence[PathSegment]) -> Any:
    """
    Follows path segments through nested mappings and sequences.

    Returns None as soon as a segment is missing or not traversable.
    """
    value: Any = context
    for segment in segments:
        value = _lookup_segment(value, segment)
        if value is None:
            return None
    return value


class ExpressionEvaluator:
    """
    Expression evaluator.

    Takes an expression tree and a context mapping, returns a value
    (evaluate) or a boolean (is_true).
    """

    def __init__(self, context: Mapping[str, Any], filters: Optional[FilterLookup] = None):
        """
        Args:
            context: Variables visible to the expression
            filters: Filter registry; without it every filter is a no-op
        """
        self.context = context
        self.filters = filters

    def evaluate(self, expression: Expression) -> Any:
        """
        Computes the value of an expression.

        Raises:
            EvaluationError: On an unknown node type or a failing comparison
        """
        expression_type = expression.get_type()

        if expression_type == ExpressionType.LITERAL:
            return self._evaluate_literal(cast(Literal, expression))
        elif expression_type == ExpressionType.PATH:
            return self.resolve(cast(Path, expression))
        elif expression_type == ExpressionType.PIPELINE:
            return self._evaluate_pipeline(cast(Pipeline, expression))
        elif expression_type == ExpressionType.COMPARISON:
            return self._evaluate_comparison(cast(Comparison, expression))
        elif expression_type == ExpressionType.GROUP:
            return self.evaluate(cast(Group, expression).inner)
        elif expression_type == ExpressionType.NOT:
            return not self.is_true(cast(Not, expression).operand)
        elif expression_type == ExpressionType.AND:
            return self._evaluate_and(cast(Binary, expression))
        elif expression_type == ExpressionType.OR:
            return self._evaluate_or(cast(Binary, expression))
        else:
            raise EvaluationError(f"Unknown expression type: {expression_type}")

    def is_true(self, expression: Expression) -> bool:
        """Evaluates an expression as a condition."""
        return is_truthy(self.evaluate(expression))

    def resolve(self, path: Path) -> Any:
        """Resolves a variable path against the context; missing → None."""
        return resolve_segments(self.context, path.segments)

    def _evaluate_literal(self, literal: Literal) -> Any:
        if literal.word is not None and literal.word in self.context:
            return self.context[literal.word]
        return literal.value

    def apply_filter(self, value: Any, call: FilterCall) -> Any:
        """
        Applies a single filter to a value.

        Unknown filters leave the value unchanged.
        """
        func = self.filters.get(call.name) if self.filters is not None else None
        if func is None:
            logger.debug(f"Unknown filter '{call.name}', value passed through")
            return value
        return func(value, *call.args)

    def _evaluate_pipeline(self, pipeline: Pipeline) -> Any:
        value = self.evaluate(pipeline.subject)
        for call in pipeline.filters:
            value = self.apply_filter(value, call)
        return value

    def _evaluate_comparison(self, comparison: Comparison) -> bool:
        left = self.evaluate(comparison.left)
        right = self.evaluate(comparison.right)
        try:
            return compare(left, comparison.operator, right)
        except (TypeError, ValueError) as e:
            raise EvaluationError(f"Cannot evaluate '{comparison.to_string()}': {e}") from e

    def _evaluate_and(self, expression: Binary) -> bool:
        # Short-circuit
        if not self.is_true(expression.left):
            return False
        return self.is_true(expression.right)

    def _evaluate_or(self, expression: Binary) -> bool:
        # Short-circuit
        if self.is_true(expression.left):
            return True
        return self.is_true(expression.right)


def resolve_path(context: Mapping[str, Any], path: str) -> Any:
    """
    Resolves a dotted/indexed path string ("a.b[0].c") against a context.

    Supports the inline default form "path|default('x')" as well, since
    the path is parsed as a full expression. A malformed path resolves to
    None.
    """
    from .parser import parse_expression
    from ..template.filters import default_registry

    if not path.strip():
        return None
    try:
        expression = parse_expression(path.strip())
    except ExpressionSyntaxError as e:
        logger.debug(f"Malformed path '{path}': {e}")
        return None
    return ExpressionEvaluator(context, default_registry()).evaluate(expression)


def evaluate_condition(
    context: Mapping[str, Any],
    condition: str,
    filters: Optional[FilterLookup] = None,
) -> bool:
    """
    Convenience function for evaluating a condition string.

    An empty condition is false.

    Raises:
        ExpressionSyntaxError: On a parse error
        EvaluationError: On an evaluation error
    """
    from .parser import parse_expression

    text = condition.strip()
    if not text:
        return False
    return ExpressionEvaluator(context, filters).is_true(parse_expression(text))


def apply_filters(value: Any, chain: str, filters: Optional[FilterLookup] = None) -> Any:
    """
    Runs a value through a filter chain string such as "upper|truncate(3)".

    Raises:
        ExpressionSyntaxError: On a malformed chain
    """
    from .parser import split_filter_chain

    if not chain.strip().strip("|").strip():
        return value

    evaluator = ExpressionEvaluator({}, filters)
    for call in split_filter_chain(chain):
        value = evaluator.apply_filter(value, call)
    return value


__all__ = [
    "EvaluationError",
    "ExpressionEvaluator",
    "FilterLookup",
    "resolve_segments",
    "resolve_path",
    "evaluate_condition",
    "apply_filters",
]
