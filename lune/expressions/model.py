"""
Data model of template expressions.

Classes representing the parsed form of variable expressions and block
conditions: literals, variable paths, filter pipelines, comparisons and
logical operators.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union


class ExpressionType(Enum):
    """Expression node types."""
    LITERAL = "literal"
    PATH = "path"
    PIPELINE = "pipeline"
    COMPARISON = "comparison"
    NOT = "not"
    AND = "and"
    OR = "or"
    GROUP = "group"


# A path segment is either a mapping key or a sequence index
PathSegment = Union[str, int]


@dataclass(frozen=True)
class Expression(ABC):
    """Base class for all expression nodes."""

    @abstractmethod
    def get_type(self) -> ExpressionType:
        """Returns the node type."""
        pass

    def __str__(self) -> str:
        return self.to_string()

    @abstractmethod
    def to_string(self) -> str:
        """Source-like representation, used in diagnostics."""
        pass


@dataclass(frozen=True)
class Literal(Expression):
    """
    Literal value: "text", 42, 3.5, true, false, none.

    A constant written as a bare word keeps that word; a context key of
    the same name takes precedence over the constant.
    """
    value: Any
    word: Optional[str] = field(default=None, compare=False)

    def get_type(self) -> ExpressionType:
        return ExpressionType.LITERAL

    def to_string(self) -> str:
        if self.word is not None:
            return self.word
        if self.value is None:
            return "none"
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, str):
            return json.dumps(self.value, ensure_ascii=False)
        return str(self.value)


@dataclass(frozen=True)
class Path(Expression):
    """
    Variable path: user.name, items[0], a.b[2].c
    """
    segments: Tuple[PathSegment, ...]

    def get_type(self) -> ExpressionType:
        return ExpressionType.PATH

    def to_string(self) -> str:
        out = ""
        for segment in self.segments:
            if isinstance(segment, int):
                out += f"[{segment}]"
            else:
                out += f".{segment}" if out else segment
        return out


@dataclass(frozen=True)
class FilterCall:
    """
    Filter invocation inside a pipeline: name or name(arg1, arg2)
    """
    name: str
    args: Tuple[Any, ...] = ()

    def to_string(self) -> str:
        if not self.args:
            return self.name
        rendered = ", ".join(Literal(arg).to_string() for arg in self.args)
        return f"{self.name}({rendered})"


@dataclass(frozen=True)
class Pipeline(Expression):
    """
    Value passed through a chain of filters: subject|f1|f2(args)
    """
    subject: Expression
    filters: Tuple[FilterCall, ...] = field(default_factory=tuple)

    def get_type(self) -> ExpressionType:
        return ExpressionType.PIPELINE

    def to_string(self) -> str:
        parts: List[str] = [self.subject.to_string()]
        parts.extend(f.to_string() for f in self.filters)
        return "|".join(parts)


@dataclass(frozen=True)
class Comparison(Expression):
    """
    Binary comparison: left OP right, OP in == != >= <= > <
    """
    left: Expression
    operator: str
    right: Expression

    def get_type(self) -> ExpressionType:
        return ExpressionType.COMPARISON

    def to_string(self) -> str:
        return f"{self.left.to_string()} {self.operator} {self.right.to_string()}"


@dataclass(frozen=True)
class Not(Expression):
    """Negation: not expression"""
    operand: Expression

    def get_type(self) -> ExpressionType:
        return ExpressionType.NOT

    def to_string(self) -> str:
        return f"not {self.operand.to_string()}"


@dataclass(frozen=True)
class Binary(Expression):
    """Logical and/or of two expressions."""
    left: Expression
    right: Expression
    operator: ExpressionType

    def get_type(self) -> ExpressionType:
        return self.operator

    def to_string(self) -> str:
        return f"{self.left.to_string()} {self.operator.value} {self.right.to_string()}"


@dataclass(frozen=True)
class Group(Expression):
    """Explicit parentheses: (expression)"""
    inner: Expression

    def get_type(self) -> ExpressionType:
        return ExpressionType.GROUP

    def to_string(self) -> str:
        return f"({self.inner.to_string()})"


__all__ = [
    "ExpressionType",
    "PathSegment",
    "Expression",
    "Literal",
    "Path",
    "FilterCall",
    "Pipeline",
    "Comparison",
    "Not",
    "Binary",
    "Group",
]
