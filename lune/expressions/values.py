"""
Value semantics shared by the evaluator and the filters.

Context values follow the JSON data model: None, bool, number, str,
sequence (list/tuple) and mapping. There is exactly one coercion rule:
both sides of a comparison are tried as numbers, and string comparison
is used as soon as either side is not numeric.
"""

from __future__ import annotations

import json
import operator
import re
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, Union

Number = Union[int, float]

_NUMERIC_TEXT = re.compile(r'^\s*-?\d+(?:\.\d+)?\s*$')

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def to_number(value: Any) -> Optional[Number]:
    """Numeric view of a value, or None when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and _NUMERIC_TEXT.match(value):
        text = value.strip()
        return float(text) if '.' in text else int(text)
    return None


def to_text(value: Any) -> str:
    """
    Canonical string form of a value.

    None renders as an empty string, booleans as true/false,
    integral floats without a trailing ".0", containers as JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if is_sequence(value) or is_mapping(value):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def is_truthy(value: Any) -> bool:
    """
    Truthiness used by conditions: everything except None, False,
    numeric zero and the empty string is true.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


def is_empty(value: Any) -> bool:
    """None or empty string; used by the default filter."""
    return value is None or value == ""


def compare(left: Any, op: str, right: Any) -> bool:
    """
    Compares two values with one of == != > < >= <=.

    Raises:
        ValueError: On an unknown operator
    """
    func = _OPERATORS.get(op)
    if func is None:
        raise ValueError(f"Unknown comparison operator '{op}'")

    left_num = to_number(left)
    right_num = to_number(right)
    if left_num is not None and right_num is not None:
        return bool(func(left_num, right_num))

    return bool(func(to_text(left), to_text(right)))


__all__ = [
    "is_sequence",
    "is_mapping",
    "to_number",
    "to_text",
    "is_truthy",
    "is_empty",
    "compare",
]
