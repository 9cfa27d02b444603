"""
Filter registry for the template engine.

Filters are plain callables `(value, *args) -> value` applied through the
pipe syntax: {{ name|upper|truncate(20) }}. Each engine owns its registry,
so different engines may have different filter sets.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..expressions.values import is_empty, is_mapping, is_sequence, to_number, to_text

logger = logging.getLogger(__name__)

FilterFunc = Callable[..., Any]


# ---------------------------- built-in filters ---------------------------- #

def upper(value: Any) -> str:
    return to_text(value).upper()


def lower(value: Any) -> str:
    return to_text(value).lower()


def length(value: Any) -> int:
    """Element count for sequences/mappings, character count for strings, 0 otherwise."""
    if is_sequence(value) or is_mapping(value):
        return len(value)
    if isinstance(value, str):
        return len(value)
    return 0


def truncate(value: Any, max_len: Any = 30, suffix: Any = "...") -> str:
    """
    Shortens text to max_len characters, suffix included.
    Text that already fits is returned unchanged.
    """
    text = to_text(value)
    limit = to_number(max_len)
    limit = int(limit) if limit is not None else 30
    suffix = to_text(suffix)

    if len(text) <= limit:
        return text
    return text[:max(limit - len(suffix), 0)] + suffix


def escape(value: Any) -> str:
    """HTML-escapes & < > " ' (ampersand first)."""
    if value is None:
        return ""
    return (
        to_text(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def default(value: Any, fallback: Any = "") -> Any:
    """Substitutes fallback when value is None or an empty string."""
    return fallback if is_empty(value) else value


def number_format(value: Any, decimals: Any = 0) -> str:
    """Fixed-decimal formatting with comma thousands separators."""
    number = to_number(value)
    if number is None:
        number = 0
    places = to_number(decimals)
    places = max(int(places), 0) if places is not None else 0
    return f"{number:,.{places}f}"


def date_format(value: Any, fmt: Any = "%Y-%m-%d") -> Any:
    """
    Formats a Unix timestamp (seconds) with a strftime pattern, in local time.
    Non-numeric values are passed through unchanged.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    return datetime.fromtimestamp(value).strftime(to_text(fmt))


BUILTIN_FILTERS: Dict[str, FilterFunc] = {
    "upper": upper,
    "lower": lower,
    "length": length,
    "truncate": truncate,
    "escape": escape,
    "default": default,
    "number_format": number_format,
    "date_format": date_format,
}


# ------------------------------- registry -------------------------------- #

class FilterRegistry:
    """
    Name → filter function mapping.

    Re-registering a name silently replaces the previous function.
    """

    def __init__(self, include_builtins: bool = True):
        self._filters: Dict[str, FilterFunc] = dict(BUILTIN_FILTERS) if include_builtins else {}

    def register(self, name: str, func: FilterFunc) -> None:
        """
        Registers a filter.

        Raises:
            ValueError: If the name is empty or func is not callable
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Filter name must be a non-empty string")
        name = name.strip()
        if not callable(func):
            raise ValueError(f"Filter '{name}' must be callable")

        if name in self._filters:
            logger.debug(f"Filter '{name}' replaced")
        self._filters[name] = func

    def unregister(self, name: str) -> bool:
        return self._filters.pop(name, None) is not None

    def get(self, name: str) -> Optional[FilterFunc]:
        return self._filters.get(name)

    def has(self, name: str) -> bool:
        return name in self._filters

    def names(self) -> List[str]:
        return sorted(self._filters)

    def copy(self) -> FilterRegistry:
        clone = FilterRegistry(include_builtins=False)
        clone._filters = dict(self._filters)
        return clone

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __len__(self) -> int:
        return len(self._filters)


_default_registry: Optional[FilterRegistry] = None


def default_registry() -> FilterRegistry:
    """Shared registry with the built-in filters only (used by helpers)."""
    global _default_registry
    if _default_registry is None:
        _default_registry = FilterRegistry()
    return _default_registry


__all__ = [
    "FilterFunc",
    "FilterRegistry",
    "BUILTIN_FILTERS",
    "default_registry",
    "upper",
    "lower",
    "length",
    "truncate",
    "escape",
    "default",
    "number_format",
    "date_format",
]
