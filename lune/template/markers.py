"""
Inline diagnostic markers.

Recoverable problems are rendered as HTML comments: invisible in a browser,
visible in the page source.
"""

from __future__ import annotations


def html_comment(message: str) -> str:
    """Wraps a message into an HTML comment that cannot be closed early."""
    safe = str(message).replace("-->", "-- >")
    return f"<!-- {safe} -->"


def unmatched_closing_tag(name: str) -> str:
    return html_comment(f"Unmatched closing tag: end{name}")


def unclosed_block(name: str) -> str:
    return html_comment(f"Unclosed block: {name}")


def unexpected_else() -> str:
    return html_comment("Unexpected else tag")


__all__ = ["html_comment", "unmatched_closing_tag", "unclosed_block", "unexpected_else"]
