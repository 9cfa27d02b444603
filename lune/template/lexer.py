"""
Lexical analyzer for the template engine.

Splits raw template text into a flat token stream:
- plain text
- variables {{ ... }}
- block tags {% ... %} (opening, self-closing, closing, else)
- comments {# ... #} (dropped)

Content of <pre> regions is passed through as plain text, so documentation
templates can show literal tag syntax.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)


class TokenType(enum.Enum):
    """Token types in a template."""

    TEXT = "TEXT"
    VARIABLE = "VARIABLE"          # {{ expr }}
    BLOCK_START = "BLOCK_START"    # {% if ... %}, {% for ... %}
    BLOCK = "BLOCK"                # {% include ... %} (self-closing)
    BLOCK_END = "BLOCK_END"        # {% endif %}
    ELSE = "ELSE"                  # {% else %}
    EOF = "EOF"


# Tags that never have a body
SELF_CLOSING_TAGS = frozenset({"include"})


@dataclass(frozen=True)
class Token:
    """
    Token with positional info for precise diagnostics.
    """
    type: TokenType
    value: str                  # Raw source slice
    position: int               # Offset in the source text
    line: int                   # Line number (from 1)
    column: int                 # Column number (from 1)
    tag: Optional[str] = None   # Tag name for block tokens
    args: str = ""              # Tag arguments or variable expression

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class TemplateLexer:
    """
    Template lexer.

    Never raises: malformed or unterminated tags degrade to literal text.
    """

    # Openers are searched together; the earliest one wins
    _OPENER = re.compile(r"\{\{|\{%|\{#|<pre(?=[\s>])", re.IGNORECASE)
    _PRE_CLOSE = re.compile(r"</pre\s*>", re.IGNORECASE)

    _CLOSERS = {
        "{{": "}}",
        "{%": "%}",
        "{#": "#}",
    }

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        self.line = 1
        self.column = 1
        self.length = len(text)

        self._tokens: List[Token] = []
        # Pending text is merged into a single TEXT token
        self._text_start: Optional[tuple[int, int, int]] = None
        self._text_parts: List[str] = []

    def tokenize(self) -> List[Token]:
        """
        Tokenizes the whole source text and returns the token list.
        The list always ends with an EOF token.
        """
        while self.position < self.length:
            match = self._OPENER.search(self.text, self.position)
            if match is None:
                self._emit_text(self.text[self.position:])
                break

            if match.start() > self.position:
                self._emit_text(self.text[self.position:match.start()])

            opener = match.group(0)
            if opener.lower() == "<pre":
                self._lex_pre_region()
            else:
                self._lex_tag(opener)

        self._flush_text()
        self._tokens.append(Token(TokenType.EOF, "", self.position, self.line, self.column))

        logger.debug(f"Tokenized template into {len(self._tokens)} tokens")
        return self._tokens

    # ------------------------------------------------------------------ #

    def _lex_pre_region(self) -> None:
        """Emits a <pre>...</pre> region verbatim."""
        close = self._PRE_CLOSE.search(self.text, self.position)
        end = close.end() if close else self.length
        self._emit_text(self.text[self.position:end])

    def _lex_tag(self, opener: str) -> None:
        """Handles {{, {% or {# at the current position."""
        closer = self._CLOSERS[opener]
        end = self.text.find(closer, self.position + 2)

        if end < 0:
            # Unterminated tag: keep the delimiter as text and move on
            logger.debug(f"Unterminated '{opener}' at {self.line}:{self.column}")
            self._emit_text(opener)
            return

        raw = self.text[self.position:end + 2]
        inner = self.text[self.position + 2:end].strip()

        if opener == "{#":
            self._flush_text()
            self._advance(len(raw))
            return

        if opener == "{{":
            self._emit_token(TokenType.VARIABLE, raw, args=inner)
            return

        if not inner:
            self._emit_text(raw)
            return

        parts = inner.split(None, 1)
        name = parts[0]
        args = parts[1].strip() if len(parts) > 1 else ""

        if name == "else":
            self._emit_token(TokenType.ELSE, raw, tag="else")
        elif name.startswith("end") and len(name) > 3:
            self._emit_token(TokenType.BLOCK_END, raw, tag=name[3:], args=args)
        elif name in SELF_CLOSING_TAGS:
            self._emit_token(TokenType.BLOCK, raw, tag=name, args=args)
        else:
            self._emit_token(TokenType.BLOCK_START, raw, tag=name, args=args)

    # ------------------------------------------------------------------ #

    def _emit_text(self, value: str) -> None:
        if not value:
            return
        if self._text_start is None:
            self._text_start = (self.position, self.line, self.column)
        self._text_parts.append(value)
        self._advance(len(value))

    def _flush_text(self) -> None:
        if self._text_start is None:
            return
        position, line, column = self._text_start
        self._tokens.append(Token(TokenType.TEXT, "".join(self._text_parts), position, line, column))
        self._text_start = None
        self._text_parts = []

    def _emit_token(self, token_type: TokenType, raw: str, tag: Optional[str] = None, args: str = "") -> None:
        self._flush_text()
        self._tokens.append(Token(token_type, raw, self.position, self.line, self.column, tag, args))
        self._advance(len(raw))

    def _advance(self, count: int) -> None:
        """
        Moves the position forward, updating line and column numbers.
        """
        end = min(self.position + count, self.length)
        chunk = self.text[self.position:end]
        newlines = chunk.count("\n")
        if newlines:
            self.line += newlines
            self.column = len(chunk) - chunk.rfind("\n")
        else:
            self.column += len(chunk)
        self.position = end


def tokenize_template(text: str) -> List[Token]:
    """
    Convenience function for tokenizing a template.

    Args:
        text: Template source text

    Returns:
        Token list terminated by EOF
    """
    lexer = TemplateLexer(text)
    return lexer.tokenize()


__all__ = ["TokenType", "Token", "TemplateLexer", "SELF_CLOSING_TAGS", "tokenize_template"]
