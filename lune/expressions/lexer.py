"""
Lexer for template expressions.

Tokenizes variable expressions and block conditions into meaningful units:
- Strings ("..." or '...') and numbers
- Identifiers (variable names, path segments, filter names)
- Keywords (not, and, or, true, false, none, null)
- Comparison operators (== != >= <= > <)
- Symbols (| . , ( ) [ ])
- Whitespace (ignored)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List


class ExpressionSyntaxError(ValueError):
    """Syntax error in a template expression."""

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"Parse error at position {position}: {message}")


@dataclass
class Token:
    """
    Expression token.

    Attributes:
        type: STRING, NUMBER, IDENTIFIER, KEYWORD, OPERATOR, SYMBOL or EOF
        value: Token value (strings are already unquoted)
        position: Offset in the source string
    """
    type: str
    value: str
    position: int

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', pos={self.position})"


class ExpressionLexer:
    """
    Splits an expression string into tokens.
    """

    # Token specs: (regex_pattern, token_type, ignore_flag)
    TOKEN_SPECS = [
        (r'\s+', 'WHITESPACE', True),

        # Strings with backslash escapes
        (r'"(?:[^"\\]|\\.)*"', 'STRING', False),
        (r"'(?:[^'\\]|\\.)*'", 'STRING', False),

        # Numbers (sign is accepted only in front of a digit)
        (r'-?\d+(?:\.\d+)?(?![\w])', 'NUMBER', False),

        # Digit-led keys such as "2fa"
        (r'\d+[A-Za-z_][\w-]*', 'IDENTIFIER', False),

        # Operators: longest first, so ">" never eats ">="
        (r'==|!=|>=|<=|>|<', 'OPERATOR', False),

        (r'[|.,()\[\]]', 'SYMBOL', False),

        # Identifiers; keywords are resolved after capture
        (r'[A-Za-z_][\w-]*', 'IDENTIFIER', False),

        (r'.', 'UNKNOWN', False),
    ]

    KEYWORDS = {
        'not', 'and', 'or', 'true', 'false', 'none', 'null'
    }

    _ESCAPE = re.compile(r'\\(.)')

    def __init__(self):
        self._compiled_patterns = [
            (re.compile(pattern), token_type, ignore)
            for pattern, token_type, ignore in self.TOKEN_SPECS
        ]

    def tokenize(self, text: str) -> List[Token]:
        """
        Splits a string into tokens.

        Args:
            text: Expression string

        Returns:
            Token list ending with EOF

        Raises:
            ExpressionSyntaxError: On an unexpected character
        """
        tokens: List[Token] = []
        position = 0

        while position < len(text):
            for pattern, token_type, ignore in self._compiled_patterns:
                match = pattern.match(text, position)
                if not match:
                    continue

                value = match.group(0)
                if not ignore:
                    if token_type == 'UNKNOWN':
                        raise ExpressionSyntaxError(f"Unexpected character '{value}'", position)
                    tokens.append(self._make_token(token_type, value, position))

                position = match.end()
                break

        tokens.append(Token(type='EOF', value='', position=position))
        return tokens

    def _make_token(self, token_type: str, value: str, position: int) -> Token:
        if token_type == 'STRING':
            return Token(type='STRING', value=self._ESCAPE.sub(r'\1', value[1:-1]), position=position)

        # Hyphen is allowed inside identifiers (filter names, keys),
        # but keywords are matched exactly
        if token_type == 'IDENTIFIER' and value in self.KEYWORDS:
            return Token(type='KEYWORD', value=value, position=position)

        return Token(type=token_type, value=value, position=position)


__all__ = ["ExpressionLexer", "ExpressionSyntaxError", "Token"]
