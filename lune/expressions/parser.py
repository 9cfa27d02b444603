"""
Recursive-descent parser for template expressions.

Builds an expression tree from the token sequence, honouring operator
precedence and grouping in parentheses.

Grammar:
expression  → or_expr
or_expr     → and_expr ("or" and_expr)*
and_expr    → not_expr ("and" not_expr)*
not_expr    → "not" not_expr | comparison
comparison  → pipeline (OPERATOR pipeline)?
pipeline    → primary ("|" filter)*
filter      → IDENTIFIER ("(" [arg ("," arg)*] ")")?
arg         → STRING | NUMBER | "true" | "false" | "none" | word
primary     → STRING | NUMBER | "true" | "false" | "none" | path | "(" expression ")"
path        → (IDENTIFIER | KEYWORD) ("." (IDENTIFIER | NUMBER) | "[" NUMBER "]")*
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, List, Tuple

from .lexer import ExpressionLexer, ExpressionSyntaxError, Token
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

_CONSTANTS = {
    'true': True,
    'false': False,
    'none': None,
    'null': None,
}

# Filter arguments: any other bare word, "null" included, is a string
_ARG_CONSTANTS = {
    'true': True,
    'false': False,
    'none': None,
}

# Tokens after which a leading "not" is a variable name, not an operator
_NOT_AS_NAME_FOLLOWERS = {'|', '.', '[', ')', ','}


def _number(text: str) -> Any:
    return float(text) if '.' in text else int(text)


class ExpressionParser:
    """
    Recursive-descent expression parser.

    Turns a token list into an expression tree, following operator
    precedence: or < and < not < comparison < filter pipeline.
    """

    def __init__(self):
        self.lexer = ExpressionLexer()
        self._tokens: List[Token] = []
        self._position = 0

    def parse(self, text: str) -> Expression:
        """
        Parses an expression string.

        Args:
            text: Expression source

        Returns:
            Root node of the expression tree

        Raises:
            ExpressionSyntaxError: On a syntax error
        """
        self._tokens = self.lexer.tokenize(text)
        self._position = 0

        if self._is_at_end():
            raise ExpressionSyntaxError("Empty expression", 0)

        result = self._parse_expression()

        if not self._is_at_end():
            current = self._current_token()
            raise ExpressionSyntaxError(f"Unexpected token '{current.value}'", current.position)

        return result

    def _parse_expression(self) -> Expression:
        return self._parse_or_expression()

    def _parse_or_expression(self) -> Expression:
        left = self._parse_and_expression()

        while self._match_keyword("or"):
            right = self._parse_and_expression()
            left = Binary(left=left, right=right, operator=ExpressionType.OR)

        return left

    def _parse_and_expression(self) -> Expression:
        left = self._parse_not_expression()

        while self._match_keyword("and"):
            right = self._parse_not_expression()
            left = Binary(left=left, right=right, operator=ExpressionType.AND)

        return left

    def _parse_not_expression(self) -> Expression:
        if self._check_keyword("not") and not self._not_used_as_name():
            self._advance()
            # Right-associative: not not x
            return Not(operand=self._parse_not_expression())

        return self._parse_comparison()

    def _parse_comparison(self) -> Expression:
        left = self._parse_pipeline()

        current = self._current_token()
        if current.type == 'OPERATOR':
            self._advance()
            right = self._parse_pipeline()
            return Comparison(left=left, operator=current.value, right=right)

        return left

    def _parse_pipeline(self) -> Expression:
        subject = self._parse_primary()

        filters: List[FilterCall] = []
        while self._match_symbol("|"):
            filters.append(self._parse_filter())

        if not filters:
            return subject
        return Pipeline(subject=subject, filters=tuple(filters))

    def _parse_filter(self) -> FilterCall:
        name_token = self._consume('IDENTIFIER', "Expected filter name after '|'")

        args: List[Any] = []
        if self._match_symbol("("):
            if not self._match_symbol(")"):
                args.append(self._parse_filter_arg())
                while self._match_symbol(","):
                    args.append(self._parse_filter_arg())
                if not self._match_symbol(")"):
                    raise ExpressionSyntaxError(
                        f"Expected ')' after arguments of filter '{name_token.value}'",
                        self._current_position(),
                    )

        return FilterCall(name=name_token.value, args=tuple(args))

    def _parse_filter_arg(self) -> Any:
        current = self._current_token()

        if current.type == 'STRING':
            self._advance()
            return current.value
        if current.type == 'NUMBER':
            self._advance()
            return _number(current.value)
        if current.type == 'KEYWORD' and current.value in _ARG_CONSTANTS:
            self._advance()
            return _ARG_CONSTANTS[current.value]
        if current.type in ('IDENTIFIER', 'KEYWORD'):
            # Bare words are passed to the filter as plain strings
            self._advance()
            return current.value

        if current.type == 'EOF':
            raise ExpressionSyntaxError("Unexpected end of filter arguments", current.position)
        raise ExpressionSyntaxError(f"Unexpected filter argument '{current.value}'", current.position)

    def _parse_primary(self) -> Expression:
        if self._match_symbol("("):
            inner = self._parse_expression()
            if not self._match_symbol(")"):
                raise ExpressionSyntaxError("Expected ')' after grouped expression", self._current_position())
            return Group(inner=inner)

        current = self._current_token()

        if current.type == 'STRING':
            self._advance()
            return Literal(current.value)

        if current.type == 'NUMBER':
            self._advance()
            return Literal(_number(current.value))

        if current.type == 'KEYWORD':
            if current.value in _CONSTANTS and not self._starts_path_tail(1):
                self._advance()
                return Literal(_CONSTANTS[current.value], word=current.value)
            # "and", "or", "not" and "null.x" here can only be variable names
            return self._parse_path()

        if current.type == 'IDENTIFIER':
            return self._parse_path()

        if current.type == 'EOF':
            raise ExpressionSyntaxError("Unexpected end of expression", current.position)
        raise ExpressionSyntaxError(f"Unexpected token '{current.value}'", current.position)

    def _parse_path(self) -> Path:
        segments: List[PathSegment] = [self._advance().value]

        while True:
            if self._match_symbol("."):
                current = self._current_token()
                if current.type in ('IDENTIFIER', 'KEYWORD'):
                    segments.append(self._advance().value)
                elif current.type == 'NUMBER' and not current.value.startswith('-'):
                    # "items.0.1" arrives as NUMBER "0.1"
                    self._advance()
                    segments.extend(int(part) for part in current.value.split('.'))
                else:
                    raise ExpressionSyntaxError("Expected name after '.'", current.position)
            elif self._match_symbol("["):
                index_token = self._consume('NUMBER', "Expected integer index after '['")
                if '.' in index_token.value:
                    raise ExpressionSyntaxError("Index must be an integer", index_token.position)
                if not self._match_symbol("]"):
                    raise ExpressionSyntaxError("Expected ']' after index", self._current_position())
                segments.append(int(index_token.value))
            else:
                break

        return Path(segments=tuple(segments))

    # Token helpers

    def _current_token(self) -> Token:
        return self._peek_token(0)

    def _peek_token(self, offset: int) -> Token:
        index = self._position + offset
        if index >= len(self._tokens):
            return Token(type='EOF', value='', position=len(self._tokens))
        return self._tokens[index]

    def _starts_path_tail(self, offset: int) -> bool:
        token = self._peek_token(offset)
        return token.type == 'SYMBOL' and token.value in ('.', '[')

    def _not_used_as_name(self) -> bool:
        following = self._peek_token(1)
        if following.type in ('EOF', 'OPERATOR'):
            return True
        return following.type == 'SYMBOL' and following.value in _NOT_AS_NAME_FOLLOWERS

    def _current_position(self) -> int:
        return self._current_token().position

    def _is_at_end(self) -> bool:
        return self._current_token().type == 'EOF'

    def _advance(self) -> Token:
        current = self._current_token()
        if not self._is_at_end():
            self._position += 1
        return current

    def _match_keyword(self, keyword: str) -> bool:
        current = self._current_token()
        if current.type == 'KEYWORD' and current.value == keyword:
            self._advance()
            return True
        return False

    def _check_keyword(self, keyword: str) -> bool:
        current = self._current_token()
        return current.type == 'KEYWORD' and current.value == keyword

    def _match_symbol(self, symbol: str) -> bool:
        current = self._current_token()
        if current.type == 'SYMBOL' and current.value == symbol:
            self._advance()
            return True
        return False

    def _consume(self, token_type: str, error_message: str) -> Token:
        current = self._current_token()
        if current.type == token_type:
            return self._advance()
        raise ExpressionSyntaxError(error_message, current.position)


@lru_cache(maxsize=1024)
def parse_expression(text: str) -> Expression:
    """
    Parses an expression string, memoising the result.

    Expression trees are immutable, so the same tree is shared by every
    render of a cached template.

    Raises:
        ExpressionSyntaxError: On a syntax error
    """
    return ExpressionParser().parse(text)


def split_filter_chain(chain: str) -> Tuple[FilterCall, ...]:
    """
    Parses a bare filter chain such as "upper|truncate(3)".

    Raises:
        ExpressionSyntaxError: On a syntax error
    """
    expression = parse_expression(f"_|{chain.strip().lstrip('|')}")
    if isinstance(expression, Pipeline):
        return expression.filters
    return ()


__all__ = ["ExpressionParser", "ExpressionSyntaxError", "parse_expression", "split_filter_chain"]
