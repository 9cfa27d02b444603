"""
Tests for the expression parser.
"""

import pytest

from lune.expressions.lexer import ExpressionSyntaxError
from lune.expressions.model import (
    Binary,
    Comparison,
    ExpressionType,
    FilterCall,
    Group,
    Literal,
    Not,
    Path,
    Pipeline,
)
from lune.expressions.parser import ExpressionParser, parse_expression, split_filter_chain


class TestExpressionParser:

    def setup_method(self):
        self.parser = ExpressionParser()

    def test_simple_path(self):
        assert self.parser.parse("user") == Path(("user",))

    def test_nested_path_with_indexes(self):
        assert self.parser.parse("users[1].tags.0") == Path(("users", 1, "tags", 0))

    def test_dotted_numeric_segments(self):
        assert self.parser.parse("grid.0.1") == Path(("grid", 0, 1))

    def test_literals(self):
        assert self.parser.parse('"hi"') == Literal("hi")
        assert self.parser.parse("42") == Literal(42)
        assert self.parser.parse("2.5") == Literal(2.5)
        assert self.parser.parse("true") == Literal(True)
        assert self.parser.parse("null") == Literal(None)

    def test_pipeline_with_arguments(self):
        expr = self.parser.parse("name|truncate(5, '~')|upper")

        assert expr == Pipeline(
            subject=Path(("name",)),
            filters=(FilterCall("truncate", (5, "~")), FilterCall("upper")),
        )

    def test_bare_word_filter_argument_is_string(self):
        expr = self.parser.parse("x|default(guest)")

        assert expr.filters[0].args == ("guest",)

    def test_digit_led_key_segment(self):
        assert self.parser.parse("user.2fa") == Path(("user", "2fa"))
        assert self.parser.parse("codes.2fa.0") == Path(("codes", "2fa", 0))

    def test_keywords_as_variable_names(self):
        assert self.parser.parse("and") == Path(("and",))
        assert self.parser.parse("or|upper") == Pipeline(subject=Path(("or",)), filters=(FilterCall("upper"),))
        assert self.parser.parse("not") == Path(("not",))
        assert self.parser.parse("not == 1") == Comparison(left=Path(("not",)), operator="==", right=Literal(1))
        assert self.parser.parse("null.x") == Path(("null", "x"))

    def test_constant_keeps_its_word(self):
        expr = self.parser.parse("null")

        assert expr.word == "null"
        assert expr.to_string() == "null"
        assert self.parser.parse("not flag") == Not(Path(("flag",)))

    def test_null_filter_argument_is_string(self):
        assert self.parser.parse("x|default(null)").filters[0].args == ("null",)
        assert self.parser.parse("x|default(none)").filters[0].args == (None,)
        assert self.parser.parse("x|default(and)").filters[0].args == ("and",)

    def test_comparison(self):
        expr = self.parser.parse("count >= 10")

        assert expr == Comparison(left=Path(("count",)), operator=">=", right=Literal(10))

    def test_precedence(self):
        expr = self.parser.parse("a or b and not c")

        assert isinstance(expr, Binary)
        assert expr.get_type() == ExpressionType.OR
        right = expr.right
        assert right.get_type() == ExpressionType.AND
        assert right.right == Not(Path(("c",)))

    def test_grouping(self):
        expr = self.parser.parse("(a or b) and c")

        assert expr.get_type() == ExpressionType.AND
        assert isinstance(expr.left, Group)

    def test_to_string(self):
        expr = self.parser.parse("user.tags[0]|upper == 'X' and not flag")

        assert expr.to_string() == 'user.tags[0]|upper == "X" and not flag'

    @pytest.mark.parametrize("text", [
        "",
        "a ==",
        "a |",
        "(a",
        "a[1.5]",
        "a[b]",
        "a b",
        "x|f(1,",
    ])
    def test_syntax_errors(self, text):
        with pytest.raises(ExpressionSyntaxError):
            self.parser.parse(text)

    def test_parse_expression_is_memoised(self):
        assert parse_expression("a.b|upper") is parse_expression("a.b|upper")

    def test_split_filter_chain(self):
        assert split_filter_chain("upper|truncate(3)") == (
            FilterCall("upper"),
            FilterCall("truncate", (3,)),
        )
        assert split_filter_chain("|lower") == (FilterCall("lower"),)
