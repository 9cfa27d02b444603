"""
Tests for the block-tree builder.
"""

from lune.template.nodes import (
    BlockKind,
    BlockNode,
    TextNode,
    VariableNode,
    collect_include_nodes,
    collect_variable_nodes,
    has_conditional_content,
)
from lune.template.parser import parse_template


class TestTemplateParser:

    def test_flat_template(self):
        ast = parse_template("Hello {{ name }}!")

        assert ast == [TextNode("Hello "), VariableNode("name"), TextNode("!")]

    def test_if_with_else(self):
        ast = parse_template("{% if a %}yes{% else %}no{% endif %}")

        assert len(ast) == 1
        node = ast[0]
        assert isinstance(node, BlockNode)
        assert node.kind is BlockKind.IF
        assert node.args == "a"
        assert node.children == [TextNode("yes")]
        assert node.else_children == [TextNode("no")]

    def test_if_without_else_has_no_else_branch(self):
        node = parse_template("{% if a %}yes{% endif %}")[0]

        assert node.else_children is None

    def test_nested_blocks(self):
        ast = parse_template("{% for x in xs %}{% if x %}{{ x }}{% endif %}{% endfor %}")

        outer = ast[0]
        assert outer.kind is BlockKind.FOR
        inner = outer.children[0]
        assert inner.kind is BlockKind.IF
        assert inner.children == [VariableNode("x")]

    def test_include_has_no_children(self):
        ast = parse_template("a{% include 'x' %}b")

        assert ast[1] == BlockNode(kind=BlockKind.INCLUDE, name="include", args="'x'")
        assert ast[2] == TextNode("b")

    def test_unknown_block(self):
        node = parse_template("{% raw %}keep{% endraw %}")[0]

        assert node.kind is BlockKind.UNKNOWN
        assert node.name == "raw"
        assert node.children == [TextNode("keep")]


class TestStructuralRecovery:
    """Malformed structure becomes visible markers instead of errors."""

    def test_unmatched_end_tag(self):
        ast = parse_template("a{% endif %}b")

        assert ast == [
            TextNode("a"),
            TextNode("<!-- Unmatched closing tag: endif -->"),
            TextNode("b"),
        ]

    def test_unclosed_block_at_eof(self):
        node = parse_template("{% if a %}body")[0]

        assert node.kind is BlockKind.IF
        assert node.children == [TextNode("body"), TextNode("<!-- Unclosed block: if -->")]

    def test_unclosed_marker_goes_to_else_branch(self):
        node = parse_template("{% if a %}x{% else %}y")[0]

        assert node.children == [TextNode("x")]
        assert node.else_children == [TextNode("y"), TextNode("<!-- Unclosed block: if -->")]

    def test_outer_end_closes_inner_blocks(self):
        ast = parse_template("{% for x in xs %}{% if x %}in{% endfor %}after")

        outer = ast[0]
        assert outer.kind is BlockKind.FOR
        inner = outer.children[0]
        assert inner.kind is BlockKind.IF
        assert inner.children == [TextNode("in"), TextNode("<!-- Unclosed block: if -->")]
        assert ast[1] == TextNode("after")

    def test_mismatched_end_inside_block(self):
        node = parse_template("{% if a %}x{% endfor %}{% endif %}")[0]

        assert node.children == [TextNode("x"), TextNode("<!-- Unmatched closing tag: endfor -->")]

    def test_else_outside_block(self):
        ast = parse_template("a{% else %}b")

        assert ast[1] == TextNode("<!-- Unexpected else tag -->")


class TestTreeHelpers:

    def test_collectors(self):
        ast = parse_template(
            "{{ title }}{% if show %}{% include 'part' %}{{ body|upper }}"
            "{% else %}{% include {{ other }} %}{% endif %}"
        )

        assert [n.args for n in collect_include_nodes(ast)] == ["'part'", "{{ other }}"]
        assert [n.expression for n in collect_variable_nodes(ast)] == ["title", "body|upper"]
        assert has_conditional_content(ast) is True
        assert has_conditional_content(parse_template("{{ x }}")) is False
