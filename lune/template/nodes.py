"""
AST nodes of the template engine.

Immutable node classes describing the structure of a parsed template:
literal text, variables and blocks (if/for/include and unknown tags).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional


class BlockKind(enum.Enum):
    """Kinds of block tags."""
    IF = "if"
    FOR = "for"
    INCLUDE = "include"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: str) -> BlockKind:
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class TemplateNode:
    """Base class for all template AST nodes."""
    pass


@dataclass(frozen=True)
class TextNode(TemplateNode):
    """
    Static text emitted verbatim.

    Also used for inline diagnostics produced while building the tree.
    """
    text: str


@dataclass(frozen=True)
class VariableNode(TemplateNode):
    """
    Variable output {{ expression }}.

    The expression ("path|filter(args)|filter2") is parsed lazily at render time.
    """
    expression: str


@dataclass(frozen=True)
class BlockNode(TemplateNode):
    """
    Block tag {% name args %} ... {% endname %}.

    Attributes:
        kind: Block kind derived from the tag name
        name: Raw tag name (kept for unknown tags)
        args: Argument text after the tag name
        children: Body nodes (empty for self-closing tags)
        else_children: Nodes after {% else %}, None if there was no else
    """
    kind: BlockKind
    name: str
    args: str = ""
    children: List[TemplateNode] = field(default_factory=list)
    else_children: Optional[List[TemplateNode]] = None


# Alias for a node list (AST)
TemplateAST = List[TemplateNode]


def iter_nodes(ast: TemplateAST) -> Iterator[TemplateNode]:
    """Depth-first walk over all nodes, including else branches."""
    for node in ast:
        yield node
        if isinstance(node, BlockNode):
            yield from iter_nodes(node.children)
            if node.else_children is not None:
                yield from iter_nodes(node.else_children)


def collect_include_nodes(ast: TemplateAST) -> List[BlockNode]:
    """Collects all include blocks in the tree."""
    return [
        node for node in iter_nodes(ast)
        if isinstance(node, BlockNode) and node.kind is BlockKind.INCLUDE
    ]


def collect_variable_nodes(ast: TemplateAST) -> List[VariableNode]:
    """Collects all variable nodes in the tree."""
    return [node for node in iter_nodes(ast) if isinstance(node, VariableNode)]


def has_conditional_content(ast: TemplateAST) -> bool:
    """Checks whether the tree contains any if blocks."""
    return any(
        isinstance(node, BlockNode) and node.kind is BlockKind.IF
        for node in iter_nodes(ast)
    )


__all__ = [
    "BlockKind",
    "TemplateNode",
    "TextNode",
    "VariableNode",
    "BlockNode",
    "TemplateAST",
    "iter_nodes",
    "collect_include_nodes",
    "collect_variable_nodes",
    "has_conditional_content",
]
