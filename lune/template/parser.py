"""
Block-tree builder for the template engine.

Turns the flat token stream into a nested AST of text, variable and block
nodes. The builder never raises: structural problems (unmatched end tags,
unclosed blocks, stray else) become visible HTML comments in the tree,
because templates are often hand-edited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .lexer import Token, TokenType, TemplateLexer
from .markers import unclosed_block, unexpected_else, unmatched_closing_tag
from .nodes import BlockKind, BlockNode, TemplateAST, TemplateNode, TextNode, VariableNode

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """Open block on the builder stack."""
    token: Token
    children: List[TemplateNode] = field(default_factory=list)
    else_children: Optional[List[TemplateNode]] = None
    in_else: bool = False

    @property
    def name(self) -> str:
        return self.token.tag or ""

    @property
    def target(self) -> List[TemplateNode]:
        """Branch currently receiving nodes."""
        if self.in_else and self.else_children is not None:
            return self.else_children
        return self.children

    def build(self) -> BlockNode:
        return BlockNode(
            kind=BlockKind.from_tag(self.name),
            name=self.name,
            args=self.token.args,
            children=self.children,
            else_children=self.else_children,
        )


class TemplateParser:
    """
    Stack-based parser building the block tree.

    Each BLOCK_START opens a frame; nodes go into the innermost frame
    (or the top-level list when no frame is open). A frame becomes a
    BlockNode attached to its parent when it closes.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self._ast: TemplateAST = []
        self._stack: List[_Frame] = []

    def parse(self) -> TemplateAST:
        """
        Parses the whole token sequence.

        Returns:
            List of top-level AST nodes
        """
        self._ast = []
        self._stack = []

        for token in self.tokens:
            if token.type == TokenType.EOF:
                break
            self._handle_token(token)

        # Implicitly close everything still open, innermost first
        while self._stack:
            self._close_unclosed(self._stack[-1])

        return self._ast

    def _handle_token(self, token: Token) -> None:
        if token.type == TokenType.TEXT:
            self._append(TextNode(text=token.value))
        elif token.type == TokenType.VARIABLE:
            self._append(VariableNode(expression=token.args))
        elif token.type == TokenType.BLOCK:
            self._append(BlockNode(
                kind=BlockKind.from_tag(token.tag or ""),
                name=token.tag or "",
                args=token.args,
            ))
        elif token.type == TokenType.BLOCK_START:
            self._stack.append(_Frame(token=token))
        elif token.type == TokenType.ELSE:
            self._handle_else(token)
        elif token.type == TokenType.BLOCK_END:
            self._handle_end(token)

    def _handle_else(self, token: Token) -> None:
        if not self._stack:
            logger.warning(f"Unexpected else tag at {token.line}:{token.column}")
            self._append(TextNode(text=unexpected_else()))
            return

        frame = self._stack[-1]
        if frame.else_children is None:
            frame.else_children = []
        frame.in_else = True

    def _handle_end(self, token: Token) -> None:
        name = token.tag or ""

        match_index = self._find_open_frame(name)
        if match_index is None:
            logger.warning(f"Unmatched closing tag 'end{name}' at {token.line}:{token.column}")
            self._append(TextNode(text=unmatched_closing_tag(name)))
            return

        # Inner frames that were never closed are closed with a warning first
        while len(self._stack) - 1 > match_index:
            self._close_unclosed(self._stack[-1])

        self._close(self._stack[-1])

    def _find_open_frame(self, name: str) -> Optional[int]:
        for index in range(len(self._stack) - 1, -1, -1):
            if self._stack[index].name == name:
                return index
        return None

    def _close_unclosed(self, frame: _Frame) -> None:
        logger.warning(
            f"Unclosed block '{frame.name}' opened at {frame.token.line}:{frame.token.column}"
        )
        frame.target.append(TextNode(text=unclosed_block(frame.name)))
        self._close(frame)

    def _close(self, frame: _Frame) -> None:
        self._stack.pop()
        self._append(frame.build())

    def _append(self, node: TemplateNode) -> None:
        if self._stack:
            self._stack[-1].target.append(node)
        else:
            self._ast.append(node)


def parse_template(text: str) -> TemplateAST:
    """
    Convenience function for parsing a template from text.

    Args:
        text: Template source text

    Returns:
        Template AST
    """
    lexer = TemplateLexer(text)
    tokens = lexer.tokenize()

    parser = TemplateParser(tokens)
    return parser.parse()


__all__ = ["TemplateParser", "parse_template"]
