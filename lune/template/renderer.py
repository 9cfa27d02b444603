"""
Renderer of the template engine.

Walks the block tree depth-first against a context and produces the output
text. Every recoverable problem (bad condition, broken include, circular
include, unknown block) degrades to an inline HTML comment; nothing raised
inside a node escapes the node.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

from .filters import FilterRegistry
from .markers import html_comment
from .nodes import BlockKind, BlockNode, TemplateAST, TemplateNode, TextNode, VariableNode
from ..cache.template_cache import TemplateCache
from ..expressions.evaluator import ExpressionEvaluator
from ..expressions.parser import parse_expression
from ..expressions.values import is_sequence, to_text

logger = logging.getLogger(__name__)

DEFAULT_MAX_INCLUDE_DEPTH = 10
DEFAULT_MAX_RENDER_DEPTH = 64
DEFAULT_EXTENSIONS = (".html", ".tpl")
DEFAULT_EXTENSION = ".html"

_FOR_ARGS = re.compile(r"^\s*([A-Za-z_]\w*)\s+in\s+(.+?)\s*$")
_INCLUDE_VARIABLE = re.compile(r"^\{\{\s*(.+?)\s*\}\}$")
_QUOTED = re.compile(r"""^(["'])(.*)\1$""", re.DOTALL)

Context = Mapping[str, Any]


@dataclass
class RenderState:
    """
    Per-call state of one top-level render.

    Created fresh for every top-level call and never shared between
    concurrent renders.
    """
    root: Optional[str] = None
    include_stack: List[str] = field(default_factory=list)
    depth: int = 0
    diagnostics: List[str] = field(default_factory=list)

    def report(self, message: str) -> str:
        """Records a diagnostic and returns its inline marker."""
        self.diagnostics.append(message)
        logger.warning(message)
        return html_comment(message)


class TemplateRenderer:
    """
    Depth-first renderer of template ASTs.

    Node handlers are looked up by node type; block handlers by block kind.
    """

    def __init__(
        self,
        filters: FilterRegistry,
        cache: TemplateCache,
        template_dir: Optional[Path] = None,
        *,
        max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
        max_render_depth: int = DEFAULT_MAX_RENDER_DEPTH,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        default_extension: str = DEFAULT_EXTENSION,
    ):
        self.filters = filters
        self.cache = cache
        self.template_dir = template_dir
        self.max_include_depth = max_include_depth
        self.max_render_depth = max_render_depth
        self.extensions = tuple(extensions)
        self.default_extension = default_extension

        self._node_handlers: Dict[Type[TemplateNode], Callable[[Any, Context, RenderState], str]] = {
            TextNode: self._render_text,
            VariableNode: self._render_variable,
            BlockNode: self._render_block,
        }
        self._block_handlers: Dict[BlockKind, Callable[[BlockNode, Context, RenderState], str]] = {
            BlockKind.IF: self._render_if,
            BlockKind.FOR: self._render_for,
            BlockKind.INCLUDE: self._render_include,
            BlockKind.UNKNOWN: self._render_unknown,
        }

    # ------------------------------------------------------------------ #

    def render(self, ast: TemplateAST, context: Context, state: Optional[RenderState] = None) -> str:
        """
        Renders a node list against a context.

        Args:
            ast: Nodes to render
            context: Variables visible to the nodes
            state: Per-call state; a fresh one is created when omitted

        Returns:
            Rendered text
        """
        if state is None:
            state = RenderState()

        if state.depth >= self.max_render_depth:
            return state.report(f"Error: Maximum render depth exceeded ({self.max_render_depth})")

        state.depth += 1
        try:
            return "".join(self._render_node(node, context, state) for node in ast)
        finally:
            state.depth -= 1

    def _render_node(self, node: TemplateNode, context: Context, state: RenderState) -> str:
        handler = self._node_handlers.get(type(node))
        if handler is None:
            logger.warning(f"No renderer for node type: {type(node).__name__}")
            return ""
        return handler(node, context, state)

    def _render_text(self, node: TextNode, context: Context, state: RenderState) -> str:
        return node.text

    def _render_variable(self, node: VariableNode, context: Context, state: RenderState) -> str:
        if not node.expression:
            return ""
        try:
            value = self._evaluator(context).evaluate(parse_expression(node.expression))
        except Exception as e:
            return state.report(f"Error processing variable: {e}")
        return to_text(value)

    def _render_block(self, node: BlockNode, context: Context, state: RenderState) -> str:
        return self._block_handlers[node.kind](node, context, state)

    # ------------------------------ blocks ------------------------------ #

    def _render_if(self, node: BlockNode, context: Context, state: RenderState) -> str:
        condition = node.args.strip()
        try:
            result = bool(condition) and self._evaluator(context).is_true(parse_expression(condition))
        except Exception as e:
            return state.report(f"Error in if condition: {e}")

        if result:
            return self.render(node.children, context, state)
        if node.else_children is not None:
            return self.render(node.else_children, context, state)
        return ""

    def _render_for(self, node: BlockNode, context: Context, state: RenderState) -> str:
        match = _FOR_ARGS.match(node.args)
        if not match:
            return state.report(f"Invalid for loop syntax: {node.args}")

        var_name, collection_expr = match.group(1), match.group(2)
        try:
            collection = self._evaluator(context).evaluate(parse_expression(collection_expr))
        except Exception as e:
            return state.report(f"Error in for loop: {e}")

        if not is_sequence(collection) or not collection:
            if collection is not None and not is_sequence(collection):
                logger.debug(f"For loop over non-sequence '{collection_expr}' treated as empty")
            if node.else_children is not None:
                return self.render(node.else_children, context, state)
            return ""

        length = len(collection)
        parts: List[str] = []
        for index, item in enumerate(collection):
            loop_context = dict(context)
            loop_context[var_name] = item
            loop_context["loop"] = {
                "index": index + 1,
                "index0": index,
                "first": index == 0,
                "last": index == length - 1,
                "length": length,
            }
            parts.append(self.render(node.children, loop_context, state))
        return "".join(parts)

    def _render_include(self, node: BlockNode, context: Context, state: RenderState) -> str:
        try:
            name = self._resolve_include_name(node.args, context)
        except Exception as e:
            return state.report(f"Error including template: {e}")
        if name is None:
            return state.report(f"Include error: variable '{node.args.strip()}' is undefined")
        if not name:
            return state.report("Include error: empty template name")

        if self.template_dir is None:
            return state.report("Include failed: template directory not set")

        path = self.resolve_template_path(name)
        identity = TemplateCache.make_key(path)

        if identity == state.root or identity in state.include_stack:
            return state.report(f"Error: Circular include detected for '{name}'")
        if len(state.include_stack) >= self.max_include_depth:
            return state.report(f"Error: Maximum include depth exceeded ({self.max_include_depth})")

        logger.debug(f"Including template '{name}' from {path}")
        state.include_stack.append(identity)
        try:
            try:
                ast = self.cache.get_or_parse(path)
            except OSError as e:
                return state.report(f"Include failed: {path} ({e.strerror or e})")
            except ValueError as e:
                return state.report(f"Include failed: {path} ({e})")
            try:
                return self.render(ast, context, state)
            except Exception as e:
                return state.report(f"Error including template: {e}")
        finally:
            state.include_stack.pop()

    def _render_unknown(self, node: BlockNode, context: Context, state: RenderState) -> str:
        if node.children:
            # Forward-compatible passthrough
            return self.render(node.children, context, state)
        return state.report(f"Unknown block type: {node.name}")

    # ------------------------------ helpers ------------------------------ #

    def _evaluator(self, context: Context) -> ExpressionEvaluator:
        return ExpressionEvaluator(context, self.filters)

    def _resolve_include_name(self, args: str, context: Context) -> Optional[str]:
        """
        Turns include arguments into a template name.

        Returns None when a {{ var }} reference resolves to nothing.
        """
        raw = args.strip()

        variable = _INCLUDE_VARIABLE.match(raw)
        if variable:
            value = self._evaluator(context).evaluate(parse_expression(variable.group(1)))
            return to_text(value) if value is not None else None

        quoted = _QUOTED.match(raw)
        if quoted:
            return quoted.group(2).strip()

        # Bare word naming a context variable
        if raw and "." not in raw and "/" not in raw:
            value = context.get(raw)
            if value is not None:
                return to_text(value)

        return raw

    def resolve_template_path(self, name: str) -> Path:
        """Maps a template name to a file under the template directory."""
        if not name.endswith(self.extensions):
            name = name + self.default_extension
        base = self.template_dir if self.template_dir is not None else Path(".")
        return base / name


__all__ = [
    "TemplateRenderer",
    "RenderState",
    "DEFAULT_MAX_INCLUDE_DEPTH",
    "DEFAULT_MAX_RENDER_DEPTH",
    "DEFAULT_EXTENSIONS",
    "DEFAULT_EXTENSION",
]
