"""
Template engine facade.

Ties together the lexer, block-tree builder, filter registry, template cache
and renderer. Each TemplateEngine is an independent configuration: its own
template root, filters, cache and error handler.
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .filters import FilterFunc, FilterRegistry
from .markers import html_comment
from .nodes import (
    TemplateAST,
    collect_include_nodes,
    collect_variable_nodes,
    has_conditional_content,
)
from .parser import parse_template
from .renderer import (
    DEFAULT_EXTENSION,
    DEFAULT_EXTENSIONS,
    DEFAULT_MAX_INCLUDE_DEPTH,
    DEFAULT_MAX_RENDER_DEPTH,
    RenderState,
    TemplateRenderer,
)
from ..cache.template_cache import CacheStats, TemplateCache
from ..errors import TemplateError, TemplateLoadError

if TYPE_CHECKING:
    from ..config import EngineConfig

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[str], str]
PathLike = Union[str, os.PathLike]


def default_error_handler(message: str) -> str:
    """Logs the failure and renders it as an HTML comment."""
    logger.error(f"Template error: {message}")
    return html_comment(f"Template error: {message}")


class Template:
    """
    Compiled template bound to the engine that produced it.

    A template that failed to load or parse still renders: its output is
    the engine's error handler result.
    """

    def __init__(
        self,
        engine: TemplateEngine,
        ast: Optional[TemplateAST],
        *,
        name: str = "",
        path: Optional[Path] = None,
        error: Optional[str] = None,
    ):
        self.engine = engine
        self.ast = ast
        self.name = name
        self.path = path
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None and self.ast is not None

    def render(self, context: Optional[Mapping[str, Any]] = None) -> str:
        if not self.ok:
            return self.engine.handle_error(self.error or "Template is not compiled")
        return self.engine._render_ast(self.ast, context, root_path=self.path)

    def get_dependencies(self) -> Dict[str, Any]:
        """
        Static analysis of the template.

        Returns:
            Dictionary with include arguments, variable expressions and
            whether the template has conditional content
        """
        if not self.ok:
            return {"includes": [], "variables": [], "has_conditional_content": False}

        includes: List[str] = []
        for node in collect_include_nodes(self.ast):
            if node.args not in includes:
                includes.append(node.args)

        variables: List[str] = []
        for node in collect_variable_nodes(self.ast):
            if node.expression and node.expression not in variables:
                variables.append(node.expression)

        return {
            "includes": includes,
            "variables": variables,
            "has_conditional_content": has_conditional_content(self.ast),
        }

    def __repr__(self) -> str:
        state = "ok" if self.ok else f"error={self.error!r}"
        return f"Template({self.name or '<string>'}, {state})"


class TemplateEngine:
    """
    Main entry point of the template engine.

    Top-level failures (unreadable root file, None source) go through the
    error handler and replace the whole output. Failures inside the tree
    degrade to inline comments and never reach the handler.
    """

    def __init__(
        self,
        template_dir: Optional[PathLike] = None,
        *,
        filters: Optional[FilterRegistry] = None,
        cache: Optional[TemplateCache] = None,
        error_handler: Optional[ErrorHandler] = None,
        max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
        max_render_depth: int = DEFAULT_MAX_RENDER_DEPTH,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        default_extension: str = DEFAULT_EXTENSION,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.filters = filters if filters is not None else FilterRegistry()
        self.cache = cache if cache is not None else TemplateCache()
        self.error_handler: ErrorHandler = error_handler or default_error_handler
        self.clock = clock
        self.template_dir: Optional[Path] = None

        self.renderer = TemplateRenderer(
            self.filters,
            self.cache,
            max_include_depth=max_include_depth,
            max_render_depth=max_render_depth,
            extensions=extensions,
            default_extension=default_extension,
        )

        if template_dir is not None:
            self.set_template_dir(template_dir)

    @classmethod
    def from_config(cls, config: EngineConfig, **kwargs: Any) -> TemplateEngine:
        """Builds an engine from a loaded lune.yaml configuration."""
        cache = TemplateCache(
            config.cache_max_size,
            enabled=config.cache_enabled,
            auto_reload=config.cache_auto_reload,
        )
        return cls(
            config.template_dir,
            cache=cache,
            max_include_depth=config.max_include_depth,
            max_render_depth=config.max_render_depth,
            extensions=config.extensions,
            default_extension=config.default_extension,
            **kwargs,
        )

    # --------------------------- configuration --------------------------- #

    def set_template_dir(self, template_dir: Optional[PathLike]) -> None:
        if template_dir is None:
            self.template_dir = None
        else:
            path = Path(template_dir)
            if not path.is_dir():
                logger.warning(f"Template directory does not exist: {path}")
            self.template_dir = path
        self.renderer.template_dir = self.template_dir

    def add_filter(self, name: str, func: FilterFunc) -> None:
        self.filters.register(name, func)

    def set_error_handler(self, handler: ErrorHandler) -> None:
        if not callable(handler):
            raise ValueError("Error handler must be callable")
        self.error_handler = handler

    def reset_error_handler(self) -> None:
        self.error_handler = default_error_handler

    def handle_error(self, message: str) -> str:
        return self.error_handler(message)

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()

    def set_cache_enabled(self, enabled: bool) -> None:
        self.cache.set_enabled(enabled)

    def set_max_cache_size(self, max_size: int) -> None:
        self.cache.set_max_size(max_size)

    # ----------------------------- compiling ----------------------------- #

    def compile(self, source: Optional[str], name: str = "") -> Template:
        """
        Parses template source into a reusable Template.

        A None source gives a failed template instead of raising.
        """
        if source is None:
            return Template(self, None, name=name, error="Cannot compile a None template")
        try:
            ast = parse_template(source)
        except Exception as e:
            return Template(self, None, name=name, error=f"Error parsing template: {e}")
        return Template(self, ast, name=name)

    def load(self, path: PathLike) -> Template:
        """
        Loads a template file through the cache.

        Load failures are returned as a failed Template.
        """
        file_path = Path(path)
        try:
            ast = self._load_ast(file_path)
        except TemplateError as e:
            return Template(self, None, name=str(path), path=file_path, error=e.message)
        return Template(self, ast, name=str(path), path=file_path)

    def _load_ast(self, file_path: Path) -> TemplateAST:
        try:
            return self.cache.get_or_parse(file_path)
        except OSError as e:
            reason = e.strerror or str(e)
            raise TemplateLoadError(f"Failed to load template file: {file_path} ({reason})", str(file_path), e)
        except Exception as e:
            raise TemplateError(f"Error parsing template: {e}", str(file_path), e)

    # ----------------------------- rendering ----------------------------- #

    def render_string(self, source: Optional[str], context: Optional[Mapping[str, Any]] = None) -> str:
        return self.compile(source).render(context)

    def render_file(self, path: Optional[PathLike], context: Optional[Mapping[str, Any]] = None) -> str:
        """
        Renders a template file.

        When the engine has no template directory, includes resolve against
        the root file's directory.
        """
        if path is None:
            return self.handle_error("Cannot compile a None template")
        return self.load(path).render(context)

    def render_template(self, name: str, context: Optional[Mapping[str, Any]] = None) -> str:
        """Renders a template by name relative to the template directory."""
        if self.template_dir is None:
            return self.handle_error(f"Failed to load template file: {name} (template directory not set)")
        return self.render_file(self.renderer.resolve_template_path(name), context)

    def _render_ast(
        self,
        ast: TemplateAST,
        context: Optional[Mapping[str, Any]],
        *,
        root_path: Optional[Path] = None,
    ) -> str:
        state = RenderState()
        renderer = self.renderer
        if root_path is not None:
            state.root = TemplateCache.make_key(root_path)
            if self.template_dir is None:
                renderer = self._renderer_for_dir(root_path.parent)

        try:
            output = renderer.render(ast, self._build_context(context, renderer.template_dir), state)
        except Exception as e:
            logger.exception("Template rendering failed")
            return self.handle_error(f"Error rendering template: {e}")

        if state.diagnostics:
            logger.debug(f"Rendered with {len(state.diagnostics)} inline diagnostic(s)")
        return output

    def _renderer_for_dir(self, template_dir: Path) -> TemplateRenderer:
        return TemplateRenderer(
            self.filters,
            self.cache,
            template_dir,
            max_include_depth=self.renderer.max_include_depth,
            max_render_depth=self.renderer.max_render_depth,
            extensions=self.renderer.extensions,
            default_extension=self.renderer.default_extension,
        )

    def _build_context(self, context: Optional[Mapping[str, Any]], template_dir: Optional[Path]) -> Dict[str, Any]:
        # Ambient keys are written last and override caller keys
        result: Dict[str, Any] = dict(context or {})
        now = self.clock()
        result["current_year"] = now.strftime("%Y")
        result["current_date"] = now.strftime("%Y-%m-%d")
        result["_template_dir"] = str(template_dir) if template_dir is not None else ""
        return result


# ------------------------- default engine helpers ------------------------- #

_default_engine: Optional[TemplateEngine] = None
_default_lock = threading.Lock()


def get_default_engine() -> TemplateEngine:
    """Lazily created shared engine used by the module-level helpers."""
    global _default_engine
    with _default_lock:
        if _default_engine is None:
            _default_engine = TemplateEngine()
        return _default_engine


def reset_default_engine() -> None:
    global _default_engine
    with _default_lock:
        _default_engine = None


def render_string(source: Optional[str], context: Optional[Mapping[str, Any]] = None) -> str:
    return get_default_engine().render_string(source, context)


def render_file(path: Optional[PathLike], context: Optional[Mapping[str, Any]] = None) -> str:
    return get_default_engine().render_file(path, context)


__all__ = [
    "Template",
    "TemplateEngine",
    "ErrorHandler",
    "default_error_handler",
    "get_default_engine",
    "reset_default_engine",
    "render_string",
    "render_file",
]
