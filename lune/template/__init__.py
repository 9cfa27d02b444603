"""
Template engine of lune.

{{ variable|filter }} output, {% if %}/{% for %}/{% include %} blocks,
{# comments #} and <pre> passthrough regions.
"""

from __future__ import annotations

from .engine import (
    Template,
    TemplateEngine,
    default_error_handler,
    get_default_engine,
    render_file,
    render_string,
    reset_default_engine,
)
from .filters import FilterRegistry
from .parser import parse_template
from .renderer import RenderState, TemplateRenderer

__all__ = [
    "Template",
    "TemplateEngine",
    "default_error_handler",
    "get_default_engine",
    "reset_default_engine",
    "render_string",
    "render_file",
    "FilterRegistry",
    "parse_template",
    "RenderState",
    "TemplateRenderer",
]
