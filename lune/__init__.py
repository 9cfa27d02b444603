from __future__ import annotations

from .template import TemplateEngine, render_file, render_string

__all__ = ["TemplateEngine", "render_file", "render_string"]
