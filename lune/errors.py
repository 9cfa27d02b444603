"""
Base exceptions for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from LuneUserError.

Programming errors and bugs should NOT inherit from LuneUserError:
they will propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Optional


class LuneUserError(Exception):
    """
    Base class for all user-facing errors in lune.

    These errors indicate problems that the user can fix:
    missing template files, broken configuration, invalid arguments, etc.
    """
    pass


class TemplateError(LuneUserError):
    """Top-level template failure (load, compile or render)."""

    def __init__(self, message: str, template_name: str = "", cause: Optional[Exception] = None):
        if template_name:
            super().__init__(f"{message} ({template_name})")
        else:
            super().__init__(message)
        self.message = message
        self.template_name = template_name
        self.cause = cause


class TemplateLoadError(TemplateError):
    """Template source could not be read from disk."""
    pass


class ConfigLoadError(LuneUserError, ValueError):
    """Engine configuration could not be loaded; message carries the field path."""
    pass


__all__ = ["LuneUserError", "TemplateError", "TemplateLoadError", "ConfigLoadError"]
