"""
Shared test infrastructure for lune.

Modules:
- file_utils: Utilities for creating template files and directories
- cli_utils: Running the lune CLI in a subprocess
"""

from .file_utils import write, write_templates
from .cli_utils import run_cli, jload

__all__ = ["write", "write_templates", "run_cli", "jload"]
