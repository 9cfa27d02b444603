from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .cache.template_cache import DEFAULT_MAX_SIZE
from .errors import ConfigLoadError
from .template.renderer import (
    DEFAULT_EXTENSION,
    DEFAULT_EXTENSIONS,
    DEFAULT_MAX_INCLUDE_DEPTH,
    DEFAULT_MAX_RENDER_DEPTH,
)

SCHEMA_VERSION = 1
DEFAULT_CFG_FILE = "lune.yaml"

# --------------------------------------------------------------------------- #
# DEFAULTS
# --------------------------------------------------------------------------- #
_DEFAULT_CFG: Dict[str, Any] = {
    "schema_version": SCHEMA_VERSION,
    "template_dir": None,
    "cache": {
        "enabled": True,
        "max_size": DEFAULT_MAX_SIZE,
        "auto_reload": False,
    },
    "max_include_depth": DEFAULT_MAX_INCLUDE_DEPTH,
    "max_render_depth": DEFAULT_MAX_RENDER_DEPTH,
    "extensions": list(DEFAULT_EXTENSIONS),
    "default_extension": DEFAULT_EXTENSION,
}

_yaml = YAML(typ="safe")


@dataclass(frozen=True)
class EngineConfig:
    template_dir: Optional[Path] = None
    cache_enabled: bool = True
    cache_max_size: int = DEFAULT_MAX_SIZE
    cache_auto_reload: bool = False
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    max_render_depth: int = DEFAULT_MAX_RENDER_DEPTH
    extensions: Tuple[str, ...] = field(default=DEFAULT_EXTENSIONS)
    default_extension: str = DEFAULT_EXTENSION


# --------------------------------------------------------------------------- #
# HELPERS
# --------------------------------------------------------------------------- #
def _merge_defaults(raw: Dict[str, Any]) -> Dict[str, Any]:
    """User values on top of the defaults; the cache section is merged key by key."""
    cfg = dict(_DEFAULT_CFG)
    cfg.update(raw)
    cache = dict(_DEFAULT_CFG["cache"])
    raw_cache = raw.get("cache")
    if raw_cache is not None:
        if not isinstance(raw_cache, dict):
            raise ConfigLoadError("cache: expected a mapping")
        cache.update(raw_cache)
    cfg["cache"] = cache
    return cfg


def _expect_int(value: Any, where: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigLoadError(f"{where}: expected an integer, got {value!r}")
    if value < minimum:
        raise ConfigLoadError(f"{where}: must be >= {minimum}, got {value}")
    return value


def _expect_bool(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigLoadError(f"{where}: expected true/false, got {value!r}")
    return value


def _expect_extension(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value.startswith("."):
        raise ConfigLoadError(f"{where}: expected an extension like '.html', got {value!r}")
    return value


def _build(cfg: Dict[str, Any], base_dir: Path) -> EngineConfig:
    template_dir = cfg.get("template_dir")
    if template_dir is not None:
        if not isinstance(template_dir, str):
            raise ConfigLoadError(f"template_dir: expected a path string, got {template_dir!r}")
        template_dir = Path(template_dir)
        if not template_dir.is_absolute():
            template_dir = (base_dir / template_dir).resolve()

    extensions = cfg.get("extensions")
    if not isinstance(extensions, list) or not extensions:
        raise ConfigLoadError(f"extensions: expected a non-empty list, got {extensions!r}")

    cache = cfg["cache"]
    return EngineConfig(
        template_dir=template_dir,
        cache_enabled=_expect_bool(cache.get("enabled"), "cache.enabled"),
        cache_max_size=_expect_int(cache.get("max_size"), "cache.max_size", 0),
        cache_auto_reload=_expect_bool(cache.get("auto_reload"), "cache.auto_reload"),
        max_include_depth=_expect_int(cfg.get("max_include_depth"), "max_include_depth", 1),
        max_render_depth=_expect_int(cfg.get("max_render_depth"), "max_render_depth", 1),
        extensions=tuple(_expect_extension(ext, f"extensions[{i}]") for i, ext in enumerate(extensions)),
        default_extension=_expect_extension(cfg.get("default_extension"), "default_extension"),
    )


# --------------------------------------------------------------------------- #
# PUBLIC API
# --------------------------------------------------------------------------- #
def load_config(path: Path) -> EngineConfig:
    """
    Load lune.yaml.

    • Missing file → defaults.
    • Missing schema_version → treated as the current version.
    • Relative template_dir is resolved against the config file's directory.
    """
    path = Path(path)
    if not path.exists():
        return _build(_merge_defaults({}), path.parent)

    try:
        with path.open(encoding="utf-8") as f:
            raw = _yaml.load(f) or {}
    except YAMLError as e:
        raise ConfigLoadError(f"Failed to parse {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigLoadError(f"{path}: top-level mapping expected")

    if raw.get("schema_version", SCHEMA_VERSION) != SCHEMA_VERSION:
        raise ConfigLoadError(
            f"Unsupported config schema {raw.get('schema_version')} "
            f"(lune expects {SCHEMA_VERSION})"
        )

    return _build(_merge_defaults(raw), path.parent)


__all__ = ["EngineConfig", "load_config", "SCHEMA_VERSION", "DEFAULT_CFG_FILE"]
