from __future__ import annotations

import logging
import os
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, Optional, Union

if TYPE_CHECKING:
    from ..template.nodes import TemplateAST

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 50

PathLike = Union[str, os.PathLike]


def _env_enabled(default: bool) -> bool:
    env = os.environ.get("LUNE_TEMPLATE_CACHE", None)
    if env is None:
        return default
    return env.strip().lower() not in {"0", "false", "no", "off", ""}


def _mtime_ns(path: Path) -> int:
    try:
        return int(path.stat().st_mtime_ns)
    except OSError:
        return 0


@dataclass
class CacheEntry:
    key: str
    ast: TemplateAST
    last_used: float
    mtime_ns: int = 0


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    size: int
    max_size: int
    enabled: bool

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "enabled": self.enabled,
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "max_size": self.max_size,
            "hit_ratio": self.hit_ratio,
        }


class TemplateCache:
    """
    In-memory LRU cache of parsed (not rendered) templates:
      • key: resolved absolute file path
      • value: template AST
    Lookup, insertion and eviction run under one lock, so the cache can be
    shared between threads rendering concurrently.
    Read errors are NOT swallowed: a missing file is the caller's problem.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        *,
        enabled: Optional[bool] = True,
        auto_reload: bool = False,
        parser: Optional[Callable[[str], TemplateAST]] = None,
    ):
        if max_size < 0:
            raise ValueError(f"Cache size must be >= 0, got {max_size}")
        self.enabled = _env_enabled(True if enabled is None else bool(enabled))
        self.max_size = int(max_size)
        self.auto_reload = bool(auto_reload)
        self._parser = parser
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    # --------------------------- LOOKUP --------------------------- #

    @staticmethod
    def make_key(path: PathLike) -> str:
        return str(Path(path).resolve())

    def get_or_parse(self, path: PathLike) -> TemplateAST:
        """
        Returns the parsed template for a file, reading and parsing it on a miss.

        Raises:
            OSError: If the file cannot be read
        """
        file_path = Path(path)

        if not self.enabled:
            return self._load(file_path)

        key = self.make_key(file_path)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry, file_path):
                self._entries.move_to_end(key)
                entry.last_used = time.monotonic()
                self.hits += 1
                logger.debug(f"Template cache hit: {key}")
                return entry.ast

            self.misses += 1
            logger.debug(f"Template cache miss: {key}")

            ast = self._load(file_path)
            self._entries[key] = CacheEntry(
                key=key,
                ast=ast,
                last_used=time.monotonic(),
                mtime_ns=_mtime_ns(file_path) if self.auto_reload else 0,
            )
            self._entries.move_to_end(key)
            self._evict()
            return ast

    def _load(self, file_path: Path) -> TemplateAST:
        text = file_path.read_text(encoding="utf-8")
        if self._parser is None:
            from ..template.parser import parse_template
            self._parser = parse_template
        return self._parser(text)

    def _is_fresh(self, entry: CacheEntry, file_path: Path) -> bool:
        if not self.auto_reload:
            return True
        return entry.mtime_ns == _mtime_ns(file_path)

    def _evict(self) -> None:
        while len(self._entries) > self.max_size:
            key, _ = self._entries.popitem(last=False)
            logger.debug(f"Template cache full, evicted: {key}")

    # --------------------------- MAINTENANCE --------------------------- #

    def invalidate(self, path: PathLike) -> bool:
        """Drops one entry; returns True if it was cached."""
        with self._lock:
            return self._entries.pop(self.make_key(path), None) is not None

    def clear(self) -> None:
        """Empties the cache and resets the counters."""
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
        logger.debug("Template cache cleared")

    def set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self.enabled = bool(enabled)
            if not self.enabled:
                self.clear()

    def set_max_size(self, max_size: int) -> None:
        """Changes the bound; shrinking evicts least recently used entries at once."""
        if max_size < 0:
            raise ValueError(f"Cache size must be >= 0, got {max_size}")
        with self._lock:
            self.max_size = int(max_size)
            self._evict()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self.hits,
                misses=self.misses,
                size=len(self._entries),
                max_size=self.max_size,
                enabled=self.enabled,
            )

    def keys(self) -> list[str]:
        """Cached keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        with self._lock:
            return self.make_key(path) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["TemplateCache", "CacheStats", "CacheEntry", "DEFAULT_MAX_SIZE"]
