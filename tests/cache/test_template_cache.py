"""
Tests for the LRU template cache.
"""

import os
import threading

import pytest

from lune.cache.template_cache import TemplateCache
from lune.template.nodes import TextNode

from tests.infrastructure.file_utils import write


class CountingParser:
    def __init__(self):
        self.calls = 0

    def __call__(self, text):
        self.calls += 1
        return [TextNode(text)]


class TestTemplateCache:

    def setup_method(self):
        self.parser = CountingParser()

    def test_hit_reuses_parsed_template(self, tmp_path):
        p = write(tmp_path / "a.html", "A")
        cache = TemplateCache(5, parser=self.parser)

        first = cache.get_or_parse(p)
        second = cache.get_or_parse(p)

        assert first is second
        assert self.parser.calls == 1
        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)
        assert stats.hit_ratio == 0.5

    def test_same_file_via_different_spellings(self, tmp_path):
        p = write(tmp_path / "sub" / "a.html", "A")
        cache = TemplateCache(5, parser=self.parser)

        cache.get_or_parse(p)
        cache.get_or_parse(tmp_path / "sub" / ".." / "sub" / "a.html")

        assert self.parser.calls == 1
        assert len(cache) == 1

    def test_lru_eviction(self, tmp_path):
        a = write(tmp_path / "a.html", "A")
        b = write(tmp_path / "b.html", "B")
        c = write(tmp_path / "c.html", "C")
        cache = TemplateCache(2, parser=self.parser)

        cache.get_or_parse(a)
        cache.get_or_parse(b)
        cache.get_or_parse(a)      # a becomes most recent
        cache.get_or_parse(c)      # evicts b

        assert a in cache
        assert c in cache
        assert b not in cache
        assert cache.keys() == [TemplateCache.make_key(a), TemplateCache.make_key(c)]

    def test_size_never_exceeds_bound(self, tmp_path):
        cache = TemplateCache(3, parser=self.parser)
        for i in range(10):
            cache.get_or_parse(write(tmp_path / f"t{i}.html", str(i)))
            assert len(cache) <= 3

    def test_zero_size_cache_stores_nothing(self, tmp_path):
        p = write(tmp_path / "a.html", "A")
        cache = TemplateCache(0, parser=self.parser)

        assert cache.get_or_parse(p) == [TextNode("A")]
        assert cache.get_or_parse(p) == [TextNode("A")]
        assert len(cache) == 0
        assert self.parser.calls == 2

    def test_disabled_cache_always_reparses(self, tmp_path):
        p = write(tmp_path / "a.html", "A")
        cache = TemplateCache(5, enabled=False, parser=self.parser)

        cache.get_or_parse(p)
        cache.get_or_parse(p)

        assert self.parser.calls == 2
        stats = cache.stats()
        assert stats.enabled is False
        assert (stats.hits, stats.misses, stats.size) == (0, 0, 0)

    def test_env_var_disables_cache(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LUNE_TEMPLATE_CACHE", "0")
        cache = TemplateCache(5, parser=self.parser)

        assert cache.enabled is False

    def test_set_enabled_false_clears(self, tmp_path):
        p = write(tmp_path / "a.html", "A")
        cache = TemplateCache(5, parser=self.parser)
        cache.get_or_parse(p)

        cache.set_enabled(False)

        assert len(cache) == 0

    def test_shrinking_evicts_oldest(self, tmp_path):
        cache = TemplateCache(5, parser=self.parser)
        paths = [write(tmp_path / f"t{i}.html", str(i)) for i in range(4)]
        for p in paths:
            cache.get_or_parse(p)

        cache.set_max_size(2)

        assert len(cache) == 2
        assert paths[2] in cache and paths[3] in cache

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            TemplateCache(-1)
        with pytest.raises(ValueError):
            TemplateCache(1).set_max_size(-5)

    def test_invalidate_and_clear(self, tmp_path):
        p = write(tmp_path / "a.html", "A")
        cache = TemplateCache(5, parser=self.parser)
        cache.get_or_parse(p)

        assert cache.invalidate(p) is True
        assert cache.invalidate(p) is False

        cache.get_or_parse(p)
        cache.clear()
        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.size) == (0, 0, 0)

    def test_missing_file_raises(self, tmp_path):
        cache = TemplateCache(5, parser=self.parser)

        with pytest.raises(OSError):
            cache.get_or_parse(tmp_path / "missing.html")
        assert len(cache) == 0

    def test_stale_entries_without_auto_reload(self, tmp_path):
        p = write(tmp_path / "a.html", "old")
        cache = TemplateCache(5, parser=self.parser)
        cache.get_or_parse(p)

        write(p, "new")

        assert cache.get_or_parse(p) == [TextNode("old")]

    def test_auto_reload_detects_changes(self, tmp_path):
        p = write(tmp_path / "a.html", "old")
        cache = TemplateCache(5, auto_reload=True, parser=self.parser)
        cache.get_or_parse(p)

        write(p, "new")
        st = p.stat()
        os.utime(p, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))

        assert cache.get_or_parse(p) == [TextNode("new")]
        assert self.parser.calls == 2

    def test_default_parser_builds_ast(self, tmp_path):
        p = write(tmp_path / "a.html", "Hi {{ x }}")
        cache = TemplateCache(5)

        ast = cache.get_or_parse(p)

        assert len(ast) == 2

    def test_concurrent_access(self, tmp_path):
        paths = [write(tmp_path / f"t{i}.html", str(i)) for i in range(8)]
        cache = TemplateCache(4, parser=self.parser)
        errors = []

        def worker():
            try:
                for _ in range(50):
                    for p in paths:
                        cache.get_or_parse(p)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) <= 4
        stats = cache.stats()
        assert stats.hits + stats.misses == 4 * 50 * 8
