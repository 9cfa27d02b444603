from datetime import datetime
from pathlib import Path

import pytest

from lune.cache.template_cache import TemplateCache
from lune.template.engine import TemplateEngine, reset_default_engine

from tests.infrastructure.file_utils import write_templates


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    # Cache toggle from the developer's shell must not leak into tests
    monkeypatch.delenv("LUNE_TEMPLATE_CACHE", raising=False)
    yield
    reset_default_engine()


@pytest.fixture
def tpl_dir(tmp_path: Path) -> Path:
    """Template directory with a layout, a partial and a page."""
    root = tmp_path / "templates"
    write_templates(root, {
        "header.html": "<h1>{{ title }}</h1>",
        "footer.tpl": "<footer>{{ current_year }}</footer>",
        "page.html": "{% include 'header' %}<p>{{ body }}</p>{% include 'footer.tpl' %}",
    })
    return root


@pytest.fixture
def engine(tpl_dir: Path) -> TemplateEngine:
    return TemplateEngine(tpl_dir, cache=TemplateCache(10), clock=lambda: datetime(2030, 1, 1))
