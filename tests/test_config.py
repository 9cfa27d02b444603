from pathlib import Path

import pytest

from lune.config import DEFAULT_CFG_FILE, EngineConfig, load_config
from lune.errors import ConfigLoadError

from tests.infrastructure.file_utils import write


def test_load_config_missing_gives_defaults(tmp_path: Path):
    cfg = load_config(tmp_path / DEFAULT_CFG_FILE)
    assert cfg == EngineConfig()


def test_load_config_full(tmp_path: Path):
    write(tmp_path / "lune.yaml", """
schema_version: 1
template_dir: templates
cache:
  enabled: false
  max_size: 7
  auto_reload: true
max_include_depth: 4
max_render_depth: 20
extensions: [".html", ".jinja"]
default_extension: ".jinja"
""")
    cfg = load_config(tmp_path / "lune.yaml")

    assert cfg.template_dir == (tmp_path / "templates").resolve()
    assert cfg.cache_enabled is False
    assert cfg.cache_max_size == 7
    assert cfg.cache_auto_reload is True
    assert cfg.max_include_depth == 4
    assert cfg.max_render_depth == 20
    assert cfg.extensions == (".html", ".jinja")
    assert cfg.default_extension == ".jinja"


def test_partial_cache_section_keeps_other_defaults(tmp_path: Path):
    write(tmp_path / "lune.yaml", "cache:\n  max_size: 3\n")
    cfg = load_config(tmp_path / "lune.yaml")

    assert cfg.cache_max_size == 3
    assert cfg.cache_enabled is True
    assert cfg.cache_auto_reload is False


def test_absolute_template_dir_is_kept(tmp_path: Path):
    target = tmp_path / "abs"
    write(tmp_path / "cfg" / "lune.yaml", f"template_dir: '{target.as_posix()}'\n")

    assert load_config(tmp_path / "cfg" / "lune.yaml").template_dir == Path(target.as_posix())


def test_empty_file_gives_defaults(tmp_path: Path):
    write(tmp_path / "lune.yaml", "")
    assert load_config(tmp_path / "lune.yaml") == EngineConfig()


def test_unsupported_schema(tmp_path: Path):
    write(tmp_path / "lune.yaml", "schema_version: 99\n")
    with pytest.raises(ConfigLoadError, match="Unsupported config schema"):
        load_config(tmp_path / "lune.yaml")


@pytest.mark.parametrize("text,where", [
    ("cache:\n  max_size: -1\n", "cache.max_size"),
    ("cache:\n  max_size: many\n", "cache.max_size"),
    ("cache:\n  enabled: 'yes please'\n", "cache.enabled"),
    ("cache: 5\n", "cache"),
    ("max_include_depth: 0\n", "max_include_depth"),
    ("extensions: []\n", "extensions"),
    ("extensions: [html]\n", "extensions[0]"),
    ("default_extension: 5\n", "default_extension"),
    ("template_dir: [a, b]\n", "template_dir"),
])
def test_invalid_values(tmp_path: Path, text: str, where: str):
    write(tmp_path / "lune.yaml", text)
    with pytest.raises(ConfigLoadError) as exc:
        load_config(tmp_path / "lune.yaml")
    assert str(exc.value).startswith(where)


def test_broken_yaml(tmp_path: Path):
    write(tmp_path / "lune.yaml", "cache: [unclosed\n")
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path / "lune.yaml")


def test_config_error_is_value_error(tmp_path: Path):
    write(tmp_path / "lune.yaml", "- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(tmp_path / "lune.yaml")
