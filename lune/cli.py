from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import DEFAULT_CFG_FILE, EngineConfig, load_config
from .errors import LuneUserError, TemplateError
from .jsonic import dumps as jdumps
from .report_schema import CacheReport, DependencyReport, FilterList, RenderReport
from .template.engine import Template, TemplateEngine
from .version import tool_version

_LOG = logging.getLogger("lune")


def _setup_logging_once(verbose: bool = False) -> None:
    if getattr(_setup_logging_once, "_inited", False):
        return
    _setup_logging_once._inited = True  # type: ignore[attr-defined]
    level = logging.DEBUG if (verbose or os.environ.get("LUNE_DEBUG")) else logging.WARNING
    _LOG.setLevel(level)
    if not _LOG.handlers:
        h = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        h.setFormatter(fmt)
        _LOG.addHandler(h)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lune",
        description="Lune template engine",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_engine_args(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "template",
            help="template file path, or a name under the template directory",
        )
        sp.add_argument(
            "--config",
            metavar="FILE",
            help=f"engine configuration (default: ./{DEFAULT_CFG_FILE} if present)",
        )
        sp.add_argument(
            "--template-dir",
            metavar="DIR",
            help="include root; overrides template_dir from the configuration",
        )
        sp.add_argument(
            "--verbose",
            action="store_true",
            help="debug logging to stderr",
        )

    def add_context_arg(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "--context",
            metavar="JSON|@FILE|-",
            help=(
                "render context as a JSON object: an inline string, @file to read "
                "from a file, or - to read from stdin"
            ),
        )

    sp_render = sub.add_parser("render", help="Rendered text only (not JSON)")
    add_engine_args(sp_render)
    add_context_arg(sp_render)

    sp_report = sub.add_parser("report", help="JSON report: output and cache statistics")
    add_engine_args(sp_report)
    add_context_arg(sp_report)

    sp_deps = sub.add_parser("deps", help="JSON: includes, variables and conditional content")
    add_engine_args(sp_deps)

    sub.add_parser("filters", help="JSON list of built-in filter names")

    return p


def _parse_context(context_arg: Optional[str]) -> Dict[str, Any]:
    """
    Parses the --context argument.

    Supports three forms:
    - Inline JSON: '{"name": "World"}'
    - From a file: @path/to/context.json
    - From stdin: -
    """
    if not context_arg:
        return {}

    if context_arg == "-":
        text = sys.stdin.read()
        source = "stdin"
    elif context_arg.startswith("@"):
        file_path = Path(context_arg[1:])
        if not file_path.exists():
            raise ValueError(f"Context file not found: {file_path}")
        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ValueError(f"Failed to read context file {file_path}: {e}")
        source = str(file_path)
    else:
        text = context_arg
        source = "--context"

    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {source}: {e}")
    if not isinstance(data, dict):
        raise ValueError(f"Context in {source} must be a JSON object")
    return data


def _raise_template_error(message: str) -> str:
    raise TemplateError(message)


def _load_engine_config(ns: argparse.Namespace) -> EngineConfig:
    if ns.config:
        cfg_path = Path(ns.config)
        if not cfg_path.exists():
            raise ValueError(f"Config file not found: {cfg_path}")
        return load_config(cfg_path)
    return load_config(Path.cwd() / DEFAULT_CFG_FILE)


def _engine(ns: argparse.Namespace) -> TemplateEngine:
    engine = TemplateEngine.from_config(_load_engine_config(ns), error_handler=_raise_template_error)
    if ns.template_dir:
        engine.set_template_dir(Path(ns.template_dir))
    return engine


def _load_template(engine: TemplateEngine, target: str) -> Template:
    path = Path(target)
    if not path.is_file() and engine.template_dir is not None:
        path = engine.renderer.resolve_template_path(target)
    template = engine.load(path)
    if not template.ok:
        raise TemplateError(template.error or f"Failed to load template file: {path}", target)
    return template


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging_once(bool(getattr(ns, "verbose", False)))

    try:
        if ns.cmd == "filters":
            data = FilterList(filters=TemplateEngine().filters.names())
            sys.stdout.write(jdumps(data.model_dump(mode="json")))
            return 0

        engine = _engine(ns)
        template = _load_template(engine, ns.template)

        if ns.cmd == "render":
            sys.stdout.write(template.render(_parse_context(ns.context)))
            return 0

        if ns.cmd == "report":
            output = template.render(_parse_context(ns.context))
            report = RenderReport(
                tool_version=tool_version(),
                template=ns.template,
                output=output,
                cache=CacheReport(**engine.cache_stats().to_dict()),
            )
            sys.stdout.write(jdumps(report.model_dump(mode="json")))
            return 0

        if ns.cmd == "deps":
            deps = DependencyReport(template=ns.template, **template.get_dependencies())
            sys.stdout.write(jdumps(deps.model_dump(mode="json")))
            return 0

    except LuneUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    except ValueError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
