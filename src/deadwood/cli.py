from __future__ import annotations

import argparse
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

from deadwood import __version__
from deadwood.errors import ConfigError, PluginError


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="deadwood",
        description="Find unused classes, modules, methods, accessors and constants in Ruby code.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    commands = parser.add_subparsers(dest="command", required=True)

    deadcode = commands.add_parser("deadcode", help="Report dead code candidates")
    deadcode.add_argument("--path", default=".", help="Target project directory")
    deadcode.add_argument(
        "--include",
        action="append",
        default=[],
        help="Glob to include (repeatable, relative to --path)",
    )
    deadcode.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Glob to exclude (repeatable, relative to --path)",
    )
    deadcode.add_argument(
        "--plugin",
        action="append",
        default=None,
        help="Plugin to enable (repeatable; default: detected from Gemfile.lock)",
    )
    deadcode.add_argument("--jobs", type=int, default=None, help="Parallel indexing workers")
    deadcode.add_argument("--config", default=None, help="Config file (default: deadwood.toml)")
    deadcode.add_argument(
        "--report-dir",
        default=None,
        help="Where to write deadcode.json and deadcode.md (default: --path)",
    )
    deadcode.add_argument("--no-report", action="store_true", help="Do not write report files")

    metrics = commands.add_parser("metrics", help="Show Sorbet metrics")
    metrics.add_argument("--path", default=".", help="Target project directory")
    metrics.add_argument("--file", default=None, help="Metrics JSON file (default: run srb tc)")
    metrics.add_argument("--prefix", default=None, help="Metric name prefix to strip")

    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    root = Path(args.path).resolve()
    if not root.exists() or not root.is_dir():
        raise SystemExit(f"Path does not exist or is not a directory: {root}")

    if args.command == "metrics":
        return run_metrics(root, args.file, args.prefix)
    return run_deadcode(root, args)


def run_deadcode(root: Path, args: argparse.Namespace) -> int:
    from deadwood.analyzer import analyze, write_report
    from deadwood.config import load_config
    from deadwood.context import Context
    from deadwood.plugins import custom_plugin, load_plugins, plugins_for_gems

    try:
        config = load_config(root, Path(args.config) if args.config else None)
        names = args.plugin or config.plugins
        if names is None:
            names = plugins_for_gems(Context(root).gemfile_lock_gems())
        plugins = load_plugins(names)
        if config.ignore_method_names:
            plugins.append(custom_plugin(config.ignore_method_names)())
    except (ConfigError, PluginError) as exc:
        raise SystemExit(str(exc))

    jobs = args.jobs if args.jobs is not None else config.jobs
    if jobs is not None and jobs < 1:
        raise SystemExit("--jobs must be a positive integer")

    report = analyze(
        root=root,
        include=config.include + args.include,
        exclude=config.exclude + args.exclude,
        plugins=plugins,
        jobs=jobs,
    )
    if not args.no_report:
        report_dir = Path(args.report_dir).resolve() if args.report_dir else root
        report_dir.mkdir(parents=True, exist_ok=True)
        write_report(report, report_dir)

    plugin_names = ", ".join(report.summary["plugins"])
    print(f"Analyzed {report.summary['indexed_files']} files with plugins: {plugin_names}")
    if report.dead:
        print(f"Candidates ({len(report.dead)}):")
        for definition in report.dead:
            print(f"  {definition.kind.value} {definition.full_name} {definition.location}")
    else:
        print("No dead code found")
    if report.errors:
        print(f"Skipped files ({len(report.errors)}):")
        for error in report.errors:
            print(f"  {error.path}: {error.message}")
    return 1 if report.dead else 0


def run_metrics(root: Path, file: Optional[str], prefix: Optional[str]) -> int:
    from deadwood.context import Context
    from deadwood.metrics import DEFAULT_PREFIX, Metrics

    prefix = prefix if prefix is not None else DEFAULT_PREFIX
    if file is not None:
        path = Path(file)
        if not path.is_absolute():
            path = root / path
        if not path.is_file():
            raise SystemExit(f"Metrics file not found: {path}")
        metrics = Metrics.parse_file(path, prefix)
    else:
        metrics = Context(root).srb_metrics(prefix=prefix)
        if metrics is None:
            raise SystemExit("Could not collect metrics from `srb tc`")
    metrics.show()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
