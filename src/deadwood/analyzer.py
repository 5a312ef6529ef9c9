from __future__ import annotations

import json
import logging
import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from deadwood.context import Context
from deadwood.deadcode import find_dead_code
from deadwood.errors import ParseError
from deadwood.index import Index
from deadwood.indexer import Indexer
from deadwood.models import Definition, FileInfo, IndexingError, Report
from deadwood.parser import parse_ruby
from deadwood.plugins import Plugin

log = logging.getLogger(__name__)

REPORT_JSON = "deadcode.json"
REPORT_MARKDOWN = "deadcode.md"


def analyze(
    root: Path,
    include: list[str],
    exclude: list[str],
    plugins: Sequence[Plugin] = (),
    jobs: Optional[int] = None,
) -> Report:
    context = Context(root)
    files = context.collect_files(include, exclude)
    index, errors = index_files(files, plugins, jobs)
    dead = find_dead_code(index)

    summary = {
        "total_files": len(files),
        "indexed_files": len(files) - len(errors),
        "failed_files": len(errors),
        "definitions": len(index),
        "dead": len(dead),
        "by_kind": _summarize_by_kind(dead),
        "plugins": [plugin.name for plugin in plugins],
    }
    return Report(
        root=str(context.path),
        generated_at=datetime.now(timezone.utc).isoformat(),
        dead=dead,
        errors=errors,
        summary=summary,
    )


def index_files(
    files: Sequence[FileInfo],
    plugins: Sequence[Plugin] = (),
    jobs: Optional[int] = None,
) -> tuple[Index, list[IndexingError]]:
    index = Index()
    errors: list[IndexingError] = []
    workers = jobs or os.cpu_count() or 1

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(index_file, info, plugins): info for info in files}
        for future in as_completed(futures):
            info = futures[future]
            try:
                file_index = future.result()
            except (ParseError, OSError, UnicodeDecodeError) as exc:
                message = exc.message if isinstance(exc, ParseError) else str(exc)
                log.warning("Skipping %s: %s", info.rel_path, message)
                errors.append(IndexingError(path=info.rel_path, message=message))
                continue
            index.merge(file_index)

    errors.sort(key=lambda e: e.path)
    return index, errors


def index_file(info: FileInfo, plugins: Sequence[Plugin] = ()) -> Index:
    source = info.path.read_bytes()
    tree = parse_ruby(source, info.rel_path)
    file_index = Index()
    Indexer(info.rel_path, source, file_index, plugins).run(tree)
    log.debug("indexed %s (%d definitions)", info.rel_path, len(file_index))
    return file_index


def write_report(report: Report, directory: Path) -> None:
    json_path = directory / REPORT_JSON
    md_path = directory / REPORT_MARKDOWN

    json_path.write_text(json.dumps(report_to_dict(report), indent=2, sort_keys=True))
    md_path.write_text(_render_markdown(report))


def report_to_dict(report: Report) -> dict[str, Any]:
    return {
        "root": report.root,
        "generated_at": report.generated_at,
        "dead": [_definition_to_dict(d) for d in report.dead],
        "errors": [{"path": e.path, "message": e.message} for e in report.errors],
        "summary": report.summary,
    }


def _definition_to_dict(definition: Definition) -> dict[str, Any]:
    location = definition.location
    return {
        "kind": definition.kind.value,
        "name": definition.name,
        "full_name": definition.full_name,
        "visibility": definition.visibility.value,
        "location": {
            "file": location.file,
            "start_line": location.start_line,
            "start_column": location.start_column,
            "end_line": location.end_line,
            "end_column": location.end_column,
        },
    }


def _summarize_by_kind(dead: list[Definition]) -> dict[str, int]:
    summary: dict[str, int] = {}
    for definition in dead:
        summary[definition.kind.value] = summary.get(definition.kind.value, 0) + 1
    return dict(sorted(summary.items()))


def _render_markdown(report: Report) -> str:
    lines = [
        "# Dead code",
        "",
        "Candidates are matched by bare name only and need a manual review.",
        "",
        f"Root: `{report.root}`",
        f"Generated: `{report.generated_at}`",
        f"Candidates: `{len(report.dead)}`",
        "",
        "## Summary",
    ]
    for kind, count in report.summary.get("by_kind", {}).items():
        lines.append(f"- {kind}: {count}")
    lines.append("")
    lines.append("## Candidates")
    for definition in report.dead:
        lines.append(f"- [{definition.kind.value}] `{definition.full_name}` {definition.location}")
    if report.errors:
        lines.append("")
        lines.append("## Skipped files")
        for error in report.errors:
            lines.append(f"- {error.path}: {error.message}")
    lines.append("")
    return "\n".join(lines)
