from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, TextIO

# Sorbet prefixes every metric name with this unless told otherwise.
DEFAULT_PREFIX = "ruby_typer.unknown.."
SIGILS = ("ignore", "false", "true", "strict", "strong", "__STDLIB_INTERNAL")


@dataclass(frozen=True)
class Metrics:
    """Counters from a ``srb tc --metrics-file`` JSON document."""

    raw_metrics: dict[str, int] = field(default_factory=dict)

    @classmethod
    def parse_file(cls, path: Path | str, prefix: str = DEFAULT_PREFIX) -> Metrics:
        return cls.parse_string(Path(path).read_text(encoding="utf-8"), prefix)

    @classmethod
    def parse_string(cls, string: str, prefix: str = DEFAULT_PREFIX) -> Metrics:
        return cls.parse_dict(json.loads(string), prefix)

    @classmethod
    def parse_dict(cls, obj: dict[str, Any], prefix: str = DEFAULT_PREFIX) -> Metrics:
        raw_metrics: dict[str, int] = {}
        for metric in obj.get("metrics", []):
            name = metric["name"].replace(prefix, "", 1)
            raw_metrics[name] = int(metric.get("value") or 0)
        return cls(raw_metrics=raw_metrics)

    def __getitem__(self, key: str) -> int:
        return self.raw_metrics.get(key, 0)

    def files_by_strictness(self) -> dict[str, int]:
        return {sigil: self[f"types.input.files.sigil.{sigil}"] for sigil in SIGILS}

    def files_count(self) -> int:
        return sum(self.files_by_strictness().values())

    def show(self, out: Optional[TextIO] = None) -> None:
        """Print a summary; ``out`` defaults to ``sys.stdout``."""
        out = out if out is not None else sys.stdout
        files = self.files_count()

        print("Sigils:", file=out)
        print(f"  files: {files}", file=out)
        for sigil, value in self.files_by_strictness().items():
            if not value:
                continue
            print(f"  {sigil}: {value}{percent(value, files)}", file=out)

        classes = self["types.input.classes.total"]
        modules = self["types.input.modules.total"]
        print("\nClasses & Modules:", file=out)
        print(f"  classes: {classes} (including singleton classes)", file=out)
        print(f"  modules: {modules}", file=out)

        methods = self["types.input.methods.total"]
        signatures = self["types.sig.count"]
        print("\nMethods:", file=out)
        print(f"  methods: {methods}", file=out)
        print(f"  signatures: {signatures}{percent(signatures, methods)}", file=out)

        sends = self["types.input.sends.total"]
        typed = self["types.input.sends.typed"]
        print("\nSends:", file=out)
        print(f"  sends: {sends}", file=out)
        print(f"  typed: {typed}{percent(typed, sends)}", file=out)


def percent(value: int, total: int) -> str:
    if total == 0:
        return ""
    return f" ({value * 100 // total}%)"
