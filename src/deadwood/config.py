from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from deadwood.errors import ConfigError

CONFIG_FILE = "deadwood.toml"


@dataclass(frozen=True)
class Config:
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    # None: pick plugins from the gems in Gemfile.lock
    plugins: Optional[list[str]] = None
    ignore_method_names: list[str] = field(default_factory=list)
    jobs: Optional[int] = None


def load_config(root: Path, path: Optional[Path] = None) -> Config:
    config_path = path if path is not None else root / CONFIG_FILE
    if not config_path.exists():
        if path is not None:
            raise ConfigError(f"Config file not found: {config_path}")
        return Config()
    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc
    return _parse(data, config_path)


def _parse(data: dict[str, Any], source: Path) -> Config:
    known = {"include", "exclude", "plugins", "ignore_method_names", "jobs"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"{source}: unknown keys: {', '.join(unknown)}")

    jobs = data.get("jobs")
    if jobs is not None and (not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1):
        raise ConfigError(f"{source}: 'jobs' must be a positive integer")

    plugins = data.get("plugins")
    return Config(
        include=_string_list(data, "include", source),
        exclude=_string_list(data, "exclude", source),
        plugins=_string_list(data, "plugins", source) if plugins is not None else None,
        ignore_method_names=_string_list(data, "ignore_method_names", source),
        jobs=jobs,
    )


def _string_list(data: dict[str, Any], key: str, source: Path) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{source}: {key!r} must be a list of strings")
    return list(value)
