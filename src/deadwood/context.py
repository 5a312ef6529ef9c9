from __future__ import annotations

import fnmatch
import logging
import os
import re
import shlex
import shutil
import subprocess
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from deadwood.metrics import DEFAULT_PREFIX, Metrics
from deadwood.models import FileInfo

log = logging.getLogger(__name__)

RUBY_EXTENSIONS = {".rb", ".rake", ".ru", ".gemspec"}
DEFAULT_EXCLUDES = [
    ".git/**",
    ".bundle/**",
    "vendor/**",
    "node_modules/**",
    "tmp/**",
    "log/**",
    "sorbet/rbi/**",
]
SORBET_CONFIG = "sorbet/config"
GEMFILE = "Gemfile"
GEMFILE_LOCK = "Gemfile.lock"
STRICTNESS_RE = re.compile(r"^#\s*typed:\s*(\w*)\s*$", re.MULTILINE)
LOCKED_GEM_RE = re.compile(r"^    ([A-Za-z0-9_.\-]+) \(", re.MULTILINE)


@dataclass(frozen=True)
class ExecResult:
    out: str
    err: str
    status: bool
    exit_code: int


@dataclass(frozen=True)
class Commit:
    sha: str
    time: datetime


class Context:
    """A project directory: files, git history, bundler and Sorbet."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).resolve()

    @classmethod
    def mktmp(cls, name: Optional[str] = None) -> Context:
        return cls(tempfile.mkdtemp(prefix=name or "deadwood-"))

    # Files

    def absolute_path_to(self, rel_path: str) -> Path:
        return self.path / rel_path

    def exists(self, rel_path: str = ".") -> bool:
        return self.absolute_path_to(rel_path).exists()

    def mkdir(self, rel_path: str = ".") -> None:
        self.absolute_path_to(rel_path).mkdir(parents=True, exist_ok=True)

    def glob(self, pattern: str = "**/*") -> list[str]:
        return sorted(
            path.relative_to(self.path).as_posix()
            for path in self.path.glob(pattern)
            if path.is_file()
        )

    def read(self, rel_path: str) -> str:
        return self.absolute_path_to(rel_path).read_text(encoding="utf-8")

    def write(self, rel_path: str, contents: str = "", append: bool = False) -> None:
        path = self.absolute_path_to(rel_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a" if append else "w", encoding="utf-8") as handle:
            handle.write(contents)

    def remove(self, rel_path: str) -> None:
        path = self.absolute_path_to(rel_path)
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()

    def move(self, from_rel_path: str, to_rel_path: str) -> None:
        destination = self.absolute_path_to(to_rel_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        os.replace(self.absolute_path_to(from_rel_path), destination)

    def destroy(self) -> None:
        shutil.rmtree(self.path, ignore_errors=True)

    def collect_files(self, include: list[str], exclude: list[str]) -> list[FileInfo]:
        exclude_patterns = DEFAULT_EXCLUDES + exclude
        results: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.path):
            rel_dir = Path(dirpath).relative_to(self.path).as_posix()
            if rel_dir != "." and _matches(rel_dir + "/", exclude_patterns):
                dirnames[:] = []
                continue
            for name in filenames:
                full_path = Path(dirpath) / name
                if full_path.suffix.lower() not in RUBY_EXTENSIONS:
                    continue
                rel_path = full_path.relative_to(self.path).as_posix()
                if _matches(rel_path, exclude_patterns):
                    continue
                if include and not _matches(rel_path, include):
                    continue
                results.append(full_path)
        results.sort(key=lambda p: p.as_posix())
        return [self.file_info(path) for path in results]

    def file_info(self, path: Path) -> FileInfo:
        stat = path.stat()
        return FileInfo(
            path=path,
            rel_path=path.relative_to(self.path).as_posix(),
            size=stat.st_size,
            mtime=stat.st_mtime,
            extension=path.suffix.lower(),
        )

    # Processes

    def exec(self, command: str, env: Optional[dict[str, str]] = None) -> ExecResult:
        log.debug("exec in %s: %s", self.path, command)
        completed = subprocess.run(
            command,
            shell=True,
            cwd=self.path,
            capture_output=True,
            text=True,
            env={**os.environ, **env} if env else None,
        )
        return ExecResult(
            out=completed.stdout,
            err=completed.stderr,
            status=completed.returncode == 0,
            exit_code=completed.returncode,
        )

    # Git

    def git(self, command: str) -> ExecResult:
        return self.exec(f"git {command}")

    def git_init(self, branch: str = "main") -> ExecResult:
        return self.git(f"init -q -b {branch}")

    def git_commit(
        self,
        message: str = "message",
        time: Optional[datetime] = None,
        allow_empty: bool = False,
    ) -> ExecResult:
        date = (time or datetime.now(timezone.utc)).isoformat()
        self.git("add --all")
        args = [
            "-c commit.gpgsign=false commit -q",
            f"-m {shlex.quote(message)}",
            f"--date {shlex.quote(date)}",
        ]
        if allow_empty:
            args.append("--allow-empty")
        return self.exec(f"git {' '.join(args)}", env={"GIT_COMMITTER_DATE": date})

    def git_log(self, *args: str) -> ExecResult:
        return self.git(" ".join(["log", *args]))

    def git_last_commit(self) -> Optional[Commit]:
        return _first_commit(self.git_log("-1", "--format='%h %at'"))

    def git_find_commit(self, pattern: str) -> Optional[Commit]:
        """Most recent commit whose message matches ``pattern``."""
        return _first_commit(
            self.git_log("-1", "-E", shlex.quote(f"--grep={pattern}"), "--format='%h %at'")
        )

    # Sorbet

    def has_sorbet_config(self) -> bool:
        return self.exists(SORBET_CONFIG)

    def read_sorbet_config(self) -> str:
        return self.read(SORBET_CONFIG)

    def write_sorbet_config(self, contents: str) -> None:
        self.write(SORBET_CONFIG, contents)

    def read_file_strictness(self, rel_path: str) -> Optional[str]:
        path = self.absolute_path_to(rel_path)
        if not path.is_file():
            return None
        match = STRICTNESS_RE.search(path.read_text(encoding="utf-8", errors="ignore"))
        if match is None:
            return None
        return match.group(1)

    def srb(self, *args: str, sorbet_bin: Optional[str] = None) -> ExecResult:
        if sorbet_bin is None:
            return self.bundle_exec(" ".join(["srb", *args]))
        return self.exec(" ".join([sorbet_bin, *args]))

    def srb_metrics(
        self,
        *args: str,
        sorbet_bin: Optional[str] = None,
        prefix: str = DEFAULT_PREFIX,
    ) -> Optional[Metrics]:
        metrics_file = "metrics.tmp"
        self.srb("tc", "--metrics-file", metrics_file, *args, sorbet_bin=sorbet_bin)
        if not self.exists(metrics_file):
            return None
        try:
            return Metrics.parse_file(self.absolute_path_to(metrics_file), prefix)
        finally:
            self.remove(metrics_file)

    def sorbet_intro_commit(self) -> Optional[Commit]:
        res = self.git_log("--diff-filter=A", "--format='%h %at'", "--", SORBET_CONFIG)
        # git log lists newest first; the introduction is the oldest addition.
        return _last_commit(res)

    def sorbet_removal_commit(self) -> Optional[Commit]:
        res = self.git_log("--diff-filter=D", "--format='%h %at'", "--", SORBET_CONFIG)
        return _first_commit(res)

    # Bundler

    def read_gemfile(self) -> Optional[str]:
        if not self.exists(GEMFILE):
            return None
        return self.read(GEMFILE)

    def write_gemfile(self, contents: str, append: bool = False) -> None:
        self.write(GEMFILE, contents, append=append)

    def bundle(self, command: str) -> ExecResult:
        return self.exec(f"bundle {command}")

    def bundle_install(self) -> ExecResult:
        return self.bundle("install")

    def bundle_exec(self, command: str) -> ExecResult:
        return self.bundle(f"exec {command}")

    def read_gemfile_lock(self) -> Optional[str]:
        if not self.exists(GEMFILE_LOCK):
            return None
        return self.read(GEMFILE_LOCK)

    def gemfile_lock_gems(self) -> set[str]:
        contents = self.read_gemfile_lock()
        if contents is None:
            return set()
        return set(LOCKED_GEM_RE.findall(contents))


def _matches(path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(path, pattern) for pattern in patterns)


def _commits(res: ExecResult) -> list[Commit]:
    if not res.status:
        return []
    commits = []
    for line in res.out.splitlines():
        parts = line.strip().split()
        if len(parts) != 2:
            continue
        sha, epoch = parts
        commits.append(Commit(sha=sha, time=datetime.fromtimestamp(int(epoch), tz=timezone.utc)))
    return commits


def _first_commit(res: ExecResult) -> Optional[Commit]:
    commits = _commits(res)
    return commits[0] if commits else None


def _last_commit(res: ExecResult) -> Optional[Commit]:
    commits = _commits(res)
    return commits[-1] if commits else None
