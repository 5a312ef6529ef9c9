from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class DefinitionKind(Enum):
    CLASS = "class"
    MODULE = "module"
    METHOD = "method"
    SINGLETON_METHOD = "singleton_method"
    ACCESSOR = "accessor"
    CONSTANT = "constant"


class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    PROTECTED = "protected"


class Origin(Enum):
    SYNTACTIC = "syntactic"
    SYNTHETIC = "synthetic"


class ArgKind(Enum):
    SYMBOL = "symbol"
    STRING = "string"
    CONSTANT = "constant"
    PAIR = "pair"
    HASH = "hash"
    OTHER = "other"


@dataclass(frozen=True, order=True)
class Location:
    file: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def __str__(self) -> str:
        return (
            f"{self.file}:{self.start_line}:{self.start_column}"
            f"-{self.end_line}:{self.end_column}"
        )


class Definition:
    """A definition site. Only ``visibility`` and the ignore flag change after creation.

    Identity is ``(kind, full_name, location)``: reopened classes and
    redefined methods are distinct definitions.
    """

    __slots__ = ("_kind", "_name", "_full_name", "_location", "visibility", "_ignored")

    def __init__(
        self,
        kind: DefinitionKind,
        name: str,
        full_name: str,
        location: Location,
        visibility: Visibility,
    ) -> None:
        self._kind = kind
        self._name = name
        self._full_name = full_name
        self._location = location
        self.visibility = visibility
        self._ignored = False

    @property
    def kind(self) -> DefinitionKind:
        return self._kind

    @property
    def name(self) -> str:
        return self._name

    @property
    def full_name(self) -> str:
        return self._full_name

    @property
    def location(self) -> Location:
        return self._location

    @property
    def ignored(self) -> bool:
        return self._ignored

    def ignore(self) -> None:
        # One-way: nothing can clear the flag once set.
        self._ignored = True

    def _key(self) -> tuple[DefinitionKind, str, Location]:
        return (self._kind, self._full_name, self._location)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Definition):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return (
            f"Definition(kind={self._kind}, full_name={self._full_name!r}, "
            f"location={self._location}, visibility={self.visibility}, ignored={self._ignored})"
        )


@dataclass(frozen=True)
class Reference:
    name: str
    location: Location
    origin: Origin


@dataclass(frozen=True)
class Arg:
    kind: ArgKind
    value: str
    location: Location
    pairs: tuple[tuple[str, Arg], ...] = ()


@dataclass(frozen=True)
class Send:
    name: str
    receiver: Optional[str]
    args: tuple[Arg, ...]
    location: Location

    @property
    def has_receiver(self) -> bool:
        return self.receiver is not None

    def keywords(self) -> dict[str, Arg]:
        keywords: dict[str, Arg] = {}
        for arg in self.args:
            if arg.kind in (ArgKind.PAIR, ArgKind.HASH):
                keywords.update(arg.pairs)
        return keywords


@dataclass(frozen=True)
class FileInfo:
    path: Path
    rel_path: str
    size: int
    mtime: float
    extension: str


@dataclass(frozen=True)
class IndexingError:
    path: str
    message: str


@dataclass(frozen=True)
class Report:
    root: str
    generated_at: str
    dead: list[Definition]
    errors: list[IndexingError]
    summary: dict[str, Any]
