from __future__ import annotations

import threading
from collections import defaultdict

from deadwood.models import Definition, Reference


class Index:
    """Whole-program store of definitions and references, bucketed by bare name.

    Insertions and merges take a lock so per-file workers can feed the same
    index concurrently.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, set[Definition]] = defaultdict(set)
        self._references: dict[str, set[Reference]] = defaultdict(set)
        self._lock = threading.Lock()

    def add_definition(self, definition: Definition) -> None:
        with self._lock:
            self._definitions[definition.name].add(definition)

    def add_reference(self, reference: Reference) -> None:
        with self._lock:
            self._references[reference.name].add(reference)

    def definitions_for(self, name: str) -> set[Definition]:
        with self._lock:
            return set(self._definitions.get(name, ()))

    def references_for(self, name: str) -> set[Reference]:
        with self._lock:
            return set(self._references.get(name, ()))

    def definitions(self) -> list[Definition]:
        with self._lock:
            result = [d for bucket in self._definitions.values() for d in bucket]
        result.sort(key=lambda d: (d.location, d.kind.value, d.full_name))
        return result

    def references(self) -> list[Reference]:
        with self._lock:
            result = [r for bucket in self._references.values() for r in bucket]
        result.sort(key=lambda r: (r.location, r.name, r.origin.value))
        return result

    def merge(self, other: Index) -> None:
        if other is self:
            return
        with other._lock:
            definitions = {name: set(bucket) for name, bucket in other._definitions.items()}
            references = {name: set(bucket) for name, bucket in other._references.items()}
        with self._lock:
            for name, bucket in definitions.items():
                self._definitions[name].update(bucket)
            for name, bucket in references.items():
                self._references[name].update(bucket)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._definitions.values())
