"""Dead-code resolution over a completed index.

A definition is alive when at least one reference, syntactic or synthetic,
carries its bare name anywhere in the index. Names are never qualified with
their namespace: a call site rarely says which class it dispatches to, so
every same-named definition is kept alive by it. There is no transitive
reachability from entry points either.
"""

from __future__ import annotations

from deadwood.index import Index
from deadwood.models import Definition


def is_alive(index: Index, definition: Definition) -> bool:
    assert definition.name, f"definition without a name: {definition!r}"
    assert definition.location is not None, f"definition without a location: {definition!r}"
    return bool(index.references_for(definition.name))


def find_dead_code(index: Index) -> list[Definition]:
    dead: list[Definition] = []
    for definition in index.definitions():
        if definition.ignored:
            continue
        if is_alive(index, definition):
            continue
        dead.append(definition)
    dead.sort(key=lambda d: (d.location, d.full_name))
    return dead
