from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from deadwood.errors import PluginError
from deadwood.models import ArgKind, Definition, Send

if TYPE_CHECKING:
    from deadwood.indexer import Indexer


@dataclass(frozen=True)
class Descriptor:
    ignored_names: frozenset[str] = frozenset()
    ignored_patterns: tuple[re.Pattern[str], ...] = ()

    def matches(self, name: str) -> bool:
        if name in self.ignored_names:
            return True
        return any(pattern.search(name) for pattern in self.ignored_patterns)


def ignore_method_names(*names: Union[str, re.Pattern[str]]) -> Descriptor:
    """Build the descriptor of a plugin type.

    Strings are matched exactly, compiled patterns with ``search``::

        class MyPlugin(Plugin):
            descriptor = ignore_method_names("foo", "bar", re.compile(r"^baz"))
    """
    ignored_names: set[str] = set()
    ignored_patterns: list[re.Pattern[str]] = []
    for name in names:
        if isinstance(name, str):
            ignored_names.add(name)
        elif isinstance(name, re.Pattern):
            ignored_patterns.append(name)
        else:
            raise PluginError(
                f"ignore_method_names expects strings or compiled patterns, got {name!r}"
            )
    return Descriptor(frozenset(ignored_names), tuple(ignored_patterns))


class Plugin:
    """Base class of indexing plugins.

    Every hook runs after the definition (or the syntactic reference of the
    send) has been added to the index. Hooks may ignore definitions and add
    synthetic references through ``indexer.reference_method`` and
    ``indexer.reference_constant``.
    """

    name = "base"
    descriptor = Descriptor()

    def on_define_accessor(self, indexer: Indexer, definition: Definition) -> None:
        pass

    def on_define_class(self, indexer: Indexer, definition: Definition) -> None:
        pass

    def on_define_constant(self, indexer: Indexer, definition: Definition) -> None:
        pass

    def on_define_method(self, indexer: Indexer, definition: Definition) -> None:
        # Overrides call super() to keep the ignore_method_names filter.
        if self.descriptor.matches(definition.name):
            definition.ignore()

    def on_define_module(self, indexer: Indexer, definition: Definition) -> None:
        pass

    def on_leave_namespace(self, indexer: Indexer, definition: Definition) -> None:
        """Called after the body of a class or module, with its definition."""

    def on_send(self, indexer: Indexer, send: Send) -> None:
        pass

    def reference_send_first_symbol_as_method(self, indexer: Indexer, send: Send) -> None:
        if not send.args:
            return
        first = send.args[0]
        if first.kind in (ArgKind.SYMBOL, ArgKind.STRING):
            indexer.reference_method(first.value, send.location)

    def reference_send_first_symbol_as_constant(self, indexer: Indexer, send: Send) -> None:
        if not send.args:
            return
        first = send.args[0]
        if first.kind in (ArgKind.SYMBOL, ArgKind.STRING):
            # const_get("Foo::Bar") resolves the last segment.
            indexer.reference_constant(first.value.split("::")[-1], send.location)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} plugin>"
