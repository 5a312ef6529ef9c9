from __future__ import annotations

from typing import TYPE_CHECKING

from deadwood.models import ArgKind, Send
from deadwood.plugins.base import Plugin, ignore_method_names

if TYPE_CHECKING:
    from deadwood.indexer import Indexer

METHOD_NAME_SENDS = {"send", "__send__", "public_send", "try", "respond_to?", "method"}
CONSTANT_NAME_SENDS = {"const_get", "const_defined?", "const_source_location"}


class Ruby(Plugin):
    """Hooks the interpreter calls by itself, and reflective sends."""

    name = "ruby"
    descriptor = ignore_method_names(
        "==",
        "extended",
        "included",
        "inherited",
        "initialize",
        "method_added",
        "method_missing",
        "prepended",
        "respond_to_missing?",
        "to_s",
    )

    def on_send(self, indexer: Indexer, send: Send) -> None:
        if send.name in METHOD_NAME_SENDS:
            self.reference_send_first_symbol_as_method(indexer, send)
        elif send.name in CONSTANT_NAME_SENDS:
            self.reference_send_first_symbol_as_constant(indexer, send)
        elif send.name == "alias_method" and send.args:
            # alias_method :new_name, :old_name
            last = send.args[-1]
            if last.kind in (ArgKind.SYMBOL, ArgKind.STRING):
                indexer.reference_method(last.value, send.location)
