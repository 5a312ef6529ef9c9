from __future__ import annotations

from typing import TYPE_CHECKING

from deadwood.models import ArgKind, Definition, DefinitionKind, Send, Visibility
from deadwood.plugins.base import Plugin

if TYPE_CHECKING:
    from deadwood.indexer import Indexer

CALLBACKS = {
    "after_action",
    "append_after_action",
    "append_around_action",
    "append_before_action",
    "around_action",
    "before_action",
    "helper_method",
    "prepend_after_action",
    "prepend_around_action",
    "prepend_before_action",
    "skip_after_action",
    "skip_around_action",
    "skip_before_action",
}
CONDITIONS = ("if", "unless")


def reference_callback_symbols(indexer: Indexer, send: Send) -> None:
    for arg in send.args:
        if arg.kind is ArgKind.SYMBOL:
            indexer.reference_method(arg.value, send.location)
    keywords = send.keywords()
    for key in CONDITIONS:
        condition = keywords.get(key)
        if condition is not None and condition.kind is ArgKind.SYMBOL:
            indexer.reference_method(condition.value, send.location)


class ActionPack(Plugin):
    """Rails controllers: callbacks name methods, public methods are actions."""

    name = "actionpack"

    def on_leave_namespace(self, indexer: Indexer, definition: Definition) -> None:
        # private :foo may still follow the def, so actions are only known here.
        if definition.kind is not DefinitionKind.CLASS:
            return
        if not definition.name.endswith("Controller"):
            return
        for method in indexer.index.definitions():
            if method.kind is not DefinitionKind.METHOD:
                continue
            if method.visibility is not Visibility.PUBLIC or method.location.file != indexer.path:
                continue
            if method.full_name.rpartition("#")[0] == definition.full_name:
                method.ignore()

    def on_send(self, indexer: Indexer, send: Send) -> None:
        if send.has_receiver or send.name not in CALLBACKS:
            return
        reference_callback_symbols(indexer, send)
