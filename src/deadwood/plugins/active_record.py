from __future__ import annotations

from typing import TYPE_CHECKING

from deadwood.models import ArgKind, Send
from deadwood.plugins.actionpack import reference_callback_symbols
from deadwood.plugins.base import Plugin

if TYPE_CHECKING:
    from deadwood.indexer import Indexer

CALLBACKS = {
    "after_commit",
    "after_create",
    "after_create_commit",
    "after_destroy",
    "after_destroy_commit",
    "after_find",
    "after_initialize",
    "after_rollback",
    "after_save",
    "after_save_commit",
    "after_touch",
    "after_update",
    "after_update_commit",
    "after_validation",
    "around_create",
    "around_destroy",
    "around_save",
    "around_update",
    "before_create",
    "before_destroy",
    "before_save",
    "before_update",
    "before_validation",
    "validate",
    "validates",
    "validates_each",
    "validates_with",
}


class ActiveRecord(Plugin):
    name = "active_record"

    def on_send(self, indexer: Indexer, send: Send) -> None:
        if send.has_receiver or send.name not in CALLBACKS:
            return
        if send.name.startswith("validates"):
            # validates :email, presence: true names attributes, not methods;
            # only the conditions point at methods.
            keywords = send.keywords()
            for key in ("if", "unless"):
                condition = keywords.get(key)
                if condition is not None and condition.kind is ArgKind.SYMBOL:
                    indexer.reference_method(condition.value, send.location)
            return
        reference_callback_symbols(indexer, send)
