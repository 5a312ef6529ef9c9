from __future__ import annotations

import re
from typing import TYPE_CHECKING

from deadwood.models import Definition
from deadwood.plugins.base import Plugin, ignore_method_names

if TYPE_CHECKING:
    from deadwood.indexer import Indexer


class Minitest(Plugin):
    name = "minitest"
    descriptor = ignore_method_names(
        "after_all",
        "around",
        "around_all",
        "before_all",
        "setup",
        "teardown",
        re.compile(r"^test_"),
    )

    def on_define_class(self, indexer: Indexer, definition: Definition) -> None:
        if definition.name.endswith("Test"):
            definition.ignore()
