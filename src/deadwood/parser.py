from __future__ import annotations

import logging
from typing import Optional

import tree_sitter_ruby as tsruby
from tree_sitter import Language, Node, Parser, Tree

from deadwood.errors import ParseError

log = logging.getLogger(__name__)

RUBY = Language(tsruby.language())


def parse_ruby(source: bytes, path: str) -> Tree:
    # Parsers are not shared between threads.
    parser = Parser(RUBY)
    tree = parser.parse(source)
    if tree.root_node.has_error:
        error = _first_error(tree.root_node)
        if error is None:
            raise ParseError(path, "syntax error")
        line, column = error.start_point[0] + 1, error.start_point[1]
        raise ParseError(path, f"syntax error at line {line}, column {column}")
    log.debug("parsed %s", path)
    return tree


def _first_error(node: Node) -> Optional[Node]:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None
