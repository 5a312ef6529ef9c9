from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from tree_sitter import Node, Tree

from deadwood.index import Index
from deadwood.models import (
    Arg,
    ArgKind,
    Definition,
    DefinitionKind,
    Location,
    Origin,
    Reference,
    Send,
    Visibility,
)
from deadwood.plugins.base import Plugin

# name -> (defines reader, defines writer)
ACCESSORS = {
    "attr_reader": (True, False),
    "attr_writer": (False, True),
    "attr_accessor": (True, True),
}
VISIBILITIES = {visibility.value: visibility for visibility in Visibility}
SHORT_CIRCUIT_OPERATORS = {"&&", "||", "and", "or"}
LOCAL_TARGETS = {"identifier", "instance_variable", "class_variable", "global_variable"}
NAMED_ARGS = (ArgKind.SYMBOL, ArgKind.STRING)


class Indexer:
    """Walks the syntax tree of one Ruby file and fills an index.

    Dispatch follows ``ast.NodeVisitor``: ``visit`` calls ``visit_<node type>``
    when it exists and ``generic_visit`` otherwise. Definitions are only
    created outside method bodies; inside them only references are recorded.
    """

    def __init__(
        self,
        path: str,
        source: bytes,
        index: Index,
        plugins: Sequence[Plugin] = (),
    ) -> None:
        self.path = path
        self.source = source
        self.index = index
        self.plugins = tuple(plugins)
        self._nesting: list[str] = []
        self._visibility: list[Visibility] = [Visibility.PUBLIC]
        self._singleton: list[bool] = [False]
        self._method_depth = 0

    def run(self, tree: Tree) -> None:
        self.visit(tree.root_node)

    # Plugin API

    def node_string(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def reference_method(self, name: str, location: Location) -> None:
        self._reference(name, location, Origin.SYNTHETIC)

    def reference_constant(self, name: str, location: Location) -> None:
        self._reference(name, location, Origin.SYNTHETIC)

    # Traversal

    def visit(self, node: Node) -> None:
        visitor = getattr(self, f"visit_{node.type}", None)
        if visitor is None:
            self.generic_visit(node)
        else:
            visitor(node)

    def generic_visit(self, node: Node) -> None:
        for child in node.named_children:
            self.visit(child)

    def visit_class(self, node: Node) -> None:
        self._visit_namespace(node, DefinitionKind.CLASS, "on_define_class")

    def visit_module(self, node: Node) -> None:
        self._visit_namespace(node, DefinitionKind.MODULE, "on_define_module")

    def visit_singleton_class(self, node: Node) -> None:
        value = node.child_by_field_name("value")
        if value is not None:
            self.visit(value)
        self._enter_body(singleton=True)
        try:
            for child in self._children_except(node, value):
                self.visit(child)
        finally:
            self._exit_body()

    def visit_method(self, node: Node) -> None:
        self._visit_method(node, singleton=self._singleton[-1])

    def visit_singleton_method(self, node: Node) -> None:
        self._visit_method(node, singleton=True)

    def visit_method_parameters(self, node: Node) -> None:
        # Parameter names bind locals; only default values can reference anything.
        for parameter in node.named_children:
            value = parameter.child_by_field_name("value")
            if value is not None:
                self.visit(value)

    visit_block_parameters = visit_method_parameters
    visit_lambda_parameters = visit_method_parameters

    def visit_assignment(self, node: Node) -> None:
        self._visit_assignment(node, reads_target=False)

    def visit_operator_assignment(self, node: Node) -> None:
        self._visit_assignment(node, reads_target=True)

    def visit_call(self, node: Node) -> None:
        receiver = node.child_by_field_name("receiver")
        method = node.child_by_field_name("method")
        arguments = node.child_by_field_name("arguments")
        name = self.node_string(method) if method is not None else "call"
        args = self._argument_nodes(arguments)
        rest = self._children_except(node, receiver, method, arguments)

        if receiver is None and not self._method_depth:
            if name in ACCESSORS:
                self._define_accessors(name, args)
                for child in rest:
                    self.visit(child)
                return
            if name in VISIBILITIES:
                self._declare_visibility(VISIBILITIES[name], args)
                return

        if receiver is not None:
            self.visit(receiver)
        self._send(name, receiver, args, node)
        for arg in args:
            self.visit(arg)
        for child in rest:
            self.visit(child)

    def visit_identifier(self, node: Node) -> None:
        name = self.node_string(node)
        if name in VISIBILITIES and not self._method_depth:
            self._visibility[-1] = VISIBILITIES[name]
            return
        # Locals and argument-less calls look the same here: count it as a call.
        self._send(name, None, (), node)

    def visit_binary(self, node: Node) -> None:
        left = node.child_by_field_name("left")
        operator = node.child_by_field_name("operator")
        right = node.child_by_field_name("right")
        if left is not None:
            self.visit(left)
        if operator is not None:
            name = self.node_string(operator)
            if name not in SHORT_CIRCUIT_OPERATORS:
                self._send(name, left, [right] if right is not None else [], node)
        if right is not None:
            self.visit(right)

    def visit_element_reference(self, node: Node) -> None:
        obj = node.child_by_field_name("object")
        args = self._children_except(node, obj)
        if obj is not None:
            self.visit(obj)
        self._send("[]", obj, args, node)
        for arg in args:
            self.visit(arg)

    def visit_block_argument(self, node: Node) -> None:
        for child in node.named_children:
            if child.type == "simple_symbol":
                # &:name
                self._reference(self._symbol_name(child), self._location(child), Origin.SYNTACTIC)
            else:
                self.visit(child)

    def visit_pair(self, node: Node) -> None:
        key = node.child_by_field_name("key")
        if key is not None and node.child_by_field_name("value") is None:
            # foo: without a value calls foo
            self._send(self._pair_key(key), None, (), key)
            return
        self.generic_visit(node)

    def visit_alias(self, node: Node) -> None:
        original = node.child_by_field_name("alias")
        if original is not None:
            self._reference(
                self._symbol_name(original), self._location(original), Origin.SYNTACTIC
            )

    def visit_constant(self, node: Node) -> None:
        self._reference(self.node_string(node), self._location(node), Origin.SYNTACTIC)

    def visit_scope_resolution(self, node: Node) -> None:
        scope = node.child_by_field_name("scope")
        name = node.child_by_field_name("name")
        if scope is not None:
            self.visit(scope)
        if name is not None:
            self._reference(self.node_string(name), self._location(name), Origin.SYNTACTIC)

    # Definitions

    def _visit_namespace(self, node: Node, kind: DefinitionKind, hook: str) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or self._method_depth:
            self.generic_visit(node)
            return

        qualified = self.node_string(name_node).lstrip(":")
        name = qualified
        if name_node.type == "scope_resolution":
            scope = name_node.child_by_field_name("scope")
            if scope is not None:
                self.visit(scope)
            bare = name_node.child_by_field_name("name")
            if bare is not None:
                name = self.node_string(bare)

        definition = self._define(kind, name, "::".join([*self._nesting, qualified]), node)
        self._notify(hook, definition)

        self._nesting.append(qualified)
        self._enter_body(singleton=False)
        try:
            for child in self._children_except(node, name_node):
                self.visit(child)
        finally:
            self._exit_body()
            self._nesting.pop()
        # Visibility is final once the body is closed.
        self._notify("on_leave_namespace", definition)

    def _visit_method(self, node: Node, singleton: bool) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is not None and not self._method_depth:
            name = self.node_string(name_node)
            kind = DefinitionKind.SINGLETON_METHOD if singleton else DefinitionKind.METHOD
            definition = self._define(kind, name, self._qualify_method(name, singleton), node)
            self._notify("on_define_method", definition)

        self._method_depth += 1
        try:
            for child in self._children_except(node, name_node):
                self.visit(child)
        finally:
            self._method_depth -= 1

    def _define_accessors(self, declaration: str, args: Sequence[Node]) -> None:
        reader, writer = ACCESSORS[declaration]
        for arg_node in args:
            arg = self._arg(arg_node)
            if arg.kind not in NAMED_ARGS:
                self.visit(arg_node)
                continue
            names = []
            if reader:
                names.append(arg.value)
            if writer:
                names.append(f"{arg.value}=")
            for name in names:
                definition = self._define(
                    DefinitionKind.ACCESSOR,
                    name,
                    self._qualify_method(name, self._singleton[-1]),
                    arg_node,
                )
                self._notify("on_define_accessor", definition)

    def _define_constant(self, target: Node, node: Node) -> None:
        name = self.node_string(target)
        if target.type == "scope_resolution":
            scope = target.child_by_field_name("scope")
            if scope is not None:
                self.visit(scope)
            bare = target.child_by_field_name("name")
            if bare is not None:
                name = self.node_string(bare)
        full_name = "::".join([*self._nesting, self.node_string(target).lstrip(":")])
        definition = self._define(DefinitionKind.CONSTANT, name, full_name, node)
        self._notify("on_define_constant", definition)

    def _declare_visibility(self, visibility: Visibility, args: Sequence[Node]) -> None:
        if not args:
            self._visibility[-1] = visibility
            return
        for arg_node in args:
            arg = self._arg(arg_node)
            if arg.kind in NAMED_ARGS:
                # private :foo, :bar
                self._set_visibility(arg.value, visibility)
                continue
            # private def foo; private attr_reader :bar
            saved = self._visibility[-1]
            self._visibility[-1] = visibility
            try:
                self.visit(arg_node)
            finally:
                self._visibility[-1] = saved

    def _set_visibility(self, name: str, visibility: Visibility) -> None:
        full_name = self._qualify_method(name, self._singleton[-1])
        for definition in self.index.definitions_for(name):
            if definition.full_name == full_name and definition.location.file == self.path:
                definition.visibility = visibility

    def _define(
        self, kind: DefinitionKind, name: str, full_name: str, node: Node
    ) -> Definition:
        definition = Definition(
            kind=kind,
            name=name,
            full_name=full_name,
            location=self._location(node),
            visibility=self._visibility[-1],
        )
        self.index.add_definition(definition)
        return definition

    # References

    def _visit_assignment(self, node: Node, reads_target: bool) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is not None:
            self._visit_target(left, node, reads_target)
        if right is not None:
            self.visit(right)

    def _visit_target(self, left: Node, node: Node, reads_target: bool) -> None:
        if left.type in ("constant", "scope_resolution") and not self._method_depth:
            self._define_constant(left, node)
        elif left.type == "call":
            receiver = left.child_by_field_name("receiver")
            method = left.child_by_field_name("method")
            if receiver is not None:
                self.visit(receiver)
            if method is not None:
                name = self.node_string(method)
                if reads_target:
                    self._send(name, receiver, (), left)
                self._send(f"{name}=", receiver, (), left)
        elif left.type == "element_reference":
            obj = left.child_by_field_name("object")
            args = self._children_except(left, obj)
            if obj is not None:
                self.visit(obj)
            if reads_target:
                self._send("[]", obj, args, left)
            self._send("[]=", obj, args, left)
            for arg in args:
                self.visit(arg)
        elif left.type not in LOCAL_TARGETS:
            self.visit(left)

    def _send(
        self, name: str, receiver: Optional[Node], arg_nodes: Sequence[Node], node: Node
    ) -> None:
        location = self._location(node)
        self._reference(name, location, Origin.SYNTACTIC)
        send = Send(
            name=name,
            receiver=self.node_string(receiver) if receiver is not None else None,
            args=tuple(self._arg(arg) for arg in arg_nodes),
            location=location,
        )
        self._notify("on_send", send)

    def _reference(self, name: str, location: Location, origin: Origin) -> None:
        self.index.add_reference(Reference(name=name, location=location, origin=origin))

    # Helpers

    def _notify(self, hook: str, subject: object) -> None:
        for plugin in self.plugins:
            getattr(plugin, hook)(self, subject)

    def _enter_body(self, singleton: bool) -> None:
        self._visibility.append(Visibility.PUBLIC)
        self._singleton.append(singleton)

    def _exit_body(self) -> None:
        self._visibility.pop()
        self._singleton.pop()

    def _qualify_method(self, name: str, singleton: bool) -> str:
        namespace = "::".join(self._nesting)
        if not namespace:
            return name
        separator = "." if singleton else "#"
        return f"{namespace}{separator}{name}"

    def _location(self, node: Node) -> Location:
        return Location(
            file=self.path,
            start_line=node.start_point[0] + 1,
            start_column=node.start_point[1],
            end_line=node.end_point[0] + 1,
            end_column=node.end_point[1],
        )

    def _children_except(self, node: Node, *skipped: Optional[Node]) -> list[Node]:
        spans = {(s.start_byte, s.end_byte, s.type) for s in skipped if s is not None}
        return [
            child
            for child in node.named_children
            if (child.start_byte, child.end_byte, child.type) not in spans
        ]

    def _argument_nodes(self, arguments: Optional[Node]) -> list[Node]:
        if arguments is None:
            return []
        return [child for child in arguments.named_children if child.type != "comment"]

    def _symbol_name(self, node: Node) -> str:
        if node.type == "delimited_symbol":
            content = self._literal_content(node)
            if content is not None:
                return content
        return self.node_string(node).lstrip(":")

    def _literal_content(self, node: Node) -> Optional[str]:
        parts = []
        for child in node.named_children:
            if child.type != "string_content":
                return None
            parts.append(self.node_string(child))
        return "".join(parts)

    def _arg(self, node: Node) -> Arg:
        location = self._location(node)
        if node.type == "simple_symbol":
            return Arg(ArgKind.SYMBOL, self._symbol_name(node), location)
        if node.type in ("string", "delimited_symbol"):
            content = self._literal_content(node)
            if content is not None:
                kind = ArgKind.STRING if node.type == "string" else ArgKind.SYMBOL
                return Arg(kind, content, location)
        elif node.type in ("constant", "scope_resolution"):
            return Arg(ArgKind.CONSTANT, self.node_string(node).lstrip(":"), location)
        elif node.type == "pair":
            pair = self._pair(node)
            if pair is not None:
                return Arg(ArgKind.PAIR, pair[0], location, (pair,))
        elif node.type == "hash":
            pairs = [self._pair(child) for child in node.named_children if child.type == "pair"]
            return Arg(
                ArgKind.HASH,
                self.node_string(node),
                location,
                tuple(pair for pair in pairs if pair is not None),
            )
        return Arg(ArgKind.OTHER, self.node_string(node), location)

    def _pair(self, node: Node) -> Optional[tuple[str, Arg]]:
        key = node.child_by_field_name("key")
        value = node.child_by_field_name("value")
        if key is None:
            return None
        name = self._pair_key(key)
        if value is None:
            # bar(foo:) passes the result of foo
            return name, Arg(ArgKind.OTHER, name, self._location(key))
        return name, self._arg(value)

    def _pair_key(self, key: Node) -> str:
        if key.type in ("simple_symbol", "delimited_symbol"):
            name = self._symbol_name(key)
        elif key.type == "string":
            content = self._literal_content(key)
            name = content if content is not None else self.node_string(key)
        else:
            # if: :foo
            name = self.node_string(key).rstrip(":")
        return name
