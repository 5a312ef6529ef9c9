from __future__ import annotations

import textwrap

import pytest

from deadwood.errors import ParseError
from deadwood.index import Index
from deadwood.indexer import Indexer
from deadwood.models import ArgKind, Definition, Origin, Send, Visibility
from deadwood.parser import parse_ruby
from deadwood.plugins import Plugin


def _index(source: str, plugins: tuple[Plugin, ...] = (), path: str = "a.rb") -> Index:
    data = textwrap.dedent(source).lstrip().encode("utf-8")
    index = Index()
    Indexer(path, data, index, plugins).run(parse_ruby(data, path))
    return index


def _definitions(index: Index) -> set[tuple[str, str]]:
    return {(d.kind.value, d.full_name) for d in index.definitions()}


def _reference_names(index: Index) -> set[str]:
    return {r.name for r in index.references()}


def _visibilities(index: Index) -> dict[str, Visibility]:
    return {d.full_name: d.visibility for d in index.definitions()}


class _Recorder(Plugin):
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []
        self.sends: list[Send] = []

    def on_define_class(self, indexer: Indexer, definition: Definition) -> None:
        self.events.append(("class", definition.full_name))

    def on_define_module(self, indexer: Indexer, definition: Definition) -> None:
        self.events.append(("module", definition.full_name))

    def on_define_method(self, indexer: Indexer, definition: Definition) -> None:
        assert definition in indexer.index.definitions_for(definition.name)
        self.events.append(("method", definition.full_name))

    def on_define_accessor(self, indexer: Indexer, definition: Definition) -> None:
        self.events.append(("accessor", definition.full_name))

    def on_define_constant(self, indexer: Indexer, definition: Definition) -> None:
        self.events.append(("constant", definition.full_name))

    def on_leave_namespace(self, indexer: Indexer, definition: Definition) -> None:
        self.events.append(("leave", definition.full_name))

    def on_send(self, indexer: Indexer, send: Send) -> None:
        self.sends.append(send)


def test_nested_definitions_get_full_names() -> None:
    index = _index(
        """
        module Outer
          class Inner < Base
            attr_accessor :name
            CONST = 1

            def foo
              bar(CONST)
            end

            def self.baz; end
          end
        end
        """
    )

    assert _definitions(index) == {
        ("module", "Outer"),
        ("class", "Outer::Inner"),
        ("accessor", "Outer::Inner#name"),
        ("accessor", "Outer::Inner#name="),
        ("constant", "Outer::Inner::CONST"),
        ("method", "Outer::Inner#foo"),
        ("singleton_method", "Outer::Inner.baz"),
    }
    assert {"Base", "bar", "CONST"} <= _reference_names(index)


def test_definitions_are_bucketed_by_bare_name() -> None:
    index = _index(
        """
        class A::B
          def c; end
        end
        """
    )

    assert _definitions(index) == {("class", "A::B"), ("method", "A::B#c")}
    assert [d.full_name for d in index.definitions_for("B")] == ["A::B"]
    assert "A" in _reference_names(index)


def test_singleton_class_defines_singleton_methods() -> None:
    index = _index(
        """
        class Foo
          class << self
            def bar; end
          end

          def baz; end
        end
        """
    )

    assert ("singleton_method", "Foo.bar") in _definitions(index)
    assert ("method", "Foo#baz") in _definitions(index)


def test_visibility_declarations() -> None:
    index = _index(
        """
        class Foo
          def a; end

          private

          def b; end
          protected def c; end

          public

          def d; end
          def e; end
          private :e
          private attr_reader :f
        end

        class Bar
          def g; end
        end
        """
    )

    visibilities = _visibilities(index)
    assert visibilities["Foo#a"] is Visibility.PUBLIC
    assert visibilities["Foo#b"] is Visibility.PRIVATE
    assert visibilities["Foo#c"] is Visibility.PROTECTED
    assert visibilities["Foo#d"] is Visibility.PUBLIC
    assert visibilities["Foo#e"] is Visibility.PRIVATE
    assert visibilities["Foo#f"] is Visibility.PRIVATE
    assert visibilities["Bar#g"] is Visibility.PUBLIC


def test_accessor_kinds() -> None:
    index = _index(
        """
        class Foo
          attr_reader :a
          attr_writer "b"
          attr_accessor :c
        end
        """
    )

    assert {name for kind, name in _definitions(index) if kind == "accessor"} == {
        "Foo#a",
        "Foo#b=",
        "Foo#c",
        "Foo#c=",
    }


def test_constant_assignments() -> None:
    index = _index(
        """
        FOO = 1
        Foo::BAR = 2
        BAZ ||= 3

        module M
          X = Foo::BAR
        end
        """
    )

    constants = {name for kind, name in _definitions(index) if kind == "constant"}
    assert constants == {"FOO", "Foo::BAR", "BAZ", "M::X"}
    assert [d.name for d in index.definitions_for("BAR")] == ["BAR"]
    assert {"Foo", "BAR"} <= _reference_names(index)
    assert "FOO" not in _reference_names(index)


def test_send_references() -> None:
    index = _index(
        """
        foo.bar = 1
        x.count += 1
        a == b
        c && d
        list[0]
        table[:key] = 1
        items.map(&:name)
        alias new_name old_name
        configure(timeout:, retries: 3)
        """
    )

    names = _reference_names(index)
    assert {
        "foo", "bar=", "count", "count=", "==", "[]", "[]=", "map", "name", "old_name", "timeout"
    } <= names
    assert "retries" not in names
    assert "bar" not in names
    assert "&&" not in names
    assert "new_name" not in names


def test_method_bodies_only_hold_references() -> None:
    index = _index(
        """
        class Foo
          def outer(value = default_value)
            attr_reader :x

            def inner; end

            helper(value)
          end
        end
        """
    )

    assert _definitions(index) == {("class", "Foo"), ("method", "Foo#outer")}
    assert {"default_value", "attr_reader", "helper"} <= _reference_names(index)
    assert "value" in _reference_names(index)


def test_hooks_run_in_traversal_order() -> None:
    recorder = _Recorder()
    _index(
        """
        module M
          class C
            attr_reader :r
            K = 1
            def m; end
          end
        end
        """,
        plugins=(recorder,),
    )

    assert recorder.events == [
        ("module", "M"),
        ("class", "M::C"),
        ("accessor", "M::C#r"),
        ("constant", "M::C::K"),
        ("method", "M::C#m"),
        ("leave", "M::C"),
        ("leave", "M"),
    ]


def test_send_sites_passed_to_plugins() -> None:
    recorder = _Recorder()
    _index(
        """
        register(:bar, "baz", Foo, only: :cond)
        obj.call_me
        """,
        plugins=(recorder,),
    )

    register = next(s for s in recorder.sends if s.name == "register")
    assert not register.has_receiver
    assert [arg.kind for arg in register.args] == [
        ArgKind.SYMBOL,
        ArgKind.STRING,
        ArgKind.CONSTANT,
        ArgKind.PAIR,
    ]
    assert [arg.value for arg in register.args[:3]] == ["bar", "baz", "Foo"]
    assert register.keywords()["only"].value == "cond"
    assert register.location.start_line == 1

    call_me = next(s for s in recorder.sends if s.name == "call_me")
    assert call_me.receiver == "obj"
    assert call_me.has_receiver


def test_plugin_references_are_synthetic() -> None:
    class Register(Plugin):
        def on_send(self, indexer: Indexer, send: Send) -> None:
            if send.name == "register":
                self.reference_send_first_symbol_as_method(indexer, send)

    index = _index("register(:bar)\n", plugins=(Register(),))

    origins = {(r.name, r.origin) for r in index.references()}
    assert ("register", Origin.SYNTACTIC) in origins
    assert ("bar", Origin.SYNTHETIC) in origins


def test_indexing_is_deterministic() -> None:
    source = """
    class Foo
      attr_reader :a
      def b
        c(A::B)
      end
    end
    """

    first = _index(source)
    second = _index(source)

    assert first.definitions() == second.definitions()
    assert first.references() == second.references()


def test_locations_are_one_based_lines() -> None:
    index = _index(
        """
        class Foo
          def bar; end
        end
        """,
        path="lib/foo.rb",
    )

    (bar,) = index.definitions_for("bar")
    assert bar.location.file == "lib/foo.rb"
    assert (bar.location.start_line, bar.location.start_column) == (2, 2)


def test_parse_error_names_the_file() -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_ruby(b"class Foo\n  def bar\n", "bad.rb")
    assert excinfo.value.path == "bad.rb"
