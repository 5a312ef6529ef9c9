from __future__ import annotations

import pytest

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


def _location(line: int = 1, file: str = "a.rb") -> Location:
    return Location(file=file, start_line=line, start_column=0, end_line=line, end_column=10)


def _definition(name: str = "foo", line: int = 1, **kwargs: object) -> Definition:
    values: dict[str, object] = {
        "kind": DefinitionKind.METHOD,
        "name": name,
        "full_name": f"Foo#{name}",
        "location": _location(line),
        "visibility": Visibility.PUBLIC,
    }
    values.update(kwargs)
    return Definition(**values)  # type: ignore[arg-type]


def test_definition_identity_is_kind_full_name_and_location() -> None:
    first = _definition()
    second = _definition(visibility=Visibility.PRIVATE)
    second.ignore()

    assert first == second
    assert hash(first) == hash(second)
    assert first != _definition(line=2)
    assert first != _definition(kind=DefinitionKind.ACCESSOR)


def test_reopened_definitions_are_distinct() -> None:
    definitions = {_definition(line=1), _definition(line=10)}
    assert len(definitions) == 2


def test_definition_requires_every_attribute() -> None:
    with pytest.raises(TypeError):
        Definition(kind=DefinitionKind.METHOD, name="foo", full_name="foo", location=_location())  # type: ignore[call-arg]


def test_ignore_is_one_way() -> None:
    definition = _definition()
    assert not definition.ignored

    definition.ignore()
    definition.ignore()

    assert definition.ignored
    with pytest.raises(AttributeError):
        definition.ignored = False  # type: ignore[misc]


def test_reference_identity_includes_origin() -> None:
    syntactic = Reference(name="foo", location=_location(), origin=Origin.SYNTACTIC)
    synthetic = Reference(name="foo", location=_location(), origin=Origin.SYNTHETIC)

    assert syntactic != synthetic
    assert len({syntactic, synthetic, Reference("foo", _location(), Origin.SYNTACTIC)}) == 2


def test_send_keywords_merge_pairs_and_hashes() -> None:
    cond = Arg(ArgKind.SYMBOL, "cond", _location())
    other = Arg(ArgKind.SYMBOL, "other", _location())
    send = Send(
        name="before_action",
        receiver=None,
        args=(
            Arg(ArgKind.SYMBOL, "auth", _location()),
            Arg(ArgKind.PAIR, "if", _location(), (("if", cond),)),
            Arg(ArgKind.HASH, "{unless: :other}", _location(), (("unless", other),)),
        ),
        location=_location(),
    )

    assert not send.has_receiver
    assert send.keywords() == {"if": cond, "unless": other}


def test_locations_sort_by_file_then_position() -> None:
    locations = [_location(3, "b.rb"), _location(2, "a.rb"), _location(1, "b.rb")]

    assert sorted(locations) == [_location(2, "a.rb"), _location(1, "b.rb"), _location(3, "b.rb")]
    assert str(_location(4)) == "a.rb:4:0-4:10"


@pytest.mark.parametrize("attribute", ["kind", "name", "full_name", "location"])
def test_definition_identity_is_read_only(attribute: str) -> None:
    definition = _definition()

    with pytest.raises(AttributeError):
        setattr(definition, attribute, "changed")


def test_definition_visibility_can_change() -> None:
    definition = _definition()
    definition.visibility = Visibility.PRIVATE

    assert definition.visibility is Visibility.PRIVATE
    assert definition == _definition()
