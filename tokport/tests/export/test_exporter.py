# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from tokport.core.errors import ArgumentParseError, MissingIdentifierError, NameCollisionError
from tokport.export import ExportTable, Exporter, alias_name
from tokport.items import ItemPath, parse_items
from tokport.tokens import TokenStream


def _item(source: str):
	_, items = parse_items(TokenStream.parse(source, file="lib.rs"))
	return items[0]


def _exporter(**kwargs) -> Exporter:
	return Exporter(ExportTable("app"), **kwargs)


def test_export_registers_in_module_and_root_scope() -> None:
	exporter = _exporter()
	kept, unit = exporter.export_item(_item("#[export_tokens] pub struct MyStruct { field1: usize }"), ("first_mod",))
	assert unit is not None
	assert unit.name == "__export_tokens_tt_my_struct"
	assert unit.tokens.to_string() == "pub struct MyStruct { field1 : usize, }"
	assert exporter.table.lookup(("first_mod",), unit.name) is unit
	assert exporter.table.lookup((), unit.name) is unit
	assert kept.tokens.to_string() == "pub struct MyStruct { field1 : usize }"


def test_doc_comments_travel_with_the_export() -> None:
	exporter = _exporter()
	item = _item("/// Documented struct.\n#[export_tokens] struct Doc { a: u8 }")
	kept, unit = exporter.export_item(item, ())
	assert unit.tokens.to_string() == '#[doc = " Documented struct."] struct Doc { a : u8, }'
	assert kept.tokens.to_string() == '#[doc = " Documented struct."] struct Doc { a : u8 }'
	assert TokenStream.parse(unit.tokens.to_string()) == unit.tokens


def test_root_module_export_registers_once() -> None:
	exporter = _exporter()
	_, unit = exporter.export_item(_item("#[export_tokens] fn helper() {}"), ())
	assert unit.scopes == ((),)
	assert len(exporter.table) == 1


def test_items_without_export_attribute_are_untouched() -> None:
	exporter = _exporter()
	item = _item("#[derive(Debug)] struct Plain;")
	kept, unit = exporter.export_item(item, ())
	assert kept is item and unit is None
	assert len(exporter.table) == 0


def test_collision_in_sibling_modules_is_detected_at_the_root() -> None:
	exporter = _exporter()
	exporter.export_item(_item("#[export_tokens] struct Thing { a: u8 }"), ("a",))
	with pytest.raises(NameCollisionError) as excinfo:
		exporter.export_item(_item("#[export_tokens] struct Thing { b: u8 }"), ("b",))
	assert "the root of crate `app`" in excinfo.value.message
	assert excinfo.value.notes and "app::a::Thing" in excinfo.value.notes[0]
	# The failed export left nothing behind in either scope.
	assert exporter.table.scope(("b",)) == {}


def test_normalized_spellings_collide() -> None:
	exporter = _exporter()
	exporter.export_item(_item("#[export_tokens] struct MyThing;"), ("m",))
	with pytest.raises(NameCollisionError):
		exporter.export_item(_item("#[export_tokens] fn my_thing() {}"), ("m",))


def test_explicit_name_avoids_collision() -> None:
	exporter = _exporter()
	_, first = exporter.export_item(_item("#[export_tokens] struct Thing { a: u8 }"), ("a",))
	_, second = exporter.export_item(_item("#[export_tokens(OtherThing)] struct Thing { b: u8 }"), ("b",))
	assert second.name == "__export_tokens_tt_other_thing"
	assert second.ident == "OtherThing"
	assert exporter.table.lookup((), first.name) is first
	assert exporter.table.lookup((), second.name) is second


def test_explicit_name_must_be_one_identifier() -> None:
	exporter = _exporter()
	with pytest.raises(ArgumentParseError):
		exporter.export_item(_item("#[export_tokens(a::b)] struct S;"), ())


def test_unnamed_item_needs_explicit_name() -> None:
	exporter = _exporter()
	with pytest.raises(MissingIdentifierError):
		exporter.export_item(_item("#[export_tokens] impl Trait for S {}"), ())
	_, unit = exporter.export_item(_item("#[export_tokens(TraitForS)] impl Trait for S {}"), ())
	assert unit.tokens.to_string() == "impl Trait for S {}"


def test_no_emit_export_drops_the_item() -> None:
	exporter = _exporter()
	kept, unit = exporter.export_item(_item("#[export_tokens_no_emit] struct Hidden { a: u8 }"), ())
	assert kept is None
	assert unit is not None and not unit.emit


def test_visibility_does_not_matter() -> None:
	exporter = _exporter()
	_, private = exporter.export_item(_item("#[export_tokens] struct Private;"), ("m",))
	_, public = exporter.export_item(_item("#[export_tokens] pub(crate) struct Shared;"), ("m",))
	assert private.tokens.to_string() == "struct Private;"
	assert public.tokens.to_string() == "pub(crate) struct Shared;"


def test_alias_attribute() -> None:
	exporter = _exporter()
	alias_item = _item("export_tokens_alias!(publish_tokens);")
	assert alias_name(alias_item) == "publish_tokens"
	exporter.add_alias("publish_tokens")
	_, unit = exporter.export_item(_item("#[publish_tokens] struct Aliased;"), ())
	assert unit.ident == "Aliased"


def test_alias_requires_identifier() -> None:
	with pytest.raises(ArgumentParseError):
		alias_name(_item("export_tokens_alias!(a, b);"))
	assert alias_name(_item("other!(x);")) is None


def test_support_qualified_attribute() -> None:
	exporter = _exporter(is_support_path=lambda prefix, module: prefix == ItemPath.of("tokport"))
	_, unit = exporter.export_item(_item("#[tokport::export_tokens] struct Qualified;"), ())
	assert unit is not None
	_, other = exporter.export_item(_item("#[elsewhere::export_tokens] struct NotOurs;"), ())
	assert other is None


def test_export_span_points_at_the_item() -> None:
	exporter = _exporter()
	_, unit = exporter.export_item(_item("\n\n#[export_tokens] struct Later;"), ())
	assert unit.span.file == "lib.rs"
	assert unit.span.line == 3
