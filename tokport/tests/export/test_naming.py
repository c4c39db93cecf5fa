# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from tokport.items import ItemPath
from tokport.naming import export_name, export_path, inner_name, is_hidden, to_snake_case


@pytest.mark.parametrize(
	"ident, expected",
	[
		("MyStruct", "my_struct"),
		("my_struct", "my_struct"),
		("My_Struct", "my_struct"),
		("HTTPServer", "http_server"),
		("Vec3", "vec3"),
		("r#type", "type"),
		("LIMIT", "limit"),
	],
)
def test_to_snake_case(ident: str, expected: str) -> None:
	assert to_snake_case(ident) == expected


def test_export_name_is_deterministic() -> None:
	assert export_name("MyStruct") == "__export_tokens_tt_my_struct"
	assert export_name("MyStruct") == export_name("MyStruct")
	# Different spellings of one identifier share an ExportName.
	assert export_name("my_struct") == export_name("MyStruct")


def test_export_path_replaces_last_segment() -> None:
	path = export_path(ItemPath.parse("crate::first_mod::MyStruct"))
	assert str(path) == "crate::first_mod::__export_tokens_tt_my_struct"


def test_inner_names() -> None:
	assert inner_name("proc", "render") == "__import_tokens_proc_render_inner"
	assert inner_name("attr", "merge") == "__import_tokens_attr_merge_inner"
	assert is_hidden(inner_name("proc", "render"))
	assert not is_hidden("render")
	with pytest.raises(ValueError):
		inner_name("derive", "x")
