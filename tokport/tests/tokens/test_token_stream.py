# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from tokport.core.errors import TokenizeError
from tokport.tokens import Delimiter, Group, Ident, Literal, Punct, TokenStream, tokenize


def test_tokenize_leaves_and_groups() -> None:
	ts = tokenize('fn f(x: u8) -> &str { "hi" }')
	kinds = [type(t) for t in ts]
	assert kinds == [Ident, Ident, Group, Punct, Punct, Punct, Ident, Group]
	params = ts[2]
	assert isinstance(params, Group) and params.delimiter is Delimiter.PAREN
	assert [str(t) for t in params.stream] == ["x", ":", "u8"]
	body = ts[7]
	assert isinstance(body, Group) and body.delimiter is Delimiter.BRACE
	assert body.stream[0] == Literal('"hi"')


def test_joint_puncts_follow_adjacency() -> None:
	ts = tokenize("a::b -> c = = d")
	puncts = [t for t in ts if isinstance(t, Punct)]
	assert [(p.ch, p.joint) for p in puncts] == [
		(":", True),
		(":", False),
		("-", True),
		(">", False),
		("=", False),
		("=", False),
	]


def test_comments_are_skipped() -> None:
	ts = tokenize("a // trailing\n/* block\n comment */ b")
	assert [str(t) for t in ts] == ["a", "b"]


def test_block_comments_nest() -> None:
	ts = tokenize("a /* x /* y */ z */ b\n/* one\n/* two */\n*/ c")
	assert [str(t) for t in ts] == ["a", "b", "c"]
	assert ts[2].span.line == 4
	with pytest.raises(TokenizeError):
		tokenize("a /* x /* y */ b")


def test_raw_strings_close_on_matching_hashes() -> None:
	ts = tokenize('const X: &str = r##"a"#b"##; br###"x"##"###')
	[first, second] = [t for t in ts if isinstance(t, Literal)]
	assert first.text == 'r##"a"#b"##'
	assert first.string_value() == 'a"#b'
	assert second.string_value() == 'x"##'
	assert ts[ts.trees.index(first) + 1] == Punct(";")
	with pytest.raises(TokenizeError):
		tokenize('r##"never closed"#')


def test_doc_comments_become_doc_attributes() -> None:
	ts = tokenize("/// Outer line.\n/** Outer block. */\nstruct S;")
	assert ts == TokenStream.parse('#[doc = " Outer line."] #[doc = " Outer block. "] struct S;')
	inner = tokenize("//! Inner line.\n/*! Inner\n block. */")
	assert inner.to_string() == '#![doc = " Inner line."] #![doc = " Inner\\n block. "]'
	assert inner[0] == Punct("#", joint=True)


@pytest.mark.parametrize("source", ["//// four slashes", "/***/", "/**/", "/*** stars */", "// plain"])
def test_plain_comments_are_not_docs(source: str) -> None:
	assert tokenize(f"{source}\nx") == TokenStream.parse("x")


def test_lifetime_becomes_quote_and_ident() -> None:
	ts = tokenize("&'a str")
	assert [str(t) for t in ts] == ["&", "'", "a", "str"]
	assert ts[1] == Punct("'", joint=True)


def test_literals_kept_verbatim() -> None:
	ts = tokenize(r'''"a\"b" r#"raw "q""# 'c' 42u8 1.5e3''')
	assert [t.text for t in ts] == ['"a\\"b"', 'r#"raw "q""#', "'c'", "42u8", "1.5e3"]
	assert ts[0].string_value() == 'a"b'
	assert ts[1].string_value() == 'raw "q"'


def test_spans_carry_file_line_column() -> None:
	ts = tokenize("a\n  b", file="lib.rs")
	assert ts[1].span.file == "lib.rs"
	assert (ts[1].span.line, ts[1].span.column) == (2, 3)


@pytest.mark.parametrize("source", ["struct S {", "fn f() }", "(]"])
def test_unbalanced_delimiters_rejected(source: str) -> None:
	with pytest.raises(TokenizeError) as excinfo:
		tokenize(source, file="bad.rs")
	assert excinfo.value.span.file == "bad.rs"


def test_unexpected_character_rejected() -> None:
	with pytest.raises(TokenizeError, match="unexpected character"):
		tokenize("a ` b")


def test_render_spacing_rules() -> None:
	cases = {
		"struct MyStruct { field1: usize }": "struct MyStruct { field1 : usize }",
		"a::b::c": "a :: b :: c",
		"f(x, y);": "f(x, y);",
		"#[derive(Debug)] struct S;": "#[derive(Debug)] struct S;",
		"v[0]": "v[0]",
		"m!{}": "m ! {}",
	}
	for source, rendered in cases.items():
		assert tokenize(source).to_string() == rendered


def test_render_is_stable_under_relex() -> None:
	source = "pub fn area(&self) -> f64 { self.w * self.h }"
	once = tokenize(source).to_string()
	assert tokenize(once).to_string() == once
	assert tokenize(once) == tokenize(source)


def test_equality_ignores_spans() -> None:
	assert tokenize("a::b", file="x.rs") == TokenStream([Ident("a"), Punct(":", joint=True), Punct(":"), Ident("b")])


def test_split_on_top_level_commas() -> None:
	parts = tokenize("a::b, f(x, y), { 1, 2 },").split(",")
	assert [p.to_string() for p in parts] == ["a :: b", "f(x, y)", "{ 1, 2 }"]
	assert TokenStream().split(",") == []


def test_coerce_and_concat() -> None:
	assert TokenStream.coerce(None).is_empty()
	assert TokenStream.coerce("x y") == tokenize("x y")
	joined = TokenStream.coerce("a") + [Punct(",")]
	assert joined.to_string() == "a,"
	assert isinstance(joined[0:1], TokenStream)


def test_literal_string_escapes() -> None:
	lit = Literal.string('say "hi"\n')
	assert lit.text == '"say \\"hi\\"\\n"'
	assert lit.string_value() == 'say "hi"\n'
