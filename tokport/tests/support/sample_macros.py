# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Macro package used by the expansion tests; registered as `my_macros`.
"""

from __future__ import annotations

from tokport import (
	Delimiter,
	Group,
	Literal,
	TokenStream,
	import_tokens,
	import_tokens_attr,
	import_tokens_proc,
	proc_macro,
	proc_macro_attribute,
)
from tokport.items import Item, parse_items
from tokport.naming import to_snake_case


def _single_item(tokens: TokenStream) -> Item:
	_, items = parse_items(tokens)
	if len(items) != 1:
		raise ValueError(f"expected one item, got {len(items)}")
	return items[0]


def _const_text(tokens: TokenStream) -> str:
	item = _single_item(tokens)
	name = to_snake_case(item.ident or "item").upper() + "_TEXT"
	return f"const {name}: &str = {Literal.string(tokens.to_string())};"


@import_tokens_proc
def render_as_const(tokens):
	"""`render_as_const!(path)` -> `const <ITEM>_TEXT: &str = "<item tokens>";`"""
	return _const_text(tokens)


@import_tokens_proc("::facade::tp")
def render_via_facade(tokens):
	return _const_text(tokens)


@import_tokens_proc
def item_text(tokens):
	return TokenStream([Literal.string(tokens.to_string())])


@import_tokens_attr
def merge_fields(foreign, local):
	"""`#[merge_fields(path)] struct S { .. }`: append the fields of the struct at `path`."""
	theirs = _single_item(foreign)
	ours = _single_item(local)
	their_fields = theirs.canonical_tokens().trees[-1].stream
	our_fields = ours.canonical_tokens().trees[-1].stream
	out = []
	for attr in ours.attrs:
		out.extend(attr.tokens)
	out.extend(ours.body.trees[:-1])
	out.append(Group(Delimiter.BRACE, our_fields + their_fields))
	return TokenStream(out)


@proc_macro
def echo_payload(tokens):
	return f"const PAYLOAD: &str = {Literal.string(tokens.to_string())};"


@proc_macro
def describe_pair(tokens):
	first, second = tokens.split(",")
	text = import_tokens(first).to_string() + " / " + import_tokens(second).to_string()
	return f"const PAIR: &str = {Literal.string(text)};"


@proc_macro
def make_exported(tokens):
	return f"#[export_tokens] struct {tokens.to_string()};"


@proc_macro
def forever(tokens):
	return "my_macros::forever! {}"


@proc_macro
def explode(tokens):
	raise ValueError("boom")


@proc_macro
def emit_nothing(tokens):
	return None


@proc_macro_attribute
def derive_debug(attr, item):
	return f"#[derive(Debug)] {item.to_string()}"
