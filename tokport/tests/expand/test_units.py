# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from tokport import ForwardRequest, Invocation, TokenStream, forward_tokens, import_tokens
from tokport.context import ExpansionContext
from tokport.core.errors import ArgumentParseError, ExpansionError, ImportSignatureError
from tokport.forward import Forwarder
from tokport.invocation import split_forwarded
from tokport.items import ItemPath, scan_path
from tokport.resolve import Scope
from tokport.tests.support import sample_macros
from tokport.units import (
	AttributeMacro,
	ImportAttributeMacro,
	ImportProcMacro,
	InnerCallback,
	MacroPackage,
	ProcMacro,
	coerce_result,
	import_tokens_attr,
	import_tokens_proc,
)


def _ctx(invoked_as: str | None = None) -> ExpansionContext:
	path = ItemPath.parse(invoked_as) if invoked_as else None
	return ExpansionContext(forwarder=None, scope=Scope("app"), invoked_as=path)


def test_proc_importer_creates_outer_and_hidden_inner() -> None:
	outer = sample_macros.render_as_const
	assert isinstance(outer, ImportProcMacro)
	inner = getattr(sample_macros, "__import_tokens_proc_render_as_const_inner")
	assert isinstance(inner, InnerCallback) and inner.hidden
	assert outer.inner == inner.name


def test_attr_importer_creates_outer_and_hidden_inner() -> None:
	outer = sample_macros.merge_fields
	assert isinstance(outer, ImportAttributeMacro) and outer.attribute
	inner = getattr(sample_macros, "__import_tokens_attr_merge_fields_inner")
	assert isinstance(inner, InnerCallback)


def test_outer_emits_forward_request_with_bare_callback() -> None:
	request = sample_macros.render_as_const.call(_ctx("render_as_const"), TokenStream.parse("crate::first_mod::MyStruct"))
	assert request == ForwardRequest(
		path=ItemPath.parse("crate::first_mod::MyStruct"),
		callback=ItemPath.of("__import_tokens_proc_render_as_const_inner"),
	)


def test_outer_qualifies_callback_like_its_invocation() -> None:
	request = sample_macros.render_as_const.call(_ctx("my_macros::render_as_const"), TokenStream.parse("x::Y"))
	assert str(request.callback) == "my_macros::__import_tokens_proc_render_as_const_inner"


def test_attr_outer_forwards_the_annotated_item_as_extra() -> None:
	item = TokenStream.parse("struct Local { a: u8 }")
	request = sample_macros.merge_fields.call_attr(_ctx("merge_fields"), TokenStream.parse("shapes::Point"), item)
	assert request.extra == item
	assert str(request.path) == "shapes::Point"


def test_qualifier_is_carried_on_the_request() -> None:
	request = sample_macros.render_via_facade.call(_ctx(), TokenStream.parse("a::B"))
	assert request.qualifier == ItemPath.parse("::facade::tp")


@pytest.mark.parametrize("arg", ["", "a b", "\"text\"", "a::"])
def test_outer_rejects_non_path_arguments(arg: str) -> None:
	with pytest.raises(ArgumentParseError):
		sample_macros.render_as_const.call(_ctx(), TokenStream.parse(arg))


def test_inner_receives_exactly_the_item_tokens() -> None:
	seen = []

	def record(tokens):
		seen.append(tokens)
		return tokens

	inner = InnerCallback(name="__import_tokens_proc_record_inner", func=record)
	item = TokenStream.parse("struct S;")
	inner.receive(_ctx(), Invocation(callback=ItemPath.of(inner.name), tokens=item))
	assert seen == [item]


def test_attr_inner_receives_item_and_extra_unmodified() -> None:
	seen = []

	def record(foreign, local):
		seen.append((foreign, local))
		return local

	inner = InnerCallback(name="__import_tokens_attr_record_inner", func=record, importer="attr")
	foreign = TokenStream.parse("struct A { x: u8 }")
	local = TokenStream.parse("#[keep] struct B;")
	inner.receive(_ctx(), Invocation(callback=ItemPath.of(inner.name), tokens=foreign, extra=local))
	assert seen == [(foreign, local)]
	with pytest.raises(ExpansionError):
		inner.receive(_ctx(), Invocation(callback=ItemPath.of(inner.name), tokens=foreign))


def test_proc_inner_rejects_extra_tokens() -> None:
	seen = []
	inner = InnerCallback(name="__import_tokens_proc_record_inner", func=seen.append)
	item = TokenStream.parse("struct S;")
	with pytest.raises(ExpansionError, match="extra tokens"):
		inner.receive(_ctx(), Invocation(callback=ItemPath.of(inner.name), tokens=item, extra=TokenStream.parse("{ 1, 2 }")))
	payload = Invocation(callback=ItemPath.of(inner.name), tokens=item, extra=TokenStream.parse("1")).payload()
	with pytest.raises(ExpansionError):
		inner.call(_ctx(), payload)
	assert seen == []


def test_inner_accepts_textual_payload() -> None:
	seen = []
	inner = InnerCallback(name="n", func=lambda foreign, local: seen.append((foreign, local)), importer="attr")
	payload = Invocation(callback=ItemPath.of("n"), tokens=TokenStream.parse("struct A;"), extra=TokenStream.parse("x")).payload()
	inner.call(_ctx(), payload)
	assert seen == [(TokenStream.parse("struct A;"), TokenStream.parse("x"))]


def test_proc_importer_signature_is_checked() -> None:
	with pytest.raises(ImportSignatureError):

		@import_tokens_proc
		def two(a, b):
			return a

	with pytest.raises(ImportSignatureError):

		@import_tokens_proc
		def variadic(*tokens):
			return tokens


def test_attr_importer_signature_is_checked() -> None:
	with pytest.raises(ImportSignatureError) as excinfo:

		@import_tokens_attr
		def one(tokens):
			return tokens

	assert "2 positional parameters" in excinfo.value.message
	assert excinfo.value.span.line is not None


@import_tokens_proc
def with_default(tokens, flag=False):
	return tokens


def test_optional_parameters_do_not_count() -> None:
	assert isinstance(with_default, ImportProcMacro)
	assert with_default(TokenStream.parse("a")) == TokenStream.parse("a")


def test_nested_importers_are_rejected() -> None:
	with pytest.raises(ImportSignatureError, match="module-level") as excinfo:

		@import_tokens_proc
		def nested(tokens):
			return tokens

	assert "__import_tokens_proc_nested_inner" not in globals()
	assert excinfo.value.span.line is not None
	with pytest.raises(ImportSignatureError, match="module-level"):

		@import_tokens_attr("::facade::tp")
		def nested_attr(foreign, local):
			return local


def test_coerce_result() -> None:
	assert coerce_result(None, "u") == TokenStream()
	assert coerce_result("struct S;", "u") == TokenStream.parse("struct S;")
	request = forward_tokens("a::B", "cb")
	assert coerce_result(request, "u") is request
	with pytest.raises(ExpansionError):
		coerce_result(42, "u")


def test_unit_exceptions_become_expansion_errors() -> None:
	with pytest.raises(ExpansionError, match="raised ValueError: boom"):
		sample_macros.explode.call(_ctx(), TokenStream())


def test_forward_tokens_helper_parses_strings() -> None:
	request = forward_tokens("crate::a::B", "my_macros::cb", extra="1, 2", qualifier="::facade::tp")
	assert request.path == ItemPath.parse("crate::a::B")
	assert request.callback == ItemPath.parse("my_macros::cb")
	assert request.extra == TokenStream.parse("1, 2")
	assert request.qualifier == ItemPath.parse("::facade::tp")


def test_import_tokens_outside_expansion() -> None:
	with pytest.raises(RuntimeError):
		import_tokens("crate::X")


def test_macro_package_collects_units() -> None:
	package = MacroPackage.from_module("my_macros", sample_macros)
	assert isinstance(package.get("echo_payload"), ProcMacro)
	assert isinstance(package.get("derive_debug"), AttributeMacro)
	assert "__import_tokens_proc_render_as_const_inner" in package
	assert all(not unit.hidden for unit in package.public_units())
	assert package.get("_const_text") is None


def test_forward_request_textual_form() -> None:
	request = forward_tokens("crate::A", "my_macros::cb", extra="1, 2", qualifier="::facade::tp")
	tokens = request.to_tokens(ItemPath.parse("::tokport"))
	path, end = scan_path(tokens.trees, 0)
	assert str(path) == "::facade::tp::forward_tokens"
	assert Forwarder.parse_request(tokens.trees[end + 1].stream) == request
	bare = forward_tokens("a::B", "cb").to_tokens(ItemPath.parse("::tokport"))
	path, _ = scan_path(bare.trees, 0)
	assert str(path) == "::tokport::forward_tokens"


def test_invocation_textual_form() -> None:
	item = TokenStream.parse("struct S;")
	extra = TokenStream.parse("1, 2")
	invocation = Invocation(callback=ItemPath.parse("pkg::cb"), tokens=item, extra=extra)
	assert invocation.arity == 3
	assert split_forwarded(invocation.to_tokens().trees[-1].stream) == (item, extra)
	plain = Invocation(callback=ItemPath.of("cb"), tokens=item)
	assert plain.arity == 2
	assert split_forwarded(plain.to_tokens().trees[-1].stream) == (item, None)
