# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Module-level item recognizer.

This is not a grammar for the host language: it walks the token trees of a
module body and cuts them into items using the keyword that introduces each
item and the token that ends it (`;` or the body group). That is enough to
know an item's kind, identifier, attributes and visibility, which is all the
export/import protocol needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Sequence

from tokport.core.span import Span
from tokport.tokens import Delimiter, Group, Ident, Literal, Punct, TokenStream, TokenTree

from .paths import ItemPath, scan_path
from .use_tree import UseEntry, parse_use_tree

# Item kinds whose identifier directly follows the keyword.
_NAMED_KINDS = frozenset({"struct", "enum", "union", "trait", "fn", "const", "static", "type", "mod"})
# Item kinds that always end at the first top-level `;`.
_SEMI_KINDS = frozenset({"const", "static", "type", "use", "extern_crate"})
# Brace-bodied kinds whose field lists are re-printed with a trailing comma.
_FIELD_LIST_KINDS = frozenset({"struct", "enum", "union"})
_QUALIFIERS = frozenset({"unsafe", "async", "default", "auto"})


@dataclass(frozen=True)
class Attribute:
	"""`#[path]`, `#[path(args)]` or `#[path = value]`; `#![...]` when inner."""

	path: ItemPath | None
	args: TokenStream | None
	tokens: TokenStream
	inner: bool = False

	@property
	def span(self) -> Span:
		return self.tokens.span

	@property
	def name(self) -> str:
		return str(self.path) if self.path is not None else ""

	@classmethod
	def from_group(cls, hash_tokens: Sequence[TokenTree], group: Group, *, inner: bool = False) -> "Attribute":
		content = group.stream.trees
		path, end = scan_path(content, 0)
		args: TokenStream | None = None
		if path is not None and end < len(content):
			nxt = content[end]
			if isinstance(nxt, Group) and end + 1 == len(content):
				args = nxt.stream
			elif isinstance(nxt, Punct) and nxt.ch == "=":
				args = TokenStream(content[end + 1 :])
			else:
				path = None
		return cls(path=path, args=args, tokens=TokenStream(list(hash_tokens) + [group]), inner=inner)

	@classmethod
	def build(cls, path: ItemPath, args: TokenStream | None = None) -> "Attribute":
		"""Construct an outer attribute `#[path]` or `#[path(args)]`."""
		content: list[TokenTree] = list(path.to_tokens())
		if args is not None:
			content.append(Group(Delimiter.PAREN, args))
		group = Group(Delimiter.BRACKET, TokenStream(content))
		return cls.from_group([Punct("#")], group)


@dataclass(frozen=True)
class Item:
	kind: str
	ident: str | None
	attrs: tuple[Attribute, ...]
	# Tokens after the attributes: visibility, keyword, name, body.
	body: TokenStream
	vis: TokenStream = field(default_factory=TokenStream)
	span: Span = field(default_factory=Span, compare=False)
	# Inline module contents (`mod name { ... }`).
	inner_attrs: tuple[Attribute, ...] = ()
	content: tuple["Item", ...] | None = None
	# Item-position macro calls.
	macro_path: ItemPath | None = None
	macro_args: Group | None = None
	# "source" for items read from a file, "expansion" for generated ones.
	origin: str = "source"

	@property
	def tokens(self) -> TokenStream:
		out: list[TokenTree] = []
		for attr in self.attrs:
			out.extend(attr.tokens)
		out.extend(self.body)
		return TokenStream(out)

	@property
	def is_public(self) -> bool:
		return not self.vis.is_empty()

	@property
	def is_file_module(self) -> bool:
		return self.kind == "mod" and self.content is None

	def find_attr(self, pred: Callable[[Attribute], bool]) -> Attribute | None:
		return next((attr for attr in self.attrs if pred(attr)), None)

	def without_attr(self, attr: Attribute) -> "Item":
		return replace(self, attrs=tuple(a for a in self.attrs if a is not attr))

	def with_attrs(self, attrs: Iterable[Attribute]) -> "Item":
		return replace(self, attrs=tuple(attrs))

	def use_entries(self) -> list[UseEntry]:
		"""Entries of a `use` item (raises ArgumentParseError when malformed)."""
		if self.kind != "use":
			return []
		trees = self.body.trees
		start = len(self.vis) + 1
		end = len(trees) - 1 if trees and _is_punct(trees[-1], ";") else len(trees)
		return parse_use_tree(TokenStream(trees[start:end]), public=self.is_public)

	def with_content(self, inner_attrs: Sequence[Attribute], items: Sequence["Item"]) -> "Item":
		"""Inline module with its body group rebuilt from `items`."""
		if self.kind != "mod" or self.content is None:
			raise ValueError("with_content requires an inline module item")
		inner: list[TokenTree] = []
		for attr in inner_attrs:
			inner.extend(attr.tokens)
		for item in items:
			inner.extend(item.tokens)
		old = self.body.trees[-1]
		new_group = Group(Delimiter.BRACE, TokenStream(inner), span=old.span)
		return replace(
			self,
			body=TokenStream(self.body.trees[:-1] + (new_group,)),
			inner_attrs=tuple(inner_attrs),
			content=tuple(items),
		)

	def canonical_tokens(self, *, drop: Attribute | None = None) -> TokenStream:
		"""
		Tokens as a re-printer of the parsed item emits them.

		Brace-bodied struct/enum/union field lists end with a trailing comma.
		`drop` removes one attribute (the export attribute being processed).
		"""
		out: list[TokenTree] = []
		for attr in self.attrs:
			if attr is not drop:
				out.extend(attr.tokens)
		body = list(self.body.trees)
		if self.kind in _FIELD_LIST_KINDS and body:
			last = body[-1]
			if isinstance(last, Group) and last.delimiter is Delimiter.BRACE:
				fields = last.stream
				if fields and not _is_punct(fields.trees[-1], ","):
					fields = fields + [Punct(",")]
				body[-1] = Group(Delimiter.BRACE, fields, span=last.span)
		out.extend(body)
		return TokenStream(out)


def _is_punct(tree: TokenTree, ch: str) -> bool:
	return isinstance(tree, Punct) and tree.ch == ch and not tree.joint


def _is_ident(tree: TokenTree | None, *names: str) -> bool:
	return isinstance(tree, Ident) and (not names or tree.name in names)


def _is_attr_start(trees: Sequence[TokenTree], idx: int) -> bool:
	return (
		idx + 1 < len(trees)
		and isinstance(trees[idx], Punct)
		and trees[idx].ch == "#"
		and isinstance(trees[idx + 1], Group)
		and trees[idx + 1].delimiter is Delimiter.BRACKET
	)


def _is_inner_attr_start(trees: Sequence[TokenTree], idx: int) -> bool:
	return (
		idx + 2 < len(trees)
		and isinstance(trees[idx], Punct)
		and trees[idx].ch == "#"
		and isinstance(trees[idx + 1], Punct)
		and trees[idx + 1].ch == "!"
		and isinstance(trees[idx + 2], Group)
		and trees[idx + 2].delimiter is Delimiter.BRACKET
	)


def _at(trees: Sequence[TokenTree], idx: int) -> TokenTree | None:
	return trees[idx] if idx < len(trees) else None


def parse_items(stream: TokenStream, *, origin: str = "source") -> tuple[list[Attribute], list[Item]]:
	"""Split a module body into its inner attributes and items."""
	trees = stream.trees
	inner_attrs: list[Attribute] = []
	items: list[Item] = []
	idx = 0
	while idx < len(trees):
		if _is_inner_attr_start(trees, idx):
			inner_attrs.append(Attribute.from_group(trees[idx : idx + 2], trees[idx + 2], inner=True))
			idx += 3
			continue
		item, idx = _parse_item(trees, idx, origin)
		items.append(item)
	return inner_attrs, items


def _parse_item(trees: Sequence[TokenTree], start: int, origin: str) -> tuple[Item, int]:
	idx = start
	attrs: list[Attribute] = []
	while _is_attr_start(trees, idx):
		attrs.append(Attribute.from_group(trees[idx : idx + 1], trees[idx + 1]))
		idx += 2
	body_start = idx
	if _is_ident(_at(trees, idx), "pub"):
		idx += 1
		nxt = _at(trees, idx)
		if isinstance(nxt, Group) and nxt.delimiter is Delimiter.PAREN:
			idx += 1
	vis = TokenStream(trees[body_start:idx])
	span = trees[start].span if start < len(trees) else Span()

	kind, ident, key_idx = _classify(trees, idx)
	macro_path: ItemPath | None = None
	macro_args: Group | None = None
	content: tuple[Item, ...] | None = None
	inner_attrs: tuple[Attribute, ...] = ()

	if kind == "macro_call":
		macro_path, path_end = scan_path(trees, idx)
		macro_args = trees[path_end + 1]
		end = path_end + 2
		if _is_punct_at(trees, end, ";"):
			end += 1
	elif kind == "macro_rules":
		end = _end_at_group_or_semi(trees, key_idx + 1)
		if _is_punct_at(trees, end, ";"):
			end += 1
	elif kind == "mod" and _is_punct_at(trees, key_idx + 2, ";"):
		end = key_idx + 3
	elif kind in _SEMI_KINDS:
		end = _end_at_semi(trees, key_idx + 1)
	else:
		end = _end_at_group_or_semi(trees, key_idx + 1 if kind != "verbatim" else idx)

	body = TokenStream(trees[body_start:end])
	if kind == "mod" and body and isinstance(body.trees[-1], Group):
		inner, nested = parse_items(body.trees[-1].stream, origin=origin)
		inner_attrs = tuple(inner)
		content = tuple(nested)
	item = Item(
		kind=kind,
		ident=ident,
		attrs=tuple(attrs),
		body=body,
		vis=vis,
		span=span,
		inner_attrs=inner_attrs,
		content=content,
		macro_path=macro_path,
		macro_args=macro_args,
		origin=origin,
	)
	return item, end


def _classify(trees: Sequence[TokenTree], idx: int) -> tuple[str, str | None, int]:
	"""Return (kind, ident, index of the keyword) for the item starting at idx."""
	pos = idx
	while True:
		tok = _at(trees, pos)
		if _is_ident(tok, *_QUALIFIERS) and not _is_ident(_at(trees, pos + 1), "impl", "fn", "trait", "extern", *_QUALIFIERS):
			break
		if _is_ident(tok, *_QUALIFIERS):
			pos += 1
			continue
		if _is_ident(tok, "const") and _is_ident(_at(trees, pos + 1), "fn", "unsafe", "async", "extern"):
			pos += 1
			continue
		if _is_ident(tok, "extern"):
			nxt = _at(trees, pos + 1)
			if _is_ident(nxt, "crate"):
				return "extern_crate", None, pos
			if isinstance(nxt, Literal):
				nxt = _at(trees, pos + 2)
				if isinstance(nxt, Group) and nxt.delimiter is Delimiter.BRACE:
					return "extern_block", None, pos
				pos += 2
				continue
			if isinstance(nxt, Group) and nxt.delimiter is Delimiter.BRACE:
				return "extern_block", None, pos
			pos += 1
			continue
		break
	tok = _at(trees, pos)
	if _is_ident(tok, "macro_rules") and _is_punct_at(trees, pos + 1, "!"):
		name = _at(trees, pos + 2)
		return "macro_rules", name.name if isinstance(name, Ident) else None, pos + 1
	if _is_ident(tok, "impl"):
		return "impl", None, pos
	if _is_ident(tok, "use"):
		return "use", None, pos
	if _is_ident(tok, "union") and not _is_ident(_at(trees, pos + 1)):
		tok = None
	if isinstance(tok, Ident) and tok.name in _NAMED_KINDS:
		name_pos = pos + 1
		if tok.name == "static" and _is_ident(_at(trees, name_pos), "mut"):
			name_pos += 1
		name = _at(trees, name_pos)
		ident = name.name if isinstance(name, Ident) and name.name != "_" else None
		return tok.name, ident, pos
	if pos == idx:
		path, end = scan_path(trees, idx)
		if (
			path is not None
			and _is_punct_at(trees, end, "!")
			and isinstance(_at(trees, end + 1), Group)
		):
			return "macro_call", None, idx
	return "verbatim", None, idx


def _is_punct_at(trees: Sequence[TokenTree], idx: int, ch: str) -> bool:
	tok = _at(trees, idx)
	return tok is not None and _is_punct(tok, ch)


def _end_at_semi(trees: Sequence[TokenTree], idx: int) -> int:
	while idx < len(trees):
		if _is_punct(trees[idx], ";"):
			return idx + 1
		idx += 1
	return idx


def _end_at_group_or_semi(trees: Sequence[TokenTree], idx: int) -> int:
	while idx < len(trees):
		tok = trees[idx]
		if _is_punct(tok, ";"):
			return idx + 1
		if isinstance(tok, Group) and tok.delimiter is Delimiter.BRACE:
			return idx + 1
		idx += 1
	return idx


__all__ = ["Attribute", "Item", "parse_items"]
