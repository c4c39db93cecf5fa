# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
`use` declarations flattened into one UseEntry per binding.

`use a::{b, c::d as e, f::*};` yields three entries: `a::b`, `a::c::d as e`
and the glob `a::f::*`. `self` inside a group binds the group's prefix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from tokport.core.errors import ArgumentParseError
from tokport.core.span import Span
from tokport.tokens import Delimiter, Group, Ident, Punct, TokenStream, TokenTree, punct

from .paths import ItemPath, _is_sep


@dataclass(frozen=True)
class UseEntry:
	path: tuple[str, ...]
	absolute: bool = False
	alias: str | None = None
	glob: bool = False
	public: bool = False
	span: Span = field(default_factory=Span, compare=False, repr=False)

	@property
	def binding(self) -> str | None:
		"""Name this entry binds in the importing module (None for globs and `_`)."""
		if self.glob:
			return None
		name = self.alias or self.path[-1]
		return None if name == "_" else name

	@property
	def target(self) -> ItemPath:
		return ItemPath(self.path, absolute=self.absolute, span=self.span)

	def to_tokens(self) -> TokenStream:
		"""Render as the body of a `use` tree (no `use` keyword, no `;`)."""
		out: list[TokenTree] = list(self.target.to_tokens())
		if self.glob:
			out.extend(punct("::"))
			out.append(Punct("*"))
		elif self.alias is not None:
			out.append(Ident("as"))
			out.append(Ident(self.alias))
		return TokenStream(out)

	def __str__(self) -> str:
		text = str(self.target)
		if self.glob:
			return text + "::*"
		if self.alias is not None:
			return f"{text} as {self.alias}"
		return text


def parse_use_tree(tokens: TokenStream, *, public: bool = False) -> list[UseEntry]:
	"""Parse the tokens between `use` and `;`."""
	trees = tokens.trees
	out: list[UseEntry] = []
	end = _parse_tree(trees, 0, (), False, public, out)
	if end != len(trees):
		raise ArgumentParseError(
			f"malformed use declaration near `{TokenStream(trees[end:]).to_string()}`",
			span=tokens.span,
		)
	return out


def _parse_tree(
	trees: Sequence[TokenTree],
	idx: int,
	prefix: tuple[str, ...],
	absolute: bool,
	public: bool,
	out: list[UseEntry],
) -> int:
	span = trees[idx].span if idx < len(trees) else Span()
	if not prefix and _is_sep(trees, idx):
		absolute = True
		idx += 2
	segs = list(prefix)
	while idx < len(trees):
		tok = trees[idx]
		if isinstance(tok, Punct) and tok.ch == "*":
			if not segs:
				raise ArgumentParseError("glob import needs a path prefix", span=tok.span)
			out.append(UseEntry(tuple(segs), absolute=absolute, glob=True, public=public, span=span))
			return idx + 1
		if isinstance(tok, Group) and tok.delimiter is Delimiter.BRACE:
			for part in tok.stream.split(","):
				end = _parse_tree(part.trees, 0, tuple(segs), absolute, public, out)
				if end != len(part):
					raise ArgumentParseError(f"malformed use group `{part.to_string()}`", span=part.span)
			return idx + 1
		if isinstance(tok, Ident):
			segs.append(tok.name)
			idx += 1
			if _is_sep(trees, idx):
				idx += 2
				continue
			alias = None
			if idx < len(trees) and isinstance(trees[idx], Ident) and trees[idx].name == "as":
				if idx + 1 >= len(trees) or not isinstance(trees[idx + 1], Ident):
					raise ArgumentParseError("expected a name after `as`", span=trees[idx].span)
				alias = trees[idx + 1].name
				idx += 2
			if segs[-1] == "self" and len(segs) > 1:
				segs.pop()
			out.append(UseEntry(tuple(segs), absolute=absolute, alias=alias, public=public, span=span))
			return idx
		break
	raise ArgumentParseError("malformed use declaration", span=span)


__all__ = ["UseEntry", "parse_use_tree"]
