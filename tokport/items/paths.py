# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Scope-qualified paths (`crate::first_mod::MyStruct`, `::other::Name`).

Paths are parsed from token trees as real structured values: an optional
leading `::`, then identifiers separated by `::`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from tokport.core.errors import ArgumentParseError, TokenizeError
from tokport.core.span import Span
from tokport.tokens import Ident, Punct, TokenStream, TokenTree, punct

PATH_KEYWORDS = frozenset({"crate", "self", "super"})


@dataclass(frozen=True)
class ItemPath:
	segments: tuple[str, ...]
	absolute: bool = False
	span: Span = field(default_factory=Span, compare=False, repr=False)

	def __post_init__(self) -> None:
		if not self.segments:
			raise ValueError("ItemPath requires at least one segment")

	@classmethod
	def of(cls, *segments: str, absolute: bool = False) -> "ItemPath":
		return cls(tuple(segments), absolute=absolute)

	@classmethod
	def parse(cls, tokens: "TokenStream | str") -> "ItemPath":
		"""
		Parse a complete path; anything else raises ArgumentParseError.

		A string is lexed first, so `ItemPath.parse("a::b")` and
		`ItemPath.parse(TokenStream.parse("a::b"))` are equivalent.
		"""
		if isinstance(tokens, str):
			try:
				tokens = TokenStream.parse(tokens)
			except TokenizeError as err:
				raise ArgumentParseError(f"expected a path, found `{tokens}`", span=err.span) from err
		trees = tokens.trees
		path, end = scan_path(trees, 0)
		if path is None:
			found = tokens.to_string() or "nothing"
			raise ArgumentParseError(f"expected a path, found `{found}`", span=tokens.span)
		if end != len(trees):
			rest = TokenStream(trees[end:])
			raise ArgumentParseError(
				f"unexpected `{rest.to_string()}` after path `{path}`",
				span=rest.span,
			)
		_check_keywords(path)
		return path

	@property
	def last(self) -> str:
		return self.segments[-1]

	@property
	def prefix(self) -> "ItemPath | None":
		if len(self.segments) == 1:
			return None
		return ItemPath(self.segments[:-1], absolute=self.absolute, span=self.span)

	def is_single(self) -> bool:
		return len(self.segments) == 1 and not self.absolute

	def with_last(self, name: str) -> "ItemPath":
		return ItemPath(self.segments[:-1] + (name,), absolute=self.absolute, span=self.span)

	def join(self, *names: str) -> "ItemPath":
		return ItemPath(self.segments + tuple(names), absolute=self.absolute, span=self.span)

	def to_tokens(self) -> TokenStream:
		out: list[TokenTree] = []
		if self.absolute:
			out.extend(punct("::"))
		for idx, seg in enumerate(self.segments):
			if idx:
				out.extend(punct("::"))
			out.append(Ident(seg, span=self.span))
		return TokenStream(out)

	def __str__(self) -> str:
		return ("::" if self.absolute else "") + "::".join(self.segments)


def _is_sep(trees: Sequence[TokenTree], idx: int) -> bool:
	if idx + 1 >= len(trees):
		return False
	first = trees[idx]
	second = trees[idx + 1]
	return (
		isinstance(first, Punct)
		and first.ch == ":"
		and first.joint
		and isinstance(second, Punct)
		and second.ch == ":"
	)


def scan_path(trees: Sequence[TokenTree], start: int) -> tuple[ItemPath | None, int]:
	"""
	Greedily scan a path starting at `trees[start]`.

	Returns `(path, end)` where `end` is the index just past the path, or
	`(None, start)` when no path starts there. A trailing `::` that is not
	followed by an identifier is left unconsumed.
	"""
	idx = start
	absolute = False
	if _is_sep(trees, idx):
		absolute = True
		idx += 2
	if idx >= len(trees) or not isinstance(trees[idx], Ident):
		return None, start
	first = trees[idx]
	segments = [first.name]
	idx += 1
	while _is_sep(trees, idx) and idx + 2 < len(trees) and isinstance(trees[idx + 2], Ident):
		segments.append(trees[idx + 2].name)
		idx += 3
	span = trees[start].span
	return ItemPath(tuple(segments), absolute=absolute, span=span), idx


def _check_keywords(path: ItemPath) -> None:
	for idx, seg in enumerate(path.segments):
		if seg == "super":
			if path.absolute or any(s != "super" for s in path.segments[:idx]):
				raise ArgumentParseError(f"`super` in unexpected position in `{path}`", span=path.span)
		elif seg in ("crate", "self"):
			if idx != 0 or path.absolute:
				raise ArgumentParseError(f"`{seg}` in unexpected position in `{path}`", span=path.span)
	if path.last in PATH_KEYWORDS and len(path.segments) > 1:
		raise ArgumentParseError(f"path `{path}` does not name an item", span=path.span)


__all__ = ["ItemPath", "PATH_KEYWORDS", "scan_path"]
