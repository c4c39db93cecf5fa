# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Token trees: the payload every stage of the protocol passes around.

A TokenStream is an immutable sequence of token trees. Equality is structural
and ignores spans, so tokens captured from a file compare equal to the same
tokens parsed from a string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Union, overload

from tokport.core.span import Span


class Delimiter(Enum):
	PAREN = ("(", ")")
	BRACKET = ("[", "]")
	BRACE = ("{", "}")
	NONE = ("", "")

	@property
	def open(self) -> str:
		return self.value[0]

	@property
	def close(self) -> str:
		return self.value[1]


@dataclass(frozen=True)
class Ident:
	name: str
	span: Span = field(default_factory=Span, compare=False, repr=False)

	def __str__(self) -> str:
		return self.name


@dataclass(frozen=True)
class Punct:
	"""
	A single punctuation character.

	`joint` marks a punct immediately followed by another punct (`::`, `->`),
	which is how multi-character operators survive as single characters.
	"""

	ch: str
	joint: bool = False
	span: Span = field(default_factory=Span, compare=False, repr=False)

	def __str__(self) -> str:
		return self.ch


_STRING_ESCAPES = {
	"\\": "\\\\",
	'"': '\\"',
	"\n": "\\n",
	"\r": "\\r",
	"\t": "\\t",
	"\0": "\\0",
}

_STRING_UNESCAPES = {
	"\\": "\\",
	'"': '"',
	"'": "'",
	"n": "\n",
	"r": "\r",
	"t": "\t",
	"0": "\0",
}


@dataclass(frozen=True)
class Literal:
	"""A literal kept verbatim (`"text"`, `'c'`, `42u8`, `r#"raw"#`)."""

	text: str
	span: Span = field(default_factory=Span, compare=False, repr=False)

	@classmethod
	def string(cls, value: str, *, span: Span | None = None) -> "Literal":
		escaped = "".join(_STRING_ESCAPES.get(ch, ch) for ch in value)
		return cls(f'"{escaped}"', span=span or Span())

	@classmethod
	def integer(cls, value: int) -> "Literal":
		return cls(str(value))

	def string_value(self) -> str:
		"""Decode a (raw) string literal; raises ValueError for other literals."""
		text = self.text[1:] if self.text.startswith("b") else self.text
		if text.startswith("r"):
			body = text[1:]
			hashes = len(body) - len(body.lstrip("#"))
			return body[hashes + 1 : len(body) - hashes - 1]
		if len(text) < 2 or not (text.startswith('"') and text.endswith('"')):
			raise ValueError(f"not a string literal: {self.text}")
		return _unescape(text[1:-1])

	def __str__(self) -> str:
		return self.text


def _unescape(body: str) -> str:
	out: list[str] = []
	idx = 0
	while idx < len(body):
		ch = body[idx]
		if ch != "\\" or idx + 1 >= len(body):
			out.append(ch)
			idx += 1
			continue
		nxt = body[idx + 1]
		if nxt in _STRING_UNESCAPES:
			out.append(_STRING_UNESCAPES[nxt])
			idx += 2
		elif nxt == "u" and body.startswith("{", idx + 2):
			end = body.index("}", idx)
			out.append(chr(int(body[idx + 3 : end], 16)))
			idx = end + 1
		elif nxt == "x":
			out.append(chr(int(body[idx + 2 : idx + 4], 16)))
			idx += 4
		elif nxt == "\n":
			# Line continuation: skip the newline and leading whitespace.
			idx += 2
			while idx < len(body) and body[idx] in " \t\n\r":
				idx += 1
		else:
			out.append(nxt)
			idx += 2
	return "".join(out)


@dataclass(frozen=True)
class Group:
	delimiter: Delimiter
	stream: "TokenStream"
	span: Span = field(default_factory=Span, compare=False, repr=False)

	def __str__(self) -> str:
		return render_group(self)


TokenTree = Union[Ident, Punct, Literal, Group]


class TokenStream:
	"""Immutable sequence of token trees."""

	__slots__ = ("_trees",)

	def __init__(self, trees: Iterable[TokenTree] = ()) -> None:
		self._trees: tuple[TokenTree, ...] = tuple(trees)

	@classmethod
	def parse(cls, source: str, *, file: str | None = None) -> "TokenStream":
		"""Lex `source` into token trees (raises TokenizeError)."""
		from tokport.tokens.lexer import tokenize

		return tokenize(source, file=file)

	@classmethod
	def coerce(cls, value: "TokenStream | str | Iterable[TokenTree] | None") -> "TokenStream":
		if value is None:
			return cls()
		if isinstance(value, TokenStream):
			return value
		if isinstance(value, str):
			return cls.parse(value)
		return cls(value)

	@property
	def trees(self) -> tuple[TokenTree, ...]:
		return self._trees

	def __iter__(self) -> Iterator[TokenTree]:
		return iter(self._trees)

	def __len__(self) -> int:
		return len(self._trees)

	def __bool__(self) -> bool:
		return bool(self._trees)

	@overload
	def __getitem__(self, idx: int) -> TokenTree: ...

	@overload
	def __getitem__(self, idx: slice) -> "TokenStream": ...

	def __getitem__(self, idx):
		if isinstance(idx, slice):
			return TokenStream(self._trees[idx])
		return self._trees[idx]

	def __add__(self, other: "TokenStream | Iterable[TokenTree]") -> "TokenStream":
		return TokenStream(self._trees + tuple(other))

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, TokenStream):
			return NotImplemented
		return self._trees == other._trees

	def __hash__(self) -> int:
		return hash(self._trees)

	def __repr__(self) -> str:
		return f"TokenStream({self.to_string()!r})"

	def __str__(self) -> str:
		return self.to_string()

	def is_empty(self) -> bool:
		return not self._trees

	@property
	def span(self) -> Span:
		"""Span of the first token (unknown for an empty stream)."""
		return self._trees[0].span if self._trees else Span()

	def split(self, sep: str = ",") -> list["TokenStream"]:
		"""Split at top-level `sep` puncts; a trailing separator adds no empty part."""
		parts: list[TokenStream] = []
		current: list[TokenTree] = []
		for tree in self._trees:
			if isinstance(tree, Punct) and tree.ch == sep and not tree.joint:
				parts.append(TokenStream(current))
				current = []
				continue
			current.append(tree)
		if current or not parts:
			parts.append(TokenStream(current))
		if len(parts) == 1 and parts[0].is_empty():
			return []
		return parts

	def to_string(self) -> str:
		return render(self)


def _needs_space(prev: TokenTree, cur: TokenTree) -> bool:
	if isinstance(prev, Punct) and prev.joint:
		return False
	if isinstance(cur, Punct) and cur.ch in ",;":
		return False
	if isinstance(cur, Group) and cur.delimiter in (Delimiter.PAREN, Delimiter.BRACKET):
		if isinstance(prev, Ident):
			return False
		if isinstance(prev, Punct) and prev.ch in "#!" and cur.delimiter is Delimiter.BRACKET:
			return False
	return True


def render(stream: TokenStream) -> str:
	out: list[str] = []
	prev: TokenTree | None = None
	for tree in stream:
		if prev is not None and _needs_space(prev, tree):
			out.append(" ")
		if isinstance(tree, Group):
			out.append(render_group(tree))
		else:
			out.append(str(tree))
		prev = tree
	return "".join(out)


def render_group(group: Group) -> str:
	inner = render(group.stream)
	if group.delimiter is Delimiter.BRACE:
		return "{ " + inner + " }" if inner else "{}"
	return group.delimiter.open + inner + group.delimiter.close


def ident(name: str) -> Ident:
	return Ident(name)


def punct(chars: str) -> list[Punct]:
	"""Puncts for an operator: every char but the last is joint (`::`, `->`)."""
	return [Punct(ch, joint=idx < len(chars) - 1) for idx, ch in enumerate(chars)]


def group(delimiter: Delimiter, stream: "TokenStream | Iterable[TokenTree]" = ()) -> Group:
	return Group(delimiter, TokenStream.coerce(stream))


__all__ = [
	"Delimiter",
	"Group",
	"Ident",
	"Literal",
	"Punct",
	"TokenStream",
	"TokenTree",
	"group",
	"ident",
	"punct",
	"render",
	"render_group",
]
