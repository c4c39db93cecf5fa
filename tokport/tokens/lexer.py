# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
lark-driven lexer producing token trees.

The grammar only knows leaves and delimited groups; the parse tree maps
one-to-one onto Ident/Punct/Literal/Group. Joint spacing of puncts is derived
from token positions: a punct immediately followed by another punct is joint.
Doc comments turn into the `#[doc = "..."]` attributes they stand for.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken
from lark.lexer import BasicLexer

from tokport.core.errors import TokenizeError
from tokport.core.span import Span

from .stream import Delimiter, Group, Ident, Literal, Punct, TokenStream, TokenTree

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_RAW_STRING_START = re.compile(r'b?r(#*)"')


class HostLexer(BasicLexer):
	"""
	Basic lexer plus the two constructs a single regex cannot match: block
	comments nest, and a raw string ends at a quote followed by as many `#`
	as it opened with.
	"""

	__future_interface__ = 2

	def match(self, text, pos):
		source = getattr(text, "text", text)
		if source.startswith("/*", pos):
			return _block_comment(source, pos)
		raw = _RAW_STRING_START.match(source, pos)
		if raw is not None:
			close = '"' + raw.group(1)
			end = source.find(close, raw.end())
			if end < 0:
				return None
			return source[pos : end + len(close)], "RAW_STRING"
		return super().match(text, pos)


def _block_comment(source: str, pos: int) -> tuple[str, str] | None:
	depth = 0
	idx = pos
	while idx < len(source) - 1:
		pair = source[idx : idx + 2]
		if pair == "/*":
			depth += 1
			idx += 2
		elif pair == "*/":
			depth -= 1
			idx += 2
			if depth == 0:
				break
		else:
			idx += 1
	if depth:
		return None
	value = source[pos:idx]
	if value.startswith("/*!"):
		return value, "INNER_DOC"
	if value.startswith("/**") and value[3:4] not in ("*", "/"):
		return value, "OUTER_DOC"
	return value, "BLOCK_COMMENT"


_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer=HostLexer,
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)

_DELIMITERS = {
	"paren": Delimiter.PAREN,
	"bracket": Delimiter.BRACKET,
	"brace": Delimiter.BRACE,
}

_OPEN_CLOSE = {"LPAR", "RPAR", "LSQB", "RSQB", "LBRACE", "RBRACE"}

_LITERALS = {"CHAR", "STRING", "RAW_STRING", "NUMBER"}

_DOCS = {"OUTER_DOC", "INNER_DOC"}


def tokenize(source: str, *, file: str | None = None) -> TokenStream:
	"""Lex `source` into a TokenStream; malformed input raises TokenizeError."""
	try:
		tree = _PARSER.parse(source)
	except UnexpectedInput as err:
		raise TokenizeError(_describe(err), span=Span(file=file, line=err.line, column=err.column)) from err
	return TokenStream(_convert(tree.children, file))


def _describe(err: UnexpectedInput) -> str:
	if isinstance(err, UnexpectedCharacters):
		return f"unexpected character {err.char!r}"
	if isinstance(err, UnexpectedEOF):
		return "unexpected end of input (unclosed delimiter)"
	if isinstance(err, UnexpectedToken):
		if err.token.type == "$END":
			return "unexpected end of input (unclosed delimiter)"
		return f"unexpected {err.token.value!r} (unbalanced delimiter)"
	return str(err)


def _convert(children: List[Tree | Token], file: str | None) -> List[TokenTree]:
	out: List[TokenTree] = []
	for idx, child in enumerate(children):
		if isinstance(child, Tree):
			out.append(_convert_group(child, file))
			continue
		kind = child.type
		if kind in _OPEN_CLOSE:
			continue
		span = Span.from_loc(child, file=file)
		if kind == "IDENT":
			out.append(Ident(str(child), span=span))
		elif kind == "PUNCT":
			out.append(Punct(str(child), joint=_is_joint(child, children, idx), span=span))
		elif kind == "LIFETIME":
			# `'a` is a joint quote followed by an identifier.
			out.append(Punct("'", joint=True, span=span))
			out.append(Ident(str(child)[1:], span=span))
		elif kind in _LITERALS:
			out.append(Literal(str(child), span=span))
		elif kind in _DOCS:
			out.extend(_doc_attribute(str(child), inner=kind == "INNER_DOC", span=span))
		else:
			raise TokenizeError(f"unexpected token kind {kind}", span=span)
	return out


def _convert_group(tree: Tree, file: str | None) -> Group:
	delimiter = _DELIMITERS[str(tree.data)]
	opener = tree.children[0]
	span = Span.from_loc(opener, file=file)
	if not tree.meta.empty:
		span = Span(
			file=file,
			line=tree.meta.line,
			column=tree.meta.column,
			end_line=tree.meta.end_line,
			end_column=tree.meta.end_column,
		)
	return Group(delimiter, TokenStream(_convert(tree.children, file)), span=span)


def _doc_attribute(comment: str, *, inner: bool, span: Span) -> List[TokenTree]:
	"""`/// text` becomes `#[doc = " text"]`, `//! text` becomes `#![doc = " text"]`."""
	if comment.startswith("//"):
		text = comment[3:]
	else:
		text = comment[3:-2]
	attr = [Ident("doc", span=span), Punct("=", span=span), Literal.string(text, span=span)]
	out: List[TokenTree] = [Punct("#", joint=inner, span=span)]
	if inner:
		out.append(Punct("!", span=span))
	out.append(Group(Delimiter.BRACKET, TokenStream(attr), span=span))
	return out


def _is_joint(tok: Token, siblings: List[Tree | Token], idx: int) -> bool:
	if idx + 1 >= len(siblings):
		return False
	nxt = siblings[idx + 1]
	if not isinstance(nxt, Token) or nxt.type not in ("PUNCT", "LIFETIME"):
		return False
	return nxt.start_pos == tok.end_pos


__all__ = ["tokenize"]
