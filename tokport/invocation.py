# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The two hand-off values of an expansion chain.

ForwardRequest is what an outer dispatcher emits: "forward the item at `path`
to `callback`". Invocation is what a ForwardingUnit expands to: "call
`callback` with these item tokens (and extra)". Both have a textual form so
the chain can be printed or written by hand.
"""

from __future__ import annotations

from dataclasses import dataclass

from tokport.items.paths import ItemPath
from tokport.tokens import Delimiter, Group, Punct, TokenStream, TokenTree

FORWARD_BUILTIN = "forward_tokens"


@dataclass(frozen=True)
class ForwardRequest:
	path: ItemPath
	callback: ItemPath
	extra: TokenStream | None = None
	# Path under which the forwarding support is reachable; None means the
	# configured root.
	qualifier: ItemPath | None = None

	def to_tokens(self, default_root: ItemPath) -> TokenStream:
		"""`<qualifier>::forward_tokens! { path, callback[, qualifier][, { extra }] }`"""
		root = self.qualifier or default_root
		args: list[TokenTree] = list(self.path.to_tokens())
		args.append(Punct(","))
		args.extend(self.callback.to_tokens())
		if self.qualifier is not None:
			args.append(Punct(","))
			args.extend(self.qualifier.to_tokens())
		if self.extra is not None:
			args.append(Punct(","))
			args.append(Group(Delimiter.BRACE, self.extra))
		out: list[TokenTree] = list(root.join(FORWARD_BUILTIN).to_tokens())
		out.append(Punct("!"))
		out.append(Group(Delimiter.BRACE, TokenStream(args)))
		return TokenStream(out)


@dataclass(frozen=True)
class Invocation:
	callback: ItemPath
	tokens: TokenStream
	extra: TokenStream | None = None

	@property
	def arity(self) -> int:
		return 2 if self.extra is None else 3

	def payload(self) -> TokenStream:
		"""Callback input: `tokens` or `{ tokens }, extra`."""
		if self.extra is None:
			return self.tokens
		return TokenStream([Group(Delimiter.BRACE, self.tokens), Punct(",")]) + self.extra

	def to_tokens(self) -> TokenStream:
		out: list[TokenTree] = list(self.callback.to_tokens())
		out.append(Punct("!"))
		out.append(Group(Delimiter.BRACE, self.payload()))
		return TokenStream(out)


def split_forwarded(payload: TokenStream) -> tuple[TokenStream, TokenStream | None]:
	"""Inverse of `Invocation.payload()`."""
	trees = payload.trees
	if (
		len(trees) >= 2
		and isinstance(trees[0], Group)
		and trees[0].delimiter is Delimiter.BRACE
		and isinstance(trees[1], Punct)
		and trees[1].ch == ","
	):
		return trees[0].stream, TokenStream(trees[2:])
	return payload, None


def is_forward_builtin(path: ItemPath) -> bool:
	return path.last == FORWARD_BUILTIN


__all__ = [
	"FORWARD_BUILTIN",
	"ForwardRequest",
	"Invocation",
	"is_forward_builtin",
	"split_forwarded",
]
