# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Forwarder: turn a ForwardRequest into the Invocation of its callback.

The request names an exported item by path and a callback; the forwarder
checks the support qualifier, resolves the path in the requesting scope and
lets the item's ForwardingUnit expand to `callback! { tokens }`.
"""

from __future__ import annotations

import logging

from tokport.context import current_context
from tokport.core.errors import ArgumentParseError, PathResolutionError
from tokport.invocation import ForwardRequest, Invocation
from tokport.items import ItemPath
from tokport.resolve import Resolver, Scope
from tokport.tokens import Delimiter, Group, TokenStream

logger = logging.getLogger(__name__)


class Forwarder:
	def __init__(self, resolver: Resolver) -> None:
		self.resolver = resolver

	def forward(self, request: ForwardRequest, scope: Scope) -> Invocation:
		if request.qualifier is not None and not self.resolver.is_support_path(request.qualifier, scope):
			raise PathResolutionError(
				f"`{request.qualifier}` does not name the forwarding support from `{scope.display}`",
				span=request.qualifier.span,
				notes=["re-export it with `pub use <root> as <name>;` and pass that path"],
			)
		unit = self.resolver.resolve_item(request.path, scope)
		logger.debug("forwarding %s to %s", unit.display, request.callback)
		return unit.forward(request.callback, request.extra)

	@staticmethod
	def parse_request(args: TokenStream) -> ForwardRequest:
		"""Arguments of `forward_tokens! { path, callback[, qualifier][, { extra }] }`."""
		parts = args.split(",")
		if len(parts) < 2:
			raise ArgumentParseError(
				f"`forward_tokens!` expects `path, callback`, found `{args.to_string()}`",
				span=args.span,
			)
		path = ItemPath.parse(parts[0])
		callback = ItemPath.parse(parts[1])
		qualifier: ItemPath | None = None
		extra: TokenStream | None = None
		for idx, part in enumerate(parts[2:], start=2):
			trees = part.trees
			if len(trees) == 1 and isinstance(trees[0], Group) and trees[0].delimiter is Delimiter.BRACE:
				if idx != len(parts) - 1:
					raise ArgumentParseError("`forward_tokens!` extra tokens must come last", span=part.span)
				extra = trees[0].stream
			elif qualifier is None and extra is None and idx == 2:
				qualifier = ItemPath.parse(part)
			else:
				raise ArgumentParseError(
					f"unexpected `forward_tokens!` argument `{part.to_string()}`",
					span=part.span,
				)
		return ForwardRequest(path=path, callback=callback, extra=extra, qualifier=qualifier)


def _as_path(value: "ItemPath | TokenStream | str") -> ItemPath:
	if isinstance(value, ItemPath):
		return value
	return ItemPath.parse(value)


def forward_tokens(
	path: "ItemPath | TokenStream | str",
	callback: "ItemPath | TokenStream | str",
	extra: "TokenStream | str | None" = None,
	qualifier: "ItemPath | TokenStream | str | None" = None,
) -> ForwardRequest:
	"""Build a ForwardRequest; return it from a generation unit to forward."""
	return ForwardRequest(
		path=_as_path(path),
		callback=_as_path(callback),
		extra=None if extra is None else TokenStream.coerce(extra),
		qualifier=None if qualifier is None else _as_path(qualifier),
	)


def import_tokens(path: "ItemPath | TokenStream | str") -> TokenStream:
	"""
	Tokens of the exported item at `path`, resolved from the running call site.

	Only usable while a generation unit runs.
	"""
	ctx = current_context()
	return ctx.forwarder.resolver.resolve_item(_as_path(path), ctx.scope).tokens


__all__ = ["ForwardRequest", "Forwarder", "Invocation", "forward_tokens", "import_tokens"]
