# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Scope bridge for importer units brought in with `use`.

An importer's outer unit refers to its hidden inner callback by bare name
when it is invoked by bare name, so the callback must be in scope wherever
the outer unit is. `#[use_proc]` / `#[use_attr]` on a `use` item adds, next
to each imported name, the matching hidden name:

	#[use_attr]
	use my_macros::{a, b as c};

becomes

	use my_macros::{a, b as c};
	#[doc(hidden)]
	use my_macros::__import_tokens_attr_a_inner;
	#[doc(hidden)]
	use my_macros::__import_tokens_attr_b_inner;
"""

from __future__ import annotations

import logging
from typing import Callable

from tokport.items import Attribute, Item, ItemPath, UseEntry, parse_items
from tokport.naming import ATTR, PROC, inner_name
from tokport.tokens import Delimiter, Group, Ident, Punct, TokenStream, TokenTree

logger = logging.getLogger(__name__)

USE_PROC = "use_proc"
USE_ATTR = "use_attr"
_KINDS = {USE_PROC: PROC, USE_ATTR: ATTR}


def bridge_attribute(item: Item, is_support_path: Callable[[ItemPath], bool]) -> tuple[Attribute, str] | None:
	"""The bridge attribute of a `use` item and the importer kind it asks for."""
	if item.kind != "use":
		return None
	for attr in item.attrs:
		path = attr.path
		if path is None or path.last not in _KINDS or attr.args is not None:
			continue
		prefix = path.prefix
		if (prefix is None and not path.absolute) or (prefix is not None and is_support_path(prefix)):
			return attr, _KINDS[path.last]
	return None


def bridged_entries(entries: list[UseEntry], kind: str) -> list[UseEntry]:
	"""Hidden counterparts of `entries`; globs already bring hidden names along."""
	out: list[UseEntry] = []
	for entry in entries:
		if entry.glob or entry.binding is None:
			continue
		hidden = inner_name(kind, entry.path[-1])
		out.append(
			UseEntry(
				path=entry.path[:-1] + (hidden,),
				absolute=entry.absolute,
				public=entry.public,
				span=entry.span,
			)
		)
	return out


def hidden_use_item(entry: UseEntry, vis: TokenStream) -> Item:
	"""`#[doc(hidden)] <vis> use <entry>;` as a generated item."""
	doc = Group(Delimiter.BRACKET, TokenStream([Ident("doc"), Group(Delimiter.PAREN, TokenStream([Ident("hidden")]))]))
	trees: list[TokenTree] = [Punct("#"), doc]
	trees.extend(vis)
	trees.append(Ident("use"))
	trees.extend(entry.to_tokens())
	trees.append(Punct(";"))
	_, items = parse_items(TokenStream(trees), origin="expansion")
	return items[0]


def bridge_use(
	item: Item,
	is_support_path: Callable[[ItemPath], bool],
) -> tuple[list[Item], list[UseEntry]] | None:
	"""
	Rewrite a bridged `use` item.

	Returns the output items (the original without its bridge attribute,
	followed by the hidden `use` items) and the hidden entries to add to the
	module's macro scope; None when `item` carries no bridge attribute.
	"""
	found = bridge_attribute(item, is_support_path)
	if found is None:
		return None
	attr, kind = found
	entries = bridged_entries(item.use_entries(), kind)
	plain = item.without_attr(attr)
	logger.debug("bridging %d %s importer name(s) at %s", len(entries), kind, item.span.short())
	return [plain] + [hidden_use_item(entry, item.vis) for entry in entries], entries


__all__ = [
	"USE_ATTR",
	"USE_PROC",
	"bridge_attribute",
	"bridge_use",
	"bridged_entries",
	"hidden_use_item",
]
