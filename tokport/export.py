# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Exporter: register an item's tokens under its ExportName.

Every exported item becomes one ForwardingUnit registered in two scopes of
its crate's ExportTable: the enclosing module (for `module::Name` lookups)
and the crate root (for `crate_name::Name` lookups). The table is
append-only: a name already present in either scope is a collision at the
export site, never a shadowing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterator, Mapping

from tokport.core.errors import ArgumentParseError, MissingIdentifierError, NameCollisionError
from tokport.core.span import Span
from tokport.invocation import Invocation
from tokport.items import Attribute, Item, ItemPath
from tokport.naming import export_name
from tokport.tokens import Ident, TokenStream

logger = logging.getLogger(__name__)

ModulePath = tuple[str, ...]

EXPORT_ATTR = "export_tokens"
EXPORT_NO_EMIT_ATTR = "export_tokens_no_emit"
EXPORT_ALIAS_MACRO = "export_tokens_alias"


@dataclass(frozen=True)
class ForwardingUnit:
	"""Captured tokens of one exported item, dispatchable to a callback."""

	name: str
	crate: str
	module: ModulePath
	tokens: TokenStream
	kind: str = "verbatim"
	ident: str | None = None
	emit: bool = True
	span: Span = field(default_factory=Span, compare=False)

	@property
	def scopes(self) -> tuple[ModulePath, ...]:
		if not self.module:
			return ((),)
		return (self.module, ())

	@property
	def display(self) -> str:
		return "::".join((self.crate,) + self.module + (self.ident or self.name,))

	def forward(self, callback: ItemPath, extra: TokenStream | None = None) -> Invocation:
		"""Expand to `callback! { tokens }` (or `{ { tokens }, extra }` with extra)."""
		return Invocation(callback=callback, tokens=self.tokens, extra=extra)


def _scope_label(crate: str, module: ModulePath) -> str:
	if not module:
		return f"the root of crate `{crate}`"
	return f"module `{'::'.join((crate,) + module)}`"


class ExportTable:
	"""Per-crate map of scope -> ExportName -> ForwardingUnit."""

	def __init__(self, crate: str) -> None:
		self.crate = crate
		self._scopes: dict[ModulePath, dict[str, ForwardingUnit]] = {}
		self._units: list[ForwardingUnit] = []

	def register(self, unit: ForwardingUnit) -> None:
		for scope in unit.scopes:
			existing = self._scopes.get(scope, {}).get(unit.name)
			if existing is not None:
				raise NameCollisionError(
					f"export name `{unit.name}` of `{unit.ident or unit.name}` is already defined in "
					f"{_scope_label(self.crate, scope)}",
					span=unit.span,
					notes=[f"previous export `{existing.display}` is at {existing.span.short()}"],
				)
		for scope in unit.scopes:
			self._scopes.setdefault(scope, {})[unit.name] = unit
		self._units.append(unit)
		logger.debug(
			"registered %s in %s",
			unit.name,
			", ".join(_scope_label(self.crate, s) for s in unit.scopes),
		)

	def lookup(self, module: ModulePath, name: str) -> ForwardingUnit | None:
		return self._scopes.get(module, {}).get(name)

	def scope(self, module: ModulePath) -> Mapping[str, ForwardingUnit]:
		return MappingProxyType(self._scopes.get(module, {}))

	def units(self) -> list[ForwardingUnit]:
		return list(self._units)

	def __iter__(self) -> Iterator[ForwardingUnit]:
		return iter(self._units)

	def __len__(self) -> int:
		return len(self._units)


def explicit_export_name(attr: Attribute) -> str | None:
	"""`#[export_tokens(Name)]` -> "Name"; the bare attribute -> None."""
	if attr.args is None or attr.args.is_empty():
		return None
	trees = attr.args.trees
	if len(trees) != 1 or not isinstance(trees[0], Ident):
		raise ArgumentParseError(
			f"export name must be a single identifier, found `{attr.args.to_string()}`",
			span=attr.span,
		)
	return trees[0].name


class Exporter:
	"""
	Registers exported items of one crate.

	`is_support_path` tells whether an attribute path prefix (e.g. `tokport`
	in `#[tokport::export_tokens]`) names the forwarding support.
	"""

	def __init__(
		self,
		table: ExportTable,
		*,
		aliases: set[str] | None = None,
		is_support_path: Callable[[ItemPath, ModulePath], bool] | None = None,
	) -> None:
		self.table = table
		self.aliases: set[str] = set(aliases or ())
		self._is_support_path = is_support_path or (lambda _prefix, _module: False)

	def add_alias(self, name: str) -> None:
		self.aliases.add(name)

	def export_attribute(self, item: Item, module: ModulePath = ()) -> tuple[Attribute, bool] | None:
		"""Find the export attribute of `item`; returns (attribute, emit)."""
		for attr in item.attrs:
			if attr.path is None:
				continue
			path = attr.path
			prefix = path.prefix
			if prefix is None and not path.absolute:
				if path.last in self.aliases or path.last == EXPORT_ATTR:
					return attr, True
				if path.last == EXPORT_NO_EMIT_ATTR:
					return attr, False
			elif prefix is not None and self._is_support_path(prefix, module):
				if path.last == EXPORT_ATTR:
					return attr, True
				if path.last == EXPORT_NO_EMIT_ATTR:
					return attr, False
		return None

	def export(
		self,
		item: Item,
		module: ModulePath,
		explicit_name: str | None = None,
		*,
		emit: bool = True,
		attr: Attribute | None = None,
	) -> ForwardingUnit:
		"""
		Register `item` (found in `module`) under its ExportName.

		Raises MissingIdentifierError when neither `explicit_name` nor the item
		identifier is available and NameCollisionError when the name is taken
		in the enclosing or root scope. `attr` is the export attribute, left out
		of the captured tokens.
		"""
		base = explicit_name or item.ident
		if base is None:
			raise MissingIdentifierError(
				f"cannot derive an export name for this `{item.kind}` item; "
				f"give one explicitly, e.g. `#[{EXPORT_ATTR}(Name)]`",
				span=item.span,
			)
		unit = ForwardingUnit(
			name=export_name(base),
			crate=self.table.crate,
			module=module,
			tokens=item.canonical_tokens(drop=attr),
			kind=item.kind,
			ident=explicit_name or item.ident,
			emit=emit,
			span=item.span,
		)
		self.table.register(unit)
		return unit

	def export_item(self, item: Item, module: ModulePath) -> tuple[Item | None, ForwardingUnit | None]:
		"""
		Export `item` if it carries an export attribute.

		Returns the item as it stays in the program (export attribute removed,
		or None for no-emit exports) and the registered unit.
		"""
		found = self.export_attribute(item, module)
		if found is None:
			return item, None
		attr, emit = found
		unit = self.export(item, module, explicit_export_name(attr), emit=emit, attr=attr)
		return (item.without_attr(attr) if emit else None), unit


def alias_name(item: Item) -> str | None:
	"""Name declared by `export_tokens_alias!(name);`, if `item` is one."""
	if item.kind != "macro_call" or item.macro_path is None or item.macro_args is None:
		return None
	if item.macro_path.last != EXPORT_ALIAS_MACRO:
		return None
	trees = item.macro_args.stream.trees
	if len(trees) != 1 or not isinstance(trees[0], Ident):
		raise ArgumentParseError(
			f"`{EXPORT_ALIAS_MACRO}!` expects a single identifier, found `{item.macro_args.stream.to_string()}`",
			span=item.span,
		)
	return trees[0].name


__all__ = [
	"EXPORT_ALIAS_MACRO",
	"EXPORT_ATTR",
	"EXPORT_NO_EMIT_ATTR",
	"ExportTable",
	"Exporter",
	"ForwardingUnit",
	"alias_name",
	"explicit_export_name",
]
