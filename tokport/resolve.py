# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Path resolution against the module trees and export tables of a workspace.

A path is looked up the way the host language does it: `crate::`, `self::`,
`super::` and a leading `::<crate>` anchor the walk; any other first segment
is a child module, a `use` binding or a workspace crate. The last segment is
looked up as an ExportName in the reached module's export scope, then
through `use` bindings and glob imports of that module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, FrozenSet, Hashable

from tokport.core.errors import ArgumentParseError, PathResolutionError
from tokport.export import ForwardingUnit
from tokport.items import ItemPath, UseEntry
from tokport.naming import export_name

if TYPE_CHECKING:
	from tokport.workspace import Workspace

logger = logging.getLogger(__name__)

ModulePath = tuple[str, ...]
Location = tuple[str, ModulePath]

_Seen = FrozenSet[Hashable]


@dataclass(frozen=True)
class Scope:
	"""Module a path is written in."""

	crate: str
	module: ModulePath = ()

	@property
	def display(self) -> str:
		return "::".join((self.crate,) + self.module)


class Resolver:
	def __init__(self, workspace: "Workspace") -> None:
		self.workspace = workspace
		self._uses: dict[Location, list[UseEntry]] = {}
		self.mounts: set[ModulePath] = set()

	# -- use bindings -------------------------------------------------------

	def uses(self, crate: str, module: ModulePath) -> list[UseEntry]:
		"""`use` entries written in a module (malformed `use` items are skipped)."""
		key = (crate, module)
		cached = self._uses.get(key)
		if cached is not None:
			return cached
		entries: list[UseEntry] = []
		krate = self.workspace.crates.get(crate)
		mod = krate.module(module) if krate is not None else None
		if mod is not None:
			for item in mod.items:
				if item.kind != "use":
					continue
				try:
					entries.extend(item.use_entries())
				except ArgumentParseError:
					# Reported when the module itself is expanded.
					continue
		self._uses[key] = entries
		return entries

	# -- items --------------------------------------------------------------

	def resolve_item(self, path: ItemPath, scope: Scope) -> ForwardingUnit:
		"""Resolve `path` written in `scope` to an exported item, or raise."""
		unit = self._locate(path, scope, frozenset())
		if unit is None:
			raise PathResolutionError(
				f"cannot find exported item `{path}` from `{scope.display}`",
				span=path.span,
				notes=[f"looked for `{export_name(path.last)}`"],
			)
		logger.debug("resolved %s in %s to %s", path, scope.display, unit.display)
		return unit

	def _locate(self, path: ItemPath, scope: Scope, seen: _Seen) -> ForwardingUnit | None:
		start = self._start(path, scope)
		if start is None:
			return None
		crate, module, rest, relative = start
		if not rest:
			return None
		loc = self._walk(crate, module, rest[:-1], seen, relative=relative)
		if loc is None:
			return None
		return self._lookup(loc[0], loc[1], rest[-1], seen)

	def _start(self, path: ItemPath, scope: Scope) -> tuple[str, ModulePath, tuple[str, ...], bool] | None:
		segs = path.segments
		if path.absolute:
			if segs[0] not in self.workspace.crates:
				return None
			return segs[0], (), segs[1:], False
		first = segs[0]
		if first == "crate":
			return scope.crate, (), segs[1:], False
		if first == "self":
			return scope.crate, scope.module, segs[1:], False
		if first == "super":
			module = scope.module
			idx = 0
			while idx < len(segs) and segs[idx] == "super":
				if not module:
					return None
				module = module[:-1]
				idx += 1
			return scope.crate, module, segs[idx:], False
		return scope.crate, scope.module, segs, True

	def _walk(
		self,
		crate: str,
		module: ModulePath,
		segs: tuple[str, ...],
		seen: _Seen,
		*,
		relative: bool,
	) -> Location | None:
		for idx, seg in enumerate(segs):
			nxt = self._child(crate, module, seg, seen)
			if nxt is None and idx == 0 and relative and seg in self.workspace.crates:
				nxt = (seg, ())
			if nxt is None:
				return None
			crate, module = nxt
		return crate, module

	def _child(self, crate: str, module: ModulePath, seg: str, seen: _Seen) -> Location | None:
		krate = self.workspace.crates.get(crate)
		mod = krate.module(module) if krate is not None else None
		if mod is None:
			return None
		if seg in mod.children:
			return crate, module + (seg,)
		for entry in self.uses(crate, module):
			if entry.binding != seg:
				continue
			key = ("module", crate, module, seg)
			if key in seen:
				continue
			target = self.resolve_module(entry.target, Scope(crate, module), seen | {key})
			if target is not None:
				return target
		return None

	def resolve_module(self, path: ItemPath, scope: Scope, seen: _Seen = frozenset()) -> Location | None:
		"""Module (or crate root) named by `path`, if any."""
		start = self._start(path, scope)
		if start is None:
			return None
		crate, module, rest, relative = start
		return self._walk(crate, module, rest, seen, relative=relative)

	def _lookup(self, crate: str, module: ModulePath, name: str, seen: _Seen) -> ForwardingUnit | None:
		table = self.workspace.tables.get(crate)
		if table is not None:
			unit = table.lookup(module, export_name(name))
			if unit is not None:
				return unit
		entries = self.uses(crate, module)
		for entry in entries:
			if entry.binding != name:
				continue
			key = ("item", crate, module, name)
			if key in seen:
				continue
			found = self._locate(entry.target, Scope(crate, module), seen | {key})
			if found is not None:
				return found
		for entry in entries:
			if not entry.glob:
				continue
			key = ("glob", crate, module, entry.path)
			if key in seen:
				continue
			inner_seen = seen | {key}
			loc = self.resolve_module(entry.target, Scope(crate, module), inner_seen)
			if loc is None:
				continue
			found = self._lookup(loc[0], loc[1], name, inner_seen)
			if found is not None:
				return found
		return None

	# -- support mounts -----------------------------------------------------

	def _normalize(self, path: ItemPath, scope: Scope, seen: _Seen = frozenset()) -> ModulePath | None:
		"""Absolute segments of `path`; external names stay as written."""
		segs = path.segments
		if path.absolute:
			return segs
		first = segs[0]
		if first == "crate":
			return (scope.crate,) + segs[1:]
		if first == "self":
			return (scope.crate,) + scope.module + segs[1:]
		if first == "super":
			module = scope.module
			idx = 0
			while idx < len(segs) and segs[idx] == "super":
				if not module:
					return None
				module = module[:-1]
				idx += 1
			return (scope.crate,) + module + segs[idx:]
		krate = self.workspace.crates.get(scope.crate)
		mod = krate.module(scope.module) if krate is not None else None
		if mod is not None and first in mod.children:
			return (scope.crate,) + scope.module + segs
		for entry in self.uses(scope.crate, scope.module):
			if entry.binding != first or entry.path == (first,):
				continue
			key = (scope.crate, scope.module, first)
			if key in seen:
				continue
			base = self._normalize(entry.target, scope, seen | {key})
			if base is not None:
				return base + segs[1:]
		return segs

	def collect_mounts(self) -> None:
		"""
		Find every path the forwarding support is mounted at.

		The configured root always is one; `pub use <mount> [as name];` in any
		module adds `crate::module::name`, transitively.
		"""
		self._uses.clear()
		root = self.workspace.settings.root_path
		self.mounts = {root.segments}
		changed = True
		while changed:
			changed = False
			for name, krate in self.workspace.crates.items():
				for mod in krate.modules():
					scope = Scope(name, mod.path)
					for entry in self.uses(name, mod.path):
						if not entry.public or entry.binding is None:
							continue
						target = self._normalize(entry.target, scope)
						if target not in self.mounts:
							continue
						mount = (name,) + mod.path + (entry.binding,)
						if mount not in self.mounts:
							self.mounts.add(mount)
							changed = True
		logger.debug("support mounts: %s", ", ".join("::".join(m) for m in sorted(self.mounts)))

	def is_support_path(self, path: ItemPath, scope: Scope) -> bool:
		"""Whether `path` (as written in `scope`) names the forwarding support."""
		if not self.mounts:
			self.collect_mounts()
		return self._normalize(path, scope) in self.mounts


__all__ = ["Location", "Resolver", "Scope"]
