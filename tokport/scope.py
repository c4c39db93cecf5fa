# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Macro name resolution at a call site.

Macros live in macro packages, so a call site finds them either through a
package-qualified path (`my_macros::describe!`) or through the names the
module's `use` items bind (`use my_macros::describe;`, `use my_macros::*;`).
`forward_tokens` is a builtin: bare it is always in scope, qualified it must
be called through a support mount.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Union

from tokport.core.errors import PathResolutionError
from tokport.invocation import FORWARD_BUILTIN
from tokport.items import ItemPath, UseEntry
from tokport.resolve import Scope
from tokport.units import GenerationUnit, MacroPackage

if TYPE_CHECKING:
	from tokport.workspace import Workspace

BUILTINS = frozenset({FORWARD_BUILTIN})

# A generation unit, or the name of a builtin.
MacroTarget = Union[GenerationUnit, str]


class MacroScope:
	"""Names bound by the `use` items of one module."""

	def __init__(self, entries: Iterable[UseEntry] = ()) -> None:
		self.bindings: dict[str, UseEntry] = {}
		self.globs: list[UseEntry] = []
		self.add(entries)

	def add(self, entries: Iterable[UseEntry]) -> None:
		for entry in entries:
			if entry.glob:
				self.globs.append(entry)
			elif entry.binding is not None:
				self.bindings.setdefault(entry.binding, entry)


class MacroResolver:
	def __init__(self, workspace: "Workspace") -> None:
		self.workspace = workspace

	def resolve(self, path: ItemPath, macros: MacroScope, scope: Scope) -> MacroTarget | None:
		"""
		Resolve a macro path written in `scope`.

		Returns None when the path is not one of ours (e.g. `println`); raises
		PathResolutionError when it names a macro package member that does
		not exist.
		"""
		if path.is_single():
			name = path.last
			entry = macros.bindings.get(name)
			if entry is not None:
				target = self._qualified(entry.target, macros, scope)
				if target is not None:
					return target
			for glob in macros.globs:
				package = self._package(glob.target, macros)
				if package is not None and name in package:
					return package.get(name)
			if name in BUILTINS:
				return name
			return None
		return self._qualified(path, macros, scope)

	def _package_name(self, path: ItemPath, macros: MacroScope) -> str | None:
		segs = path.segments
		if len(segs) != 1:
			return None
		if segs[0] in self.workspace.packages:
			return segs[0]
		if path.absolute:
			return None
		# `use my_macros as mm;`
		entry = macros.bindings.get(segs[0])
		if entry is not None and len(entry.path) == 1 and entry.path[0] in self.workspace.packages:
			return entry.path[0]
		return None

	def _package(self, path: ItemPath, macros: MacroScope) -> MacroPackage | None:
		name = self._package_name(path, macros)
		return self.workspace.packages[name] if name is not None else None

	def _is_support(self, prefix: ItemPath, scope: Scope) -> bool:
		return self.workspace.resolver.is_support_path(prefix, scope)

	def _qualified(self, path: ItemPath, macros: MacroScope, scope: Scope) -> MacroTarget | None:
		prefix = path.prefix
		if prefix is None:
			return None
		package = self._package(prefix, macros)
		if package is not None:
			unit = package.get(path.last)
			if unit is None:
				raise PathResolutionError(
					f"macro package `{package.name}` has no generation unit `{path.last}`",
					span=path.span,
				)
			return unit
		if path.last in BUILTINS and self._is_support(prefix, scope):
			return path.last
		return None


__all__ = ["BUILTINS", "MacroResolver", "MacroScope", "MacroTarget"]
