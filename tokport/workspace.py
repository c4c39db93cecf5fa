# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Workspace: the crates and macro packages one expansion run sees.

	ws = Workspace()
	ws.add_macro_package("my_macros", "my_project.macros")
	ws.add_crate_sources("app", {"lib.rs": "..."})
	result = ws.expand()
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Mapping

from tokport.config import Manifest, Settings
from tokport.core.diagnostics import Diagnostic
from tokport.core.errors import ConfigError
from tokport.crate import Crate
from tokport.export import ExportTable
from tokport.resolve import Resolver
from tokport.units import MacroPackage

if TYPE_CHECKING:
	from tokport.expand import ExpansionResult

logger = logging.getLogger(__name__)


class Workspace:
	def __init__(self, settings: Settings | None = None) -> None:
		self.settings = settings or Settings().with_env()
		self.crates: dict[str, Crate] = {}
		self.packages: dict[str, MacroPackage] = {}
		self.tables: dict[str, ExportTable] = {}
		# Load-time problems (missing module files, lexing errors).
		self.diagnostics: list[Diagnostic] = []
		self.resolver = Resolver(self)

	def _check_name(self, name: str) -> None:
		if name in self.crates or name in self.packages:
			raise ConfigError(f"name {name!r} is already used by a crate or macro package")

	def add_crate(self, name: str, root_file: Path) -> Crate:
		self._check_name(name)
		crate = Crate.load(name, root_file, self.diagnostics)
		return self._register(crate)

	def add_crate_sources(self, name: str, sources: Mapping[str, str], *, root: str = "lib.rs") -> Crate:
		self._check_name(name)
		crate = Crate.from_sources(name, sources, self.diagnostics, root=root)
		return self._register(crate)

	def _register(self, crate: Crate) -> Crate:
		self.crates[crate.name] = crate
		self.tables[crate.name] = ExportTable(crate.name)
		logger.info("crate %s: %d module(s), %d file(s)", crate.name, sum(1 for _ in crate.modules()), len(crate.files))
		return crate

	def add_macro_package(self, name: str, module: ModuleType | str) -> MacroPackage:
		self._check_name(name)
		if isinstance(module, str):
			try:
				module = importlib.import_module(module)
			except ImportError as err:
				raise ConfigError(f"macro package {name!r}: cannot import {module!r}: {err}") from err
		package = MacroPackage.from_module(name, module)
		self.packages[name] = package
		return package

	@classmethod
	def from_manifest(cls, manifest: Manifest) -> "Workspace":
		for entry in reversed(manifest.python_path):
			text = str(entry)
			if text not in sys.path:
				sys.path.insert(0, text)
		ws = cls(manifest.settings)
		for name, module in manifest.macros.items():
			ws.add_macro_package(name, module)
		for name, root_file in manifest.crates.items():
			ws.add_crate(name, root_file)
		return ws

	def expand(self) -> "ExpansionResult":
		from tokport.expand import Expander

		return Expander(self).run()


__all__ = ["Workspace"]
