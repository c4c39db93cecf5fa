# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Crate loading: a root file plus the module tree reachable from it.

`mod name;` declared in a root or `mod.rs` file loads `name.rs` or
`name/mod.rs` from the same directory; declared in any other file `x.rs` it
loads from `x/`. Inline `mod name { ... }` modules nest their own directory
for file submodules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Iterator, Mapping, Optional

from tokport.core.diagnostics import Diagnostic
from tokport.core.errors import PathResolutionError, TokenizeError
from tokport.core.span import Span
from tokport.items import Attribute, Item, parse_items
from tokport.tokens import TokenStream

logger = logging.getLogger(__name__)

ModulePath = tuple[str, ...]

SourceReader = Callable[[PurePosixPath], Optional[str]]


@dataclass
class Module:
	crate: str
	path: ModulePath
	# File (relative to the crate root directory) the module's items come from.
	file: str
	items: list[Item] = field(default_factory=list)
	inner_attrs: list[Attribute] = field(default_factory=list)
	children: dict[str, "Module"] = field(default_factory=dict)
	inline: bool = False
	# The `mod` item declaring this module in its parent (None for the root).
	decl: Item | None = None

	@property
	def display(self) -> str:
		return "::".join((self.crate,) + self.path)

	def walk(self) -> Iterator["Module"]:
		yield self
		for child in self.children.values():
			yield from child.walk()


@dataclass
class Crate:
	name: str
	root: Module
	# Relative file path -> source text for every loaded file.
	files: dict[str, str] = field(default_factory=dict)

	def module(self, path: ModulePath) -> Module | None:
		mod = self.root
		for seg in path:
			mod = mod.children.get(seg)
			if mod is None:
				return None
		return mod

	def modules(self) -> Iterator[Module]:
		return self.root.walk()

	@classmethod
	def load(cls, name: str, root_file: Path, diagnostics: list[Diagnostic]) -> "Crate":
		"""Load a crate from disk; `root_file` is e.g. `src/lib.rs`."""
		root_dir = root_file.parent

		def _read(rel: PurePosixPath) -> Optional[str]:
			path = root_dir / Path(*rel.parts)
			if not path.is_file():
				return None
			return path.read_text()

		return _Loader(name, _read, diagnostics, root_dir=str(root_dir)).load(PurePosixPath(root_file.name))

	@classmethod
	def from_sources(
		cls,
		name: str,
		sources: Mapping[str, str],
		diagnostics: list[Diagnostic],
		*,
		root: str = "lib.rs",
	) -> "Crate":
		"""Load a crate from an in-memory `{relative path: text}` mapping."""
		normalized = {str(PurePosixPath(k)): v for k, v in sources.items()}

		def _read(rel: PurePosixPath) -> Optional[str]:
			return normalized.get(str(rel))

		return _Loader(name, _read, diagnostics).load(PurePosixPath(root))


class _Loader:
	def __init__(
		self,
		crate: str,
		reader: SourceReader,
		diagnostics: list[Diagnostic],
		*,
		root_dir: str | None = None,
	) -> None:
		self.crate = crate
		self.reader = reader
		self.diagnostics = diagnostics
		self.root_dir = root_dir
		self.files: dict[str, str] = {}

	def _display_file(self, rel: PurePosixPath) -> str:
		if self.root_dir is None:
			return str(rel)
		return str(PurePosixPath(self.root_dir) / rel)

	def load(self, root: PurePosixPath) -> Crate:
		module = self._load_file(root, (), owns_dir=True, decl=None)
		if module is None:
			self.diagnostics.append(
				Diagnostic(
					message=f"crate `{self.crate}`: root file `{root}` not found",
					code=PathResolutionError.kind,
					phase="load",
					span=Span(file=self._display_file(root)),
				)
			)
			module = Module(crate=self.crate, path=(), file=str(root))
		return Crate(name=self.crate, root=module, files=self.files)

	def _load_file(
		self,
		rel: PurePosixPath,
		path: ModulePath,
		*,
		owns_dir: bool,
		decl: Item | None,
	) -> Module | None:
		source = self.reader(rel)
		if source is None:
			return None
		if str(rel) in self.files:
			return None
		self.files[str(rel)] = source
		logger.debug("crate %s: loading %s as module %s", self.crate, rel, "::".join(path) or "<root>")
		module = Module(crate=self.crate, path=path, file=str(rel), decl=decl)
		try:
			tokens = TokenStream.parse(source, file=self._display_file(rel))
		except TokenizeError as err:
			self.diagnostics.append(err.to_diagnostic())
			return module
		inner_attrs, items = parse_items(tokens)
		module.inner_attrs = inner_attrs
		module.items = items
		child_dir = rel.parent if owns_dir else rel.parent / rel.stem
		self._load_children(module, child_dir)
		return module

	def _load_children(self, module: Module, child_dir: PurePosixPath) -> None:
		for item in module.items:
			if item.kind != "mod" or item.ident is None:
				continue
			child_path = module.path + (item.ident,)
			if item.content is not None:
				child = Module(
					crate=self.crate,
					path=child_path,
					file=module.file,
					items=list(item.content),
					inner_attrs=list(item.inner_attrs),
					inline=True,
					decl=item,
				)
				self._load_children(child, child_dir / item.ident)
			else:
				child = self._load_file_module(item, child_path, child_dir)
				if child is None:
					continue
			module.children[item.ident] = child

	def _load_file_module(self, item: Item, path: ModulePath, child_dir: PurePosixPath) -> Module | None:
		name = item.ident or ""
		flat = child_dir / f"{name}.rs"
		nested = child_dir / name / "mod.rs"
		child = self._load_file(flat, path, owns_dir=False, decl=item)
		if child is None:
			child = self._load_file(nested, path, owns_dir=True, decl=item)
		if child is None:
			self.diagnostics.append(
				Diagnostic(
					message=f"file not found for module `{name}` (looked for `{flat}` and `{nested}`)",
					code=PathResolutionError.kind,
					phase="load",
					span=item.span,
				)
			)
		return child


__all__ = ["Crate", "Module", "ModulePath"]
