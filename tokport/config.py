# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Settings and the workspace manifest (`tokport.json`).

Manifest shape:

	{
	  "root": "::tokport",
	  "recursion_limit": 128,
	  "python_path": ["macros"],
	  "crates": {"app": "app/src/lib.rs", "shapes": {"path": "shapes/lib.rs"}},
	  "macros": {"my_macros": "my_macros.generators"}
	}

Relative paths are resolved against the manifest's directory. `TOKPORT_ROOT`
and `TOKPORT_RECURSION_LIMIT` override the corresponding values.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from tokport.core.errors import ArgumentParseError, ConfigError
from tokport.items.paths import ItemPath

DEFAULT_ROOT = "::tokport"
DEFAULT_RECURSION_LIMIT = 128

ENV_ROOT = "TOKPORT_ROOT"
ENV_RECURSION_LIMIT = "TOKPORT_RECURSION_LIMIT"


@dataclass(frozen=True)
class Settings:
	# Path under which the forwarding support is reachable from every crate.
	root: str = DEFAULT_ROOT
	recursion_limit: int = DEFAULT_RECURSION_LIMIT

	def __post_init__(self) -> None:
		_parse_root(self.root)
		if self.recursion_limit < 1:
			raise ConfigError(f"recursion_limit must be positive, got {self.recursion_limit}")

	@property
	def root_path(self) -> ItemPath:
		return _parse_root(self.root)

	def with_env(self, environ: Mapping[str, str] | None = None) -> "Settings":
		"""Apply `TOKPORT_*` overrides from `environ` (default: os.environ)."""
		env = os.environ if environ is None else environ
		updates: dict[str, Any] = {}
		root = env.get(ENV_ROOT)
		if root:
			updates["root"] = root
		limit = env.get(ENV_RECURSION_LIMIT)
		if limit:
			try:
				updates["recursion_limit"] = int(limit)
			except ValueError as err:
				raise ConfigError(f"{ENV_RECURSION_LIMIT} must be an integer, got {limit!r}") from err
		return replace(self, **updates) if updates else self


def _parse_root(root: str) -> ItemPath:
	try:
		return ItemPath.parse(root)
	except ArgumentParseError as err:
		raise ConfigError(f"root qualifier {root!r} is not a path: {err.message}") from err


@dataclass(frozen=True)
class Manifest:
	path: Path
	settings: Settings
	# Crate name -> root source file.
	crates: dict[str, Path] = field(default_factory=dict)
	# Macro package name -> dotted Python module.
	macros: dict[str, str] = field(default_factory=dict)
	python_path: list[Path] = field(default_factory=list)


def load_manifest(path: Path, *, environ: Mapping[str, str] | None = None) -> Manifest:
	try:
		raw = json.loads(path.read_text())
	except FileNotFoundError as err:
		raise ConfigError(f"manifest not found: {path}") from err
	except json.JSONDecodeError as err:
		raise ConfigError(f"manifest {path} is not valid JSON: {err}") from err
	if not isinstance(raw, dict):
		raise ConfigError("manifest must be a JSON object")
	base = path.parent

	settings_kwargs: dict[str, Any] = {}
	if "root" in raw:
		if not isinstance(raw["root"], str):
			raise ConfigError("manifest root must be a string")
		settings_kwargs["root"] = raw["root"]
	if "recursion_limit" in raw:
		if not isinstance(raw["recursion_limit"], int) or isinstance(raw["recursion_limit"], bool):
			raise ConfigError("manifest recursion_limit must be an integer")
		settings_kwargs["recursion_limit"] = raw["recursion_limit"]
	settings = Settings(**settings_kwargs).with_env(environ)

	crates_raw = raw.get("crates") or {}
	if not isinstance(crates_raw, dict):
		raise ConfigError("manifest crates must be an object")
	crates: dict[str, Path] = {}
	for name, entry in crates_raw.items():
		if isinstance(entry, dict):
			entry = entry.get("path")
		if not isinstance(entry, str) or not entry:
			raise ConfigError(f"crate {name!r} must map to a root file path")
		if not name.isidentifier():
			raise ConfigError(f"crate name {name!r} is not an identifier")
		crates[name] = base / entry

	macros_raw = raw.get("macros") or {}
	if not isinstance(macros_raw, dict) or not all(isinstance(v, str) for v in macros_raw.values()):
		raise ConfigError("manifest macros must map package names to module names")

	python_path_raw = raw.get("python_path") or []
	if not isinstance(python_path_raw, list) or not all(isinstance(p, str) for p in python_path_raw):
		raise ConfigError("manifest python_path must be a list of directories")

	return Manifest(
		path=path,
		settings=settings,
		crates=crates,
		macros=dict(macros_raw),
		python_path=[base / p for p in python_path_raw],
	)


__all__ = [
	"DEFAULT_RECURSION_LIMIT",
	"DEFAULT_ROOT",
	"ENV_RECURSION_LIMIT",
	"ENV_ROOT",
	"Manifest",
	"Settings",
	"load_manifest",
]
