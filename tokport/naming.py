# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Derived names shared by the exporter, the import generators and the bridge.

All derivations are pure functions of their input, so re-running export on the
same source always yields the same names.
"""

from __future__ import annotations

from tokport.items.paths import ItemPath

EXPORT_PREFIX = "__export_tokens_tt_"
PROC = "proc"
ATTR = "attr"
_INNER_KINDS = (PROC, ATTR)


def to_snake_case(ident: str) -> str:
	"""
	Normalize an identifier to snake case.

	`MyStruct`, `my_struct` and `My_Struct` all become `my_struct`;
	`HTTPServer` becomes `http_server`. Characters outside `[A-Za-z0-9_]`
	are dropped (so `r#type` becomes `type`).
	"""
	if ident.startswith("r#"):
		ident = ident[2:]
	chars = [ch for ch in ident if ch == "_" or (ch.isascii() and ch.isalnum())]
	out: list[str] = []
	for idx, ch in enumerate(chars):
		if ch.isupper() and idx > 0:
			prev = chars[idx - 1]
			nxt = chars[idx + 1] if idx + 1 < len(chars) else ""
			boundary = prev.islower() or prev.isdigit() or (prev.isupper() and nxt.islower())
			if boundary and out and out[-1] != "_":
				out.append("_")
		out.append(ch.lower())
	return "".join(out)


def export_name(ident: str) -> str:
	"""ExportName of an item identifier (or of an explicit export name)."""
	return EXPORT_PREFIX + to_snake_case(ident)


def export_path(path: ItemPath) -> ItemPath:
	"""`a::b::MyStruct` -> `a::b::__export_tokens_tt_my_struct`."""
	return path.with_last(export_name(path.last))


def inner_name(kind: str, name: str) -> str:
	"""Hidden callback identifier paired with the importer unit `name`."""
	if kind not in _INNER_KINDS:
		raise ValueError(f"unknown importer kind {kind!r}")
	return f"__import_tokens_{kind}_{name}_inner"


def is_hidden(name: str) -> bool:
	return name.startswith("__")


__all__ = [
	"ATTR",
	"EXPORT_PREFIX",
	"PROC",
	"export_name",
	"export_path",
	"inner_name",
	"is_hidden",
	"to_snake_case",
]
