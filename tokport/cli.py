# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from tokport.config import load_manifest
from tokport.core.diagnostics import Diagnostic, has_errors
from tokport.core.errors import ConfigError, TokportError
from tokport.core.span import Span
from tokport.expand import ExpansionResult
from tokport.items import ItemPath
from tokport.resolve import Scope
from tokport.workspace import Workspace

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="tokport", description="Export item tokens and expand importer call sites")
	p.add_argument("-v", "--verbose", action="store_true", help="Log expansion progress to stderr")
	sub = p.add_subparsers(dest="cmd", required=True)

	expand = sub.add_parser("expand", help="Expand every crate of a workspace manifest")
	expand.add_argument("manifest", type=Path, help="Path to tokport.json")
	expand.add_argument("--out", type=Path, default=None, help="Write expanded files under DIR/<crate>/")
	expand.add_argument("--json", action="store_true", help="Emit machine-readable JSON report")

	exports = sub.add_parser("exports", help="List the exported items of every crate")
	exports.add_argument("manifest", type=Path, help="Path to tokport.json")
	exports.add_argument("--json", action="store_true", help="Emit machine-readable JSON report")

	resolve = sub.add_parser("resolve", help="Resolve an item path and print the forwarded tokens")
	resolve.add_argument("manifest", type=Path, help="Path to tokport.json")
	resolve.add_argument("path", type=str, help="Item path, e.g. crate::shapes::Point")
	resolve.add_argument("--crate", type=str, default=None, help="Crate the path is written in (default: first crate)")
	resolve.add_argument("--module", type=str, default="", help="Module the path is written in, e.g. a::b")
	resolve.add_argument("--json", action="store_true", help="Emit machine-readable JSON report")
	return p


def _print_diagnostics(diagnostics: list[Diagnostic], *, as_json: bool, extra: dict | None = None) -> int:
	exit_code = 1 if has_errors(diagnostics) else 0
	if as_json:
		payload = {"exit_code": exit_code, "diagnostics": [d.to_dict() for d in diagnostics]}
		if extra:
			payload.update(extra)
		print(json.dumps(payload))
	else:
		for diag in diagnostics:
			print(diag.format_human(), file=sys.stderr)
	return exit_code


def _config_failure(manifest: Path, err: Exception, *, as_json: bool) -> int:
	diag = Diagnostic(message=str(err), code="ConfigError", phase="config", span=Span(file=str(manifest)))
	return _print_diagnostics([diag], as_json=as_json)


def _load(manifest: Path) -> Workspace:
	return Workspace.from_manifest(load_manifest(manifest))


def _cmd_expand(args: argparse.Namespace) -> int:
	ws = _load(args.manifest)
	result: ExpansionResult = ws.expand()
	extra: dict = {}
	if args.out is not None:
		written = result.write(args.out)
		extra["written"] = [str(p) for p in written]
		logger.info("wrote %d file(s) under %s", len(written), args.out)
	elif not args.json:
		for crate in result.crates.values():
			for rel, text in crate.files.items():
				print(f"// {crate.name}/{rel}")
				print(text, end="")
	if args.json:
		extra["crates"] = {name: crate.files for name, crate in result.crates.items()}
	return _print_diagnostics(result.diagnostics, as_json=args.json, extra=extra)


def _cmd_exports(args: argparse.Namespace) -> int:
	ws = _load(args.manifest)
	result = ws.expand()
	rows = [
		{
			"crate": unit.crate,
			"module": "::".join(unit.module),
			"ident": unit.ident,
			"export_name": unit.name,
			"kind": unit.kind,
			"emit": unit.emit,
		}
		for unit in result.exports
	]
	if not args.json:
		for row in rows:
			where = "::".join(p for p in (row["crate"], row["module"]) if p)
			print(f"{where}::{row['ident']}\t{row['export_name']}\t{row['kind']}")
	return _print_diagnostics(result.diagnostics, as_json=args.json, extra={"exports": rows})


def _cmd_resolve(args: argparse.Namespace) -> int:
	ws = _load(args.manifest)
	result = ws.expand()
	crate = args.crate or next(iter(ws.crates), None)
	if crate is None or crate not in ws.crates:
		raise ConfigError(f"unknown crate {args.crate!r}")
	module = tuple(seg for seg in args.module.split("::") if seg)
	diagnostics = list(result.diagnostics)
	try:
		unit = ws.resolver.resolve_item(ItemPath.parse(args.path), Scope(crate, module))
	except TokportError as err:
		diagnostics.append(err.to_diagnostic())
		return _print_diagnostics(diagnostics, as_json=args.json)
	extra = {"resolved": unit.display, "export_name": unit.name, "tokens": unit.tokens.to_string()}
	if not args.json:
		print(unit.tokens.to_string())
	return _print_diagnostics(diagnostics, as_json=args.json, extra=extra)


_COMMANDS = {
	"expand": _cmd_expand,
	"exports": _cmd_exports,
	"resolve": _cmd_resolve,
}


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
		stream=sys.stderr,
	)
	try:
		return _COMMANDS[args.cmd](args)
	except ConfigError as err:
		return _config_failure(args.manifest, err, as_json=args.json)
	except TokportError as err:
		# Raised while importing a macro package (e.g. a bad importer signature).
		return _print_diagnostics([err.to_diagnostic()], as_json=args.json)


__all__ = ["main"]
