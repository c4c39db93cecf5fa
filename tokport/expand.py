# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Expander: the two passes over a workspace.

Pass 1 registers every export of every crate (aliases first), so lookups in
pass 2 never depend on crate or module order. Pass 2 rewrites each module
depth-first: attribute units, export attributes, item-position macro calls,
bridged `use` items, inline modules and macro calls nested in token trees.
Every unit output is parsed and expanded again until no known macro remains.

An expansion chain that fails records one diagnostic and leaves
`compile_error! { "<Kind>: <message>" }` at its call site; other chains are
unaffected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable

from tokport.bridge import bridge_attribute, bridge_use, bridged_entries
from tokport.context import ExpansionContext, active
from tokport.core.diagnostics import Diagnostic, has_errors
from tokport.core.errors import ExpansionError, PathResolutionError, TokportError
from tokport.core.span import Span
from tokport.export import ExportTable, Exporter, ForwardingUnit, alias_name, explicit_export_name
from tokport.forward import Forwarder
from tokport.invocation import ForwardRequest
from tokport.items import Attribute, Item, ItemPath, parse_items, scan_path
from tokport.naming import is_hidden
from tokport.resolve import Scope
from tokport.scope import MacroResolver, MacroScope, MacroTarget
from tokport.tokens import Delimiter, Group, Ident, Literal, Punct, TokenStream, TokenTree
from tokport.units import ProcMacro
from tokport.workspace import Workspace

logger = logging.getLogger(__name__)

ModulePath = tuple[str, ...]

Step = Callable[[ExpansionContext], "TokenStream | ForwardRequest"]


def compile_error(err: TokportError) -> TokenStream:
	"""`compile_error! { "<Kind>: <message>" }`"""
	message = TokenStream([Literal.string(str(err))])
	return TokenStream([
		Ident("compile_error", span=err.span),
		Punct("!"),
		Group(Delimiter.BRACE, message, span=err.span),
	])


def render_items(inner_attrs: list[Attribute], items: list[Item]) -> str:
	lines = [attr.tokens.to_string() for attr in inner_attrs]
	lines.extend(item.tokens.to_string() for item in items)
	return "\n".join(lines) + "\n" if lines else ""


@dataclass
class ExpandedCrate:
	name: str
	# Relative file path -> expanded source text.
	files: dict[str, str] = field(default_factory=dict)
	modules: dict[ModulePath, list[Item]] = field(default_factory=dict)
	inner_attrs: dict[ModulePath, list[Attribute]] = field(default_factory=dict)

	def items(self, module: ModulePath = ()) -> list[Item]:
		return list(self.modules.get(tuple(module), ()))

	def find(self, ident: str, module: ModulePath = ()) -> Item | None:
		"""First expanded item named `ident` in `module`."""
		return next((item for item in self.items(module) if item.ident == ident), None)

	def render(self, module: ModulePath = ()) -> str:
		module = tuple(module)
		return render_items(self.inner_attrs.get(module, []), self.items(module))


@dataclass
class ExpansionResult:
	crates: dict[str, ExpandedCrate]
	exports: list[ForwardingUnit]
	diagnostics: list[Diagnostic]

	@property
	def ok(self) -> bool:
		return not has_errors(self.diagnostics)

	def crate(self, name: str) -> ExpandedCrate:
		return self.crates[name]

	def write(self, out_dir: Path) -> list[Path]:
		"""Write every expanded file under `out_dir/<crate>/`."""
		written: list[Path] = []
		for crate in self.crates.values():
			for rel, text in crate.files.items():
				target = out_dir / crate.name / rel
				target.parent.mkdir(parents=True, exist_ok=True)
				target.write_text(text)
				written.append(target)
		return written


@dataclass
class _ModuleState:
	crate: str
	path: ModulePath
	macros: MacroScope
	out: ExpandedCrate

	@property
	def scope(self) -> Scope:
		return Scope(self.crate, self.path)


class Expander:
	def __init__(self, workspace: Workspace) -> None:
		self.workspace = workspace
		self.limit = workspace.settings.recursion_limit
		self.resolver = workspace.resolver
		self.forwarder = Forwarder(self.resolver)
		self.macros = MacroResolver(workspace)
		self.exporters: dict[str, Exporter] = {}
		self.diagnostics: list[Diagnostic] = list(workspace.diagnostics)
		# id(item) -> error for source items that failed before pass 2.
		self._failed: dict[int, TokportError] = {}
		# id(item) of source exports whose attribute units run first.
		self._deferred: set[int] = set()

	def run(self) -> ExpansionResult:
		ws = self.workspace
		ws.tables = {name: ExportTable(name) for name in ws.crates}
		self.resolver.collect_mounts()
		for name in ws.crates:
			self.exporters[name] = Exporter(ws.tables[name], is_support_path=self._support_checker(name))
		self._collect_aliases()
		self._collect_exports()
		crates = {name: self._expand_crate(name) for name in ws.crates}
		exports = [unit for table in ws.tables.values() for unit in table]
		result = ExpansionResult(crates=crates, exports=exports, diagnostics=self.diagnostics)
		logger.info(
			"expanded %d crate(s): %d export(s), %d diagnostic(s)",
			len(crates),
			len(exports),
			len(self.diagnostics),
		)
		return result

	def _support_checker(self, crate: str) -> Callable[[ItemPath, ModulePath], bool]:
		def check(prefix: ItemPath, module: ModulePath) -> bool:
			return self.resolver.is_support_path(prefix, Scope(crate, module))

		return check

	def _report(self, err: TokportError, span: Span | None = None) -> TokportError:
		if not err.span.known and span is not None:
			err.span = span
		self.diagnostics.append(err.to_diagnostic())
		logger.debug("%s at %s", err, err.span.short())
		return err

	def _fail(self, item: Item, err: TokportError) -> None:
		self._failed[id(item)] = self._report(err, item.span)

	def _error_item(self, err: TokportError) -> Item:
		_, items = parse_items(compile_error(err), origin="expansion")
		return items[0]

	# -- pass 1 -------------------------------------------------------------

	def _collect_aliases(self) -> None:
		for name, crate in self.workspace.crates.items():
			exporter = self.exporters[name]
			for module in crate.modules():
				for item in module.items:
					try:
						alias = alias_name(item)
					except TokportError as err:
						self._fail(item, err)
						continue
					if alias is not None:
						exporter.add_alias(alias)

	def _collect_exports(self) -> None:
		for name, crate in self.workspace.crates.items():
			exporter = self.exporters[name]
			for module in crate.modules():
				macros: MacroScope | None = None
				for item in module.items:
					if id(item) in self._failed:
						continue
					try:
						found = exporter.export_attribute(item, module.path)
						if found is None:
							continue
						if macros is None:
							macros = self._macro_scope(name, module.path, module.items)
						if self._unit_before(item, found[0], macros, Scope(name, module.path)):
							# Exported from the attribute unit's output in pass 2.
							self._deferred.add(id(item))
							continue
						exporter.export_item(item, module.path)
					except TokportError as err:
						self._fail(item, err)

	def _unit_before(self, item: Item, export_attr: Attribute, macros: MacroScope, scope: Scope) -> bool:
		"""Does an attribute unit above `export_attr` rewrite `item` first?"""
		for attr in item.attrs:
			if attr is export_attr:
				return False
			if attr.path is None:
				continue
			try:
				target = self.macros.resolve(attr.path, macros, scope)
			except TokportError:
				# Reported when pass 2 reaches the attribute.
				continue
			if target is not None and not isinstance(target, str) and target.attribute:
				return True
		return False

	# -- pass 2 -------------------------------------------------------------

	def _expand_crate(self, name: str) -> ExpandedCrate:
		crate = self.workspace.crates[name]
		out = ExpandedCrate(name)
		for module in crate.modules():
			if module.inline:
				# Expanded with its parent.
				continue
			inner, items = self._expand_module(name, module.path, module.inner_attrs, module.items, out)
			out.files[module.file] = render_items(inner, items)
		return out

	def _expand_module(
		self,
		crate: str,
		path: ModulePath,
		inner_attrs: list[Attribute] | tuple[Attribute, ...],
		items: list[Item] | tuple[Item, ...],
		out: ExpandedCrate,
	) -> tuple[list[Attribute], list[Item]]:
		state = _ModuleState(crate, path, self._macro_scope(crate, path, items), out)
		expanded: list[Item] = []
		for item in items:
			expanded.extend(self._expand_item(item, state, 0))
		out.modules[path] = expanded
		out.inner_attrs[path] = list(inner_attrs)
		return list(inner_attrs), expanded

	def _macro_scope(self, crate: str, path: ModulePath, items: list[Item] | tuple[Item, ...]) -> MacroScope:
		macros = MacroScope()
		support = self._support_in(Scope(crate, path))
		for item in items:
			if item.kind != "use" or id(item) in self._failed:
				continue
			try:
				entries = item.use_entries()
			except TokportError as err:
				self._fail(item, err)
				continue
			macros.add(entries)
			found = bridge_attribute(item, support)
			if found is not None:
				macros.add(bridged_entries(entries, found[1]))
		return macros

	def _support_in(self, scope: Scope) -> Callable[[ItemPath], bool]:
		return lambda prefix: self.resolver.is_support_path(prefix, scope)

	def _expand_item(self, item: Item, state: _ModuleState, depth: int) -> list[Item]:
		failed = self._failed.get(id(item))
		if failed is not None:
			return [self._error_item(failed)]
		exporter = self.exporters[state.crate]
		try:
			found = None if id(item) in self._deferred else exporter.export_attribute(item, state.path)
			if found is not None:
				attr, emit = found
				if item.origin != "source":
					exporter.export(item, state.path, explicit_export_name(attr), emit=emit, attr=attr)
				if not emit:
					return []
				item = item.without_attr(attr)
			alias = alias_name(item)
		except TokportError as err:
			return [self._error_item(self._report(err, item.span))]
		if alias is not None:
			if item.origin != "source":
				exporter.add_alias(alias)
			return []

		for attr in item.attrs:
			if attr.path is None:
				continue
			try:
				target = self.macros.resolve(attr.path, state.macros, state.scope)
			except TokportError as err:
				return [self._error_item(self._report(err, attr.span))]
			if target is None or isinstance(target, str) or not target.attribute:
				continue
			unit = target
			rest = item.without_attr(attr)
			args = attr.args if attr.args is not None else TokenStream()
			output = self._run_chain(
				lambda ctx: unit.call_attr(ctx, args, rest.tokens),
				state,
				attr.path,
				attr.span,
				depth,
			)
			return self._reparse(output, state, depth + 1)

		if item.kind == "use":
			return self._expand_use(item, state)

		if item.kind == "macro_call" and item.macro_path is not None and item.macro_args is not None:
			try:
				target = self.macros.resolve(item.macro_path, state.macros, state.scope)
			except TokportError as err:
				return [self._error_item(self._report(err, item.span))]
			if target is not None:
				output = self._call_macro(target, item.macro_path, item.macro_args.stream, state, item.span, depth)
				return self._reparse(output, state, depth + 1)

		if item.kind == "mod" and item.content is not None and item.ident is not None:
			inner, items = self._expand_module(
				state.crate,
				state.path + (item.ident,),
				item.inner_attrs,
				item.content,
				state.out,
			)
			return [item.with_content(inner, items)]

		if item.kind == "macro_rules":
			return [item]
		body = self._expand_nested(item.body, state, depth)
		if body is item.body:
			return [item]
		return [replace(item, body=body)]

	def _expand_use(self, item: Item, state: _ModuleState) -> list[Item]:
		try:
			if item.origin != "source":
				state.macros.add(item.use_entries())
			bridged = bridge_use(item, self._support_in(state.scope))
		except TokportError as err:
			return [self._error_item(self._report(err, item.span))]
		if bridged is None:
			return [item]
		items, hidden = bridged
		if item.origin != "source":
			state.macros.add(hidden)
		return items

	def _reparse(self, output: TokenStream, state: _ModuleState, depth: int) -> list[Item]:
		_, items = parse_items(output, origin="expansion")
		expanded: list[Item] = []
		for item in items:
			expanded.extend(self._expand_item(item, state, depth))
		return expanded

	def _expand_nested(self, stream: TokenStream, state: _ModuleState, depth: int) -> TokenStream:
		"""Expand macro calls inside a token stream (function bodies, initializers)."""
		trees = stream.trees
		out: list[TokenTree] = []
		changed = False
		idx = 0
		while idx < len(trees):
			tree = trees[idx]
			if isinstance(tree, Group):
				inner = self._expand_nested(tree.stream, state, depth)
				if inner is not tree.stream:
					tree = Group(tree.delimiter, inner, span=tree.span)
					changed = True
				out.append(tree)
				idx += 1
				continue
			path, end = scan_path(trees, idx)
			if path is None:
				out.append(tree)
				idx += 1
				continue
			bang = trees[end] if end < len(trees) else None
			args = trees[end + 1] if end + 1 < len(trees) else None
			if isinstance(bang, Punct) and bang.ch == "!" and not bang.joint and isinstance(args, Group):
				expansion: TokenStream | None = None
				try:
					target = self.macros.resolve(path, state.macros, state.scope)
				except TokportError as err:
					target = None
					expansion = compile_error(self._report(err, path.span))
				if target is not None:
					expansion = self._call_macro(target, path, args.stream, state, path.span, depth)
					expansion = self._expand_nested(expansion, state, depth + 1)
				if expansion is not None:
					out.extend(expansion)
					idx = end + 2
					changed = True
					continue
			out.extend(trees[idx:end])
			idx = end
		return TokenStream(out) if changed else stream

	def _call_macro(
		self,
		target: MacroTarget,
		path: ItemPath,
		args: TokenStream,
		state: _ModuleState,
		span: Span,
		depth: int,
	) -> TokenStream:
		if isinstance(target, str):
			return self._run_chain(lambda ctx: Forwarder.parse_request(args), state, path, span, depth)
		if target.attribute:
			err = ExpansionError(f"`{path}` is an attribute unit; apply it as `#[{path}(...)]`", span=span)
			return compile_error(self._report(err))
		unit = target
		return self._run_chain(lambda ctx: unit.call(ctx, args), state, path, span, depth)

	def _run_chain(
		self,
		step: Step,
		state: _ModuleState,
		invoked_as: ItemPath,
		span: Span,
		depth: int,
	) -> TokenStream:
		"""Run one call site to completion: unit, forwards and callbacks."""
		ctx = ExpansionContext(self.forwarder, state.scope, span, invoked_as, depth)
		try:
			self._check_depth(depth, invoked_as, span)
			with active(ctx):
				result = step(ctx)
			hops = 0
			while not isinstance(result, TokenStream):
				hops += 1
				self._check_depth(depth + hops, invoked_as, span)
				if isinstance(result, ForwardRequest):
					result = self.forwarder.forward(result, state.scope)
					continue
				callback = self._callback(result.callback, state)
				callback_ctx = ctx.invoked(result.callback)
				with active(callback_ctx):
					result = callback.receive(callback_ctx, result)
			return result
		except TokportError as err:
			return compile_error(self._report(err, span))

	def _check_depth(self, depth: int, invoked_as: ItemPath, span: Span) -> None:
		if depth >= self.limit:
			raise ExpansionError(
				f"recursion limit reached while expanding `{invoked_as}!`",
				span=span,
				notes=[f"recursion_limit is {self.limit}; raise it in the manifest or with TOKPORT_RECURSION_LIMIT"],
			)

	def _callback(self, path: ItemPath, state: _ModuleState) -> ProcMacro:
		target = self.macros.resolve(path, state.macros, state.scope)
		if isinstance(target, ProcMacro):
			return target
		notes: list[str] = []
		if is_hidden(path.last):
			notes.append("bring importers into scope with `#[use_proc]` / `#[use_attr]` on their `use` item")
		raise PathResolutionError(
			f"cannot find callback `{path}!` from `{state.scope.display}`",
			span=path.span,
			notes=notes,
		)


__all__ = ["ExpandedCrate", "ExpansionResult", "Expander", "compile_error", "render_items"]
