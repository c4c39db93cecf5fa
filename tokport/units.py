# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Generation units and the decorators that declare them.

A macro package is a plain Python module; every module-level GenerationUnit
in it is reachable as `package::name` from the crates of a workspace.

	from tokport import import_tokens_proc, proc_macro

	@proc_macro
	def shout(tokens):
		...

	@import_tokens_proc
	def describe(tokens):
		# `tokens` are the tokens of the item named at the call site
		...

`@import_tokens_proc` and `@import_tokens_attr` also create the hidden inner
callback the forwarded item is delivered to and place it in the module
namespace next to the decorated function.
"""

from __future__ import annotations

import inspect
import logging
import sys
from dataclasses import dataclass, field
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping

from tokport.core.errors import ArgumentParseError, ExpansionError, ImportSignatureError, TokportError
from tokport.core.span import Span
from tokport.invocation import ForwardRequest, Invocation, split_forwarded
from tokport.items import ItemPath
from tokport.naming import ATTR, PROC, inner_name
from tokport.tokens import TokenStream

if TYPE_CHECKING:
	from tokport.context import ExpansionContext

logger = logging.getLogger(__name__)


def coerce_result(value: Any, unit: str) -> TokenStream | ForwardRequest | Invocation:
	"""Normalize what a generation function returned."""
	if isinstance(value, (TokenStream, ForwardRequest, Invocation)):
		return value
	if value is None or isinstance(value, str):
		return TokenStream.coerce(value)
	if isinstance(value, (list, tuple)):
		return TokenStream(value)
	raise ExpansionError(
		f"generation unit `{unit}` returned {type(value).__name__}; "
		"expected a TokenStream, str, None, ForwardRequest or Invocation"
	)


@dataclass
class GenerationUnit:
	"""Base of everything callable as a macro from a crate."""

	name: str
	func: Callable[..., Any]
	hidden: bool = False
	kind: str = field(default="proc", init=False)

	@property
	def attribute(self) -> bool:
		return False

	def _run(self, *args: TokenStream) -> TokenStream | ForwardRequest | Invocation:
		try:
			value = self.func(*args)
		except TokportError:
			raise
		except Exception as err:
			raise ExpansionError(
				f"generation unit `{self.name}` raised {type(err).__name__}: {err}",
				span=_func_span(self.func),
			) from err
		return coerce_result(value, self.name)

	def __call__(self, *args: Any, **kwargs: Any) -> Any:
		return self.func(*args, **kwargs)


@dataclass
class ProcMacro(GenerationUnit):
	"""Function-like unit: `name!(tokens)`."""

	def call(self, ctx: "ExpansionContext", tokens: TokenStream) -> TokenStream | ForwardRequest | Invocation:
		return self._run(tokens)

	def receive(self, ctx: "ExpansionContext", invocation: Invocation) -> TokenStream | ForwardRequest | Invocation:
		"""Deliver a forwarded item; plain units see the textual payload."""
		return self.call(ctx, invocation.payload())


@dataclass
class AttributeMacro(GenerationUnit):
	"""Attribute unit: `#[name(attr)] item`."""

	kind: str = field(default="attr", init=False)

	@property
	def attribute(self) -> bool:
		return True

	def call_attr(
		self,
		ctx: "ExpansionContext",
		attr: TokenStream,
		item: TokenStream,
	) -> TokenStream | ForwardRequest | Invocation:
		return self._run(attr, item)


def _callback_path(ctx: "ExpansionContext", hidden: str) -> ItemPath:
	invoked = ctx.invoked_as
	if invoked is None or invoked.prefix is None:
		return ItemPath.of(hidden)
	return invoked.prefix.join(hidden)


def _target_path(tokens: TokenStream, unit: str) -> ItemPath:
	try:
		return ItemPath.parse(tokens)
	except ArgumentParseError as err:
		raise ArgumentParseError(
			f"`{unit}` expects the path of an exported item: {err.message}",
			span=err.span if err.span.known else tokens.span,
		) from err


@dataclass
class ImportProcMacro(ProcMacro):
	"""Outer unit of `@import_tokens_proc`: `name!(path::to::Item)`."""

	qualifier: ItemPath | None = None
	inner: str = ""

	def call(self, ctx: "ExpansionContext", tokens: TokenStream) -> ForwardRequest:
		return ForwardRequest(
			path=_target_path(tokens, self.name),
			callback=_callback_path(ctx, self.inner),
			qualifier=self.qualifier,
		)


@dataclass
class ImportAttributeMacro(AttributeMacro):
	"""Outer unit of `@import_tokens_attr`: `#[name(path::to::Item)] item`."""

	qualifier: ItemPath | None = None
	inner: str = ""

	def call_attr(self, ctx: "ExpansionContext", attr: TokenStream, item: TokenStream) -> ForwardRequest:
		return ForwardRequest(
			path=_target_path(attr, self.name),
			callback=_callback_path(ctx, self.inner),
			extra=item,
			qualifier=self.qualifier,
		)


@dataclass
class InnerCallback(ProcMacro):
	"""Hidden unit that receives the forwarded item and runs the user function."""

	importer: str = PROC

	def receive(self, ctx: "ExpansionContext", invocation: Invocation) -> TokenStream | ForwardRequest | Invocation:
		if self.importer == ATTR:
			if invocation.extra is None:
				raise ExpansionError(
					f"`{self.name}` needs the annotated item; it was forwarded without one",
					span=ctx.call_site,
				)
			return self._run(invocation.tokens, invocation.extra)
		if invocation.extra is not None:
			raise ExpansionError(
				f"`{self.name}` takes only the forwarded item; it was forwarded with extra tokens `{invocation.extra}`",
				span=ctx.call_site,
			)
		return self._run(invocation.tokens)

	def call(self, ctx: "ExpansionContext", tokens: TokenStream) -> TokenStream | ForwardRequest | Invocation:
		item, extra = split_forwarded(tokens)
		return self.receive(ctx, Invocation(callback=ItemPath.of(self.name), tokens=item, extra=extra))


def _func_span(func: Callable[..., Any]) -> Span:
	code = getattr(func, "__code__", None)
	if code is None:
		return Span()
	return Span(file=code.co_filename, line=code.co_firstlineno, column=1)


def _check_signature(func: Callable[..., Any], expected: int, decorator: str) -> None:
	try:
		sig = inspect.signature(func)
	except (TypeError, ValueError) as err:
		raise ImportSignatureError(
			f"`@{decorator}` cannot inspect the signature of {func!r}",
			span=_func_span(func),
		) from err
	positional = 0
	for param in sig.parameters.values():
		if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
			if param.default is param.empty:
				positional += 1
		elif param.kind is param.VAR_POSITIONAL:
			positional = -1
			break
		elif param.kind is param.KEYWORD_ONLY and param.default is param.empty:
			positional = -1
			break
	if positional != expected:
		shape = "(tokens)" if expected == 1 else "(attr, tokens)"
		raise ImportSignatureError(
			f"`@{decorator}` requires a function of exactly {expected} positional "
			f"parameter{'s' if expected > 1 else ''} {shape}, `{func.__name__}` has signature {sig}",
			span=_func_span(func),
		)


def _check_module_level(func: Callable[..., Any], decorator: str) -> None:
	# The hidden callback is published next to the importer in its module.
	if "<locals>" in getattr(func, "__qualname__", ""):
		raise ImportSignatureError(
			f"`@{decorator}` must decorate a module-level function, `{func.__qualname__}` is nested",
			span=_func_span(func),
		)


def _namespace(func: Callable[..., Any]) -> dict[str, Any]:
	namespace = getattr(func, "__globals__", None)
	if namespace is None:
		namespace = vars(sys.modules[func.__module__])
	return namespace


def _qualifier(value: "ItemPath | str | None") -> ItemPath | None:
	if value is None or isinstance(value, ItemPath):
		return value
	return ItemPath.parse(value)


def proc_macro(func: Callable[..., Any] | None = None, *, name: str | None = None) -> Any:
	"""Declare a function-like unit `f(tokens)`."""

	def wrap(fn: Callable[..., Any]) -> ProcMacro:
		return ProcMacro(name=name or fn.__name__, func=fn)

	return wrap(func) if func is not None else wrap


def proc_macro_attribute(func: Callable[..., Any] | None = None, *, name: str | None = None) -> Any:
	"""Declare an attribute unit `f(attr, item)`."""

	def wrap(fn: Callable[..., Any]) -> AttributeMacro:
		return AttributeMacro(name=name or fn.__name__, func=fn)

	return wrap(func) if func is not None else wrap


def import_tokens_proc(func: "Callable[..., Any] | str | ItemPath | None" = None) -> Any:
	"""
	Turn `f(tokens)` into a unit invoked as `f!(path::to::Item)`.

	Use bare (`@import_tokens_proc`) or with the path the forwarding support
	is reachable under from the call sites (`@import_tokens_proc("::my_facade::tokport")`).
	The function must be defined at module level: its hidden callback is
	published in the same module.
	"""
	if callable(func):
		return _make_proc_importer(func, None)
	qualifier = _qualifier(func)
	return lambda fn: _make_proc_importer(fn, qualifier)


def import_tokens_attr(func: "Callable[..., Any] | str | ItemPath | None" = None) -> Any:
	"""
	Turn `f(attr, tokens)` into an attribute `#[f(path::to::Item)]`.

	`f` receives the tokens of the named item and of the annotated item.
	Module-level functions only, like `import_tokens_proc`.
	"""
	if callable(func):
		return _make_attr_importer(func, None)
	qualifier = _qualifier(func)
	return lambda fn: _make_attr_importer(fn, qualifier)


def _make_proc_importer(func: Callable[..., Any], qualifier: ItemPath | None) -> ImportProcMacro:
	_check_signature(func, 1, "import_tokens_proc")
	_check_module_level(func, "import_tokens_proc")
	hidden = inner_name(PROC, func.__name__)
	inner = InnerCallback(name=hidden, func=func, hidden=True, importer=PROC)
	_namespace(func)[hidden] = inner
	logger.debug("import_tokens_proc %s: inner callback %s", func.__name__, hidden)
	return ImportProcMacro(name=func.__name__, func=func, qualifier=qualifier, inner=hidden)


def _make_attr_importer(func: Callable[..., Any], qualifier: ItemPath | None) -> ImportAttributeMacro:
	_check_signature(func, 2, "import_tokens_attr")
	_check_module_level(func, "import_tokens_attr")
	hidden = inner_name(ATTR, func.__name__)
	inner = InnerCallback(name=hidden, func=func, hidden=True, importer=ATTR)
	_namespace(func)[hidden] = inner
	logger.debug("import_tokens_attr %s: inner callback %s", func.__name__, hidden)
	return ImportAttributeMacro(name=func.__name__, func=func, qualifier=qualifier, inner=hidden)


class MacroPackage:
	"""Named collection of generation units (a macro package module)."""

	def __init__(self, name: str, units: Mapping[str, GenerationUnit]) -> None:
		self.name = name
		self._units = dict(units)

	@classmethod
	def from_module(cls, name: str, module: ModuleType) -> "MacroPackage":
		units = {attr: value for attr, value in vars(module).items() if isinstance(value, GenerationUnit)}
		logger.debug("macro package %s (%s): %s", name, module.__name__, ", ".join(sorted(units)))
		return cls(name, units)

	def get(self, name: str) -> GenerationUnit | None:
		return self._units.get(name)

	def __contains__(self, name: object) -> bool:
		return name in self._units

	def __iter__(self) -> Iterator[GenerationUnit]:
		return iter(self._units.values())

	def public_units(self) -> list[GenerationUnit]:
		return [unit for unit in self._units.values() if not unit.hidden]


__all__ = [
	"AttributeMacro",
	"GenerationUnit",
	"ImportAttributeMacro",
	"ImportProcMacro",
	"InnerCallback",
	"MacroPackage",
	"ProcMacro",
	"coerce_result",
	"import_tokens_attr",
	"import_tokens_proc",
	"proc_macro",
	"proc_macro_attribute",
]
