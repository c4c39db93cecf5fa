# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Per-call expansion context, visible to generation units while they run."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Iterator

from tokport.core.span import Span
from tokport.items import ItemPath
from tokport.resolve import Scope

if TYPE_CHECKING:
	from tokport.forward import Forwarder


@dataclass(frozen=True)
class ExpansionContext:
	forwarder: "Forwarder"
	scope: Scope
	call_site: Span = field(default_factory=Span)
	# Path the running unit was invoked through (`pkg::name` or `name`).
	invoked_as: ItemPath | None = None
	depth: int = 0

	def invoked(self, path: ItemPath) -> "ExpansionContext":
		return replace(self, invoked_as=path)


_CURRENT: ContextVar[ExpansionContext | None] = ContextVar("tokport_expansion", default=None)


def current_context() -> ExpansionContext:
	ctx = _CURRENT.get()
	if ctx is None:
		raise RuntimeError("no expansion is running; this helper is only usable inside a generation unit")
	return ctx


@contextmanager
def active(ctx: ExpansionContext) -> Iterator[ExpansionContext]:
	token = _CURRENT.set(ctx)
	try:
		yield ctx
	finally:
		_CURRENT.reset(token)


__all__ = ["ExpansionContext", "active", "current_context"]
