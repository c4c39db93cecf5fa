# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Error taxonomy of the export/forward/import protocol.

Each error is terminal for the expansion chain that raised it. Passes catch
`TokportError`, turn it into a Diagnostic via `to_diagnostic()` and carry on
with unrelated chains.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from .diagnostics import Diagnostic
from .span import Span


@dataclass(eq=False)
class TokportError(Exception):
	"""A structured error tied to the offending declaration or call site."""

	kind: ClassVar[str] = "TokportError"
	phase: ClassVar[str | None] = None

	message: str
	span: Span = field(default_factory=Span)
	notes: list[str] = field(default_factory=list)

	def __str__(self) -> str:
		return f"{self.kind}: {self.message}"

	def to_diagnostic(self) -> Diagnostic:
		return Diagnostic(
			message=self.message,
			code=self.kind,
			phase=self.phase,
			severity="error",
			span=self.span,
			notes=list(self.notes),
		)


@dataclass(eq=False)
class NameCollisionError(TokportError):
	"""ExportName already registered in the enclosing or root scope."""

	kind: ClassVar[str] = "NameCollisionError"
	phase: ClassVar[str | None] = "export"


@dataclass(eq=False)
class MissingIdentifierError(TokportError):
	"""Exported item has no identifier and no explicit name was given."""

	kind: ClassVar[str] = "MissingIdentifierError"
	phase: ClassVar[str | None] = "export"


@dataclass(eq=False)
class PathResolutionError(TokportError):
	"""A path (item or unit) does not resolve in the requesting scope."""

	kind: ClassVar[str] = "PathResolutionError"
	phase: ClassVar[str | None] = "forward"


@dataclass(eq=False)
class ArgumentParseError(TokportError):
	"""An argument is not a well-formed path (or explicit export name)."""

	kind: ClassVar[str] = "ArgumentParseError"
	phase: ClassVar[str | None] = "import"


@dataclass(eq=False)
class ImportSignatureError(TokportError):
	"""An importer was declared on a function with the wrong parameter shape."""

	kind: ClassVar[str] = "ImportSignatureError"
	phase: ClassVar[str | None] = "import"


@dataclass(eq=False)
class TokenizeError(TokportError):
	kind: ClassVar[str] = "TokenizeError"
	phase: ClassVar[str | None] = "lex"


@dataclass(eq=False)
class ExpansionError(TokportError):
	"""Call site could not be expanded (bad unit result, recursion limit, ...)."""

	kind: ClassVar[str] = "ExpansionError"
	phase: ClassVar[str | None] = "expand"


class ConfigError(ValueError):
	"""Invalid workspace manifest or settings value."""


__all__ = [
	"ArgumentParseError",
	"ConfigError",
	"ExpansionError",
	"ImportSignatureError",
	"MissingIdentifierError",
	"NameCollisionError",
	"PathResolutionError",
	"TokenizeError",
	"TokportError",
]
