# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Common diagnostic structure for the export and expansion passes.

Every failed expansion chain ends up as one error Diagnostic (plus optional
notes); passes collect them into a list instead of stopping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .span import Span


@dataclass
class Diagnostic:
	"""Represents a diagnostic (error/note) tied to a source span."""

	message: str
	# Error kind, e.g. `NameCollisionError`.
	code: str | None = None
	# Pipeline phase that produced it: lex, export, forward, import, expand.
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	def format_human(self) -> str:
		kind = f"[{self.code}] " if self.code else ""
		lines = [f"{self.span.short()}: {self.severity}: {kind}{self.message}"]
		lines.extend(f"  note: {note}" for note in self.notes)
		return "\n".join(lines)

	def to_dict(self) -> dict[str, Any]:
		return {
			"phase": self.phase,
			"code": self.code,
			"message": self.message,
			"severity": self.severity,
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
			"notes": list(self.notes),
		}


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
	return any(d.severity == "error" for d in diagnostics)


__all__ = ["Diagnostic", "has_errors"]
