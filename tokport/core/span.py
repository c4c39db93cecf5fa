# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span representation used by tokens, items and diagnostics.

A Span is best-effort: tokens lexed from a file carry file/line/column, tokens
created by generation units carry nothing (Span() denotes unknown).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (best-effort file/line/column)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: str | None = None) -> "Span":
		"""
		Construct a Span from a lark Token or rule Meta.

		Both expose `line`/`column`/`end_line`/`end_column`; an empty Meta (rule
		with no children) has none of them and yields a file-only span.
		"""
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			if loc.file is None and file is not None:
				return cls(file, loc.line, loc.column, loc.end_line, loc.end_column)
			return loc
		return cls(
			file=file,
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
		)

	@property
	def known(self) -> bool:
		return self.line is not None

	def short(self) -> str:
		line = self.line if self.line is not None else "?"
		column = self.column if self.column is not None else "?"
		return f"{self.file or '<unknown>'}:{line}:{column}"


__all__ = ["Span"]
