# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
tokport.core: shared spans, diagnostics and the error taxonomy.

Modules:
  - span: best-effort source locations
  - diagnostics: Diagnostic records collected by the passes
  - errors: TokportError and its kinds
"""

__all__ = [
	"diagnostics",
	"errors",
	"span",
]
