# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
tokport: export an item's tokens in one module and import them into a
generation unit anywhere else in the workspace.

Pipeline:
  tokens:    lark token-tree lexer + rendering
  items:     module-level item recognizer, use trees, paths
  crate:     crate/module loading
  export:    ForwardingUnit registration (ExportTable)
  resolve:   item paths and support mounts
  forward:   ForwardRequest -> Invocation
  units:     generation units and the import generators
  bridge:    hidden imports for inner callbacks
  scope:     macro names at a call site
  workspace: crates + macro packages
  expand:    pass 1 (exports) and pass 2 (call sites)
"""

from tokport.tokens import Delimiter, Group, Ident, Literal, Punct, TokenStream
from tokport.forward import ForwardRequest, Invocation, forward_tokens, import_tokens
from tokport.config import Settings
from tokport.units import (
	import_tokens_attr,
	import_tokens_proc,
	proc_macro,
	proc_macro_attribute,
)
from tokport.workspace import Workspace

__all__ = [
	"Delimiter",
	"ForwardRequest",
	"Group",
	"Ident",
	"Invocation",
	"Literal",
	"Punct",
	"Settings",
	"TokenStream",
	"Workspace",
	"forward_tokens",
	"import_tokens",
	"import_tokens_attr",
	"import_tokens_proc",
	"proc_macro",
	"proc_macro_attribute",
]
