# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Token trees (Ident/Punct/Literal/Group), the lark lexer and rendering.
"""

from .stream import (
	Delimiter,
	Group,
	Ident,
	Literal,
	Punct,
	TokenStream,
	TokenTree,
	group,
	ident,
	punct,
)
from .lexer import tokenize

__all__ = [
	"Delimiter",
	"Group",
	"Ident",
	"Literal",
	"Punct",
	"TokenStream",
	"TokenTree",
	"group",
	"ident",
	"punct",
	"tokenize",
]
