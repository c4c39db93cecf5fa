# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from tokport.config import Settings
from tokport.workspace import Workspace

SAMPLE_MACROS = "tokport.tests.support.sample_macros"


@pytest.fixture
def make_workspace():
	"""
	Build an in-memory workspace with the sample macro package as `my_macros`.

	`crates` maps crate name -> {relative file: source}; the crate root is
	`lib.rs`.
	"""

	def _make(crates: dict[str, dict[str, str]], *, settings: Settings | None = None) -> Workspace:
		ws = Workspace(settings)
		ws.add_macro_package("my_macros", SAMPLE_MACROS)
		for name, sources in crates.items():
			ws.add_crate_sources(name, sources)
		return ws

	return _make
