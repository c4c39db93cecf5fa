# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Items, attributes, paths and use trees recognized on token trees.
"""

from .items import Attribute, Item, parse_items
from .paths import ItemPath, scan_path
from .use_tree import UseEntry, parse_use_tree

__all__ = [
	"Attribute",
	"Item",
	"ItemPath",
	"UseEntry",
	"parse_items",
	"parse_use_tree",
	"scan_path",
]
