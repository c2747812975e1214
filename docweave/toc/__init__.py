"""Parse TOC sources and assemble them into serialisable TOC trees.

Two source formats are understood: the legacy indented ``toc`` file
(:func:`parse_toc_lines`) and the structured ``toc.yaml`` object
(:func:`parse_toc_object`). Both yield :class:`TocItem` streams that a
:class:`TocTreeBuilder` resolves against the per-file fragments recorded
during conversion.

Examples
--------
>>> from pathlib import Path
>>> from docweave.toc import TocTreeBuilder, parse_toc_lines
>>> items = parse_toc_lines(["[Home](https://example.com)"])
>>> tree = TocTreeBuilder(Path("html"), "toc.json").build(items)
>>> [node.label for node in tree.children()]
['Home']
"""

from .adapters import JsonTocAdapter, TocParseError, XmlTocAdapter, adapter_for
from .builder import TocItemContext, TocTreeBuilder
from .fragments import FragmentStore, remove_temp_dirs
from .line_parser import parse_toc_lines
from .models import TocItem, TocKind, TocNode, TocProperty, TocTree
from .object_parser import parse_toc_object

__all__ = [
    "FragmentStore",
    "JsonTocAdapter",
    "TocItem",
    "TocItemContext",
    "TocKind",
    "TocNode",
    "TocParseError",
    "TocProperty",
    "TocTree",
    "TocTreeBuilder",
    "XmlTocAdapter",
    "adapter_for",
    "parse_toc_lines",
    "parse_toc_object",
    "remove_temp_dirs",
]
