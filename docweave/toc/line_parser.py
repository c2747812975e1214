"""Parse the legacy plain-text ``toc`` file into TOC items.

Each non-blank line names one entry. Nesting is expressed by indentation
(four spaces, or one tab, per level) or by blockquote markers (``>``).
Attribute list lines that follow an entry decorate it::

    My Docs
    {: .toc}
        intro.md
        {: .navgroup #start}
        setup.md
        {: .navgroup-end}

Example
-------
>>> from docweave.toc.line_parser import parse_toc_lines
>>> [(item.level, item.reference) for item in parse_toc_lines(["a.md", "    b.md"])]
[(1, 'a.md'), (2, 'b.md')]
"""

from __future__ import annotations

import re
import typing as typ

import structlog

from docweave.toc.attributes import compute_attributes, parse_attribute_line
from docweave.toc.models import TocItem

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = structlog.get_logger(__name__)

FOUR_SPACES = "    "
INDENT_PATTERN = re.compile(r"^[ >]*")


def _level(line: str) -> int:
    indent = INDENT_PATTERN.match(line)
    prefix = indent.group(0) if indent else ""
    return max(prefix.count(">"), len(prefix) // len(FOUR_SPACES)) + 1


def parse_toc_lines(lines: cabc.Iterable[str]) -> list[TocItem]:
    """Convert legacy TOC lines into ordered :class:`TocItem` entries.

    Parameters
    ----------
    lines : Iterable[str]
        Lines of the ``toc`` file, with or without line terminators.

    Returns
    -------
    list[TocItem]
        Entries in file order. An entry nested more than one level below the
        previous accepted entry is dropped with a warning, together with its
        attribute lines.
    """
    source = [line.rstrip("\r\n").replace("\t", FOUR_SPACES) for line in lines]
    definitions: dict[str, str] = {}
    eligible: list[str] = []
    items: list[TocItem] = []
    depth = 0
    index = 0
    while index < len(source):
        line = source[index]
        entry = INDENT_PATTERN.sub("", line).strip()
        index += 1
        if not entry:
            eligible = []
            continue
        if parse_attribute_line(entry, definitions, eligible):
            continue

        level = _level(line)
        trailing: list[str] = []
        while index < len(source) and parse_attribute_line(
            INDENT_PATTERN.sub("", source[index]).strip(), definitions, trailing
        ):
            index += 1

        if level > depth + 1:
            logger.warning(
                "Excluded from toc due to invalid nesting level",
                item=entry,
                level=level,
            )
            eligible = []
            continue

        items.append(
            TocItem(
                level=level,
                reference=entry,
                attributes=compute_attributes([*eligible, *trailing], definitions),
            )
        )
        depth = level
        eligible = []
    return items


__all__ = ["parse_toc_lines"]
