r"""Scan markdown into addressable, attribute-identified sections.

A section is declared by a block attribute list carrying an id
(``{: #intro}``). When the line before the attribute list is a heading, the
section runs from that heading to the next heading of the same or a
shallower depth; otherwise it is the paragraph that precedes the attribute
list. Fenced code blocks are opaque: nothing inside them is treated as
structure.

Example
-------
>>> from docweave.markdown_parser import scan_sections
>>> sections = scan_sections("## Intro\n{: #intro}\nHello\n\n## Next\n")
>>> sections["intro"]
'## Intro\n{: #intro}\nHello\n'
"""

from __future__ import annotations

import bisect
import dataclasses as dc
import re

from docweave._constants import PARAMETERIZED_ID

NEWLINE_PATTERN = re.compile(r"\r\n|\r|\n")
BLOCK_ATTRIBUTE_PATTERN = re.compile(r"^\s*\{:(\s+[^}]+)\}")
ATTRIBUTE_PATTERN = re.compile(r"\{:\s+([^}]+)\}")
ID_ATTRIBUTE_PATTERN = re.compile(r"(\s#)([^\s}]+)")
LINE_HEADING_PATTERN = re.compile(r"^(#{1,6})\s+\S+")
HEADING_PATTERN = re.compile(r"(?:^|\r\n|\r|\n)(#{1,6})\s+\S+")
CODE_FENCE_PATTERN = re.compile(r"(^|(?:\r\n|\r|\n)[^\S\r\n]*)(`{3,})")


@dc.dataclass(frozen=True, slots=True)
class CodeFence:
    """Location of one fenced code block.

    Attributes
    ----------
    start : int
        Index of the first backtick of the opening fence.
    end : int
        Index just past the last backtick of the closing fence.
    """

    start: int
    end: int


def find_code_fences(text: str) -> list[CodeFence]:
    """Return every closed backtick fence in ``text``, in document order.

    A fence opens with a run of three or more backticks at the start of a
    line and closes at the next line-leading run of the same length. An
    unterminated fence ends the scan.
    """
    fences: list[CodeFence] = []
    position = 0
    while True:
        opening = CODE_FENCE_PATTERN.search(text, position)
        if opening is None:
            break
        ticks = len(opening.group(2))
        closing_pattern = re.compile(rf"(?:\r\n|\r|\n)[^\S\r\n]*`{{{ticks}}}")
        closing = closing_pattern.search(text, opening.end())
        if closing is None:
            break
        fences.append(
            CodeFence(start=opening.start() + len(opening.group(1)), end=closing.end())
        )
        position = closing.end()
    return fences


class CodeFenceIndex:
    """Answer "is this offset inside a code fence?" for one document."""

    def __init__(self, text: str) -> None:
        self._fences = find_code_fences(text)
        self._starts = [fence.start for fence in self._fences]

    def contains(self, index: int) -> bool:
        """Return True when ``index`` lies within a fenced region."""
        slot = bisect.bisect_right(self._starts, index) - 1
        if slot < 0:
            return False
        fence = self._fences[slot]
        return fence.start <= index < fence.end


def _iter_lines(text: str) -> list[tuple[int, str]]:
    """Split ``text`` into ``(start_offset, line)`` pairs without terminators."""
    lines: list[tuple[int, str]] = []
    start = 0
    for match in NEWLINE_PATTERN.finditer(text):
        lines.append((start, text[start : match.start()]))
        start = match.end()
    if start < len(text):
        lines.append((start, text[start:]))
    return lines


def _heading_section_end(
    text: str, line_start: int, level: int, fences: CodeFenceIndex
) -> int:
    """Return the offset where a heading-delimited section of ``level`` ends."""
    for match in HEADING_PATTERN.finditer(text, line_start):
        if len(match.group(1)) <= level and not fences.contains(match.start()):
            return match.start()
    return len(text)


def _parameterize(value: str) -> str:
    """Prefix ids in ``value`` with the per-file placeholder token."""
    fences = CodeFenceIndex(value)

    def _replace_block(match: re.Match[str]) -> str:
        if fences.contains(match.start()):
            return match.group(0)
        return ID_ATTRIBUTE_PATTERN.sub(
            lambda id_match: (
                f"{id_match.group(1)}{PARAMETERIZED_ID}-include-{id_match.group(2)}"
            ),
            match.group(0),
            count=1,
        )

    return ATTRIBUTE_PATTERN.sub(_replace_block, value)


def scan_sections(text: str, *, parameterize_ids: bool = False) -> dict[str, str]:
    """Map attribute ids to the raw markdown of the sections they identify.

    Parameters
    ----------
    text : str
        Markdown source to scan.
    parameterize_ids : bool, optional
        When True, ids declared inside each captured section are rewritten
        to carry the ``PARAMETERIZED_ID`` token so that the section can be
        reused in several files without duplicate ids.

    Returns
    -------
    dict[str, str]
        Section bodies keyed by id, in document order. Empty when the text
        declares no identified sections.
    """
    result: dict[str, str] = {}
    fences = CodeFenceIndex(text)
    pending: list[str] = []
    for line_start, line in _iter_lines(text):
        if fences.contains(line_start):
            pending.append(line)
            continue
        if not line.strip():
            pending = []
            continue
        attribute_match = BLOCK_ATTRIBUTE_PATTERN.match(line)
        if attribute_match is None:
            pending.append(line)
            continue
        if not pending:
            continue
        id_match = ID_ATTRIBUTE_PATTERN.search(attribute_match.group(1))
        if id_match is None:
            pending.append(line)
            continue

        heading_match = LINE_HEADING_PATTERN.match(pending[-1])
        if heading_match:
            level = len(heading_match.group(1))
            end = _heading_section_end(text, line_start, level, fences)
            value = f"{pending[-1]}\n{text[line_start:end]}"
        else:
            attributes = attribute_match.group(0)
            value = "\n".join(pending) + "\n" + attributes + "\n"
        if parameterize_ids:
            value = _parameterize(value)
        result[id_match.group(2)] = value
        pending = []
    return result


__all__ = [
    "CodeFence",
    "CodeFenceIndex",
    "find_code_fences",
    "scan_sections",
]
