"""Attribute lists for TOC entries.

Two declarations are understood. An inline attribute list (IAL),
``{: .class #id key="value" flag}``, applies to the adjacent entry. An
attribute definition list (ADL), ``{:name: .class key="value"}``, stores a
reusable set that other lists pull in by naming it as a bare token.

Computed attributes map names to string values, or to ``None`` for flag
attributes. ``class`` values accumulate rather than overwrite, and values
inherited from ADLs are applied before local ones so that local wins.
"""

from __future__ import annotations

import collections.abc as cabc
import re

AttributeSet = dict[str, str | None]

BLOCK_ATTRIBUTE_LINE_PATTERN = re.compile(r"^(\{:(?:\\\}|[^}])*\})")
REF_NAME_PATTERN = re.compile(r"\{[ ]{0,3}:([\w][\w-]*):([^}]*)")
ATTRIBUTE_LIST_CONTENT_PATTERN = re.compile(r"\{[ ]{0,3}:([^}]*)")

SEGMENT_PATTERN = re.compile(r"""(?:[^\s'"]|"[^"]*"|'[^']*')+""")
ID_PATTERN = re.compile(r"^#(\S+)")
CLASS_PATTERN = re.compile(r"^\.(-?[_a-zA-Z]+[_a-zA-Z0-9-]*)")
KEY_VALUE_PATTERN = re.compile(
    r"""^([^/>"'=\s]+)=(?:"([^"]*)"|'([^']*)'|(\S+))$"""
)


def merge_attributes(
    base: cabc.Mapping[str, str | None], override: cabc.Mapping[str, str | None]
) -> AttributeSet:
    """Layer ``override`` on top of ``base``.

    ``class`` values are concatenated (``"a"`` then ``"b"`` gives ``"a b"``);
    every other key takes the value from ``override``.
    """
    result: AttributeSet = dict(base)
    for key, value in override.items():
        if key == "class" and result.get(key) and value:
            result[key] = f"{result[key]} {value}"
        else:
            result[key] = value
    return result


def compute_attributes(
    attribute_lists: cabc.Iterable[str],
    definitions: cabc.Mapping[str, str],
    *,
    _expanding: frozenset[str] = frozenset(),
) -> AttributeSet:
    """Compute the attribute set described by one or more attribute lists.

    Parameters
    ----------
    attribute_lists : Iterable[str]
        Contents of the attribute lists (without the ``{:`` and ``}``).
    definitions : Mapping[str, str]
        ADL contents keyed by name.

    Returns
    -------
    AttributeSet
        Inherited ADL attributes overlaid with the locally declared ones.
    """
    inherited: AttributeSet = {}
    local: AttributeSet = {}
    for content in attribute_lists:
        for segment_match in SEGMENT_PATTERN.finditer(content):
            segment = segment_match.group(0).strip()
            if not segment:
                continue
            if match := ID_PATTERN.match(segment):
                local["id"] = match.group(1)
            elif match := CLASS_PATTERN.match(segment):
                local = merge_attributes(local, {"class": match.group(1)})
            elif match := KEY_VALUE_PATTERN.match(segment):
                value = next(group for group in match.groups()[1:] if group is not None)
                local[match.group(1)] = value
            elif segment in definitions and segment not in _expanding:
                referenced = compute_attributes(
                    [definitions[segment]],
                    definitions,
                    _expanding=_expanding | {segment},
                )
                inherited = merge_attributes(inherited, referenced)
            else:
                local[segment] = None
    return merge_attributes(inherited, local)


def parse_attribute_line(
    line: str, definitions: dict[str, str], eligible: list[str]
) -> bool:
    """Consume ``line`` if it is an attribute list declaration.

    ADL declarations are stored in ``definitions``; IAL contents are
    appended to ``eligible``. Returns False for any other line.
    """
    attribute_match = BLOCK_ATTRIBUTE_LINE_PATTERN.match(line)
    if attribute_match is None:
        return False
    declaration = attribute_match.group(0)
    if ref_match := REF_NAME_PATTERN.match(declaration):
        definitions[ref_match.group(1)] = ref_match.group(2)
        return True
    content_match = ATTRIBUTE_LIST_CONTENT_PATTERN.match(declaration)
    if content_match:
        eligible.append(content_match.group(1).strip())
    return True


def class_tokens(attributes: cabc.Mapping[str, str | None]) -> list[str]:
    """Return the ``class`` attribute split into tokens."""
    return (attributes.get("class") or "").split()


__all__ = [
    "AttributeSet",
    "class_tokens",
    "compute_attributes",
    "merge_attributes",
    "parse_attribute_line",
]
