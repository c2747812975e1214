"""Resolve ``{{key}}`` placeholders against layered variable maps.

Variable maps form an ordered list in which later maps take precedence. A
placeholder key is looked up as a full key first and then as a dot-separated
path (``{{site.data.product.name}}``). Resolved values are spliced back into
the text and re-scanned, so a variable may expand to further variables.
Placeholders naming a markdown file (``{{setup.md}}``,
``{{setup.md#install}}``) belong to the transclusion expander and are left
untouched here.

Example
-------
>>> from docweave.variables import resolve_variables
>>> resolve_variables("v{{x}}", [{"x": "1"}, {"x": "2"}])
'v2'
"""

from __future__ import annotations

import collections.abc as cabc
import copy
import re
import typing as typ

import structlog
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from docweave._constants import PARAMETERIZED_ID

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = structlog.get_logger(__name__)

VAR_OPEN = "{{"
VAR_CLOSE = "}}"
TRANSCLUSION_KEY_PATTERN = re.compile(r"^[^\s#{}]+\.md(?:#[^\s{}]+)?$", re.IGNORECASE)
TRAILING_NEWLINE_PATTERN = re.compile(r"(\r\n|\r|\n)$")

VariableMap = cabc.Mapping[str, typ.Any]


def is_transclusion_key(key: str) -> bool:
    """Return True when ``key`` names a markdown file or a section of one."""
    return bool(TRANSCLUSION_KEY_PATTERN.match(key))


def _as_text(value: object) -> str | None:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (str, int, float)):
        text = str(value)
        return text or None
    return None


def _dot_lookup(mapping: VariableMap, key: str) -> object | None:
    current: object = mapping
    for segment in key.split("."):
        if not isinstance(current, cabc.Mapping):
            return None
        current = current.get(segment)
    return current


def lookup_variable(key: str, maps: cabc.Sequence[VariableMap | None]) -> str | None:
    """Return the value of ``key`` from the highest-precedence map defining it.

    Maps are searched from last to first; within a map the full key is tried
    before the dot-path. Empty and non-scalar values do not count as hits.
    """
    for mapping in reversed(maps):
        if not mapping:
            continue
        value = _as_text(mapping.get(key))
        if value is None:
            value = _as_text(_dot_lookup(mapping, key))
        if value is not None:
            return value
    return None


def resolve_variables(
    text: str,
    maps: cabc.Sequence[VariableMap | None],
    *,
    source: object | None = None,
) -> str:
    """Substitute every resolvable ``{{key}}`` placeholder in ``text``.

    Parameters
    ----------
    text : str
        Text containing placeholders.
    maps : Sequence[Mapping]
        Variable maps in ascending precedence.
    source : object, optional
        Identifies the text in warnings (usually the source path).

    Returns
    -------
    str
        Text with resolvable placeholders replaced. Unresolved and
        self-referential placeholders are kept verbatim and reported.
    """
    if not isinstance(text, str) or not maps:
        return text

    trailing = TRAILING_NEWLINE_PATTERN.search(text)
    parts: list[str] = []
    # (key, length of the untouched suffix that followed its placeholder)
    expanding: list[tuple[str, int]] = []
    pos = 0
    index = text.find(VAR_OPEN)
    while index != -1:
        parts.append(text[pos:index])
        pos = index
        end = text.find(VAR_CLOSE, index + len(VAR_OPEN))
        if end == -1:
            break

        key = text[index + len(VAR_OPEN) : end].strip()
        from_end = len(text) - index
        expanding = [entry for entry in expanding if from_end > entry[1]]
        value = None
        if not is_transclusion_key(key):
            if any(active == key for active, _ in expanding):
                logger.warning(
                    "Recursive variable reference left unresolved",
                    variable=f"{VAR_OPEN}{key}{VAR_CLOSE}",
                    source=str(source),
                )
            else:
                value = lookup_variable(key, maps)
                if value is None:
                    logger.warning(
                        "Unresolved variable",
                        variable=f"{VAR_OPEN}{key}{VAR_CLOSE}",
                        source=str(source),
                    )

        if value is not None:
            rest = text[end + len(VAR_CLOSE) :]
            expanding.append((key, len(rest)))
            text = value + rest
            pos = 0
            index = 0
        else:
            index = end + len(VAR_CLOSE)
        index = text.find(VAR_OPEN, index)
    parts.append(text[pos:])

    result = "".join(parts)
    if trailing and not result.endswith(trailing.group(1)):
        result += trailing.group(1)
    return result


def site_map(data: cabc.Mapping[str, typ.Any] | None) -> dict[str, typ.Any]:
    """Wrap keyref ``data`` under the reserved ``site.data`` namespace."""
    return {"site": {"data": dict(data or {})}}


def deep_merge(
    base: cabc.Mapping[str, typ.Any], override: cabc.Mapping[str, typ.Any]
) -> dict[str, typ.Any]:
    """Return a recursive merge of two mappings where ``override`` wins."""
    merged: dict[str, typ.Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, cabc.Mapping) and isinstance(value, cabc.Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parameterize_ids(
    maps: cabc.Sequence[VariableMap | None], stem: str
) -> list[dict[str, typ.Any]]:
    """Return copies of ``maps`` with the per-file id token replaced by ``stem``."""

    def _replace(value: object) -> object:
        if isinstance(value, str):
            return value.replace(PARAMETERIZED_ID, stem)
        if isinstance(value, cabc.Mapping):
            return {key: _replace(item) for key, item in value.items()}
        if isinstance(value, list):
            return [_replace(item) for item in value]
        return value

    return [
        typ.cast("dict[str, typ.Any]", _replace(mapping)) for mapping in maps if mapping
    ]


def load_keyref_file(path: Path) -> dict[str, typ.Any] | None:
    """Load a keyref YAML file, returning None when it is absent or invalid."""
    if not path.is_file():
        return None
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle)
    except (OSError, YAMLError) as exc:
        logger.warning("Failed to read keyref file", path=str(path), error=str(exc))
        return None
    if loaded is None:
        return {}
    if not isinstance(loaded, cabc.Mapping):
        logger.warning("Keyref file must contain a mapping", path=str(path))
        return None
    return dict(loaded)


__all__ = [
    "VariableMap",
    "deep_merge",
    "is_transclusion_key",
    "load_keyref_file",
    "lookup_variable",
    "parameterize_ids",
    "resolve_variables",
    "site_map",
]
