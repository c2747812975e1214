"""Expand ``{{file.md}}`` and ``{{file.md#section}}`` transclusions.

A transclusion placeholder is replaced by the referenced file (or the named
section of it, as found by :func:`~docweave.markdown_parser.scan_sections`)
after that file's own variables have been resolved. Each inclusion is
wrapped in ``<!-- Include START: ... -->`` / ``<!-- Include END -->`` markers
so the origin survives into the generated HTML. Included files may include
others; references resolve relative to the file that contains them.

Example
-------
>>> from pathlib import Path
>>> from docweave.transclusion import TransclusionExpander
>>> expander = TransclusionExpander(Path("docs"), Path("html"), [])
>>> expander.expand(Path("docs/a.md"), "{{b.md#intro}}")  # doctest: +SKIP
'<!-- Include START: b.md#intro -->\\n## Intro\\n{: #intro}\\nHello\\n<!-- Include END -->'
"""

from __future__ import annotations

import re
import typing as typ

import structlog

from docweave._constants import (
    DIRNAME_INCLUDES,
    FILENAME_KEYREF,
    INCLUDE_END,
    INCLUDE_START_TEMPLATE,
)
from docweave.generator.link_rewriter import rewrite_relative_links
from docweave.markdown_parser import scan_sections
from docweave.variables import load_keyref_file, resolve_variables, site_map

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from docweave.variables import VariableMap

logger = structlog.get_logger(__name__)

TRANSCLUSION_PATTERN = re.compile(
    r"\{\{\s*([^\s{}#]+\.md)(?:#([^\s{}]+))?\s*\}\}", re.IGNORECASE
)

_CacheKey = tuple["Path", str | None]


class TransclusionExpander:
    """Replace transclusion placeholders with the content they reference.

    Parameters
    ----------
    source_root : Path
        Root of the markdown source tree.
    destination_root : Path
        Root of the HTML output tree; copied assets land in its
        ``includes`` folder.
    global_maps : Sequence[Mapping]
        Variable maps applied to every transcluded file. Each folder's
        ``keyref.yaml`` is layered on top when present.
    """

    def __init__(
        self,
        source_root: Path,
        destination_root: Path,
        global_maps: cabc.Sequence[VariableMap],
    ) -> None:
        self.source_root = source_root.resolve()
        self.destination_root = destination_root.resolve()
        self.global_maps = list(global_maps)
        self._keyref_cache: dict[Path, dict[str, typ.Any] | None] = {}

    def expand(
        self,
        path: Path,
        text: str,
        *,
        maps: cabc.Sequence[VariableMap] | None = None,
    ) -> str:
        """Return ``text`` (the contents of ``path``) with transclusions expanded.

        Each call is one expansion pass: repeated references within it are
        read once, and references that lead back into the current chain of
        inclusions are left verbatim with a warning. ``maps`` replaces the
        global maps for this pass, so included files see the same variables
        as the including page.
        """
        path = path.resolve()
        cache: dict[_CacheKey, str] = {}
        return self._expand(
            text,
            maps=self.global_maps if maps is None else list(maps),
            base_dir=path.parent,
            including_dir=path.parent,
            output_dir=self._destination_dir_for(path),
            cache=cache,
            chain=((path, None),),
        )

    def _expand(
        self,
        text: str,
        *,
        maps: list[VariableMap],
        base_dir: Path,
        including_dir: Path,
        output_dir: Path,
        cache: dict[_CacheKey, str],
        chain: tuple[_CacheKey, ...],
    ) -> str:
        def _replace(match: re.Match[str]) -> str:
            placeholder = match.group(0)
            reference = placeholder[2:-2].strip()
            target = (base_dir / match.group(1)).resolve()
            key: _CacheKey = (target, match.group(2))
            if key in chain:
                logger.warning(
                    "Circular transclusion left unresolved",
                    reference=reference,
                    path=str(target),
                )
                return placeholder
            if key in cache:
                return cache[key]

            content = self._fetch(target, match.group(2), reference, maps)
            if content is None:
                return placeholder
            content = rewrite_relative_links(
                content,
                source_dir=target.parent,
                including_dir=including_dir,
                source_root=self.source_root,
                includes_root=self.destination_root / DIRNAME_INCLUDES,
                output_dir=output_dir,
            )
            content = self._expand(
                content,
                maps=maps,
                base_dir=target.parent,
                including_dir=including_dir,
                output_dir=output_dir,
                cache=cache,
                chain=(*chain, key),
            )
            wrapped = "\n".join(
                [
                    INCLUDE_START_TEMPLATE.format(reference=reference),
                    content.rstrip("\r\n"),
                    INCLUDE_END,
                ]
            )
            cache[key] = wrapped
            return wrapped

        return TRANSCLUSION_PATTERN.sub(_replace, text)

    def _fetch(
        self,
        target: Path,
        section: str | None,
        reference: str,
        maps: list[VariableMap],
    ) -> str | None:
        """Read ``target`` and return its resolved text or the named section."""
        try:
            raw = target.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "Transclusion target could not be read",
                reference=reference,
                path=str(target),
                error=str(exc),
            )
            return None

        folder_maps = self._maps_for(target.parent, maps)
        text = resolve_variables(raw, folder_maps, source=target)
        if section is None:
            return text
        sections = scan_sections(text)
        if section not in sections:
            logger.warning(
                "Transclusion section not found",
                reference=reference,
                section=section,
                path=str(target),
            )
            return None
        return sections[section]

    def _maps_for(self, folder: Path, maps: list[VariableMap]) -> list[VariableMap]:
        """Return ``maps`` with ``folder``'s keyref layered on top."""
        if folder not in self._keyref_cache:
            self._keyref_cache[folder] = load_keyref_file(folder / FILENAME_KEYREF)
        local = self._keyref_cache[folder]
        if folder == self.source_root or not local:
            return list(maps)
        return [*maps, site_map(local)]

    def _destination_dir_for(self, path: Path) -> Path:
        try:
            relative = path.parent.relative_to(self.source_root)
        except ValueError:
            return self.destination_root
        return self.destination_root / relative


__all__ = ["TRANSCLUSION_PATTERN", "TransclusionExpander"]
