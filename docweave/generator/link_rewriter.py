"""Helpers for rewriting relative markdown links in transcluded content.

Transcluded markdown is written out alongside the including document, so any
relative link or image it carries would otherwise point at the wrong place.
Local assets are mirrored under ``<destination>/includes/`` and the link is
rewritten relative to the folder the including document is written to.
"""

from __future__ import annotations

import os
import posixpath
import re
import shutil
from pathlib import Path
from urllib.parse import unquote, urlsplit

import structlog

logger = structlog.get_logger(__name__)

LINK_PATTERN = re.compile(
    r"(?P<prefix>!?\[(?:\[[^\]]*\]|[^\[\]])*\]\(\s*<?)"
    r"(?P<target>[^\s)>]+)"
    r"(?P<suffix>>?(?:\s+[\"'][^\"']*[\"'])?\s*\))"
)


def is_relative_target(target: str | None) -> bool:
    """Return True when ``target`` is a relative path rather than a URL or anchor."""
    if not target:
        return False

    lower = target.lower()
    if lower.startswith(
        ("http://", "https://", "mailto:", "tel:", "data:", "javascript:")
    ):
        return False
    if target.startswith(("#", "//", "/", "\\")) or "://" in target:
        return False

    parsed = urlsplit(target)
    return not (parsed.scheme or parsed.netloc or not parsed.path)


def _mirror_asset(asset: Path, source_root: Path, includes_root: Path) -> Path:
    """Copy ``asset`` below ``includes_root`` and return the copy's path."""
    try:
        relative = asset.relative_to(source_root)
    except ValueError:
        relative = Path(asset.name)
    mirror = includes_root / relative
    try:
        mirror.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(asset, mirror)
    except OSError as exc:
        logger.error("Failed to copy included asset", path=str(asset), error=str(exc))
        return asset
    logger.debug("Copied included asset", path=str(asset), destination=str(mirror))
    return mirror


def rewrite_relative_links(
    text: str,
    *,
    source_dir: Path,
    including_dir: Path,
    source_root: Path,
    includes_root: Path,
    output_dir: Path,
) -> str:
    """Rewrite relative link and image targets in transcluded markdown.

    Parameters
    ----------
    text : str
        Markdown fetched from a transclusion target.
    source_dir : Path
        Folder holding the transcluded file; relative targets resolve here.
    including_dir : Path
        Source folder of the top-level document doing the including.
    source_root : Path
        Root of the source tree.
    includes_root : Path
        Destination folder that mirrors copied assets.
    output_dir : Path
        Destination folder of the including document's HTML.

    Returns
    -------
    str
        Markdown whose relative targets work from ``output_dir``. Targets that
        name an existing file are copied into the mirror; any other relative
        target is rebased from ``source_dir`` to ``including_dir``.
    """

    def _rewrite(match: re.Match[str]) -> str:
        target = match.group("target")
        if not is_relative_target(target):
            return match.group(0)

        parsed = urlsplit(target)
        resolved = (source_dir / unquote(parsed.path)).resolve()
        if resolved.is_file():
            location = _mirror_asset(resolved, source_root, includes_root)
            base = output_dir
        else:
            location = resolved
            base = including_dir
        href = Path(os.path.relpath(location, base)).as_posix()
        if parsed.query:
            href = f"{href}?{parsed.query}"
        if parsed.fragment:
            href = f"{href}#{parsed.fragment}"
        return f"{match.group('prefix')}{href}{match.group('suffix')}"

    return LINK_PATTERN.sub(_rewrite, text)


def rebase_href(href: str, prefix: str) -> str:
    """Join ``prefix`` onto a relative ``href``; other hrefs are returned as-is."""
    if not prefix or not is_relative_target(href):
        return href
    parsed = urlsplit(href)
    joined = posixpath.normpath(posixpath.join(prefix, parsed.path))
    if parsed.query:
        joined = f"{joined}?{parsed.query}"
    if parsed.fragment:
        joined = f"{joined}#{parsed.fragment}"
    return joined


__all__ = [
    "is_relative_target",
    "rebase_href",
    "rewrite_relative_links",
]
