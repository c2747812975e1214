"""Per-file TOC fragments written during conversion and read during assembly.

Converting ``guide.md`` into ``guide.html`` also records the headings of the
page as a small TOC tree. The fragment lives in a hidden temporary folder
beside the HTML (``<dest>/.docweave-temp/guide.toc.json``) until the folder's
TOC has been assembled, after which :func:`remove_temp_dirs` deletes it.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import structlog

from docweave._constants import EXTENSION_MARKDOWN, FRAGMENT_TEMPLATE, TEMP_DIRNAME

logger = structlog.get_logger(__name__)


def fragment_name(markdown_name: str, toc_filename: str) -> str | None:
    """Return the fragment filename for ``markdown_name``, or None if not markdown."""
    if not markdown_name.lower().endswith(EXTENSION_MARKDOWN):
        return None
    stem = markdown_name[: -len(EXTENSION_MARKDOWN)]
    return FRAGMENT_TEMPLATE.format(stem=stem, toc_filename=toc_filename)


class FragmentStore:
    """Read and write the TOC fragments of one destination folder."""

    def __init__(self, destination: Path) -> None:
        self.destination = destination
        self.temp_dir = destination / TEMP_DIRNAME

    def path_for(self, markdown_name: str, toc_filename: str) -> Path | None:
        name = fragment_name(markdown_name, toc_filename)
        return None if name is None else self.temp_dir / name

    def write(self, markdown_name: str, toc_filename: str, text: str) -> Path | None:
        """Persist ``text`` as the fragment for ``markdown_name``."""
        path = self.path_for(markdown_name, toc_filename)
        if path is None:
            return None
        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.error(
                "Failed to write toc fragment", path=str(path), error=str(exc)
            )
            return None
        logger.debug("Wrote toc fragment", path=str(path))
        return path

    def read(self, markdown_name: str, toc_filename: str) -> str | None:
        """Return the fragment text for ``markdown_name``, or None if missing."""
        path = self.path_for(markdown_name, toc_filename)
        if path is None:
            return None
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to read toc fragment", path=str(path), error=str(exc))
            return None


def remove_temp_dirs(root: Path) -> list[Path]:
    """Delete every fragment folder below ``root`` and return the removed paths."""
    removed: list[Path] = []
    if not root.is_dir():
        return removed
    for current, dirnames, _filenames in os.walk(root):
        if TEMP_DIRNAME in dirnames:
            dirnames.remove(TEMP_DIRNAME)
            target = Path(current) / TEMP_DIRNAME
            shutil.rmtree(target, ignore_errors=True)
            removed.append(target)
    if removed:
        logger.info("Cleaned up temporary files", count=len(removed))
    return removed


__all__ = ["FragmentStore", "fragment_name", "remove_temp_dirs"]
