"""Typed dataclasses describing a docweave build configuration."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from docweave._constants import FILENAME_TOC_JSON, FILENAME_TOC_XML


class BuildConfigError(ValueError):
    """Raised when the build configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class PdfConfig:
    """PDF rendering settings.

    ``options`` are passed to ``wkhtmltopdf`` as ``--<name> [<value>]``; a
    ``None`` value emits the bare flag.
    """

    enabled: bool = False
    options: dict[str, str | None] = dc.field(default_factory=dict)
    binary: str = "wkhtmltopdf"
    interval: float = 1.0


@dc.dataclass(slots=True)
class BuildConfig:
    """A fully resolved build definition sourced from YAML config and CLI flags."""

    source_dir: Path
    dest_dir: Path
    overwrite: bool = False
    toc_json: bool = False
    toc_xml: bool = False
    toc_depth: int = 3
    header_file: Path | None = None
    footer_file: Path | None = None
    keyref_file: Path | None = None
    pygments_style: str = "default"
    pdf: PdfConfig = dc.field(default_factory=PdfConfig)

    @property
    def toc_filenames(self) -> list[str]:
        """Return the TOC files to generate per folder, JSON first."""
        names: list[str] = []
        if self.toc_json:
            names.append(FILENAME_TOC_JSON)
        if self.toc_xml:
            names.append(FILENAME_TOC_XML)
        return names


__all__ = ["BuildConfig", "BuildConfigError", "PdfConfig"]
