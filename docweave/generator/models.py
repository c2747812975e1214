"""Shared dataclasses used by the site generation pipeline."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from docweave.toc.models import TocTree


@dc.dataclass(slots=True)
class RenderedPage:
    """Result of converting one markdown document.

    Attributes
    ----------
    html : str
        HTML body produced by the markdown converter.
    title : str or None
        Text of the first top-level heading, when there is one.
    toc : TocTree
        Heading outline of the page, used as the page's TOC fragment.
    """

    html: str
    title: str | None
    toc: TocTree


@dc.dataclass(slots=True)
class ConvertedFile:
    """A markdown file that was written out as HTML."""

    source: Path
    html_path: Path
    fragments: dict[str, Path] = dc.field(default_factory=dict)


@dc.dataclass(slots=True)
class BuildReport:
    """Files written by one :meth:`SiteGenerator.run` invocation.

    Attributes
    ----------
    converted : list[ConvertedFile]
        Markdown files converted to HTML, in processing order.
    toc_files : list[Path]
        TOC files written, children before parents.
    pdf_files : list[Path]
        PDFs rendered from the queued HTML files.
    """

    converted: list[ConvertedFile] = dc.field(default_factory=list)
    toc_files: list[Path] = dc.field(default_factory=list)
    pdf_files: list[Path] = dc.field(default_factory=list)

    @property
    def html_files(self) -> list[Path]:
        return [entry.html_path for entry in self.converted]


__all__ = ["BuildReport", "ConvertedFile", "RenderedPage"]
