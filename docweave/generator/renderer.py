"""Render markdown to HTML and record each page's heading outline."""

from __future__ import annotations

import re
import typing as typ
from html import escape, unescape

from markdown import Markdown
from pygments.formatters.html import HtmlFormatter

from docweave.generator.models import RenderedPage
from docweave.markdown_parser import CodeFenceIndex
from docweave.toc.models import TocKind, TocNode, TocTree

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from markdown.extensions import Extension
else:  # pragma: no cover - type-checking fallback
    Extension = typ.Any

CODE_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+#.-]+)?[^\n]*\n(.*?)```", re.DOTALL)
FENCED_INDENT_PATTERN = re.compile(r"^[ ]{1,3}([`~]{3,})", re.MULTILINE)
FENCE_LABEL_PATTERN = re.compile(
    r"^([`~]{3,})([A-Za-z0-9_+#.-]+)?(,[^\r\n]+)$", re.MULTILINE
)
CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')
HEADING_ATTRIBUTE_PATTERN = re.compile(
    r"^(#{1,6}[ \t][^\n]*?)[ \t]*\n(\{:[^}\n]*\})[ \t]*$", re.MULTILINE
)


class HtmlContentRenderer:
    """Render markdown with consistent code styling and a heading outline."""

    def __init__(
        self,
        pygments_style: str = "default",
        *,
        toc_depth: int = 3,
        extensions: cabc.Sequence[Extension | str] = (),
    ) -> None:
        """Initialize a renderer.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for syntax highlighting.
        toc_depth : int, optional
            Deepest heading level recorded in the page outline.
        extensions : Sequence, optional
            Extra Python-Markdown extensions appended to the defaults.
        """
        self.pygments_style = pygments_style
        self.toc_depth = toc_depth
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")
        self._extensions = list(extensions)

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def convert(self, text: str, html_filename: str) -> RenderedPage:
        """Render ``text`` and outline its headings as links into ``html_filename``.

        Parameters
        ----------
        text : str
            Markdown source with variables and transclusions already resolved.
        html_filename : str
            Name the HTML will be written under; fragment hrefs point at it.

        Returns
        -------
        RenderedPage
            The HTML body, the first top-level heading as title, and the
            heading outline as a TOC fragment.
        """
        normalized = self._attach_heading_attributes(
            self._normalize_fenced_blocks(text)
        )
        md = Markdown(
            extensions=[
                "fenced_code",
                "codehilite",
                "tables",
                "attr_list",
                "toc",
                *self._extensions,
            ],
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                },
                "toc": {"toc_depth": self.toc_depth},
            },
        )
        body = md.convert(normalized) if normalized.strip() else ""
        body = self._annotate_codehilite(body, normalized)
        tokens: list[dict[str, typ.Any]] = list(getattr(md, "toc_tokens", []))
        return RenderedPage(
            html=body,
            title=self._title(tokens),
            toc=self._outline(tokens, html_filename),
        )

    @staticmethod
    def _title(tokens: list[dict[str, typ.Any]]) -> str | None:
        for token in tokens:
            if token.get("level") == 1:
                return unescape(str(token.get("name", "")))
        return None

    @staticmethod
    def _outline(tokens: list[dict[str, typ.Any]], html_filename: str) -> TocTree:
        """Convert Python-Markdown ``toc_tokens`` into a fragment tree.

        Top-level headings become topics; a level-1 heading links to the page
        itself and deeper headings link to their anchor.
        """
        tree = TocTree()

        def _add(parent: int, token: dict[str, typ.Any], *, top: bool) -> None:
            anchor = token.get("id")
            href = html_filename
            if anchor and not (top and token.get("level") == 1):
                href = f"{html_filename}#{anchor}"
            index = tree.add(
                parent,
                TocNode(
                    kind=TocKind.TOPIC,
                    label=unescape(str(token.get("name", ""))),
                    href=href,
                    id=anchor or None,
                ),
            )
            for child in token.get("children", []):
                _add(index, child, top=False)

        for token in tokens:
            _add(tree.root_index, token, top=True)
        return tree

    def _annotate_codehilite(self, html: str, source_markdown: str) -> str:
        """Attach language metadata to each highlighted block in converted markdown."""
        languages = [
            match.group(1) or "text"
            for match in CODE_BLOCK_PATTERN.finditer(source_markdown)
        ]
        if not languages:
            return html
        lang_iter = iter(languages)

        def _repl(match: re.Match[str]) -> str:
            lang = next(lang_iter, "text")
            return (
                f'<div class="codehilite" data-language="{escape(lang, quote=True)}">'
            )

        return CODEHILITE_OPEN_TAG.sub(_repl, html, len(languages))

    @staticmethod
    def _attach_heading_attributes(text: str) -> str:
        """Move an attribute list written under a heading onto the heading line."""
        fences = CodeFenceIndex(text)

        def _join(match: re.Match[str]) -> str:
            if fences.contains(match.start()):
                return match.group(0)
            return f"{match.group(1)} {match.group(2)}"

        return HEADING_ATTRIBUTE_PATTERN.sub(_join, text)

    @staticmethod
    def _normalize_fenced_blocks(text: str) -> str:
        without_indent = FENCED_INDENT_PATTERN.sub(r"\1", text)

        def _strip_labels(match: re.Match[str]) -> str:
            fence, language, _extras = match.groups()
            label = language or ""
            return f"{fence}{label}"

        return FENCE_LABEL_PATTERN.sub(_strip_labels, without_indent)


__all__ = ["CODE_BLOCK_PATTERN", "HtmlContentRenderer"]
