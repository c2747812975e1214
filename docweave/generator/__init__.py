"""Utilities for rendering markdown and rewriting links during a docweave build.

The directory walker itself lives in
:mod:`docweave.generator.page_generator` (:class:`SiteGenerator`).
"""

from .link_rewriter import is_relative_target, rebase_href, rewrite_relative_links
from .models import BuildReport, ConvertedFile, RenderedPage
from .renderer import HtmlContentRenderer

__all__ = [
    "BuildReport",
    "ConvertedFile",
    "HtmlContentRenderer",
    "RenderedPage",
    "is_relative_target",
    "rebase_href",
    "rewrite_relative_links",
]
