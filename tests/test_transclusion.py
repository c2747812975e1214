"""Unit tests for ``{{file.md}}`` transclusion."""

from __future__ import annotations

import typing as typ

import pytest
from structlog.testing import capture_logs

from docweave.transclusion import TransclusionExpander
from docweave.variables import site_map

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def docs(tmp_path: Path) -> Path:
    """Source tree with a sectioned file and a nested shared folder."""
    source = tmp_path / "docs"
    (source / "shared" / "img").mkdir(parents=True)
    (source / "b.md").write_text(
        "## Intro\n{: #intro}\nHello {{site.data.product}}\n\n## Other\nBye\n",
        encoding="utf-8",
    )
    (source / "shared" / "img" / "logo.png").write_bytes(b"\x89PNG")
    return source


def _expander(docs: Path) -> TransclusionExpander:
    return TransclusionExpander(
        docs, docs.parent / "html", [site_map({"product": "Weave"})]
    )


def test_section_is_included_between_markers(docs: Path) -> None:
    """A section reference pulls in just that section, variables resolved."""
    text = "Start\n{{b.md#intro}}\nEnd\n"

    result = _expander(docs).expand(docs / "a.md", text)

    assert result == (
        "Start\n"
        "<!-- Include START: b.md#intro -->\n"
        "## Intro\n"
        "{: #intro}\n"
        "Hello Weave\n"
        "<!-- Include END -->\n"
        "End\n"
    )


def test_whole_file_inclusion(docs: Path) -> None:
    """A file reference without a section includes the whole file."""
    result = _expander(docs).expand(docs / "a.md", "{{ b.md }}")

    assert result.startswith("<!-- Include START: b.md -->\n## Intro")
    assert result.endswith("Bye\n<!-- Include END -->")


def test_nested_inclusions_resolve_relative_to_their_file(docs: Path) -> None:
    """References inside an included file are resolved from its own folder."""
    (docs / "shared" / "outer.md").write_text("Outer {{inner.md}}", encoding="utf-8")
    (docs / "shared" / "inner.md").write_text("Inner", encoding="utf-8")

    result = _expander(docs).expand(docs / "a.md", "{{shared/outer.md}}")

    assert "<!-- Include START: inner.md -->\nInner\n<!-- Include END -->" in result


def test_folder_keyref_overrides_global_variables(docs: Path) -> None:
    """A folder's ``keyref.yaml`` takes precedence for files inside it."""
    (docs / "shared" / "keyref.yaml").write_text("product: Local\n", encoding="utf-8")
    (docs / "shared" / "part.md").write_text("{{site.data.product}}", encoding="utf-8")

    result = _expander(docs).expand(docs / "a.md", "{{shared/part.md}}")

    assert "\nLocal\n" in result


def test_circular_transclusion_is_left_verbatim(docs: Path) -> None:
    """A file that includes its includer stops the recursion with a warning."""
    (docs / "a.md").write_text("A {{c.md}}", encoding="utf-8")
    (docs / "c.md").write_text("C {{a.md}}", encoding="utf-8")

    with capture_logs() as logs:
        result = _expander(docs).expand(docs / "a.md", "A {{c.md}}")

    assert "C {{a.md}}" in result
    assert [entry["event"] for entry in logs] == [
        "Circular transclusion left unresolved"
    ]


def test_missing_targets_and_sections_are_reported(docs: Path) -> None:
    """Unreadable files and unknown sections leave the placeholder in place."""
    text = "{{nope.md}} {{b.md#absent}}"

    with capture_logs() as logs:
        result = _expander(docs).expand(docs / "a.md", text)

    assert result == text
    assert [entry["event"] for entry in logs] == [
        "Transclusion target could not be read",
        "Transclusion section not found",
    ]


def test_relative_links_are_rewritten(docs: Path) -> None:
    """Assets are mirrored under ``includes`` and other links are rebased."""
    (docs / "shared" / "part.md").write_text(
        "![logo](img/logo.png) [next](next.md#top) [site](https://x.org)",
        encoding="utf-8",
    )

    result = _expander(docs).expand(docs / "a.md", "{{shared/part.md}}")

    assert "![logo](includes/shared/img/logo.png)" in result
    assert "[next](shared/next.md#top)" in result
    assert "[site](https://x.org)" in result
    mirrored = docs.parent / "html" / "includes" / "shared" / "img" / "logo.png"
    assert mirrored.read_bytes() == b"\x89PNG"


def test_page_maps_apply_to_included_files(docs: Path) -> None:
    """Maps passed for a pass replace the global ones for included files."""
    (docs / "shared" / "part.md").write_text("By {{author}}", encoding="utf-8")
    page_maps = [site_map({"product": "Weave"}), {"author": "Ada"}]

    result = _expander(docs).expand(
        docs / "a.md", "{{shared/part.md}}", maps=page_maps
    )

    assert "\nBy Ada\n" in result
