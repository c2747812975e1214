"""Unit tests for resolving TOC items into a TOC tree."""

from __future__ import annotations

import typing as typ

import pytest
from structlog.testing import capture_logs

from docweave.hooks import HookRegistry
from docweave.toc import (
    FragmentStore,
    JsonTocAdapter,
    TocItem,
    TocKind,
    TocNode,
    TocTree,
    TocTreeBuilder,
    parse_toc_lines,
    parse_toc_object,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from docweave.toc import TocItemContext

LEGACY_TOC = [
    "Docs",
    "{: .toc}",
    "    intro.md",
    "    {: .navgroup #start}",
    "    [Home](https://example.com)",
    "    {: .navgroup-end}",
]

YAML_TOC: dict[str, typ.Any] = {
    "toc": {
        "properties": {"label": "Docs"},
        "entries": [
            {
                "navgroup": {
                    "id": "start",
                    "topics": ["intro.md"],
                    "links": [
                        {"link": {"label": "Home", "href": "https://example.com"}}
                    ],
                }
            }
        ],
    }
}


def _write_fragment(destination: Path, name: str, *, html: str) -> None:
    """Record a fragment with one page heading and one nested anchor."""
    fragment = TocTree()
    page = fragment.add(
        fragment.root_index, TocNode(kind=TocKind.TOPIC, label="Intro", href=html)
    )
    fragment.add(
        page,
        TocNode(kind=TocKind.TOPIC, label="Usage", href=f"{html}#usage", id="usage"),
    )
    text = JsonTocAdapter().dumps(fragment)
    FragmentStore(destination).write(name, "toc.json", text)


@pytest.fixture
def destination(tmp_path: Path) -> Path:
    """Destination folder holding the fragment for ``intro.md``."""
    _write_fragment(tmp_path, "intro.md", html="intro.html")
    return tmp_path


def test_legacy_and_structured_sources_build_identical_trees(
    destination: Path,
) -> None:
    """Equivalent ``toc`` and ``toc.yaml`` sources serialise byte-for-byte alike."""
    builder = TocTreeBuilder(destination, "toc.json")
    adapter = JsonTocAdapter()

    legacy = adapter.dumps(builder.build(parse_toc_lines(LEGACY_TOC)))
    structured = adapter.dumps(builder.build(parse_toc_object(YAML_TOC)))

    assert legacy == structured
    assert adapter.dumps(builder.build(parse_toc_lines(LEGACY_TOC))) == legacy


def test_navgroup_members_carry_the_navgroup_property(destination: Path) -> None:
    """Items between the navgroup markers are tagged with its id."""
    tree = TocTreeBuilder(destination, "toc.json").build(parse_toc_lines(LEGACY_TOC))

    assert tree.root.label == "Docs"
    intro, home = tree.children()
    assert intro.property_value("navgroup") == "start"
    assert (home.kind, home.label, home.href) == (
        TocKind.LINK,
        "Home",
        "https://example.com",
    )
    assert home.property_value("navgroup") == "start"


def test_fragment_children_become_anchors(destination: Path) -> None:
    """Headings below the page title are spliced in as anchors."""
    tree = TocTreeBuilder(destination, "toc.json").build(
        [TocItem(level=1, reference="intro.md", label_override="Start here")]
    )

    (page,) = tree.children()
    assert (page.kind, page.label) == (TocKind.TOPIC, "Start here")
    (anchor_index,) = page.children
    anchor = tree.nodes[anchor_index]
    assert anchor.kind is TocKind.ANCHOR
    assert anchor.href == "intro.html#usage"


def test_fragment_in_subfolder_is_rebased(tmp_path: Path) -> None:
    """Fragments referenced through a folder get that folder prefixed."""
    _write_fragment(tmp_path / "guide", "page.md", html="page.html")

    tree = TocTreeBuilder(tmp_path, "toc.json").build(
        [TocItem(level=1, reference="guide/page.md")]
    )

    hrefs = [node.href for node in tree.walk() if node.href]
    assert hrefs == ["guide/page.html", "guide/page.html#usage"]


def test_root_path_and_subcollection_prefix_fragments(destination: Path) -> None:
    """Root properties rebase hrefs and prefix ids of later fragments."""
    lines = ["Docs", "{: .toc path=manual subcollection=man}", "    intro.md"]

    tree = TocTreeBuilder(destination, "toc.json").build(parse_toc_lines(lines))

    assert [(p.name, p.value) for p in tree.root.properties] == [
        ("path", "manual"),
        ("subcollection", "man"),
    ]
    nodes = list(tree.walk())[1:]
    assert [node.href for node in nodes] == [
        "manual/intro.html",
        "manual/intro.html#usage",
    ]
    assert nodes[1].id == "man-usage"


@pytest.mark.parametrize(
    ("reference", "href"),
    [
        ("/other/", "/other/toc.json"),
        ("/other/toc", "/other/toc.json"),
        ("/other/page.html", "/other/page.html"),
        ("sub", "sub/toc.json"),
    ],
)
def test_paths_resolve_to_links(tmp_path: Path, reference: str, href: str) -> None:
    """Absolute paths and destination folders become links."""
    (tmp_path / "sub").mkdir()

    tree = TocTreeBuilder(tmp_path, "toc.json").build(
        [TocItem(level=1, reference=reference)]
    )

    (node,) = tree.children()
    assert (node.kind, node.href) == (TocKind.LINK, href)


def test_topicgroup_nests_following_items(destination: Path) -> None:
    """A topic group opens a level for the entries below it."""
    items = [
        TocItem(level=1, reference="Guides", attributes={"class": "topicgroup"}),
        TocItem(level=2, reference="intro.md"),
    ]

    tree = TocTreeBuilder(destination, "toc.json").build(items)

    (group_index,) = tree.root.children
    assert tree.nodes[group_index].kind is TocKind.TOPICGROUP
    assert [node.label for node in tree.children(group_index)] == ["Intro"]


def test_unresolvable_items_are_reported(tmp_path: Path) -> None:
    """Missing fragments warn; comments are skipped silently."""
    items = [
        TocItem(level=1, reference="missing.md"),
        TocItem(level=1, reference="<!-- draft -->"),
    ]

    with capture_logs() as logs:
        tree = TocTreeBuilder(tmp_path, "toc.json").build(items)

    assert tree.children() == []
    assert [entry["item"] for entry in logs] == ["missing.md"]


def test_item_deeper_than_open_parents_is_excluded(tmp_path: Path) -> None:
    """An item cannot nest below a level that has no open parent."""
    with capture_logs() as logs:
        tree = TocTreeBuilder(tmp_path, "toc.json").build(
            [TocItem(level=3, reference="[A](a.html)")]
        )

    assert tree.children() == []
    assert logs[0]["event"] == "Excluded from toc due to invalid nesting level"


def test_unclosed_navgroup_is_reported(tmp_path: Path) -> None:
    """Reaching the end of the TOC with an open navgroup warns."""
    items = [
        TocItem(
            level=1,
            reference="[A](a.html)",
            attributes={"class": "navgroup", "id": "g"},
        )
    ]

    with capture_logs() as logs:
        TocTreeBuilder(tmp_path, "toc.json").build(items)

    assert [entry["navgroup"] for entry in logs] == ["g"]


def test_generate_hook_can_replace_and_veto(destination: Path) -> None:
    """``onGenerate`` handlers see each entry and may drop it."""
    hooks = HookRegistry()
    seen: list[str] = []

    @hooks.hook("json.toc.file.onGenerate")
    def _veto_links(subtree: TocTree | None, context: TocItemContext) -> TocTree | None:
        seen.append(context.reference)
        if context.reference.startswith("["):
            return TocTree()
        return None

    tree = TocTreeBuilder(destination, "toc.json", hooks=hooks).build(
        parse_toc_lines(LEGACY_TOC)
    )

    assert seen == ["Docs", "intro.md", "[Home](https://example.com)"]
    assert [node.label for node in tree.children()] == ["Intro"]


def test_generate_hook_can_supply_unresolved_items(tmp_path: Path) -> None:
    """A handler may resolve an entry the builder could not."""
    hooks = HookRegistry()

    def _resolve(subtree: TocTree | None, context: TocItemContext) -> TocTree | None:
        if subtree is not None:
            return None
        replacement = TocTree()
        replacement.add(
            replacement.root_index,
            TocNode(kind=TocKind.LINK, label=context.reference, href="custom.html"),
        )
        return replacement

    hooks.register("json.toc.file.onGenerate", _resolve)

    tree = TocTreeBuilder(tmp_path, "toc.json", hooks=hooks).build(
        [TocItem(level=1, reference="plugin-item")]
    )

    assert [(n.label, n.href) for n in tree.children()] == [
        ("plugin-item", "custom.html")
    ]


@pytest.mark.parametrize(
    ("reference", "label", "href"),
    [
        ("[Home](https://x.org)", "Home", "https://x.org"),
        ('[Home](https://x.org "Home page")', "Home", "https://x.org"),
        ("[Home]( https://x.org 'Home page' )", "Home", "https://x.org"),
        ("[[v2] Notes](https://x.org/v2)", "[v2] Notes", "https://x.org/v2"),
        ("[Spec](<docs/a b.html>)", "Spec", "docs/a b.html"),
    ],
)
def test_link_entries_keep_label_and_target(
    tmp_path: Path, reference: str, label: str, href: str
) -> None:
    """Titles, angle-bracket targets and bracketed labels parse as links."""
    tree = TocTreeBuilder(tmp_path, "toc.json").build(
        [TocItem(level=1, reference=reference)]
    )

    (node,) = tree.children()
    assert (node.kind, node.label, node.href) == (TocKind.LINK, label, href)


def test_generate_hook_with_unsupported_result_drops_only_that_item(
    tmp_path: Path,
) -> None:
    """A handler returning text instead of a tree excludes just that entry."""
    hooks = HookRegistry()

    def _serialised(subtree: TocTree | None, context: TocItemContext) -> object:
        if context.reference == "[A](a.html)":
            return '{"label": "x"}'
        return None

    hooks.register("json.toc.file.onGenerate", _serialised)
    items = [
        TocItem(level=1, reference="[A](a.html)"),
        TocItem(level=1, reference="[B](b.html)"),
    ]

    with capture_logs() as logs:
        tree = TocTreeBuilder(tmp_path, "toc.json", hooks=hooks).build(items)

    assert [node.label for node in tree.children()] == ["B"]
    assert [entry["value_type"] for entry in logs] == ["str"]
