"""Unit tests for the JSON and XML TOC serialisers."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET

import pytest

from docweave.toc import (
    JsonTocAdapter,
    TocKind,
    TocNode,
    TocParseError,
    TocProperty,
    TocTree,
    XmlTocAdapter,
    adapter_for,
)


@pytest.fixture
def tree() -> TocTree:
    """A small tree exercising every node field."""
    toc = TocTree(label="Docs")
    toc.root.properties = [TocProperty("path", "manual")]
    group = toc.add(
        toc.root_index, TocNode(kind=TocKind.TOPICGROUP, label="Guides", id="g")
    )
    page = toc.add(
        group,
        TocNode(
            kind=TocKind.TOPIC,
            label="Intro",
            href="intro.html",
            properties=[TocProperty("navgroup", "start"), TocProperty("draft")],
        ),
    )
    toc.add(page, TocNode(kind=TocKind.ANCHOR, label="Usage", href="intro.html#usage"))
    toc.add(
        toc.root_index, TocNode(kind=TocKind.LINK, label="Home", href="https://x.org")
    )
    return toc


@pytest.mark.parametrize("adapter", [JsonTocAdapter(), XmlTocAdapter()])
def test_loads_reads_back_what_dumps_wrote(
    adapter: JsonTocAdapter | XmlTocAdapter, tree: TocTree
) -> None:
    """Serialised trees read back equal, and re-serialise identically."""
    text = adapter.dumps(tree)

    restored = adapter.loads(text)

    assert restored == tree
    assert adapter.dumps(restored) == text
    assert text.endswith("\n")


def test_json_layout(tree: TocTree) -> None:
    """JSON nests topics under a ``toc`` object and names kinds ``type``."""
    document = json.loads(JsonTocAdapter().dumps(tree))

    root = document["toc"]
    assert (root["label"], root["type"]) == ("Docs", "toc")
    assert root["properties"] == [{"name": "path", "value": "manual"}]
    group, link = root["topics"]
    assert (group["type"], group["id"]) == ("topicgroup", "g")
    assert link == {"label": "Home", "type": "link", "href": "https://x.org"}
    page = group["topics"][0]
    assert page["properties"][1] == {"name": "draft"}


def test_xml_layout(tree: TocTree) -> None:
    """XML uses one element per node kind with properties first."""
    root = ET.fromstring(XmlTocAdapter().dumps(tree))  # noqa: S314

    assert root.tag == "toc"
    assert [child.tag for child in root] == ["property", "topicgroup", "link"]
    page = root.find("topicgroup/topic")
    assert page is not None
    assert [child.tag for child in page] == ["property", "property", "anchor"]
    assert page.find("anchor").get("href") == "intro.html#usage"


@pytest.mark.parametrize(
    ("adapter", "text"),
    [
        (JsonTocAdapter(), "{not json"),
        (JsonTocAdapter(), '{"toc": {"topics": [{"type": "chapter"}]}}'),
        (XmlTocAdapter(), "<toc><topic>"),
        (XmlTocAdapter(), "<chapter/>"),
    ],
)
def test_invalid_documents_raise(
    adapter: JsonTocAdapter | XmlTocAdapter, text: str
) -> None:
    """Text that does not describe a TOC raises ``TocParseError``."""
    with pytest.raises(TocParseError):
        adapter.loads(text)


def test_adapter_for_selects_by_filename() -> None:
    """Adapters are chosen from the TOC filename."""
    assert isinstance(adapter_for("toc.json"), JsonTocAdapter)
    assert isinstance(adapter_for("toc.xml"), XmlTocAdapter)
    with pytest.raises(ValueError, match="Unsupported TOC file"):
        adapter_for("toc.html")


@pytest.mark.parametrize("adapter", [JsonTocAdapter(), XmlTocAdapter()])
def test_empty_strings_survive_a_round_trip(
    adapter: JsonTocAdapter | XmlTocAdapter,
) -> None:
    """An empty ``href`` or ``id`` reads back as empty text, not as missing."""
    toc = TocTree(label="Docs")
    toc.add(toc.root_index, TocNode(kind=TocKind.TOPIC, label="", href="", id=""))

    (node,) = adapter.loads(adapter.dumps(toc)).children()

    assert (node.label, node.href, node.id) == ("", "", "")
