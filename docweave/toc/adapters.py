"""Serialise TOC trees to JSON or XML and read them back.

Both formats carry the same information: every node has a kind, a label,
an optional ``href`` and ``id``, an ordered list of properties and its
children. Output is deterministic so that identical trees produce
byte-identical files.

JSON documents look like::

    {"toc": {"label": "Docs", "type": "toc", "topics": [{"label": "Intro",
     "href": "intro.html", "topics": [...]}]}}

XML documents mirror the tree with one element per node kind::

    <toc label="Docs"><topic label="Intro" href="intro.html">...</topic></toc>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import msgspec
import msgspec.json

from docweave._constants import FILENAME_TOC_JSON, FILENAME_TOC_XML
from docweave.toc.models import TocKind, TocNode, TocProperty, TocTree


class TocParseError(ValueError):
    """Raised when serialised TOC text cannot be read back into a tree."""


class PropertyRecord(msgspec.Struct, omit_defaults=True):
    name: str
    value: str | None = None


class TopicRecord(msgspec.Struct, omit_defaults=True):
    label: str = ""
    kind: str = msgspec.field(default="topic", name="type")
    href: str | None = None
    id: str | None = None
    properties: list[PropertyRecord] = []
    topics: list[TopicRecord] = []


class TocDocument(msgspec.Struct):
    toc: TopicRecord


def _to_kind(value: str) -> TocKind:
    try:
        return TocKind(value)
    except ValueError as exc:
        msg = f"Unknown TOC node type '{value}'."
        raise TocParseError(msg) from exc


class JsonTocAdapter:
    """Read and write ``toc.json`` documents."""

    format_name = "json"
    toc_filename = FILENAME_TOC_JSON

    def dumps(self, tree: TocTree) -> str:
        """Return the JSON text for ``tree``."""
        document = TocDocument(toc=self._record(tree, tree.root_index))
        encoded = msgspec.json.format(msgspec.json.encode(document), indent=2)
        return encoded.decode() + "\n"

    def loads(self, text: str) -> TocTree:
        """Parse JSON text produced by :meth:`dumps`.

        Raises
        ------
        TocParseError
            If the text is not valid JSON or does not describe a TOC.
        """
        try:
            document = msgspec.json.decode(text, type=TocDocument)
        except msgspec.DecodeError as exc:
            msg = f"Invalid JSON TOC: {exc}"
            raise TocParseError(msg) from exc
        tree = TocTree(label=document.toc.label)
        tree.root.id = document.toc.id
        tree.root.href = document.toc.href
        tree.root.properties = [
            TocProperty(p.name, p.value) for p in document.toc.properties
        ]
        for topic in document.toc.topics:
            self._attach(tree, tree.root_index, topic)
        return tree

    def _record(self, tree: TocTree, index: int) -> TopicRecord:
        node = tree.nodes[index]
        return TopicRecord(
            label=node.label,
            kind=str(node.kind),
            href=node.href,
            id=node.id,
            properties=[PropertyRecord(p.name, p.value) for p in node.properties],
            topics=[self._record(tree, child) for child in node.children],
        )

    def _attach(self, tree: TocTree, parent: int, record: TopicRecord) -> None:
        index = tree.add(
            parent,
            TocNode(
                kind=_to_kind(record.kind),
                label=record.label,
                href=record.href,
                id=record.id,
                properties=[TocProperty(p.name, p.value) for p in record.properties],
            ),
        )
        for topic in record.topics:
            self._attach(tree, index, topic)


class XmlTocAdapter:
    """Read and write ``toc.xml`` documents."""

    format_name = "xml"
    toc_filename = FILENAME_TOC_XML

    def dumps(self, tree: TocTree) -> str:
        """Return the XML text for ``tree``."""
        element = self._element(tree, tree.root_index)
        ET.indent(element, space="  ")
        return ET.tostring(element, encoding="unicode") + "\n"

    def loads(self, text: str) -> TocTree:
        """Parse XML text produced by :meth:`dumps`.

        Raises
        ------
        TocParseError
            If the text is not well-formed or its root is not ``<toc>``.
        """
        try:
            element = ET.fromstring(text)  # noqa: S314 - generated by this build
        except ET.ParseError as exc:
            msg = f"Invalid XML TOC: {exc}"
            raise TocParseError(msg) from exc
        if element.tag != TocKind.ROOT:
            msg = f"XML TOC root must be <toc>, found <{element.tag}>."
            raise TocParseError(msg)
        tree = TocTree(label=element.get("label", ""))
        self._fill(tree.root, element)
        for child in element:
            if child.tag != "property":
                self._attach(tree, tree.root_index, child)
        return tree

    def _element(self, tree: TocTree, index: int) -> ET.Element:
        node = tree.nodes[index]
        element = ET.Element(str(node.kind))
        if node.label:
            element.set("label", node.label)
        for name in ("href", "id"):
            value = getattr(node, name)
            if value is not None:
                element.set(name, value)
        for prop in node.properties:
            child = ET.SubElement(element, "property", name=prop.name)
            if prop.value is not None:
                child.set("value", prop.value)
        for child_index in node.children:
            element.append(self._element(tree, child_index))
        return element

    @staticmethod
    def _fill(node: TocNode, element: ET.Element) -> None:
        node.href = element.get("href")
        node.id = element.get("id")
        node.properties = [
            TocProperty(child.get("name", ""), child.get("value"))
            for child in element
            if child.tag == "property"
        ]

    def _attach(self, tree: TocTree, parent: int, element: ET.Element) -> None:
        node = TocNode(kind=_to_kind(element.tag), label=element.get("label", ""))
        self._fill(node, element)
        index = tree.add(parent, node)
        for child in element:
            if child.tag != "property":
                self._attach(tree, index, child)


TocAdapter = JsonTocAdapter | XmlTocAdapter

_ADAPTERS: dict[str, type[JsonTocAdapter] | type[XmlTocAdapter]] = {
    FILENAME_TOC_JSON: JsonTocAdapter,
    FILENAME_TOC_XML: XmlTocAdapter,
}


def adapter_for(toc_filename: str) -> TocAdapter:
    """Return the adapter that serialises ``toc_filename``."""
    try:
        return _ADAPTERS[toc_filename]()
    except KeyError as exc:
        known = ", ".join(sorted(_ADAPTERS))
        msg = f"Unsupported TOC file '{toc_filename}'. Known formats: {known}"
        raise ValueError(msg) from exc


__all__ = [
    "JsonTocAdapter",
    "TocAdapter",
    "TocParseError",
    "XmlTocAdapter",
    "adapter_for",
]