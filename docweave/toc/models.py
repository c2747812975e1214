"""Typed structures describing TOC entries and the assembled TOC tree."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from docweave.toc.attributes import AttributeSet


class TocKind(enum.StrEnum):
    """Node types that may appear in a TOC tree."""

    ROOT = "toc"
    TOPIC = "topic"
    LINK = "link"
    ANCHOR = "anchor"
    TOPICGROUP = "topicgroup"


@dc.dataclass(slots=True)
class TocProperty:
    """Name/value pair attached to a node; ``value`` is None for flags."""

    name: str
    value: str | None = None


@dc.dataclass(slots=True)
class TocNode:
    """One node of a :class:`TocTree`.

    ``parent`` and ``children`` hold indices into the owning tree's node list.
    """

    kind: TocKind
    label: str = ""
    href: str | None = None
    id: str | None = None
    properties: list[TocProperty] = dc.field(default_factory=list)
    parent: int | None = None
    children: list[int] = dc.field(default_factory=list)

    def property_value(self, name: str) -> str | None:
        """Return the value of the first property called ``name``."""
        for prop in self.properties:
            if prop.name == name:
                return prop.value
        return None


@dc.dataclass(slots=True)
class TocItem:
    """A TOC source entry before resolution.

    Attributes
    ----------
    level : int
        Nesting depth, starting at 1 for top-level entries.
    reference : str
        Markdown file, folder, link (``[label](href)``) or plain label.
    attributes : AttributeSet
        Attributes computed from the entry's attribute lists.
    label_override : str, optional
        Label replacing the first topic of a resolved fragment.
    plaintext : bool
        True when ``reference`` is a label rather than something to resolve.
    item_id : str, optional
        Id supplied for plain-text entries such as topic groups.
    """

    level: int
    reference: str
    attributes: AttributeSet = dc.field(default_factory=dict)
    label_override: str | None = None
    plaintext: bool = False
    item_id: str | None = None


class TocTree:
    """Arena-backed TOC tree; index ``0`` is always the root node."""

    root_index = 0

    def __init__(self, label: str = "") -> None:
        self.nodes: list[TocNode] = [TocNode(kind=TocKind.ROOT, label=label)]

    @property
    def root(self) -> TocNode:
        return self.nodes[self.root_index]

    def __len__(self) -> int:
        return len(self.nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TocTree):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    __hash__ = None  # type: ignore[assignment]

    def add(self, parent: int, node: TocNode) -> int:
        """Append ``node`` as the last child of ``parent`` and return its index."""
        node.parent = parent
        node.children = []
        index = len(self.nodes)
        self.nodes.append(node)
        self.nodes[parent].children.append(index)
        return index

    def children(self, index: int = 0) -> list[TocNode]:
        """Return the child nodes of the node at ``index``."""
        return [self.nodes[child] for child in self.nodes[index].children]

    def walk(self, index: int = 0) -> cabc.Iterator[TocNode]:
        """Yield the node at ``index`` and its descendants depth-first."""
        node = self.nodes[index]
        yield node
        for child in node.children:
            yield from self.walk(child)

    def graft(self, parent: int, other: TocTree, other_index: int) -> int:
        """Copy the subtree at ``other_index`` of ``other`` below ``parent``."""
        source = other.nodes[other_index]
        index = self.add(
            parent,
            TocNode(
                kind=source.kind,
                label=source.label,
                href=source.href,
                id=source.id,
                properties=[TocProperty(p.name, p.value) for p in source.properties],
            ),
        )
        for child in source.children:
            self.graft(index, other, child)
        return index

    def as_dict(self, index: int = 0) -> dict[str, typ.Any]:
        """Return the subtree at ``index`` as nested plain data."""
        node = self.nodes[index]
        return {
            "kind": str(node.kind),
            "label": node.label,
            "href": node.href,
            "id": node.id,
            "properties": [(p.name, p.value) for p in node.properties],
            "children": [self.as_dict(child) for child in node.children],
        }


__all__ = ["TocItem", "TocKind", "TocNode", "TocProperty", "TocTree"]
