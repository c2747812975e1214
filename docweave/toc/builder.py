"""Assemble TOC items into a :class:`~docweave.toc.models.TocTree`.

:class:`TocTreeBuilder` takes the items produced by either the legacy line
parser or the structured object parser and resolves each one, in order,
through :meth:`TocTreeBuilder.resolve_item`:

* ``[label](href)`` becomes a link;
* absolute paths become links, pointing at the TOC file when the path ends
  at a TOC location (``/guide/`` or ``/guide/toc``);
* a relative path naming a destination folder links to that folder's TOC;
* ``*.md`` references pull in the TOC fragment recorded when the file was
  converted;
* plain labels configure the root (class ``toc``) or open a topic group
  (class ``topicgroup``).

Resolved subtrees pass through the ``<fmt>.toc.file.onGenerate`` hook and are
then spliced into the tree under the open parent for the item's level.

Example
-------
>>> from pathlib import Path
>>> from docweave.toc.builder import TocTreeBuilder
>>> from docweave.toc.models import TocItem
>>> builder = TocTreeBuilder(Path("html"), "toc.json")
>>> tree = builder.build([TocItem(level=1, reference="[Home](https://x.org)")])
>>> tree.children()[0].href
'https://x.org'
"""

from __future__ import annotations

import dataclasses as dc
import posixpath
import re
import typing as typ

import structlog

from docweave.generator.link_rewriter import rebase_href
from docweave.hooks import HOOK_TOC_FILE_GENERATE, HookRegistry
from docweave.toc.adapters import TocAdapter, TocParseError, adapter_for
from docweave.toc.attributes import AttributeSet, class_tokens
from docweave.toc.fragments import FragmentStore
from docweave.toc.models import TocItem, TocKind, TocNode, TocProperty, TocTree

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

logger = structlog.get_logger(__name__)

# label (may hold bracket pairs), optional <...> target, optional quoted title
LINK_PATTERN = re.compile(
    r"^!?\[((?:\[[^\]]*\]|[^\[\]]|\](?=[^\[]*\]))*)\]"
    r"\(\s*<?([\s\S]*?)>?(?:\s+['\"]([\s\S]*?)['\"])?\s*\)$"
)
ABSOLUTE_TOC_PATH_PATTERN = re.compile(r"^/.*/(toc)?$")
COMMENT_PATTERN = re.compile(r"^<!--.*-->$", re.DOTALL)

CLASS_NAVGROUP = "navgroup"
CLASS_NAVGROUP_END = "navgroup-end"
CLASS_ROOT = "toc"
CLASS_TOPICGROUP = "topicgroup"


@dc.dataclass(slots=True)
class Navgroup:
    """An open navgroup: its id and the level its members sit at."""

    id: str
    level: int


@dc.dataclass(slots=True)
class TocItemContext:
    """Information passed to ``<fmt>.toc.file.onGenerate`` handlers."""

    destination: Path
    toc_filename: str
    reference: str
    level: int
    attributes: AttributeSet
    navgroup: str | None = None
    path_prefix: str | None = None
    subcollection: str | None = None
    plaintext: bool = False
    item_id: str | None = None


@dc.dataclass(slots=True)
class _BuildContext:
    tree: TocTree
    stack: list[int]
    navgroup: Navgroup | None = None
    path_prefix: str | None = None
    subcollection: str | None = None

    def navgroup_at(self, level: int) -> str | None:
        if self.navgroup is not None and self.navgroup.level == level:
            return self.navgroup.id
        return None


def _single(node: TocNode) -> TocTree:
    subtree = TocTree()
    subtree.add(subtree.root_index, node)
    return subtree


def _top_nodes(subtree: TocTree) -> list[TocNode]:
    return subtree.children(subtree.root_index)


class TocTreeBuilder:
    """Build the TOC tree of one destination folder.

    Parameters
    ----------
    destination : Path
        Destination folder holding the converted HTML and its fragments.
    toc_filename : str
        ``toc.json`` or ``toc.xml``; selects the fragment format and hooks.
    adapter : TocAdapter, optional
        Serialiser for fragments; derived from ``toc_filename`` by default.
    hooks : HookRegistry, optional
        Registry consulted for ``<fmt>.toc.file.onGenerate``.
    """

    def __init__(
        self,
        destination: Path,
        toc_filename: str,
        *,
        adapter: TocAdapter | None = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        self.destination = destination
        self.toc_filename = toc_filename
        self.adapter = adapter or adapter_for(toc_filename)
        self.hooks = hooks or HookRegistry()
        self.hook_name = HOOK_TOC_FILE_GENERATE.format(fmt=self.adapter.format_name)

    def build(self, items: cabc.Iterable[TocItem]) -> TocTree:
        """Resolve ``items`` in order and return the assembled tree."""
        tree = TocTree()
        context = _BuildContext(tree=tree, stack=[tree.root_index])
        for item in items:
            try:
                self._add_item(context, item)
            except (OSError, ValueError) as exc:
                logger.warning(
                    "Excluded from toc after a resolution error",
                    item=item.reference,
                    destination=str(self.destination),
                    error=str(exc),
                )
        if context.navgroup is not None:
            logger.warning(
                "Navgroup was not ended before the end of the toc",
                navgroup=context.navgroup.id,
                destination=str(self.destination),
            )
        return tree

    def _add_item(self, context: _BuildContext, item: TocItem) -> None:
        if item.level > len(context.stack):
            logger.warning(
                "Excluded from toc due to invalid nesting level",
                item=item.reference,
                level=item.level,
                destination=str(self.destination),
            )
            return

        attributes = dict(item.attributes)
        closes = self._track_navgroup(context, item, attributes)
        subtree = self.resolve_item(context, item, attributes)
        item_context = TocItemContext(
            destination=self.destination,
            toc_filename=self.toc_filename,
            reference=item.reference,
            level=item.level,
            attributes=attributes,
            navgroup=context.navgroup_at(item.level),
            path_prefix=context.path_prefix,
            subcollection=context.subcollection,
            plaintext=item.plaintext,
            item_id=item.item_id,
        )
        subtree = self.hooks.invoke(self.hook_name, subtree, item_context)

        if subtree is not None and not isinstance(subtree, TocTree):
            logger.warning(
                "Excluded from toc; the generate hook returned an unsupported value",
                item=item.reference,
                hook=self.hook_name,
                value_type=type(subtree).__name__,
            )
        elif subtree is None:
            if not COMMENT_PATTERN.match(item.reference):
                logger.warning(
                    "Excluded from toc files; the item could not be resolved",
                    item=item.reference,
                    destination=str(self.destination),
                )
        elif not subtree.root.children:
            logger.debug("Toc item vetoed by hook", item=item.reference)
        else:
            self._splice(context, item.level, subtree)

        if closes:
            context.navgroup = None

    def _track_navgroup(
        self, context: _BuildContext, item: TocItem, attributes: AttributeSet
    ) -> bool:
        """Open or close navgroups and strip their markers from ``attributes``."""
        if context.navgroup is not None and item.level < context.navgroup.level:
            logger.warning(
                "Navgroup was not ended before a shallower item",
                navgroup=context.navgroup.id,
                item=item.reference,
            )
            context.navgroup = None

        classes = class_tokens(attributes)
        if not classes:
            return False
        kept: list[str] = []
        closes = False
        for name in classes:
            lowered = name.lower()
            if lowered == CLASS_NAVGROUP:
                nav_id = attributes.pop("id", None)
                if context.navgroup is not None:
                    logger.warning(
                        "Encountered new navgroup before previous navgroup ended",
                        navgroup=context.navgroup.id,
                        item=item.reference,
                    )
                elif not nav_id:
                    logger.warning("Navgroup declared without an id", item=item.reference)
                else:
                    context.navgroup = Navgroup(id=nav_id, level=item.level)
            elif lowered == CLASS_NAVGROUP_END:
                if context.navgroup is None:
                    logger.warning(
                        "Navgroup end found without an open navgroup",
                        item=item.reference,
                    )
                closes = True
            else:
                kept.append(name)
        if kept:
            attributes["class"] = " ".join(kept)
        else:
            attributes.pop("class", None)
        return closes

    def resolve_item(
        self, context: _BuildContext, item: TocItem, attributes: AttributeSet
    ) -> TocTree | None:
        """Return the subtree for ``item``, or None when it cannot be resolved.

        The returned tree's root is a carrier; its children are the nodes to
        splice in. A root-configuring item yields a single ``ROOT`` node.
        """
        reference = item.reference.replace("\\", "/")
        navgroup = context.navgroup_at(item.level)

        if link := LINK_PATTERN.match(reference):
            node = TocNode(kind=TocKind.LINK, label=link.group(1), href=link.group(2))
            return _single(self._with_navgroup(node, navgroup))
        if ABSOLUTE_TOC_PATH_PATTERN.match(reference):
            href = reference[: reference.rfind("/") + 1] + self.toc_filename
            node = TocNode(kind=TocKind.LINK, href=href)
            return _single(self._with_navgroup(node, navgroup))
        if reference.startswith("/"):
            node = TocNode(kind=TocKind.LINK, href=reference)
            return _single(self._with_navgroup(node, navgroup))
        if not item.plaintext and reference and (self.destination / reference).is_dir():
            href = posixpath.join(reference.rstrip("/"), self.toc_filename)
            node = TocNode(kind=TocKind.LINK, href=href)
            return _single(self._with_navgroup(node, navgroup))

        fragment = None if item.plaintext else self._load_fragment(reference)
        if fragment is not None:
            return self._prepare_fragment(context, item, fragment, attributes)

        classes = [name.lower() for name in class_tokens(attributes)]
        if CLASS_ROOT in classes:
            properties = [
                TocProperty(name, value)
                for name, value in attributes.items()
                if name != "class"
            ]
            return _single(
                TocNode(kind=TocKind.ROOT, label=item.reference, properties=properties)
            )
        if CLASS_TOPICGROUP in classes:
            node = TocNode(
                kind=TocKind.TOPICGROUP,
                label=item.reference,
                id=item.item_id or attributes.get("topicgroup-id"),
            )
            return _single(self._with_navgroup(node, navgroup))
        return None

    @staticmethod
    def _with_navgroup(node: TocNode, navgroup: str | None) -> TocNode:
        if navgroup is not None:
            node.properties.insert(0, TocProperty(CLASS_NAVGROUP, navgroup))
        return node

    def _load_fragment(self, reference: str) -> TocTree | None:
        dirname, basename = posixpath.split(reference)
        text = FragmentStore(self.destination / dirname).read(
            basename, self.toc_filename
        )
        if text is None:
            return None
        try:
            return self.adapter.loads(text)
        except TocParseError as exc:
            logger.warning(
                "Ignoring unreadable toc fragment", item=reference, error=str(exc)
            )
            return None

    def _prepare_fragment(
        self,
        context: _BuildContext,
        item: TocItem,
        fragment: TocTree,
        attributes: AttributeSet,
    ) -> TocTree:
        dirname = posixpath.dirname(item.reference.replace("\\", "/"))
        if dirname:
            self._rebase(fragment, dirname)

        tops = _top_nodes(fragment)
        if item.label_override and tops:
            tops[0].label = item.label_override

        navgroup = context.navgroup_at(item.level)
        for top_index in fragment.root.children:
            top = fragment.nodes[top_index]
            for child in fragment.children(top_index):
                child.kind = TocKind.ANCHOR
            added = [TocProperty(name, value) for name, value in attributes.items()]
            if navgroup is not None:
                added.insert(0, TocProperty(CLASS_NAVGROUP, navgroup))
            top.properties = [*added, *top.properties]

        if context.path_prefix:
            self._rebase(fragment, context.path_prefix)
            id_prefix = context.subcollection or context.path_prefix
            for node in fragment.walk():
                if node.id:
                    node.id = f"{id_prefix}-{node.id}"
        return fragment

    @staticmethod
    def _rebase(tree: TocTree, prefix: str) -> None:
        for node in tree.walk():
            if node.href:
                node.href = rebase_href(node.href, prefix)

    def _splice(self, context: _BuildContext, level: int, subtree: TocTree) -> None:
        parent = context.stack[level - 1]
        last: int | None = None
        for child in subtree.root.children:
            node = subtree.nodes[child]
            if node.kind is TocKind.ROOT:
                root = context.tree.root
                root.label = node.label
                root.id = node.id
                root.properties = [TocProperty(p.name, p.value) for p in node.properties]
                context.path_prefix = node.property_value("path")
                context.subcollection = node.property_value("subcollection")
                last = context.tree.root_index
                continue
            last = context.tree.graft(parent, subtree, child)
        if last is not None:
            del context.stack[level:]
            context.stack.append(last)


__all__ = ["Navgroup", "TocItemContext", "TocTreeBuilder"]
