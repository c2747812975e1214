"""Flatten a structured (``toc.yaml``) TOC object into TOC items.

The object form groups entries into navgroups::

    toc:
      properties:
        label: My Docs
      entries:
        - navgroup:
            id: start
            topics:
              - intro.md
              - topic: setup.md
                navtitle: Setting up
              - topicgroup:
                  label: Reference
                  topics: [api.md]
            links:
              - link: {label: Home, href: "https://example.com"}

The result is the same item stream the legacy line parser would produce for
the equivalent ``toc`` file, so both formats share one tree builder.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

import structlog

from docweave.toc.adapters import TocParseError
from docweave.toc.attributes import AttributeSet, merge_attributes
from docweave.toc.models import TocItem

logger = structlog.get_logger(__name__)


def _text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _branch(container: cabc.Mapping[str, typ.Any]) -> list[typ.Any]:
    """Return the ``topics`` followed by the ``links`` of ``container``.

    Raises
    ------
    TocParseError
        If either field is present but is not a list.
    """
    branch: list[typ.Any] = []
    for field in ("topics", "links"):
        value = container.get(field)
        if value is None:
            continue
        if not isinstance(value, list):
            msg = f"TOC '{field}' must be a list, not {type(value).__name__}."
            raise TocParseError(msg)
        branch.extend(value)
    return branch


def _topic_reference(topic: object) -> tuple[str | None, str | None]:
    """Return ``(reference, label_override)`` for path and link entries."""
    if isinstance(topic, str):
        return topic, None
    if not isinstance(topic, cabc.Mapping):
        return None, None
    if topic.get("topic") is not None:
        return str(topic["topic"]), _text(topic.get("navtitle"))
    if "link" in topic:
        link = topic["link"] if isinstance(topic["link"], cabc.Mapping) else topic
        label = _text(link.get("label")) or ""
        href = _text(link.get("href")) or ""
        return f"[{label}]({href})", None
    return None, None


def _topicgroup(topic: object) -> cabc.Mapping[str, typ.Any] | None:
    if not isinstance(topic, cabc.Mapping) or "topicgroup" not in topic:
        return None
    group = topic["topicgroup"]
    if group is None:
        return topic
    return group if isinstance(group, cabc.Mapping) else None


def _walk(
    items: list[TocItem],
    topics: list[typ.Any],
    *,
    navgroup_id: str | None,
    level: int,
    is_last: bool,
) -> None:
    for position, topic in enumerate(topics):
        last = is_last and position == len(topics) - 1
        opens = level == 2 and position == 0  # noqa: PLR2004 - navgroup entries
        reference, label_override = _topic_reference(topic)
        if reference is not None:
            attributes: AttributeSet = {}
            if opens:
                attributes = _navgroup_attributes("navgroup", navgroup_id)
            if last:
                attributes = merge_attributes(attributes, {"class": "navgroup-end"})
            items.append(
                TocItem(
                    level=level,
                    reference=reference,
                    attributes=attributes,
                    label_override=label_override,
                )
            )
            continue

        group = _topicgroup(topic)
        if group is None:
            logger.warning("Unrecognised toc entry skipped", entry=repr(topic))
            continue
        group_attributes: AttributeSet = (
            _navgroup_attributes("navgroup topicgroup", navgroup_id)
            if opens
            else {"class": "topicgroup"}
        )
        items.append(
            TocItem(
                level=level,
                reference=_text(group.get("label")) or "",
                attributes=group_attributes,
                plaintext=True,
                item_id=_text(group.get("id")),
            )
        )
        _walk(
            items,
            _branch(group),
            navgroup_id=navgroup_id,
            level=level + 1,
            is_last=last,
        )


def _navgroup_attributes(classes: str, navgroup_id: str | None) -> AttributeSet:
    attributes: AttributeSet = {"class": classes}
    if navgroup_id is not None:
        attributes["id"] = navgroup_id
    return attributes


def parse_toc_object(toc_object: cabc.Mapping[str, typ.Any]) -> list[TocItem]:
    """Convert a structured TOC object into ordered :class:`TocItem` entries.

    Parameters
    ----------
    toc_object : Mapping[str, Any]
        Parsed ``toc.yaml`` document (or the value supplied by the
        ``toc.get`` hook).

    Returns
    -------
    list[TocItem]
        A level-1 root item carrying the TOC properties, followed by the
        navgroup entries at level 2 and deeper.

    Raises
    ------
    TocParseError
        If the object has no ``toc`` mapping, or its entries or any
        ``topics``/``links`` field is not a list.
    """
    toc = toc_object.get("toc") if isinstance(toc_object, cabc.Mapping) else None
    if not isinstance(toc, cabc.Mapping):
        msg = "TOC object must contain a 'toc' mapping."
        raise TocParseError(msg)
    entries = toc.get("entries") or []
    if not isinstance(entries, list):
        msg = "TOC 'entries' must be a list."
        raise TocParseError(msg)

    properties = toc.get("properties") or {}
    label = ""
    root_attributes: AttributeSet = {"class": "toc"}
    if isinstance(properties, cabc.Mapping):
        for key, value in properties.items():
            if key == "label":
                label = _text(value) or ""
            else:
                root_attributes[str(key)] = _text(value)

    items = [
        TocItem(level=1, reference=label, attributes=root_attributes, plaintext=True)
    ]
    for entry in entries:
        if not isinstance(entry, cabc.Mapping):
            logger.warning("Navgroup entry must be a mapping", entry=repr(entry))
            continue
        navgroup = entry.get("navgroup")
        if not isinstance(navgroup, cabc.Mapping):
            navgroup = entry
        _walk(
            items,
            _branch(navgroup),
            navgroup_id=_text(navgroup.get("id")),
            level=2,
            is_last=True,
        )
    return items


__all__ = ["parse_toc_object"]
