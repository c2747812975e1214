"""Named extension points invoked during a build.

Plugins register handlers against a hook name. When the build reaches that
point it passes the current value and a context to each handler in
registration order. A handler returns a replacement value, or ``None`` to
leave the value unchanged; a handler that raises is logged and skipped.

Hook names
----------
``toc.get``
    Supply a TOC object for a source folder before ``toc.yaml``/``toc`` are
    read. Value: ``{}``; context: ``source_path``.
``json.toc.file.onGenerate`` / ``xml.toc.file.onGenerate``
    Adjust or veto the subtree produced for one TOC entry. Value: a
    :class:`~docweave.toc.models.TocTree` or ``None``; an empty tree drops
    the entry. Context: :class:`~docweave.toc.builder.TocItemContext`.
``json.toc.onComplete`` / ``xml.toc.onComplete``
    Rewrite serialised TOC text before it is written.
``md.variables.add``
    Contribute an extra variable map for one markdown file.
``file.dir.files.get``
    Reorder or filter the entries of a source folder.
``file.dir.shouldProcess``
    Decide whether a source folder is walked. Value: ``False`` for hidden
    folders, ``True`` otherwise; context: ``source_path`` and
    ``destination_path``.
``file.md.shouldGenerate``
    Decide whether a markdown file is converted. Value as above; context
    also carries the file ``source``.
``html.onComplete``
    Rewrite the HTML body of a converted page.
``process.onExit``
    Observe the end of the build.

Example
-------
>>> from docweave.hooks import HookRegistry
>>> hooks = HookRegistry()
>>> hooks.register("html.onComplete", lambda html, context: html.upper())
>>> hooks.invoke("html.onComplete", "<p>hi</p>\\n", {})
'<P>HI</P>\\n'
"""

from __future__ import annotations

import collections
import re
import typing as typ

import structlog

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = structlog.get_logger(__name__)

HOOK_TOC_GET = "toc.get"
HOOK_TOC_FILE_GENERATE = "{fmt}.toc.file.onGenerate"
HOOK_TOC_COMPLETE = "{fmt}.toc.onComplete"
HOOK_VARIABLES_ADD = "md.variables.add"
HOOK_DIR_FILES_GET = "file.dir.files.get"
HOOK_DIR_SHOULD_PROCESS = "file.dir.shouldProcess"
HOOK_MD_SHOULD_GENERATE = "file.md.shouldGenerate"
HOOK_HTML_COMPLETE = "html.onComplete"
HOOK_PROCESS_EXIT = "process.onExit"

TRAILING_NEWLINE_PATTERN = re.compile(r"(\r\n|\r|\n)$")

T = typ.TypeVar("T")
Handler = typ.Callable[[typ.Any, typ.Any], typ.Any]


class HookRegistry:
    """Ordered handler lists keyed by hook name."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = collections.defaultdict(list)

    def register(self, name: str, handler: Handler) -> None:
        """Add ``handler`` to the end of the ``name`` hook's handler list."""
        self._handlers[name].append(handler)

    def hook(self, name: str) -> cabc.Callable[[Handler], Handler]:
        """Return a decorator registering the decorated function for ``name``."""

        def _decorator(handler: Handler) -> Handler:
            self.register(name, handler)
            return handler

        return _decorator

    def handlers(self, name: str) -> tuple[Handler, ...]:
        return tuple(self._handlers.get(name, ()))

    def __contains__(self, name: object) -> bool:
        return bool(self._handlers.get(name)) if isinstance(name, str) else False

    def invoke(self, name: str, value: T, context: object = None) -> T:
        """Run the handlers registered for ``name`` and return the final value.

        Parameters
        ----------
        name : str
            Hook name.
        value : T
            Value passed to the first handler.
        context : object, optional
            Extra information handed to every handler unchanged.

        Returns
        -------
        T
            The last non-``None`` value returned by a handler, or ``value``
            when no handler replaced it. A trailing newline on string values
            is restored if a handler dropped it.
        """
        handlers = self._handlers.get(name)
        if not handlers:
            return value

        trailing = (
            TRAILING_NEWLINE_PATTERN.search(value) if isinstance(value, str) else None
        )
        for handler in handlers:
            try:
                result = handler(value, context)
            except Exception:
                logger.exception(
                    "Hook handler failed",
                    hook=name,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )
                continue
            if result is not None:
                value = result

        if trailing and isinstance(value, str) and not value.endswith(trailing.group(1)):
            value = typ.cast("T", value + trailing.group(1))
        return value


__all__ = [
    "HOOK_DIR_FILES_GET",
    "HOOK_DIR_SHOULD_PROCESS",
    "HOOK_HTML_COMPLETE",
    "HOOK_MD_SHOULD_GENERATE",
    "HOOK_PROCESS_EXIT",
    "HOOK_TOC_COMPLETE",
    "HOOK_TOC_FILE_GENERATE",
    "HOOK_TOC_GET",
    "HOOK_VARIABLES_ADD",
    "Handler",
    "HookRegistry",
]
