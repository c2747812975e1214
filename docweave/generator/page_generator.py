"""High-level orchestration for a docweave build.

:class:`SiteGenerator` walks a source tree of markdown files twice. The
first pass converts every markdown file: it resolves variables (global and
per-folder ``keyref.yaml`` data, ``conref.md`` sections and plugin maps),
expands transclusions, renders HTML through Python-Markdown and wraps it in
the page template with the configured header and footer. Each page's heading
outline is kept as a TOC fragment. The second pass assembles a ``toc.json``
and/or ``toc.xml`` for every folder that has a ``toc.yaml`` or ``toc`` file,
children before parents. Temporary fragments are then removed and queued
PDFs are rendered.

Example
-------
>>> from pathlib import Path
>>> from docweave.config import build_config_from_mapping
>>> from docweave.generator.page_generator import SiteGenerator
>>> config = build_config_from_mapping(
...     {"source_dir": "docs", "dest_dir": "html", "toc_json": True}
... )
>>> SiteGenerator(config).run()  # doctest: +SKIP
BuildReport(converted=[...], toc_files=[PosixPath('html/toc.json')], pdf_files=[])
"""

from __future__ import annotations

import functools
import os
import typing as typ
from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from docweave._constants import (
    EXTENSION_HTML,
    EXTENSION_MARKDOWN,
    FILENAME_CONREF,
    FILENAME_KEYREF,
    FILENAME_TOC_ORDER,
    FILENAME_TOC_ORDER_YAML,
)
from docweave.config.models import BuildConfig, BuildConfigError
from docweave.generator.models import BuildReport, ConvertedFile
from docweave.generator.renderer import HtmlContentRenderer
from docweave.hooks import (
    HOOK_DIR_FILES_GET,
    HOOK_DIR_SHOULD_PROCESS,
    HOOK_HTML_COMPLETE,
    HOOK_MD_SHOULD_GENERATE,
    HOOK_PROCESS_EXIT,
    HOOK_TOC_COMPLETE,
    HOOK_TOC_GET,
    HOOK_VARIABLES_ADD,
    HookRegistry,
)
from docweave.markdown_parser import scan_sections
from docweave.pdf import PdfQueue
from docweave.toc.adapters import TocParseError, adapter_for
from docweave.toc.builder import TocTreeBuilder
from docweave.toc.fragments import FragmentStore, remove_temp_dirs
from docweave.toc.line_parser import parse_toc_lines
from docweave.toc.object_parser import parse_toc_object
from docweave.transclusion import TransclusionExpander
from docweave.variables import (
    deep_merge,
    load_keyref_file,
    parameterize_ids,
    resolve_variables,
    site_map,
)

if typ.TYPE_CHECKING:
    from docweave.toc.models import TocItem
    from docweave.variables import VariableMap

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"


class SiteGenerator:
    """Convert a markdown source tree into HTML, TOC files and PDFs."""

    def __init__(
        self,
        config: BuildConfig,
        *,
        hooks: HookRegistry | None = None,
        templates_dir: Path | None = None,
        pdf_queue: PdfQueue | None = None,
    ) -> None:
        """Initialize the generator with configuration and template context.

        Parameters
        ----------
        config : BuildConfig
            Source and destination folders plus output options.
        hooks : HookRegistry, optional
            Plugin handlers consulted during the build.
        templates_dir : Path, optional
            Directory containing ``page.jinja``; defaults to the package
            templates.
        pdf_queue : PdfQueue, optional
            Queue used when PDF output is enabled; built from ``config.pdf``
            by default.
        """
        self.config = config
        self.hooks = hooks or HookRegistry()
        self.renderer = HtmlContentRenderer(
            config.pygments_style, toc_depth=config.toc_depth
        )
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir or DEFAULT_TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("page.jinja")
        self.pdf_queue = pdf_queue
        if self.pdf_queue is None and config.pdf.enabled:
            self.pdf_queue = PdfQueue(config.pdf, overwrite=config.overwrite)
        self.header_text = self._read_optional(config.header_file)
        self.footer_text = self._read_optional(config.footer_file)
        self._global_maps: list[VariableMap] = []
        self._expander: TransclusionExpander | None = None

    def run(self) -> BuildReport:
        """Convert the source tree and write every output artifact.

        Returns
        -------
        BuildReport
            The HTML, TOC and PDF files written.

        Raises
        ------
        BuildConfigError
            Raised when the source directory does not exist.
        """
        source = self.config.source_dir
        dest = self.config.dest_dir
        if not source.is_dir():
            msg = f"Source directory '{source}' does not exist."
            raise BuildConfigError(msg)
        dest.mkdir(parents=True, exist_ok=True)

        self._global_maps = self._load_global_maps(source)
        self._expander = TransclusionExpander(source, dest, self._global_maps)
        report = BuildReport()

        logger.info("Generating HTML files", source=str(source), dest=str(dest))
        self._convert_directory(source, dest, self._global_maps, report)

        if self.config.toc_filenames:
            logger.info("Generating TOC files", formats=self.config.toc_filenames)
            self._generate_tocs(source, dest, report)

        remove_temp_dirs(dest)
        if self.pdf_queue is not None:
            report.pdf_files = self.pdf_queue.drain()
        self.hooks.invoke(HOOK_PROCESS_EXIT, None, {"source_path": source})
        return report

    @staticmethod
    def _read_optional(path: Path | None) -> str | None:
        if path is None:
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to read file", path=str(path), error=str(exc))
            return None

    @staticmethod
    def _page_text(
        text: str | None, maps: list[VariableMap], source: Path
    ) -> str:
        """Resolve header or footer text against the page's variables."""
        if not text:
            return ""
        return resolve_variables(text, maps, source=source)

    def _load_global_maps(self, source: Path) -> list[VariableMap]:
        """Return the site-wide variable map: keyref data plus conref sections."""
        data: dict[str, typ.Any] = {}
        if self.config.keyref_file is not None:
            data = load_keyref_file(self.config.keyref_file) or {}
        root_keyref = load_keyref_file(source / FILENAME_KEYREF)
        if root_keyref:
            data = deep_merge(data, root_keyref)
        variables = site_map(data)

        conref_path = source / FILENAME_CONREF
        if conref_path.is_file():
            try:
                conref = conref_path.read_text(encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as exc:
                logger.error(
                    "Failed to read conref file", path=str(conref_path), error=str(exc)
                )
            else:
                sections = scan_sections(conref, parameterize_ids=True)
                variables["site"]["data"]["content"] = sections
        return [variables]

    def _list_directory(self, source: Path) -> list[str]:
        try:
            names = os.listdir(source)
        except OSError as exc:
            logger.error("Failed to list directory", path=str(source), error=str(exc))
            return []
        listed = self.hooks.invoke(
            HOOK_DIR_FILES_GET, names, {"source_path": source}
        )
        return list(listed)

    def _convert_directory(
        self,
        source: Path,
        dest: Path,
        maps: list[VariableMap],
        report: BuildReport,
    ) -> None:
        if source != self.config.source_dir:
            local = load_keyref_file(source / FILENAME_KEYREF)
            if local:
                maps = [*maps, site_map(local)]

        for name in self._list_directory(source):
            path = source / name
            if path.is_dir():
                target = dest / name
                if not self._should_process_dir(path, target):
                    continue
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    logger.error(
                        "Failed to create directory", path=str(target), error=str(exc)
                    )
                    continue
                self._convert_directory(path, target, maps, report)
            elif path.suffix.lower() == EXTENSION_MARKDOWN and name != FILENAME_CONREF:
                converted = self._convert_file(path, dest, maps)
                if converted is not None:
                    report.converted.append(converted)

    def _should_process_dir(self, source: Path, dest: Path) -> bool:
        """Return whether a folder is walked; hidden ones are skipped by default."""
        should_process = self.hooks.invoke(
            HOOK_DIR_SHOULD_PROCESS,
            not source.name.startswith("."),
            {"source_path": source.resolve(), "destination_path": dest.resolve()},
        )
        if not should_process:
            logger.debug("Skipped", path=str(source))
        return bool(should_process)

    def _convert_file(
        self, path: Path, dest: Path, maps: list[VariableMap]
    ) -> ConvertedFile | None:
        """Convert one markdown file and record its TOC fragments."""
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read file", path=str(path), error=str(exc))
            return None
        logger.info("Read", path=str(path))

        html_filename = path.stem + EXTENSION_HTML
        should_generate = self.hooks.invoke(
            HOOK_MD_SHOULD_GENERATE,
            not path.name.startswith("."),
            {
                "source_path": path.resolve(),
                "destination_path": (dest / html_filename).resolve(),
                "source": text,
            },
        )
        if not should_generate:
            logger.debug("Skipped", path=str(path))
            return None

        extra = self.hooks.invoke(
            HOOK_VARIABLES_ADD,
            {},
            {"source_path": path, "file_text": text, "scan_sections": scan_sections},
        )
        file_maps = parameterize_ids([*maps, extra], path.stem)
        # variables may introduce transclusion placeholders
        text = resolve_variables(text, file_maps, source=path)
        if self._expander is not None:
            text = self._expander.expand(path, text, maps=file_maps)

        page = self.renderer.convert(text, html_filename)
        replace_variables = functools.partial(
            resolve_variables, maps=file_maps, source=path
        )
        body = self.hooks.invoke(
            HOOK_HTML_COMPLETE,
            page.html,
            {
                "source_path": path,
                "title": page.title,
                "variables": file_maps,
                "replace_variables": replace_variables,
            },
        )
        title = page.title or path.stem
        page_maps = [*file_maps, {"document": {"title": title}}]
        document = self.template.render(
            title=title,
            header=self._page_text(self.header_text, page_maps, path),
            body=body,
            footer=self._page_text(self.footer_text, page_maps, path),
            stylesheet=self.renderer.stylesheet,
        )

        html_path = dest / html_filename
        mode = "w" if self.config.overwrite else "x"
        try:
            with html_path.open(mode, encoding="utf-8") as handle:
                handle.write(document)
        except FileExistsError:
            logger.warning(
                "Skipped writing file due to a file collision", path=str(html_path)
            )
            return None
        except OSError as exc:
            logger.error("Failed to write file", path=str(html_path), error=str(exc))
            return None
        logger.info("Wrote", path=str(html_path))

        if self.pdf_queue is not None:
            self.pdf_queue.enqueue(html_path)

        converted = ConvertedFile(source=path, html_path=html_path)
        store = FragmentStore(dest)
        for toc_filename in self.config.toc_filenames:
            fragment_text = adapter_for(toc_filename).dumps(page.toc)
            written = store.write(path.name, toc_filename, fragment_text)
            if written is not None:
                converted.fragments[toc_filename] = written
        return converted

    def _generate_tocs(self, source: Path, dest: Path, report: BuildReport) -> None:
        """Write TOC files for ``dest`` after those of its subfolders."""
        for name in self._list_directory(source):
            path = source / name
            target = dest / name
            if not path.is_dir() or not self._should_process_dir(path, target):
                continue
            if target.is_dir():
                self._generate_tocs(path, target, report)
            else:
                logger.warning(
                    "Excluded from toc generation because no corresponding "
                    "destination folder was found",
                    source=str(path),
                )

        items = self._read_toc_items(source)
        if items is None:
            return
        for toc_filename in self.config.toc_filenames:
            adapter = adapter_for(toc_filename)
            builder = TocTreeBuilder(
                dest, toc_filename, adapter=adapter, hooks=self.hooks
            )
            tree = builder.build(items)
            written = self._write_toc(
                dest / toc_filename, adapter.dumps(tree), adapter.format_name
            )
            if written is not None:
                report.toc_files.append(written)

    def _read_toc_items(self, source: Path) -> list[TocItem] | None:
        """Return TOC items from the hook, ``toc.yaml`` or ``toc``, in that order."""
        toc_object = self.hooks.invoke(HOOK_TOC_GET, {}, {"source_path": source})
        if not toc_object:
            toc_object = self._load_toc_yaml(source / FILENAME_TOC_ORDER_YAML)
        if toc_object:
            try:
                return parse_toc_object(toc_object)
            except TocParseError as exc:
                logger.warning(
                    "Ignoring invalid toc object", source=str(source), error=str(exc)
                )

        toc_path = source / FILENAME_TOC_ORDER
        if not toc_path.is_file():
            return None
        try:
            lines = toc_path.read_text(encoding="utf-8-sig").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read file", path=str(toc_path), error=str(exc))
            return None
        return parse_toc_lines(lines)

    @staticmethod
    def _load_toc_yaml(path: Path) -> dict[str, typ.Any] | None:
        if not path.is_file():
            return None
        loader = YAML(typ="safe")
        loader.version = (1, 2)
        try:
            with path.open("r", encoding="utf-8") as handle:
                loaded = loader.load(handle)
        except (OSError, YAMLError) as exc:
            logger.warning("Failed to parse toc.yaml", path=str(path), error=str(exc))
            return None
        if not isinstance(loaded, dict):
            logger.warning("toc.yaml must contain a mapping", path=str(path))
            return None
        return loaded

    def _write_toc(self, path: Path, text: str, format_name: str) -> Path | None:
        output = self.hooks.invoke(
            HOOK_TOC_COMPLETE.format(fmt=format_name),
            text,
            {
                "toc_path": path,
                "variables": self._global_maps,
                "replace_variables": functools.partial(
                    resolve_variables, maps=self._global_maps, source=path
                ),
            },
        )
        if path.exists() and not (self.config.overwrite and path.is_file()):
            logger.warning(
                "Skipped writing toc file due to a file collision", path=str(path)
            )
            return None
        try:
            path.write_text(output, encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to write file", path=str(path), error=str(exc))
            return None
        logger.info("Wrote", path=str(path))
        return path


__all__ = ["SiteGenerator"]
