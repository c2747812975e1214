"""Cyclopts CLI entrypoint for building documentation with docweave.

The ``docweave`` console script converts a folder of markdown files into
HTML, assembles ``toc.json``/``toc.xml`` files for every folder that carries
a TOC source, and optionally renders PDFs. Settings come from a YAML build
file (``docweave.yaml`` by default); command-line flags and ``INPUT_*``
environment variables override them.

Examples
--------
Build using the settings in ``docweave.yaml``:

>>> from docweave.cli import main
>>> main()  # doctest: +SKIP

Build a folder directly, writing JSON TOCs:

>>> from docweave.cli import app
>>> app(
...     ["generate", "--source-dir", "docs", "--dest-dir", "html", "--toc-json"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import cyclopts
import structlog
from cyclopts import App, Parameter

from .config import build_config_from_mapping, load_build_config
from .generator.page_generator import SiteGenerator

DEFAULT_CONFIG = Path("docweave.yaml")

app = App(name="docweave", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(*, verbose: bool) -> None:
    """Route structlog output through a level filter."""
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


@app.command(help="Convert a markdown tree into HTML, TOC files and PDFs.")
def generate(
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to the build config", env_var="INPUT_CONFIG")
    ] = DEFAULT_CONFIG,
    source_dir: typ.Annotated[
        Path | None,
        Parameter(help="Folder of markdown sources", env_var="INPUT_SOURCE_DIR"),
    ] = None,
    dest_dir: typ.Annotated[
        Path | None,
        Parameter(help="Folder receiving the output", env_var="INPUT_DEST_DIR"),
    ] = None,
    overwrite: typ.Annotated[
        bool | None,
        Parameter(help="Replace existing output files", env_var="INPUT_OVERWRITE"),
    ] = None,
    toc_json: typ.Annotated[
        bool | None, Parameter(help="Write toc.json files", env_var="INPUT_TOC_JSON")
    ] = None,
    toc_xml: typ.Annotated[
        bool | None, Parameter(help="Write toc.xml files", env_var="INPUT_TOC_XML")
    ] = None,
    toc_depth: typ.Annotated[
        int | None,
        Parameter(help="Deepest heading level in TOCs", env_var="INPUT_TOC_DEPTH"),
    ] = None,
    pdf: typ.Annotated[
        bool | None, Parameter(help="Render PDFs with wkhtmltopdf", env_var="INPUT_PDF")
    ] = None,
    verbose: typ.Annotated[
        bool, Parameter(help="Log debug messages", env_var="INPUT_VERBOSE")
    ] = False,
) -> None:
    """Build documentation for the requested configuration.

    Parameters
    ----------
    config : Path, optional
        Path to the YAML build file. It may be absent when ``source_dir`` and
        ``dest_dir`` are given on the command line.
    source_dir, dest_dir : Path or None, optional
        Override the source and destination folders.
    overwrite, toc_json, toc_xml, pdf : bool or None, optional
        Override the matching boolean settings.
    toc_depth : int or None, optional
        Override the deepest heading level recorded in TOC fragments.
    verbose : bool, optional
        Log at debug level.

    Raises
    ------
    BuildConfigError
        If required settings are missing or the source folder does not exist.
    """
    _configure_logging(verbose=verbose)
    overrides: dict[str, typ.Any] = {
        "source_dir": source_dir,
        "dest_dir": dest_dir,
        "overwrite": overwrite,
        "toc_json": toc_json,
        "toc_xml": toc_xml,
        "toc_depth": toc_depth,
    }
    if config.exists():
        build_config = load_build_config(config, overrides)
    else:
        build_config = build_config_from_mapping({}, overrides)
    if pdf is not None:
        build_config.pdf.enabled = pdf

    report = SiteGenerator(build_config).run()
    for path in [*report.html_files, *report.toc_files, *report.pdf_files]:
        print(f"wrote {_format_path(path)}")


def main() -> None:
    """Invoke the Cyclopts application that powers the `docweave` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
