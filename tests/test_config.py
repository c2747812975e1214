"""Unit tests for loading build configuration."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest

from docweave.config import (
    BuildConfigError,
    build_config_from_mapping,
    load_build_config,
)


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "docweave.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_build_config_applies_defaults(tmp_path: Path) -> None:
    """Only the folders are required; everything else has a default."""
    config = load_build_config(_write(tmp_path, "source_dir: docs\ndest_dir: html\n"))

    assert config.source_dir == Path("docs")
    assert config.dest_dir == Path("html")
    assert not config.overwrite
    assert config.toc_filenames == []
    assert config.toc_depth == 3
    assert config.pygments_style == "default"
    assert not config.pdf.enabled


def test_load_build_config_reads_every_setting(tmp_path: Path) -> None:
    """Booleans, paths and the PDF block are parsed from YAML."""
    path = _write(
        tmp_path,
        """\
source_dir: docs
dest_dir: html
overwrite: yes
toc_json: true
toc_xml: "on"
toc_depth: 2
header_file: header.html
keyref_file: keys.yaml
pdf:
  enabled: true
  interval: 0.5
  options:
    page-size: A4
    no-outline:
""",
    )

    config = load_build_config(path)

    assert config.overwrite
    assert config.toc_filenames == ["toc.json", "toc.xml"]
    assert config.toc_depth == 2
    assert config.header_file == Path("header.html")
    assert config.keyref_file == Path("keys.yaml")
    assert config.pdf.enabled
    assert config.pdf.interval == 0.5
    assert config.pdf.options == {"page-size": "A4", "no-outline": None}


def test_overrides_replace_file_values(tmp_path: Path) -> None:
    """CLI overrides win; None overrides leave the file's value."""
    path = _write(tmp_path, "source_dir: docs\ndest_dir: html\ntoc_json: true\n")

    config = load_build_config(path, {"dest_dir": "out", "toc_json": None})

    assert config.dest_dir == Path("out")
    assert config.toc_json


def test_missing_file_raises(tmp_path: Path) -> None:
    """A config path that does not exist is reported."""
    with pytest.raises(FileNotFoundError):
        load_build_config(tmp_path / "absent.yaml")


def test_non_mapping_document_raises(tmp_path: Path) -> None:
    """The document must be a mapping."""
    with pytest.raises(TypeError):
        load_build_config(_write(tmp_path, "- docs\n"))


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"dest_dir": "html"}, "source_dir"),
        ({"source_dir": "docs", "dest_dir": "html", "toc_json": "maybe"}, "toc_json"),
        ({"source_dir": "docs", "dest_dir": "html", "toc_depth": 0}, "toc_depth"),
        ({"source_dir": "docs", "dest_dir": "html", "pdf": [1]}, "pdf"),
    ],
)
def test_invalid_settings_raise(raw: dict[str, typ.Any], message: str) -> None:
    """Invalid or missing settings raise ``BuildConfigError`` naming the key."""
    with pytest.raises(BuildConfigError, match=message):
        build_config_from_mapping(raw)


def test_pdf_accepts_a_bare_boolean() -> None:
    """``pdf: true`` enables rendering with default options."""
    config = build_config_from_mapping(
        {"source_dir": "docs", "dest_dir": "html", "pdf": True}
    )

    assert config.pdf.enabled
    assert config.pdf.binary == "wkhtmltopdf"
