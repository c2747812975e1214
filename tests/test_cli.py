"""Tests for the ``docweave generate`` command."""

from __future__ import annotations

import typing as typ

import pytest
import structlog

from docweave.cli import generate

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _reset_logging() -> typ.Iterator[None]:
    yield
    structlog.reset_defaults()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A working directory with a ``docs`` folder of one page."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "index.md").write_text("# Home\n", encoding="utf-8")
    (docs / "toc").write_text("Docs\n{: .toc}\n    index.md\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_generate_from_config_file(
    project: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """The default ``docweave.yaml`` drives the build."""
    (project / "docweave.yaml").write_text(
        "source_dir: docs\ndest_dir: html\ntoc_json: true\n", encoding="utf-8"
    )

    generate()

    lines = capsys.readouterr().out.splitlines()
    assert "wrote html/index.html" in lines
    assert "wrote html/toc.json" in lines


def test_generate_without_config_file_uses_flags(
    project: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Flags alone are enough when no config file exists."""
    generate(source_dir=project / "docs", dest_dir=project / "out", toc_xml=True)

    out = capsys.readouterr().out
    assert "wrote out/index.html" in out
    assert "wrote out/toc.xml" in out
    assert not (project / "out" / "toc.json").exists()


def test_flags_override_config_values(project: Path) -> None:
    """Command-line values replace the ones in the config file."""
    (project / "docweave.yaml").write_text(
        "source_dir: docs\ndest_dir: html\n", encoding="utf-8"
    )

    generate(dest_dir=project / "site", toc_json=True)

    assert (project / "site" / "toc.json").is_file()
    assert not (project / "html").exists()
