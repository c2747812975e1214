"""Behaviour tests for ``{{file.md#section}}`` transclusion during a build."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when
from structlog.testing import capture_logs

from docweave.config import build_config_from_mapping
from docweave.generator.page_generator import SiteGenerator

FEATURE_FILE = (
    Path(__file__).resolve().parents[2] / "features" / "transclusion.feature"
)
scenarios(FEATURE_FILE)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    """Return a mutable dict used to share scenario state across BDD steps."""
    return {}


@given(
    parsers.parse(
        'a docs folder where "{includer}" includes section "{section}" of "{target}"'
    )
)
def given_section_include(
    tmp_path: Path,
    scenario_state: dict[str, object],
    includer: str,
    section: str,
    target: str,
) -> None:
    """Write a page that includes one section of another."""
    source = tmp_path / "docs"
    source.mkdir()
    (source / includer).write_text(
        f"# Includer\n\n{{{{{target}#{section}}}}}\n", encoding="utf-8"
    )
    (source / target).write_text(
        f"## Intro\n{{: #{section}}}\nHello from b\n\n## Rest\nNot included\n",
        encoding="utf-8",
    )
    scenario_state["source"] = source


@given(parsers.parse('a docs folder where "{first}" and "{second}" include each other'))
def given_circular_include(
    tmp_path: Path, scenario_state: dict[str, object], first: str, second: str
) -> None:
    """Write two pages that include one another."""
    source = tmp_path / "docs"
    source.mkdir()
    (source / first).write_text(f"# First\n\n{{{{{second}}}}}\n", encoding="utf-8")
    (source / second).write_text(f"# Second\n\n{{{{{first}}}}}\n", encoding="utf-8")
    scenario_state["source"] = source


@when("I build the folder")
def when_build(scenario_state: dict[str, object]) -> None:
    """Run the generator and keep its log events."""
    source = typ.cast("Path", scenario_state["source"])
    config = build_config_from_mapping(
        {"source_dir": str(source), "dest_dir": str(source.parent / "html")}
    )
    with capture_logs() as logs:
        SiteGenerator(config).run()
    scenario_state["logs"] = logs
    scenario_state["dest"] = source.parent / "html"


def _html(scenario_state: dict[str, object], name: str) -> str:
    dest = typ.cast("Path", scenario_state["dest"])
    return (dest / name).read_text(encoding="utf-8")


@then(parsers.parse('"{name}" contains "{text}"'))
def then_contains(scenario_state: dict[str, object], name: str, text: str) -> None:
    """Check the included text reached the HTML."""
    assert text in _html(scenario_state, name)


@then(parsers.parse('"{name}" does not contain "{text}"'))
def then_not_contains(scenario_state: dict[str, object], name: str, text: str) -> None:
    """Check text outside the section was left out."""
    assert text not in _html(scenario_state, name)


@then("the build finishes with a circular transclusion warning")
def then_circular_warning(scenario_state: dict[str, object]) -> None:
    """Check the cycle was reported."""
    logs = typ.cast("list[dict[str, typ.Any]]", scenario_state["logs"])
    events = [entry["event"] for entry in logs]
    assert "Circular transclusion left unresolved" in events
