"""Load build configuration YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ

from ruamel.yaml import YAML

from .helpers import (
    _build_pdf_config,
    _coerce_bool,
    _coerce_int,
    _optional_path,
    _optional_str,
    _required_path,
)
from .models import BuildConfig

if typ.TYPE_CHECKING:
    from pathlib import Path


def load_build_config(
    path: Path, overrides: typ.Mapping[str, typ.Any] | None = None
) -> BuildConfig:
    """Load the YAML file describing a docweave build.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML build file (for example,
        ``docweave.yaml``).
    overrides : Mapping[str, Any], optional
        Settings that replace the file's values, typically from CLI flags.
        ``None`` values are ignored.

    Returns
    -------
    BuildConfig
        Parsed build configuration with defaults applied.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    TypeError
        If the top-level YAML structure is not a mapping.
    BuildConfigError
        If required settings are missing or have invalid values.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from docweave.config import load_build_config
    >>> config = load_build_config(Path("docweave.yaml"))  # doctest: +SKIP
    >>> config.toc_filenames  # doctest: +SKIP
    ['toc.json']
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise TypeError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    return build_config_from_mapping(raw, overrides)


def build_config_from_mapping(
    raw: typ.Mapping[str, typ.Any],
    overrides: typ.Mapping[str, typ.Any] | None = None,
) -> BuildConfig:
    """Build a :class:`BuildConfig` from plain settings."""
    merged: dict[str, typ.Any] = dict(raw)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    pdf = _build_pdf_config(merged.get("pdf"))
    return BuildConfig(
        source_dir=_required_path(merged, "source_dir"),
        dest_dir=_required_path(merged, "dest_dir"),
        overwrite=_coerce_bool(merged.get("overwrite"), "overwrite"),
        toc_json=_coerce_bool(merged.get("toc_json"), "toc_json"),
        toc_xml=_coerce_bool(merged.get("toc_xml"), "toc_xml"),
        toc_depth=_coerce_int(merged.get("toc_depth"), "toc_depth", default=3),
        header_file=_optional_path(merged.get("header_file")),
        footer_file=_optional_path(merged.get("footer_file")),
        keyref_file=_optional_path(merged.get("keyref_file")),
        pygments_style=_optional_str(merged.get("pygments_style")) or "default",
        pdf=pdf,
    )


__all__ = ["build_config_from_mapping", "load_build_config"]
