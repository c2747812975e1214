"""Load and validate build configuration YAML for docweave runs.

This subpackage parses the project's ``docweave.yaml`` file, applies CLI
overrides and defaults, and produces typed dataclasses
(:class:`BuildConfig`, :class:`PdfConfig`) that the site generator
consumes. The primary entry point is :func:`load_build_config`.

Examples
--------
>>> from pathlib import Path
>>> from docweave.config import build_config_from_mapping
>>> config = build_config_from_mapping({"source_dir": "docs", "dest_dir": "html"})
>>> str(config.dest_dir)
'html'
"""

from .loader import build_config_from_mapping, load_build_config
from .models import BuildConfig, BuildConfigError, PdfConfig

__all__ = [
    "BuildConfig",
    "BuildConfigError",
    "PdfConfig",
    "build_config_from_mapping",
    "load_build_config",
]
