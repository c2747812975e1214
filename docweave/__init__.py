"""Build HTML documentation, TOCs and PDFs from trees of markdown files.

This package exposes the CLI entry points used by the ``docweave`` console
script.

Exports
-------
- ``app``: Cyclopts application holding the ``generate`` command.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from docweave import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
