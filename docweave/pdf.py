"""Queue converted HTML pages for PDF rendering with ``wkhtmltopdf``.

Pages are queued while the site is generated and rendered one at a time,
with a fixed pause between invocations, once every HTML and TOC file has
been written.
"""

from __future__ import annotations

import collections
import shutil
import subprocess
import time
import typing as typ

import structlog

from docweave._constants import EXTENSION_PDF

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from docweave.config.models import PdfConfig

logger = structlog.get_logger(__name__)

Runner = typ.Callable[..., subprocess.CompletedProcess[str]]


def _run_wkhtmltopdf(args: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(  # noqa: S603
        args,
        check=True,
        text=True,
        capture_output=True,
    )


class PdfQueue:
    """FIFO of HTML files waiting to be rendered as PDF.

    Parameters
    ----------
    config : PdfConfig
        Binary name, command-line options and the pause between renders.
    overwrite : bool, optional
        Replace PDFs that already exist; otherwise they are skipped.
    runner : Callable, optional
        Executes the command list; defaults to :func:`subprocess.run`.
    sleep : Callable, optional
        Pauses between renders; defaults to :func:`time.sleep`.
    """

    def __init__(
        self,
        config: PdfConfig,
        *,
        overwrite: bool = True,
        runner: Runner = _run_wkhtmltopdf,
        sleep: cabc.Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.overwrite = overwrite
        self._runner = runner
        self._sleep = sleep
        self._pending: collections.deque[Path] = collections.deque()

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, html_path: Path) -> None:
        """Queue ``html_path`` for rendering next to itself as ``.pdf``."""
        self._pending.append(html_path)

    def _option_args(self) -> list[str]:
        args: list[str] = []
        for name, value in self.config.options.items():
            args.append(f"--{name}")
            if value is not None:
                args.append(value)
        return args

    def drain(self) -> list[Path]:
        """Render every queued page and return the PDFs written.

        A missing ``wkhtmltopdf`` binary is logged once and discards the queue.
        Individual failures are logged and do not stop the remaining renders.
        """
        if not self._pending:
            return []
        binary = shutil.which(self.config.binary)
        if binary is None:
            logger.error(
                "Could not locate wkhtmltopdf; PDFs are not being generated",
                binary=self.config.binary,
                skipped=len(self._pending),
            )
            self._pending.clear()
            return []

        written: list[Path] = []
        while self._pending:
            html_path = self._pending.popleft()
            pdf_path = html_path.with_suffix(EXTENSION_PDF)
            if pdf_path.exists() and not self.overwrite:
                logger.warning(
                    "Skipped writing pdf due to a file collision", path=str(pdf_path)
                )
                continue
            command = [
                binary,
                *self._option_args(),
                html_path.resolve().as_uri(),
                str(pdf_path),
            ]
            try:
                self._runner(command)
            except (OSError, subprocess.CalledProcessError) as exc:
                logger.error(
                    "Failed to generate pdf", path=str(pdf_path), error=str(exc)
                )
            else:
                logger.info("Wrote", path=str(pdf_path))
                written.append(pdf_path)
            if self._pending:
                self._sleep(self.config.interval)
        return written


__all__ = ["PdfQueue"]
