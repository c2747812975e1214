"""Utility helpers shared by the docweave configuration loader."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from .models import BuildConfigError, PdfConfig

TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_path(value: object | None) -> Path | None:
    """Return a Path for ``value`` or None when it is empty."""
    text = _optional_str(value)
    return Path(text) if text else None


def _required_path(raw: typ.Mapping[str, typ.Any], key: str) -> Path:
    """Return ``raw[key]`` as a Path, raising when it is missing."""
    path = _optional_path(raw.get(key))
    if path is None:
        msg = f"Missing required setting '{key}'."
        raise BuildConfigError(msg)
    return path


def _coerce_bool(value: object, key: str, *, default: bool = False) -> bool:
    """Interpret YAML booleans and common string spellings of them."""
    match value:
        case None:
            return default
        case bool():
            return value
        case int():
            return value != 0
        case str() as text if text.strip().lower() in TRUE_STRINGS:
            return True
        case str() as text if text.strip().lower() in FALSE_STRINGS:
            return False
        case _:
            msg = f"Setting '{key}' must be a boolean, got {value!r}."
            raise BuildConfigError(msg)


def _coerce_int(value: object, key: str, *, default: int) -> int:
    """Return ``value`` as a positive integer."""
    if value is None:
        return default
    if isinstance(value, bool):
        msg = f"Setting '{key}' must be an integer, got {value!r}."
        raise BuildConfigError(msg)
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        msg = f"Setting '{key}' must be an integer, got {value!r}."
        raise BuildConfigError(msg) from exc
    if number < 1:
        msg = f"Setting '{key}' must be at least 1, got {number}."
        raise BuildConfigError(msg)
    return number


def _build_pdf_config(payload: object) -> PdfConfig:
    """Build a PdfConfig from a ``pdf`` mapping or a bare boolean."""
    base = PdfConfig()
    match payload:
        case None:
            return base
        case bool() | str():
            return PdfConfig(enabled=_coerce_bool(payload, "pdf"))
        case dict():
            options_raw = payload.get("options") or {}
            if not isinstance(options_raw, dict):
                msg = "Setting 'pdf.options' must be a mapping."
                raise BuildConfigError(msg)
            options = {
                str(name): _optional_str(value) for name, value in options_raw.items()
            }
            return PdfConfig(
                enabled=_coerce_bool(payload.get("enabled"), "pdf.enabled"),
                options=options,
                binary=_optional_str(payload.get("binary")) or base.binary,
                interval=float(payload.get("interval", base.interval)),
            )
        case _:
            msg = "Setting 'pdf' must be a mapping or a boolean."
            raise BuildConfigError(msg)
