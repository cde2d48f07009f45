"""Deterministic, cross-platform filename sanitization."""

from __future__ import annotations

import re
from pathlib import Path

from unidecode import unidecode

FALLBACK_BASENAME = "eln_entry"
ARCHIVE_EXTENSION = "eln"

COMPOUND_SUFFIXES: tuple[str, ...] = (
    ".tar.gz",
    ".tar.bz2",
    ".tar.xz",
    ".tar.zst",
    ".tar.lz",
    ".nii.gz",
    ".fastq.gz",
    ".fq.gz",
    ".vcf.gz",
    ".ome.tiff",
    ".ome.tif",
)

RESERVED_NAMES: frozenset[str] = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{index}" for index in range(1, 10)]
    + [f"LPT{index}" for index in range(1, 10)]
)

_DISALLOWED = re.compile(r"[^A-Za-z0-9._-]")
_UNDERSCORE_RUN = re.compile(r"_{2,}")
_DOT_RUN = re.compile(r"\.{2,}")


def split_extension(name: str) -> tuple[str, str]:
    """Split ``name`` into a base and an extension suffix.

    Compound suffixes such as ``.tar.gz`` are matched case-insensitively before
    falling back to the last single ``.segment``.

    Args:
        name: File name without directory components.

    Returns:
        tuple[str, str]: The base and the extension including its leading dot.
        The extension is empty when none is recognized.
    """
    lowered = name.lower()
    for suffix in COMPOUND_SUFFIXES:
        if lowered.endswith(suffix):
            cut = len(name) - len(suffix)
            return name[:cut], name[cut:]
    index = name.rfind(".")
    if index == -1 or index == len(name) - 1:
        return name, ""
    return name[:index], name[index:]


def _normalize(text: str) -> str:
    cleaned = _DISALLOWED.sub("_", text)
    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = _UNDERSCORE_RUN.sub("_", cleaned)
        cleaned = _DOT_RUN.sub(".", cleaned)
        cleaned = cleaned.replace("_.", ".")
    return cleaned.rstrip(". ")


def sanitize_component(value: str) -> str:
    """Return a filesystem-safe, deterministic version of ``value``.

    The transform transliterates to ASCII, maps anything outside
    ``[A-Za-z0-9._-]`` to ``_``, collapses ``_``/``.`` runs, drops ``_`` in
    front of dots and trailing dots, guards Windows device names and falls back
    to ``eln_entry`` when nothing usable remains. Applying it twice yields the
    same result as applying it once.

    Args:
        value: Arbitrary user-supplied name.

    Returns:
        str: A non-empty name made only of ``[A-Za-z0-9._-]``.
    """
    normalized = _normalize(unidecode(value))
    if not normalized:
        return FALLBACK_BASENAME

    base, extension = split_extension(normalized)
    if base.upper() in RESERVED_NAMES:
        base = f"{base}_"
    return f"{base}{extension}"


def suggested_archive_name(title: str) -> str:
    """Derive a lowercase ``.eln`` file name from an entry title."""
    return f"{sanitize_component(title).lower()}.{ARCHIVE_EXTENSION}"


def ensure_extension(path: Path, extension: str = ARCHIVE_EXTENSION) -> Path:
    """Force ``path`` to end with ``extension``, keeping a case-insensitive match."""
    wanted = "." + extension.lstrip(".")
    if path.suffix.lower() == wanted.lower():
        return path
    return path.with_suffix(wanted)


__all__ = [
    "ARCHIVE_EXTENSION",
    "COMPOUND_SUFFIXES",
    "FALLBACK_BASENAME",
    "RESERVED_NAMES",
    "ensure_extension",
    "sanitize_component",
    "split_extension",
    "suggested_archive_name",
]
