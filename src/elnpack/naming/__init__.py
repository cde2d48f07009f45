"""Filesystem-safe naming helpers."""

from .sanitizer import (
    COMPOUND_SUFFIXES,
    FALLBACK_BASENAME,
    RESERVED_NAMES,
    ensure_extension,
    sanitize_component,
    split_extension,
    suggested_archive_name,
)

__all__ = [
    "COMPOUND_SUFFIXES",
    "FALLBACK_BASENAME",
    "RESERVED_NAMES",
    "ensure_extension",
    "sanitize_component",
    "split_extension",
    "suggested_archive_name",
]
