"""Streaming content digests for attachments."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .errors import DigestError

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class HashComputer:
    """Compute SHA-256 digests by streaming file contents in fixed-size chunks."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        """Return the read buffer size in bytes."""
        return self._chunk_size

    def compute(self, path: Path) -> str:
        """Return the lowercase hex SHA-256 digest of ``path``.

        Args:
            path: File to digest.

        Returns:
            str: 64-character lowercase hexadecimal digest.

        Raises:
            DigestError: If the file cannot be opened or read.
        """
        digest = hashlib.sha256()
        try:
            with path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(self._chunk_size), b""):
                    digest.update(chunk)
        except OSError as exc:
            raise DigestError(path, exc.strerror or str(exc)) from exc
        return digest.hexdigest()


def verify_digest(expected: str, actual: str) -> bool:
    """Return whether two hex digests denote the same content."""
    return expected.lower() == actual.lower()


@dataclass(slots=True, frozen=True)
class DigestCheck:
    """One attachment to re-verify.

    Attributes:
        name: Sanitized attachment name used when reporting.
        path: Current on-disk source.
        expected: Digest recorded when the attachment was added.
    """

    name: str
    path: Path
    expected: str


def find_mismatches(checks: Iterable[DigestCheck], hasher: HashComputer | None = None) -> list[str]:
    """Re-digest each source and return the names whose content no longer matches.

    Unreadable or missing sources count as mismatches.
    """
    computer = hasher or HashComputer()
    offenders: list[str] = []
    for check in checks:
        try:
            current = computer.compute(check.path)
        except DigestError as exc:
            LOGGER.warning("Re-hash of %s failed: %s", check.name, exc.reason)
            offenders.append(check.name)
            continue
        if not verify_digest(check.expected, current):
            LOGGER.warning("Digest mismatch for %s", check.name)
            offenders.append(check.name)
    return offenders


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DigestCheck",
    "HashComputer",
    "find_mismatches",
    "verify_digest",
]
