"""Integrity errors."""

from __future__ import annotations

from pathlib import Path


class IntegrityError(Exception):
    """Base exception for digest operations."""


class DigestError(IntegrityError):
    """Raised when a file cannot be read while computing its digest."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Unable to hash {path}: {reason}")
        self.path = path
        self.reason = reason


class HashMismatchError(IntegrityError):
    """Raised when attachments changed on disk after they were added.

    Attributes:
        offenders: Sanitized names of every attachment whose digest no longer matches
            or whose source could not be read.
    """

    def __init__(self, offenders: list[str]) -> None:
        joined = ", ".join(offenders)
        super().__init__(f"Attachment content changed since it was added: {joined}")
        self.offenders = list(offenders)
