"""Archive assembly errors."""


class ArchiveError(Exception):
    """Base exception for archive operations."""


class ArchiveWriteError(ArchiveError):
    """Raised when the archive cannot be written to its destination."""


class ArchiveFormatError(ArchiveError):
    """Raised when an archive does not have the expected layout or schema version."""


class DuplicateArchiveNameError(ArchiveError):
    """Raised when two attachments would share a path inside the archive."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate attachment filename in archive: {name}")
        self.name = name
