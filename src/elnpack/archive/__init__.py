"""RO-Crate ``.eln`` archive assembly, writing and read-back."""

from .assembler import (
    ELN_FORMAT_VERSION,
    RO_CRATE_CONFORMS_TO,
    RO_CRATE_CONTEXT,
    ArchivePlan,
    build_metadata,
    plan_archive,
)
from .errors import ArchiveError, ArchiveFormatError, ArchiveWriteError, DuplicateArchiveNameError
from .models import (
    ArchiveManifest,
    ArchiveResult,
    ArchiveSnapshot,
    ManifestFile,
    SnapshotAttachment,
    VerificationReport,
)
from .render import markdown_to_html, render_body
from .writer import ArchiveWriter, read_archive_manifest, verify_archive

__all__ = [
    "ArchiveError",
    "ArchiveFormatError",
    "ArchiveManifest",
    "ArchivePlan",
    "ArchiveResult",
    "ArchiveSnapshot",
    "ArchiveWriteError",
    "ArchiveWriter",
    "DuplicateArchiveNameError",
    "ELN_FORMAT_VERSION",
    "ManifestFile",
    "RO_CRATE_CONFORMS_TO",
    "RO_CRATE_CONTEXT",
    "SnapshotAttachment",
    "VerificationReport",
    "build_metadata",
    "markdown_to_html",
    "plan_archive",
    "read_archive_manifest",
    "render_body",
    "verify_archive",
]
