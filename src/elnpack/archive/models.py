"""Immutable inputs and read-back results for archive assembly."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from elnpack.state.extra_fields import MetadataField, MetadataGroup
from elnpack.state.models import AppModel, AttachmentState, BodyFormat, Genre


class SnapshotAttachment(BaseModel):
    """Attachment as frozen at save time.

    Attributes:
        name: Sanitized name used inside the archive.
        path: Source file on disk.
        mime: MIME type recorded on the file node.
        size: Size in bytes when the file was attached.
        sha256: Digest recorded when the file was attached.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    mime: str
    size: int
    sha256: str


class ArchiveSnapshot(BaseModel):
    """Validated copy of the entry handed to the archive writer."""

    model_config = ConfigDict(frozen=True)

    output: Path
    title: str
    body: str
    body_format: BodyFormat = BodyFormat.HTML
    genre: Genre = Genre.EXPERIMENT
    keywords: List[str] = Field(default_factory=list)
    performed_at: datetime
    attachments: List[SnapshotAttachment] = Field(default_factory=list)
    fields: List[MetadataField] = Field(default_factory=list)
    groups: List[MetadataGroup] = Field(default_factory=list)

    @classmethod
    def from_model(cls, model: AppModel, output: Path) -> ArchiveSnapshot:
        """Freeze ``model`` for writing to ``output``.

        Attachments that are still hashing are left out; callers validate
        that none remain before building a snapshot.
        """
        attachments = [
            SnapshotAttachment(
                name=item.sanitized_name,
                path=item.path,
                mime=item.mime,
                size=item.size or 0,
                sha256=item.hash_at_add or "",
            )
            for item in model.attachments
            if item.state == AttachmentState.READY
        ]
        extra = model.extra_fields
        return cls(
            output=output,
            title=model.title.strip(),
            body=model.markdown,
            body_format=model.body_format,
            genre=model.genre,
            keywords=list(model.keywords.items),
            performed_at=model.performed_at.utc,
            attachments=attachments,
            fields=[field.model_copy(deep=True) for field in extra.ordered_fields()],
            groups=[group.model_copy() for group in extra.ordered_groups()],
        )


class ArchiveResult(BaseModel):
    """Outcome of a successful write."""

    path: Path
    sha256: str
    size: int
    attachment_count: int


class ManifestFile(BaseModel):
    name: str
    size: Optional[int] = None
    mime: Optional[str] = None
    sha256: Optional[str] = None


class ArchiveManifest(BaseModel):
    """Entry description parsed back from an archive's metadata document."""

    root: str
    title: str
    genre: str
    keywords: List[str] = Field(default_factory=list)
    body_format: str
    date_created: Optional[str] = None
    files: List[ManifestFile] = Field(default_factory=list)
    extra_fields: Dict[str, Any] = Field(default_factory=dict)


class VerificationReport(BaseModel):
    """Result of re-digesting every stored attachment."""

    path: Path
    checked: int = 0
    mismatched: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.mismatched and not self.missing


__all__ = [
    "ArchiveManifest",
    "ArchiveResult",
    "ArchiveSnapshot",
    "ManifestFile",
    "SnapshotAttachment",
    "VerificationReport",
]
