"""Messages applied by the reducer, grouped by feature."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from elnpack.state.extra_fields import FieldDraft, ImportedMetadata
from elnpack.state.models import BodyFormat, EventKind, Genre, ThumbnailImage

# Entry -------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TitleChanged:
    title: str


@dataclass(slots=True, frozen=True)
class GenreChanged:
    genre: Genre


@dataclass(slots=True, frozen=True)
class BodyFormatChanged:
    body_format: BodyFormat


# Markdown ----------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class MarkdownChanged:
    text: str


@dataclass(slots=True, frozen=True)
class MarkdownSnippetInserted:
    """Append a snippet (heading, list item, image link) on its own line."""

    snippet: str


# Date/time ---------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class DateSet:
    date: dt.date


@dataclass(slots=True, frozen=True)
class HourSet:
    hour: int


@dataclass(slots=True, frozen=True)
class MinuteSet:
    minute: int


@dataclass(slots=True, frozen=True)
class OffsetSet:
    minutes: int


@dataclass(slots=True, frozen=True)
class NowSet:
    """Set the entry date/time to ``now``; the caller supplies the clock reading."""

    now: dt.datetime


# Keywords ----------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class KeywordsAdded:
    raw: str


@dataclass(slots=True, frozen=True)
class KeywordEdited:
    index: int
    value: str


@dataclass(slots=True, frozen=True)
class KeywordRemoved:
    index: int


# Attachments -------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class PickFilesRequested:
    pass


@dataclass(slots=True, frozen=True)
class FilesPicked:
    paths: tuple[Path, ...]


@dataclass(slots=True, frozen=True)
class HashComputed:
    attachment_id: int
    request_id: int
    digest: str
    size: int
    mime: str


@dataclass(slots=True, frozen=True)
class HashFailed:
    attachment_id: int
    request_id: int
    reason: str


@dataclass(slots=True, frozen=True)
class AttachmentRemoved:
    attachment_id: int


@dataclass(slots=True, frozen=True)
class AttachmentRenamed:
    attachment_id: int
    name: str


@dataclass(slots=True, frozen=True)
class ThumbnailLoaded:
    attachment_id: int
    request_id: int
    image: ThumbnailImage


@dataclass(slots=True, frozen=True)
class ThumbnailFailed:
    attachment_id: int
    request_id: int
    reason: str


# Structured metadata -----------------------------------------------------


@dataclass(slots=True, frozen=True)
class ImportRequested:
    pass


@dataclass(slots=True, frozen=True)
class MetadataFileSelected:
    path: Path


@dataclass(slots=True, frozen=True)
class ImportCancelled:
    pass


@dataclass(slots=True, frozen=True)
class MetadataImported:
    source: Path
    payload: ImportedMetadata


@dataclass(slots=True, frozen=True)
class ImportFailed:
    source: Optional[Path]
    reason: str


@dataclass(slots=True, frozen=True)
class GroupAdded:
    pass


@dataclass(slots=True, frozen=True)
class GroupRenamed:
    group_id: int
    name: str


@dataclass(slots=True, frozen=True)
class GroupRemoved:
    group_id: int


@dataclass(slots=True, frozen=True)
class FieldAdded:
    draft: FieldDraft


@dataclass(slots=True, frozen=True)
class FieldEdited:
    field_id: int
    draft: FieldDraft


@dataclass(slots=True, frozen=True)
class FieldRemoved:
    field_id: int


@dataclass(slots=True, frozen=True)
class FieldValueSet:
    field_id: int
    value: str


@dataclass(slots=True, frozen=True)
class CheckboxToggled:
    field_id: int
    checked: bool


@dataclass(slots=True, frozen=True)
class MultiValuesSet:
    field_id: int
    values: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class UnitSelected:
    field_id: int
    unit: str


# Save --------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class SaveRequested:
    """Start a save; without a destination the save-destination picker is asked."""

    destination: Optional[Path] = None


@dataclass(slots=True, frozen=True)
class SaveDestinationChosen:
    path: Path


@dataclass(slots=True, frozen=True)
class SaveCancelled:
    pass


@dataclass(slots=True, frozen=True)
class SaveStarted:
    pass


@dataclass(slots=True, frozen=True)
class SaveCompleted:
    path: Path
    sha256: str
    size: int


@dataclass(slots=True, frozen=True)
class SaveFailed:
    """Save aborted; ``kind`` is HASH_MISMATCH, DUPLICATE_ATTACHMENT or IO_FAILURE."""

    kind: EventKind
    message: str
    offenders: tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class StatusDismissed:
    pass


EntryMsg = Union[TitleChanged, GenreChanged, BodyFormatChanged]
MarkdownMsg = Union[MarkdownChanged, MarkdownSnippetInserted]
DateTimeMsg = Union[DateSet, HourSet, MinuteSet, OffsetSet, NowSet]
KeywordsMsg = Union[KeywordsAdded, KeywordEdited, KeywordRemoved]
AttachmentsMsg = Union[
    PickFilesRequested,
    FilesPicked,
    HashComputed,
    HashFailed,
    AttachmentRemoved,
    AttachmentRenamed,
    ThumbnailLoaded,
    ThumbnailFailed,
]
ExtraFieldsMsg = Union[
    ImportRequested,
    MetadataFileSelected,
    ImportCancelled,
    MetadataImported,
    ImportFailed,
    GroupAdded,
    GroupRenamed,
    GroupRemoved,
    FieldAdded,
    FieldEdited,
    FieldRemoved,
    FieldValueSet,
    CheckboxToggled,
    MultiValuesSet,
    UnitSelected,
]
SaveMsg = Union[
    SaveRequested,
    SaveDestinationChosen,
    SaveCancelled,
    SaveStarted,
    SaveCompleted,
    SaveFailed,
    StatusDismissed,
]
Message = Union[EntryMsg, MarkdownMsg, DateTimeMsg, KeywordsMsg, AttachmentsMsg, ExtraFieldsMsg, SaveMsg]

FAMILIES = {
    "entry": EntryMsg,
    "markdown": MarkdownMsg,
    "datetime": DateTimeMsg,
    "keywords": KeywordsMsg,
    "attachments": AttachmentsMsg,
    "extra_fields": ExtraFieldsMsg,
    "save": SaveMsg,
}
