"""Root application state owned by the reducer."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .datetime import DateTimeModel
from .extra_fields import ExtraFieldsModel
from .keywords import KeywordsModel


class Genre(str, Enum):
    """Archive genre recorded on the experiment node."""

    EXPERIMENT = "experiment"
    RESOURCE = "resource"


class BodyFormat(str, Enum):
    """How the main text is stored in the archive."""

    HTML = "html"
    MARKDOWN = "markdown"


class AttachmentState(str, Enum):
    HASHING = "hashing"
    READY = "ready"


class ThumbnailStatus(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class SavePhase(str, Enum):
    """Save flow: idle, validating, rejected or command issued, executing, outcome."""

    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    AWAITING_DESTINATION = "awaiting_destination"
    COMMAND_ISSUED = "command_issued"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


SAVE_IN_FLIGHT = frozenset(
    {SavePhase.AWAITING_DESTINATION, SavePhase.COMMAND_ISSUED, SavePhase.EXECUTING}
)

MAX_EVENTS = 500


class EventKind(str, Enum):
    """Status categories surfaced to the presentation layer."""

    INFO = "info"
    SANITIZATION_FALLBACK = "sanitization_fallback"
    VALIDATION_ERROR = "validation_error"
    DUPLICATE_ATTACHMENT = "duplicate_attachment"
    HASH_MISMATCH = "hash_mismatch"
    IO_FAILURE = "io_failure"

    @property
    def is_error(self) -> bool:
        return self not in (EventKind.INFO, EventKind.SANITIZATION_FALLBACK)


class StatusEvent(BaseModel):
    """A recorded status or failure.

    Attributes:
        kind: Event category.
        message: Human-readable summary.
        details: Structured context such as offending names.
    """

    kind: EventKind
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AttachmentMeta(BaseModel):
    """One attached file.

    Attributes:
        id: Stable identifier assigned by the reducer.
        original_name: File name as selected.
        sanitized_name: Name used inside the archive; unique across attachments.
        path: Absolute source path.
        size: Size in bytes once hashed.
        mime: MIME type guessed from the name.
        hash_at_add: SHA-256 recorded when the file was attached.
        state: Whether the digest is still being computed.
        request_id: Identifier of the latest hash request for this attachment.
        thumbnail: Preview decoding status.
    """

    id: int
    original_name: str
    sanitized_name: str
    path: Path
    size: Optional[int] = None
    mime: str = "application/octet-stream"
    hash_at_add: Optional[str] = None
    state: AttachmentState = AttachmentState.HASHING
    request_id: int = 0
    thumbnail: ThumbnailStatus = ThumbnailStatus.NOT_LOADED


class ThumbnailImage(BaseModel):
    """Decoded RGBA preview pixels."""

    width: int
    height: int
    rgba: bytes


class SaveState(BaseModel):
    """Progress of the current or most recent save."""

    phase: SavePhase = SavePhase.IDLE
    destination: Optional[Path] = None
    last_archive: Optional[Path] = None


class AppModel(BaseModel):
    """Single source of truth for an entry being assembled."""

    title: str = ""
    genre: Genre = Genre.EXPERIMENT
    body_format: BodyFormat = BodyFormat.HTML
    markdown: str = ""
    keywords: KeywordsModel = Field(default_factory=KeywordsModel)
    performed_at: DateTimeModel = Field(default_factory=DateTimeModel)
    extra_fields: ExtraFieldsModel = Field(default_factory=ExtraFieldsModel)
    attachments: List[AttachmentMeta] = Field(default_factory=list)
    thumbnails: Dict[int, ThumbnailImage] = Field(default_factory=dict)
    save: SaveState = Field(default_factory=SaveState)
    status: Optional[StatusEvent] = None
    error: Optional[StatusEvent] = None
    events: List[StatusEvent] = Field(default_factory=list)
    event_count: int = 0
    next_attachment_id: int = 1
    next_request_id: int = 1

    def attachment(self, attachment_id: int) -> Optional[AttachmentMeta]:
        for item in self.attachments:
            if item.id == attachment_id:
                return item
        return None

    def record(self, kind: EventKind, message: str, **details: Any) -> StatusEvent:
        """Append an event and expose it as the current status or error.

        Only the newest ``MAX_EVENTS`` entries are retained; ``event_count`` keeps
        counting every event ever recorded.
        """
        event = StatusEvent(kind=kind, message=message, details=details)
        self.events.append(event)
        if len(self.events) > MAX_EVENTS:
            del self.events[: len(self.events) - MAX_EVENTS]
        self.event_count += 1
        if kind.is_error:
            self.error = event
        else:
            self.status = event
        return event

    def allocate_request_id(self) -> int:
        request_id = self.next_request_id
        self.next_request_id += 1
        return request_id


__all__ = [
    "AppModel",
    "AttachmentMeta",
    "AttachmentState",
    "BodyFormat",
    "EventKind",
    "Genre",
    "MAX_EVENTS",
    "SAVE_IN_FLIGHT",
    "SaveState",
    "SavePhase",
    "StatusEvent",
    "ThumbnailImage",
    "ThumbnailStatus",
]
