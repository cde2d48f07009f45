"""In-memory domain model for an entry."""

from .datetime import DateTimeModel
from .extra_fields import (
    DEFAULT_GROUP_NAME,
    ExtraFieldsModel,
    FieldDraft,
    FieldEditError,
    FieldKind,
    ImportedField,
    ImportedGroup,
    ImportedMetadata,
    MergeReport,
    MetadataField,
    MetadataGroup,
    split_multi,
)
from .keywords import KeywordAddResult, KeywordsModel
from .models import (
    MAX_EVENTS,
    SAVE_IN_FLIGHT,
    AppModel,
    AttachmentMeta,
    AttachmentState,
    BodyFormat,
    EventKind,
    Genre,
    SavePhase,
    SaveState,
    StatusEvent,
    ThumbnailImage,
    ThumbnailStatus,
)

__all__ = [
    "AppModel",
    "AttachmentMeta",
    "AttachmentState",
    "BodyFormat",
    "DEFAULT_GROUP_NAME",
    "DateTimeModel",
    "EventKind",
    "ExtraFieldsModel",
    "FieldDraft",
    "FieldEditError",
    "FieldKind",
    "Genre",
    "ImportedField",
    "ImportedGroup",
    "ImportedMetadata",
    "KeywordAddResult",
    "KeywordsModel",
    "MAX_EVENTS",
    "MergeReport",
    "MetadataField",
    "MetadataGroup",
    "SAVE_IN_FLIGHT",
    "SavePhase",
    "SaveState",
    "StatusEvent",
    "ThumbnailImage",
    "ThumbnailStatus",
    "split_multi",
]
