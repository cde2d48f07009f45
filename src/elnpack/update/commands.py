"""Side effects requested by the reducer and carried out by the executor."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from elnpack.archive.models import ArchiveSnapshot


@dataclass(slots=True, frozen=True)
class PickFiles:
    """Ask the file-selection collaborator for attachments."""


@dataclass(slots=True, frozen=True)
class HashFile:
    attachment_id: int
    request_id: int
    path: Path


@dataclass(slots=True, frozen=True)
class LoadThumbnail:
    attachment_id: int
    request_id: int
    path: Path


@dataclass(slots=True, frozen=True)
class PickMetadataFile:
    """Ask the file-selection collaborator for a metadata JSON document."""


@dataclass(slots=True, frozen=True)
class ImportMetadata:
    path: Path


@dataclass(slots=True, frozen=True)
class PickSaveDestination:
    suggested_name: str


@dataclass(slots=True, frozen=True)
class SaveArchive:
    snapshot: ArchiveSnapshot


Command = Union[
    PickFiles,
    HashFile,
    LoadThumbnail,
    PickMetadataFile,
    ImportMetadata,
    PickSaveDestination,
    SaveArchive,
]

__all__ = [
    "Command",
    "HashFile",
    "ImportMetadata",
    "LoadThumbnail",
    "PickFiles",
    "PickMetadataFile",
    "PickSaveDestination",
    "SaveArchive",
]
