"""Carry out reducer commands and translate their outcomes into messages."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

from elnpack.archive.errors import ArchiveError, DuplicateArchiveNameError
from elnpack.archive.writer import ArchiveWriter
from elnpack.integrity.errors import DigestError, HashMismatchError
from elnpack.integrity.hashing import HashComputer
from elnpack.metadata.elabftw import MetadataImportError, parse_extra_fields
from elnpack.state.models import EventKind
from elnpack.update import messages as m
from elnpack.update.commands import (
    Command,
    HashFile,
    ImportMetadata,
    LoadThumbnail,
    PickFiles,
    PickMetadataFile,
    PickSaveDestination,
    SaveArchive,
)

from .collaborators import FilePicker, ThumbnailLoader
from .thumbnails import ThumbnailError

LOGGER = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"


def guess_mime(name: str) -> str:
    """Return the MIME type implied by ``name``'s extension."""
    mime, _ = mimetypes.guess_type(name)
    return mime or DEFAULT_MIME


class CommandExecutor:
    """Run one command at a time and report the result as messages.

    Failures never escape as exceptions for the expected error kinds: they come
    back as ``HashFailed``, ``ThumbnailFailed``, ``ImportFailed`` or
    ``SaveFailed`` so the reducer can record them.
    """

    def __init__(
        self,
        picker: FilePicker,
        thumbnails: ThumbnailLoader,
        hasher: HashComputer | None = None,
        writer: ArchiveWriter | None = None,
    ) -> None:
        self.picker = picker
        self.thumbnails = thumbnails
        self.hasher = hasher or HashComputer()
        self.writer = writer or ArchiveWriter(self.hasher)

    def execute(self, command: Command) -> list[m.Message]:
        """Perform ``command``.

        Args:
            command: Side effect requested by the reducer.

        Returns:
            list[Message]: Messages to feed back into the reducer.

        Raises:
            TypeError: If ``command`` is not a known command type.
        """
        LOGGER.debug("Executing %s", type(command).__name__)
        if isinstance(command, PickFiles):
            return [m.FilesPicked(tuple(Path(path) for path in self.picker.pick_files()))]
        if isinstance(command, HashFile):
            return [self._hash(command)]
        if isinstance(command, LoadThumbnail):
            return [self._thumbnail(command)]
        if isinstance(command, PickMetadataFile):
            path = self.picker.pick_metadata_file()
            return [m.ImportCancelled() if path is None else m.MetadataFileSelected(path)]
        if isinstance(command, ImportMetadata):
            return [self._import(command.path)]
        if isinstance(command, PickSaveDestination):
            path = self.picker.pick_save_destination(command.suggested_name)
            return [m.SaveCancelled() if path is None else m.SaveDestinationChosen(path)]
        if isinstance(command, SaveArchive):
            return [self._save(command)]
        raise TypeError(f"Unsupported command: {type(command).__name__}")

    def _hash(self, command: HashFile) -> m.Message:
        try:
            digest = self.hasher.compute(command.path)
            size = command.path.stat().st_size
        except DigestError as exc:
            LOGGER.warning("Hashing %s failed: %s", command.path, exc.reason)
            return m.HashFailed(command.attachment_id, command.request_id, exc.reason)
        except OSError as exc:
            LOGGER.warning("Reading size of %s failed: %s", command.path, exc)
            return m.HashFailed(command.attachment_id, command.request_id, exc.strerror or str(exc))
        return m.HashComputed(
            command.attachment_id,
            command.request_id,
            digest=digest,
            size=size,
            mime=guess_mime(command.path.name),
        )

    def _thumbnail(self, command: LoadThumbnail) -> m.Message:
        try:
            image = self.thumbnails.load(command.path)
        except ThumbnailError as exc:
            return m.ThumbnailFailed(command.attachment_id, command.request_id, str(exc))
        except Exception as exc:
            LOGGER.warning("Thumbnail loader failed for %s: %s", command.path, exc)
            return m.ThumbnailFailed(command.attachment_id, command.request_id, str(exc))
        return m.ThumbnailLoaded(command.attachment_id, command.request_id, image)

    def _import(self, path: Path) -> m.Message:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Reading metadata file %s failed: %s", path, exc)
            return m.ImportFailed(path, f"Could not read {path.name}: {exc}")
        try:
            payload = parse_extra_fields(text)
        except MetadataImportError as exc:
            return m.ImportFailed(path, str(exc))
        return m.MetadataImported(path, payload)

    def _save(self, command: SaveArchive) -> m.Message:
        try:
            result = self.writer.write(command.snapshot)
        except HashMismatchError as exc:
            return m.SaveFailed(EventKind.HASH_MISMATCH, str(exc), tuple(exc.offenders))
        except DuplicateArchiveNameError as exc:
            return m.SaveFailed(EventKind.DUPLICATE_ATTACHMENT, str(exc), (exc.name,))
        except ArchiveError as exc:
            LOGGER.warning("Archive write failed: %s", exc)
            return m.SaveFailed(EventKind.IO_FAILURE, str(exc))
        return m.SaveCompleted(result.path, result.sha256, result.size)


__all__ = ["CommandExecutor", "DEFAULT_MIME", "guess_mime"]
