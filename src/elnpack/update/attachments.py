"""Attachment list transitions: picking, hashing, renaming and previews."""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Any, Callable

from elnpack.naming.sanitizer import sanitize_component
from elnpack.state.models import (
    AppModel,
    AttachmentMeta,
    AttachmentState,
    EventKind,
    ThumbnailStatus,
)
from elnpack.update import messages as m
from elnpack.update.commands import Command, HashFile, LoadThumbnail, PickFiles

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "bmp", "tiff", "tif", "gif", "webp", "svg"})


def is_image(name: str) -> bool:
    """Return whether ``name`` carries an image extension."""
    return PurePath(name).suffix.lower().lstrip(".") in IMAGE_EXTENSIONS


def _name_taken(model: AppModel, name: str, exclude_id: int | None = None) -> AttachmentMeta | None:
    for item in model.attachments:
        if item.id != exclude_id and item.sanitized_name == name:
            return item
    return None


def _drop(model: AppModel, attachment_id: int) -> None:
    model.attachments = [item for item in model.attachments if item.id != attachment_id]
    model.thumbnails.pop(attachment_id, None)


def _pick_requested(model: AppModel, msg: m.PickFilesRequested) -> list[Command]:
    return [PickFiles()]


def _files_picked(model: AppModel, msg: m.FilesPicked) -> list[Command]:
    if not msg.paths:
        model.record(EventKind.INFO, "No files selected.")
        return []

    commands: list[Command] = []
    for path in msg.paths:
        original = path.name
        sanitized = sanitize_component(original)
        if _name_taken(model, sanitized) is not None:
            model.record(
                EventKind.DUPLICATE_ATTACHMENT,
                f"'{original}' was not attached: an attachment named '{sanitized}' already exists.",
                reason="name",
                name=sanitized,
                path=str(path),
            )
            continue

        attachment = AttachmentMeta(
            id=model.next_attachment_id,
            original_name=original,
            sanitized_name=sanitized,
            path=path,
            request_id=model.allocate_request_id(),
        )
        model.next_attachment_id += 1
        model.attachments.append(attachment)
        if sanitized != original:
            model.record(
                EventKind.SANITIZATION_FALLBACK,
                f"'{original}' will be stored as '{sanitized}'.",
                original=original,
                sanitized=sanitized,
            )
        commands.append(HashFile(attachment.id, attachment.request_id, path))
    return commands


def _current(model: AppModel, attachment_id: int, request_id: int) -> AttachmentMeta | None:
    item = model.attachment(attachment_id)
    if item is None or item.request_id != request_id:
        LOGGER.debug("Discarding stale result for attachment %s (request %s)", attachment_id, request_id)
        return None
    return item


def _hash_computed(model: AppModel, msg: m.HashComputed) -> list[Command]:
    item = _current(model, msg.attachment_id, msg.request_id)
    if item is None or item.state != AttachmentState.HASHING:
        return []

    twin = next(
        (other for other in model.attachments if other.id != item.id and other.hash_at_add == msg.digest),
        None,
    )
    if twin is not None:
        _drop(model, item.id)
        model.record(
            EventKind.DUPLICATE_ATTACHMENT,
            f"'{item.original_name}' was not attached: identical content is already attached "
            f"as '{twin.sanitized_name}'.",
            reason="digest",
            name=item.sanitized_name,
            existing=twin.sanitized_name,
            sha256=msg.digest,
        )
        return []

    item.hash_at_add = msg.digest
    item.size = msg.size
    item.mime = msg.mime
    item.state = AttachmentState.READY
    model.record(EventKind.INFO, f"Attached '{item.sanitized_name}'.")
    if not is_image(item.sanitized_name):
        return []
    item.request_id = model.allocate_request_id()
    item.thumbnail = ThumbnailStatus.LOADING
    return [LoadThumbnail(item.id, item.request_id, item.path)]


def _hash_failed(model: AppModel, msg: m.HashFailed) -> list[Command]:
    item = _current(model, msg.attachment_id, msg.request_id)
    if item is None:
        return []
    _drop(model, item.id)
    model.record(
        EventKind.IO_FAILURE,
        f"Could not read '{item.original_name}': {msg.reason}",
        path=str(item.path),
    )
    return []


def _removed(model: AppModel, msg: m.AttachmentRemoved) -> list[Command]:
    item = model.attachment(msg.attachment_id)
    if item is None:
        return []
    _drop(model, item.id)
    model.record(EventKind.INFO, f"Removed '{item.sanitized_name}'.")
    return []


def _renamed(model: AppModel, msg: m.AttachmentRenamed) -> list[Command]:
    item = model.attachment(msg.attachment_id)
    if item is None:
        return []
    requested = msg.name.strip()
    if not requested:
        model.record(EventKind.VALIDATION_ERROR, "Attachment name cannot be empty.")
        return []

    sanitized = sanitize_component(requested)
    if _name_taken(model, sanitized, exclude_id=item.id) is not None:
        model.record(
            EventKind.DUPLICATE_ATTACHMENT,
            f"Cannot rename to '{sanitized}': another attachment already uses that name.",
            reason="name",
            name=sanitized,
        )
        return []

    item.sanitized_name = sanitized
    if sanitized != requested:
        model.record(
            EventKind.SANITIZATION_FALLBACK,
            f"'{requested}' will be stored as '{sanitized}'.",
            original=requested,
            sanitized=sanitized,
        )
    else:
        model.record(EventKind.INFO, f"Renamed attachment to '{sanitized}'.")
    return []


def _thumbnail_loaded(model: AppModel, msg: m.ThumbnailLoaded) -> list[Command]:
    item = _current(model, msg.attachment_id, msg.request_id)
    if item is None or item.thumbnail != ThumbnailStatus.LOADING:
        return []
    model.thumbnails[item.id] = msg.image
    item.thumbnail = ThumbnailStatus.READY
    return []


def _thumbnail_failed(model: AppModel, msg: m.ThumbnailFailed) -> list[Command]:
    item = _current(model, msg.attachment_id, msg.request_id)
    if item is None:
        return []
    LOGGER.debug("Thumbnail unavailable for %s: %s", item.sanitized_name, msg.reason)
    item.thumbnail = ThumbnailStatus.FAILED
    return []


HANDLERS: dict[type, Callable[[AppModel, Any], list[Command]]] = {
    m.PickFilesRequested: _pick_requested,
    m.FilesPicked: _files_picked,
    m.HashComputed: _hash_computed,
    m.HashFailed: _hash_failed,
    m.AttachmentRemoved: _removed,
    m.AttachmentRenamed: _renamed,
    m.ThumbnailLoaded: _thumbnail_loaded,
    m.ThumbnailFailed: _thumbnail_failed,
}

__all__ = ["HANDLERS", "IMAGE_EXTENSIONS", "is_image"]
