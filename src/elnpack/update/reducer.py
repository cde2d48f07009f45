"""Root reducer: ``update(model, message) -> (model, commands)``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from elnpack.archive.models import ArchiveSnapshot
from elnpack.metadata.validation import describe, first_invalid
from elnpack.naming.sanitizer import ensure_extension, suggested_archive_name
from elnpack.state.models import SAVE_IN_FLIGHT, AppModel, AttachmentState, EventKind, SavePhase
from elnpack.update import attachments, datetime, extra_fields, keywords, markdown
from elnpack.update import messages as m
from elnpack.update.commands import Command, PickSaveDestination, SaveArchive

LOGGER = logging.getLogger(__name__)

Handler = Callable[[AppModel, Any], list[Command]]


def _title(model: AppModel, msg: m.TitleChanged) -> list[Command]:
    model.title = msg.title
    return []


def _genre(model: AppModel, msg: m.GenreChanged) -> list[Command]:
    model.genre = msg.genre
    return []


def _body_format(model: AppModel, msg: m.BodyFormatChanged) -> list[Command]:
    model.body_format = msg.body_format
    return []


def validation_problem(model: AppModel) -> Optional[tuple[str, dict[str, Any]]]:
    """Return the first reason the entry cannot be saved, or None."""
    if not model.title.strip():
        return "Please enter a title.", {"field": "title"}

    pending = [item.sanitized_name for item in model.attachments if item.state == AttachmentState.HASHING]
    if pending:
        return "Wait for attachments to finish hashing before saving.", {"pending": pending}

    invalid = first_invalid(model.extra_fields.ordered_fields())
    if invalid is not None:
        field, code = invalid
        return describe(field, code), {"field": field.label, "code": code}
    return None


def _validate(model: AppModel) -> bool:
    model.save.phase = SavePhase.VALIDATING
    problem = validation_problem(model)
    if problem is None:
        return True
    message, details = problem
    model.save.phase = SavePhase.REJECTED
    model.record(EventKind.VALIDATION_ERROR, message, **details)
    return False


def _issue_save(model: AppModel, destination: Path) -> list[Command]:
    output = ensure_extension(destination)
    model.save.destination = output
    model.save.phase = SavePhase.COMMAND_ISSUED
    return [SaveArchive(ArchiveSnapshot.from_model(model, output))]


def _save_requested(model: AppModel, msg: m.SaveRequested) -> list[Command]:
    if model.save.phase in SAVE_IN_FLIGHT:
        model.record(EventKind.INFO, "A save is already in progress.")
        return []

    model.error = None
    if not _validate(model):
        return []
    if msg.destination is None:
        model.save.phase = SavePhase.AWAITING_DESTINATION
        return [PickSaveDestination(suggested_archive_name(model.title))]
    return _issue_save(model, msg.destination)


def _destination_chosen(model: AppModel, msg: m.SaveDestinationChosen) -> list[Command]:
    if model.save.phase != SavePhase.AWAITING_DESTINATION:
        LOGGER.debug("Ignoring save destination while %s", model.save.phase.value)
        return []
    if not _validate(model):
        return []
    return _issue_save(model, msg.path)


def _save_cancelled(model: AppModel, msg: m.SaveCancelled) -> list[Command]:
    if model.save.phase == SavePhase.AWAITING_DESTINATION:
        model.save.phase = SavePhase.IDLE
        model.record(EventKind.INFO, "Save cancelled.")
    return []


def _save_started(model: AppModel, msg: m.SaveStarted) -> list[Command]:
    if model.save.phase == SavePhase.COMMAND_ISSUED:
        model.save.phase = SavePhase.EXECUTING
    return []


def _save_completed(model: AppModel, msg: m.SaveCompleted) -> list[Command]:
    model.save.phase = SavePhase.SUCCEEDED
    model.save.last_archive = msg.path
    model.record(EventKind.INFO, f"Saved archive to {msg.path}", sha256=msg.sha256, size=msg.size)
    return []


def _save_failed(model: AppModel, msg: m.SaveFailed) -> list[Command]:
    model.save.phase = SavePhase.FAILED
    model.record(msg.kind, msg.message, offenders=list(msg.offenders))
    return []


def _dismissed(model: AppModel, msg: m.StatusDismissed) -> list[Command]:
    model.status = None
    model.error = None
    if model.save.phase in (SavePhase.REJECTED, SavePhase.SUCCEEDED, SavePhase.FAILED):
        model.save.phase = SavePhase.IDLE
    return []


HANDLERS: dict[type, Handler] = {
    m.TitleChanged: _title,
    m.GenreChanged: _genre,
    m.BodyFormatChanged: _body_format,
    m.SaveRequested: _save_requested,
    m.SaveDestinationChosen: _destination_chosen,
    m.SaveCancelled: _save_cancelled,
    m.SaveStarted: _save_started,
    m.SaveCompleted: _save_completed,
    m.SaveFailed: _save_failed,
    m.StatusDismissed: _dismissed,
}
for _feature in (markdown, datetime, keywords, attachments, extra_fields):
    HANDLERS.update(_feature.HANDLERS)


def update(model: AppModel, msg: m.Message) -> tuple[AppModel, list[Command]]:
    """Apply ``msg`` to a copy of ``model``.

    The input model is never mutated, so a caller only ever observes complete
    states. Domain failures are recorded on the returned model; nothing here
    performs I/O.

    Args:
        model: Current state.
        msg: Message to apply.

    Returns:
        tuple[AppModel, list[Command]]: The next state and the side effects it requests.

    Raises:
        TypeError: If ``msg`` is not part of the message vocabulary.
    """
    handler = HANDLERS.get(type(msg))
    if handler is None:
        raise TypeError(f"Unhandled message type: {type(msg).__name__}")
    LOGGER.debug("Applying %s", type(msg).__name__)
    next_model = model.model_copy(deep=True)
    commands = handler(next_model, msg)
    return next_model, commands


__all__ = ["HANDLERS", "update", "validation_problem"]
