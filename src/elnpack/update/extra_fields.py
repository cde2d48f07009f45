"""Structured metadata transitions: import, groups and field edits."""

from __future__ import annotations

import logging
from typing import Any, Callable

from elnpack.state.extra_fields import FieldEditError
from elnpack.state.models import AppModel, EventKind
from elnpack.update import messages as m
from elnpack.update.commands import Command, ImportMetadata, PickMetadataFile

LOGGER = logging.getLogger(__name__)


def _guarded(action: Callable[[AppModel, Any], None]) -> Callable[[AppModel, Any], list[Command]]:
    """Record a FieldEditError as a validation status instead of propagating it."""

    def handler(model: AppModel, msg: Any) -> list[Command]:
        try:
            action(model, msg)
        except FieldEditError as exc:
            LOGGER.debug("Rejected %s: %s", type(msg).__name__, exc)
            model.record(EventKind.VALIDATION_ERROR, str(exc))
        return []

    return handler


def _import_requested(model: AppModel, msg: m.ImportRequested) -> list[Command]:
    return [PickMetadataFile()]


def _file_selected(model: AppModel, msg: m.MetadataFileSelected) -> list[Command]:
    return [ImportMetadata(msg.path)]


def _cancelled(model: AppModel, msg: m.ImportCancelled) -> list[Command]:
    model.record(EventKind.INFO, "Metadata import cancelled.")
    return []


def _imported(model: AppModel, msg: m.MetadataImported) -> list[Command]:
    report = model.extra_fields.merge(msg.payload)
    message = f"Imported {len(report.added)} field(s) from {msg.source.name}"
    if report.skipped:
        message += f"; skipped {len(report.skipped)} with existing names: {', '.join(report.skipped)}"
    model.record(
        EventKind.INFO,
        message + ".",
        added=report.added,
        skipped=report.skipped,
        groups_added=report.groups_added,
    )
    return []


def _failed(model: AppModel, msg: m.ImportFailed) -> list[Command]:
    details = {"path": str(msg.source)} if msg.source is not None else {}
    model.record(EventKind.IO_FAILURE, msg.reason, **details)
    return []


def _group_added(model: AppModel, msg: m.GroupAdded) -> None:
    group = model.extra_fields.add_group()
    model.record(EventKind.INFO, f"Added group '{group.name}'.")


def _group_renamed(model: AppModel, msg: m.GroupRenamed) -> None:
    model.extra_fields.rename_group(msg.group_id, msg.name)


def _group_removed(model: AppModel, msg: m.GroupRemoved) -> None:
    model.extra_fields.remove_group(msg.group_id)


def _field_added(model: AppModel, msg: m.FieldAdded) -> None:
    field = model.extra_fields.add_field(msg.draft)
    model.record(EventKind.INFO, f"Added field '{field.label}'.")


def _field_edited(model: AppModel, msg: m.FieldEdited) -> None:
    model.extra_fields.edit_field(msg.field_id, msg.draft)


def _field_removed(model: AppModel, msg: m.FieldRemoved) -> None:
    field = model.extra_fields.remove_field(msg.field_id)
    model.record(EventKind.INFO, f"Removed field '{field.label}'.")


def _value_set(model: AppModel, msg: m.FieldValueSet) -> None:
    model.extra_fields.set_value(msg.field_id, msg.value)


def _checkbox(model: AppModel, msg: m.CheckboxToggled) -> None:
    model.extra_fields.set_checkbox(msg.field_id, msg.checked)


def _multi(model: AppModel, msg: m.MultiValuesSet) -> None:
    model.extra_fields.set_multi(msg.field_id, list(msg.values))


def _unit(model: AppModel, msg: m.UnitSelected) -> None:
    model.extra_fields.select_unit(msg.field_id, msg.unit)


HANDLERS: dict[type, Callable[[AppModel, Any], list[Command]]] = {
    m.ImportRequested: _import_requested,
    m.MetadataFileSelected: _file_selected,
    m.ImportCancelled: _cancelled,
    m.MetadataImported: _imported,
    m.ImportFailed: _failed,
    m.GroupAdded: _guarded(_group_added),
    m.GroupRenamed: _guarded(_group_renamed),
    m.GroupRemoved: _guarded(_group_removed),
    m.FieldAdded: _guarded(_field_added),
    m.FieldEdited: _guarded(_field_edited),
    m.FieldRemoved: _guarded(_field_removed),
    m.FieldValueSet: _guarded(_value_set),
    m.CheckboxToggled: _guarded(_checkbox),
    m.MultiValuesSet: _guarded(_multi),
    m.UnitSelected: _guarded(_unit),
}
