"""Reducer tests for the save flow, validation and the message vocabulary."""

import datetime as dt
from pathlib import Path
from typing import get_args

import pytest

from elnpack.archive import ArchiveSnapshot
from elnpack.state import (
    MAX_EVENTS,
    AppModel,
    AttachmentState,
    EventKind,
    FieldDraft,
    ImportedField,
    ImportedMetadata,
    SavePhase,
)
from elnpack.update import HANDLERS, update, validation_problem
from elnpack.update import messages as m
from elnpack.update.commands import ImportMetadata, PickMetadataFile, PickSaveDestination, SaveArchive


def _apply(model: AppModel, *messages: m.Message) -> tuple[AppModel, list]:
    commands: list = []
    for msg in messages:
        model, produced = update(model, msg)
        commands.extend(produced)
    return model, commands


def _titled(title: str = "My Entry") -> AppModel:
    model, _ = _apply(AppModel(), m.TitleChanged(title))
    return model


def test_every_message_type_has_a_handler() -> None:
    for family, union in m.FAMILIES.items():
        for message_type in get_args(union):
            assert message_type in HANDLERS, f"{family}: {message_type.__name__}"


def test_unknown_message_type_raises() -> None:
    with pytest.raises(TypeError):
        update(AppModel(), object())  # type: ignore[arg-type]


def test_missing_title_rejects_save() -> None:
    model, commands = _apply(AppModel(), m.TitleChanged("   "), m.SaveRequested())

    assert commands == []
    assert model.save.phase == SavePhase.REJECTED
    assert model.error.kind == EventKind.VALIDATION_ERROR
    assert model.error.message == "Please enter a title."


def test_event_log_keeps_only_the_newest_entries() -> None:
    model = AppModel()
    for index in range(MAX_EVENTS + 10):
        model.record(EventKind.INFO, f"step {index}")

    model, _ = _apply(model, m.TitleChanged(""), m.SaveRequested())

    assert len(model.events) == MAX_EVENTS
    assert model.event_count == MAX_EVENTS + 11
    assert model.events[0].message == "step 11"
    assert model.events[-1].kind == EventKind.VALIDATION_ERROR
    assert model.error == model.events[-1]
    assert model.status.message == f"step {MAX_EVENTS + 9}"


def test_pending_hashes_reject_save() -> None:
    model, _ = _apply(_titled(), m.FilesPicked((Path("/data/a.txt"),)))

    assert model.attachments[0].state == AttachmentState.HASHING
    model, commands = _apply(model, m.SaveRequested(Path("/tmp/out.eln")))

    assert commands == []
    assert model.save.phase == SavePhase.REJECTED
    assert model.error.details["pending"] == ["a.txt"]


def test_invalid_metadata_field_rejects_save() -> None:
    model, _ = _apply(
        _titled(),
        m.FieldAdded(FieldDraft(label="Operator", required=True)),
    )

    problem = validation_problem(model)
    model, commands = _apply(model, m.SaveRequested(Path("/tmp/out.eln")))

    assert problem is not None
    assert commands == []
    assert model.error.message == "Field 'Operator' is required."


def test_save_without_destination_asks_for_one() -> None:
    model, commands = _apply(_titled("TEM Session"), m.SaveRequested())

    assert model.save.phase == SavePhase.AWAITING_DESTINATION
    assert commands == [PickSaveDestination("tem_session.eln")]


def test_full_save_cycle() -> None:
    model, _ = _apply(
        _titled("  Run 7 "),
        m.KeywordsAdded("tem, eds"),
        m.NowSet(dt.datetime(2024, 5, 1, 14, 30, tzinfo=dt.timezone(dt.timedelta(hours=2)))),
        m.SaveRequested(),
    )
    model, commands = _apply(model, m.SaveDestinationChosen(Path("/tmp/run7")))

    assert model.save.phase == SavePhase.COMMAND_ISSUED
    assert len(commands) == 1 and isinstance(commands[0], SaveArchive)
    snapshot: ArchiveSnapshot = commands[0].snapshot
    assert snapshot.output == Path("/tmp/run7.eln")
    assert snapshot.title == "Run 7"
    assert snapshot.keywords == ["tem", "eds"]
    assert snapshot.performed_at == dt.datetime(2024, 5, 1, 12, 30, tzinfo=dt.timezone.utc)

    model, _ = _apply(model, m.SaveStarted())
    assert model.save.phase == SavePhase.EXECUTING

    model, _ = _apply(model, m.SaveCompleted(Path("/tmp/run7.eln"), "c" * 64, 2048))
    assert model.save.phase == SavePhase.SUCCEEDED
    assert model.save.last_archive == Path("/tmp/run7.eln")
    assert model.status.details["sha256"] == "c" * 64

    model, _ = _apply(model, m.StatusDismissed())
    assert model.save.phase == SavePhase.IDLE
    assert model.status is None


@pytest.mark.parametrize("in_flight", [SavePhase.AWAITING_DESTINATION, SavePhase.COMMAND_ISSUED, SavePhase.EXECUTING])
def test_second_save_request_is_ignored_while_in_flight(in_flight: SavePhase) -> None:
    model = _titled()
    model.save.phase = in_flight

    model, commands = _apply(model, m.SaveRequested(Path("/tmp/again.eln")))

    assert commands == []
    assert model.save.phase == in_flight
    assert model.status.message == "A save is already in progress."


def test_destination_outside_awaiting_phase_is_ignored() -> None:
    model, commands = _apply(_titled(), m.SaveDestinationChosen(Path("/tmp/x.eln")))

    assert commands == []
    assert model.save.phase == SavePhase.IDLE


def test_cancelled_destination_returns_to_idle() -> None:
    model, _ = _apply(_titled(), m.SaveRequested(), m.SaveCancelled())

    assert model.save.phase == SavePhase.IDLE
    assert model.status.message == "Save cancelled."


def test_failed_save_records_offenders() -> None:
    model, _ = _apply(_titled(), m.SaveRequested(Path("/tmp/out.eln")), m.SaveStarted())

    model, _ = _apply(
        model,
        m.SaveFailed(EventKind.HASH_MISMATCH, "Attachment content changed", ("a.txt", "b.txt")),
    )

    assert model.save.phase == SavePhase.FAILED
    assert model.error.kind == EventKind.HASH_MISMATCH
    assert model.error.details["offenders"] == ["a.txt", "b.txt"]

    model, commands = _apply(model, m.SaveRequested(Path("/tmp/out.eln")))
    assert model.save.phase == SavePhase.COMMAND_ISSUED
    assert model.error is None
    assert len(commands) == 1


def test_keyword_and_markdown_messages() -> None:
    model, _ = _apply(
        AppModel(),
        m.KeywordsAdded("microscopy, TEM, microscopy"),
        m.MarkdownChanged("# Title"),
        m.MarkdownSnippetInserted("- item"),
    )

    assert model.keywords.items == ["microscopy", "TEM"]
    assert model.status.message == "Added 2 keyword(s); skipped 1 duplicate(s)."
    assert model.markdown == "# Title\n- item"

    model, _ = _apply(model, m.KeywordEdited(1, ""), m.KeywordRemoved(0))
    assert model.error.message == "Keyword cannot be empty."
    assert model.keywords.items == ["TEM"]
    assert model.status.message == "Keyword removed."


def test_field_edit_errors_become_validation_status() -> None:
    model, _ = _apply(
        AppModel(),
        m.FieldAdded(FieldDraft(label="Zoom", kind="number")),
        m.FieldAdded(FieldDraft(label="zoom")),
    )

    assert len(model.extra_fields.fields) == 1
    assert model.error.kind == EventKind.VALIDATION_ERROR
    assert model.error.message == "Field name must be unique."


def test_group_messages() -> None:
    model, _ = _apply(AppModel(), m.GroupAdded(), m.GroupRenamed(2, "Optics"))
    field_id = model.extra_fields.add_field(FieldDraft(label="Lens", group_id=2)).id

    model, _ = _apply(model, m.GroupRemoved(2))

    assert [g.name for g in model.extra_fields.groups] == ["Default"]
    assert model.extra_fields.field(field_id).group_id == 1


def test_metadata_import_flow() -> None:
    model, commands = _apply(AppModel(), m.ImportRequested())
    assert commands == [PickMetadataFile()]

    model, commands = _apply(model, m.MetadataFileSelected(Path("/data/meta.json")))
    assert commands == [ImportMetadata(Path("/data/meta.json"))]

    payload = ImportedMetadata(
        fields=[ImportedField(label="Lens", kind="text"), ImportedField(label="lens", kind="text")]
    )
    model, _ = _apply(model, m.MetadataImported(Path("/data/meta.json"), payload))

    assert [f.label for f in model.extra_fields.fields] == ["Lens"]
    assert model.status.message == (
        "Imported 1 field(s) from meta.json; skipped 1 with existing names: lens."
    )

    model, _ = _apply(model, m.ImportFailed(Path("/data/bad.json"), "Failed to parse"))
    assert model.error.kind == EventKind.IO_FAILURE
