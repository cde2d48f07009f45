"""Reducer tests for attachment picking, hashing, previews and renaming."""

from pathlib import Path

from elnpack.state import AppModel, AttachmentState, EventKind, ThumbnailImage, ThumbnailStatus
from elnpack.update import update
from elnpack.update import messages as m
from elnpack.update.commands import HashFile, LoadThumbnail, PickFiles

DIGEST_A = "a" * 64
DIGEST_B = "b" * 64


def _apply(model: AppModel, *messages: m.Message) -> tuple[AppModel, list]:
    commands: list = []
    for msg in messages:
        model, produced = update(model, msg)
        commands.extend(produced)
    return model, commands


def _attached(*names: str) -> AppModel:
    model, _ = _apply(AppModel(), m.FilesPicked(tuple(Path("/data") / name for name in names)))
    return model


def test_pick_files_requested_issues_pick_command() -> None:
    _, commands = _apply(AppModel(), m.PickFilesRequested())

    assert commands == [PickFiles()]


def test_files_picked_registers_attachments_and_hash_commands() -> None:
    model, commands = _apply(
        AppModel(), m.FilesPicked((Path("/data/Café report.txt"), Path("/data/plain.csv")))
    )

    assert [a.sanitized_name for a in model.attachments] == ["Cafe_report.txt", "plain.csv"]
    assert all(a.state == AttachmentState.HASHING for a in model.attachments)
    assert commands == [
        HashFile(model.attachments[0].id, model.attachments[0].request_id, Path("/data/Café report.txt")),
        HashFile(model.attachments[1].id, model.attachments[1].request_id, Path("/data/plain.csv")),
    ]
    assert model.status is not None
    assert model.events[0].kind == EventKind.SANITIZATION_FALLBACK


def test_empty_selection_is_a_no_op() -> None:
    model, commands = _apply(AppModel(), m.FilesPicked(()))

    assert commands == []
    assert model.attachments == []


def test_update_does_not_mutate_its_input() -> None:
    before = AppModel()

    after, _ = update(before, m.FilesPicked((Path("/data/x.txt"),)))

    assert before.attachments == []
    assert len(after.attachments) == 1


def test_duplicate_sanitized_name_is_rejected_at_pick_time() -> None:
    model = _attached("Cafe_report.txt")

    model, commands = _apply(model, m.FilesPicked((Path("/elsewhere/Café report.txt"),)))

    assert commands == []
    assert len(model.attachments) == 1
    assert model.error is not None
    assert model.error.kind == EventKind.DUPLICATE_ATTACHMENT
    assert model.error.details["reason"] == "name"


def test_hash_computed_marks_ready() -> None:
    model = _attached("notes.txt")
    item = model.attachments[0]

    model, commands = _apply(
        model, m.HashComputed(item.id, item.request_id, DIGEST_A, 12, "text/plain")
    )

    ready = model.attachments[0]
    assert commands == []
    assert ready.state == AttachmentState.READY
    assert (ready.hash_at_add, ready.size, ready.mime) == (DIGEST_A, 12, "text/plain")


def test_identical_content_is_rejected_after_hashing() -> None:
    model = _attached("one.txt", "two.txt")
    first, second = model.attachments

    model, _ = _apply(
        model,
        m.HashComputed(first.id, first.request_id, DIGEST_A, 3, "text/plain"),
        m.HashComputed(second.id, second.request_id, DIGEST_A, 3, "text/plain"),
    )

    assert [a.sanitized_name for a in model.attachments] == ["one.txt"]
    assert model.error.kind == EventKind.DUPLICATE_ATTACHMENT
    assert model.error.details["reason"] == "digest"
    assert model.error.details["existing"] == "one.txt"


def test_results_for_removed_attachments_are_discarded() -> None:
    model = _attached("gone.txt")
    item = model.attachments[0]

    model, _ = _apply(model, m.AttachmentRemoved(item.id))
    events_before = len(model.events)
    model, commands = _apply(
        model,
        m.HashComputed(item.id, item.request_id, DIGEST_A, 1, "text/plain"),
        m.HashFailed(item.id, item.request_id, "boom"),
    )

    assert commands == []
    assert model.attachments == []
    assert len(model.events) == events_before


def test_results_for_superseded_requests_are_discarded() -> None:
    model = _attached("notes.txt")
    item = model.attachments[0]

    model, _ = _apply(model, m.HashComputed(item.id, item.request_id + 100, DIGEST_A, 1, "text/plain"))

    assert model.attachments[0].state == AttachmentState.HASHING


def test_hash_failure_drops_attachment() -> None:
    model = _attached("locked.bin")
    item = model.attachments[0]

    model, _ = _apply(model, m.HashFailed(item.id, item.request_id, "Permission denied"))

    assert model.attachments == []
    assert model.error.kind == EventKind.IO_FAILURE
    assert "Permission denied" in model.error.message


def test_images_request_thumbnails_and_ignore_stale_previews() -> None:
    model = _attached("scan.PNG")
    item = model.attachments[0]

    model, commands = _apply(model, m.HashComputed(item.id, item.request_id, DIGEST_B, 9, "image/png"))

    loading = model.attachments[0]
    assert loading.thumbnail == ThumbnailStatus.LOADING
    assert commands == [LoadThumbnail(item.id, loading.request_id, item.path)]

    image = ThumbnailImage(width=1, height=1, rgba=b"\x00\x00\x00\xff")
    model, _ = _apply(model, m.ThumbnailLoaded(item.id, item.request_id, image))
    assert model.attachments[0].thumbnail == ThumbnailStatus.LOADING

    model, _ = _apply(model, m.ThumbnailLoaded(item.id, loading.request_id, image))
    assert model.attachments[0].thumbnail == ThumbnailStatus.READY
    assert model.thumbnails[item.id] == image


def test_thumbnail_failure_only_disables_preview() -> None:
    model = _attached("vector.svg")
    item = model.attachments[0]
    model, commands = _apply(model, m.HashComputed(item.id, item.request_id, DIGEST_B, 9, "image/svg+xml"))

    model, _ = _apply(model, m.ThumbnailFailed(item.id, commands[0].request_id, "unsupported"))

    assert model.attachments[0].thumbnail == ThumbnailStatus.FAILED
    assert model.attachments[0].state == AttachmentState.READY
    assert model.error is None


def test_rename_sanitizes_and_rejects_collisions() -> None:
    model = _attached("a.txt", "b.txt")
    first, second = model.attachments

    model, _ = _apply(model, m.AttachmentRenamed(first.id, "   "))
    assert model.error.kind == EventKind.VALIDATION_ERROR

    model, _ = _apply(model, m.AttachmentRenamed(first.id, "b.txt"))
    assert model.error.kind == EventKind.DUPLICATE_ATTACHMENT
    assert model.attachments[0].sanitized_name == "a.txt"

    model, _ = _apply(model, m.AttachmentRenamed(first.id, "final report.txt"))
    assert model.attachments[0].sanitized_name == "final_report.txt"
    assert model.status.kind == EventKind.SANITIZATION_FALLBACK
