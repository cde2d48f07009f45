"""Tests for writing, reading back and verifying archives."""

import datetime as dt
import hashlib
import json
import zipfile
from pathlib import Path

import pytest

from elnpack.archive import (
    ArchiveFormatError,
    ArchiveSnapshot,
    ArchiveWriteError,
    ArchiveWriter,
    SnapshotAttachment,
    read_archive_manifest,
    verify_archive,
)
from elnpack.integrity import DigestError, HashComputer, HashMismatchError
from elnpack.state import MetadataField, MetadataGroup

WHEN = dt.datetime(2024, 5, 1, 12, 30, tzinfo=dt.timezone.utc)


def _snapshot(tmp_path: Path, files: dict[str, bytes], **overrides: object) -> ArchiveSnapshot:
    source = tmp_path / "src"
    source.mkdir(exist_ok=True)
    attachments = []
    for name, payload in files.items():
        path = source / name
        path.write_bytes(payload)
        attachments.append(
            SnapshotAttachment(
                name=name,
                path=path,
                mime="text/plain",
                size=len(payload),
                sha256=hashlib.sha256(payload).hexdigest(),
            )
        )
    values: dict[str, object] = {
        "output": tmp_path / "out" / "Run 7.eln",
        "title": "Run 7",
        "body": "Observed *nothing* unusual.",
        "keywords": ["tem"],
        "performed_at": WHEN,
        "attachments": attachments,
        "fields": [MetadataField(id=1, label="Zoom", kind="number", value="40", group_id=1, position=0)],
        "groups": [MetadataGroup(id=1, name="Default")],
    }
    values.update(overrides)
    return ArchiveSnapshot(**values)


def test_write_produces_expected_container(tmp_path: Path) -> None:
    snapshot = _snapshot(tmp_path, {"a.txt": b"alpha", "b.csv": b"1,2\n"})

    result = ArchiveWriter().write(snapshot)

    assert result.path == snapshot.output
    assert result.path.exists()
    assert result.attachment_count == 2
    assert result.size == result.path.stat().st_size
    assert result.sha256 == hashlib.sha256(result.path.read_bytes()).hexdigest()
    with zipfile.ZipFile(result.path) as archive:
        assert archive.namelist() == [
            "Run_7/",
            "Run_7/experiment/",
            "Run_7/experiment/a.txt",
            "Run_7/experiment/b.csv",
            "Run_7/ro-crate-metadata.json",
        ]
        assert archive.read("Run_7/experiment/a.txt") == b"alpha"
        info = archive.getinfo("Run_7/experiment/a.txt")
        assert info.date_time == (2024, 5, 1, 12, 30, 0)
        assert info.compress_type == zipfile.ZIP_DEFLATED
        document = json.loads(archive.read("Run_7/ro-crate-metadata.json"))
    assert document["@graph"][2]["text"] == "<p>Observed <em>nothing</em> unusual.</p>"
    assert list(result.path.parent.glob("*.part")) == []


def test_write_is_deterministic(tmp_path: Path) -> None:
    first = ArchiveWriter().write(_snapshot(tmp_path, {"a.txt": b"alpha"}))
    digest = first.sha256

    second = ArchiveWriter().write(_snapshot(tmp_path, {"a.txt": b"alpha"}))

    assert second.sha256 == digest


def test_stored_compression_and_old_timestamps(tmp_path: Path) -> None:
    snapshot = _snapshot(
        tmp_path,
        {"a.txt": b"alpha"},
        performed_at=dt.datetime(1975, 6, 1, tzinfo=dt.timezone.utc),
    )

    result = ArchiveWriter(compression="stored").write(snapshot)

    with zipfile.ZipFile(result.path) as archive:
        info = archive.getinfo("Run_7/experiment/a.txt")
    assert info.compress_type == zipfile.ZIP_STORED
    assert info.date_time == (1980, 1, 1, 0, 0, 0)


def test_tampered_attachments_abort_the_write(tmp_path: Path) -> None:
    snapshot = _snapshot(tmp_path, {"a.txt": b"alpha", "b.txt": b"beta", "c.txt": b"gamma"})
    snapshot.attachments[0].path.write_bytes(b"ALPHA")
    snapshot.attachments[2].path.unlink()

    with pytest.raises(HashMismatchError) as excinfo:
        ArchiveWriter().write(snapshot)

    assert excinfo.value.offenders == ["a.txt", "c.txt"]
    assert not snapshot.output.exists()


def test_failed_write_leaves_existing_destination_untouched(tmp_path: Path) -> None:
    snapshot = _snapshot(tmp_path, {"a.txt": b"alpha"})
    snapshot.output.parent.mkdir(parents=True)
    snapshot.output.write_bytes(b"previous archive")
    snapshot.attachments[0].path.write_bytes(b"changed")

    with pytest.raises(HashMismatchError):
        ArchiveWriter().write(snapshot)

    assert snapshot.output.read_bytes() == b"previous archive"
    assert sorted(p.name for p in snapshot.output.parent.iterdir()) == ["Run 7.eln"]


class _UnreadableOutputHasher(HashComputer):
    """Hash attachments normally but fail on the finished container."""

    def compute(self, path: Path) -> str:
        if path.name.endswith(".part"):
            raise DigestError(path, "Input/output error")
        return super().compute(path)


def test_unreadable_container_is_reported_as_write_failure(tmp_path: Path) -> None:
    snapshot = _snapshot(tmp_path, {"a.txt": b"alpha"})
    snapshot.output.parent.mkdir(parents=True)
    snapshot.output.write_bytes(b"previous archive")

    with pytest.raises(ArchiveWriteError, match="Input/output error"):
        ArchiveWriter(_UnreadableOutputHasher()).write(snapshot)

    assert snapshot.output.read_bytes() == b"previous archive"
    assert sorted(p.name for p in snapshot.output.parent.iterdir()) == ["Run 7.eln"]


def test_manifest_round_trip(tmp_path: Path) -> None:
    result = ArchiveWriter().write(_snapshot(tmp_path, {"a.txt": b"alpha"}))

    manifest = read_archive_manifest(result.path)

    assert manifest.root == "Run_7"
    assert manifest.title == "Run 7"
    assert manifest.genre == "experiment"
    assert manifest.keywords == ["tem"]
    assert manifest.body_format == "html"
    assert manifest.date_created == "2024-05-01T12:30:00Z"
    assert [(f.name, f.size, f.mime) for f in manifest.files] == [("a.txt", 5, "text/plain")]
    assert manifest.files[0].sha256 == hashlib.sha256(b"alpha").hexdigest()
    assert manifest.extra_fields["extra_fields"]["Zoom"]["value"] == "40"


def test_verify_reports_ok(tmp_path: Path) -> None:
    result = ArchiveWriter().write(_snapshot(tmp_path, {"a.txt": b"alpha", "b.txt": b"beta"}))

    report = verify_archive(result.path)

    assert report.ok
    assert report.checked == 2


def _rewrite(source: Path, target: Path, replace: dict[str, bytes], drop: tuple[str, ...] = ()) -> None:
    with zipfile.ZipFile(source) as original, zipfile.ZipFile(target, "w") as copy:
        for info in original.infolist():
            if info.filename in drop:
                continue
            copy.writestr(info, replace.get(info.filename, original.read(info.filename)))


def test_verify_detects_changed_and_missing_members(tmp_path: Path) -> None:
    result = ArchiveWriter().write(_snapshot(tmp_path, {"a.txt": b"alpha", "b.txt": b"beta"}))
    tampered = tmp_path / "tampered.eln"
    _rewrite(
        result.path,
        tampered,
        replace={"Run_7/experiment/a.txt": b"ALPHA"},
        drop=("Run_7/experiment/b.txt",),
    )

    report = verify_archive(tampered)

    assert not report.ok
    assert report.checked == 1
    assert report.mismatched == ["a.txt"]
    assert report.missing == ["b.txt"]


def test_read_rejects_non_zip(tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.eln"
    bogus.write_text("not a zip", encoding="utf-8")

    with pytest.raises(ArchiveFormatError):
        read_archive_manifest(bogus)


def test_read_rejects_unknown_profile(tmp_path: Path) -> None:
    result = ArchiveWriter().write(_snapshot(tmp_path, {"a.txt": b"alpha"}))
    with zipfile.ZipFile(result.path) as archive:
        document = json.loads(archive.read("Run_7/ro-crate-metadata.json"))
    document["@graph"][0]["conformsTo"] = {"@id": "https://w3id.org/ro/crate/1.0"}
    altered = tmp_path / "altered.eln"
    _rewrite(
        result.path,
        altered,
        replace={"Run_7/ro-crate-metadata.json": json.dumps(document).encode("utf-8")},
    )

    with pytest.raises(ArchiveFormatError, match="conforms"):
        read_archive_manifest(altered)


def test_read_rejects_missing_metadata(tmp_path: Path) -> None:
    result = ArchiveWriter().write(_snapshot(tmp_path, {"a.txt": b"alpha"}))
    stripped = tmp_path / "stripped.eln"
    _rewrite(result.path, stripped, replace={}, drop=("Run_7/ro-crate-metadata.json",))

    with pytest.raises(ArchiveFormatError, match="exactly one"):
        read_archive_manifest(stripped)
