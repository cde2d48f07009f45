"""Tests for streaming digests and tamper detection."""

import hashlib
from pathlib import Path

import pytest

from elnpack.integrity import (
    DigestCheck,
    DigestError,
    HashComputer,
    HashMismatchError,
    find_mismatches,
    verify_digest,
)


def test_compute_matches_hashlib_across_chunk_boundaries(tmp_path: Path) -> None:
    payload = bytes(range(256)) * 41
    target = tmp_path / "blob.bin"
    target.write_bytes(payload)

    digest = HashComputer(chunk_size=100).compute(target)

    assert digest == hashlib.sha256(payload).hexdigest()
    assert len(digest) == 64
    assert digest == digest.lower()


def test_compute_empty_file(tmp_path: Path) -> None:
    target = tmp_path / "empty"
    target.write_bytes(b"")

    assert HashComputer().compute(target) == hashlib.sha256(b"").hexdigest()


def test_compute_missing_file_raises_digest_error(tmp_path: Path) -> None:
    with pytest.raises(DigestError) as excinfo:
        HashComputer().compute(tmp_path / "missing.txt")

    assert excinfo.value.path == tmp_path / "missing.txt"


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        HashComputer(chunk_size=0)


def test_verify_digest_ignores_case() -> None:
    assert verify_digest("ABCDEF", "abcdef")
    assert not verify_digest("abc", "abd")


def test_find_mismatches_reports_every_offender(tmp_path: Path) -> None:
    hasher = HashComputer()
    stable = tmp_path / "stable.txt"
    changed = tmp_path / "changed.txt"
    removed = tmp_path / "removed.txt"
    for path in (stable, changed, removed):
        path.write_text(path.name, encoding="utf-8")
    checks = [DigestCheck(path.name, path, hasher.compute(path)) for path in (stable, changed, removed)]

    changed.write_text("tampered", encoding="utf-8")
    removed.unlink()

    assert find_mismatches(checks, hasher) == ["changed.txt", "removed.txt"]


def test_hash_mismatch_error_lists_offenders() -> None:
    error = HashMismatchError(["a.txt", "b.txt"])

    assert error.offenders == ["a.txt", "b.txt"]
    assert "a.txt, b.txt" in str(error)
