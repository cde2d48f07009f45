"""All-or-nothing archive writing and read-back verification."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from elnpack.archive.assembler import (
    ELABFTW_PROPERTY,
    ELN_FORMAT_VERSION,
    EXPERIMENT_DIR,
    METADATA_FILENAME,
    RO_CRATE_CONFORMS_TO,
    RO_CRATE_CONTEXT,
    ArchiveEntry,
    plan_archive,
)
from elnpack.archive.errors import ArchiveFormatError, ArchiveWriteError
from elnpack.archive.models import (
    ArchiveManifest,
    ArchiveResult,
    ArchiveSnapshot,
    ManifestFile,
    VerificationReport,
)
from elnpack.integrity.errors import DigestError, HashMismatchError
from elnpack.integrity.hashing import DigestCheck, HashComputer, find_mismatches, verify_digest

LOGGER = logging.getLogger(__name__)

_COMPRESSION = {"deflated": zipfile.ZIP_DEFLATED, "stored": zipfile.ZIP_STORED}
_FILE_MODE = 0o644 << 16
_DIR_MODE = (0o40755 << 16) | 0x10


def _zip_timestamp(value: datetime) -> tuple[int, int, int, int, int, int]:
    utc = value.astimezone(timezone.utc) if value.tzinfo else value
    if utc.year < 1980:
        return (1980, 1, 1, 0, 0, 0)
    return (utc.year, utc.month, utc.day, utc.hour, utc.minute, utc.second)


class ArchiveWriter:
    """Write ``.eln`` archives after re-verifying every attachment digest.

    Nothing is visible at the destination unless the whole archive was written:
    the container is built in a temporary file beside the destination and moved
    into place only on success.
    """

    def __init__(
        self,
        hasher: HashComputer | None = None,
        *,
        compression: Literal["deflated", "stored"] = "deflated",
        render_math: bool = False,
    ) -> None:
        self._hasher = hasher or HashComputer()
        self._compression = _COMPRESSION[compression]
        self._render_math = render_math

    def write(self, snapshot: ArchiveSnapshot) -> ArchiveResult:
        """Write ``snapshot`` to ``snapshot.output``.

        Args:
            snapshot: Validated entry snapshot.

        Returns:
            ArchiveResult: Location, digest and size of the written archive.

        Raises:
            DuplicateArchiveNameError: If attachment names collide.
            HashMismatchError: If any attachment changed since it was added.
            ArchiveWriteError: If the destination cannot be written or the finished
                archive cannot be read back for its digest.
        """
        plan = plan_archive(snapshot, render_math=self._render_math)
        offenders = find_mismatches(
            (
                DigestCheck(name=entry.attachment.name, path=entry.attachment.path, expected=entry.attachment.sha256)
                for entry in plan.entries
            ),
            self._hasher,
        )
        if offenders:
            raise HashMismatchError(offenders)

        output = snapshot.output
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{output.name}.", suffix=".part", dir=output.parent
            )
        except OSError as exc:
            raise ArchiveWriteError(f"Cannot write to {output.parent}: {exc}") from exc

        temp_path = Path(temp_name)
        date_time = _zip_timestamp(snapshot.performed_at)
        try:
            with os.fdopen(fd, "w+b") as handle:
                with zipfile.ZipFile(handle, "w", compression=self._compression) as archive:
                    for directory in plan.directories:
                        info = zipfile.ZipInfo(directory, date_time=date_time)
                        info.external_attr = _DIR_MODE
                        archive.writestr(info, b"")
                    changed = [
                        entry.attachment.name
                        for entry in plan.entries
                        if not self._copy_entry(archive, entry, date_time)
                    ]
                    if changed:
                        raise HashMismatchError(changed)
                    info = zipfile.ZipInfo(plan.metadata_name, date_time=date_time)
                    info.compress_type = self._compression
                    info.external_attr = _FILE_MODE
                    archive.writestr(info, plan.metadata)
                handle.flush()
                os.fsync(handle.fileno())
            digest = self._hasher.compute(temp_path)
            size = temp_path.stat().st_size
            os.replace(temp_path, output)
        except HashMismatchError:
            temp_path.unlink(missing_ok=True)
            raise
        except DigestError as exc:
            temp_path.unlink(missing_ok=True)
            raise ArchiveWriteError(f"Cannot verify archive {output}: {exc.reason}") from exc
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise ArchiveWriteError(f"Failed to write archive {output}: {exc}") from exc
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        LOGGER.info("Wrote %s (%d attachment(s), %d bytes)", output, len(plan.entries), size)
        return ArchiveResult(
            path=output, sha256=digest, size=size, attachment_count=len(plan.entries)
        )

    def _copy_entry(
        self,
        archive: zipfile.ZipFile,
        entry: ArchiveEntry,
        date_time: tuple[int, int, int, int, int, int],
    ) -> bool:
        """Stream one attachment into the container; return whether its digest still matches."""
        info = zipfile.ZipInfo(entry.arcname, date_time=date_time)
        info.compress_type = self._compression
        info.external_attr = _FILE_MODE
        digest = hashlib.sha256()
        large = entry.attachment.size >= zipfile.ZIP64_LIMIT
        try:
            with entry.attachment.path.open("rb") as source:
                with archive.open(info, "w", force_zip64=large) as target:
                    for chunk in iter(lambda: source.read(self._hasher.chunk_size), b""):
                        digest.update(chunk)
                        target.write(chunk)
        except FileNotFoundError:
            LOGGER.warning("Attachment %s disappeared while writing", entry.attachment.name)
            return False
        return verify_digest(entry.attachment.sha256, digest.hexdigest())


def _open_archive(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveFormatError(f"Cannot open archive {path}: {exc}") from exc


def _load_metadata(archive: zipfile.ZipFile) -> tuple[str, dict[str, Any]]:
    candidates = [
        name
        for name in archive.namelist()
        if name.count("/") == 1 and name.endswith(f"/{METADATA_FILENAME}")
    ]
    if len(candidates) != 1:
        raise ArchiveFormatError(f"Archive must contain exactly one <root>/{METADATA_FILENAME}.")
    root = candidates[0].split("/", 1)[0]
    try:
        document = json.loads(archive.read(candidates[0]).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ArchiveFormatError(f"Metadata document is not valid JSON: {exc}") from exc
    if not isinstance(document, dict) or not isinstance(document.get("@graph"), list):
        raise ArchiveFormatError("Metadata document has no @graph.")
    return root, document


def _nodes_by_id(document: dict[str, Any]) -> dict[str, dict[str, Any]]:
    return {
        node["@id"]: node
        for node in document["@graph"]
        if isinstance(node, dict) and isinstance(node.get("@id"), str)
    }


def _check_version(document: dict[str, Any], nodes: dict[str, dict[str, Any]]) -> None:
    if document.get("@context") != RO_CRATE_CONTEXT:
        raise ArchiveFormatError(f"Unsupported @context {document.get('@context')!r}.")
    descriptor = nodes.get(METADATA_FILENAME, {})
    conforms = (descriptor.get("conformsTo") or {}).get("@id")
    if conforms != RO_CRATE_CONFORMS_TO:
        raise ArchiveFormatError(f"Metadata conforms to {conforms!r}, expected {RO_CRATE_CONFORMS_TO}.")
    version = nodes.get("./", {}).get("version")
    if version != ELN_FORMAT_VERSION:
        raise ArchiveFormatError(f"Unsupported ELN format version {version!r}.")


def read_archive_manifest(path: Path) -> ArchiveManifest:
    """Parse the entry description back out of an archive.

    Raises:
        ArchiveFormatError: If the container, layout or schema version is not recognized.
    """
    with _open_archive(path) as archive:
        root, document = _load_metadata(archive)
    nodes = _nodes_by_id(document)
    _check_version(document, nodes)

    experiment = nodes.get(f"./{EXPERIMENT_DIR}/")
    if experiment is None:
        raise ArchiveFormatError("Metadata document has no experiment dataset.")

    files: list[ManifestFile] = []
    for part in experiment.get("hasPart", []):
        node = nodes.get(part.get("@id", ""), {})
        if node.get("@type") != "File":
            continue
        size = node.get("contentSize")
        files.append(
            ManifestFile(
                name=node.get("name", ""),
                size=int(size) if isinstance(size, (int, str)) and str(size).isdigit() else None,
                mime=node.get("encodingFormat"),
                sha256=node.get("sha256"),
            )
        )

    extra_fields: dict[str, Any] = {}
    for node in nodes.values():
        if node.get("@type") == "PropertyValue" and node.get("propertyID") == ELABFTW_PROPERTY:
            try:
                extra_fields = json.loads(node.get("value") or "{}")
            except json.JSONDecodeError as exc:
                raise ArchiveFormatError(f"Embedded eLabFTW metadata is not valid JSON: {exc}") from exc
            break

    encoding = experiment.get("encodingFormat", "text/html")
    return ArchiveManifest(
        root=root,
        title=experiment.get("name", ""),
        genre=experiment.get("genre", ""),
        keywords=list(experiment.get("keywords", [])),
        body_format="markdown" if encoding == "text/markdown" else "html",
        date_created=experiment.get("dateCreated"),
        files=files,
        extra_fields=extra_fields,
    )


def verify_archive(path: Path, chunk_size: int = 64 * 1024) -> VerificationReport:
    """Re-digest every attachment stored in ``path`` against its recorded sha256."""
    manifest = read_archive_manifest(path)
    report = VerificationReport(path=path)
    with _open_archive(path) as archive:
        names = set(archive.namelist())
        for item in manifest.files:
            arcname = f"{manifest.root}/{EXPERIMENT_DIR}/{item.name}"
            if arcname not in names:
                report.missing.append(item.name)
                continue
            digest = hashlib.sha256()
            with archive.open(arcname) as handle:
                for chunk in iter(lambda: handle.read(chunk_size), b""):
                    digest.update(chunk)
            report.checked += 1
            if item.sha256 is None or not verify_digest(item.sha256, digest.hexdigest()):
                report.mismatched.append(item.name)
    return report


__all__ = ["ArchiveWriter", "read_archive_manifest", "verify_archive"]
