"""Pure construction of the RO-Crate metadata graph and the archive layout."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from elnpack.archive.errors import DuplicateArchiveNameError
from elnpack.archive.models import ArchiveSnapshot, SnapshotAttachment
from elnpack.archive.render import render_body
from elnpack.metadata.elabftw import build_elabftw_metadata, export_value
from elnpack.naming.sanitizer import sanitize_component

RO_CRATE_VERSION = "1.2"
RO_CRATE_CONTEXT = f"https://w3id.org/ro/crate/{RO_CRATE_VERSION}/context"
RO_CRATE_CONFORMS_TO = f"https://w3id.org/ro/crate/{RO_CRATE_VERSION}"
ELN_FORMAT_VERSION = 103
METADATA_FILENAME = "ro-crate-metadata.json"
EXPERIMENT_DIR = "experiment"
ORGANIZATION_ID = "https://elnpack.app/#organization"
ORGANIZATION_NODE = {
    "@id": ORGANIZATION_ID,
    "@type": "Organization",
    "name": "elnPack",
    "url": "https://github.com/cbm343e/elnPack",
}
ELABFTW_PROPERTY = "elabftw_metadata"
_PV_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://elnpack.app/property-value")


@dataclass(slots=True, frozen=True)
class ArchiveEntry:
    """Attachment placed at ``arcname`` inside the container."""

    arcname: str
    attachment: SnapshotAttachment


@dataclass(slots=True, frozen=True)
class ArchivePlan:
    """Everything the writer needs; built without touching the filesystem.

    Attributes:
        root: Top-level folder inside the container.
        directories: Directory entries, parents first.
        entries: Attachments in insertion order.
        metadata_name: Path of the metadata document inside the container.
        metadata: Serialized metadata document.
    """

    root: str
    directories: tuple[str, ...]
    entries: tuple[ArchiveEntry, ...]
    metadata_name: str
    metadata: bytes


def archive_root(output: Path) -> str:
    """Return the container's top-level folder for an output path."""
    return sanitize_component(output.stem or "eln_entry")


def format_timestamp(value: datetime) -> str:
    """Render an instant as RFC 3339 in UTC with a ``Z`` suffix."""
    aware = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def property_value_id(root: str, key: str) -> str:
    """Return a stable ``pv://`` identifier for a PropertyValue node."""
    name = f"{root}/{key}"
    return f"pv://{uuid.uuid5(_PV_NAMESPACE, name)}"


def _file_node(attachment: SnapshotAttachment) -> dict[str, Any]:
    return {
        "@id": f"./{EXPERIMENT_DIR}/{attachment.name}",
        "@type": "File",
        "name": attachment.name,
        "encodingFormat": attachment.mime,
        "contentSize": str(attachment.size),
        "sha256": attachment.sha256,
    }


def _property_nodes(
    snapshot: ArchiveSnapshot, root: str
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    blob = build_elabftw_metadata(snapshot.fields, snapshot.groups)
    metadata_node = {
        "@id": property_value_id(root, f"#{ELABFTW_PROPERTY}"),
        "@type": "PropertyValue",
        "propertyID": ELABFTW_PROPERTY,
        "description": "eLabFTW metadata JSON as string",
        "value": json.dumps(blob, ensure_ascii=False, separators=(",", ":")),
    }
    field_nodes: list[dict[str, Any]] = []
    for field in snapshot.fields:
        node: dict[str, Any] = {
            "@id": property_value_id(root, f"field:{field.label}"),
            "@type": "PropertyValue",
            "propertyID": field.label,
            "valueReference": field.kind,
            "value": export_value(field),
        }
        if field.unit is not None:
            node["unitText"] = field.unit
        if field.description is not None:
            node["description"] = field.description
        field_nodes.append(node)
    return metadata_node, field_nodes


def build_metadata(snapshot: ArchiveSnapshot, root: str, render_math: bool = False) -> dict[str, Any]:
    """Build the JSON-LD document describing ``snapshot``.

    Graph order is fixed: descriptor, root dataset, experiment, publisher,
    files in attachment order, the eLabFTW metadata property, then one
    property per field.
    """
    timestamp = format_timestamp(snapshot.performed_at)
    body_text, encoding_format = render_body(snapshot.body, snapshot.body_format, render_math)
    file_nodes = [_file_node(attachment) for attachment in snapshot.attachments]
    metadata_node, field_nodes = _property_nodes(snapshot, root)

    experiment = {
        "@id": f"./{EXPERIMENT_DIR}/",
        "@type": "Dataset",
        "name": snapshot.title,
        "encodingFormat": encoding_format,
        "text": body_text,
        "dateCreated": timestamp,
        "dateModified": timestamp,
        "author": {"@id": ORGANIZATION_ID},
        "genre": snapshot.genre.value,
        "keywords": list(snapshot.keywords),
        "variableMeasured": [{"@id": node["@id"]} for node in [metadata_node, *field_nodes]],
        "hasPart": [{"@id": node["@id"]} for node in file_nodes],
    }
    graph: list[dict[str, Any]] = [
        {
            "@id": METADATA_FILENAME,
            "@type": "CreativeWork",
            "about": {"@id": "./"},
            "conformsTo": {"@id": RO_CRATE_CONFORMS_TO},
            "dateCreated": timestamp,
            "sdPublisher": {"@id": ORGANIZATION_ID},
        },
        {
            "@id": "./",
            "@type": "Dataset",
            "name": snapshot.title,
            "hasPart": [{"@id": f"./{EXPERIMENT_DIR}/"}],
            "version": ELN_FORMAT_VERSION,
        },
        experiment,
        dict(ORGANIZATION_NODE),
        *file_nodes,
        metadata_node,
        *field_nodes,
    ]
    return {"@context": RO_CRATE_CONTEXT, "@graph": graph}


def serialize_metadata(document: dict[str, Any]) -> bytes:
    return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")


def plan_archive(snapshot: ArchiveSnapshot, render_math: bool = False) -> ArchivePlan:
    """Lay out the container for ``snapshot``.

    Raises:
        DuplicateArchiveNameError: If two attachments share a sanitized name.
    """
    seen: set[str] = set()
    for attachment in snapshot.attachments:
        if attachment.name in seen:
            raise DuplicateArchiveNameError(attachment.name)
        seen.add(attachment.name)

    root = archive_root(snapshot.output)
    experiment_dir = f"{root}/{EXPERIMENT_DIR}/"
    entries = tuple(
        ArchiveEntry(arcname=f"{experiment_dir}{attachment.name}", attachment=attachment)
        for attachment in snapshot.attachments
    )
    return ArchivePlan(
        root=root,
        directories=(f"{root}/", experiment_dir),
        entries=entries,
        metadata_name=f"{root}/{METADATA_FILENAME}",
        metadata=serialize_metadata(build_metadata(snapshot, root, render_math)),
    )


__all__ = [
    "ArchiveEntry",
    "ArchivePlan",
    "ELABFTW_PROPERTY",
    "ELN_FORMAT_VERSION",
    "EXPERIMENT_DIR",
    "METADATA_FILENAME",
    "RO_CRATE_CONFORMS_TO",
    "RO_CRATE_CONTEXT",
    "RO_CRATE_VERSION",
    "archive_root",
    "build_metadata",
    "format_timestamp",
    "plan_archive",
    "property_value_id",
    "serialize_metadata",
]
