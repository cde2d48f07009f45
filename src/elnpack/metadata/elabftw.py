"""Read and write the eLabFTW extra-fields JSON schema."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from elnpack.state.extra_fields import (
    ID_KINDS,
    FieldKind,
    ImportedField,
    ImportedGroup,
    ImportedMetadata,
    MetadataField,
    MetadataGroup,
)

LOGGER = logging.getLogger(__name__)


class MetadataImportError(Exception):
    """Raised when an extra-fields document cannot be parsed."""


class _RawField(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    kind: str = Field(alias="type")
    options: List[Any] = Field(default_factory=list)
    unit: Optional[str] = None
    units: List[Any] = Field(default_factory=list)
    value: Any = None
    position: Optional[int] = None
    required: bool = False
    description: Optional[str] = None
    allow_multi_values: bool = False
    blank_value_on_duplicate: bool = False
    readonly: bool = False
    group_id: Any = None


class _RawGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Any
    name: str


class _RawBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    extra_fields_groups: List[_RawGroup] = Field(default_factory=list)


class _RawEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    extra_fields: Dict[str, _RawField]
    elabftw: Optional[_RawBlock] = None


def _value_to_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "on" if value else ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def _strings(values: Iterable[Any]) -> list[str]:
    return [text for text in (_value_to_string(value) for value in values) if text is not None]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def parse_extra_fields(text: str) -> ImportedMetadata:
    """Parse an eLabFTW metadata document.

    Args:
        text: JSON text with an ``extra_fields`` mapping and optional
            ``elabftw.extra_fields_groups`` list.

    Returns:
        ImportedMetadata: Fields sorted by position then label, and groups
        positioned by their order in the document.

    Raises:
        MetadataImportError: If the text is not valid JSON or lacks ``extra_fields``.
    """
    try:
        envelope = _RawEnvelope.model_validate_json(text)
    except ValidationError as exc:
        raise MetadataImportError(f"Failed to parse eLabFTW metadata JSON: {exc}") from exc

    fields: list[ImportedField] = []
    for label, raw in envelope.extra_fields.items():
        if isinstance(raw.value, list):
            multi = _strings(raw.value)
            value = ", ".join(multi)
        else:
            multi = []
            value = _value_to_string(raw.value) or ""
        fields.append(
            ImportedField(
                label=label,
                kind=raw.kind.strip(),
                value=value,
                value_multi=multi,
                options=_strings(raw.options),
                unit=_blank_to_none(raw.unit),
                units=_strings(raw.units),
                position=raw.position,
                required=raw.required,
                description=_blank_to_none(raw.description),
                allow_multi_values=raw.allow_multi_values,
                blank_value_on_duplicate=raw.blank_value_on_duplicate,
                readonly=raw.readonly,
                group_id=_as_int(raw.group_id),
            )
        )
    fields.sort(key=lambda f: (f.position if f.position is not None else sys.maxsize, f.label))

    groups: list[ImportedGroup] = []
    block = envelope.elabftw or _RawBlock()
    for index, raw_group in enumerate(block.extra_fields_groups):
        group_id = _as_int(raw_group.id)
        if group_id is None:
            LOGGER.debug("Skipping group %r with non-numeric id", raw_group.name)
            continue
        groups.append(ImportedGroup(id=group_id, name=raw_group.name, position=index))

    return ImportedMetadata(fields=fields, groups=groups)


def export_value(field: MetadataField) -> Any:
    """Return the JSON value shape eLabFTW expects for ``field``.

    Multi-value fields become arrays, numbers stay strings and id references
    become integers when they parse.
    """
    if field.allow_multi_values and field.value_multi:
        return list(field.value_multi)
    if field.kind == FieldKind.NUMBER.value:
        return field.value
    if field.kind in ID_KINDS:
        parsed = _as_int(field.value)
        return parsed if parsed is not None else field.value
    return field.value


def build_elabftw_metadata(
    fields: Iterable[MetadataField], groups: Iterable[MetadataGroup]
) -> dict[str, Any]:
    """Reconstruct the eLabFTW metadata document for the given fields and groups."""
    extra_fields: dict[str, Any] = {}
    for field in fields:
        entry: dict[str, Any] = {"type": field.kind}
        if field.options:
            entry["options"] = list(field.options)
        if field.unit is not None:
            entry["unit"] = field.unit
        if field.units:
            entry["units"] = list(field.units)
        entry["value"] = export_value(field)
        if field.position is not None:
            entry["position"] = field.position
        if field.required:
            entry["required"] = True
        if field.description is not None:
            entry["description"] = field.description
        if field.allow_multi_values:
            entry["allow_multi_values"] = True
        if field.blank_value_on_duplicate:
            entry["blank_value_on_duplicate"] = True
        entry["group_id"] = field.group_id
        if field.readonly:
            entry["readonly"] = True
        extra_fields[field.label] = entry

    return {
        "elabftw": {
            "display_main_text": True,
            "extra_fields_groups": [{"id": group.id, "name": group.name} for group in groups],
        },
        "extra_fields": extra_fields,
    }


__all__ = [
    "MetadataImportError",
    "build_elabftw_metadata",
    "export_value",
    "parse_extra_fields",
]
