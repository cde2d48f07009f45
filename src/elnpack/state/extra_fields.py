"""Structured metadata fields and the groups that partition them."""

from __future__ import annotations

import sys
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_GROUP_NAME = "Default"
_UNPOSITIONED = sys.maxsize


class FieldKind(str, Enum):
    """Field types understood by the eLabFTW extra-fields schema."""

    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    CHECKBOX = "checkbox"
    DATE = "date"
    DATETIME_LOCAL = "datetime-local"
    TIME = "time"
    URL = "url"
    EMAIL = "email"
    RADIO = "radio"
    ITEMS = "items"
    EXPERIMENTS = "experiments"
    USERS = "users"


ID_KINDS = frozenset({FieldKind.ITEMS.value, FieldKind.EXPERIMENTS.value, FieldKind.USERS.value})
OPTION_KINDS = frozenset({FieldKind.SELECT.value, FieldKind.RADIO.value})


class FieldEditError(ValueError):
    """Raised when a field or group edit would break a model invariant."""


def split_multi(value: str) -> list[str]:
    """Split a comma-joined multi value into trimmed, non-empty parts."""
    return [part.strip() for part in value.split(",") if part.strip()]


def _trimmed_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class MetadataGroup(BaseModel):
    """Named bucket of fields.

    Attributes:
        id: Group identifier referenced by fields.
        name: Display name.
        position: Ordering key among groups.
    """

    id: int
    name: str
    position: int = 0


class MetadataField(BaseModel):
    """Single structured metadata field with its current value.

    ``kind`` keeps unrecognized type tokens verbatim so they survive a round trip.
    """

    id: int
    label: str
    kind: str = FieldKind.TEXT.value
    value: str = ""
    value_multi: List[str] = Field(default_factory=list)
    options: List[str] = Field(default_factory=list)
    unit: Optional[str] = None
    units: List[str] = Field(default_factory=list)
    position: Optional[int] = None
    required: bool = False
    description: Optional[str] = None
    allow_multi_values: bool = False
    blank_value_on_duplicate: bool = False
    readonly: bool = False
    group_id: int


class FieldDraft(BaseModel):
    """User-editable attributes used to create or update a field."""

    label: str
    kind: str = FieldKind.TEXT.value
    description: str = ""
    required: bool = False
    allow_multi_values: bool = False
    options: List[str] = Field(default_factory=list)
    units: List[str] = Field(default_factory=list)
    unit: str = ""
    group_id: Optional[int] = None
    readonly: bool = False
    blank_value_on_duplicate: bool = False


class ImportedGroup(BaseModel):
    """Group as read from an external metadata document."""

    id: int
    name: str
    position: int


class ImportedField(BaseModel):
    """Field as read from an external metadata document, before ids are assigned."""

    label: str
    kind: str
    value: str = ""
    value_multi: List[str] = Field(default_factory=list)
    options: List[str] = Field(default_factory=list)
    unit: Optional[str] = None
    units: List[str] = Field(default_factory=list)
    position: Optional[int] = None
    required: bool = False
    description: Optional[str] = None
    allow_multi_values: bool = False
    blank_value_on_duplicate: bool = False
    readonly: bool = False
    group_id: Optional[int] = None


class ImportedMetadata(BaseModel):
    """Parsed external metadata: fields sorted by position then label, plus groups."""

    fields: List[ImportedField] = Field(default_factory=list)
    groups: List[ImportedGroup] = Field(default_factory=list)


class MergeReport(BaseModel):
    """Summary of merging imported metadata into the live model."""

    added: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    groups_added: List[str] = Field(default_factory=list)


def _default_groups() -> list[MetadataGroup]:
    return [MetadataGroup(id=1, name=DEFAULT_GROUP_NAME, position=0)]


class ExtraFieldsModel(BaseModel):
    """Fields and groups with the relation held as ``field.group_id``.

    Every field references an existing group, labels are unique
    case-insensitively and field types never change after creation.
    """

    fields: List[MetadataField] = Field(default_factory=list)
    groups: List[MetadataGroup] = Field(default_factory=_default_groups)
    next_field_id: int = 1

    # Lookups -----------------------------------------------------------

    def field(self, field_id: int) -> MetadataField:
        for candidate in self.fields:
            if candidate.id == field_id:
                return candidate
        raise FieldEditError(f"Field {field_id} does not exist.")

    def group(self, group_id: int) -> MetadataGroup:
        for candidate in self.groups:
            if candidate.id == group_id:
                return candidate
        raise FieldEditError(f"Group {group_id} does not exist.")

    def has_group(self, group_id: Optional[int]) -> bool:
        return group_id is not None and any(group.id == group_id for group in self.groups)

    def label_conflict(self, label: str, exclude_id: Optional[int] = None) -> bool:
        """Return whether another field already uses ``label`` (case-insensitive)."""
        key = label.strip().casefold()
        if not key:
            return False
        return any(
            field.id != exclude_id and field.label.strip().casefold() == key for field in self.fields
        )

    def group_name(self, group_id: Optional[int]) -> str:
        for group in self.groups:
            if group.id == group_id:
                return group.name
        return DEFAULT_GROUP_NAME

    # Groups ------------------------------------------------------------

    def ensure_default_group(self) -> int:
        """Return the id of the ``Default`` group, creating it when missing."""
        for group in self.groups:
            if group.name == DEFAULT_GROUP_NAME:
                return group.id
        return self._append_group(DEFAULT_GROUP_NAME).id

    def lowest_position_group_id(self) -> int:
        if not self.groups:
            return self.ensure_default_group()
        return min(self.groups, key=lambda group: (group.position, group.id)).id

    def add_group(self) -> MetadataGroup:
        """Append a group named ``Group <id>``."""
        return self._append_group(None)

    def rename_group(self, group_id: int, name: str) -> None:
        new_name = name.strip()
        if not new_name:
            raise FieldEditError("Group name cannot be empty.")
        self.group(group_id).name = new_name

    def remove_group(self, group_id: int) -> None:
        """Remove a group and reassign its fields.

        Removing the only group renames it to ``Default`` instead. Fields of a
        removed group move to ``Default``; when ``Default`` itself is removed they
        move to the lowest-positioned remaining group.
        """
        removed = self.group(group_id)
        if len(self.groups) == 1:
            removed.name = DEFAULT_GROUP_NAME
            return

        self.groups = [group for group in self.groups if group.id != group_id]
        if removed.name == DEFAULT_GROUP_NAME:
            target = self.lowest_position_group_id()
        else:
            target = self.ensure_default_group()
        for field in self.fields:
            if field.group_id == group_id:
                field.group_id = target

    def ordered_groups(self) -> list[MetadataGroup]:
        """Return groups by position; an empty ``Default`` group is listed last."""
        ordered = sorted(self.groups, key=lambda group: (group.position, group.id))
        used = {field.group_id for field in self.fields}
        empty_default = [g for g in ordered if g.name == DEFAULT_GROUP_NAME and g.id not in used]
        return [g for g in ordered if g not in empty_default] + empty_default

    def ordered_fields(self) -> list[MetadataField]:
        """Return fields grouped in group order, then by position and label."""
        rank = {group.id: index for index, group in enumerate(self.ordered_groups())}
        return sorted(
            self.fields,
            key=lambda field: (
                rank.get(field.group_id, len(rank)),
                field.position if field.position is not None else _UNPOSITIONED,
                field.label,
            ),
        )

    # Fields ------------------------------------------------------------

    def add_field(self, draft: FieldDraft) -> MetadataField:
        label = draft.label.strip()
        if not label:
            raise FieldEditError("Field name cannot be empty.")
        if self.label_conflict(label):
            raise FieldEditError("Field name must be unique.")

        positions = [field.position for field in self.fields if field.position is not None]
        field = MetadataField(
            id=self._allocate_field_id(),
            label=label,
            kind=draft.kind,
            position=max(positions) + 1 if positions else 0,
            group_id=self._resolve_group(draft.group_id),
        )
        self._apply_draft(draft, field)
        self.fields.append(field)
        return field

    def edit_field(self, field_id: int, draft: FieldDraft) -> MetadataField:
        field = self.field(field_id)
        if draft.kind != field.kind:
            raise FieldEditError("Field type cannot be changed; remove and recreate the field.")
        if self.label_conflict(draft.label, exclude_id=field_id):
            raise FieldEditError("Field name must be unique.")
        self._apply_draft(draft, field)
        return field

    def remove_field(self, field_id: int) -> MetadataField:
        field = self.field(field_id)
        self.fields = [candidate for candidate in self.fields if candidate.id != field_id]
        return field

    def set_value(self, field_id: int, value: str) -> None:
        field = self._editable(field_id)
        field.value = value
        if field.allow_multi_values:
            field.value_multi = split_multi(value)

    def set_checkbox(self, field_id: int, checked: bool) -> None:
        self._editable(field_id).value = "on" if checked else ""

    def set_multi(self, field_id: int, values: list[str]) -> None:
        field = self._editable(field_id)
        cleaned = [value.strip() for value in values if value.strip()]
        field.value_multi = cleaned
        field.value = ", ".join(cleaned)

    def select_unit(self, field_id: int, unit: str) -> None:
        field = self._editable(field_id)
        chosen = unit.strip()
        if field.units and chosen and chosen not in field.units:
            raise FieldEditError(f"Unit '{chosen}' is not offered by field '{field.label}'.")
        field.unit = chosen or None

    # Import ------------------------------------------------------------

    def merge(self, imported: ImportedMetadata) -> MergeReport:
        """Merge imported groups and fields without breaking label or group invariants.

        Groups are matched by name; unmatched groups get fresh ids. Fields whose
        group is unknown land in ``Default``. Fields whose label already exists
        are skipped and reported.
        """
        report = MergeReport()
        id_map: dict[int, int] = {}
        for incoming in sorted(imported.groups, key=lambda group: group.position):
            existing = next(
                (g for g in self.groups if g.name.casefold() == incoming.name.casefold()), None
            )
            if existing is None:
                existing = self._append_group(incoming.name)
                report.groups_added.append(existing.name)
            id_map[incoming.id] = existing.id

        for item in imported.fields:
            if not item.label.strip() or self.label_conflict(item.label):
                report.skipped.append(item.label)
                continue
            if item.group_id is not None and item.group_id in id_map:
                group_id = id_map[item.group_id]
            else:
                group_id = self.ensure_default_group()
            data = item.model_dump(exclude={"group_id"})
            data["label"] = item.label.strip()
            self.fields.append(
                MetadataField(id=self._allocate_field_id(), group_id=group_id, **data)
            )
            report.added.append(data["label"])
        return report

    # Internal helpers --------------------------------------------------

    def _append_group(self, name: Optional[str]) -> MetadataGroup:
        next_id = max((group.id for group in self.groups), default=0) + 1
        position = max((group.position for group in self.groups), default=-1) + 1
        group = MetadataGroup(id=next_id, name=name or f"Group {next_id}", position=position)
        self.groups.append(group)
        return group

    def _allocate_field_id(self) -> int:
        taken = max((field.id for field in self.fields), default=0)
        field_id = max(self.next_field_id, taken + 1)
        self.next_field_id = field_id + 1
        return field_id

    def _resolve_group(self, group_id: Optional[int]) -> int:
        if self.has_group(group_id):
            return group_id  # type: ignore[return-value]
        return self.lowest_position_group_id()

    def _editable(self, field_id: int) -> MetadataField:
        field = self.field(field_id)
        if field.readonly:
            raise FieldEditError(f"Field '{field.label}' is read-only.")
        return field

    def _apply_draft(self, draft: FieldDraft, field: MetadataField) -> None:
        label = draft.label.strip()
        if label:
            field.label = label
        field.description = _trimmed_or_none(draft.description)
        field.required = draft.required
        field.allow_multi_values = draft.allow_multi_values
        field.readonly = draft.readonly
        field.blank_value_on_duplicate = draft.blank_value_on_duplicate
        field.group_id = self._resolve_group(draft.group_id)
        if field.kind in OPTION_KINDS:
            field.options = [option.strip() for option in draft.options if option.strip()]
        if field.kind == FieldKind.NUMBER.value:
            field.units = [unit.strip() for unit in draft.units if unit.strip()]
            field.unit = _trimmed_or_none(draft.unit)
        if field.allow_multi_values:
            field.value_multi = split_multi(field.value)
        else:
            field.value_multi = []


__all__ = [
    "DEFAULT_GROUP_NAME",
    "ExtraFieldsModel",
    "FieldDraft",
    "FieldEditError",
    "FieldKind",
    "ID_KINDS",
    "ImportedField",
    "ImportedGroup",
    "ImportedMetadata",
    "MergeReport",
    "MetadataField",
    "MetadataGroup",
    "OPTION_KINDS",
    "split_multi",
]
