"""Tests for structured metadata fields and groups."""

import pytest

from elnpack.state import (
    DEFAULT_GROUP_NAME,
    ExtraFieldsModel,
    FieldDraft,
    FieldEditError,
    ImportedField,
    ImportedGroup,
    ImportedMetadata,
)


def _model_with_voltage() -> tuple[ExtraFieldsModel, int]:
    model = ExtraFieldsModel()
    field = model.add_field(
        FieldDraft(label="Voltage", kind="number", units=["V", "mV", " "], unit="V")
    )
    return model, field.id


def test_new_model_has_default_group() -> None:
    model = ExtraFieldsModel()

    assert [(group.id, group.name, group.position) for group in model.groups] == [
        (1, DEFAULT_GROUP_NAME, 0)
    ]


def test_add_field_assigns_ids_positions_and_default_group() -> None:
    model, voltage_id = _model_with_voltage()
    notes = model.add_field(FieldDraft(label="  Notes  "))

    voltage = model.field(voltage_id)
    assert voltage.units == ["V", "mV"]
    assert voltage.unit == "V"
    assert voltage.group_id == 1
    assert (notes.label, notes.position) == ("Notes", 1)
    assert notes.id != voltage_id


def test_labels_are_unique_case_insensitively() -> None:
    model, voltage_id = _model_with_voltage()

    with pytest.raises(FieldEditError):
        model.add_field(FieldDraft(label="voltage"))
    with pytest.raises(FieldEditError):
        model.add_field(FieldDraft(label="   "))

    other = model.add_field(FieldDraft(label="Current", kind="number"))
    with pytest.raises(FieldEditError):
        model.edit_field(other.id, FieldDraft(label="VOLTAGE", kind="number"))
    model.edit_field(voltage_id, FieldDraft(label="voltage", kind="number"))
    assert model.field(voltage_id).label == "voltage"


def test_field_type_cannot_change() -> None:
    model, voltage_id = _model_with_voltage()

    with pytest.raises(FieldEditError):
        model.edit_field(voltage_id, FieldDraft(label="Voltage", kind="text"))


def test_add_group_names_by_id_and_remove_reassigns_fields_to_default() -> None:
    model = ExtraFieldsModel()
    group = model.add_group()
    field = model.add_field(FieldDraft(label="Lens", group_id=group.id))

    assert group.name == "Group 2"
    assert field.group_id == group.id

    model.remove_group(group.id)

    assert [g.name for g in model.groups] == [DEFAULT_GROUP_NAME]
    assert model.field(field.id).group_id == 1


def test_removing_default_moves_fields_to_lowest_positioned_group() -> None:
    model = ExtraFieldsModel()
    second = model.add_group()
    third = model.add_group()
    field = model.add_field(FieldDraft(label="Sample"))

    model.remove_group(1)

    assert {g.id for g in model.groups} == {second.id, third.id}
    assert model.field(field.id).group_id == second.id


def test_removing_only_group_renames_it_to_default() -> None:
    model = ExtraFieldsModel()
    model.rename_group(1, "Optics")

    model.remove_group(1)

    assert [(g.id, g.name) for g in model.groups] == [(1, DEFAULT_GROUP_NAME)]


def test_rename_group_rejects_empty_name() -> None:
    model = ExtraFieldsModel()

    with pytest.raises(FieldEditError):
        model.rename_group(1, "  ")


def test_empty_default_group_is_ordered_last() -> None:
    model = ExtraFieldsModel()
    optics = model.add_group()
    model.add_field(FieldDraft(label="Lens", group_id=optics.id))

    assert [g.name for g in model.ordered_groups()] == [optics.name, DEFAULT_GROUP_NAME]

    model.add_field(FieldDraft(label="Operator", group_id=1))
    assert [g.name for g in model.ordered_groups()] == [DEFAULT_GROUP_NAME, optics.name]


def test_ordered_fields_follow_group_then_position() -> None:
    model = ExtraFieldsModel()
    optics = model.add_group()
    first = model.add_field(FieldDraft(label="Lens", group_id=optics.id))
    second = model.add_field(FieldDraft(label="Operator", group_id=1))

    assert [f.id for f in model.ordered_fields()] == [second.id, first.id]


def test_value_setters() -> None:
    model = ExtraFieldsModel()
    box = model.add_field(FieldDraft(label="Calibrated", kind="checkbox"))
    tags = model.add_field(FieldDraft(label="Detectors", kind="select", allow_multi_values=True))

    model.set_checkbox(box.id, True)
    assert model.field(box.id).value == "on"
    model.set_checkbox(box.id, False)
    assert model.field(box.id).value == ""

    model.set_multi(tags.id, ["EDS", " HAADF ", ""])
    assert model.field(tags.id).value_multi == ["EDS", "HAADF"]
    assert model.field(tags.id).value == "EDS, HAADF"

    model.set_value(tags.id, "BF, DF")
    assert model.field(tags.id).value_multi == ["BF", "DF"]


def test_select_unit_must_be_offered() -> None:
    model, voltage_id = _model_with_voltage()

    with pytest.raises(FieldEditError):
        model.select_unit(voltage_id, "kV")

    model.select_unit(voltage_id, "mV")
    assert model.field(voltage_id).unit == "mV"


def test_readonly_fields_reject_value_changes() -> None:
    model = ExtraFieldsModel()
    field = model.add_field(FieldDraft(label="Instrument", readonly=True))

    with pytest.raises(FieldEditError):
        model.set_value(field.id, "Titan")


def test_merge_maps_groups_and_skips_conflicting_labels() -> None:
    model, _ = _model_with_voltage()
    imported = ImportedMetadata(
        fields=[
            ImportedField(label="Lens", kind="text", value="40x", group_id=7),
            ImportedField(label="voltage", kind="number", value="3"),
            ImportedField(label="Stage", kind="text", group_id=99),
        ],
        groups=[ImportedGroup(id=7, name="Optics", position=0)],
    )

    report = model.merge(imported)

    assert report.added == ["Lens", "Stage"]
    assert report.skipped == ["voltage"]
    assert report.groups_added == ["Optics"]
    optics = next(g for g in model.groups if g.name == "Optics")
    by_label = {f.label: f for f in model.fields}
    assert by_label["Lens"].group_id == optics.id
    assert by_label["Stage"].group_id == 1
    assert len({f.id for f in model.fields}) == len(model.fields)


def test_merge_reuses_groups_with_matching_names() -> None:
    model = ExtraFieldsModel()
    imported = ImportedMetadata(
        fields=[ImportedField(label="Operator", kind="text", group_id=3)],
        groups=[ImportedGroup(id=3, name="default", position=0)],
    )

    report = model.merge(imported)

    assert report.groups_added == []
    assert model.fields[0].group_id == 1
