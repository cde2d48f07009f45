"""Tests for per-field save validation."""

import pytest

from elnpack.metadata import describe, first_invalid, validate_field
from elnpack.metadata.validation import (
    INVALID_EMAIL,
    INVALID_INTEGER,
    INVALID_NUMBER,
    INVALID_URL,
    REQUIRED,
)
from elnpack.state import MetadataField


def _field(kind: str, value: str, *, required: bool = False, label: str = "Field") -> MetadataField:
    return MetadataField(id=1, label=label, kind=kind, value=value, required=required, group_id=1)


@pytest.mark.parametrize(
    ("kind", "value", "expected"),
    [
        ("text", "", None),
        ("number", "", None),
        ("number", "3.5e-2", None),
        ("number", "-12", None),
        ("number", "12,5", INVALID_NUMBER),
        ("number", "1_000", INVALID_NUMBER),
        ("url", "https://example.org/run/7", None),
        ("url", "ftp://example.org", INVALID_URL),
        ("url", "example.org", INVALID_URL),
        ("items", "42", None),
        ("experiments", "4.2", INVALID_INTEGER),
        ("users", "abc", INVALID_INTEGER),
        ("email", "lab@uni-heidelberg.de", None),
        ("email", "lab@", INVALID_EMAIL),
        ("mystery-type", "anything", None),
    ],
)
def test_validate_field_by_kind(kind: str, value: str, expected: str | None) -> None:
    assert validate_field(_field(kind, value)) == expected


def test_required_fields_must_not_be_blank() -> None:
    field = _field("text", "   ", required=True, label="Operator")

    assert validate_field(field) == REQUIRED
    assert describe(field, REQUIRED) == "Field 'Operator' is required."


def test_first_invalid_returns_first_failure_in_order() -> None:
    fields = [
        _field("text", "ok", label="A"),
        _field("url", "nope", label="B"),
        _field("text", "", required=True, label="C"),
    ]

    field, code = first_invalid(fields)

    assert (field.label, code) == ("B", INVALID_URL)
    assert first_invalid(fields[:1]) is None
