"""Per-field value validation applied before saving."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from pydantic import EmailStr, HttpUrl, TypeAdapter, ValidationError

from elnpack.state.extra_fields import ID_KINDS, FieldKind, MetadataField

REQUIRED = "required"
INVALID_URL = "invalid_url"
INVALID_NUMBER = "invalid_number"
INVALID_INTEGER = "invalid_integer"
INVALID_EMAIL = "invalid_email"

_URL_ADAPTER = TypeAdapter(HttpUrl)
_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_INTEGER = re.compile(r"[+-]?\d+")

_MESSAGES = {
    REQUIRED: "Field '{label}' is required.",
    INVALID_URL: "Field '{label}' must be a valid http/https URL.",
    INVALID_NUMBER: "Field '{label}' must be a valid number.",
    INVALID_INTEGER: "Field '{label}' must be a valid integer ID.",
    INVALID_EMAIL: "Field '{label}' must be a valid email address.",
}


def _is_number(value: str) -> bool:
    if "_" in value:
        return False
    try:
        float(value)
    except ValueError:
        return False
    return True


def _is_url(value: str) -> bool:
    try:
        url = _URL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return url.scheme in ("http", "https") and bool(url.host)


def _is_email(value: str) -> bool:
    try:
        _EMAIL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def validate_field(field: MetadataField) -> Optional[str]:
    """Return a reason code when ``field`` holds an unacceptable value.

    Empty optional fields are always valid; type checks only apply to
    non-empty values.
    """
    value = field.value.strip()
    if field.required and not value:
        return REQUIRED
    if not value:
        return None
    if field.kind == FieldKind.URL.value and not _is_url(value):
        return INVALID_URL
    if field.kind == FieldKind.NUMBER.value and not _is_number(value):
        return INVALID_NUMBER
    if field.kind in ID_KINDS and not _INTEGER.fullmatch(value):
        return INVALID_INTEGER
    if field.kind == FieldKind.EMAIL.value and not _is_email(value):
        return INVALID_EMAIL
    return None


def describe(field: MetadataField, code: str) -> str:
    """Render the user-facing message for a reason code."""
    return _MESSAGES.get(code, "Field '{label}' is invalid.").format(label=field.label)


def first_invalid(fields: Iterable[MetadataField]) -> Optional[tuple[MetadataField, str]]:
    """Return the first field failing validation together with its reason code."""
    for field in fields:
        code = validate_field(field)
        if code is not None:
            return field, code
    return None


__all__ = [
    "INVALID_EMAIL",
    "INVALID_INTEGER",
    "INVALID_NUMBER",
    "INVALID_URL",
    "REQUIRED",
    "describe",
    "first_invalid",
    "validate_field",
]
