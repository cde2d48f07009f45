"""eLabFTW structured metadata import, export and validation."""

from .elabftw import MetadataImportError, build_elabftw_metadata, export_value, parse_extra_fields
from .validation import describe, first_invalid, validate_field

__all__ = [
    "MetadataImportError",
    "build_elabftw_metadata",
    "describe",
    "export_value",
    "first_invalid",
    "parse_extra_fields",
    "validate_field",
]
