"""Content digests and tamper detection."""

from .errors import DigestError, HashMismatchError, IntegrityError
from .hashing import DEFAULT_CHUNK_SIZE, DigestCheck, HashComputer, find_mismatches, verify_digest

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DigestCheck",
    "DigestError",
    "HashComputer",
    "HashMismatchError",
    "IntegrityError",
    "find_mismatches",
    "verify_digest",
]
