"""Command execution against the filesystem and user-facing collaborators."""

from .collaborators import FilePicker, PresetFilePicker, ThumbnailLoader
from .runtime import Runtime
from .service import CommandExecutor, guess_mime
from .thumbnails import PillowThumbnailLoader, ThumbnailError

__all__ = [
    "CommandExecutor",
    "FilePicker",
    "PillowThumbnailLoader",
    "PresetFilePicker",
    "Runtime",
    "ThumbnailError",
    "ThumbnailLoader",
    "guess_mime",
]
