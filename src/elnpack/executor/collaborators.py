"""Interfaces to the outside world that the executor delegates to."""

from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

from elnpack.state.models import ThumbnailImage


class FilePicker(Protocol):
    """Selects files on behalf of the user; ``None`` or empty means cancelled."""

    def pick_files(self) -> Sequence[Path]: ...

    def pick_metadata_file(self) -> Optional[Path]: ...

    def pick_save_destination(self, suggested_name: str) -> Optional[Path]: ...


class ThumbnailLoader(Protocol):
    """Decodes image files into bounded RGBA previews."""

    def load(self, path: Path) -> ThumbnailImage: ...


class PresetFilePicker:
    """Non-interactive picker answering from queued selections.

    Each call consumes the next queued answer; an exhausted queue behaves like
    the user cancelling the dialog.
    """

    def __init__(
        self,
        files: Iterable[Sequence[Path]] = (),
        metadata_files: Iterable[Optional[Path]] = (),
        destinations: Iterable[Optional[Path]] = (),
    ) -> None:
        self._files: deque[Sequence[Path]] = deque(files)
        self._metadata: deque[Optional[Path]] = deque(metadata_files)
        self._destinations: deque[Optional[Path]] = deque(destinations)
        self.suggestions: list[str] = []

    def pick_files(self) -> Sequence[Path]:
        return self._files.popleft() if self._files else ()

    def pick_metadata_file(self) -> Optional[Path]:
        return self._metadata.popleft() if self._metadata else None

    def pick_save_destination(self, suggested_name: str) -> Optional[Path]:
        self.suggestions.append(suggested_name)
        return self._destinations.popleft() if self._destinations else None


__all__ = ["FilePicker", "PresetFilePicker", "ThumbnailLoader"]
