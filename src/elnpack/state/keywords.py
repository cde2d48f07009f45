"""Ordered, de-duplicated keyword collection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, Field


@dataclass(slots=True, frozen=True)
class KeywordAddResult:
    """Outcome of adding a comma-separated batch of keywords.

    Attributes:
        added: Keywords appended, in input order.
        duplicates: Number of entries dropped because they already existed.
        empty: Number of blank entries skipped.
    """

    added: tuple[str, ...]
    duplicates: int
    empty: int

    @property
    def message(self) -> str:
        """Return a status line summarizing the batch."""
        skipped: list[str] = []
        if self.duplicates:
            skipped.append(f"{self.duplicates} duplicate(s)")
        if self.empty:
            skipped.append(f"{self.empty} empty entry/entries")
        if self.added and skipped:
            return f"Added {len(self.added)} keyword(s); skipped {' and '.join(skipped)}."
        if self.added:
            return f"Added {len(self.added)} keyword(s)."
        return "No keywords added; skipped duplicates or empty entries."


class KeywordsModel(BaseModel):
    """Keywords in insertion order; duplicates are exact matches after trimming."""

    items: List[str] = Field(default_factory=list)

    def add_many(self, raw: str) -> KeywordAddResult:
        """Split ``raw`` on commas and append every new, non-empty keyword."""
        added: list[str] = []
        duplicates = 0
        empty = 0
        for part in raw.split(","):
            keyword = part.strip()
            if not keyword:
                empty += 1
                continue
            if keyword in self.items:
                duplicates += 1
                continue
            self.items.append(keyword)
            added.append(keyword)
        return KeywordAddResult(added=tuple(added), duplicates=duplicates, empty=empty)

    def replace(self, index: int, value: str) -> Optional[str]:
        """Replace the keyword at ``index``.

        Returns:
            Optional[str]: An error message when the edit is rejected, otherwise None.
        """
        if not 0 <= index < len(self.items):
            return "Keyword no longer exists."
        keyword = value.strip()
        if not keyword:
            return "Keyword cannot be empty."
        if any(pos != index and existing == keyword for pos, existing in enumerate(self.items)):
            return "Keyword already exists."
        self.items[index] = keyword
        return None

    def remove(self, index: int) -> bool:
        if 0 <= index < len(self.items):
            del self.items[index]
            return True
        return False


__all__ = ["KeywordAddResult", "KeywordsModel"]
